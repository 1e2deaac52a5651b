"""Collect device diagnostics from the host with psutil."""

import os
import platform
import time
from typing import Any, Dict, Iterable, List, Optional

import psutil


def gather_snapshot(top_n: int = 5) -> Dict[str, Any]:
    """Collect every metric group into the canonical snapshot mapping."""
    battery = _sensors_battery()
    return {
        "platform": platform.system() or "unknown",
        "memory": collect_memory(),
        "storage": collect_storage(),
        "battery": _battery_fields(battery),
        "power": _power_fields(battery),
        "cpu": collect_cpu(),
        "network": collect_network(),
        "processes": collect_processes(top_n),
    }


def collect_memory() -> Dict[str, Any]:
    memory = psutil.virtual_memory()
    return {
        "total": memory.total,
        "used": memory.used,
        "available": memory.available,
        "used_percentage": memory.percent,
    }


def collect_storage(path: Optional[str] = None) -> Dict[str, Any]:
    mount_point = path or os.path.abspath(os.sep)
    usage = psutil.disk_usage(mount_point)
    return {
        "mount_point": mount_point,
        "total": usage.total,
        "used": usage.used,
        "available": usage.free,
        "used_percentage": usage.percent,
    }


def collect_battery() -> Dict[str, Any]:
    """Battery state; every value is None on hosts without a battery."""
    return _battery_fields(_sensors_battery())


def collect_cpu(interval: float = 0.3) -> Dict[str, Any]:
    load_avg = os.getloadavg() if hasattr(os, "getloadavg") else (0.0, 0.0, 0.0)
    return {
        "cores": psutil.cpu_count() or 0,
        "usage": psutil.cpu_percent(interval=interval),
        "load_average": [round(value, 2) for value in load_avg],
    }


def collect_network() -> Dict[str, Any]:
    stats = psutil.net_if_stats()
    interfaces = sorted(
        name for name, stat in stats.items()
        if stat.isup and not name.startswith("lo")
    )
    counters = psutil.net_io_counters()
    return {
        "connected": bool(interfaces),
        "interfaces": interfaces,
        "bytes_sent": counters.bytes_sent if counters else 0,
        "bytes_recv": counters.bytes_recv if counters else 0,
    }


def collect_processes(top_n: int = 5, sample_interval: float = 0.1) -> List[Dict[str, Any]]:
    """
    Top processes by CPU, then memory.

    Per-process cpu_percent reads 0.0 on its first call, so every process is
    primed and sampled again after sample_interval seconds.
    """
    processes = list(psutil.process_iter())
    _prime_cpu_percent(processes, sample_interval)
    usage = _process_usage(processes)
    usage.sort(key=lambda p: (p["cpu_percent"], p["memory_percent"]), reverse=True)
    return usage[:top_n]


def _sensors_battery():
    # Not every platform build of psutil exposes sensors_battery
    if not hasattr(psutil, "sensors_battery"):
        return None
    return psutil.sensors_battery()


def _seconds_left(battery) -> Optional[int]:
    if battery.secsleft in (psutil.POWER_TIME_UNLIMITED, psutil.POWER_TIME_UNKNOWN):
        return None
    return battery.secsleft


def _battery_fields(battery) -> Dict[str, Any]:
    if battery is None:
        return {"level": None, "charging": None, "power_plugged": None, "seconds_left": None}
    return {
        "level": round(battery.percent, 1),
        "charging": bool(battery.power_plugged) and battery.percent < 100,
        "power_plugged": battery.power_plugged,
        "seconds_left": _seconds_left(battery),
    }


def _power_fields(battery) -> Dict[str, Any]:
    """Power source: "ac", "battery", or "unknown" when psutil cannot tell."""
    if battery is None or battery.power_plugged is None:
        return {"source": "unknown", "plugged_in": None, "seconds_left": None}
    return {
        "source": "ac" if battery.power_plugged else "battery",
        "plugged_in": bool(battery.power_plugged),
        "seconds_left": _seconds_left(battery),
    }


def _prime_cpu_percent(processes: Iterable[psutil.Process], sample_interval: float) -> None:
    for proc in processes:
        try:
            proc.cpu_percent(None)
        except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
            continue
    if sample_interval > 0:
        time.sleep(sample_interval)


def _process_usage(processes: Iterable[psutil.Process]) -> List[Dict[str, Any]]:
    usage: List[Dict[str, Any]] = []
    for proc in processes:
        try:
            with proc.oneshot():
                usage.append(
                    {
                        "pid": proc.pid,
                        "name": proc.name(),
                        "cpu_percent": proc.cpu_percent(None),
                        "memory_percent": round(proc.memory_percent(), 2),
                    }
                )
        except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
            continue
    return usage
