"""
Tests for the psutil-backed collectors.

psutil is patched throughout so results do not depend on the test host.
"""

from collections import namedtuple
from unittest.mock import MagicMock, patch

import psutil

from device_insights.collectors import system_state

sbattery = namedtuple("sbattery", ["percent", "secsleft", "power_plugged"])
snicstats = namedtuple("snicstats", ["isup"])
snetio = namedtuple("snetio", ["bytes_sent", "bytes_recv"])

MODULE = "device_insights.collectors.system_state.psutil"


def _process(pid, name, cpu, mem):
    proc = MagicMock()
    proc.pid = pid
    proc.name.return_value = name
    proc.cpu_percent.return_value = cpu
    proc.memory_percent.return_value = mem
    return proc


class TestBattery:
    def test_no_battery(self):
        """Test desktops report every battery value as None."""
        with patch(f"{MODULE}.sensors_battery", return_value=None, create=True):
            battery = system_state.collect_battery()

        assert battery == {"level": None, "charging": None, "power_plugged": None, "seconds_left": None}

    def test_discharging(self):
        with patch(f"{MODULE}.sensors_battery", return_value=sbattery(42.0, 3600, False), create=True):
            battery = system_state.collect_battery()

        assert battery["level"] == 42.0
        assert battery["charging"] is False
        assert battery["seconds_left"] == 3600

    def test_plugged_in_and_full_is_not_charging(self):
        """Test charging is derived: plugged in and below 100%."""
        reading = sbattery(100.0, psutil.POWER_TIME_UNLIMITED, True)
        with patch(f"{MODULE}.sensors_battery", return_value=reading, create=True):
            battery = system_state.collect_battery()

        assert battery["charging"] is False
        assert battery["power_plugged"] is True
        assert battery["seconds_left"] is None

    def test_plugged_in_below_full_is_charging(self):
        reading = sbattery(80.0, psutil.POWER_TIME_UNKNOWN, True)
        with patch(f"{MODULE}.sensors_battery", return_value=reading, create=True):
            battery = system_state.collect_battery()

        assert battery["charging"] is True


class TestNetwork:
    def test_loopback_and_down_interfaces_excluded(self):
        stats = {"lo": snicstats(True), "wlan0": snicstats(True), "eth0": snicstats(False)}
        with patch(f"{MODULE}.net_if_stats", return_value=stats), \
                patch(f"{MODULE}.net_io_counters", return_value=snetio(10, 20)):
            network = system_state.collect_network()

        assert network == {"connected": True, "interfaces": ["wlan0"], "bytes_sent": 10, "bytes_recv": 20}

    def test_offline(self):
        with patch(f"{MODULE}.net_if_stats", return_value={"lo": snicstats(True)}), \
                patch(f"{MODULE}.net_io_counters", return_value=None):
            network = system_state.collect_network()

        assert network["connected"] is False
        assert network["bytes_sent"] == 0


class TestProcesses:
    def test_sorted_and_truncated(self):
        processes = [
            _process(1, "idle", 0.0, 1.0),
            _process(2, "python", 50.0, 3.0),
            _process(3, "chrome", 20.0, 12.345),
        ]
        with patch(f"{MODULE}.process_iter", return_value=processes):
            top = system_state.collect_processes(top_n=2, sample_interval=0)

        assert [p["name"] for p in top] == ["python", "chrome"]
        assert top[1]["memory_percent"] == 12.35

    def test_vanished_and_denied_processes_skipped(self):
        gone = _process(4, "gone", 0.0, 0.0)
        gone.name.side_effect = psutil.NoSuchProcess(4)
        denied = _process(5, "root-only", 0.0, 0.0)
        denied.name.side_effect = psutil.AccessDenied(5)
        with patch(f"{MODULE}.process_iter", return_value=[gone, denied, _process(6, "bash", 1.0, 0.5)]):
            top = system_state.collect_processes(sample_interval=0)

        assert [p["pid"] for p in top] == [6]

    def test_cpu_counters_primed_before_sampling(self):
        """Test every process gets a priming cpu_percent call before the sampled one."""
        proc = _process(7, "worker", 30.0, 1.0)
        with patch(f"{MODULE}.process_iter", return_value=[proc]), \
                patch("device_insights.collectors.system_state.time.sleep") as sleep:
            top = system_state.collect_processes(sample_interval=0.1)

        assert proc.cpu_percent.call_count == 2
        sleep.assert_called_once_with(0.1)
        assert top[0]["cpu_percent"] == 30.0


class TestSnapshot:
    def test_canonical_keys(self):
        """Test gather_snapshot produces every canonical field."""
        with patch.object(system_state, "collect_memory", return_value={"used_percentage": 50}), \
                patch.object(system_state, "collect_storage", return_value={"used_percentage": 40}), \
                patch.object(system_state, "_sensors_battery", return_value=sbattery(55.0, 1800, False)), \
                patch.object(system_state, "collect_cpu", return_value={"usage": 5.0}), \
                patch.object(system_state, "collect_network", return_value={"connected": True}), \
                patch.object(system_state, "collect_processes", return_value=[]) as processes:
            snapshot = system_state.gather_snapshot(top_n=3)

        assert set(snapshot) == {
            "platform", "memory", "storage", "battery", "power", "cpu", "network", "processes",
        }
        assert snapshot["platform"]
        assert snapshot["battery"]["level"] == 55.0
        assert snapshot["power"] == {"source": "battery", "plugged_in": False, "seconds_left": 1800}
        processes.assert_called_once_with(3)

    def test_memory_fields(self):
        reading = MagicMock(total=16, used=8, available=8, percent=50.0)
        with patch(f"{MODULE}.virtual_memory", return_value=reading):
            memory = system_state.collect_memory()

        assert memory == {"total": 16, "used": 8, "available": 8, "used_percentage": 50.0}


class TestPower:
    """Tests for the power group of the snapshot."""

    def test_on_ac(self):
        power = system_state._power_fields(sbattery(80.0, psutil.POWER_TIME_UNLIMITED, True))

        assert power == {"source": "ac", "plugged_in": True, "seconds_left": None}

    def test_without_battery(self):
        """Test desktops without a battery report an unknown power source."""
        assert system_state._power_fields(None) == {"source": "unknown", "plugged_in": None, "seconds_left": None}
