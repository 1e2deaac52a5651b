"""
Static fallback content.

Used by the facade when no AI provider answers. Everything here is derived
from snapshot values with fixed thresholds, so the response is always
available and always the same for the same snapshot.

Thresholds:
    battery level   < 20  low
    battery level   < 50  moderate
    memory used     > 80  high
    storage used    > 90  low space
"""

from typing import Any, List, Mapping, Optional, Sequence

LOW_BATTERY_LEVEL = 20
MODERATE_BATTERY_LEVEL = 50
HIGH_MEMORY_PERCENT = 80
LOW_STORAGE_PERCENT = 90

BATTERY_TIPS = [
    "Reduce screen brightness when possible",
    "Close unused background apps",
    "Enable power saving mode when battery is low",
    "Avoid extreme temperatures",
    "Use original charger when possible",
]

PERFORMANCE_RECOMMENDATIONS = [
    "Restart your device regularly",
    "Keep apps updated to latest versions",
    "Clear cache periodically",
    "Monitor storage space",
    "Close unused background applications",
]


def _value(fields: Mapping[str, Any], group: str, key: str) -> Optional[Any]:
    section = fields.get(group)
    if isinstance(section, Mapping):
        return section.get(key)
    return None


def _number(fields: Mapping[str, Any], group: str, key: str) -> Optional[float]:
    value = _value(fields, group, key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return value


def _fmt(value: float) -> str:
    return f"{value:.0f}" if float(value).is_integer() else f"{value:.1f}"


def _gb(value: Any) -> str:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return f"{value / (1024 ** 3):.1f} GB"
    return str(value)


# ---------------------------------------------------------------------------
# FIXED OPERATIONS
# ---------------------------------------------------------------------------

def fallback_insights(fields: Mapping[str, Any]) -> str:
    platform = fields.get("platform") or "current"
    return (
        f"Your {platform} device appears to be running well. Consider optimizing "
        f"battery usage and clearing storage space for better performance. Regular "
        f"maintenance can help keep your device running smoothly."
    )


def fallback_battery_advice(fields: Mapping[str, Any]) -> str:
    level = _number(fields, "battery", "level")
    if level is None:
        return (
            "Battery information is not available on this device. "
            "Maintain good charging habits for optimal battery health."
        )
    if level < LOW_BATTERY_LEVEL:
        return "Your battery is running low. Consider enabling power save mode and reducing screen brightness."
    if level < MODERATE_BATTERY_LEVEL:
        return "Your battery is at moderate levels. Closing unused apps can help extend battery life."
    return "Your battery level looks good. Maintain good charging habits for optimal battery health."


def fallback_performance_tips(fields: Mapping[str, Any]) -> str:
    memory = _number(fields, "memory", "used_percentage")
    if memory is not None and memory > HIGH_MEMORY_PERCENT:
        return "High memory usage detected. Consider closing unused applications and restarting your device."
    return "Your device performance looks good. Regular maintenance and updates can help maintain optimal performance."


def basic_recommendations(fields: Mapping[str, Any]) -> List[str]:
    """Threshold-based recommendations, never empty."""
    recommendations = []

    memory = _number(fields, "memory", "used_percentage")
    if memory is not None and memory > HIGH_MEMORY_PERCENT:
        recommendations.append("High memory usage - consider closing unused apps")

    storage = _number(fields, "storage", "used_percentage")
    if storage is not None and storage > LOW_STORAGE_PERCENT:
        recommendations.append("Low storage space - clean up old files and apps")

    battery = _number(fields, "battery", "level")
    if battery is not None and battery < LOW_BATTERY_LEVEL:
        recommendations.append("Low battery - enable power saving mode")

    return recommendations or ["Your device is running optimally"]


# ---------------------------------------------------------------------------
# FREE-TEXT QUERIES
# ---------------------------------------------------------------------------

def fallback_query_response(topics: Sequence[str], fields: Mapping[str, Any]) -> str:
    """
    One-sentence answer built from the first matched topic that has data.

    CPU is checked first so "performance" questions that also mention memory
    get the processor answer.
    """
    ordered = sorted(topics, key=lambda t: 0 if t == "cpu" else 1)
    for topic in ordered:
        answer = _TOPIC_ANSWERS.get(topic, lambda f: None)(fields)
        if answer:
            return answer
    return _summary(fields)


def _cpu_answer(fields: Mapping[str, Any]) -> Optional[str]:
    usage = _number(fields, "cpu", "usage")
    if usage is None:
        return None
    cores = _value(fields, "cpu", "cores")
    return f"Your CPU is running at {_fmt(usage)}% usage with {cores} cores."


def _battery_answer(fields: Mapping[str, Any]) -> Optional[str]:
    level = _number(fields, "battery", "level")
    if level is None:
        return None
    charging = _value(fields, "battery", "charging")
    return f"Your battery is at {_fmt(level)}% and {'charging' if charging else 'not charging'}."


def _memory_answer(fields: Mapping[str, Any]) -> Optional[str]:
    used = _number(fields, "memory", "used_percentage")
    if used is None:
        return None
    return (
        f"Your device is using {_fmt(used)}% of available memory "
        f"({_gb(_value(fields, 'memory', 'used'))} of {_gb(_value(fields, 'memory', 'total'))})."
    )


def _storage_answer(fields: Mapping[str, Any]) -> Optional[str]:
    used = _number(fields, "storage", "used_percentage")
    if used is None:
        return None
    return (
        f"Your storage is {_fmt(used)}% full with "
        f"{_gb(_value(fields, 'storage', 'available'))} available space."
    )


def _network_answer(fields: Mapping[str, Any]) -> Optional[str]:
    connected = _value(fields, "network", "connected")
    if connected is None:
        return None
    interfaces = _value(fields, "network", "interfaces") or []
    if not connected:
        return "Your device does not appear to have an active network connection."
    return f"You're connected to the network via {', '.join(interfaces) or 'an active interface'}."


def _process_answer(fields: Mapping[str, Any]) -> Optional[str]:
    processes = fields.get("processes")
    if not processes:
        return None
    top = processes[0]
    return (
        f"The busiest process is {top.get('name')} at {_fmt(top.get('cpu_percent') or 0)}% CPU "
        f"and {_fmt(top.get('memory_percent') or 0)}% memory."
    )


def _summary(fields: Mapping[str, Any]) -> str:
    parts = []
    for label, group, key in (
        ("Battery", "battery", "level"),
        ("Memory", "memory", "used_percentage"),
        ("Storage", "storage", "used_percentage"),
        ("CPU", "cpu", "usage"),
    ):
        value = _number(fields, group, key)
        if value is not None:
            parts.append(f"{label} {_fmt(value)}%")

    platform = fields.get("platform") or "current"
    if not parts:
        return f"Your {platform} device is currently running."
    return f"Your {platform} device: {', '.join(parts)}."


_TOPIC_ANSWERS = {
    "cpu": _cpu_answer,
    "battery": _battery_answer,
    "memory": _memory_answer,
    "storage": _storage_answer,
    "network": _network_answer,
    "process": _process_answer,
}
