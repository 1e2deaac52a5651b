"""Device data collectors."""

from device_insights.collectors.system_state import (
    collect_battery,
    collect_network,
    gather_snapshot,
)

__all__ = ["collect_battery", "collect_network", "gather_snapshot"]
