"""
Device schema model.
"""

from dataclasses import dataclass, replace
from typing import Sequence

DEVICE_NAME_PREFIX = "d_"
GROUP_NAME_PREFIX = "g_"
SENSOR_NAME_PREFIX = "s_"


def sensor_names(sensor_number: int) -> list[str]:
    """Sensor names s_0..s_{n-1}, in index order."""
    return [f"{SENSOR_NAME_PREFIX}{i}" for i in range(sensor_number)]


@dataclass(frozen=True)
class DeviceSchema:
    """A synthetic device, its storage group and its ordered sensors."""

    device_id: int
    group_id: int
    sensors: tuple[str, ...]

    @property
    def device(self) -> str:
        return f"{DEVICE_NAME_PREFIX}{self.device_id}"

    @property
    def group(self) -> str:
        return f"{GROUP_NAME_PREFIX}{self.group_id}"

    def with_sensors(self, sensors: Sequence[str]) -> "DeviceSchema":
        """Copy restricted to a subset of sensors (used by query selection)."""
        return replace(self, sensors=tuple(sensors))
