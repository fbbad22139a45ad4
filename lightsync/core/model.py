"""Core data models shared by the store, sync layer, adapters, and CLI."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum

CAPABILITY_COLOR = "color"
CAPABILITY_BRIGHTNESS = "brightness"
CAPABILITY_COLOR_TEMPERATURE = "colorTemperature"
ALL_CAPABILITIES = (CAPABILITY_COLOR, CAPABILITY_BRIGHTNESS, CAPABILITY_COLOR_TEMPERATURE)

MIN_BRIGHTNESS = 0
MAX_BRIGHTNESS = 100
MIN_CHANNEL = 0
MAX_CHANNEL = 255
MIN_KELVIN = 2000
MAX_KELVIN = 9000

DEFAULT_APP_GROUP_IDENTIFIER = "group.com.govee.mac"
DEFAULT_CLOUD_CONTAINER = "iCloud.com.govee.smartlights"


def utc_now() -> datetime:
    """Current UTC time truncated to whole seconds, the wire precision."""
    return datetime.now(timezone.utc).replace(microsecond=0)


class SyncTransport(str, Enum):
    REMOTE = "cloud"
    SHARED_STORAGE = "appGroups"
    LOCAL_NETWORK = "localNetwork"
    BLUETOOTH = "bluetooth"

    @property
    def label(self) -> str:
        return _TRANSPORT_LABELS[self]

    @property
    def is_implemented(self) -> bool:
        return self in (SyncTransport.REMOTE, SyncTransport.SHARED_STORAGE)


_TRANSPORT_LABELS = {
    SyncTransport.REMOTE: "Remote store",
    SyncTransport.SHARED_STORAGE: "Shared storage",
    SyncTransport.LOCAL_NETWORK: "Local Network",
    SyncTransport.BLUETOOTH: "Bluetooth",
}


@dataclass(frozen=True)
class DeviceColor:
    red: int
    green: int
    blue: int
    kelvin: int | None = None

    @classmethod
    def from_kelvin(cls, kelvin: int) -> DeviceColor:
        """Approximate RGB for a color temperature.

        Only coarse bands are used; the host application owns precise
        conversion.
        """
        if kelvin < 3000:
            return cls(255, 180, 107, kelvin)
        if kelvin < 5000:
            return cls(255, 220, 180, kelvin)
        if kelvin < 7000:
            return cls(255, 240, 220, kelvin)
        return cls(200, 220, 255, kelvin)

    @classmethod
    def white(cls) -> DeviceColor:
        return cls(255, 255, 255)

    @classmethod
    def warm_white(cls) -> DeviceColor:
        return cls.from_kelvin(3000)

    @classmethod
    def cool_white(cls) -> DeviceColor:
        return cls.from_kelvin(6500)

    def with_kelvin(self, kelvin: int) -> DeviceColor:
        return replace(self, kelvin=kelvin)

    @property
    def rgb(self) -> tuple[int, int, int]:
        return self.red, self.green, self.blue


@dataclass(frozen=True)
class Device:
    id: str
    name: str
    model: str
    is_online: bool = True
    power_state: bool = False
    brightness: int = 100
    color: DeviceColor = field(default_factory=DeviceColor.white)
    capabilities: tuple[str, ...] = ALL_CAPABILITIES
    last_seen: datetime = field(default_factory=utc_now)
    group_id: str | None = None

    def supports(self, capability: str) -> bool:
        return capability in self.capabilities


@dataclass(frozen=True)
class DeviceGroup:
    name: str
    device_ids: tuple[str, ...] = ()
    id: str = field(default_factory=lambda: str(uuid.uuid4()).upper())
    icon: str | None = None
    created_at: datetime = field(default_factory=utc_now)


@dataclass(frozen=True)
class SyncedSettings:
    cloud_sync_enabled: bool = True
    local_network_enabled: bool = True
    bluetooth_enabled: bool = False
    app_groups_enabled: bool = True
    auto_refresh_interval: float = 30
    show_offline_devices: bool = True
    last_sync_time: datetime | None = None
    cloud_container: str = DEFAULT_CLOUD_CONTAINER
    app_group_identifier: str = DEFAULT_APP_GROUP_IDENTIFIER

    @classmethod
    def default(cls) -> SyncedSettings:
        return cls()

    def transport_toggles(self) -> tuple[tuple[SyncTransport, bool], ...]:
        """Toggles in bring-up order: stub transports first, the remote store last."""
        return (
            (SyncTransport.LOCAL_NETWORK, self.local_network_enabled),
            (SyncTransport.BLUETOOTH, self.bluetooth_enabled),
            (SyncTransport.SHARED_STORAGE, self.app_groups_enabled),
            (SyncTransport.REMOTE, self.cloud_sync_enabled),
        )
