"""In-memory observable collection of devices and groups."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, replace
from enum import Enum

from lightsync.core.model import Device, DeviceColor, DeviceGroup, utc_now

LOGGER = logging.getLogger(__name__)


class ChangeKind(str, Enum):
    DEVICES_REPLACED = "devices_replaced"
    DEVICE_UPDATED = "device_updated"
    DEVICE_REMOVED = "device_removed"
    GROUPS_REPLACED = "groups_replaced"
    GROUP_UPDATED = "group_updated"
    GROUP_REMOVED = "group_removed"
    CLEARED = "cleared"


@dataclass(frozen=True)
class StoreChange:
    kind: ChangeKind
    ids: tuple[str, ...] = ()


Listener = Callable[[StoreChange], None]


class DeviceStore:
    """Keyed device and group collections with change notification.

    Not thread-safe: callers confine all access to one event loop. Listener
    failures are logged and do not interrupt the mutation that triggered them.
    """

    def __init__(
        self,
        devices: list[Device] | None = None,
        groups: list[DeviceGroup] | None = None,
    ) -> None:
        self._devices: dict[str, Device] = {d.id: d for d in devices or []}
        self._groups: dict[str, DeviceGroup] = {g.id: g for g in groups or []}
        self._listeners: list[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _notify(self, kind: ChangeKind, *ids: str) -> None:
        change = StoreChange(kind=kind, ids=ids)
        for listener in list(self._listeners):
            try:
                listener(change)
            except Exception:
                LOGGER.exception("Store listener failed for %s", kind.value)

    @property
    def devices(self) -> list[Device]:
        return list(self._devices.values())

    @property
    def groups(self) -> list[DeviceGroup]:
        return list(self._groups.values())

    @property
    def online_devices(self) -> list[Device]:
        return [d for d in self._devices.values() if d.is_online]

    @property
    def offline_devices(self) -> list[Device]:
        return [d for d in self._devices.values() if not d.is_online]

    def device(self, device_id: str) -> Device | None:
        return self._devices.get(device_id)

    def group(self, group_id: str) -> DeviceGroup | None:
        return self._groups.get(group_id)

    def devices_in_group(self, group_id: str) -> list[Device]:
        group = self._groups.get(group_id)
        if group is None:
            return []
        return [self._devices[i] for i in group.device_ids if i in self._devices]

    # Devices

    def replace_all_devices(self, devices: list[Device]) -> None:
        self._devices = {d.id: d for d in devices}
        self._notify(ChangeKind.DEVICES_REPLACED)

    def upsert_device(self, device: Device) -> None:
        self._devices[device.id] = device
        self._notify(ChangeKind.DEVICE_UPDATED, device.id)

    def remove_device(self, device_id: str) -> None:
        if self._devices.pop(device_id, None) is not None:
            self._notify(ChangeKind.DEVICE_REMOVED, device_id)

    def _touch(self, device_id: str, **changes: object) -> bool:
        device = self._devices.get(device_id)
        if device is None:
            return False
        self._devices[device_id] = replace(device, last_seen=utc_now(), **changes)
        self._notify(ChangeKind.DEVICE_UPDATED, device_id)
        return True

    def update_device_power(self, device_id: str, power_state: bool) -> bool:
        return self._touch(device_id, power_state=power_state)

    def update_device_brightness(self, device_id: str, brightness: int) -> bool:
        return self._touch(device_id, brightness=max(0, min(100, brightness)))

    def update_device_color(self, device_id: str, color: DeviceColor) -> bool:
        return self._touch(device_id, color=color)

    def update_device_color_temperature(self, device_id: str, kelvin: int) -> bool:
        device = self._devices.get(device_id)
        if device is None:
            return False
        return self._touch(device_id, color=device.color.with_kelvin(kelvin))

    # Groups

    def replace_all_groups(self, groups: list[DeviceGroup]) -> None:
        self._groups = {g.id: g for g in groups}
        self._notify(ChangeKind.GROUPS_REPLACED)

    def upsert_group(self, group: DeviceGroup) -> None:
        self._groups[group.id] = group
        self._notify(ChangeKind.GROUP_UPDATED, group.id)

    def remove_group(self, group_id: str) -> bool:
        """Remove a group and clear the back-reference on its devices."""
        if self._groups.pop(group_id, None) is None:
            return False
        for device in list(self._devices.values()):
            if device.group_id == group_id:
                self._devices[device.id] = replace(device, group_id=None)
        self._notify(ChangeKind.GROUP_REMOVED, group_id)
        return True

    def add_device_to_group(self, device_id: str, group_id: str) -> bool:
        group = self._groups.get(group_id)
        if group is None:
            return False
        if device_id not in group.device_ids:
            self._groups[group_id] = replace(group, device_ids=group.device_ids + (device_id,))
        device = self._devices.get(device_id)
        if device is not None:
            self._devices[device_id] = replace(device, group_id=group_id)
        self._notify(ChangeKind.GROUP_UPDATED, group_id)
        return True

    def remove_device_from_group(self, device_id: str, group_id: str) -> bool:
        group = self._groups.get(group_id)
        if group is None:
            return False
        self._groups[group_id] = replace(
            group, device_ids=tuple(i for i in group.device_ids if i != device_id)
        )
        device = self._devices.get(device_id)
        if device is not None and device.group_id == group_id:
            self._devices[device_id] = replace(device, group_id=None)
        self._notify(ChangeKind.GROUP_UPDATED, group_id)
        return True

    def clear(self) -> None:
        self._devices = {}
        self._groups = {}
        self._notify(ChangeKind.CLEARED)

    @property
    def device_count(self) -> int:
        return len(self._devices)

    @property
    def group_count(self) -> int:
        return len(self._groups)

    @property
    def online_device_count(self) -> int:
        return len(self.online_devices)
