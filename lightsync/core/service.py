"""Control facade used by the CLI and future UI frontends.

Every user intent goes through ``RemoteControlService``: it validates the
request, mutates the in-memory store, and hands the full collection to the
sync manager for persistence. The host application picks up the desired
state from shared storage and executes the actual device commands.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass

from lightsync.core.errors import DeviceNotFoundError, GroupNotFoundError, InvalidInputError, LightsyncError
from lightsync.core.model import (
    CAPABILITY_COLOR,
    CAPABILITY_COLOR_TEMPERATURE,
    MAX_BRIGHTNESS,
    MAX_CHANNEL,
    MAX_KELVIN,
    MIN_BRIGHTNESS,
    MIN_CHANNEL,
    MIN_KELVIN,
    Device,
    DeviceColor,
    DeviceGroup,
    SyncedSettings,
)
from lightsync.core.store import DeviceStore
from lightsync.core.sync import SyncManager

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeviceUpdate:
    device_id: str
    power_state: bool | None = None
    brightness: int | None = None
    color: DeviceColor | None = None


def sample_devices() -> list[Device]:
    return [
        Device(
            id="AA:BB:CC:DD:EE:01",
            name="Living Room Light",
            model="H6159",
            is_online=True,
            power_state=False,
            brightness=80,
            color=DeviceColor.white(),
            capabilities=("color", "brightness", "colorTemperature"),
        ),
        Device(
            id="AA:BB:CC:DD:EE:02",
            name="Bedroom Strip",
            model="H6182",
            is_online=True,
            power_state=True,
            brightness=50,
            color=DeviceColor(100, 50, 200),
            capabilities=("color", "brightness"),
        ),
        Device(
            id="AA:BB:CC:DD:EE:03",
            name="Kitchen Lights",
            model="H6159",
            is_online=False,
            power_state=False,
            brightness=100,
            color=DeviceColor.warm_white(),
            capabilities=("color", "brightness", "colorTemperature"),
        ),
    ]


def _check_brightness(value: int) -> None:
    if not MIN_BRIGHTNESS <= value <= MAX_BRIGHTNESS:
        raise InvalidInputError(f"Brightness must be between {MIN_BRIGHTNESS} and {MAX_BRIGHTNESS}")


def _check_kelvin(kelvin: int) -> None:
    if not MIN_KELVIN <= kelvin <= MAX_KELVIN:
        raise InvalidInputError(f"Color temperature must be between {MIN_KELVIN}K and {MAX_KELVIN}K")


def _check_color(color: DeviceColor) -> None:
    if not all(MIN_CHANNEL <= channel <= MAX_CHANNEL for channel in color.rgb):
        raise InvalidInputError(f"RGB values must be between {MIN_CHANNEL} and {MAX_CHANNEL}")
    if color.kelvin is not None:
        _check_kelvin(color.kelvin)


class RemoteControlService:
    """Single entry point for user-initiated mutations.

    Operations are serialized on one lock so concurrent callers never
    interleave a mutation with another mutation's persistence step.
    Validation errors are raised before anything changes.
    """

    def __init__(self, sync_manager: SyncManager, store: DeviceStore) -> None:
        self.sync_manager = sync_manager
        self.store = store
        self._lock = asyncio.Lock()

    def _require_device(self, device_id: str) -> Device:
        device = self.store.device(device_id)
        if device is None:
            raise DeviceNotFoundError(device_id)
        return device

    def _require_group(self, group_id: str) -> DeviceGroup:
        group = self.store.group(group_id)
        if group is None:
            raise GroupNotFoundError(group_id)
        return group

    async def _persist_devices(self) -> None:
        await self.sync_manager.save_devices(self.store.devices)

    async def _persist_all(self) -> None:
        await self.sync_manager.save_groups(self.store.groups)
        await self.sync_manager.save_devices(self.store.devices)

    # Device control

    async def set_power(self, device_id: str, power_state: bool) -> Device:
        async with self._lock:
            self._require_device(device_id)
            LOGGER.info("Setting device %s power to %s", device_id, power_state)
            self.store.update_device_power(device_id, power_state)
            await self._persist_devices()
            return self._require_device(device_id)

    async def set_brightness(self, device_id: str, brightness: int) -> Device:
        _check_brightness(brightness)
        async with self._lock:
            self._require_device(device_id)
            LOGGER.info("Setting device %s brightness to %d", device_id, brightness)
            self.store.update_device_brightness(device_id, brightness)
            await self._persist_devices()
            return self._require_device(device_id)

    async def set_color(self, device_id: str, color: DeviceColor) -> Device:
        _check_color(color)
        async with self._lock:
            device = self._require_device(device_id)
            if not device.supports(CAPABILITY_COLOR):
                raise InvalidInputError("Device does not support color")
            LOGGER.info("Setting device %s color to RGB%s", device_id, color.rgb)
            self.store.update_device_color(device_id, color)
            await self._persist_devices()
            return self._require_device(device_id)

    async def set_color_temperature(self, device_id: str, kelvin: int) -> Device:
        _check_kelvin(kelvin)
        async with self._lock:
            device = self._require_device(device_id)
            if not device.supports(CAPABILITY_COLOR_TEMPERATURE):
                raise InvalidInputError("Device does not support color temperature")
            LOGGER.info("Setting device %s color temperature to %dK", device_id, kelvin)
            self.store.update_device_color_temperature(device_id, kelvin)
            await self._persist_devices()
            return self._require_device(device_id)

    async def batch_update_devices(self, updates: Sequence[DeviceUpdate]) -> None:
        """Apply several device updates and persist once.

        All updates are validated before any is applied.
        """
        async with self._lock:
            for update in updates:
                device = self._require_device(update.device_id)
                if update.brightness is not None:
                    _check_brightness(update.brightness)
                if update.color is not None:
                    _check_color(update.color)
                    if not device.supports(CAPABILITY_COLOR):
                        raise InvalidInputError(f"Device {device.id} does not support color")

            LOGGER.info("Batch updating %d device(s)", len(updates))
            for update in updates:
                if update.power_state is not None:
                    self.store.update_device_power(update.device_id, update.power_state)
                if update.brightness is not None:
                    self.store.update_device_brightness(update.device_id, update.brightness)
                if update.color is not None:
                    self.store.update_device_color(update.device_id, update.color)
            await self._persist_devices()

    # Groups

    def _move_to_group(self, device_id: str, group_id: str) -> None:
        device = self.store.device(device_id)
        if device is not None and device.group_id not in (None, group_id):
            self.store.remove_device_from_group(device_id, device.group_id)
        self.store.add_device_to_group(device_id, group_id)

    async def create_group(
        self,
        name: str,
        device_ids: Sequence[str],
        *,
        icon: str | None = None,
    ) -> DeviceGroup:
        if not name.strip():
            raise InvalidInputError("Group name cannot be empty")
        async with self._lock:
            for device_id in device_ids:
                self._require_device(device_id)

            LOGGER.info("Creating group '%s' with %d device(s)", name, len(device_ids))
            group = DeviceGroup(name=name, icon=icon)
            self.store.upsert_group(group)
            for device_id in dict.fromkeys(device_ids):
                self._move_to_group(device_id, group.id)
            await self._persist_all()
            return self._require_group(group.id)

    async def delete_group(self, group_id: str) -> None:
        async with self._lock:
            self._require_group(group_id)
            LOGGER.info("Deleting group %s", group_id)
            self.store.remove_group(group_id)
            await self._persist_all()

    async def add_device_to_group(self, device_id: str, group_id: str) -> DeviceGroup:
        async with self._lock:
            self._require_group(group_id)
            self._require_device(device_id)
            self._move_to_group(device_id, group_id)
            await self._persist_all()
            return self._require_group(group_id)

    async def remove_device_from_group(self, device_id: str, group_id: str) -> DeviceGroup:
        async with self._lock:
            self._require_group(group_id)
            self.store.remove_device_from_group(device_id, group_id)
            await self._persist_all()
            return self._require_group(group_id)

    async def set_group_power(self, group_id: str, power_state: bool) -> None:
        async with self._lock:
            group = self._require_group(group_id)
            LOGGER.info("Setting group %s power to %s", group_id, power_state)
            for device_id in group.device_ids:
                if not self.store.update_device_power(device_id, power_state):
                    LOGGER.debug("Skipping missing group member %s", device_id)
            await self._persist_devices()

    # Refresh and settings

    async def refresh_devices(self) -> None:
        async with self._lock:
            await self.sync_manager.sync_now()

    async def get_settings(self) -> SyncedSettings:
        return self.sync_manager.load_settings()

    async def update_settings(self, settings: SyncedSettings) -> None:
        """Persist settings, then apply each transport toggle.

        Toggles are applied even when the save fails; the save error is
        raised afterwards.
        """
        async with self._lock:
            save_error: LightsyncError | None = None
            try:
                await self.sync_manager.save_settings(settings)
            except LightsyncError as exc:
                LOGGER.error("Failed to save settings: %s", exc)
                save_error = exc

            for transport, enabled in settings.transport_toggles():
                if enabled:
                    await self.sync_manager.enable_transport(transport)
                else:
                    self.sync_manager.disable_transport(transport)

            if save_error is not None:
                raise save_error

    async def seed_sample_devices(self) -> bool:
        """Populate demo devices when the store is empty."""
        async with self._lock:
            if self.store.device_count:
                return False
            devices = sample_devices()
            self.store.replace_all_devices(devices)
            await self.sync_manager.save_devices(devices)
            LOGGER.info("Added %d sample devices", len(devices))
            return True
