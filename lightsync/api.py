"""Stable public API for building tooling on top of lightsync.

This module is the supported integration surface for third-party callers.
``Client`` is the composition root: it builds the durable store, remote
record store, in-memory store, sync manager, and control service once and
wires them together explicitly.
"""

from __future__ import annotations

from collections.abc import Sequence

from lightsync.core.config import AppConfig, load_config
from lightsync.core.errors import (
    ConfigError,
    DecodingError,
    DeviceNotFoundError,
    EncodingError,
    GroupNotFoundError,
    InvalidInputError,
    LightsyncError,
    NetworkError,
    RemoteUnavailableError,
    SharedStorageUnavailableError,
    UnauthorizedError,
)
from lightsync.core.model import (
    Device,
    DeviceColor,
    DeviceGroup,
    SyncedSettings,
    SyncTransport,
)
from lightsync.core.service import DeviceUpdate, RemoteControlService
from lightsync.core.store import ChangeKind, DeviceStore, StoreChange
from lightsync.core.sync import SyncManager, SyncStatus
from lightsync.transports.base import DurableBackend, RemoteStore
from lightsync.transports.durable import DurableStore
from lightsync.transports.remote import AccountStatus, RemoteRecordStore

__all__ = [
    "LightsyncError",
    "ConfigError",
    "DecodingError",
    "DeviceNotFoundError",
    "EncodingError",
    "GroupNotFoundError",
    "InvalidInputError",
    "NetworkError",
    "RemoteUnavailableError",
    "SharedStorageUnavailableError",
    "UnauthorizedError",
    "AccountStatus",
    "AppConfig",
    "ChangeKind",
    "Device",
    "DeviceColor",
    "DeviceGroup",
    "DeviceUpdate",
    "StoreChange",
    "SyncStatus",
    "SyncTransport",
    "SyncedSettings",
    "Client",
]


class Client:
    """Public client wrapping the sync layer and control facade.

    Pass ``durable``/``remote`` to substitute storage (tests, embedding);
    otherwise both are built from ``config``. Call ``start`` once before use
    and ``close`` when done.
    """

    def __init__(
        self,
        config: AppConfig | None = None,
        *,
        durable: DurableBackend | None = None,
        remote: RemoteStore | None = None,
    ) -> None:
        self.config = config or load_config()
        self._durable_store: DurableStore | None = None
        if durable is None:
            self._durable_store = DurableStore.open(self.config)
            durable = self._durable_store
        self._remote_store: RemoteRecordStore | None = None
        if remote is None:
            if self._durable_store is None:
                raise ConfigError("A remote store must be supplied together with a custom durable backend")
            self._remote_store = RemoteRecordStore.from_config(self.config, self._durable_store)
            remote = self._remote_store
        self.store = DeviceStore()
        self.sync = SyncManager(durable, remote, self.store)
        self._service = RemoteControlService(self.sync, self.store)

    async def start(self) -> SyncedSettings:
        """Bring up transports according to the persisted settings."""
        settings = await self._service.get_settings()
        if settings.local_network_enabled:
            await self.sync.enable_transport(SyncTransport.LOCAL_NETWORK)
        if settings.bluetooth_enabled:
            await self.sync.enable_transport(SyncTransport.BLUETOOTH)
        if settings.app_groups_enabled:
            await self.sync.enable_transport(SyncTransport.SHARED_STORAGE)
        if settings.cloud_sync_enabled:
            await self.sync.enable_transport(SyncTransport.REMOTE)
        if self.config.seed_demo_devices:
            await self._service.seed_sample_devices()
        return settings

    async def close(self) -> None:
        if self._remote_store is not None:
            await self._remote_store.close()

    async def __aenter__(self) -> Client:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    @property
    def status(self) -> SyncStatus:
        return self.sync.snapshot()

    def list_devices(self, *, include_offline: bool = True) -> list[Device]:
        devices = self.store.devices if include_offline else self.store.online_devices
        return sorted(devices, key=lambda d: d.name.lower())

    def list_groups(self) -> list[DeviceGroup]:
        return sorted(self.store.groups, key=lambda g: g.name.lower())

    async def refresh(self) -> SyncStatus:
        await self._service.refresh_devices()
        return self.sync.snapshot()

    async def set_power(self, device_id: str, power_state: bool) -> Device:
        return await self._service.set_power(device_id, power_state)

    async def set_brightness(self, device_id: str, brightness: int) -> Device:
        return await self._service.set_brightness(device_id, brightness)

    async def set_color(self, device_id: str, color: DeviceColor) -> Device:
        return await self._service.set_color(device_id, color)

    async def set_color_temperature(self, device_id: str, kelvin: int) -> Device:
        return await self._service.set_color_temperature(device_id, kelvin)

    async def batch_update(self, updates: Sequence[DeviceUpdate]) -> None:
        await self._service.batch_update_devices(updates)

    async def create_group(self, name: str, device_ids: Sequence[str], *, icon: str | None = None) -> DeviceGroup:
        return await self._service.create_group(name, device_ids, icon=icon)

    async def delete_group(self, group_id: str) -> None:
        await self._service.delete_group(group_id)

    async def set_group_power(self, group_id: str, power_state: bool) -> None:
        await self._service.set_group_power(group_id, power_state)

    async def get_settings(self) -> SyncedSettings:
        return await self._service.get_settings()

    async def update_settings(self, settings: SyncedSettings) -> None:
        await self._service.update_settings(settings)
