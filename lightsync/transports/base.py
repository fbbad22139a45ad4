"""Storage interfaces consumed by the sync layer."""

from __future__ import annotations

from typing import Protocol

from lightsync.core.model import Device, DeviceGroup, SyncedSettings


class DurableBackend(Protocol):
    def storage_info(self) -> str:
        """Diagnostic description of the bound namespace."""

    def load_devices(self) -> list[Device]:
        ...

    def save_devices(self, devices: list[Device]) -> None:
        ...

    def load_groups(self) -> list[DeviceGroup]:
        ...

    def save_groups(self, groups: list[DeviceGroup]) -> None:
        ...

    def load_settings(self) -> SyncedSettings:
        ...

    def save_settings(self, settings: SyncedSettings) -> None:
        ...


class RemoteStore(Protocol):
    async def check_availability(self) -> bool:
        """Return True only when the remote account is usable right now."""

    async def fetch_devices(self) -> list[Device]:
        ...

    async def fetch_groups(self) -> list[DeviceGroup]:
        ...

    async def save_devices(self, devices: list[Device]) -> int:
        """Upsert devices and return the number of records written remotely."""

    async def save_groups(self, groups: list[DeviceGroup]) -> int:
        ...
