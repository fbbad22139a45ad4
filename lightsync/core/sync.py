"""Transport coordinator: enable/disable lifecycle, refresh, and write fan-out."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime

from lightsync.core.errors import LightsyncError
from lightsync.core.model import Device, DeviceGroup, SyncedSettings, SyncTransport, utc_now
from lightsync.core.store import DeviceStore
from lightsync.transports.base import DurableBackend, RemoteStore

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class SyncStatus:
    enabled_transports: tuple[SyncTransport, ...]
    is_connected_via_cloud: bool
    is_connected_via_shared_storage: bool
    status_message: str
    last_sync_time: datetime | None
    connection_summary: str


class SyncManager:
    """Owns which transports are active and is the only writer to storage.

    Transport failures never raise from here: they downgrade a connectivity
    flag and the status message. Only settings persistence errors propagate.
    """

    def __init__(
        self,
        durable: DurableBackend,
        remote: RemoteStore,
        store: DeviceStore,
    ) -> None:
        self.durable = durable
        self.remote = remote
        self.store = store
        self.is_connected_via_cloud = False
        self.is_connected_via_shared_storage = False
        self.status_message = "Idle"
        self.last_sync_time: datetime | None = None
        self._enabled: set[SyncTransport] = set()
        self._sync_task: asyncio.Task[None] | None = None
        LOGGER.info("Sync manager initialized\n%s", durable.storage_info())

    @property
    def storage_info(self) -> str:
        return self.durable.storage_info()

    @property
    def enabled_transports(self) -> tuple[SyncTransport, ...]:
        return tuple(t for t in SyncTransport if t in self._enabled)

    def is_transport_enabled(self, transport: SyncTransport) -> bool:
        return transport in self._enabled

    @property
    def is_any_transport_connected(self) -> bool:
        return self.is_connected_via_cloud or self.is_connected_via_shared_storage

    @property
    def connection_summary(self) -> str:
        connections: list[str] = []
        if self.is_connected_via_cloud:
            connections.append("iCloud")
        if self.is_connected_via_shared_storage:
            connections.append("Mac App")
        if not connections:
            return "Not Synced"
        return "Synced: " + " + ".join(connections)

    def snapshot(self) -> SyncStatus:
        return SyncStatus(
            enabled_transports=self.enabled_transports,
            is_connected_via_cloud=self.is_connected_via_cloud,
            is_connected_via_shared_storage=self.is_connected_via_shared_storage,
            status_message=self.status_message,
            last_sync_time=self.last_sync_time,
            connection_summary=self.connection_summary,
        )

    # Transport control

    async def enable_transport(self, transport: SyncTransport) -> bool:
        """Enable a transport and run its bring-up.

        Returns True only when this call performed the bring-up; enabling an
        already enabled transport is a no-op and unimplemented transports are
        refused with a status message.
        """
        if not transport.is_implemented:
            self.status_message = f"{transport.label} transport is not implemented"
            LOGGER.warning("Transport %s is not implemented", transport.value)
            return False
        if transport in self._enabled:
            LOGGER.debug("Transport %s already enabled", transport.value)
            return False

        self._enabled.add(transport)
        LOGGER.info("Enabling transport: %s", transport.value)
        await self._bring_up(transport)
        return True

    def disable_transport(self, transport: SyncTransport) -> None:
        if transport not in self._enabled:
            return
        self._enabled.discard(transport)
        LOGGER.info("Disabling transport: %s", transport.value)
        if transport is SyncTransport.REMOTE:
            self.is_connected_via_cloud = False
        elif transport is SyncTransport.SHARED_STORAGE:
            self.is_connected_via_shared_storage = False

    async def _bring_up(self, transport: SyncTransport) -> None:
        if transport is SyncTransport.REMOTE:
            await self._sync_remote()
        elif transport is SyncTransport.SHARED_STORAGE:
            self._sync_shared_storage()

    async def _sync_remote(self) -> None:
        self.status_message = "Connecting to remote store..."
        try:
            available = await self.remote.check_availability()
        except Exception:
            LOGGER.exception("Remote availability check failed")
            available = False
        self.is_connected_via_cloud = available

        if not available:
            self.status_message = "Remote store not available"
            return

        self.status_message = "Connected to remote store"
        try:
            devices = await self.remote.fetch_devices()
        except Exception as exc:
            LOGGER.warning("Remote sync failed: %s", exc)
            self.status_message = "Remote sync failed"
            return
        self.store.replace_all_devices(devices)
        self.last_sync_time = utc_now()
        LOGGER.info("Remote sync completed: %d device(s)", len(devices))

    def _sync_shared_storage(self) -> None:
        self.status_message = "Loading from shared storage..."
        try:
            devices = self.durable.load_devices()
            groups = self.durable.load_groups()
        except LightsyncError as exc:
            self.is_connected_via_shared_storage = False
            self.status_message = f"Failed to load from shared storage: {exc}"
            LOGGER.error("Shared storage sync failed: %s", exc)
            return

        self.store.replace_all_devices(devices)
        self.store.replace_all_groups(groups)
        self.is_connected_via_shared_storage = True
        self.last_sync_time = utc_now()
        self.status_message = "Synced with host app via shared storage"
        LOGGER.info("Shared storage sync completed: %d device(s), %d group(s)", len(devices), len(groups))

    # Refresh

    async def sync_now(self) -> None:
        """Refresh every enabled transport.

        Concurrent callers share the in-flight refresh instead of starting a
        second round of remote calls. Per-transport success is reported by
        the connectivity flags, not by this method.
        """
        if self._sync_task is not None and not self._sync_task.done():
            LOGGER.debug("Sync already in flight, joining it")
            await asyncio.shield(self._sync_task)
            return
        self._sync_task = asyncio.ensure_future(self._run_sync())
        await self._sync_task

    async def _run_sync(self) -> None:
        LOGGER.info("Manual sync triggered")
        self.status_message = "Syncing..."
        for transport in self.enabled_transports:
            await self._bring_up(transport)
        self.status_message = "Sync completed"
        self.last_sync_time = utc_now()

    # Write fan-out

    async def save_devices(self, devices: list[Device]) -> None:
        try:
            self.durable.save_devices(devices)
        except LightsyncError as exc:
            LOGGER.error("Failed to save devices to storage: %s", exc)
            self.status_message = f"Failed to save devices: {exc}"
            return
        self.last_sync_time = utc_now()

        if self.is_connected_via_cloud:
            try:
                await self.remote.save_devices(devices)
            except Exception as exc:
                LOGGER.warning("Remote save of devices failed: %s", exc)
                self.status_message = "Remote save failed, devices saved locally"
        LOGGER.debug("Devices saved to storage")

    async def save_groups(self, groups: list[DeviceGroup]) -> None:
        try:
            self.durable.save_groups(groups)
        except LightsyncError as exc:
            LOGGER.error("Failed to save groups to storage: %s", exc)
            self.status_message = f"Failed to save groups: {exc}"
            return

        if self.is_connected_via_cloud:
            try:
                await self.remote.save_groups(groups)
            except Exception as exc:
                LOGGER.warning("Remote save of groups failed: %s", exc)
                self.status_message = "Remote save failed, groups saved locally"
        LOGGER.debug("Groups saved to storage")

    # Settings

    def load_settings(self) -> SyncedSettings:
        return self.durable.load_settings()

    async def save_settings(self, settings: SyncedSettings) -> None:
        self.durable.save_settings(settings)
