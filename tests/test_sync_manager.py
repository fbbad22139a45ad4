from __future__ import annotations

import asyncio
from datetime import datetime, timezone

import pytest

from lightsync.core.errors import DecodingError, EncodingError
from lightsync.core.model import Device, DeviceGroup, SyncedSettings, SyncTransport
from lightsync.core.store import DeviceStore
from lightsync.core.sync import SyncManager
from lightsync.transports.backends import MemoryBackend
from lightsync.transports.durable import DEVICES_KEY, DurableStore

SEEN = datetime(2024, 2, 3, 4, 5, 6, tzinfo=timezone.utc)


def _device(device_id: str, **overrides: object) -> Device:
    values: dict[str, object] = dict(id=device_id, name=device_id, model="H6159", last_seen=SEEN)
    values.update(overrides)
    return Device(**values)  # type: ignore[arg-type]


def _durable() -> DurableStore:
    return DurableStore(
        MemoryBackend(),
        is_shared=True,
        app_group_identifier="group.test",
        cloud_container="container.test",
    )


class FakeRemote:
    def __init__(
        self,
        *,
        available: bool = True,
        devices: list[Device] | None = None,
        fail_fetch: bool = False,
        fail_save: bool = False,
        fetch_delay: float = 0.0,
    ) -> None:
        self.available = available
        self.devices = devices or []
        self.fail_fetch = fail_fetch
        self.fail_save = fail_save
        self.fetch_delay = fetch_delay
        self.availability_calls = 0
        self.fetch_calls = 0
        self.saved_devices: list[list[Device]] = []
        self.saved_groups: list[list[DeviceGroup]] = []

    async def check_availability(self) -> bool:
        self.availability_calls += 1
        return self.available

    async def fetch_devices(self) -> list[Device]:
        self.fetch_calls += 1
        if self.fetch_delay:
            await asyncio.sleep(self.fetch_delay)
        if self.fail_fetch:
            raise DecodingError("remote payload corrupt")
        return list(self.devices)

    async def fetch_groups(self) -> list[DeviceGroup]:
        return []

    async def save_devices(self, devices: list[Device]) -> int:
        if self.fail_save:
            raise ConnectionError("remote unreachable")
        self.saved_devices.append(list(devices))
        return len(devices)

    async def save_groups(self, groups: list[DeviceGroup]) -> int:
        if self.fail_save:
            raise ConnectionError("remote unreachable")
        self.saved_groups.append(list(groups))
        return len(groups)


class FailingDurable(DurableStore):
    def save_devices(self, devices: list[Device]) -> None:
        raise EncodingError(ValueError("disk full"))


@pytest.mark.asyncio
async def test_enable_remote_twice_brings_up_once() -> None:
    remote = FakeRemote(devices=[_device("r1")])
    manager = SyncManager(_durable(), remote, DeviceStore())

    assert await manager.enable_transport(SyncTransport.REMOTE) is True
    assert await manager.enable_transport(SyncTransport.REMOTE) is False

    assert remote.availability_calls == 1
    assert remote.fetch_calls == 1
    assert manager.is_connected_via_cloud
    assert [d.id for d in manager.store.devices] == ["r1"]
    assert manager.last_sync_time is not None


@pytest.mark.asyncio
async def test_remote_unavailable_keeps_store() -> None:
    store = DeviceStore(devices=[_device("local")])
    remote = FakeRemote(available=False)
    manager = SyncManager(_durable(), remote, store)

    await manager.enable_transport(SyncTransport.REMOTE)

    assert not manager.is_connected_via_cloud
    assert remote.fetch_calls == 0
    assert manager.status_message == "Remote store not available"
    assert [d.id for d in store.devices] == ["local"]


@pytest.mark.asyncio
async def test_remote_fetch_failure_reports_status_without_raising() -> None:
    store = DeviceStore(devices=[_device("local")])
    manager = SyncManager(_durable(), FakeRemote(fail_fetch=True), store)

    await manager.enable_transport(SyncTransport.REMOTE)

    assert manager.is_connected_via_cloud
    assert manager.status_message == "Remote sync failed"
    assert manager.last_sync_time is None
    assert [d.id for d in store.devices] == ["local"]


@pytest.mark.asyncio
async def test_shared_storage_with_empty_backend_connects() -> None:
    manager = SyncManager(_durable(), FakeRemote(), DeviceStore())

    await manager.enable_transport(SyncTransport.SHARED_STORAGE)

    assert manager.is_connected_via_shared_storage
    assert manager.store.devices == []
    assert manager.store.groups == []
    assert manager.connection_summary == "Synced: Mac App"


@pytest.mark.asyncio
async def test_shared_storage_decode_failure_leaves_flag_false() -> None:
    durable = _durable()
    durable.backend.set(DEVICES_KEY, b"garbage")
    store = DeviceStore(devices=[_device("kept")])
    manager = SyncManager(durable, FakeRemote(), store)

    await manager.enable_transport(SyncTransport.SHARED_STORAGE)

    assert not manager.is_connected_via_shared_storage
    assert manager.status_message.startswith("Failed to load from shared storage")
    assert [d.id for d in store.devices] == ["kept"]


@pytest.mark.asyncio
async def test_shared_storage_replaces_store_wholesale() -> None:
    durable = _durable()
    durable.save_devices([_device("d1")])
    durable.save_groups([DeviceGroup(id="g1", name="Den", created_at=SEEN)])
    store = DeviceStore(devices=[_device("stale")])
    manager = SyncManager(durable, FakeRemote(), store)

    await manager.enable_transport(SyncTransport.SHARED_STORAGE)

    assert [d.id for d in store.devices] == ["d1"]
    assert [g.id for g in store.groups] == ["g1"]


@pytest.mark.asyncio
@pytest.mark.parametrize("transport", [SyncTransport.LOCAL_NETWORK, SyncTransport.BLUETOOTH])
async def test_stub_transports_report_not_implemented(transport: SyncTransport) -> None:
    manager = SyncManager(_durable(), FakeRemote(), DeviceStore())

    assert await manager.enable_transport(transport) is False

    assert not manager.is_transport_enabled(transport)
    assert "not implemented" in manager.status_message
    assert not manager.is_any_transport_connected


@pytest.mark.asyncio
async def test_disable_clears_flag_and_is_idempotent() -> None:
    manager = SyncManager(_durable(), FakeRemote(), DeviceStore())
    await manager.enable_transport(SyncTransport.REMOTE)

    manager.disable_transport(SyncTransport.REMOTE)
    manager.disable_transport(SyncTransport.REMOTE)

    assert not manager.is_connected_via_cloud
    assert not manager.is_transport_enabled(SyncTransport.REMOTE)
    assert manager.connection_summary == "Not Synced"


@pytest.mark.asyncio
async def test_sync_now_refreshes_enabled_transports() -> None:
    remote = FakeRemote(devices=[_device("r1")])
    manager = SyncManager(_durable(), remote, DeviceStore())
    await manager.enable_transport(SyncTransport.REMOTE)
    remote.devices = [_device("r1"), _device("r2")]

    await manager.sync_now()

    assert remote.fetch_calls == 2
    assert [d.id for d in manager.store.devices] == ["r1", "r2"]
    assert manager.status_message == "Sync completed"


@pytest.mark.asyncio
async def test_sync_now_stamps_status_even_when_transport_fails() -> None:
    remote = FakeRemote(available=False)
    manager = SyncManager(_durable(), remote, DeviceStore())
    await manager.enable_transport(SyncTransport.REMOTE)

    await manager.sync_now()

    assert manager.status_message == "Sync completed"
    assert manager.last_sync_time is not None
    assert not manager.is_connected_via_cloud


@pytest.mark.asyncio
async def test_concurrent_sync_now_calls_share_one_refresh() -> None:
    remote = FakeRemote(fetch_delay=0.05)
    manager = SyncManager(_durable(), remote, DeviceStore())
    await manager.enable_transport(SyncTransport.REMOTE)
    assert remote.fetch_calls == 1

    await asyncio.gather(manager.sync_now(), manager.sync_now(), manager.sync_now())

    assert remote.fetch_calls == 2
    assert remote.availability_calls == 2


@pytest.mark.asyncio
async def test_save_devices_durable_first_when_remote_fails() -> None:
    durable = _durable()
    remote = FakeRemote(fail_save=True)
    manager = SyncManager(durable, remote, DeviceStore())
    await manager.enable_transport(SyncTransport.REMOTE)

    await manager.save_devices([_device("d1")])

    assert [d.id for d in durable.load_devices()] == ["d1"]
    assert "Remote save failed" in manager.status_message


@pytest.mark.asyncio
async def test_save_skips_remote_when_not_connected() -> None:
    remote = FakeRemote()
    manager = SyncManager(_durable(), remote, DeviceStore())

    await manager.save_devices([_device("d1")])
    await manager.save_groups([DeviceGroup(id="g1", name="Den", created_at=SEEN)])

    assert remote.saved_devices == []
    assert remote.saved_groups == []


@pytest.mark.asyncio
async def test_save_fans_out_when_connected() -> None:
    remote = FakeRemote()
    manager = SyncManager(_durable(), remote, DeviceStore())
    await manager.enable_transport(SyncTransport.REMOTE)

    await manager.save_devices([_device("d1")])
    await manager.save_groups([DeviceGroup(id="g1", name="Den", created_at=SEEN)])

    assert [[d.id for d in batch] for batch in remote.saved_devices] == [["d1"]]
    assert [[g.id for g in batch] for batch in remote.saved_groups] == [["g1"]]


@pytest.mark.asyncio
async def test_durable_failure_is_reported_and_skips_remote() -> None:
    durable = FailingDurable(
        MemoryBackend(),
        is_shared=False,
        app_group_identifier="group.test",
        cloud_container="container.test",
    )
    remote = FakeRemote()
    manager = SyncManager(durable, remote, DeviceStore())
    await manager.enable_transport(SyncTransport.REMOTE)

    await manager.save_devices([_device("d1")])

    assert remote.saved_devices == []
    assert manager.status_message.startswith("Failed to save devices")


@pytest.mark.asyncio
async def test_settings_pass_through_durable_only() -> None:
    durable = _durable()
    remote = FakeRemote()
    manager = SyncManager(durable, remote, DeviceStore())
    settings = SyncedSettings(bluetooth_enabled=True, auto_refresh_interval=60)

    await manager.save_settings(settings)

    assert manager.load_settings() == settings
    assert durable.load_settings() == settings
