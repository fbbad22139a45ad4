from __future__ import annotations

from pathlib import Path

import pytest

from lightsync.api import (
    AppConfig,
    Client,
    ConfigError,
    Device,
    DeviceColor,
    DeviceGroup,
    DeviceUpdate,
    SyncedSettings,
    SyncTransport,
)
from lightsync.transports.backends import MemoryBackend
from lightsync.transports.durable import DurableStore


class FakeRemote:
    def __init__(self, devices: list[Device] | None = None) -> None:
        self.devices = devices or []
        self.saved: list[list[Device]] = []

    async def check_availability(self) -> bool:
        return True

    async def fetch_devices(self) -> list[Device]:
        return list(self.devices)

    async def fetch_groups(self) -> list[DeviceGroup]:
        return []

    async def save_devices(self, devices: list[Device]) -> int:
        self.saved.append(list(devices))
        return len(devices)

    async def save_groups(self, groups: list[DeviceGroup]) -> int:
        return len(groups)


def _config(tmp_path: Path, **overrides: object) -> AppConfig:
    values: dict[str, object] = dict(shared_root=tmp_path / "shared", data_dir=tmp_path / "data")
    values.update(overrides)
    return AppConfig(**values)  # type: ignore[arg-type]


def _memory_durable() -> DurableStore:
    return DurableStore(
        MemoryBackend(),
        is_shared=True,
        app_group_identifier="group.test",
        cloud_container="container.test",
    )


@pytest.mark.asyncio
async def test_start_with_defaults_uses_shared_directory(tmp_path: Path) -> None:
    async with Client(_config(tmp_path)) as client:
        status = client.status

        assert SyncTransport.SHARED_STORAGE in status.enabled_transports
        assert status.is_connected_via_shared_storage
        assert not status.is_connected_via_cloud
        assert status.connection_summary == "Synced: Mac App"
        assert "Shared Storage Available: True" in client.sync.storage_info
        assert client.list_devices() == []


@pytest.mark.asyncio
async def test_seeded_devices_are_written_to_shared_directory(tmp_path: Path) -> None:
    async with Client(_config(tmp_path, seed_demo_devices=True)) as client:
        names = [d.name for d in client.list_devices()]
        online = [d.name for d in client.list_devices(include_offline=False)]

    assert names == ["Bedroom Strip", "Kitchen Lights", "Living Room Light"]
    assert "Kitchen Lights" not in online
    assert (tmp_path / "shared" / "group.com.govee.mac").is_dir()

    async with Client(_config(tmp_path)) as reopened:
        assert len(reopened.list_devices()) == 3


@pytest.mark.asyncio
async def test_custom_durable_requires_remote() -> None:
    with pytest.raises(ConfigError):
        Client(AppConfig(), durable=_memory_durable())


@pytest.mark.asyncio
async def test_remote_devices_replace_store_on_start() -> None:
    remote = FakeRemote([Device(id="r1", name="Remote Lamp", model="H6008")])
    client = Client(AppConfig(), durable=_memory_durable(), remote=remote)

    settings = await client.start()

    assert settings == SyncedSettings.default()
    assert client.status.connection_summary == "Synced: iCloud + Mac App"
    assert [d.id for d in client.list_devices()] == ["r1"]
    await client.close()


@pytest.mark.asyncio
async def test_edits_fan_out_to_remote_when_connected() -> None:
    remote = FakeRemote([Device(id="r1", name="Remote Lamp", model="H6008")])
    async with Client(AppConfig(), durable=_memory_durable(), remote=remote) as client:
        await client.set_power("r1", True)
        await client.set_brightness("r1", 30)
        await client.set_color("r1", DeviceColor(1, 2, 3))
        await client.set_color_temperature("r1", 3000)
        await client.batch_update([DeviceUpdate("r1", power_state=False)])

    final = remote.saved[-1][0]
    assert len(remote.saved) == 5
    assert final.power_state is False
    assert final.brightness == 30
    assert final.color == DeviceColor(1, 2, 3, 3000)


@pytest.mark.asyncio
async def test_group_lifecycle_through_client() -> None:
    remote = FakeRemote(
        [
            Device(id="a", name="A", model="H6008"),
            Device(id="b", name="B", model="H6008"),
        ]
    )
    async with Client(AppConfig(), durable=_memory_durable(), remote=remote) as client:
        group = await client.create_group("Porch", ["a", "b"])
        await client.set_group_power(group.id, True)

        assert [g.name for g in client.list_groups()] == ["Porch"]
        assert all(d.power_state for d in client.list_devices())

        await client.delete_group(group.id)
        assert client.list_groups() == []


@pytest.mark.asyncio
async def test_update_settings_disables_remote() -> None:
    async with Client(AppConfig(), durable=_memory_durable(), remote=FakeRemote()) as client:
        await client.update_settings(SyncedSettings(cloud_sync_enabled=False))

        assert not client.status.is_connected_via_cloud
        assert (await client.get_settings()).cloud_sync_enabled is False

        status = await client.refresh()
        assert status.status_message == "Sync completed"
