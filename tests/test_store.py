from __future__ import annotations

import logging
from datetime import datetime, timezone

import pytest

from lightsync.core.model import Device, DeviceColor, DeviceGroup
from lightsync.core.store import ChangeKind, DeviceStore, StoreChange

SEEN = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _device(device_id: str, **overrides: object) -> Device:
    values: dict[str, object] = dict(id=device_id, name=device_id, model="H6159", last_seen=SEEN)
    values.update(overrides)
    return Device(**values)  # type: ignore[arg-type]


def test_listeners_receive_changes_until_unsubscribed() -> None:
    store = DeviceStore()
    seen: list[StoreChange] = []
    unsubscribe = store.subscribe(seen.append)

    store.upsert_device(_device("d1"))
    store.update_device_power("d1", True)
    unsubscribe()
    store.remove_device("d1")

    assert seen == [
        StoreChange(ChangeKind.DEVICE_UPDATED, ("d1",)),
        StoreChange(ChangeKind.DEVICE_UPDATED, ("d1",)),
    ]


def test_failing_listener_does_not_block_mutation(caplog: pytest.LogCaptureFixture) -> None:
    store = DeviceStore()

    def _boom(change: StoreChange) -> None:
        raise RuntimeError("listener broke")

    store.subscribe(_boom)
    with caplog.at_level(logging.ERROR):
        store.upsert_device(_device("d1"))

    assert store.device("d1") is not None
    assert "Store listener failed" in caplog.text


def test_update_of_missing_device_is_noop() -> None:
    store = DeviceStore()
    seen: list[StoreChange] = []
    store.subscribe(seen.append)

    assert store.update_device_power("missing", True) is False
    assert store.update_device_color_temperature("missing", 3000) is False
    assert seen == []


def test_updates_stamp_last_seen_and_clamp_brightness() -> None:
    store = DeviceStore(devices=[_device("d1")])

    store.update_device_brightness("d1", 150)

    device = store.device("d1")
    assert device is not None
    assert device.brightness == 100
    assert device.last_seen > SEEN


def test_color_temperature_overlays_kelvin_on_current_rgb() -> None:
    store = DeviceStore(devices=[_device("d1", color=DeviceColor(10, 20, 30))])

    store.update_device_color_temperature("d1", 5000)

    device = store.device("d1")
    assert device is not None
    assert device.color == DeviceColor(10, 20, 30, 5000)


def test_remove_group_clears_back_references() -> None:
    store = DeviceStore(
        devices=[_device("d1", group_id="g1"), _device("d2", group_id="g2")],
        groups=[
            DeviceGroup(id="g1", name="One", device_ids=("d1",), created_at=SEEN),
            DeviceGroup(id="g2", name="Two", device_ids=("d2",), created_at=SEEN),
        ],
    )

    assert store.remove_group("g1") is True
    assert store.remove_group("g1") is False

    assert store.device("d1").group_id is None  # type: ignore[union-attr]
    assert store.device("d2").group_id == "g2"  # type: ignore[union-attr]
    assert [g.id for g in store.groups] == ["g2"]


def test_group_membership_is_kept_on_both_sides() -> None:
    store = DeviceStore(
        devices=[_device("d1"), _device("d2")],
        groups=[DeviceGroup(id="g1", name="One", created_at=SEEN)],
    )

    assert store.add_device_to_group("d1", "g1")
    assert store.add_device_to_group("d1", "g1")
    store.add_device_to_group("d2", "g1")
    store.remove_device_from_group("d2", "g1")

    assert store.group("g1").device_ids == ("d1",)  # type: ignore[union-attr]
    assert [d.id for d in store.devices_in_group("g1")] == ["d1"]
    assert store.device("d2").group_id is None  # type: ignore[union-attr]
    assert store.add_device_to_group("d1", "missing") is False


def test_counts_and_online_split() -> None:
    store = DeviceStore(devices=[_device("d1"), _device("d2", is_online=False)])

    assert store.device_count == 2
    assert store.online_device_count == 1
    assert [d.id for d in store.offline_devices] == ["d2"]

    store.clear()
    assert store.device_count == 0
    assert store.group_count == 0
