"""Flat record mapping for the remote record store.

Record fields are flat scalars: booleans become 0/1 and list fields are
comma-joined strings. Values read back from the store are strings, so the
readers below parse integers explicitly.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass

from lightsync.core.codec import format_timestamp, parse_timestamp
from lightsync.core.errors import DecodingError
from lightsync.core.model import (
    MAX_BRIGHTNESS,
    MAX_CHANNEL,
    MAX_KELVIN,
    MIN_BRIGHTNESS,
    MIN_CHANNEL,
    MIN_KELVIN,
    Device,
    DeviceColor,
    DeviceGroup,
    utc_now,
)

DEVICE_RECORD_TYPE = "GoveeDevice"
GROUP_RECORD_TYPE = "DeviceGroup"

_LIST_SEPARATOR = ","
_DEFAULT_CAPABILITIES = "color,brightness"

FieldValue = str | int


@dataclass(frozen=True)
class Record:
    record_type: str
    record_name: str
    fields: dict[str, FieldValue]


def device_record_name(device_id: str) -> str:
    return f"device-{device_id}"


def group_record_name(group_id: str) -> str:
    return f"group-{group_id}"


def join_list(values: tuple[str, ...] | list[str]) -> str:
    return _LIST_SEPARATOR.join(values)


def split_list(value: str) -> tuple[str, ...]:
    if value == "":
        return ()
    return tuple(value.split(_LIST_SEPARATOR))


def _text(fields: Mapping[str, object], key: str) -> str | None:
    value = fields.get(key)
    if value is None:
        return None
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return str(value)


def _required(fields: Mapping[str, object], key: str) -> str:
    value = _text(fields, key)
    if value is None:
        raise DecodingError(f"Record is missing required field '{key}'")
    return value


def _int(fields: Mapping[str, object], key: str, default: int | None) -> int | None:
    value = _text(fields, key)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError as exc:
        raise DecodingError(f"Record field '{key}' is not an integer: {value!r}") from exc


def _bounded(fields: Mapping[str, object], key: str, default: int | None, low: int, high: int) -> int | None:
    value = _int(fields, key, default)
    if value is not None and not low <= value <= high:
        raise DecodingError(f"Record field '{key}' is out of range {low}-{high}: {value}")
    return value


def _flag(fields: Mapping[str, object], key: str) -> bool:
    return _int(fields, key, 0) == 1


def device_to_record(device: Device) -> Record:
    fields: dict[str, FieldValue] = {
        "id": device.id,
        "name": device.name,
        "model": device.model,
        "isOnline": 1 if device.is_online else 0,
        "powerState": 1 if device.power_state else 0,
        "brightness": device.brightness,
        "colorRed": device.color.red,
        "colorGreen": device.color.green,
        "colorBlue": device.color.blue,
        "capabilities": join_list(device.capabilities),
        "lastSeen": format_timestamp(device.last_seen),
    }
    if device.color.kelvin is not None:
        fields["colorKelvin"] = device.color.kelvin
    if device.group_id is not None:
        fields["groupId"] = device.group_id
    return Record(DEVICE_RECORD_TYPE, device_record_name(device.id), fields)


def record_to_device(fields: Mapping[str, object]) -> Device:
    color = DeviceColor(
        red=_bounded(fields, "colorRed", 255, MIN_CHANNEL, MAX_CHANNEL),
        green=_bounded(fields, "colorGreen", 255, MIN_CHANNEL, MAX_CHANNEL),
        blue=_bounded(fields, "colorBlue", 255, MIN_CHANNEL, MAX_CHANNEL),
        kelvin=_bounded(fields, "colorKelvin", None, MIN_KELVIN, MAX_KELVIN),
    )
    capabilities = _text(fields, "capabilities")
    last_seen = _text(fields, "lastSeen")
    return Device(
        id=_required(fields, "id"),
        name=_required(fields, "name"),
        model=_required(fields, "model"),
        is_online=_flag(fields, "isOnline"),
        power_state=_flag(fields, "powerState"),
        brightness=_bounded(fields, "brightness", 100, MIN_BRIGHTNESS, MAX_BRIGHTNESS),
        color=color,
        capabilities=split_list(_DEFAULT_CAPABILITIES if capabilities is None else capabilities),
        last_seen=parse_timestamp(last_seen) if last_seen else utc_now(),
        group_id=_text(fields, "groupId"),
    )


def group_to_record(group: DeviceGroup) -> Record:
    fields: dict[str, FieldValue] = {
        "id": group.id,
        "name": group.name,
        "deviceIds": join_list(group.device_ids),
        "createdAt": format_timestamp(group.created_at),
    }
    if group.icon is not None:
        fields["icon"] = group.icon
    return Record(GROUP_RECORD_TYPE, group_record_name(group.id), fields)


def record_to_group(fields: Mapping[str, object]) -> DeviceGroup:
    created_at = _text(fields, "createdAt")
    return DeviceGroup(
        id=_required(fields, "id"),
        name=_required(fields, "name"),
        device_ids=split_list(_text(fields, "deviceIds") or ""),
        icon=_text(fields, "icon"),
        created_at=parse_timestamp(created_at) if created_at else utc_now(),
    )
