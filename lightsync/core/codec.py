"""JSON wire codec for the records shared with the host application.

Field names are camelCase and timestamps are ISO-8601 strings so that the
host process can decode the same bytes. Optional fields are omitted when
unset. Every decoded record is validated against the packaged JSON Schema
before it is turned into a model value.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from functools import lru_cache
from importlib import resources
from typing import Any

from jsonschema import ValidationError, validators

from lightsync.core.errors import DecodingError, EncodingError
from lightsync.core.model import Device, DeviceColor, DeviceGroup, SyncedSettings

_TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


@lru_cache(maxsize=None)
def load_schema_validator(name: str) -> Any:
    schema_text = resources.files("lightsync.schemas").joinpath(f"{name}.schema.json").read_text(
        encoding="utf-8"
    )
    schema = json.loads(schema_text)
    validator_cls = validators.validator_for(schema)
    validator_cls.check_schema(schema)
    return validator_cls(schema)


def _validate(doc: Any, schema_name: str, *, context: str) -> None:
    try:
        load_schema_validator(schema_name).validate(doc)
    except ValidationError as exc:
        path = ".".join(str(p) for p in exc.path)
        where = f" ({path})" if path else ""
        raise DecodingError(f"{context}{where}: {exc.message}") from exc


def format_timestamp(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime(_TIMESTAMP_FORMAT)


def parse_timestamp(value: str) -> datetime:
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError as exc:
        raise DecodingError(f"Invalid timestamp '{value}'") from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def color_to_dict(color: DeviceColor) -> dict[str, Any]:
    doc: dict[str, Any] = {"red": color.red, "green": color.green, "blue": color.blue}
    if color.kelvin is not None:
        doc["kelvin"] = color.kelvin
    return doc


def color_from_dict(doc: dict[str, Any]) -> DeviceColor:
    return DeviceColor(
        red=doc["red"],
        green=doc["green"],
        blue=doc["blue"],
        kelvin=doc.get("kelvin"),
    )


def device_to_dict(device: Device) -> dict[str, Any]:
    doc: dict[str, Any] = {
        "id": device.id,
        "name": device.name,
        "model": device.model,
        "isOnline": device.is_online,
        "powerState": device.power_state,
        "brightness": device.brightness,
        "color": color_to_dict(device.color),
        "capabilities": list(device.capabilities),
        "lastSeen": format_timestamp(device.last_seen),
    }
    if device.group_id is not None:
        doc["groupId"] = device.group_id
    return doc


def device_from_dict(doc: Any) -> Device:
    _validate(doc, "device", context="Invalid device record")
    return Device(
        id=doc["id"],
        name=doc["name"],
        model=doc["model"],
        is_online=doc["isOnline"],
        power_state=doc["powerState"],
        brightness=doc["brightness"],
        color=color_from_dict(doc["color"]),
        capabilities=tuple(doc["capabilities"]),
        last_seen=parse_timestamp(doc["lastSeen"]),
        group_id=doc.get("groupId"),
    )


def group_to_dict(group: DeviceGroup) -> dict[str, Any]:
    doc: dict[str, Any] = {
        "id": group.id,
        "name": group.name,
        "deviceIds": list(group.device_ids),
        "createdAt": format_timestamp(group.created_at),
    }
    if group.icon is not None:
        doc["icon"] = group.icon
    return doc


def group_from_dict(doc: Any) -> DeviceGroup:
    _validate(doc, "group", context="Invalid group record")
    return DeviceGroup(
        id=doc["id"],
        name=doc["name"],
        device_ids=tuple(doc["deviceIds"]),
        icon=doc.get("icon"),
        created_at=parse_timestamp(doc["createdAt"]),
    )


def settings_to_dict(settings: SyncedSettings) -> dict[str, Any]:
    doc: dict[str, Any] = {
        "cloudSyncEnabled": settings.cloud_sync_enabled,
        "localNetworkEnabled": settings.local_network_enabled,
        "bluetoothEnabled": settings.bluetooth_enabled,
        "appGroupsEnabled": settings.app_groups_enabled,
        "autoRefreshInterval": settings.auto_refresh_interval,
        "showOfflineDevices": settings.show_offline_devices,
        "cloudKitContainer": settings.cloud_container,
        "appGroupIdentifier": settings.app_group_identifier,
    }
    if settings.last_sync_time is not None:
        doc["lastSyncTime"] = format_timestamp(settings.last_sync_time)
    return doc


def settings_from_dict(doc: Any) -> SyncedSettings:
    _validate(doc, "settings", context="Invalid settings record")
    last_sync = doc.get("lastSyncTime")
    return SyncedSettings(
        cloud_sync_enabled=doc["cloudSyncEnabled"],
        local_network_enabled=doc["localNetworkEnabled"],
        bluetooth_enabled=doc["bluetoothEnabled"],
        app_groups_enabled=doc["appGroupsEnabled"],
        auto_refresh_interval=doc["autoRefreshInterval"],
        show_offline_devices=doc["showOfflineDevices"],
        last_sync_time=parse_timestamp(last_sync) if last_sync else None,
        cloud_container=doc["cloudKitContainer"],
        app_group_identifier=doc["appGroupIdentifier"],
    )


def _dumps(doc: Any) -> bytes:
    try:
        return json.dumps(doc, indent=2, allow_nan=False).encode("utf-8")
    except (TypeError, ValueError) as exc:
        raise EncodingError(exc) from exc


def _loads(data: bytes) -> Any:
    try:
        return json.loads(data.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise DecodingError(exc) from exc


def _loads_list(data: bytes, *, kind: str) -> list[Any]:
    loaded = _loads(data)
    if not isinstance(loaded, list):
        raise DecodingError(f"Stored {kind} must be a JSON array")
    return loaded


def encode_devices(devices: list[Device]) -> bytes:
    return _dumps([device_to_dict(d) for d in devices])


def decode_devices(data: bytes) -> list[Device]:
    return [device_from_dict(doc) for doc in _loads_list(data, kind="devices")]


def encode_groups(groups: list[DeviceGroup]) -> bytes:
    return _dumps([group_to_dict(g) for g in groups])


def decode_groups(data: bytes) -> list[DeviceGroup]:
    return [group_from_dict(doc) for doc in _loads_list(data, kind="groups")]


def encode_settings(settings: SyncedSettings) -> bytes:
    return _dumps(settings_to_dict(settings))


def decode_settings(data: bytes) -> SyncedSettings:
    return settings_from_dict(_loads(data))
