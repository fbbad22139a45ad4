"""Durable store adapter shared with the host application."""

from __future__ import annotations

import logging

from lightsync.core import codec
from lightsync.core.config import AppConfig
from lightsync.core.errors import DecodingError
from lightsync.core.model import Device, DeviceGroup, SyncedSettings
from lightsync.transports.backends import DirectoryBackend, KeyValueBackend, directory_is_usable

LOGGER = logging.getLogger(__name__)

DEVICES_KEY = "com.govee.smartlights.devices"
GROUPS_KEY = "com.govee.smartlights.groups"
SETTINGS_KEY = "com.govee.smartlights.settings"


class DurableStore:
    """Encode and decode devices, groups, and settings to a key-value backend.

    Absent keys read as empty collections or default settings. Corrupt
    device or group data raises ``DecodingError``; corrupt settings are
    logged and replaced by defaults so startup never fails on them.
    """

    def __init__(
        self,
        backend: KeyValueBackend,
        *,
        is_shared: bool,
        app_group_identifier: str,
        cloud_container: str,
    ) -> None:
        self.backend = backend
        self.is_shared = is_shared
        self.app_group_identifier = app_group_identifier
        self.cloud_container = cloud_container

    @classmethod
    def open(cls, config: AppConfig) -> DurableStore:
        shared = config.shared_directory
        if shared is not None and directory_is_usable(shared):
            LOGGER.info("Using shared storage namespace '%s' at %s", config.app_group_identifier, shared)
            backend = DirectoryBackend(shared)
            is_shared = True
        else:
            if shared is None:
                LOGGER.warning("Shared storage not configured, falling back to process-local storage")
            else:
                LOGGER.warning("Shared storage %s not available, falling back to process-local storage", shared)
            backend = DirectoryBackend(config.fallback_directory)
            is_shared = False
        return cls(
            backend,
            is_shared=is_shared,
            app_group_identifier=config.app_group_identifier,
            cloud_container=config.cloud_container,
        )

    def storage_info(self) -> str:
        using = "shared storage" if self.is_shared else "process-local storage"
        return "\n".join(
            [
                "Storage Info:",
                f"- Shared Storage Available: {self.is_shared}",
                f"- Shared Storage ID: {self.app_group_identifier}",
                f"- Remote Container: {self.cloud_container}",
                f"- Using: {using} ({self.backend.location})",
            ]
        )

    def load_devices(self) -> list[Device]:
        data = self.backend.get(DEVICES_KEY)
        if data is None:
            LOGGER.debug("No devices found in storage, returning empty list")
            return []
        try:
            devices = codec.decode_devices(data)
        except DecodingError:
            LOGGER.error("Failed to decode devices from %s", self.backend.location)
            raise
        LOGGER.debug("Loaded %d device(s) from storage", len(devices))
        return devices

    def save_devices(self, devices: list[Device]) -> None:
        self.backend.set(DEVICES_KEY, codec.encode_devices(devices))
        LOGGER.debug("Saved %d device(s) to storage", len(devices))

    def load_groups(self) -> list[DeviceGroup]:
        data = self.backend.get(GROUPS_KEY)
        if data is None:
            LOGGER.debug("No groups found in storage, returning empty list")
            return []
        try:
            groups = codec.decode_groups(data)
        except DecodingError:
            LOGGER.error("Failed to decode groups from %s", self.backend.location)
            raise
        LOGGER.debug("Loaded %d group(s) from storage", len(groups))
        return groups

    def save_groups(self, groups: list[DeviceGroup]) -> None:
        self.backend.set(GROUPS_KEY, codec.encode_groups(groups))
        LOGGER.debug("Saved %d group(s) to storage", len(groups))

    def load_settings(self) -> SyncedSettings:
        data = self.backend.get(SETTINGS_KEY)
        if data is None:
            LOGGER.debug("No settings found, returning defaults")
            return SyncedSettings.default()
        try:
            return codec.decode_settings(data)
        except DecodingError as exc:
            LOGGER.error("Failed to decode settings, returning defaults: %s", exc)
            return SyncedSettings.default()

    def save_settings(self, settings: SyncedSettings) -> None:
        self.backend.set(SETTINGS_KEY, codec.encode_settings(settings))
        LOGGER.debug("Saved settings to storage")

    def clear(self) -> None:
        for key in (DEVICES_KEY, GROUPS_KEY, SETTINGS_KEY):
            self.backend.delete(key)
        LOGGER.info("Cleared all local storage")
