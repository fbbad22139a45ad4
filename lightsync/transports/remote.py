"""Remote record store adapter backed by Redis hashes.

Each record lives at ``<container>:<record type>:<record name>`` as a flat
hash. The remote store is a relay between installations, never the source of
truth: reads fall back to the durable store and writes always land in the
durable store first.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from enum import Enum
from typing import Any, TypeVar

import redis.asyncio as redis
from redis import exceptions as redis_exceptions

from lightsync.core.config import AppConfig
from lightsync.core.errors import LightsyncError
from lightsync.core.model import Device, DeviceGroup
from lightsync.transports.records import (
    DEVICE_RECORD_TYPE,
    GROUP_RECORD_TYPE,
    Record,
    device_to_record,
    group_to_record,
    record_to_device,
    record_to_group,
)
from lightsync.transports.durable import DurableStore

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


class AccountStatus(str, Enum):
    AVAILABLE = "available"
    NO_ACCOUNT = "noAccount"
    RESTRICTED = "restricted"
    COULD_NOT_DETERMINE = "couldNotDetermine"
    TEMPORARILY_UNAVAILABLE = "temporarilyUnavailable"


class RemoteRecordStore:
    def __init__(
        self,
        client: redis.Redis | None,
        durable: DurableStore,
        *,
        container: str,
    ) -> None:
        self._client = client
        self.durable = durable
        self.container = container

    @classmethod
    def from_config(cls, config: AppConfig, durable: DurableStore) -> RemoteRecordStore:
        client = None
        if config.remote_url:
            client = redis.from_url(
                config.remote_url,
                decode_responses=True,
                socket_timeout=config.remote_timeout_s,
                socket_connect_timeout=config.remote_timeout_s,
            )
        return cls(client, durable, container=config.cloud_container)

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()

    def _key(self, record_type: str, record_name: str) -> str:
        return f"{self.container}:{record_type}:{record_name}"

    async def account_status(self) -> AccountStatus:
        if self._client is None:
            LOGGER.warning("No remote store configured")
            return AccountStatus.NO_ACCOUNT
        try:
            await self._client.ping()
        except redis_exceptions.AuthenticationError as exc:
            LOGGER.warning("Remote store rejected credentials: %s", exc)
            return AccountStatus.NO_ACCOUNT
        except redis_exceptions.NoPermissionError as exc:
            LOGGER.warning("Remote store access restricted: %s", exc)
            return AccountStatus.RESTRICTED
        except (redis_exceptions.ConnectionError, redis_exceptions.TimeoutError) as exc:
            LOGGER.warning("Remote store temporarily unavailable: %s", exc)
            return AccountStatus.TEMPORARILY_UNAVAILABLE
        except redis_exceptions.RedisError as exc:
            LOGGER.warning("Could not determine remote store status: %s", exc)
            return AccountStatus.COULD_NOT_DETERMINE
        return AccountStatus.AVAILABLE

    async def check_availability(self) -> bool:
        return await self.account_status() is AccountStatus.AVAILABLE

    async def _query(self, record_type: str) -> list[tuple[str, dict[str, Any]]]:
        if self._client is None:
            raise redis_exceptions.ConnectionError("No remote store configured")
        pattern = self._key(record_type, "*")
        keys = sorted([key async for key in self._client.scan_iter(match=pattern, count=100)])
        results: list[tuple[str, dict[str, Any]]] = []
        for key in keys:
            fields = await self._client.hgetall(key)
            if fields:
                results.append((key, fields))
        return results

    async def _fetch(
        self,
        record_type: str,
        convert: Callable[[Mapping[str, object]], T],
        fallback: Callable[[], list[T]],
    ) -> list[T]:
        try:
            matches = await self._query(record_type)
        except (redis_exceptions.RedisError, OSError) as exc:
            LOGGER.error("Remote fetch of %s records failed, falling back to local storage: %s", record_type, exc)
            return fallback()

        items: list[T] = []
        for key, fields in matches:
            try:
                items.append(convert(fields))
            except LightsyncError as exc:
                LOGGER.warning("Skipping malformed %s record %s: %s", record_type, key, exc)
        LOGGER.info("Fetched %d %s record(s) from remote store", len(items), record_type)
        return items

    async def fetch_devices(self) -> list[Device]:
        return await self._fetch(DEVICE_RECORD_TYPE, record_to_device, self.durable.load_devices)

    async def fetch_groups(self) -> list[DeviceGroup]:
        return await self._fetch(GROUP_RECORD_TYPE, record_to_group, self.durable.load_groups)

    async def _upsert(self, record_type: str, records: list[Record]) -> int:
        """Replace all records of a type; returns the number written."""
        if self._client is None:
            LOGGER.warning("No remote store configured, %s data saved to local storage only", record_type)
            return 0

        wanted = {self._key(r.record_type, r.record_name) for r in records}
        try:
            stale = [
                key
                async for key in self._client.scan_iter(match=self._key(record_type, "*"), count=100)
                if key not in wanted
            ]
            async with self._client.pipeline(transaction=False) as pipe:
                for record in records:
                    key = self._key(record.record_type, record.record_name)
                    pipe.delete(key)
                    pipe.hset(key, mapping=record.fields)
                if stale:
                    pipe.delete(*stale)
                results = await pipe.execute(raise_on_error=False)
        except (redis_exceptions.RedisError, OSError) as exc:
            LOGGER.warning("Remote save of %s records failed, data saved to local storage only: %s", record_type, exc)
            return 0

        success_count = 0
        for record, result in zip(records, results[1 : 2 * len(records) : 2]):
            if isinstance(result, Exception):
                LOGGER.warning("Failed to save record %s: %s", record.record_name, result)
            else:
                success_count += 1
        LOGGER.info("Saved %d/%d %s record(s) to remote store", success_count, len(records), record_type)
        return success_count

    async def save_devices(self, devices: list[Device]) -> int:
        self.durable.save_devices(devices)
        return await self._upsert(DEVICE_RECORD_TYPE, [device_to_record(d) for d in devices])

    async def save_groups(self, groups: list[DeviceGroup]) -> int:
        self.durable.save_groups(groups)
        return await self._upsert(GROUP_RECORD_TYPE, [group_to_record(g) for g in groups])
