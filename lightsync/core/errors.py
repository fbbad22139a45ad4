"""Domain-specific errors for lightsync."""

from __future__ import annotations


class LightsyncError(Exception):
    """Base error for lightsync."""


class ConfigError(LightsyncError):
    """Raised when the configuration file does not conform to schema."""


class SharedStorageUnavailableError(LightsyncError):
    """Raised when the durable key-value backend cannot be read or written."""

    def __init__(self, message: str = "Shared storage is not available. Check the shared root or use the local fallback.") -> None:
        super().__init__(message)


class RemoteUnavailableError(LightsyncError):
    """Raised when the remote record store cannot be reached."""

    def __init__(self, message: str = "Remote store is not available. Check network connection and account.") -> None:
        super().__init__(message)


class NetworkError(LightsyncError):
    """Raised when a remote call fails at the network layer."""

    def __init__(self, cause: BaseException) -> None:
        super().__init__(f"Network error: {cause}")
        self.cause = cause


class EncodingError(LightsyncError):
    """Raised when a value cannot be serialized for storage."""

    def __init__(self, cause: BaseException) -> None:
        super().__init__(f"Failed to encode data: {cause}")
        self.cause = cause


class DecodingError(LightsyncError):
    """Raised when stored or remote data cannot be decoded into a model value."""

    def __init__(self, cause: BaseException | str) -> None:
        super().__init__(f"Failed to decode data: {cause}")
        self.cause = cause


class DeviceNotFoundError(LightsyncError):
    """Raised when an operation names a device that is not in the store."""

    def __init__(self, device_id: str) -> None:
        super().__init__(f"Device not found: {device_id}")
        self.device_id = device_id


class GroupNotFoundError(LightsyncError):
    """Raised when an operation names a group that is not in the store."""

    def __init__(self, group_id: str) -> None:
        super().__init__(f"Group not found: {group_id}")
        self.group_id = group_id


class InvalidInputError(LightsyncError):
    """Raised when a request fails validation before anything changes."""

    def __init__(self, message: str) -> None:
        super().__init__(f"Invalid input: {message}")
        self.message = message


class UnauthorizedError(LightsyncError):
    """Raised when the remote store refuses access."""

    def __init__(self) -> None:
        super().__init__("Unauthorized access. Check permissions.")
