"""Configuration loading from YAML with schema validation and env overrides."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

import yaml
from jsonschema import ValidationError

from lightsync.core.codec import load_schema_validator
from lightsync.core.errors import ConfigError
from lightsync.core.model import DEFAULT_APP_GROUP_IDENTIFIER, DEFAULT_CLOUD_CONTAINER

LOGGER = logging.getLogger(__name__)

ENV_SHARED_ROOT = "LIGHTSYNC_SHARED_ROOT"
ENV_REMOTE_URL = "LIGHTSYNC_REMOTE_URL"
ENV_LOG_LEVEL = "LIGHTSYNC_LOG_LEVEL"


class UniqueKeyLoader(yaml.SafeLoader):
    """YAML loader that rejects duplicate mapping keys."""


def _construct_mapping(loader: UniqueKeyLoader, node: yaml.Node, deep: bool = False) -> dict[str, Any]:
    mapping: dict[str, Any] = {}
    for key_node, value_node in node.value:
        key = loader.construct_object(key_node, deep=deep)
        if key in mapping:
            raise ConfigError(f"Duplicate key '{key}' in YAML document")
        mapping[key] = loader.construct_object(value_node, deep=deep)
    return mapping


UniqueKeyLoader.add_constructor(
    yaml.resolver.BaseResolver.DEFAULT_MAPPING_TAG,
    _construct_mapping,
)


def _xdg_data_home() -> Path:
    return Path(os.environ.get("XDG_DATA_HOME", Path.home() / ".local/share"))


def default_config_path() -> Path:
    xdg_config = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
    return xdg_config / "lightsync/config.yaml"


@dataclass(frozen=True)
class AppConfig:
    app_group_identifier: str = DEFAULT_APP_GROUP_IDENTIFIER
    cloud_container: str = DEFAULT_CLOUD_CONTAINER
    shared_root: Path | None = None
    data_dir: Path | None = None
    remote_url: str | None = None
    remote_timeout_s: float = 5.0
    log_level: str = "WARNING"
    seed_demo_devices: bool = False

    @property
    def shared_directory(self) -> Path | None:
        if self.shared_root is None:
            return None
        return self.shared_root / self.app_group_identifier

    @property
    def fallback_directory(self) -> Path:
        base = self.data_dir if self.data_dir is not None else _xdg_data_home()
        return base / "lightsync/defaults"


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Could not read config file {path}: {exc}") from exc

    try:
        loaded = yaml.load(content, Loader=UniqueKeyLoader)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc

    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ConfigError(f"Config file {path} must contain a mapping at root")
    return loaded


def _build_config(doc: dict[str, Any], source: Path) -> AppConfig:
    validator = load_schema_validator("config")
    try:
        validator.validate(doc)
    except ValidationError as exc:
        path = ".".join(str(p) for p in exc.path)
        where = f" ({path})" if path else ""
        raise ConfigError(f"Schema validation failed for {source}{where}: {exc.message}") from exc

    config = AppConfig()
    for key in ("app_group_identifier", "cloud_container", "remote_url", "seed_demo_devices"):
        if key in doc:
            config = replace(config, **{key: doc[key]})
    for key in ("shared_root", "data_dir"):
        if doc.get(key):
            config = replace(config, **{key: Path(doc[key]).expanduser()})
    if "remote_timeout_s" in doc:
        config = replace(config, remote_timeout_s=float(doc["remote_timeout_s"]))
    if "log_level" in doc:
        config = replace(config, log_level=doc["log_level"].upper())
    return config


def _apply_env(config: AppConfig) -> AppConfig:
    shared_root = os.environ.get(ENV_SHARED_ROOT)
    if shared_root:
        config = replace(config, shared_root=Path(shared_root).expanduser())
    remote_url = os.environ.get(ENV_REMOTE_URL)
    if remote_url:
        config = replace(config, remote_url=remote_url)
    log_level = os.environ.get(ENV_LOG_LEVEL)
    if log_level:
        config = replace(config, log_level=log_level.upper())
    return config


def load_config(path: Path | None = None) -> AppConfig:
    """Load configuration from ``path`` or the XDG default location.

    A missing file yields defaults. Environment variables override file values.
    """
    source = path or default_config_path()
    if source.exists():
        config = _build_config(_read_yaml(source), source)
        LOGGER.debug("Loaded configuration from %s", source)
    else:
        if path is not None:
            raise ConfigError(f"Config file {path} does not exist")
        config = AppConfig()
    return _apply_env(config)
