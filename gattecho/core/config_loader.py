"""Configuration loading and validation for the emulated peripheral."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from importlib import resources
from importlib.resources.abc import Traversable
from pathlib import Path
from typing import Any

import yaml
from bleak.uuids import normalize_uuid_str
from jsonschema import ValidationError, validators

from gattecho.core.errors import ConfigLoadError, ConfigValidationError
from gattecho.core.model import FirmwareVersion, PeripheralConfig

LOGGER = logging.getLogger(__name__)


class UniqueKeyLoader(yaml.SafeLoader):
    """YAML loader that rejects duplicate mapping keys."""


def _construct_mapping(loader: UniqueKeyLoader, node: yaml.Node, deep: bool = False) -> dict[str, Any]:
    mapping: dict[str, Any] = {}
    for key_node, value_node in node.value:
        key = loader.construct_object(key_node, deep=deep)
        if key in mapping:
            raise ConfigValidationError(f"Duplicate key '{key}' in YAML document")
        mapping[key] = loader.construct_object(value_node, deep=deep)
    return mapping


UniqueKeyLoader.add_constructor(
    yaml.resolver.BaseResolver.DEFAULT_MAPPING_TAG,
    _construct_mapping,
)


@dataclass(frozen=True)
class LoadedConfig:
    config: PeripheralConfig
    warnings: tuple[str, ...]


def _load_schema_validator() -> Any:
    schema_text = resources.files("gattecho.schemas").joinpath("config.schema.json").read_text(
        encoding="utf-8"
    )
    schema = json.loads(schema_text)
    validator_cls = validators.validator_for(schema)
    validator_cls.check_schema(schema)
    return validator_cls(schema)


def user_config_path() -> Path:
    xdg_config = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
    return xdg_config / "gattecho/config.yaml"


def _read_yaml(path: Path | Traversable) -> dict[str, Any]:
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigLoadError(f"Could not read config file {path}: {exc}") from exc

    try:
        loaded = yaml.load(content, Loader=UniqueKeyLoader)
    except yaml.YAMLError as exc:
        raise ConfigValidationError(f"Invalid YAML in {path}: {exc}") from exc

    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ConfigValidationError(f"Config file {path} must contain a mapping at root")
    return loaded


def _validate(doc: dict[str, Any], source: Path | Traversable) -> None:
    try:
        _load_schema_validator().validate(doc)
    except ValidationError as exc:
        path = ".".join(str(p) for p in exc.path)
        where = f" ({path})" if path else ""
        raise ConfigValidationError(f"Schema validation failed for {source}{where}: {exc.message}") from exc


def _normalize_uuid(value: str, *, context: str) -> str:
    try:
        return normalize_uuid_str(value.strip())
    except ValueError as exc:
        raise ConfigValidationError(
            f"{context} must be a 16-bit, 32-bit, or 128-bit UUID string"
        ) from exc


def _firmware_version(value: Any) -> FirmwareVersion:
    try:
        if isinstance(value, dict):
            version = FirmwareVersion(value["major"], value["minor"], value["patch"])
        else:
            version = FirmwareVersion.parse(str(value))
    except ValueError as exc:
        raise ConfigValidationError(f"firmware_version: {exc}") from exc
    if version.is_unset:
        raise ConfigValidationError("firmware_version 0.0.0 is reserved and cannot be advertised")
    return version


def _build_config(doc: dict[str, Any]) -> PeripheralConfig:
    service_uuid = _normalize_uuid(doc["service_uuid"], context="service_uuid")
    characteristic_uuid = _normalize_uuid(doc["characteristic_uuid"], context="characteristic_uuid")
    if service_uuid == characteristic_uuid:
        raise ConfigValidationError("service_uuid and characteristic_uuid must differ")
    return PeripheralConfig(
        device_name=doc["device_name"],
        firmware_version=_firmware_version(doc["firmware_version"]),
        service_uuid=service_uuid,
        characteristic_uuid=characteristic_uuid,
        retry_delay_s=float(doc["retry_delay_s"]),
        event_queue_size=int(doc["event_queue_size"]),
    )


def load_config(path: Path | None = None) -> LoadedConfig:
    """Merge the packaged defaults with ``path`` or the user config file."""
    default_path = resources.files("gattecho.config").joinpath("default.yaml")
    doc = _read_yaml(default_path)
    _validate(doc, default_path)

    warnings: list[str] = []
    override_path = path if path is not None else user_config_path()
    if path is not None and not path.is_file():
        raise ConfigLoadError(f"Config file {path} does not exist")

    if override_path.is_file():
        override = _read_yaml(override_path)
        _validate(override, override_path)
        for key in sorted(override):
            if override[key] != doc.get(key):
                warning = f"Config '{key}' overridden by {override_path}"
                LOGGER.info(warning)
                warnings.append(warning)
        doc.update(override)

    return LoadedConfig(config=_build_config(doc), warnings=tuple(warnings))
