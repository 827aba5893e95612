"""Configuration loading and validation for hikctl."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field, replace
from importlib import resources
from pathlib import Path
from typing import Any

import yaml
from jsonschema import ValidationError, validators

from hikctl.core.download import DEFAULT_POLL_INTERVAL_S
from hikctl.core.errors import ConfigLoadError, ConfigValidationError
from hikctl.core.model import DeviceProfile
from hikctl.native.hcnetsdk import SDK_PATH_ENV

DEFAULT_PORT = 8000
LOGGER = logging.getLogger(__name__)


class UniqueKeyLoader(yaml.SafeLoader):
    """YAML loader that rejects duplicate mapping keys."""


# Keep yes/no/on/off as strings; they turn up as passwords and device names.
UniqueKeyLoader.yaml_implicit_resolvers = {
    first_char: [(tag, regexp) for tag, regexp in mappings if tag != "tag:yaml.org,2002:bool"]
    for first_char, mappings in yaml.SafeLoader.yaml_implicit_resolvers.items()
}


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
class Settings:
    sdk_path: str | None = None
    poll_interval_s: float = DEFAULT_POLL_INTERVAL_S
    output_dir: Path = Path(".")
    devices: dict[str, DeviceProfile] = field(default_factory=dict)
    warnings: tuple[str, ...] = ()

    def device(self, name: str) -> DeviceProfile:
        profile = self.devices.get(name)
        if profile is None:
            available = ", ".join(sorted(self.devices)) or "<none>"
            raise ConfigValidationError(f"Unknown device '{name}'. Configured: {available}")
        return profile


def default_config_path() -> Path:
    xdg_config = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
    return xdg_config / "hikctl" / "config.yaml"


def _load_schema_validator() -> Any:
    schema_text = resources.files("hikctl.schemas").joinpath("config.schema.json").read_text(
        encoding="utf-8"
    )
    schema = json.loads(schema_text)
    validator_cls = validators.validator_for(schema)
    validator_cls.check_schema(schema)
    return validator_cls(schema)


def _read_yaml(path: Path) -> dict[str, Any]:
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


def _build_settings(doc: dict[str, Any], source: Path) -> Settings:
    validator = _load_schema_validator()
    try:
        validator.validate(doc)
    except ValidationError as exc:
        path = ".".join(str(p) for p in exc.path)
        where = f" ({path})" if path else ""
        raise ConfigValidationError(f"Schema validation failed for {source}{where}: {exc.message}") from exc

    devices = {
        name: DeviceProfile(
            name=name,
            host=spec["host"].strip(),
            port=int(spec.get("port", DEFAULT_PORT)),
            username=spec["username"],
            password=str(spec["password"]),
        )
        for name, spec in sorted(doc.get("devices", {}).items())
    }

    return Settings(
        sdk_path=doc.get("sdk", {}).get("library_path"),
        poll_interval_s=float(doc.get("download", {}).get("poll_interval_s", DEFAULT_POLL_INTERVAL_S)),
        output_dir=Path(doc.get("output_dir", ".")).expanduser(),
        devices=devices,
    )


def load_settings(path: Path | None = None) -> Settings:
    source = path or default_config_path()
    if path is None and not source.exists():
        settings = Settings()
    else:
        settings = _build_settings(_read_yaml(source), source)

    warnings: list[str] = []
    env_path = os.environ.get(SDK_PATH_ENV)
    if env_path:
        if settings.sdk_path and settings.sdk_path != env_path:
            warning = f"{SDK_PATH_ENV} overrides sdk.library_path from {source}"
            LOGGER.warning(warning)
            warnings.append(warning)
        settings = replace(settings, sdk_path=env_path)

    return replace(settings, warnings=tuple(warnings))
