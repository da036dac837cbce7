"""Load ManagerConfig from reactive_data.yaml / reactive_data.toml.

Collaborators are written as ``module:attr`` import paths and resolved
with importlib.  Keyword overrides take precedence over file values and
may pass callables directly.
"""

from __future__ import annotations

import importlib
import tomllib
from pathlib import Path

import yaml

from reactive_data._errors import ConfigError
from reactive_data.config import ManagerConfig

_CONFIG_NAMES = ("reactive_data.yaml", "reactive_data.yml", "reactive_data.toml")
_SECTION = "reactive_data"
_CALLABLE_KEYS = frozenset({"fetcher", "updater", "fetch_filter", "update_filter"})
_KNOWN_KEYS = _CALLABLE_KEYS | {"collect_events", "max_events", "verbose"}


def load_config(path: Path | str | None = None, **overrides: object) -> ManagerConfig:
    """Build a ManagerConfig from a config file merged with overrides.

    Args:
        path: A config file, or a directory searched for
            ``reactive_data.yaml``, ``reactive_data.yml`` or
            ``reactive_data.toml``.  ``None`` skips the file entirely.
        **overrides: ManagerConfig fields that win over the file.

    Raises:
        ConfigError: Unreadable file, unknown key, or an import path that
            does not resolve to a callable.

    """
    file_config = _read_config(Path(path)) if path is not None else {}
    merged = {**file_config, **overrides}

    unknown = sorted(set(merged) - _KNOWN_KEYS)
    if unknown:
        msg = f"unknown config keys: {', '.join(unknown)}"
        raise ConfigError(msg)

    for key in _CALLABLE_KEYS & merged.keys():
        if isinstance(merged[key], str):
            merged[key] = resolve_import_path(str(merged[key]), field_name=key)

    if "fetcher" not in merged:
        msg = "fetcher is required"
        raise ConfigError(msg)
    return ManagerConfig(**merged)  # type: ignore[arg-type]


def resolve_import_path(spec: str, *, field_name: str = "callable") -> object:
    """Resolve ``package.module:attr`` to the callable it names."""
    module_part, _, attr = spec.partition(":")
    if not module_part or not attr:
        msg = f"{field_name} {spec!r}: expected 'module:attr'"
        raise ConfigError(msg)
    try:
        module = importlib.import_module(module_part)
    except ImportError as exc:
        msg = f"{field_name} {spec!r}: cannot import {module_part!r}"
        raise ConfigError(msg) from exc

    target: object = module
    for part in attr.split("."):
        target = getattr(target, part, None)
        if target is None:
            msg = f"{field_name} {spec!r}: {attr} not found in {module_part}"
            raise ConfigError(msg)
    if not callable(target):
        msg = f"{field_name} {spec!r}: {attr} is not callable"
        raise ConfigError(msg)
    return target


def _read_config(path: Path) -> dict[str, object]:
    """Read a config file, or find one in a directory.  Empty dict if none."""
    if path.is_dir():
        for name in _CONFIG_NAMES:
            candidate = path / name
            if candidate.is_file():
                return _read_config(candidate)
        return {}
    if not path.is_file():
        msg = f"config file not found: {path}"
        raise ConfigError(msg)
    if path.suffix == ".toml":
        return _parse_toml(path)
    return _parse_yaml(path)


def _parse_yaml(path: Path) -> dict[str, object]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError) as exc:
        msg = f"cannot read {path}: {exc}"
        raise ConfigError(msg) from exc
    return _extract_section(data, path)


def _parse_toml(path: Path) -> dict[str, object]:
    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except (OSError, tomllib.TOMLDecodeError) as exc:
        msg = f"cannot read {path}: {exc}"
        raise ConfigError(msg) from exc
    return _extract_section(data, path)


def _extract_section(data: object, path: Path) -> dict[str, object]:
    """Use the ``reactive_data`` section when present, else the top level."""
    if not isinstance(data, dict):
        msg = f"{path}: expected a mapping at top level"
        raise ConfigError(msg)
    section = data.get(_SECTION, data)
    if not isinstance(section, dict):
        msg = f"{path}: [{_SECTION}] must be a mapping"
        raise ConfigError(msg)
    return dict(section)
