from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

import yaml


class SiteConfigError(RuntimeError):
    pass


@dataclass(frozen=True)
class SiteConfig:
    data_dir: Path = Path("wiki_data")
    admin_password: str = "change-me"
    host: str = "127.0.0.1"
    port: int = 0
    copy_reset_ms: int = 2000
    max_dropdown_depth: int = 64
    open_browser: bool = True
    source: str | None = None


def global_config_path() -> Path:
    override = os.environ.get("PLUGIN_WIKI_CONFIG")
    if override:
        return Path(override).expanduser()
    root = os.environ.get("XDG_CONFIG_HOME")
    if root:
        base = Path(root)
    else:
        base = Path.home() / ".config"
    return base / "plugin-wiki" / "config.yaml"


def load_site_config(path: Path | None = None) -> SiteConfig:
    config_path = path if path is not None else global_config_path()
    data = _load_yaml_mapping(config_path)
    if not data:
        return SiteConfig()
    return _parse_site_config(data, source=str(config_path))


def _load_yaml_mapping(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        loaded = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise SiteConfigError(f"Invalid YAML at {path}: {exc}") from exc

    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise SiteConfigError(f"Expected mapping YAML at {path}")
    return dict(loaded)


def _parse_site_config(raw: Mapping[str, Any], *, source: str) -> SiteConfig:
    known = {
        "data_dir",
        "admin_password",
        "host",
        "port",
        "copy_reset_ms",
        "max_dropdown_depth",
        "open_browser",
    }
    unknown = sorted(str(key) for key in raw if key not in known)
    if unknown:
        raise SiteConfigError(f"Unknown config keys in {source}: {', '.join(unknown)}")

    defaults = SiteConfig()
    data_dir = _parse_optional_str(raw.get("data_dir"), None, source=source, key="data_dir")
    return replace(
        defaults,
        data_dir=Path(data_dir).expanduser() if data_dir is not None else defaults.data_dir,
        admin_password=_parse_optional_str(
            raw.get("admin_password"),
            defaults.admin_password,
            source=source,
            key="admin_password",
        )
        or defaults.admin_password,
        host=_parse_optional_str(raw.get("host"), defaults.host, source=source, key="host") or defaults.host,
        port=_parse_int(raw.get("port"), defaults.port, source=source, key="port", minimum=0, maximum=65535),
        copy_reset_ms=_parse_int(
            raw.get("copy_reset_ms"),
            defaults.copy_reset_ms,
            source=source,
            key="copy_reset_ms",
            minimum=0,
        ),
        max_dropdown_depth=_parse_int(
            raw.get("max_dropdown_depth"),
            defaults.max_dropdown_depth,
            source=source,
            key="max_dropdown_depth",
            minimum=1,
        ),
        open_browser=_parse_bool(raw.get("open_browser"), defaults.open_browser, source=source, key="open_browser"),
        source=source,
    )


def _parse_optional_str(
    value: object,
    fallback: str | None,
    *,
    source: str,
    key: str,
) -> str | None:
    if value is None:
        return fallback
    if not isinstance(value, str) or not value.strip():
        raise SiteConfigError(f"{key} must be a non-empty string in {source}")
    return value


def _parse_int(
    value: object,
    fallback: int,
    *,
    source: str,
    key: str,
    minimum: int,
    maximum: int | None = None,
) -> int:
    if value is None:
        return fallback
    # bool is an int subclass; reject it explicitly.
    if isinstance(value, bool) or not isinstance(value, int):
        raise SiteConfigError(f"{key} must be an integer in {source}")
    if value < minimum or (maximum is not None and value > maximum):
        raise SiteConfigError(f"{key} is out of range in {source}")
    return value


def _parse_bool(value: object, fallback: bool, *, source: str, key: str) -> bool:
    if value is None:
        return fallback
    if not isinstance(value, bool):
        raise SiteConfigError(f"{key} must be true or false in {source}")
    return value
