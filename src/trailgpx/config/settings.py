from __future__ import annotations

import configparser
import io
import os
import sys
from dataclasses import dataclass
from pathlib import Path


_TRUE_VALUES = {"1", "true", "yes", "y", "on"}
_FALSE_VALUES = {"0", "false", "no", "n", "off"}


@dataclass(frozen=True)
class AppConfig:
    force_haversine: bool = False
    smooth_elevation: bool = False


def _default_config_dir() -> Path:
    if os.name == "nt":
        base = Path(os.getenv("APPDATA", Path.home() / "AppData" / "Roaming"))
    elif sys.platform == "darwin":
        base = Path.home() / "Library" / "Application Support"
    else:
        base = Path(os.getenv("XDG_CONFIG_HOME", Path.home() / ".config"))
    return base / "trailgpx"


def resolve_config_path(explicit: Path | None = None) -> Path:
    if explicit is not None:
        return explicit.expanduser()
    env_path = os.getenv("TRAILGPX_CONFIG_PATH")
    if env_path:
        return Path(env_path).expanduser()
    return _default_config_dir() / "config.ini"


def parse_bool(value: str | None, default: bool = False) -> bool:
    """Parse a boolean-like setting with a fallback default."""
    if value is None:
        return default
    normalized = str(value).strip().lower()
    if normalized in _TRUE_VALUES:
        return True
    if normalized in _FALSE_VALUES:
        return False
    return default


def load_app_config(
    config_path: Path | None = None, include_env: bool = True
) -> AppConfig:
    path = resolve_config_path(config_path)
    parser = configparser.ConfigParser()
    if path.is_file():
        parser.read(path)
    section = parser["default"] if parser.has_section("default") else {}

    force_haversine = parse_bool(section.get("force_haversine"), False)
    smooth_elevation = parse_bool(section.get("smooth_elevation"), False)

    if include_env:
        force_haversine = parse_bool(
            os.getenv("TRAILGPX_FORCE_HAVERSINE"), force_haversine
        )
        smooth_elevation = parse_bool(
            os.getenv("TRAILGPX_SMOOTH_ELEVATION"), smooth_elevation
        )

    return AppConfig(
        force_haversine=force_haversine,
        smooth_elevation=smooth_elevation,
    )


def save_app_config(config: AppConfig, config_path: Path | None = None) -> Path:
    path = resolve_config_path(config_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    parser = configparser.ConfigParser()
    parser["default"] = {
        "force_haversine": "true" if config.force_haversine else "false",
        "smooth_elevation": "true" if config.smooth_elevation else "false",
    }
    buffer = io.StringIO()
    parser.write(buffer)
    path.write_text(buffer.getvalue(), encoding="utf-8")
    return path
