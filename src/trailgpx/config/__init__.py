from .settings import (
    AppConfig,
    load_app_config,
    parse_bool,
    resolve_config_path,
    save_app_config,
)

__all__ = [
    "AppConfig",
    "load_app_config",
    "parse_bool",
    "resolve_config_path",
    "save_app_config",
]
