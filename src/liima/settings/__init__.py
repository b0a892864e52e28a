from .settings import DEFAULT_CONFIG_PATH, Settings, get_settings, settings, settings_var

__all__ = [
    "DEFAULT_CONFIG_PATH",
    "Settings",
    "get_settings",
    "settings",
    "settings_var",
]
