"""Config – 12-factor settings and client configuration."""

from resilient_http.config.errors import ConfigError, InvalidSettingValueError, MissingRequiredSettingError
from resilient_http.config.settings import EnvSettingsLoader, Settings, SettingsLoader
from resilient_http.config.client import ClientSettings

__all__ = [
    "ClientSettings",
    "ConfigError",
    "EnvSettingsLoader",
    "InvalidSettingValueError",
    "MissingRequiredSettingError",
    "Settings",
    "SettingsLoader",
]
