"""
pvz_config -- typed settings for the pickup-point kernel.

``load_settings()`` is the single way to obtain settings at runtime.  The
kernel never imports this package; ``pvz_services.bootstrap`` passes the
values it needs into ``pvz_kernel.db.engine``.
"""

from pvz_config.loader import ConfigError, load_settings
from pvz_config.settings import AppSettings, DatabaseSettings, LoggingSettings

__all__ = [
    "AppSettings",
    "ConfigError",
    "DatabaseSettings",
    "LoggingSettings",
    "load_settings",
]
