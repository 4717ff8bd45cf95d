"""Logging setup for applications embedding the risk library."""
import logging

from tradex_risk.config.settings import LoggingSettings
from tradex_risk.exceptions import ConfigurationError


def configure_logging(settings: LoggingSettings | None = None) -> None:
    """Configure root logging from LoggingSettings.

    Args:
        settings: Logging settings; read from TRADEX_LOG_* env vars when None.

    Raises:
        ConfigurationError: If the configured level is not a logging level name.
    """
    settings = settings or LoggingSettings()
    level = logging.getLevelName(settings.level.upper())
    if not isinstance(level, int):
        raise ConfigurationError(f"Unknown log level: {settings.level}")

    logging.basicConfig(
        level=level,
        format=settings.format,
        datefmt=settings.datefmt,
    )
