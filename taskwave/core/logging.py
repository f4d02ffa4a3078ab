"""Loguru sink configuration."""

import sys

from loguru import logger

from taskwave.core.config import Settings, get_settings

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "<level>{message}</level>"
)


def configure_logging(settings: Settings | None = None) -> None:
    """
    Replace loguru's default handler with taskwave's sinks.

    A stderr sink is always added; a daily rotating file sink is added when
    ``settings.log_dir`` is set.
    """
    settings = settings or get_settings()
    level = "DEBUG" if settings.debug else settings.log_level

    logger.remove()
    logger.add(sys.stderr, level=level, format=LOG_FORMAT, colorize=True)

    if settings.log_dir is not None:
        settings.log_dir.mkdir(parents=True, exist_ok=True)
        logger.add(
            str(settings.log_dir / "taskwave_{time:YYYY-MM-DD}.log"),
            rotation="1 day",
            retention="7 days",
            level=level,
            format=LOG_FORMAT,
        )
