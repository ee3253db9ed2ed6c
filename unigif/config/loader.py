"""Configuration loading and logging setup."""

import os
import sys
from pathlib import Path

from dotenv import load_dotenv
from loguru import logger

from unigif.config.schema import DEFAULT_BOT_USERNAME, Config, TelegramConfig

# Plain variable names used by earlier deployments of the bot
_LEGACY_ENV = {
    "TELEGRAM_TOKEN": "token",
    "BOT_USERNAME": "bot_username",
}


def _truthy(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def load_config(env_file: str | Path | None = ".env", **overrides) -> Config:
    """Load config from the environment (and *env_file* if it exists).

    UNIGIF_* variables win. Legacy names (TELEGRAM_TOKEN, BOT_USERNAME,
    DEBUG_LOG) only fill values the prefixed variables left at their defaults.
    """
    if env_file and Path(env_file).is_file():
        load_dotenv(env_file, override=False)

    config = Config(**overrides)
    defaults = TelegramConfig()

    for env_name, field_name in _LEGACY_ENV.items():
        value = os.environ.get(env_name)
        if value and getattr(config.telegram, field_name) == getattr(defaults, field_name):
            setattr(config.telegram, field_name, value)

    debug = os.environ.get("DEBUG_LOG")
    if debug is not None and not config.debug_log:
        config.debug_log = _truthy(debug)

    if config.telegram.bot_username == DEFAULT_BOT_USERNAME:
        logger.warning(f"Bot username not configured, using default {DEFAULT_BOT_USERNAME}")

    return config


def setup_logging(debug: bool = False) -> None:
    """Install a single stderr sink, DEBUG when debug logging is on."""
    logger.remove()
    logger.add(
        sys.stderr,
        level="DEBUG" if debug else "INFO",
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <7}</level> | {message}",
    )
