"""
SIMNET Logging Configuration

Every module logs through `logging.getLogger(__name__)`, so all records land
under the 'simnet' logger. setup_logging() attaches the handlers once, with
level, format and log file taken from config/logging.yaml unless given.

Usage:
    from simnet.utils import setup_logging

    setup_logging()                      # config/logging.yaml
    setup_logging(logging.DEBUG)         # watch layout steps settle
"""

import logging
import sys
from pathlib import Path
from typing import Any, Dict, Optional, Union

from .paths import REPO_ROOT


ROOT_LOGGER = "simnet"
DEFAULT_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _logging_config() -> Dict[str, Any]:
    # Imported here: simnet.config itself imports simnet.utils
    from simnet.config import get_optional_config
    return get_optional_config("logging")


def resolve_level(level: Union[int, str, None], default: int = logging.INFO) -> int:
    """Accept a logging constant or a level name ('debug', 'INFO')."""
    if level is None:
        return default
    if isinstance(level, int):
        return level
    value = logging.getLevelName(str(level).strip().upper())
    if not isinstance(value, int):
        raise ValueError(f"Unknown log level: {level!r}")
    return value


def setup_logging(
    level: Union[int, str, None] = None,
    log_file: Optional[Path] = None,
    format_string: Optional[str] = None,
) -> logging.Logger:
    """
    Configure the 'simnet' logger.

    Args:
        level: Level or level name; defaults to config/logging.yaml, then INFO
        log_file: Optional file for log output; a relative path in the
            config is taken from the repo root
        format_string: Record format; defaults to config, then DEFAULT_FORMAT

    Returns:
        The configured 'simnet' logger
    """
    config = _logging_config()
    level = resolve_level(level if level is not None else config.get("level"))
    format_string = format_string or config.get("format") or DEFAULT_FORMAT
    if log_file is None and config.get("log_file"):
        log_file = REPO_ROOT / config["log_file"]

    formatter = logging.Formatter(format_string, datefmt=DATE_FORMAT)

    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(level)

    # Replace handlers from an earlier call
    for handler in logger.handlers:
        handler.close()
    logger.handlers = []

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.debug(f"Logging initialized at {logging.getLevelName(level)} level")
    return logger


def get_logger(name: str) -> logging.Logger:
    """Logger under 'simnet' ('pipeline' -> 'simnet.pipeline')."""
    if not name.startswith(ROOT_LOGGER):
        name = f"{ROOT_LOGGER}.{name}"
    return logging.getLogger(name)
