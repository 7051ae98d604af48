"""
SIMNET Utilities

Common utilities used across SIMNET modules.
"""

from .logging import setup_logging, get_logger, resolve_level
from .paths import REPO_ROOT, CONFIG_DIR

__all__ = [
    "setup_logging",
    "get_logger",
    "resolve_level",
    "REPO_ROOT",
    "CONFIG_DIR",
]
