"""
SIMNET Path Resolution

Single source of truth for filesystem paths.
"""

from pathlib import Path

# simnet/utils/paths.py -> parents[2] = repo root
REPO_ROOT = Path(__file__).resolve().parents[2]

CONFIG_DIR = REPO_ROOT / "config"
