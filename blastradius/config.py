"""Default locations and tunables for blast-radius analysis.

Every value can be overridden from the environment; persistent overrides
live in ``config.toml`` under :data:`BASE_DIR` (see ``config_manager``).
"""

from __future__ import annotations

import os
from pathlib import Path

BASE_DIR = Path(os.environ.get("BLASTRADIUS_HOME", str(Path.home() / ".blastradius"))).expanduser()
CONFIG_FILE = BASE_DIR / "config.toml"

# Applications are mounted one directory per application id.
APPS_ROOT = Path(os.environ.get("BLASTRADIUS_APPS_ROOT", "/mnt/apps")).expanduser()

FILE_CACHE_TTL = float(os.environ.get("BLASTRADIUS_FILE_CACHE_TTL", "300"))
GRAPH_CACHE_TTL = float(os.environ.get("BLASTRADIUS_GRAPH_CACHE_TTL", "300"))

MAX_FILE_BYTES = int(os.environ.get("BLASTRADIUS_MAX_FILE_BYTES", str(1024 * 1024)))
MAX_EDIT_DISTANCE = 5
MAX_SUGGESTIONS = 5
SCAN_WORKERS = int(os.environ.get("BLASTRADIUS_SCAN_WORKERS", "8"))
DEFAULT_DEPTH = 2

SUPPORTED_EXTENSIONS = {
    ".cs", ".java",
    ".js", ".jsx", ".ts", ".tsx", ".mjs", ".cjs",
    ".vue", ".svelte",
    ".py",
}

SKIP_DIRS = {
    ".git", ".vs", ".idea", ".vscode", "node_modules", "bin", "obj",
    "dist", "build", "coverage", ".venv", "venv", "__pycache__",
    ".pytest_cache", ".mypy_cache", ".tox", "site-packages",
}
