"""TOML-backed settings for the blast-radius analyzer.

``~/.blastradius/config.toml`` (or ``$BLASTRADIUS_HOME/config.toml``)
may contain::

    [sources]
    apps_root = "/mnt/apps"
    max_file_bytes = 1048576

    [cache]
    file_ttl = 300
    graph_ttl = 300

    [analysis]
    default_depth = 2
    max_edit_distance = 5
    scan_workers = 8

    [risk]
    per_component = 5
    integration_cap = 50

Anything missing falls back to the defaults in :mod:`blastradius.config`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import toml

from . import config
from .scoring import RiskWeights

logger = logging.getLogger(__name__)

SECTIONS = ("sources", "cache", "analysis", "risk")


@dataclass
class Settings:
    apps_root: Path = field(default_factory=lambda: config.APPS_ROOT)
    max_file_bytes: int = config.MAX_FILE_BYTES
    file_cache_ttl: float = config.FILE_CACHE_TTL
    graph_cache_ttl: float = config.GRAPH_CACHE_TTL
    default_depth: int = config.DEFAULT_DEPTH
    max_edit_distance: int = config.MAX_EDIT_DISTANCE
    scan_workers: int = config.SCAN_WORKERS
    risk: RiskWeights = field(default_factory=RiskWeights)

    def to_dict(self) -> Dict[str, Dict[str, Any]]:
        return {
            "sources": {"apps_root": str(self.apps_root), "max_file_bytes": self.max_file_bytes},
            "cache": {"file_ttl": self.file_cache_ttl, "graph_ttl": self.graph_cache_ttl},
            "analysis": {
                "default_depth": self.default_depth,
                "max_edit_distance": self.max_edit_distance,
                "scan_workers": self.scan_workers,
            },
            "risk": self.risk.to_dict(),
        }


def load_full_config(path: Optional[Path] = None) -> Dict[str, Any]:
    """Load the entire TOML config (all sections); empty when absent or broken."""
    path = path or config.CONFIG_FILE
    if not path.exists():
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            return toml.load(f)
    except (OSError, toml.TomlDecodeError) as exc:
        logger.warning("Ignoring unreadable config %s: %s", path, exc)
        return {}


def _save_full_config(data: Dict[str, Any], path: Optional[Path] = None) -> bool:
    path = path or config.CONFIG_FILE
    path.parent.mkdir(parents=True, exist_ok=True)
    try:
        with open(path, "w", encoding="utf-8") as f:
            toml.dump(data, f)
        return True
    except OSError as exc:
        logger.error("Could not write config %s: %s", path, exc)
        return False


def load_settings(path: Optional[Path] = None) -> Settings:
    raw = load_full_config(path)
    sources = raw.get("sources", {})
    cache = raw.get("cache", {})
    analysis = raw.get("analysis", {})
    defaults = Settings()
    try:
        return Settings(
            apps_root=Path(sources.get("apps_root", defaults.apps_root)).expanduser(),
            max_file_bytes=int(sources.get("max_file_bytes", defaults.max_file_bytes)),
            file_cache_ttl=float(cache.get("file_ttl", defaults.file_cache_ttl)),
            graph_cache_ttl=float(cache.get("graph_ttl", defaults.graph_cache_ttl)),
            default_depth=int(analysis.get("default_depth", defaults.default_depth)),
            max_edit_distance=int(analysis.get("max_edit_distance", defaults.max_edit_distance)),
            scan_workers=int(analysis.get("scan_workers", defaults.scan_workers)),
            risk=RiskWeights.from_mapping(raw.get("risk", {})),
        )
    except (TypeError, ValueError) as exc:
        logger.warning("Invalid value in config, using defaults: %s", exc)
        return defaults


def _coerce(value: str) -> Any:
    for cast in (int, float):
        try:
            return cast(value)
        except ValueError:
            continue
    if value.lower() in ("true", "false"):
        return value.lower() == "true"
    return value


def save_setting(section: str, key: str, value: str, path: Optional[Path] = None) -> bool:
    """Persist one ``[section] key = value`` pair, preserving the rest of the file."""
    if section not in SECTIONS:
        raise ValueError(f"Unknown config section '{section}'. Expected one of: {', '.join(SECTIONS)}")
    data = load_full_config(path)
    data.setdefault(section, {})[key] = _coerce(value)
    return _save_full_config(data, path)
