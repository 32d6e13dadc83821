"""Dependency graph construction and traversal.

Edges come from two places:

- **explicit**: import targets found by a lexical scanner, normalised to
  application-relative paths when they point at a known file;
- **inferred**: naming conventions of layered back ends
  (``XController -> XService -> XRepository``).

Both are persisted in ``dependencies`` and mirrored into ``dependents``.
:meth:`DependencyGraph.get_dependents` additionally layers
:func:`infer_dependents` on top at query time; that layer is never written
back into the graph, so ``get_dependencies`` of an inferred dependent does
not necessarily contain the original file.
"""

from __future__ import annotations

import logging
import posixpath
import re
import time
from collections import deque
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from . import config
from .cache import TTLCache
from .errors import FileAccessError, SourceUnavailableError
from .models import FileInsight
from .scanners import Scanner, scanner_for
from .sources import FileSource

logger = logging.getLogger(__name__)

_PROBE_EXTENSIONS: Tuple[str, ...] = (
    ".ts", ".tsx", ".js", ".jsx", ".mjs", ".vue", ".svelte", ".py", ".cs", ".java",
)


# ===================================================================
# Naming-convention inference
# ===================================================================

_LAYER_PLURALS: Dict[str, str] = {
    "controller": "controllers",
    "service": "services",
    "repository": "repositories",
    "model": "models",
    "entity": "entities",
}


def _cased(original: str, word: str) -> str:
    if original.isupper():
        return word.upper()
    if original[0].isupper():
        return word[0].upper() + word[1:]
    return word.lower()


def _swap_layer(path: str, keywords: Tuple[str, ...], replacement: str) -> str:
    """Rename the architectural layer of *path*.

    Keywords are replaced case-insensitively inside the filename, keeping the
    original casing.  Directory segments are renamed only when they are
    exactly a layer folder (``Services/`` -> ``Controllers/``).
    """
    parts = re.split(r"([/\\])", path)
    pattern = re.compile("|".join(keywords), re.IGNORECASE)
    plural = _LAYER_PLURALS.get(replacement.lower(), replacement + "s")
    for i, segment in enumerate(parts[:-1]):
        low = segment.lower()
        for kw in keywords:
            if low == kw:
                parts[i] = _cased(segment, replacement)
            elif low == _LAYER_PLURALS.get(kw):
                parts[i] = _cased(segment, plural)
    parts[-1] = pattern.sub(lambda m: _cased(m.group(0), replacement), parts[-1])
    return "".join(parts)


def _filename(path: str) -> str:
    return re.split(r"[/\\]", path)[-1]


def infer_dependencies(path: str) -> List[str]:
    """Layer below *path* by naming convention.

    ``PaymentController.cs`` depends on ``PaymentService.cs``, which in turn
    depends on ``PaymentRepository.cs``.
    """
    inferred: List[str] = []
    name = _filename(path)
    if re.search(r".+controller", name, re.IGNORECASE):
        inferred.append(_swap_layer(path, ("controller",), "Service"))
    if re.search(r".+service", name, re.IGNORECASE):
        inferred.append(_swap_layer(path, ("service",), "Repository"))
    return [p for p in dict.fromkeys(inferred) if p != path]


def infer_dependents(path: str) -> List[str]:
    """Layer above *path* by naming convention, computed on demand."""
    inferred: List[str] = []
    lower = path.lower()
    if "model" in lower or "entity" in lower:
        inferred.append(_swap_layer(path, ("model", "entity"), "Service"))
        inferred.append(_swap_layer(path, ("model", "entity"), "Controller"))
    if "service" in lower and "interface" not in lower:
        inferred.append(_swap_layer(path, ("service",), "Controller"))
    if "repository" in lower:
        inferred.append(_swap_layer(path, ("repository",), "Service"))
    return [p for p in dict.fromkeys(inferred) if p != path]


# ===================================================================
# Graph
# ===================================================================

@dataclass
class DependencyGraph:
    """Outbound (``dependencies``) and inbound (``dependents``) edges by path."""
    dependencies: Dict[str, List[str]] = field(default_factory=dict)
    dependents: Dict[str, List[str]] = field(default_factory=dict)
    insights: Dict[str, FileInsight] = field(default_factory=dict)
    built_at: float = field(default_factory=time.time)

    @property
    def node_count(self) -> int:
        nodes: Set[str] = set(self.dependencies)
        nodes.update(self.dependents)
        return len(nodes)

    @property
    def edge_count(self) -> int:
        return sum(len(targets) for targets in self.dependencies.values())

    def get_dependencies(self, path: str) -> List[str]:
        return list(self.dependencies.get(path, []))

    def get_dependents(self, path: str) -> List[str]:
        """Persisted dependents of *path* followed by inferred ones."""
        persisted = self.dependents.get(path, [])
        return list(dict.fromkeys([*persisted, *infer_dependents(path)]))

    def get_file_insight(self, path: str) -> Optional[FileInsight]:
        return self.insights.get(path)

    def get_transitive_dependencies(self, path: str, max_depth: int = 2) -> List[Tuple[str, int]]:
        return self._walk(path, max_depth, self.get_dependencies)

    def get_transitive_dependents(self, path: str, max_depth: int = 2) -> List[Tuple[str, int]]:
        return self._walk(path, max_depth, self.get_dependents)

    @staticmethod
    def _walk(origin: str, max_depth: int, neighbours) -> List[Tuple[str, int]]:
        seen = {origin}
        queue = deque([(origin, 0)])
        found: List[Tuple[str, int]] = []
        while queue:
            current, depth = queue.popleft()
            if depth >= max_depth:
                continue
            for nxt in neighbours(current):
                if nxt not in seen:
                    seen.add(nxt)
                    found.append((nxt, depth + 1))
                    queue.append((nxt, depth + 1))
        return found


# ===================================================================
# Builder
# ===================================================================

@dataclass
class _FileScan:
    path: str
    insight: FileInsight
    targets: List[str]


class DependencyGraphBuilder:
    """Scan files of an application and assemble a :class:`DependencyGraph`.

    Files are scanned on a thread pool; workers only return their results and
    the calling thread merges them into the two mappings.  Finished graphs are
    cached per application and change set for ``cache.ttl`` seconds.
    """

    def __init__(
        self,
        source: FileSource,
        cache: Optional[TTLCache[DependencyGraph]] = None,
        scanners: Optional[Sequence[Scanner]] = None,
        max_workers: int = config.SCAN_WORKERS,
    ) -> None:
        self.source = source
        self.cache: TTLCache[DependencyGraph] = (
            cache if cache is not None else TTLCache(config.GRAPH_CACHE_TTL)
        )
        self.scanners = scanners
        self.max_workers = max(1, max_workers)

    def build(
        self,
        app_id: str,
        paths: Iterable[str],
        known_files: Optional[Iterable[str]] = None,
    ) -> DependencyGraph:
        unique_paths = list(dict.fromkeys(paths))
        key = (app_id, tuple(sorted(unique_paths)))

        def compute() -> DependencyGraph:
            logger.info("Building dependency graph for %s (%d files)", app_id, len(unique_paths))
            graph = self._build(app_id, unique_paths, set(known_files or ()))
            logger.info(
                "Graph built: %d nodes, %d edges, %d file insights",
                graph.node_count, graph.edge_count, len(graph.insights),
            )
            return graph

        return self.cache.get_or_compute(key, compute)

    def invalidate(self, app_id: Optional[str] = None) -> None:
        """Drop cached graphs for *app_id*, or every cached graph."""
        if app_id is None:
            self.cache.clear()
            return
        for key in self.cache.keys():
            if key[0] == app_id:
                self.cache.invalidate(key)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _build(self, app_id: str, paths: List[str], known: Set[str]) -> DependencyGraph:
        scans = self._scan_all(app_id, paths, known)

        dependencies: Dict[str, List[str]] = {}
        dependents: Dict[str, List[str]] = {}
        insights: Dict[str, FileInsight] = {}
        for scan in scans:
            insights[scan.path] = scan.insight
            dependencies[scan.path] = scan.targets
            for target in scan.targets:
                inbound = dependents.setdefault(target, [])
                if scan.path not in inbound:
                    inbound.append(scan.path)

        return DependencyGraph(dependencies=dependencies, dependents=dependents, insights=insights)

    def _scan_all(self, app_id: str, paths: List[str], known: Set[str]) -> List[_FileScan]:
        if len(paths) <= 1 or self.max_workers == 1:
            return [self._scan_one(app_id, p, known) for p in paths]
        workers = min(self.max_workers, len(paths))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="scan") as pool:
            return list(pool.map(lambda p: self._scan_one(app_id, p, known), paths))

    def _scan_one(self, app_id: str, path: str, known: Set[str]) -> _FileScan:
        insight = self.scan_file(app_id, path)
        explicit = [resolve_import_target(path, src, known) for src in insight.import_sources()]
        targets = [t for t in dict.fromkeys([*explicit, *infer_dependencies(path)]) if t != path]
        return _FileScan(path=path, insight=insight, targets=targets)

    def scan_file(self, app_id: str, path: str) -> FileInsight:
        """Read and scan one file; access problems yield an empty insight."""
        scanner = scanner_for(path, self.scanners)
        if scanner is None:
            logger.debug("No scanner for %s, naming inference only", path)
            return FileInsight()
        try:
            content = self.source.read_file(app_id, path)
        except (FileAccessError, SourceUnavailableError) as exc:
            logger.warning("Skipping scan of %s: %s", path, exc)
            return FileInsight()

        logger.debug("Scanning %s (%d chars) with %s", path, len(content), type(scanner).__name__)
        try:
            return scanner.scan(path, content)
        except Exception as exc:
            logger.warning("Failed to scan %s: %s", path, exc)
            return FileInsight()


# ===================================================================
# Import target resolution
# ===================================================================

def resolve_import_target(importer: str, source: str, known: Set[str]) -> str:
    """Map an import specifier seen in *importer* to an application path.

    Relative specifiers are joined onto the importer's directory.  When
    *known* files are given, common extensions and index files are probed;
    an unmatched specifier is returned as normalised (or as written for bare
    package names).
    """
    if source.startswith("/"):
        target = posixpath.normpath(source.lstrip("/"))
    elif source.startswith("."):
        base = posixpath.dirname(importer.replace("\\", "/"))
        target = posixpath.normpath(posixpath.join(base, source))
    elif source.startswith("@/"):
        target = "src/" + source[2:]
    else:
        target = source

    if not known:
        return target
    for candidate in _candidates(target, source):
        if candidate in known:
            return candidate
    return target


def _candidates(target: str, source: str) -> List[str]:
    candidates = [target]
    candidates += [target + ext for ext in _PROBE_EXTENSIONS]
    candidates += [f"{target}/index{ext}" for ext in _PROBE_EXTENSIONS[:5]]
    candidates.append(f"{target}/__init__.py")
    if not source.startswith((".", "/", "@")) and "." in source and "/" not in source:
        dotted = source.replace(".", "/")
        candidates += [dotted + ".py", f"{dotted}/__init__.py"]
    return candidates
