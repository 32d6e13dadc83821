"""Fuzzy resolution of requested paths against an application's files.

Change lists handed to the analyzer often drift from the real layout:
renamed folders, different casing, typos.  :class:`FuzzyPathResolver`
tries an ordered cascade of strategies and stops at the first that yields
a single candidate:

1. exact path
2. case-insensitive path
3. unique filename
4. unique filename, case-insensitive
5. unique trailing path suffix (2 to 4 segments)
6. closest filename by edit distance
7. not found, with suggestions

When the application cannot be listed at all, paths come back unverified
and the engine analyzes them by naming convention alone.
"""

from __future__ import annotations

import logging
import re
from typing import Iterable, List, Optional, Sequence, Tuple

from . import config
from .cache import TTLCache
from .errors import SourceUnavailableError
from .models import MatchStrategy, ResolvedFile
from .sources import FileSource

logger = logging.getLogger(__name__)

_SEPARATORS = re.compile(r"[/\\]+")


def levenshtein_distance(a: str, b: str) -> int:
    """Classic edit distance (insert, delete, substitute all cost 1)."""
    if a == b:
        return 0
    if len(a) < len(b):
        a, b = b, a
    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, 1):
        current = [i]
        for j, cb in enumerate(b, 1):
            if ca == cb:
                current.append(previous[j - 1])
            else:
                current.append(1 + min(previous[j], current[j - 1], previous[j - 1]))
        previous = current
    return previous[-1]


def split_path(path: str) -> List[str]:
    return [seg for seg in _SEPARATORS.split(path) if seg]


def basename(path: str) -> str:
    segments = split_path(path)
    return segments[-1] if segments else ""


class FuzzyPathResolver:
    """Resolve requested paths for an application through a strategy cascade."""

    def __init__(
        self,
        source: FileSource,
        cache: Optional[TTLCache[List[str]]] = None,
        max_edit_distance: int = config.MAX_EDIT_DISTANCE,
        max_suggestions: int = config.MAX_SUGGESTIONS,
    ) -> None:
        self.source = source
        self.cache: TTLCache[List[str]] = cache if cache is not None else TTLCache(config.FILE_CACHE_TTL)
        self.max_edit_distance = max_edit_distance
        self.max_suggestions = max_suggestions

    # ------------------------------------------------------------------
    # File listing
    # ------------------------------------------------------------------

    def available_files(self, app_id: str) -> Optional[List[str]]:
        """Files of *app_id*, or ``None`` when the listing cannot be read."""
        def list_files() -> List[str]:
            files = list(self.source.list_files(app_id))
            logger.debug("Cached %d files for %s", len(files), app_id)
            return files

        try:
            return self.cache.get_or_compute(app_id, list_files)
        except SourceUnavailableError as exc:
            logger.warning("File listing unavailable, paths stay unverified: %s", exc)
            return None

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def resolve_many(self, app_id: str, requested_paths: Iterable[str]) -> List[ResolvedFile]:
        return [self.resolve(app_id, p) for p in requested_paths]

    def resolve(self, app_id: str, requested_path: str) -> ResolvedFile:
        files = self.available_files(app_id)
        if files is None:
            normalized = "/".join(split_path(requested_path))
            return ResolvedFile(requested_path, normalized, False, MatchStrategy.UNVERIFIED)
        result = self.match(requested_path, files)
        if result.exists and result.match_strategy is not MatchStrategy.EXACT:
            logger.info(
                "Resolved %s -> %s (%s)",
                requested_path, result.resolved_path, result.match_strategy.value,
            )
        elif not result.exists:
            logger.info("No match for %s", requested_path)
        return result

    def match(self, requested_path: str, files: Sequence[str]) -> ResolvedFile:
        """Run the strategy cascade for *requested_path* over *files*."""
        if requested_path in files:
            return self._found(requested_path, requested_path, MatchStrategy.EXACT)

        lowered = requested_path.lower()
        for candidate in files:
            if candidate.lower() == lowered:
                return self._found(requested_path, candidate, MatchStrategy.CASE_INSENSITIVE)

        filename = basename(requested_path)
        if filename:
            exact_names = [f for f in files if basename(f) == filename]
            if len(exact_names) == 1:
                return self._found(requested_path, exact_names[0], MatchStrategy.FILENAME_ONLY)

            folded = filename.lower()
            folded_names = [f for f in files if basename(f).lower() == folded]
            if len(folded_names) == 1:
                return self._found(
                    requested_path, folded_names[0], MatchStrategy.FILENAME_CASE_INSENSITIVE,
                )

        suffix_match = self._match_suffix(requested_path, files)
        if suffix_match is not None:
            return self._found(requested_path, suffix_match, MatchStrategy.PARTIAL_PATH)

        if filename:
            closest = self._closest_by_distance(filename, files)
            if closest is not None:
                path, distance = closest
                return ResolvedFile(
                    requested_path=requested_path,
                    resolved_path=path,
                    exists=True,
                    match_strategy=MatchStrategy.EDIT_DISTANCE,
                    edit_distance=distance,
                )

        return ResolvedFile(
            requested_path=requested_path,
            resolved_path=requested_path,
            exists=False,
            match_strategy=MatchStrategy.NOT_FOUND,
            suggestions=tuple(self.suggestions(requested_path, files)),
        )

    def suggestions(self, requested_path: str, files: Sequence[str]) -> List[str]:
        """Files whose name shares a four-character prefix with the request."""
        filename = basename(requested_path)
        if not filename:
            return []
        prefix = filename[:4]
        found: List[str] = []
        for candidate in files:
            name = basename(candidate)
            if prefix in name or name[:4] in filename:
                found.append(candidate)
                if len(found) >= self.max_suggestions:
                    break
        return found

    # ------------------------------------------------------------------
    # Strategy helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _found(requested: str, resolved: str, strategy: MatchStrategy) -> ResolvedFile:
        return ResolvedFile(
            requested_path=requested,
            resolved_path=resolved,
            exists=True,
            match_strategy=strategy,
        )

    @staticmethod
    def _match_suffix(requested_path: str, files: Sequence[str]) -> Optional[str]:
        segments = split_path(requested_path)
        normalized = [f.replace("\\", "/") for f in files]
        for length in range(2, min(len(segments), 4) + 1):
            suffix = "/".join(segments[-length:])
            folded_suffix = suffix.lower()
            matches = [
                original
                for original, norm in zip(files, normalized)
                if norm.endswith(suffix) or norm.lower().endswith(folded_suffix)
            ]
            if len(matches) == 1:
                return matches[0]
        return None

    def _closest_by_distance(self, filename: str, files: Sequence[str]) -> Optional[Tuple[str, int]]:
        target = filename.lower()
        best_path: Optional[str] = None
        best_distance = self.max_edit_distance + 1
        for candidate in files:
            distance = levenshtein_distance(target, basename(candidate).lower())
            if distance > self.max_edit_distance:
                continue
            # ties go to the lexicographically smallest path
            if distance < best_distance or (distance == best_distance and candidate < best_path):
                best_path, best_distance = candidate, distance
        if best_path is None:
            return None
        return best_path, best_distance
