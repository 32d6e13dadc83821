"""Blast-radius analysis: who is affected when these files change.

Pipeline::

    resolve -> build graph -> propagate (BFS over dependents)
            -> classify integrations / tests -> score -> recommend
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from .cache import TTLCache
from .config_manager import Settings
from .errors import InvalidRequestError
from .graph import DependencyGraph, DependencyGraphBuilder
from .models import (
    AffectedComponent,
    BlastRadiusResult,
    FileDependencyReport,
    ImpactSummary,
    IntegrationFinding,
    Recommendation,
    ResolvedFile,
    RiskAssessment,
    TestFinding,
)
from .resolver import FuzzyPathResolver
from .scoring import INTEGRATION_RISK, RiskWeights, calculate_risk
from .sources import FileSource, MountedFileSource

logger = logging.getLogger(__name__)

# Ordered: first matching keyword group decides the archetype.
ARCHETYPE_RULES: Tuple[Tuple[Tuple[str, ...], str], ...] = (
    (("controller",), "Controller"),
    (("service",), "Service"),
    (("repository",), "Repository"),
    (("model", "entity"), "Model"),
    (("test",), "Test"),
    (("integration",), "Integration"),
    (("middleware",), "Middleware"),
    (("handler",), "Handler"),
    (("helper", "util"), "Utility"),
)

# (integration type, any-of keywords, all-of keywords)
INTEGRATION_RULES: Tuple[Tuple[str, Tuple[str, ...], Tuple[str, ...]], ...] = (
    ("EHR-integration", ("epic", "ehr", "emr", "fhir", "hl7"), ()),
    ("financial", ("financial", "billing", "payment", "invoice"), ()),
    ("payment-gateway", ("stripe", "paypal", "braintree", "gateway"), ()),
    ("external-API", (), ("api", "client")),
    ("database", ("repository", "dbcontext", "database"), ()),
    ("messaging", ("message", "queue", "event"), ()),
)

TEST_TYPE_RULES: Tuple[Tuple[Tuple[str, ...], str], ...] = (
    (("integration",), "integration"),
    (("e2e", "end-to-end"), "e2e"),
    (("unit",), "unit"),
    (("api",), "api"),
)


def archetype_for(path: str) -> str:
    lower = path.lower()
    for keywords, archetype in ARCHETYPE_RULES:
        if any(k in lower for k in keywords):
            return archetype
    return "Component"


def classify_test_path(path: str) -> str:
    lower = path.lower()
    for keywords, kind in TEST_TYPE_RULES:
        if any(k in lower for k in keywords):
            return kind
    return "unit"


def _integration_types(path: str) -> List[str]:
    lower = path.lower()
    found: List[str] = []
    for kind, any_of, all_of in INTEGRATION_RULES:
        if any_of and not any(k in lower for k in any_of):
            continue
        if all_of and not all(k in lower for k in all_of):
            continue
        found.append(kind)
    return found


@dataclass
class AnalysisRequest:
    """Wire request ``{applicationId, changedFiles, depth?}``."""
    app_id: str
    changed_files: List[str]
    depth: Optional[int] = None

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "AnalysisRequest":
        if not isinstance(payload, Mapping):
            raise InvalidRequestError("request must be an object")
        app_id = payload.get("applicationId")
        if not isinstance(app_id, str) or not app_id.strip():
            raise InvalidRequestError("applicationId must be a non-empty string")
        changed = payload.get("changedFiles")
        if not isinstance(changed, list):
            raise InvalidRequestError("changedFiles must be a list of paths")
        depth = payload.get("depth")
        if depth is not None and (isinstance(depth, bool) or not isinstance(depth, int)):
            raise InvalidRequestError("depth must be an integer")
        return cls(app_id=app_id, changed_files=changed, depth=depth)


class BlastRadiusEngine:
    """Estimate the impact of a change set on one application.

    The resolver and graph builder are injectable; by default both read from
    a :class:`MountedFileSource` rooted at ``settings.apps_root`` and keep
    their own TTL caches.
    """

    def __init__(
        self,
        source: Optional[FileSource] = None,
        resolver: Optional[FuzzyPathResolver] = None,
        builder: Optional[DependencyGraphBuilder] = None,
        weights: Optional[RiskWeights] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self.settings = settings or Settings()
        if source is None:
            source = MountedFileSource(
                root=self.settings.apps_root,
                max_file_bytes=self.settings.max_file_bytes,
            )
        self.source = source
        self.resolver = resolver or FuzzyPathResolver(
            source,
            cache=TTLCache(self.settings.file_cache_ttl),
            max_edit_distance=self.settings.max_edit_distance,
        )
        self.builder = builder or DependencyGraphBuilder(
            source,
            cache=TTLCache(self.settings.graph_cache_ttl),
            max_workers=self.settings.scan_workers,
        )
        self.weights = weights or self.settings.risk

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def analyze_request(self, payload: Mapping[str, Any]) -> BlastRadiusResult:
        """Analyze a wire request; malformed requests yield an empty result."""
        try:
            request = AnalysisRequest.from_dict(payload)
        except InvalidRequestError as exc:
            logger.warning("Rejected analysis request: %s", exc)
            return self.empty_result()
        return self.analyze_blast_radius(request.app_id, request.changed_files, request.depth)

    def analyze_blast_radius(
        self,
        app_id: str,
        changed_files: Optional[Sequence[str]],
        depth: Optional[int] = None,
    ) -> BlastRadiusResult:
        paths = self._clean_paths(changed_files)
        if not paths:
            logger.info("No changed files for %s, nothing to analyze", app_id)
            return self.empty_result()
        if depth is None:
            depth = self.settings.default_depth
        if depth < 0:
            logger.warning("Negative depth %d clamped to 0", depth)
            depth = 0

        logger.info("Starting blast radius analysis for %d files in %s", len(paths), app_id)
        resolved = self.resolve_files(app_id, paths)
        existing = list(dict.fromkeys(f.resolved_path for f in resolved if f.exists))
        logger.info("Resolved %d of %d files", len(existing), len(paths))
        # Without a listing, take the requested paths and rely on naming inference.
        seeds = list(dict.fromkeys(
            f.resolved_path for f in resolved if f.exists or f.unverified
        ))
        if len(seeds) > len(existing):
            logger.warning(
                "Analyzing %d unverified paths in %s by naming convention only",
                len(seeds) - len(existing), app_id,
            )

        graph = self.builder.build(
            app_id, seeds, known_files=self.resolver.available_files(app_id),
        )
        components = self.get_affected_components(graph, seeds, depth)
        integrations = self.identify_affected_integrations(components)
        tests = self.identify_affected_tests(components)
        risk = self.calculate_risk(components, integrations, tests)
        recommendations = self.generate_recommendations(risk, components, integrations)

        insights = {}
        for path in existing:
            insight = graph.get_file_insight(path)
            if insight is not None:
                insights[path] = insight

        impact = ImpactSummary(
            affected_components=[c.path for c in components],
            affected_tests=[t.path for t in tests],
            affected_integrations=[i.type for i in integrations],
            direct_dependency_count=sum(1 for c in components if c.depth == 1),
            transitive_dependency_count=sum(1 for c in components if c.depth > 1),
        )
        logger.info(
            "Analysis of %s done: %d components, risk %s (%d)",
            app_id, len(components), risk.level, risk.score,
        )
        return BlastRadiusResult(
            risk=risk,
            changed_files=resolved,
            impact=impact,
            file_insights=insights,
            recommendations=recommendations,
            components=components,
            integrations=integrations,
            tests=tests,
        )

    def resolve_files(self, app_id: str, paths: Sequence[str]) -> List[ResolvedFile]:
        return self.resolver.resolve_many(app_id, paths)

    def get_file_dependencies(
        self, app_id: str, path: str, depth: Optional[int] = None,
    ) -> FileDependencyReport:
        """Direct and transitive neighbours of one (fuzzily resolved) file."""
        resolved = self.resolver.resolve(app_id, path)
        if not resolved.exists and not resolved.unverified:
            return FileDependencyReport(file=resolved)
        target = resolved.resolved_path
        if depth is None:
            depth = self.settings.default_depth
        depth = max(0, depth)
        known = self.resolver.available_files(app_id) or []
        known_set = set(known)

        # Scan one more ring of known neighbours per level of depth.
        scope = [target]
        graph = self.builder.build(app_id, scope, known_files=known)
        for _ in range(depth):
            ring = [
                neighbour
                for node in scope
                for neighbour in (*graph.get_dependencies(node), *graph.get_dependents(node))
                if neighbour in known_set and neighbour not in scope
            ]
            if not ring:
                break
            scope = list(dict.fromkeys([*scope, *ring]))
            graph = self.builder.build(app_id, scope, known_files=known)

        return FileDependencyReport(
            file=resolved,
            dependencies=graph.get_dependencies(target),
            dependents=graph.get_dependents(target),
            transitive_dependencies=graph.get_transitive_dependencies(target, depth),
            transitive_dependents=graph.get_transitive_dependents(target, depth),
            insight=graph.get_file_insight(target),
        )

    def empty_result(self) -> BlastRadiusResult:
        risk = self.calculate_risk([], [], [])
        return BlastRadiusResult(risk=risk, changed_files=[], impact=ImpactSummary())

    # ------------------------------------------------------------------
    # Pipeline steps
    # ------------------------------------------------------------------

    def get_affected_components(
        self, graph: DependencyGraph, seeds: Sequence[str], depth: int,
    ) -> List[AffectedComponent]:
        """Breadth-first walk over dependents; first discovery fixes the depth."""
        affected: Dict[str, AffectedComponent] = {}
        queue: deque = deque()
        for path in seeds:
            if path in affected:
                continue
            affected[path] = AffectedComponent(path, archetype_for(path), 0, True)
            queue.append((path, 0))

        while queue:
            path, current = queue.popleft()
            if current >= depth:
                continue
            for dependent in graph.get_dependents(path):
                if dependent in affected:
                    continue
                affected[dependent] = AffectedComponent(
                    dependent, archetype_for(dependent), current + 1, False,
                )
                queue.append((dependent, current + 1))
        return list(affected.values())

    def identify_affected_integrations(
        self, components: Sequence[AffectedComponent],
    ) -> List[IntegrationFinding]:
        findings: Dict[str, IntegrationFinding] = {}
        for component in components:
            for kind in _integration_types(component.path):
                if kind in findings:
                    continue
                level, weight = INTEGRATION_RISK[kind]
                findings[kind] = IntegrationFinding(
                    type=kind,
                    risk_level=level,  # type: ignore[arg-type]
                    weight=weight,
                    example_file=component.path,
                )
        return list(findings.values())

    def identify_affected_tests(
        self, components: Sequence[AffectedComponent],
    ) -> List[TestFinding]:
        return [
            TestFinding(
                path=c.path,
                test_type=classify_test_path(c.path),  # type: ignore[arg-type]
                directly_affected=c.changed_directly,
            )
            for c in components
            if "test" in c.path.lower()
        ]

    def calculate_risk(
        self,
        components: Sequence[AffectedComponent],
        integrations: Sequence[IntegrationFinding],
        tests: Sequence[TestFinding],
    ) -> RiskAssessment:
        return calculate_risk(components, integrations, tests, self.weights)

    def generate_recommendations(
        self,
        risk: RiskAssessment,
        components: Sequence[AffectedComponent],
        integrations: Sequence[IntegrationFinding],
    ) -> List[Recommendation]:
        recommendations = [
            Recommendation(
                category="Integration",
                priority=i.risk_level,
                text=f"Test {i.type} integration thoroughly - {i.risk_level} risk area",
                suggested_test_types=("integration", "e2e"),
            )
            for i in integrations
        ]

        archetypes = {c.archetype for c in components}
        if "Controller" in archetypes:
            recommendations.append(Recommendation(
                "API", "high", "Verify all API endpoints in affected controllers",
                ("api", "integration"),
            ))
        if "Repository" in archetypes:
            recommendations.append(Recommendation(
                "Data", "high", "Validate data access layer changes with integration tests",
                ("integration", "unit"),
            ))
        if "Service" in archetypes:
            recommendations.append(Recommendation(
                "Business Logic", "medium", "Unit test business logic changes in services",
                ("unit",),
            ))
        if risk.level == "critical":
            recommendations.append(Recommendation(
                "General", "critical", "Full regression suite recommended before deployment",
                ("regression", "e2e"),
            ))
        return recommendations

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _clean_paths(changed_files: Any) -> List[str]:
        if not isinstance(changed_files, (list, tuple)):
            if changed_files is not None:
                logger.warning(
                    "changed_files must be a list, got %s", type(changed_files).__name__,
                )
            return []
        paths: List[str] = []
        for entry in changed_files:
            if not isinstance(entry, str) or not entry.strip():
                logger.warning("Skipping invalid changed file entry: %r", entry)
                continue
            paths.append(entry)
        return paths
