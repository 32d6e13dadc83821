"""Data models shared by the resolver, graph builder and analysis engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Tuple

RiskLevel = Literal["critical", "high", "medium", "low"]
TestType = Literal["unit", "integration", "e2e", "api"]


class MatchStrategy(str, Enum):
    """How a requested path was matched against the application's files."""

    EXACT = "exact"
    CASE_INSENSITIVE = "case-insensitive"
    FILENAME_ONLY = "filename-only"
    FILENAME_CASE_INSENSITIVE = "filename-case-insensitive"
    PARTIAL_PATH = "partial-path"
    EDIT_DISTANCE = "edit-distance"
    NOT_FOUND = "not-found"
    UNVERIFIED = "unverified"


@dataclass(frozen=True)
class ResolvedFile:
    """Outcome of resolving one requested path."""
    requested_path: str
    resolved_path: str
    exists: bool
    match_strategy: MatchStrategy
    edit_distance: Optional[int] = None
    suggestions: Tuple[str, ...] = ()

    @property
    def fuzzy(self) -> bool:
        return self.exists and self.match_strategy is not MatchStrategy.EXACT

    @property
    def unverified(self) -> bool:
        """Taken as requested because the file listing could not be read."""
        return self.match_strategy is MatchStrategy.UNVERIFIED

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "requestedPath": self.requested_path,
            "resolvedPath": self.resolved_path,
            "exists": self.exists,
            "matchStrategy": self.match_strategy.value,
        }
        if self.edit_distance is not None:
            payload["editDistance"] = self.edit_distance
        if self.suggestions:
            payload["alternativeSuggestions"] = list(self.suggestions)
        return payload


@dataclass(frozen=True)
class ImportRef:
    name: str
    kind: str = "import"
    source: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"importedName": self.name, "kind": self.kind}
        if self.source is not None:
            payload["sourceModule"] = self.source
        return payload


@dataclass(frozen=True)
class EventRef:
    kind: str
    name: str

    def to_dict(self) -> Dict[str, str]:
        return {"kind": self.kind, "name": self.name}


@dataclass
class FileInsight:
    """Facts extracted from one file by a lexical scanner.

    The list fields behave as insertion-ordered sets: use the ``add_*``
    helpers so repeated matches are recorded once.
    """
    imports: List[ImportRef] = field(default_factory=list)
    exports: List[str] = field(default_factory=list)
    api_calls: List[str] = field(default_factory=list)
    events: List[EventRef] = field(default_factory=list)
    store_actions: List[str] = field(default_factory=list)
    component_type: Optional[str] = None
    functionality: List[str] = field(default_factory=list)

    def add_import(self, name: str, kind: str = "import", source: Optional[str] = None) -> None:
        ref = ImportRef(name=name, kind=kind, source=source)
        if ref not in self.imports:
            self.imports.append(ref)

    def add_export(self, name: str) -> None:
        _append_unique(self.exports, name)

    def add_api_call(self, target: str) -> None:
        _append_unique(self.api_calls, target)

    def add_event(self, kind: str, name: str) -> None:
        ref = EventRef(kind=kind, name=name)
        if ref not in self.events:
            self.events.append(ref)

    def add_store_action(self, name: str) -> None:
        _append_unique(self.store_actions, name)

    def add_functionality(self, tag: str) -> None:
        _append_unique(self.functionality, tag)

    def imported_names(self) -> List[str]:
        return [ref.name for ref in self.imports]

    def import_sources(self) -> List[str]:
        """Modules this file imports from, in first-seen order."""
        sources: List[str] = []
        for ref in self.imports:
            if ref.source:
                _append_unique(sources, ref.source)
        return sources

    def to_dict(self) -> Dict[str, Any]:
        return {
            "imports": [ref.to_dict() for ref in self.imports],
            "exports": list(self.exports),
            "apiCalls": list(self.api_calls),
            "events": [ref.to_dict() for ref in self.events],
            "storeActions": list(self.store_actions),
            "componentType": self.component_type,
            "functionality": list(self.functionality),
        }


@dataclass
class AffectedComponent:
    path: str
    archetype: str
    depth: int
    changed_directly: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": self.path,
            "archetypeLabel": self.archetype,
            "depth": self.depth,
            "changedDirectly": self.changed_directly,
        }


@dataclass(frozen=True)
class IntegrationFinding:
    type: str
    risk_level: RiskLevel
    weight: int
    example_file: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "riskLevel": self.risk_level,
            "weight": self.weight,
            "exampleFile": self.example_file,
        }


@dataclass(frozen=True)
class TestFinding:
    __test__ = False  # not a pytest test class

    path: str
    test_type: TestType
    directly_affected: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": self.path,
            "testType": self.test_type,
            "directlyAffected": self.directly_affected,
        }


@dataclass(frozen=True)
class RiskAssessment:
    score: int
    level: RiskLevel
    description: str

    def to_dict(self) -> Dict[str, Any]:
        return {"score": self.score, "level": self.level, "description": self.description}


@dataclass(frozen=True)
class Recommendation:
    category: str
    priority: RiskLevel
    text: str
    suggested_test_types: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "category": self.category,
            "priority": self.priority,
            "text": self.text,
            "suggestedTestTypes": list(self.suggested_test_types),
        }


@dataclass
class ImpactSummary:
    affected_components: List[str] = field(default_factory=list)
    affected_tests: List[str] = field(default_factory=list)
    affected_integrations: List[str] = field(default_factory=list)
    direct_dependency_count: int = 0
    transitive_dependency_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "affectedComponents": list(self.affected_components),
            "affectedTests": list(self.affected_tests),
            "affectedIntegrations": list(self.affected_integrations),
            "directDependencyCount": self.direct_dependency_count,
            "transitiveDependencyCount": self.transitive_dependency_count,
        }


@dataclass
class BlastRadiusResult:
    """Everything one analysis run produces.

    ``impact`` carries the name-only summary; ``components``,
    ``integrations`` and ``tests`` keep the detailed findings behind it.
    """
    risk: RiskAssessment
    changed_files: List[ResolvedFile]
    impact: ImpactSummary
    file_insights: Dict[str, FileInsight] = field(default_factory=dict)
    recommendations: List[Recommendation] = field(default_factory=list)
    components: List[AffectedComponent] = field(default_factory=list)
    integrations: List[IntegrationFinding] = field(default_factory=list)
    tests: List[TestFinding] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "risk": self.risk.to_dict(),
            "changedFiles": [f.to_dict() for f in self.changed_files],
            "impact": self.impact.to_dict(),
            "fileInsights": {path: ins.to_dict() for path, ins in self.file_insights.items()},
            "recommendations": [r.to_dict() for r in self.recommendations],
        }


@dataclass
class FileDependencyReport:
    """Direct and transitive neighbourhood of a single file."""
    file: ResolvedFile
    dependencies: List[str] = field(default_factory=list)
    dependents: List[str] = field(default_factory=list)
    transitive_dependencies: List[Tuple[str, int]] = field(default_factory=list)
    transitive_dependents: List[Tuple[str, int]] = field(default_factory=list)
    insight: Optional[FileInsight] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "file": self.file.to_dict(),
            "dependencies": list(self.dependencies),
            "dependents": list(self.dependents),
            "transitiveDependencies": [
                {"path": p, "depth": d} for p, d in self.transitive_dependencies
            ],
            "transitiveDependents": [
                {"path": p, "depth": d} for p, d in self.transitive_dependents
            ],
            "insight": self.insight.to_dict() if self.insight else None,
        }


def _append_unique(items: List[str], value: str) -> None:
    if value not in items:
        items.append(value)
