"""Risk weights, integration risk table and the blast-radius risk score."""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from typing import Any, Dict, Mapping, Sequence, Tuple

from .models import AffectedComponent, IntegrationFinding, RiskAssessment, TestFinding


@dataclass(frozen=True)
class RiskWeights:
    """Tunable constants of the risk score.

    score = min(cap, per_component * components)
          + min(cap, integration_multiplier * sum(weights))
          + min(cap, per_direct_test * directly affected tests)
    """
    per_component: int = 5
    component_cap: int = 30
    integration_multiplier: int = 10
    integration_cap: int = 50
    per_direct_test: int = 5
    test_cap: int = 20
    total_cap: int = 100
    critical_threshold: int = 70
    high_threshold: int = 50
    medium_threshold: int = 30

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> "RiskWeights":
        known = {f.name for f in fields(cls)}
        return cls(**{k: int(v) for k, v in values.items() if k in known})

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


# type -> (risk level, weight)
INTEGRATION_RISK: Dict[str, Tuple[str, int]] = {
    "EHR-integration": ("critical", 5),
    "financial": ("critical", 5),
    "payment-gateway": ("critical", 5),
    "external-API": ("high", 4),
    "database": ("high", 4),
    "messaging": ("medium", 3),
    "internal-service": ("medium", 2),
    "UI": ("low", 1),
}

_DESCRIPTIONS: Dict[str, str] = {
    "critical": (
        "Critical risk: {components} components affected with {integrations} "
        "critical integrations. Comprehensive testing required."
    ),
    "high": (
        "High risk: {components} components affected. "
        "Thorough testing recommended for all affected areas."
    ),
    "medium": (
        "Medium risk: {components} components affected. "
        "Standard regression testing recommended."
    ),
    "low": (
        "Low risk: Limited blast radius with {components} components. "
        "Basic validation sufficient."
    ),
}


def risk_level(score: int, weights: RiskWeights = RiskWeights()) -> str:
    if score >= weights.critical_threshold:
        return "critical"
    if score >= weights.high_threshold:
        return "high"
    if score >= weights.medium_threshold:
        return "medium"
    return "low"


def describe_risk(level: str, component_count: int, integration_count: int) -> str:
    template = _DESCRIPTIONS.get(level, _DESCRIPTIONS["medium"])
    return template.format(components=component_count, integrations=integration_count)


def score_components(
    component_count: int,
    integration_weights: Sequence[int],
    direct_test_count: int,
    weights: RiskWeights = RiskWeights(),
) -> Tuple[int, int, int, int]:
    """Return ``(component, integration, test, total)`` score parts."""
    component_score = min(weights.component_cap, weights.per_component * component_count)
    integration_score = min(
        weights.integration_cap,
        weights.integration_multiplier * sum(integration_weights),
    )
    test_score = min(weights.test_cap, weights.per_direct_test * direct_test_count)
    total = min(weights.total_cap, component_score + integration_score + test_score)
    return component_score, integration_score, test_score, total


def calculate_risk(
    components: Sequence[AffectedComponent],
    integrations: Sequence[IntegrationFinding],
    tests: Sequence[TestFinding],
    weights: RiskWeights = RiskWeights(),
) -> RiskAssessment:
    direct_tests = sum(1 for t in tests if t.directly_affected)
    *_, total = score_components(
        len(components), [i.weight for i in integrations], direct_tests, weights,
    )
    level = risk_level(total, weights)
    return RiskAssessment(
        score=total,
        level=level,  # type: ignore[arg-type]
        description=describe_risk(level, len(components), len(integrations)),
    )
