"""
Consistency checks across data sources.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, List, Optional

from atlas_tracker.physics.orbit import OrbitalElements

if TYPE_CHECKING:
    from atlas_tracker.data.orchestrator import OrbitalState

# Typical uncertainties of cometary orbit solutions
TOLERANCES = {
    "q_au": 0.001,
    "e": 0.01,
    "inc_deg": 0.1,
    "argp_deg": 0.5,
    "node_deg": 0.5,
    "perihelion_time_days": 0.1,
}

# Fraction of agreeing elements needed for a solution to count as consistent
AGREEMENT_THRESHOLD = 0.8

MAGNITUDE_SPREAD_LIMIT = 0.5
UNCERTAINTY_LIMIT_ARCSEC = 5.0


@dataclass(frozen=True)
class ElementCheck:
    element: str
    reference: float
    candidate: float
    difference: float
    tolerance: float

    @property
    def agrees(self) -> bool:
        return self.difference <= self.tolerance

    @property
    def percent_difference(self) -> Optional[float]:
        if abs(self.reference) > 1e-4:
            return self.difference / abs(self.reference) * 100.0
        return None


@dataclass(frozen=True)
class ElementsValidation:
    checks: List[ElementCheck]
    warnings: List[str] = field(default_factory=list)

    @property
    def confidence(self) -> float:
        if not self.checks:
            return 0.0
        return sum(1 for c in self.checks if c.agrees) / len(self.checks)

    @property
    def is_valid(self) -> bool:
        return self.confidence >= AGREEMENT_THRESHOLD


def _angle_difference(a_deg: float, b_deg: float) -> float:
    d = abs(a_deg - b_deg) % 360.0
    return 360.0 - d if d > 180.0 else d


def cross_validate_elements(reference: OrbitalElements, candidate: OrbitalElements) -> ElementsValidation:
    """
    Compare a freshly published solution against the reference elements,
    element by element, within per-element tolerances.
    """
    checks = [
        ElementCheck("q_au", reference.q_au, candidate.q_au,
                     abs(reference.q_au - candidate.q_au), TOLERANCES["q_au"]),
        ElementCheck("e", reference.e, candidate.e,
                     abs(reference.e - candidate.e), TOLERANCES["e"]),
        ElementCheck("inc_deg", reference.inc_deg, candidate.inc_deg,
                     _angle_difference(reference.inc_deg, candidate.inc_deg), TOLERANCES["inc_deg"]),
        ElementCheck("argp_deg", reference.argp_deg, candidate.argp_deg,
                     _angle_difference(reference.argp_deg, candidate.argp_deg), TOLERANCES["argp_deg"]),
        ElementCheck("node_deg", reference.node_deg, candidate.node_deg,
                     _angle_difference(reference.node_deg, candidate.node_deg), TOLERANCES["node_deg"]),
    ]
    dt_days = abs((candidate.perihelion_time - reference.perihelion_time).total_seconds()) / 86400.0
    checks.append(ElementCheck("perihelion_time_days", 0.0, dt_days, dt_days, TOLERANCES["perihelion_time_days"]))

    warnings = []
    for c in checks:
        if not c.agrees:
            pct = c.percent_difference
            suffix = f" ({pct:.1f}% difference)" if pct is not None else ""
            warnings.append(f"{c.element}: values differ by {c.difference:.4f}{suffix}")
    return ElementsValidation(checks=checks, warnings=warnings)


@dataclass(frozen=True)
class ConsistencyReport:
    is_consistent: bool
    warnings: List[str]
    confidence: float


def validate_state_consistency(state: "OrbitalState") -> ConsistencyReport:
    """
    Score how far a merged state can be trusted given what actually responded.
    """
    warnings: List[str] = []
    confidence = 1.0

    magnitudes = list(state.magnitude_estimates.values())
    if len(magnitudes) > 1:
        spread = max(magnitudes) - min(magnitudes)
        if spread > MAGNITUDE_SPREAD_LIMIT:
            warnings.append(f"Magnitude inconsistency: {spread:.2f} mag difference between sources")
            confidence -= 0.1

    total = len(state.source_statuses)
    active = sum(1 for s in state.source_statuses.values() if s.active)
    if active < 2:
        warnings.append(f"Only {active} data source(s) active - reduced reliability")
        confidence -= 0.2 * max(total - active, 1)

    if state.position_uncertainty_arcsec > UNCERTAINTY_LIMIT_ARCSEC:
        warnings.append(f"Position uncertainty exceeds {UNCERTAINTY_LIMIT_ARCSEC:g} arcseconds")
        confidence -= 0.1

    return ConsistencyReport(
        is_consistent=not warnings,
        warnings=warnings,
        confidence=max(0.1, confidence),
    )
