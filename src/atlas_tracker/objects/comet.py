from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from atlas_tracker.core.frames import Vector3
from atlas_tracker.physics.orbit import OrbitalElements, StateVector, solve_position, state_at

# Canonical published elements for 3I/ATLAS, MPEC 2025-N12 (Minor Planet Center).
# Every consumer (Kepler positions, vis-viva fallback, cross-validation) reads this table.
ATLAS_3I_ELEMENTS = OrbitalElements(
    e=6.2769203,
    q_au=1.3745928,
    inc_deg=175.11669,
    argp_deg=127.79317,
    node_deg=322.27219,
    perihelion_time=datetime(2025, 10, 29, 5, 3, 46, tzinfo=timezone.utc),
)

# Earliest pre-discovery observations; trails are never extrapolated before this
ATLAS_3I_DISCOVERY = datetime(2025, 6, 14, 0, 0, 0, tzinfo=timezone.utc)


@dataclass
class Comet:
    """
    A comet on a fixed (two-body) hyperbolic orbit.
    """
    comet_id: str
    name: str
    elements: OrbitalElements
    discovery_time: Optional[datetime] = None

    # Last evaluated state, handy for debugging
    last_time: Optional[datetime] = None
    last_state: Optional[StateVector] = None

    def __post_init__(self):
        if not self.comet_id.strip():
            raise ValueError("Comet ID cannot be empty or whitespace.")

    def position_at(self, when: datetime) -> Vector3:
        """Heliocentric ecliptic position (AU)."""
        return solve_position(self.elements.days_from_perihelion(when), self.elements)

    def state_at(self, when: datetime) -> StateVector:
        state = state_at(self.elements, when)
        self.last_time = when
        self.last_state = state
        return state


def atlas_3i() -> Comet:
    return Comet(
        comet_id="3I",
        name="3I/ATLAS",
        elements=ATLAS_3I_ELEMENTS,
        discovery_time=ATLAS_3I_DISCOVERY,
    )
