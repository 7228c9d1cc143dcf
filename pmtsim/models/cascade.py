"""Data models for the exact (relativistic) cascade engine.

Positions in metres, times in seconds, energies in eV, angles in radian.
Electrode regions are queried in millimetres.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol, Sequence

import numpy as np
from numpy.typing import NDArray

from pmtsim.constants import (
    DEFAULT_DELTA_T,
    DYNODE_SIGMA_E,
    MAX_GENERATIONS,
    MAX_STEPS_PER_PARTICLE,
    SECONDARY_ENERGY_EV,
    SPAWN_THRESHOLD_EV,
)
from pmtsim.core.field_model import FieldSampler
from pmtsim.core.geometry import contains_point, shape_vertices
from pmtsim.core.secondary_yield import SternglassParams
from pmtsim.models.shapes import AnyShape, Point2D

# Impact codes for non-dynode terminal events; dynode strikes use the
# dynode index (>= 0).
IMPACT_ANODE = -1
IMPACT_GRID = -2
IMPACT_LEFT_VOLUME = -3


class CascadeOutcome(Enum):
    """Per-particle state of the exact engine.

    HIT_DYNODE is non-terminal for the cascade as a whole: it ends the
    current particle and may start a secondary.
    """
    IN_FLIGHT = "in_flight"
    LEFT_VOLUME = "left_volume"
    HIT_ANODE = "hit_anode"
    HIT_GRID = "hit_grid"
    HIT_DYNODE = "hit_dynode"


class Region(Protocol):
    """Electrode or tube outline queried in millimetres."""

    def is_interior(self, x_mm: float, y_mm: float) -> bool: ...


class DynodeRegion(Region, Protocol):
    def vertices_mm(self) -> list[Point2D]: ...


@dataclass
class ShapeRegion:
    """Shape-backed region in millimetre coordinates.

    Attributes:
        shape: Outline [mm].
        voltage: Electrode voltage [V].
        name: Label used in trace logs.
        component: Layout component this region was built from, if any.
        delta_v: Stage voltage for the per-component yield model [V];
            None derives it from the neighbouring dynode regions.
    """
    shape: AnyShape
    voltage: float = 0.0
    name: str = ""
    component: object | None = None
    delta_v: float | None = None

    def is_interior(self, x_mm: float, y_mm: float) -> bool:
        return contains_point(self.shape, x_mm, y_mm)

    def vertices_mm(self) -> list[Point2D]:
        return shape_vertices(self.shape)


def _empty_float_array() -> NDArray[np.float64]:
    return np.array([], dtype=np.float64)


def _empty_trajectory() -> NDArray[np.float64]:
    return np.zeros((0, 3), dtype=np.float64)


@dataclass
class CollisionEvent:
    """A single dynode strike.

    Attributes:
        x_mm: Impact point X [mm].
        y_mm: Impact point Y [mm].
        energy_ev: Impact energy [eV].
        theta: Incidence angle against the surface normal [radian, 0..π/2].
        dynode_index: Index of the struck dynode.
        yield_value: Secondary yield applied to the running gain.
        normal: Outward unit normal at the impact point.
        generation: Generation of the incoming electron (primary = 0).
        exact: False if no edge crossing was found and the nominal
            first-vertex impact point was used.
    """
    x_mm: float
    y_mm: float
    energy_ev: float
    theta: float
    dynode_index: int
    yield_value: float
    normal: tuple[float, float]
    generation: int = 0
    exact: bool = True


@dataclass
class CascadeConfig:
    """Frozen input of one exact cascade run.

    Attributes:
        x0: Initial position [m] (2 or 3 components).
        v0: Initial velocity [m/s] (2 or 3 components).
        sampler: E/B field callbacks in SI units.
        t0: Start time [s].
        anodes: Collecting regions.
        dynodes: Multiplying regions in chain order.
        grids: Absorbing regions (grids and accelerators).
        volume: Tube outline; None means unbounded.
        dt: Integration step [s].
        trace: Log every event at INFO instead of DEBUG.
        random_angle: Cosine-law secondary directions instead of the
            surface normal.
        use_component_yield: Use each dynode region's component yield
            model instead of the Sternglass curve.
        cathode_voltage: Reference voltage of the first stage [V].
        sey: Sternglass curve parameters.
        secondary_energy_ev: Secondary departure energy W_sec [eV].
        sample_departure_energy: Draw each secondary energy from the
            exponential departure spectrum instead of using
            ``secondary_energy_ev``.
        departure_sigma_ev: σE of the departure spectrum [eV].
        spawn_threshold_ev: Minimum impact energy for a secondary [eV].
        max_steps: Integration steps allowed per particle.
        max_generations: Secondary generations allowed per cascade.
        rng: Random generator for yields and emission angles.
    """
    x0: Sequence[float]
    v0: Sequence[float]
    sampler: FieldSampler = field(default_factory=FieldSampler)
    t0: float = 0.0
    anodes: list[Region] = field(default_factory=list)
    dynodes: list[DynodeRegion] = field(default_factory=list)
    grids: list[Region] = field(default_factory=list)
    volume: Region | None = None
    dt: float = DEFAULT_DELTA_T
    trace: bool = False
    random_angle: bool = False
    use_component_yield: bool = False
    cathode_voltage: float = 0.0
    sey: SternglassParams = field(default_factory=SternglassParams)
    secondary_energy_ev: float = SECONDARY_ENERGY_EV
    sample_departure_energy: bool = False
    departure_sigma_ev: float = DYNODE_SIGMA_E
    spawn_threshold_ev: float = SPAWN_THRESHOLD_EV
    max_steps: int = MAX_STEPS_PER_PARTICLE
    max_generations: int = MAX_GENERATIONS
    rng: np.random.Generator | None = None

    def __post_init__(self) -> None:
        if self.dt <= 0.0:
            raise ValueError(f"dt must be positive, got {self.dt}")
        if self.max_steps < 1:
            raise ValueError(f"max_steps must be >= 1, got {self.max_steps}")


@dataclass
class CascadeResult:
    """Concatenated output of one cascade.

    Arrays are per integration sample over all generations in emission
    order. ``gains`` holds the running gain of each sample; ``gain`` is
    the terminal gain of the last particle (0 if absorbed or lost).

    Attributes:
        trajectory: Positions [m], shape (N, 3).
        times: Sample times [s], shape (N,).
        gains: Running gain per sample, shape (N,).
        impacts: Dynode index or IMPACT_* code per particle ending.
        gain: Terminal gain.
        outcome: Terminal outcome of the last particle.
        collisions: Dynode strikes in order.
        generations: Number of particles simulated (primary included).
        step_cap_hit: A particle ran out of integration steps.
        depth_cap_hit: The generation ceiling stopped the cascade.
    """
    trajectory: NDArray[np.float64] = field(default_factory=_empty_trajectory)
    times: NDArray[np.float64] = field(default_factory=_empty_float_array)
    gains: NDArray[np.float64] = field(default_factory=_empty_float_array)
    impacts: list[int] = field(default_factory=list)
    gain: float = 1.0
    outcome: CascadeOutcome = CascadeOutcome.IN_FLIGHT
    collisions: list[CollisionEvent] = field(default_factory=list)
    generations: int = 0
    step_cap_hit: bool = False
    depth_cap_hit: bool = False

    @property
    def reached_anode(self) -> bool:
        return self.outcome is CascadeOutcome.HIT_ANODE

    def extend(self, other: CascadeResult) -> CascadeResult:
        """Append ``other`` after this result; terminal fields come from ``other``."""
        self.trajectory = np.concatenate([self.trajectory, other.trajectory])
        self.times = np.concatenate([self.times, other.times])
        self.gains = np.concatenate([self.gains, other.gains])
        self.impacts.extend(other.impacts)
        self.collisions.extend(other.collisions)
        self.gain = other.gain
        self.outcome = other.outcome
        self.generations += other.generations
        self.step_cap_hit = self.step_cap_hit or other.step_cap_hit
        self.depth_cap_hit = self.depth_cap_hit or other.depth_cap_hit
        return self
