"""Electrostatic field model — Coulomb-law superposition over electrodes.

Every electrode is treated as a point source at its centre whose strength
is its bias voltage: E(p) = Σ k·V·d/|d|³ with d = p − centre. Sources
closer than sqrt(epsilon) to the query point are skipped instead of
dividing by a near-zero distance.

The exact engine consumes fields through a ``FieldSampler``: six optional
callables (x, y) → component, evaluated in metres.

``StageField`` is the alternative for dynode chains: a uniform field per
inter-electrode gap, like the resistive divider of a real tube.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Callable, Iterable

import numpy as np

from pmtsim.constants import COULOMB_CONSTANT, FIELD_EPSILON_PX

FieldFn = Callable[[float, float], float]


@dataclass(frozen=True)
class FieldSource:
    """Point source used by FieldModel.

    Attributes:
        x: Source X (query length unit).
        y: Source Y (query length unit).
        voltage: Source strength [V].
    """
    x: float
    y: float
    voltage: float


@dataclass
class FieldSampler:
    """E and B component callbacks for the exact engine.

    Any component left as None is zero. All callbacks take (x, y) in
    metres and return V/m (E) or T (B).
    """
    ex: FieldFn | None = None
    ey: FieldFn | None = None
    ez: FieldFn | None = None
    bx: FieldFn | None = None
    by: FieldFn | None = None
    bz: FieldFn | None = None

    def sample(self, x: float, y: float) -> tuple[np.ndarray, np.ndarray]:
        """Evaluate (E, B) at a point as two length-3 arrays."""
        e = np.array([
            self.ex(x, y) if self.ex else 0.0,
            self.ey(x, y) if self.ey else 0.0,
            self.ez(x, y) if self.ez else 0.0,
        ])
        b = np.array([
            self.bx(x, y) if self.bx else 0.0,
            self.by(x, y) if self.by else 0.0,
            self.bz(x, y) if self.bz else 0.0,
        ])
        return e, b


def uniform_sampler(
    e_field: tuple[float, float, float] = (0.0, 0.0, 0.0),
    b_field: tuple[float, float, float] = (0.0, 0.0, 0.0),
) -> FieldSampler:
    """Sampler for spatially constant E [V/m] and B [T]."""
    def const(value: float) -> FieldFn | None:
        if value == 0.0:
            return None
        return lambda x, y: value

    return FieldSampler(
        ex=const(e_field[0]), ey=const(e_field[1]), ez=const(e_field[2]),
        bx=const(b_field[0]), by=const(b_field[1]), bz=const(b_field[2]),
    )


class FieldModel:
    """Coulomb superposition over a frozen set of point sources.

    Args:
        sources: Field sources (anything with x, y, voltage).
        coulomb_constant: Proportionality constant k.
        epsilon: Squared-distance cut-off below which a source is skipped.
        enabled: When False every query returns zero field.
    """

    def __init__(
        self,
        sources: Iterable = (),
        coulomb_constant: float = COULOMB_CONSTANT,
        epsilon: float = FIELD_EPSILON_PX,
        enabled: bool = True,
    ) -> None:
        self._sources = [FieldSource(float(s.x), float(s.y), float(s.voltage))
                         for s in sources]
        self.coulomb_constant = coulomb_constant
        self.epsilon = epsilon
        self.enabled = enabled

    @classmethod
    def from_components(
        cls,
        components: Iterable,
        length_scale: float = 1.0,
        **kwargs,
    ) -> FieldModel:
        """Build from electrodes, scaling their centres by ``length_scale``.

        Use ``length_scale`` to move pixel layouts into another length
        unit (e.g. metres per pixel for the exact engine).
        """
        sources = [
            FieldSource(c.x * length_scale, c.y * length_scale, c.voltage)
            for c in components
        ]
        return cls(sources, **kwargs)

    @property
    def sources(self) -> list[FieldSource]:
        return list(self._sources)

    def set_sources(self, sources: Iterable) -> None:
        self._sources = [FieldSource(float(s.x), float(s.y), float(s.voltage))
                         for s in sources]

    def field(self, x: float, y: float) -> tuple[float, float]:
        """Net field (Ex, Ey) at (x, y)."""
        if not self.enabled:
            return 0.0, 0.0
        ex = 0.0
        ey = 0.0
        k = self.coulomb_constant
        for src in self._sources:
            dx = x - src.x
            dy = y - src.y
            r2 = dx * dx + dy * dy
            if r2 < self.epsilon:
                continue
            r = math.sqrt(r2)
            magnitude = k * src.voltage / r2
            ex += magnitude * dx / r
            ey += magnitude * dy / r
        return ex, ey

    def magnitude(self, x: float, y: float) -> float:
        ex, ey = self.field(x, y)
        return math.hypot(ex, ey)

    def as_sampler(self, field_scale: float = 1.0) -> FieldSampler:
        """Expose this model as an exact-engine sampler (no B field)."""
        return _planar_sampler(self.field, field_scale)


@dataclass(frozen=True)
class _Stage:
    """One inter-electrode gap of a StageField."""
    x0: float
    y0: float
    ux: float
    uy: float
    length: float
    ex: float
    ey: float

    def distance2(self, x: float, y: float) -> float:
        along = (x - self.x0) * self.ux + (y - self.y0) * self.uy
        along = min(max(along, 0.0), self.length)
        dx = x - (self.x0 + along * self.ux)
        dy = y - (self.y0 + along * self.uy)
        return dx * dx + dy * dy


class StageField:
    """Divider-chain field: each inter-electrode gap carries a uniform field.

    The chain is an ordered electrode list (cathode, dynodes, anode).
    Gap k runs from electrode k to electrode k + 1 and holds the uniform
    field ΔV/L pointing from the higher to the lower potential, so an
    electron anywhere on the gap is driven toward electrode k + 1. A
    query point takes the field of the nearest gap; on a tie the later
    gap wins, so a secondary leaving a dynode centre is driven onward.

    No electrode pulls its own secondaries back, as a point source does.

    Args:
        chain: Electrodes in chain order (anything with x, y, voltage).
        length_scale: Multiplier from electrode coordinates to query units.
    """

    def __init__(self, chain: Iterable, length_scale: float = 1.0) -> None:
        points = [(c.x * length_scale, c.y * length_scale, float(c.voltage))
                  for c in chain]
        self._stages: list[_Stage] = []
        for (x0, y0, v0), (x1, y1, v1) in zip(points, points[1:]):
            length = math.hypot(x1 - x0, y1 - y0)
            if length == 0.0:
                continue
            ux, uy = (x1 - x0) / length, (y1 - y0) / length
            strength = (v1 - v0) / length
            self._stages.append(_Stage(
                x0, y0, ux, uy, length, -strength * ux, -strength * uy,
            ))

    @property
    def num_stages(self) -> int:
        return len(self._stages)

    def field(self, x: float, y: float) -> tuple[float, float]:
        """Field (Ex, Ey) of the gap nearest to (x, y)."""
        best = None
        best_d2 = math.inf
        for stage in reversed(self._stages):
            d2 = stage.distance2(x, y)
            if d2 < best_d2:
                best, best_d2 = stage, d2
        if best is None:
            return 0.0, 0.0
        return best.ex, best.ey

    def as_sampler(self, field_scale: float = 1.0) -> FieldSampler:
        return _planar_sampler(self.field, field_scale)


def _planar_sampler(
    field_fn: Callable[[float, float], tuple[float, float]],
    field_scale: float,
) -> FieldSampler:
    """Sampler whose ex and ey share one evaluation of ``field_fn`` per point.

    The last point and its field are kept, so the sources behind
    ``field_fn`` must not change while the sampler is in use.
    """
    last: list = [None, (0.0, 0.0)]

    def evaluate(x: float, y: float) -> tuple[float, float]:
        if last[0] != (x, y):
            ex, ey = field_fn(x, y)
            last[0] = (x, y)
            last[1] = (ex * field_scale, ey * field_scale)
        return last[1]

    return FieldSampler(
        ex=lambda x, y: evaluate(x, y)[0],
        ey=lambda x, y: evaluate(x, y)[1],
    )
