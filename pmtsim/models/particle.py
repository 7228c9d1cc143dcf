"""Particle model for the interactive (frame-stepped) engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pmtsim.models.component import Component


class ParticleKind(Enum):
    PHOTON = "photon"
    ELECTRON = "electron"


@dataclass(eq=False)
class Particle:
    """A photon or electron in flight, in canvas units.

    ``kind`` is fixed at construction: a photon that converts at the
    photocathode is replaced by a new electron, never relabelled.

    Attributes:
        x: Position X [px].
        y: Position Y [px].
        vx: Velocity X [px per time unit].
        vy: Velocity Y [px per time unit].
        trajectory: Visited positions, oldest first.
        to_remove: Set once the particle is absorbed or lost.
        source: Emitting electrode; collisions with it are ignored until
            the particle has left its outline.
        generation: Number of dinode strikes in the particle's ancestry.
        birth_time: Simulated time the photoelectron that started this
            lineage was released; secondaries inherit it.
    """
    _kind: ParticleKind
    x: float = 0.0
    y: float = 0.0
    vx: float = 0.0
    vy: float = 0.0
    trajectory: list[tuple[float, float]] = field(default_factory=list)
    to_remove: bool = False
    source: Component | None = None
    generation: int = 0
    birth_time: float = 0.0

    def __post_init__(self) -> None:
        if not self.trajectory:
            self.trajectory.append((self.x, self.y))

    @classmethod
    def photon(cls, x: float, y: float, vx: float = 1.0, vy: float = 0.0) -> Particle:
        return cls(ParticleKind.PHOTON, x, y, vx, vy)

    @classmethod
    def electron(cls, x: float, y: float, vx: float = 0.0, vy: float = 0.0,
                 **kwargs) -> Particle:
        return cls(ParticleKind.ELECTRON, x, y, vx, vy, **kwargs)

    @property
    def kind(self) -> ParticleKind:
        return self._kind

    @property
    def is_electron(self) -> bool:
        return self._kind is ParticleKind.ELECTRON

    @property
    def speed(self) -> float:
        return (self.vx * self.vx + self.vy * self.vy) ** 0.5

    def advance(self, dt: float) -> None:
        """Drift along the current velocity and record the new position."""
        self.x += self.vx * dt
        self.y += self.vy * dt
        self.trajectory.append((self.x, self.y))

    def kinetic_energy(self, mass: float = 1.0) -> float:
        """½·m·|v|² in canvas units."""
        return 0.5 * mass * (self.vx * self.vx + self.vy * self.vy)

    def mark_for_removal(self) -> None:
        self.to_remove = True
