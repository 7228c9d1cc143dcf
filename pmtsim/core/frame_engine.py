"""Interactive frame engine — fast, approximate particle motion for display.

One ``update`` call advances every live particle by one frame:

1. Electrons: planar Boris velocity update (γ ≡ 1) from the field at
   the current position, then a speed clamp. Photons keep their velocity.
2. Drift x += v·dt.
3. Collision against the first interacting component containing the new
   position.
4. Removals are applied in descending index order, new particles are
   appended, and the oldest particles are dropped above the particle cap.

Anode hits carry the transit time since their lineage's photoelectron
was released; ``RunStatistics`` summarizes a run from them.

All quantities are in canvas units (px, frame time units, unit charge and
mass). This engine is a visual approximation; use the exact cascade
engine for physical numbers.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field

import numpy as np

from pmtsim.constants import (
    CANVAS_HEIGHT,
    CANVAS_MARGIN,
    CANVAS_WIDTH,
    COULOMB_CONSTANT,
    FIELD_EPSILON_PX,
    FRAME_DELTA_T,
    MAX_FRAME_SPEED,
    MAX_PARTICLES,
)
from pmtsim.core.boris_pusher import nonrelativistic_velocity
from pmtsim.core.field_model import FieldModel
from pmtsim.core.geometry import locate_boundary_crossing, outward_normal
from pmtsim.core.secondary_yield import (
    component_yield,
    cosine_direction,
    secondary_count,
)
from pmtsim.core.vector_math import angle_between, vec3
from pmtsim.models.component import Component, ComponentType
from pmtsim.models.layout import PmtLayout
from pmtsim.models.particle import Particle

logger = logging.getLogger(__name__)

# Normalized electron charge and mass in canvas units
_ELECTRON_Q = -1.0
_ELECTRON_M = 1.0


@dataclass
class FrameEngineConfig:
    """Interactive engine settings.

    Attributes:
        dt: Time step per frame.
        coulomb_constant: Field constant k.
        epsilon: Squared-distance cut-off of the field model [px²].
        enable_field: Electric field on/off.
        magnetic_field: Uniform B (bx, by, bz) in canvas units.
        enable_magnetic: Magnetic field on/off.
        max_speed: Speed clamp applied after each velocity update.
        max_particles: Global particle cap; oldest dropped first.
        bounds: (x_min, y_min, x_max, y_max) outside which particles are lost.
        quantum_efficiency: Probability that a photon reaching the
            photocathode releases an electron.
        photoelectron_velocity: Initial velocity of a photoelectron.
        secondary_speed: (min, max) speed of dinode secondaries.
        rounding: ``"floor"`` or ``"round"`` for the secondary count.
        rng: Random generator for yields, directions and speeds.
    """
    dt: float = FRAME_DELTA_T
    coulomb_constant: float = COULOMB_CONSTANT
    epsilon: float = FIELD_EPSILON_PX
    enable_field: bool = True
    magnetic_field: tuple[float, float, float] = (0.0, 0.0, 0.0)
    enable_magnetic: bool = False
    max_speed: float = MAX_FRAME_SPEED
    max_particles: int = MAX_PARTICLES
    bounds: tuple[float, float, float, float] = (
        -CANVAS_MARGIN, -CANVAS_MARGIN,
        CANVAS_WIDTH + CANVAS_MARGIN, CANVAS_HEIGHT + CANVAS_MARGIN,
    )
    quantum_efficiency: float = 1.0
    photoelectron_velocity: tuple[float, float] = (1.0, 0.0)
    secondary_speed: tuple[float, float] = (1.0, 3.0)
    rounding: str = "floor"
    rng: np.random.Generator | None = None

    def __post_init__(self) -> None:
        if self.dt <= 0.0:
            raise ValueError(f"dt must be positive, got {self.dt}")
        if self.max_particles < 1:
            raise ValueError(f"max_particles must be >= 1, got {self.max_particles}")
        if not 0.0 <= self.quantum_efficiency <= 1.0:
            raise ValueError(
                f"quantum_efficiency must be in [0, 1], got {self.quantum_efficiency}"
            )


@dataclass
class AnodeHit:
    """An electron collected at the anode.

    Attributes:
        x: Impact X [px].
        y: Impact Y [px].
        time: Simulated time of the frame.
        energy: Kinetic energy at impact (canvas units).
        generation: Dinode strikes in the electron's ancestry.
        transit_time: Time since the lineage's photoelectron was released.
    """
    x: float
    y: float
    time: float
    energy: float
    generation: int = 0
    transit_time: float = 0.0


@dataclass
class RunStatistics:
    """Summary of an interactive run.

    Attributes:
        photons_emitted: Photons launched toward the photocathode.
        photoelectrons: Generation-0 electrons released.
        electrons_detected: Electrons collected at the anode.
        detection_efficiency: Detected electrons per emitted photon [%].
        mean_transit_time: Mean photoelectron-to-anode time of the
            collected electrons (0 if none).
        gain: Collected electrons per photoelectron (0 if none).
        active_particles: Particles still in flight.
    """
    photons_emitted: int = 0
    photoelectrons: int = 0
    electrons_detected: int = 0
    detection_efficiency: float = 0.0
    mean_transit_time: float = 0.0
    gain: float = 0.0
    active_particles: int = 0

    @classmethod
    def from_hits(
        cls,
        photons_emitted: int,
        photoelectrons: int,
        hits: list[AnodeHit],
        active_particles: int = 0,
    ) -> RunStatistics:
        detected = len(hits)
        return cls(
            photons_emitted=photons_emitted,
            photoelectrons=photoelectrons,
            electrons_detected=detected,
            detection_efficiency=(100.0 * detected / photons_emitted
                                  if photons_emitted else 0.0),
            mean_transit_time=(sum(h.transit_time for h in hits) / detected
                               if detected else 0.0),
            gain=detected / photoelectrons if photoelectrons else 0.0,
            active_particles=active_particles,
        )


@dataclass
class FrameUpdate:
    """What one frame changed besides in-place motion."""
    particles_added: list[Particle] = field(default_factory=list)
    anode_hits: list[AnodeHit] = field(default_factory=list)


class FrameEngine:
    """Per-frame particle stepper over a live component list.

    The component list is read, never modified; edits made between
    frames (voltage, position) take effect on the next ``update``.

    Args:
        components: A PmtLayout, or a plain list of components.
        config: Engine settings.
    """

    def __init__(
        self,
        components: PmtLayout | list[Component],
        config: FrameEngineConfig | None = None,
    ) -> None:
        self.config = config or FrameEngineConfig()
        if isinstance(components, PmtLayout):
            self._layout: PmtLayout | None = components
        else:
            self._layout = None
            self._components = components
        self._rng = (self.config.rng if self.config.rng is not None
                     else np.random.default_rng())
        self._field = FieldModel(
            coulomb_constant=self.config.coulomb_constant,
            epsilon=self.config.epsilon,
            enabled=self.config.enable_field,
        )
        self.time = 0.0
        self.frame = 0

    @property
    def components(self) -> list[Component]:
        if self._layout is not None:
            return self._layout.components
        return self._components

    def electric_field(self, x: float, y: float) -> tuple[float, float]:
        """Field of the current component list at (x, y)."""
        self._field.enabled = self.config.enable_field
        self._field.set_sources(self.components)
        return self._field.field(x, y)

    # ── Frame update ──

    def update(self, particles: list[Particle]) -> FrameUpdate:
        """Advance ``particles`` by one frame, mutating the list in place."""
        cfg = self.config
        out = FrameUpdate()
        self._field.enabled = cfg.enable_field
        self._field.set_sources(self.components)
        b_field = cfg.magnetic_field if cfg.enable_magnetic else (0.0, 0.0, 0.0)
        self.time += cfg.dt
        self.frame += 1

        removals: list[int] = []
        for i, particle in enumerate(particles):
            if particle.is_electron:
                e = self._field.field(particle.x, particle.y)
                vx, vy = nonrelativistic_velocity(
                    (particle.vx, particle.vy), e, b_field,
                    _ELECTRON_Q / _ELECTRON_M, cfg.dt,
                )
                speed = math.hypot(vx, vy)
                if speed > cfg.max_speed:
                    vx *= cfg.max_speed / speed
                    vy *= cfg.max_speed / speed
                particle.vx, particle.vy = vx, vy
            particle.advance(cfg.dt)

            if particle.source is not None and not particle.source.contains_point(
                particle.x, particle.y,
            ):
                particle.source = None

            self._collide(particle, out)

            if not particle.to_remove and not self._in_bounds(particle):
                particle.mark_for_removal()
            if particle.to_remove:
                removals.append(i)

        for i in sorted(removals, reverse=True):
            del particles[i]
        particles.extend(out.particles_added)
        overflow = len(particles) - cfg.max_particles
        if overflow > 0:
            del particles[:overflow]
            logger.debug("Particle cap reached; dropped %d oldest", overflow)
        return out

    def _in_bounds(self, particle: Particle) -> bool:
        x_min, y_min, x_max, y_max = self.config.bounds
        return x_min <= particle.x <= x_max and y_min <= particle.y <= y_max

    # ── Collisions ──

    def _collide(self, particle: Particle, out: FrameUpdate) -> None:
        for comp in self.components:
            if comp is particle.source or comp.type is ComponentType.CUSTOM:
                continue
            if not comp.contains_point(particle.x, particle.y):
                continue
            if particle.is_electron:
                if self._electron_hit(particle, comp, out):
                    return
            elif comp.type is ComponentType.PHOTOCATHODE:
                self._photon_hit(particle, comp, out)
                return

    def _photon_hit(self, photon: Particle, cathode: Component, out: FrameUpdate) -> None:
        photon.mark_for_removal()
        qe = self.config.quantum_efficiency
        if qe < 1.0 and self._rng.random() >= qe:
            return
        vx, vy = self.config.photoelectron_velocity
        out.particles_added.append(
            Particle.electron(photon.x, photon.y, vx, vy, source=cathode,
                              birth_time=self.time)
        )

    def _electron_hit(self, electron: Particle, comp: Component, out: FrameUpdate) -> bool:
        """Apply an electron strike; False if ``comp`` does not interact."""
        if comp.type is ComponentType.ANODE:
            electron.mark_for_removal()
            out.anode_hits.append(AnodeHit(
                electron.x, electron.y, self.time,
                electron.kinetic_energy(_ELECTRON_M), electron.generation,
                self.time - electron.birth_time,
            ))
            return True
        if comp.is_absorber:
            if (comp.type is ComponentType.GRID and self._layout is not None
                    and not self._layout.grid_enabled):
                return False
            electron.mark_for_removal()
            return True
        if comp.type is ComponentType.DINODE:
            electron.mark_for_removal()
            out.particles_added.extend(self._secondaries(electron, comp))
            return True
        return False

    def _secondaries(self, electron: Particle, dinode: Component) -> list[Particle]:
        normal = self._impact_normal(electron, dinode)
        theta = angle_between(vec3((-electron.vx, -electron.vy)), vec3(normal))
        if theta > math.pi / 2.0:
            theta = math.pi - theta
        value = component_yield(
            dinode, self._stage_voltage(dinode),
            electron.kinetic_energy(_ELECTRON_M), theta, self._rng,
        )
        count = secondary_count(value, self.config.rounding)
        lo, hi = self.config.secondary_speed
        born = []
        for _ in range(count):
            dx, dy = cosine_direction(normal, self._rng)
            speed = self._rng.uniform(lo, hi)
            born.append(Particle.electron(
                electron.x, electron.y, dx * speed, dy * speed,
                source=dinode, generation=electron.generation + 1,
                birth_time=electron.birth_time,
            ))
        return born

    def _impact_normal(self, electron: Particle, comp: Component) -> tuple[float, float]:
        """Outward normal of the crossed edge, or the reversed velocity."""
        approach = (electron.vx, electron.vy)
        if len(electron.trajectory) >= 2:
            vertices = comp.vertices()
            crossing = locate_boundary_crossing(
                vertices, electron.trajectory[-2], electron.trajectory[-1],
            )
            if crossing is not None and crossing.exact:
                return outward_normal(
                    vertices[crossing.edge_start], vertices[crossing.edge_end], approach,
                )
        speed = math.hypot(*approach)
        if speed == 0.0:
            return 0.0, -1.0
        return -approach[0] / speed, -approach[1] / speed

    def _stage_voltage(self, dinode: Component) -> float:
        if self._layout is not None:
            return dinode.voltage - self._layout.previous_voltage(dinode)
        return abs(dinode.voltage)


# ── Helpers ──


def emit_photon(
    cathode: Component,
    velocity: tuple[float, float] = (1.0, 0.0),
) -> Particle:
    """Photon starting at the photocathode centre."""
    return Particle.photon(cathode.x, cathode.y, velocity[0], velocity[1])


def total_kinetic_energy(particles: list[Particle], mass: float = 1.0) -> float:
    """Σ ½·m·|v|² over ``particles`` in canvas units."""
    return sum(p.kinetic_energy(mass) for p in particles)
