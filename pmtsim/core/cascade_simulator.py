"""Exact cascade engine — relativistic tracking with dynode multiplication.

Tracks one electron at a time with the Boris pusher. Each particle ends
in one of four ways:

    LEFT_VOLUME  midpoint outside the tube (or step cap reached)
    HIT_ANODE    collected; running gain is the terminal gain
    HIT_GRID     absorbed; terminal gain 0
    HIT_DYNODE   strike; gain is multiplied by the yield and, if the
                 impact energy exceeds the spawn threshold, a secondary
                 is queued at the strike point

Secondaries are processed from an explicit pending list rather than by
recursion, so a long chain never grows the call stack. The per-sample
arrays of all particles are concatenated in emission order.

Positions are metres; electrode regions are queried in millimetres.
"""

from __future__ import annotations

import logging
import math
from typing import Callable

import numpy as np

from pmtsim.core.boris_pusher import BorisPusher, ParticleState
from pmtsim.core.geometry import locate_boundary_crossing, outward_normal
from pmtsim.core.secondary_yield import (
    component_yield,
    cosine_direction,
    departure_energy,
    sternglass_yield,
)
from pmtsim.core.units import ev_to_speed, m_to_mm, mm_to_m, speed_to_ev
from pmtsim.core.vector_math import angle_between, norm, unit, vec3
from pmtsim.models.cascade import (
    IMPACT_ANODE,
    IMPACT_GRID,
    IMPACT_LEFT_VOLUME,
    CascadeConfig,
    CascadeOutcome,
    CascadeResult,
    CollisionEvent,
    DynodeRegion,
)

logger = logging.getLogger(__name__)

# Steps between progress callbacks inside one particle track
_PROGRESS_STRIDE = 5000

ProgressCallback = Callable[[int], None]


class CascadeSimulator:
    """Runs one exact cascade for a frozen configuration.

    Args:
        config: Initial state, fields, regions and run limits.
        pusher: Integrator; a fresh BorisPusher by default.
        progress_callback: Called with the number of finished particles
            between particles and periodically during a track. Raise
            InterruptedError from it to abort the run.

    Usage:
        result = CascadeSimulator(config).run()
        print(result.outcome, result.gain)
    """

    def __init__(
        self,
        config: CascadeConfig,
        pusher: BorisPusher | None = None,
        progress_callback: ProgressCallback | None = None,
    ) -> None:
        self.config = config
        self._pusher = pusher or BorisPusher()
        self._progress = progress_callback
        self._rng = config.rng if config.rng is not None else np.random.default_rng()
        self._event_level = logging.INFO if config.trace else logging.DEBUG
        self._done = 0

    def run(self) -> CascadeResult:
        """Track the primary and every secondary it spawns."""
        cfg = self.config
        result = CascadeResult()
        primary = ParticleState.from_velocity(cfg.t0, cfg.x0, cfg.v0)
        pending: list[tuple[ParticleState, float, int]] = [(primary, 1.0, 0)]

        while pending:
            state, gain, generation = pending.pop()
            self._done = result.generations
            if self._progress is not None:
                self._progress(self._done)

            if generation > cfg.max_generations:
                logger.warning(
                    "Generation ceiling %d reached; cascade stopped",
                    cfg.max_generations,
                )
                result.extend(CascadeResult(
                    impacts=[IMPACT_LEFT_VOLUME],
                    gain=0.0,
                    outcome=CascadeOutcome.LEFT_VOLUME,
                    depth_cap_hit=True,
                ))
                break

            segment, secondary, gain = self._track(state, gain, generation)
            result.extend(segment)
            if secondary is not None:
                pending.append((secondary, gain, generation + 1))

        self._log(
            "Cascade finished: outcome=%s gain=%.4g particles=%d",
            result.outcome.value, result.gain, result.generations,
        )
        return result

    # ── Single particle ──

    def _track(
        self,
        state: ParticleState,
        gain: float,
        generation: int,
    ) -> tuple[CascadeResult, ParticleState | None, float]:
        """Integrate one particle until it terminates.

        Returns the particle's segment, the queued secondary (or None)
        and the running gain after this particle.
        """
        cfg = self.config
        xs = [state.x]
        ts = [state.t]

        for step in range(1, cfg.max_steps + 1):
            if self._progress is not None and step % _PROGRESS_STRIDE == 0:
                self._progress(self._done)

            if cfg.volume is not None:
                x_mid = state.x + state.u * (cfg.dt / (2.0 * state.gamma))
                if not cfg.volume.is_interior(m_to_mm(x_mid[0]), m_to_mm(x_mid[1])):
                    self._log("Particle left the tube volume (generation %d)", generation)
                    return self._segment(
                        xs, ts, gain, 0.0, CascadeOutcome.LEFT_VOLUME,
                        IMPACT_LEFT_VOLUME,
                    ), None, 0.0

            new = self._pusher.step(state, cfg.dt, cfg.sampler)
            px_mm = m_to_mm(new.x[0])
            py_mm = m_to_mm(new.x[1])

            for h, anode in enumerate(cfg.anodes):
                if anode.is_interior(px_mm, py_mm):
                    self._log("Particle reached anode %d, gain %.4g", h, gain)
                    return self._segment(
                        xs, ts, gain, gain, CascadeOutcome.HIT_ANODE, IMPACT_ANODE,
                    ), None, gain

            for h, grid in enumerate(cfg.grids):
                if grid.is_interior(px_mm, py_mm):
                    self._log("Particle captured by grid %d", h)
                    return self._segment(
                        xs, ts, gain, 0.0, CascadeOutcome.HIT_GRID, IMPACT_GRID,
                    ), None, 0.0

            for k, dynode in enumerate(cfg.dynodes):
                if dynode.is_interior(px_mm, py_mm):
                    return self._strike(k, dynode, state, new, xs, ts, gain, generation)

            xs.append(new.x)
            ts.append(new.t)
            state = new

        logger.warning(
            "Step cap %d reached (generation %d); particle dropped",
            cfg.max_steps, generation,
        )
        segment = self._segment(
            xs, ts, gain, 0.0, CascadeOutcome.LEFT_VOLUME, IMPACT_LEFT_VOLUME,
        )
        segment.step_cap_hit = True
        return segment, None, 0.0

    def _strike(
        self,
        k: int,
        dynode: DynodeRegion,
        before: ParticleState,
        after: ParticleState,
        xs: list,
        ts: list,
        gain: float,
        generation: int,
    ) -> tuple[CascadeResult, ParticleState | None, float]:
        cfg = self.config
        prev_mm = (m_to_mm(before.x[0]), m_to_mm(before.x[1]))
        curr_mm = (m_to_mm(after.x[0]), m_to_mm(after.x[1]))
        approach = (curr_mm[0] - prev_mm[0], curr_mm[1] - prev_mm[1])

        vertices = dynode.vertices_mm()
        crossing = locate_boundary_crossing(vertices, prev_mm, curr_mm)
        if crossing is None:
            impact_mm = prev_mm
            exact = False
            normal = tuple(-unit(vec3(approach))[:2])
        else:
            impact_mm = (crossing.x, crossing.y)
            exact = crossing.exact
            normal = outward_normal(
                vertices[crossing.edge_start], vertices[crossing.edge_end], approach,
            )

        theta = angle_between(-vec3(approach), vec3(normal))
        if theta > math.pi / 2.0:
            theta = math.pi - theta

        velocity = after.velocity
        energy = speed_to_ev(norm(velocity), after.mass, after.charge)
        yield_value = self._yield(k, dynode, energy, theta)
        gain *= yield_value

        event = CollisionEvent(
            x_mm=impact_mm[0], y_mm=impact_mm[1],
            energy_ev=energy, theta=theta, dynode_index=k,
            yield_value=yield_value, normal=(float(normal[0]), float(normal[1])),
            generation=generation, exact=exact,
        )
        self._log(
            "Dynode %d strike: E=%.2f eV theta=%.3f rad yield=%.3f gain=%.4g",
            k, energy, theta, yield_value, gain,
        )

        if energy <= cfg.spawn_threshold_ev:
            self._log("Captured at dynode %d (E=%.2f eV)", k, energy)
            segment = self._segment(
                xs, ts, gain, 0.0, CascadeOutcome.HIT_DYNODE, k,
            )
            segment.collisions.append(event)
            return segment, None, 0.0

        if cfg.random_angle:
            direction = cosine_direction(normal, self._rng)
        else:
            direction = normal
        v_sec = ev_to_speed(self._emission_energy(), after.mass, after.charge)
        if exact:
            start = (mm_to_m(impact_mm[0]), mm_to_m(impact_mm[1]), 0.0)
        else:
            start = tuple(before.x)
        secondary = ParticleState.from_velocity(
            after.t, start,
            (direction[0] * v_sec, direction[1] * v_sec, 0.0),
            after.charge, after.mass,
        )

        segment = self._segment(xs, ts, gain, gain, CascadeOutcome.HIT_DYNODE, k)
        segment.collisions.append(event)
        return segment, secondary, gain

    # ── Helpers ──

    def _yield(self, k: int, dynode: DynodeRegion, energy: float, theta: float) -> float:
        cfg = self.config
        component = getattr(dynode, "component", None)
        if cfg.use_component_yield and component is not None:
            return component_yield(
                component, self._stage_delta_v(k), energy, theta, self._rng,
            )
        return sternglass_yield(energy, theta, self._rng, cfg.sey)

    def _emission_energy(self) -> float:
        """Departure energy of a new secondary [eV]."""
        cfg = self.config
        if cfg.sample_departure_energy:
            return departure_energy(cfg.departure_sigma_ev, self._rng)
        return cfg.secondary_energy_ev

    def _stage_delta_v(self, k: int) -> float:
        """Voltage step into dynode ``k`` (previous dynode or cathode)."""
        dynodes = self.config.dynodes
        explicit = getattr(dynodes[k], "delta_v", None)
        if explicit is not None:
            return explicit
        previous = (getattr(dynodes[k - 1], "voltage", 0.0) if k > 0
                    else self.config.cathode_voltage)
        return getattr(dynodes[k], "voltage", 0.0) - previous

    def _segment(
        self,
        xs: list,
        ts: list,
        sample_gain: float,
        terminal_gain: float,
        outcome: CascadeOutcome,
        impact: int,
    ) -> CascadeResult:
        return CascadeResult(
            trajectory=np.array(xs, dtype=np.float64).reshape(-1, 3),
            times=np.array(ts, dtype=np.float64),
            gains=np.full(len(ts), sample_gain, dtype=np.float64),
            impacts=[impact],
            gain=terminal_gain,
            outcome=outcome,
            generations=1,
        )

    def _log(self, msg: str, *args) -> None:
        logger.log(self._event_level, msg, *args)


def simulate_cascade(
    config: CascadeConfig,
    progress_callback: ProgressCallback | None = None,
) -> CascadeResult:
    """Run one exact cascade; convenience wrapper around CascadeSimulator."""
    return CascadeSimulator(config, progress_callback=progress_callback).run()
