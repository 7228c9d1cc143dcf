"""Relativistic Boris particle pusher.

Advances one charged particle by one time step in SI units (m, s, V/m, T)
using the Higuera-Cary form of the Boris scheme: drift half a step, sample
the fields at the midpoint, half electric kick, magnetic rotation,
half electric kick, drift the second half.

State is carried as the proper velocity u = γ·v, so |v| < c holds for
any field strength.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np

from pmtsim.constants import (
    ELECTRON_CHARGE,
    ELECTRON_MASS,
    SIGMA_FLOOR,
    SPEED_OF_LIGHT,
    TAU_NEGLIGIBLE,
)
from pmtsim.core.field_model import FieldSampler
from pmtsim.core.vector_math import Vec3, cross, dot, norm2, vec3


@dataclass
class ParticleState:
    """Phase-space state of a charged particle.

    Attributes:
        t: Time [s].
        x: Position [m], length 3.
        u: Proper velocity γ·v [m/s], length 3.
        charge: Particle charge [C].
        mass: Rest mass [kg].
    """
    t: float
    x: Vec3
    u: Vec3
    charge: float = ELECTRON_CHARGE
    mass: float = ELECTRON_MASS

    @classmethod
    def from_velocity(
        cls,
        t: float,
        x,
        v,
        charge: float = ELECTRON_CHARGE,
        mass: float = ELECTRON_MASS,
    ) -> ParticleState:
        """Build a state from an ordinary velocity (u = γ·v)."""
        v3 = vec3(v)
        beta2 = norm2(v3) / (SPEED_OF_LIGHT * SPEED_OF_LIGHT)
        if beta2 >= 1.0:
            raise ValueError("Initial speed must be below the speed of light")
        gamma = 1.0 / math.sqrt(1.0 - beta2)
        return cls(t, vec3(x), v3 * gamma, charge, mass)

    @property
    def gamma(self) -> float:
        return lorentz_factor(self.u)

    @property
    def velocity(self) -> Vec3:
        return self.u / self.gamma


def lorentz_factor(u: Vec3) -> float:
    """γ = sqrt(1 + |u|²/c²)."""
    return math.sqrt(1.0 + norm2(u) / (SPEED_OF_LIGHT * SPEED_OF_LIGHT))


def boris_rotation(u_minus: Vec3, t: Vec3) -> Vec3:
    """Magnetic rotation of the half-kicked velocity.

    u⁺ = s·(u⁻ + (u⁻·t)·t + u⁻×t) with s = 1/(1 + |t|²); the caller
    adds u⁺×t and the second electric half kick.
    """
    s = 1.0 / (1.0 + norm2(t))
    return s * (u_minus + dot(u_minus, t) * t + cross(u_minus, t))


class BorisPusher:
    """Stateless single-step integrator.

    Usage:
        pusher = BorisPusher()
        state = pusher.step(state, 1e-12, sampler)
    """

    def step(
        self,
        state: ParticleState,
        dt: float,
        sampler: FieldSampler,
    ) -> ParticleState:
        """Advance ``state`` by ``dt`` seconds through the fields of ``sampler``."""
        c2 = SPEED_OF_LIGHT * SPEED_OF_LIGHT
        u = state.u
        gamma = lorentz_factor(u)

        x_mid = state.x + u * (dt / (2.0 * gamma))
        e_field, b_field = sampler.sample(x_mid[0], x_mid[1])

        q_dt_2m = state.charge * dt / (2.0 * state.mass)
        u_minus = u + q_dt_2m * e_field
        tau = q_dt_2m * b_field

        tau2 = norm2(tau)
        if tau2 <= TAU_NEGLIGIBLE:
            t_vec = np.zeros(3)
        else:
            gamma_minus2 = 1.0 + norm2(u_minus) / c2
            sigma = max(SIGMA_FLOOR, gamma_minus2 - tau2)
            u_star = dot(u_minus, tau) / SPEED_OF_LIGHT
            gamma_plus = math.sqrt(
                (sigma + math.sqrt(sigma * sigma + 4.0 * (tau2 + u_star * u_star))) / 2.0
            )
            t_vec = tau / gamma_plus

        u_plus = boris_rotation(u_minus, t_vec)
        u_new = u_plus + q_dt_2m * e_field + cross(u_plus, t_vec)

        gamma_new = lorentz_factor(u_new)
        v_new = u_new / gamma_new
        x_new = x_mid + v_new * (dt / 2.0)
        return ParticleState(state.t + dt, x_new, u_new, state.charge, state.mass)


def nonrelativistic_velocity(
    v: tuple[float, float],
    e_field: tuple[float, float],
    b_field: tuple[float, float, float],
    q_over_m: float,
    dt: float,
) -> tuple[float, float]:
    """Planar Boris velocity update with γ ≡ 1.

    Half electric kick, magnetic rotation, second half kick. Velocity
    stays in the plane; any out-of-plane part of the rotation is dropped.
    Used by the interactive engine in canvas units.
    """
    h = 0.5 * q_over_m * dt
    ux = v[0] + h * e_field[0]
    uy = v[1] + h * e_field[1]
    if any(b_field):
        t = h * vec3(b_field)
        u_minus = np.array([ux, uy, 0.0])
        u_plus = boris_rotation(u_minus, t)
        rotated = u_plus + cross(u_plus, t)
        ux, uy = float(rotated[0]), float(rotated[1])
    return ux + h * e_field[0], uy + h * e_field[1]
