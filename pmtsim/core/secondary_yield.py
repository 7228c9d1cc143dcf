"""Secondary electron yield (SEY) models and emission sampling.

Four yield formulas are exposed; callers pick one per dinode:

* ``sternglass_yield`` — energy/angle curve used by the exact cascade.
* ``simple_yield``     — r · |ΔV|^β power law in the stage voltage.
* ``advanced_yield``   — escape probability × randomized kinetic term.
* ``vaughan_yield``    — material-table curve (CuBeO, Cs3Sb).

Yields are real-valued expectations. Callers that need a particle count
use ``secondary_count``; fractional remainders are dropped, never carried
between strikes.

All energies in eV, angles in radian. Random draws come from an injected
numpy Generator so tests can seed them.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np

from pmtsim.constants import (
    SEY_ANGLE_EXPONENT,
    SEY_DELTA_MAX,
    SEY_E_MAX_EV,
    SEY_JITTER,
    SEY_MIN_COS,
    SEY_MIN_YIELD,
    SEY_SHAPE,
    SEY_THRESHOLD_EV,
)
from pmtsim.core.vector_math import rotate_z
from pmtsim.models.component import Component, DynodeParams, YieldModel


@dataclass(frozen=True)
class SternglassParams:
    """Parameters of the Sternglass-type yield curve.

    Attributes:
        delta_max: Peak yield.
        e_max: Energy of peak yield [eV].
        shape: Shape parameter s.
        threshold: Energy below which yield is exactly zero [eV].
        angle_exponent: Exponent on 1/cos(θ).
        jitter: Half-width of the multiplicative noise band (0.1 = ±10 %).
    """
    delta_max: float = SEY_DELTA_MAX
    e_max: float = SEY_E_MAX_EV
    shape: float = SEY_SHAPE
    threshold: float = SEY_THRESHOLD_EV
    angle_exponent: float = SEY_ANGLE_EXPONENT
    jitter: float = SEY_JITTER


@dataclass(frozen=True)
class VaughanMaterial:
    """Dynode coating parameters for the Vaughan-type curve.

    Attributes:
        delta_0: Yield at low energy.
        e_0: Energy up to which the yield stays at delta_0 [eV].
        delta_max: Peak yield.
        e_max: Energy of peak yield at normal incidence [eV].
        s: Angular/roughness factor.
        alpha: Surface form factor.
    """
    delta_0: float
    e_0: float
    delta_max: float
    e_max: float
    s: float = 1.35
    alpha: float = 0.9


VAUGHAN_MATERIALS: dict[str, VaughanMaterial] = {
    "CuBeO": VaughanMaterial(delta_0=0.5, e_0=400.0, delta_max=2.5, e_max=1500.0),
    "Cs3Sb": VaughanMaterial(delta_0=0.6, e_0=350.0, delta_max=3.0, e_max=1300.0),
}


def _rng_or_default(rng: np.random.Generator | None) -> np.random.Generator:
    return rng if rng is not None else np.random.default_rng()


# ── Yield formulas ──


def sternglass_noise_free(
    energy_ev: float,
    theta: float,
    params: SternglassParams = SternglassParams(),
) -> float:
    """Sternglass curve without the statistical jitter.

    δ = δmax·s·r·exp(−s·r) / cos(θ)^0.7 with r = E/Emax; zero below
    threshold. cos(θ) is floored so grazing incidence stays finite.
    Above threshold the result never drops below SEY_MIN_YIELD, where
    exp(−s·r) would otherwise underflow to 0.0 at very high energy.
    """
    if energy_ev < params.threshold:
        return 0.0
    ratio = energy_ev / params.e_max
    delta = params.delta_max * params.shape * ratio * math.exp(-params.shape * ratio)
    cos_theta = max(abs(math.cos(theta)), SEY_MIN_COS)
    return max(delta / math.pow(cos_theta, params.angle_exponent), SEY_MIN_YIELD)


def sternglass_yield(
    energy_ev: float,
    theta: float,
    rng: np.random.Generator | None = None,
    params: SternglassParams = SternglassParams(),
) -> float:
    """Sternglass yield with a uniform ±jitter multiplicative factor."""
    base = sternglass_noise_free(energy_ev, theta, params)
    if base == 0.0:
        return 0.0
    variability = _rng_or_default(rng).uniform(1.0 - params.jitter, 1.0 + params.jitter)
    return max(0.0, base * variability)


def simple_yield(delta_v: float, r: float, beta: float) -> float:
    """Power law r·|ΔV|^β; no energy or angle dependence."""
    return r * math.pow(abs(delta_v), beta)


def advanced_yield(
    params: DynodeParams,
    rng: np.random.Generator | None = None,
) -> float:
    """exp(−φw/E0) · (φ0 + σE·U(0,1)) · α·γ·λ."""
    e_0 = params.E_0 or 1.0
    probability = math.exp(-params.phi_w / e_0)
    energy = params.phi_0 + params.sigma_E * _rng_or_default(rng).random()
    return probability * energy * params.alpha * params.gamma * params.lambda_


def vaughan_yield(energy_ev: float, theta: float, material: str = "CuBeO") -> float:
    """Vaughan-type yield for a tabulated dynode coating.

    The peak energy grows with incidence angle through
    xm = α·(1 + v·s)² with v = θ/(π/2). Unknown materials fall back to
    CuBeO.
    """
    mat = VAUGHAN_MATERIALS.get(material, VAUGHAN_MATERIALS["CuBeO"])
    if energy_ev <= mat.e_0:
        return mat.delta_0
    v = theta / (math.pi / 2.0)
    xm = mat.alpha * (1.0 + v * mat.s) ** 2
    x = energy_ev / (xm * mat.e_max)
    return mat.delta_max * x * math.exp(1.0 - x)


def component_yield(
    component: Component,
    delta_v: float,
    energy_ev: float = 0.0,
    theta: float = 0.0,
    rng: np.random.Generator | None = None,
) -> float:
    """Yield of one strike on ``component`` using its selected model.

    Args:
        component: Struck dinode.
        delta_v: Voltage difference to the previous electrode [V].
        energy_ev: Impact energy [eV] (STERNGLASS, VAUGHAN).
        theta: Incidence angle [radian] (STERNGLASS, VAUGHAN).
        rng: Random generator.
    """
    model = component.yield_model
    p = component.params
    if model is YieldModel.SIMPLE:
        return simple_yield(delta_v, p.r, p.beta)
    if model is YieldModel.ADVANCED:
        return advanced_yield(p, rng)
    if model is YieldModel.STERNGLASS:
        return sternglass_yield(energy_ev, theta, rng)
    if model is YieldModel.VAUGHAN:
        return vaughan_yield(energy_ev, theta, p.material)
    raise ValueError(f"Unknown yield model: {model!r}")


def secondary_count(yield_value: float, mode: str = "floor") -> int:
    """Integer number of secondaries for a real-valued yield.

    Args:
        yield_value: Expected yield.
        mode: ``"floor"`` or ``"round"``.
    """
    if yield_value <= 0.0:
        return 0
    if mode == "floor":
        return int(math.floor(yield_value))
    if mode == "round":
        return int(round(yield_value))
    raise ValueError(f"Unknown rounding mode: {mode!r}")


# ── Emission sampling ──


def departure_energy(
    sigma_e: float = 2.2,
    rng: np.random.Generator | None = None,
) -> float:
    """Secondary departure energy [eV], −2·σE·ln(1 − U)."""
    u = _rng_or_default(rng).random()
    return -2.0 * sigma_e * math.log(1.0 - u)


def cosine_direction(
    normal: tuple[float, float],
    rng: np.random.Generator | None = None,
) -> tuple[float, float]:
    """Unit emission direction drawn from a cosine-law hemisphere.

    A direction is sampled with polar angle θ = asin(√U) about the
    surface normal and uniform azimuth, then projected onto the plane:
    the in-plane tilt is atan2(sinθ·sinφ, cosθ), applied as a rotation
    of ``normal``. The result always points away from the surface.
    """
    rng = _rng_or_default(rng)
    th = math.asin(math.sqrt(rng.random()))
    phi = 2.0 * math.pi * rng.random()
    tilt = math.atan2(math.sin(th) * math.sin(phi), math.cos(th))
    dx, dy, _ = rotate_z(normal, tilt)
    return float(dx), float(dy)
