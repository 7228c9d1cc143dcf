"""Unit conversion module — single conversion point between layout and core.

Layout (canvas) units:
    Length   : px
    Angle    : degree

Geometry predicates of the exact engine:
    Length   : mm

Core (exact engine) units:
    Length   : m
    Time     : s
    Energy   : eV
    Angle    : radian
"""

import math
from typing import NewType

from pmtsim.constants import ELECTRON_CHARGE, ELECTRON_MASS

Px = NewType('Px', float)
Mm = NewType('Mm', float)
Meter = NewType('Meter', float)
Ev = NewType('Ev', float)
Radian = NewType('Radian', float)


# ---------------------------------------------------------------------------
# Length conversions
# ---------------------------------------------------------------------------

def px_to_mm(px: float, mm_per_px: float) -> Mm:
    """Canvas (px) → geometry (mm)."""
    return Mm(px * mm_per_px)


def mm_to_px(mm: float, mm_per_px: float) -> Px:
    """Geometry (mm) → canvas (px)."""
    return Px(mm / mm_per_px)


def mm_to_m(mm: float) -> Meter:
    return Meter(mm * 1e-3)


def m_to_mm(m: float) -> Mm:
    return Mm(m * 1e3)


# ---------------------------------------------------------------------------
# Angle conversions
# ---------------------------------------------------------------------------

def deg_to_rad(deg: float) -> Radian:
    """Degree → Radian."""
    return Radian(deg * (math.pi / 180.0))


def rad_to_deg(rad: float) -> float:
    """Radian → Degree."""
    return rad * (180.0 / math.pi)


# ---------------------------------------------------------------------------
# Electron energy ↔ speed (non-relativistic)
# ---------------------------------------------------------------------------

def speed_to_ev(speed: float,
                mass: float = ELECTRON_MASS,
                charge: float = ELECTRON_CHARGE) -> Ev:
    """Kinetic energy ½·(m/|q|)·v² expressed in eV.

    Args:
        speed: Particle speed [m/s].
        mass: Particle mass [kg].
        charge: Particle charge [C].

    Returns:
        Kinetic energy [eV].
    """
    return Ev(0.5 * (mass / abs(charge)) * speed * speed)


def ev_to_speed(energy_ev: float,
                mass: float = ELECTRON_MASS,
                charge: float = ELECTRON_CHARGE) -> float:
    """Speed [m/s] of a particle with kinetic energy ``energy_ev``."""
    return math.sqrt(2.0 * max(energy_ev, 0.0) * abs(charge) / mass)
