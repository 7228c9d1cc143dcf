"""Electrode component models.

A component is a charged electrode placed on the layout canvas. Its
centre and voltage drive the field model; its shape drives collision
detection. Positions are in layout units (px).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
import uuid

from pmtsim.constants import (
    DEFAULT_HALF_WIDTH,
    DYNODE_ALPHA,
    DYNODE_E_0,
    DYNODE_GAMMA,
    DYNODE_LAMBDA,
    DYNODE_PHI_0,
    DYNODE_PHI_W,
    DYNODE_SIGMA_E,
    DYNODE_SIMPLE_BETA,
    DYNODE_SIMPLE_R,
)
from pmtsim.core.geometry import contains_point, shape_vertices
from pmtsim.models.shapes import AnyShape, Point2D, RectangleShape


class ComponentType(Enum):
    PHOTOCATHODE = "photocathode"
    ANODE = "anode"
    DINODE = "dinode"
    GRID = "grid"
    ACCELERATOR = "accelerator"
    CUSTOM = "custom"


# One of each per layout; never removed by the user.
SINGLETON_TYPES = frozenset({
    ComponentType.PHOTOCATHODE,
    ComponentType.ANODE,
    ComponentType.GRID,
    ComponentType.ACCELERATOR,
})

# Electrodes that absorb electrons with zero transmission.
ABSORBER_TYPES = frozenset({ComponentType.GRID, ComponentType.ACCELERATOR})


class YieldModel(Enum):
    """Secondary-emission model selected per dinode.

    SIMPLE:     r · ΔV^β (voltage-difference power law).
    ADVANCED:   escape probability × randomized kinetic term × scale factors.
    STERNGLASS: energy/angle empirical curve with ±10 % jitter.
    VAUGHAN:    material-table curve (CuBeO, Cs3Sb).
    """
    SIMPLE = "simple"
    ADVANCED = "advanced"
    STERNGLASS = "sternglass"
    VAUGHAN = "vaughan"


@dataclass
class DynodeParams:
    """Per-dinode yield parameters.

    Attributes:
        r: Simple-model multiplier.
        beta: Simple-model exponent on ΔV.
        phi_w: Advanced model work-function-like barrier [eV].
        phi_0: Advanced model base energy [eV].
        sigma_E: Energy spread [eV].
        E_0: Advanced model reference energy [eV].
        alpha: Advanced model scale factor.
        gamma: Advanced model scale factor.
        lambda_: Advanced model scale factor.
        material: Vaughan material key.
    """
    r: float = DYNODE_SIMPLE_R
    beta: float = DYNODE_SIMPLE_BETA
    phi_w: float = DYNODE_PHI_W
    phi_0: float = DYNODE_PHI_0
    sigma_E: float = DYNODE_SIGMA_E
    E_0: float = DYNODE_E_0
    alpha: float = DYNODE_ALPHA
    gamma: float = DYNODE_GAMMA
    lambda_: float = DYNODE_LAMBDA
    material: str = "CuBeO"


@dataclass
class Component:
    """Single electrode of the tube.

    Attributes:
        type: Electrode role.
        x: Centre X [px].
        y: Centre Y [px].
        voltage: Bias voltage [V], signed.
        shape: Explicit outline, or None for the implicit square of
            half-width DEFAULT_HALF_WIDTH around the centre.
        yield_model: Secondary-emission model (dinodes only).
        params: Yield-model parameters (dinodes only).
        name: Display name.
        id: Unique identifier.
    """
    type: ComponentType = ComponentType.DINODE
    x: float = 0.0
    y: float = 0.0
    voltage: float = 0.0
    shape: AnyShape | None = None
    yield_model: YieldModel = YieldModel.SIMPLE
    params: DynodeParams = field(default_factory=DynodeParams)
    name: str = ""
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    @property
    def effective_shape(self) -> AnyShape:
        if self.shape is None:
            return RectangleShape.centered(self.x, self.y, DEFAULT_HALF_WIDTH)
        return self.shape

    @property
    def is_singleton(self) -> bool:
        return self.type in SINGLETON_TYPES

    @property
    def is_absorber(self) -> bool:
        return self.type in ABSORBER_TYPES

    def contains_point(self, x: float, y: float) -> bool:
        """True if the layout point (x, y) is inside the electrode."""
        return contains_point(self.effective_shape, x, y)

    def vertices(self) -> list[Point2D]:
        return shape_vertices(self.effective_shape)
