"""Layout → exact-engine adapter.

Snapshots a pixel-space PmtLayout into a CascadeConfig: electrode outlines
become millimetre ShapeRegions, the field (divider-chain stages by
default, point charges on request) is evaluated in metres, and the
photoelectron starts at the photocathode aimed at the first dinode.

Outlines, voltages and field sources are copied, so the layout can be
edited freely after the call.
"""

from __future__ import annotations

import math

import numpy as np

from pmtsim.constants import (
    CANVAS_HEIGHT,
    CANVAS_WIDTH,
    DEFAULT_DELTA_T,
    DEFAULT_MM_PER_PX,
    FIELD_EPSILON_PX,
)
from pmtsim.core.field_model import FieldModel, StageField
from pmtsim.core.units import ev_to_speed, mm_to_m, px_to_mm
from pmtsim.models.cascade import CascadeConfig, ShapeRegion
from pmtsim.models.component import Component
from pmtsim.models.layout import PmtLayout
from pmtsim.models.shapes import (
    AnyShape,
    EllipseShape,
    Point2D,
    PolygonShape,
    RectangleShape,
)


def scale_shape(shape: AnyShape, factor: float) -> AnyShape:
    """Copy of ``shape`` with every coordinate multiplied by ``factor``."""
    if isinstance(shape, RectangleShape):
        return RectangleShape(shape.x * factor, shape.y * factor,
                              shape.w * factor, shape.h * factor)
    if isinstance(shape, EllipseShape):
        return EllipseShape(shape.x * factor, shape.y * factor,
                            shape.w * factor, shape.h * factor)
    if isinstance(shape, PolygonShape):
        return PolygonShape([Point2D(v.x * factor, v.y * factor)
                             for v in shape.vertices])
    raise ValueError(f"Unknown shape type: {type(shape)}")


def component_region(
    component: Component,
    mm_per_px: float,
    delta_v: float | None = None,
) -> ShapeRegion:
    """Millimetre region of one electrode."""
    return ShapeRegion(
        shape=scale_shape(component.effective_shape, mm_per_px),
        voltage=component.voltage,
        name=component.name or component.type.value,
        component=component,
        delta_v=delta_v,
    )


FIELD_MODELS = ("stage", "coulomb")


def layout_field(
    layout: PmtLayout,
    m_per_px: float,
    field_model: str = "stage",
) -> StageField | FieldModel:
    """Field of ``layout`` evaluated in metres.

    ``"stage"`` gives the divider-chain StageField over cathode, dinodes
    and anode; ``"coulomb"`` the point-charge superposition over every
    component.

    Raises:
        ValueError: For an unknown ``field_model``.
    """
    if field_model == "stage":
        return StageField(layout.chain, length_scale=m_per_px)
    if field_model == "coulomb":
        return FieldModel.from_components(
            layout.components,
            length_scale=m_per_px,
            epsilon=FIELD_EPSILON_PX * m_per_px * m_per_px,
        )
    raise ValueError(
        f"Unknown field model: {field_model!r} (expected one of {FIELD_MODELS})"
    )


def _first_target(layout: PmtLayout, start: tuple[float, float]) -> tuple[float, float]:
    """Unit direction from ``start`` to the first dinode (or the anode)."""
    targets = layout.dynodes or ([layout.anode] if layout.anode else [])
    if targets:
        dx, dy = targets[0].x - start[0], targets[0].y - start[1]
        if dx or dy:
            return dx, dy
    return 1.0, 0.0


def build_cascade_config(
    layout: PmtLayout,
    mm_per_px: float = DEFAULT_MM_PER_PX,
    initial_energy_ev: float = 1.0,
    direction: tuple[float, float] | None = None,
    start: tuple[float, float] | None = None,
    width_px: float = CANVAS_WIDTH,
    height_px: float = CANVAS_HEIGHT,
    dt: float = DEFAULT_DELTA_T,
    field_model: str = "stage",
    field_scale: float = 1.0,
    **kwargs,
) -> CascadeConfig:
    """Exact-engine configuration for ``layout``.

    Args:
        layout: Pixel-space tube layout.
        mm_per_px: Drawing scale.
        initial_energy_ev: Photoelectron kinetic energy [eV].
        direction: Photoelectron direction (normalized here); toward the
            first dinode by default.
        start: Start point [px]; the photocathode centre by default.
        width_px: Tube volume width [px]; the volume is the canvas.
        height_px: Tube volume height [px].
        dt: Integration step [s].
        field_model: ``"stage"`` (divider chain) or ``"coulomb"``
            (point charges), see ``layout_field``.
        field_scale: Multiplier applied to every field component.
        **kwargs: Any further CascadeConfig field (trace, random_angle,
            use_component_yield, rng, caps ...).

    Raises:
        ValueError: If ``mm_per_px`` is not positive, the field model is
            unknown, or no start point is given and the layout has no
            photocathode.
    """
    if mm_per_px <= 0.0:
        raise ValueError(f"mm_per_px must be positive, got {mm_per_px}")

    cathode = layout.photocathode
    if start is None:
        if cathode is None:
            raise ValueError("Layout has no photocathode; pass a start point")
        start = (cathode.x, cathode.y)
    if direction is None:
        direction = _first_target(layout, start)

    m_per_px = mm_to_m(mm_per_px)
    field = layout_field(layout, m_per_px, field_model)

    anode = layout.anode
    anodes = [component_region(anode, mm_per_px)] if anode is not None else []
    dynodes = [
        component_region(d, mm_per_px, d.voltage - layout.previous_voltage(d))
        for d in layout.dynodes
    ]
    grids = [component_region(c, mm_per_px) for c in layout.active_absorbers]
    volume = ShapeRegion(
        RectangleShape(0.0, 0.0, px_to_mm(width_px, mm_per_px),
                       px_to_mm(height_px, mm_per_px)),
        name="tube",
    )

    norm = math.hypot(direction[0], direction[1]) or 1.0
    speed = ev_to_speed(initial_energy_ev)
    v0 = (direction[0] / norm * speed, direction[1] / norm * speed)

    kwargs.setdefault("cathode_voltage", cathode.voltage if cathode else 0.0)
    return CascadeConfig(
        x0=np.array([start[0] * m_per_px, start[1] * m_per_px, 0.0]),
        v0=v0,
        sampler=field.as_sampler(field_scale),
        anodes=anodes,
        dynodes=dynodes,
        grids=grids,
        volume=volume,
        dt=dt,
        **kwargs,
    )
