"""Tube layout — the explicit simulation context.

A layout owns the ordered component list shared by the field model,
the frame engine and the exact-engine adapter. Dinodes form the
multiplication chain in list order.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
import uuid

from pmtsim.constants import DINODE_PLATE_LENGTH, DINODE_PLATE_THICKNESS
from pmtsim.models.component import (
    Component,
    ComponentType,
    SINGLETON_TYPES,
)
from pmtsim.models.shapes import Point2D, PolygonShape


@dataclass
class PmtLayout:
    """Complete electrode layout of a photomultiplier tube.

    Attributes:
        id: Unique layout identifier.
        name: User-given name.
        components: Electrodes in chain order.
        grid_enabled: Whether the focusing grid takes part in the chain.
    """
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    name: str = "New Tube"
    components: list[Component] = field(default_factory=list)
    grid_enabled: bool = False

    # ── Lookup ──

    def find(self, ctype: ComponentType) -> Component | None:
        """First component of the given type, or None."""
        for comp in self.components:
            if comp.type is ctype:
                return comp
        return None

    def of_type(self, *ctypes: ComponentType) -> list[Component]:
        return [c for c in self.components if c.type in ctypes]

    @property
    def photocathode(self) -> Component | None:
        return self.find(ComponentType.PHOTOCATHODE)

    @property
    def anode(self) -> Component | None:
        return self.find(ComponentType.ANODE)

    @property
    def dynodes(self) -> list[Component]:
        return self.of_type(ComponentType.DINODE)

    @property
    def absorbers(self) -> list[Component]:
        return self.of_type(ComponentType.GRID, ComponentType.ACCELERATOR)

    @property
    def active_absorbers(self) -> list[Component]:
        """Absorbers taking part in the simulation (grid only when enabled)."""
        return [c for c in self.absorbers
                if c.type is not ComponentType.GRID or self.grid_enabled]

    @property
    def chain(self) -> list[Component]:
        """Photocathode, dinodes and anode in chain order (missing ones skipped)."""
        ends = [self.photocathode, *self.dynodes, self.anode]
        return [c for c in ends if c is not None]

    # ── Editing ──

    def add_component(self, component: Component) -> Component:
        """Append a component.

        Raises:
            ValueError: If a singleton role is already present.
        """
        if component.type in SINGLETON_TYPES and self.find(component.type):
            raise ValueError(
                f"Layout already has a {component.type.value}"
            )
        self.components.append(component)
        return component

    def remove_component(self, component_id: str) -> Component:
        """Remove a dinode or custom shape by id.

        Raises:
            KeyError: If no component has that id.
            ValueError: If the component is a singleton electrode.
        """
        for i, comp in enumerate(self.components):
            if comp.id == component_id:
                if comp.is_singleton:
                    raise ValueError(
                        f"The {comp.type.value} cannot be removed"
                    )
                return self.components.pop(i)
        raise KeyError(f"Component not found: {component_id}")

    # ── Chain ──

    def previous_voltage(self, dynode: Component) -> float:
        """Voltage of the electrode preceding ``dynode`` in the chain.

        Previous dinode if any, else the enabled grid, else the
        photocathode, else 0 V.
        """
        chain = self.dynodes
        for i, comp in enumerate(chain):
            if comp is dynode and i > 0:
                return chain[i - 1].voltage
        grid = self.find(ComponentType.GRID)
        if self.grid_enabled and grid is not None:
            return grid.voltage
        cathode = self.photocathode
        return cathode.voltage if cathode is not None else 0.0

    def expected_chain_gain(self, stages: int | None = None) -> float:
        """Product of the noise-free per-stage yields of the first dinodes.

        Uses each dinode's simple-model parameters r · |ΔV|^β, i.e. the
        expected electron count after ``stages`` generations for one
        photoelectron.
        """
        chain = self.dynodes
        if stages is not None:
            chain = chain[:stages]
        gain = 1.0
        for dyn in chain:
            delta_v = abs(dyn.voltage - self.previous_voltage(dyn))
            gain *= dyn.params.r * math.pow(delta_v, dyn.params.beta)
        return gain


def _plate(centre: tuple[float, float], target: tuple[float, float]) -> PolygonShape:
    """Thin plate whose front face passes through ``centre``, facing ``target``."""
    cx, cy = centre
    dx, dy = target[0] - cx, target[1] - cy
    length = math.hypot(dx, dy)
    ux, uy = dx / length, dy / length
    half = DINODE_PLATE_LENGTH / 2.0
    wx, wy = -uy * half, ux * half
    tx, ty = ux * DINODE_PLATE_THICKNESS, uy * DINODE_PLATE_THICKNESS
    return PolygonShape([
        Point2D(cx + wx, cy + wy),
        Point2D(cx - wx, cy - wy),
        Point2D(cx - wx - tx, cy - wy - ty),
        Point2D(cx + wx - tx, cy + wy - ty),
    ])


def default_layout(
    num_dynodes: int = 6,
    width: float = 1000.0,
    height: float = 600.0,
    cathode_voltage: float = -100.0,
    anode_voltage: float = 1000.0,
) -> PmtLayout:
    """Linear-focused tube with dinodes zig-zagging between two rows.

    The photocathode sits on the top row; every following electrode
    alternates rows and is evenly spaced in x up to the anode. Dinode
    voltages rise linearly, so the chain is correctly biased. Each dinode
    is a thin plate facing the next electrode: an electron arriving from
    the previous stage strikes that face, and a secondary emitted along
    its normal heads for the next stage.
    """
    rows = (height * 0.25, height * 0.75)
    start_x = width * 0.1
    end_x = width * 0.9
    stages = num_dynodes + 1
    step = (end_x - start_x) / stages
    dv = (anode_voltage - cathode_voltage) / stages
    points = [(start_x + i * step, rows[i % 2]) for i in range(stages + 1)]

    layout = PmtLayout(name="Default Tube")
    layout.add_component(Component(
        type=ComponentType.PHOTOCATHODE, x=points[0][0], y=points[0][1],
        voltage=cathode_voltage, name="Photocathode",
    ))
    for i in range(1, stages):
        layout.add_component(Component(
            type=ComponentType.DINODE,
            x=points[i][0],
            y=points[i][1],
            voltage=cathode_voltage + i * dv,
            name=f"D{i}",
            shape=_plate(points[i], points[i + 1]),
        ))
    layout.add_component(Component(
        type=ComponentType.ANODE, x=points[-1][0], y=points[-1][1],
        voltage=anode_voltage, name="Anode",
    ))
    return layout
