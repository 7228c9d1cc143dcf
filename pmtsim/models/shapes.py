"""Electrode shape models.

One tagged variant per drawable outline. All coordinates are in the
layout's own length unit (px for canvas layouts).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class ShapeType(Enum):
    RECTANGLE = "rectangle"
    POLYGON = "polygon"
    ELLIPSE = "ellipse"


@dataclass
class Point2D:
    """2D point in layout coordinates."""
    x: float = 0.0
    y: float = 0.0


@dataclass
class RectangleShape:
    """Axis-aligned box given by its origin corner and extent.

    Width and height may be negative (a box dragged up/left on the
    canvas); ``normalized()`` returns the equivalent positive box.
    """
    x: float = 0.0
    y: float = 0.0
    w: float = 0.0
    h: float = 0.0
    type: ShapeType = field(default=ShapeType.RECTANGLE, init=False)

    @classmethod
    def centered(cls, cx: float, cy: float, half_width: float) -> RectangleShape:
        """Square of side 2·half_width around (cx, cy)."""
        return cls(cx - half_width, cy - half_width, 2 * half_width, 2 * half_width)

    def normalized(self) -> RectangleShape:
        x, w = (self.x + self.w, -self.w) if self.w < 0 else (self.x, self.w)
        y, h = (self.y + self.h, -self.h) if self.h < 0 else (self.y, self.h)
        return RectangleShape(x, y, w, h)


@dataclass
class PolygonShape:
    """Closed polygon; the last vertex connects back to the first."""
    vertices: list[Point2D] = field(default_factory=list)
    type: ShapeType = field(default=ShapeType.POLYGON, init=False)

    @classmethod
    def from_points(cls, points) -> PolygonShape:
        """Build from ``(x, y)`` pairs or ``{"x": .., "y": ..}`` dicts."""
        verts = []
        for p in points:
            if isinstance(p, dict):
                verts.append(Point2D(float(p["x"]), float(p["y"])))
            else:
                verts.append(Point2D(float(p[0]), float(p[1])))
        return cls(verts)


@dataclass
class EllipseShape:
    """Axis-aligned ellipse inscribed in the box (x, y, w, h)."""
    x: float = 0.0
    y: float = 0.0
    w: float = 0.0
    h: float = 0.0
    type: ShapeType = field(default=ShapeType.ELLIPSE, init=False)


AnyShape = RectangleShape | PolygonShape | EllipseShape
