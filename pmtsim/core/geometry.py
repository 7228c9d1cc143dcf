"""Geometry engine — containment, edge intersection and impact normals.

Works in whatever length unit the shape is expressed in. The exact
cascade engine calls these with millimetre coordinates, the frame engine
with canvas pixels.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from pmtsim.constants import ELLIPSE_SEGMENTS
from pmtsim.models.shapes import (
    AnyShape,
    EllipseShape,
    Point2D,
    PolygonShape,
    RectangleShape,
)

# Parallel-edge tolerance for the line-line test
_PARALLEL_EPS = 1e-10


@dataclass
class BoundaryCrossing:
    """Where a trajectory segment enters a polygon outline.

    Attributes:
        x: Crossing X.
        y: Crossing Y.
        edge_start: Index of the first vertex of the crossed edge.
        edge_end: Index of the second vertex of the crossed edge.
        exact: False when no edge intersected and the first vertex was
            used as the nominal impact point.
    """
    x: float
    y: float
    edge_start: int
    edge_end: int
    exact: bool = True


# ── Containment ──


def point_in_rectangle(rect: RectangleShape, x: float, y: float) -> bool:
    r = rect.normalized()
    return r.x <= x <= r.x + r.w and r.y <= y <= r.y + r.h


def point_in_polygon(vertices: list[Point2D], x: float, y: float) -> bool:
    """Even-odd ray casting with a horizontal ray towards +X.

    An edge toggles the flag only if it straddles the ray's Y, so
    horizontal edges never reach the division.
    """
    n = len(vertices)
    if n < 3:
        return False
    inside = False
    j = n - 1
    for i in range(n):
        vi, vj = vertices[i], vertices[j]
        if (vi.y > y) != (vj.y > y):
            x_cross = (vj.x - vi.x) * (y - vi.y) / (vj.y - vi.y) + vi.x
            if x < x_cross:
                inside = not inside
        j = i
    return inside


def point_in_ellipse(ellipse: EllipseShape, x: float, y: float) -> bool:
    rx = abs(ellipse.w) / 2.0
    ry = abs(ellipse.h) / 2.0
    if rx == 0.0 or ry == 0.0:
        return False
    cx = min(ellipse.x, ellipse.x + ellipse.w) + rx
    cy = min(ellipse.y, ellipse.y + ellipse.h) + ry
    nx = (x - cx) / rx
    ny = (y - cy) / ry
    return nx * nx + ny * ny <= 1.0


def contains_point(shape: AnyShape, x: float, y: float) -> bool:
    """True if (x, y) lies inside ``shape``."""
    if isinstance(shape, RectangleShape):
        return point_in_rectangle(shape, x, y)
    if isinstance(shape, PolygonShape):
        return point_in_polygon(shape.vertices, x, y)
    if isinstance(shape, EllipseShape):
        return point_in_ellipse(shape, x, y)
    raise ValueError(f"Unknown shape type: {type(shape)}")


# ── Outline helpers ──


def shape_vertices(shape: AnyShape) -> list[Point2D]:
    """Outline of ``shape`` as an ordered vertex list.

    Rectangles yield their four corners counter-clockwise from the
    origin corner; ellipses are approximated by a regular polygon.
    """
    if isinstance(shape, PolygonShape):
        return list(shape.vertices)
    if isinstance(shape, RectangleShape):
        r = shape.normalized()
        return [
            Point2D(r.x, r.y),
            Point2D(r.x + r.w, r.y),
            Point2D(r.x + r.w, r.y + r.h),
            Point2D(r.x, r.y + r.h),
        ]
    if isinstance(shape, EllipseShape):
        rx = abs(shape.w) / 2.0
        ry = abs(shape.h) / 2.0
        cx = min(shape.x, shape.x + shape.w) + rx
        cy = min(shape.y, shape.y + shape.h) + ry
        return [
            Point2D(cx + rx * math.cos(a), cy + ry * math.sin(a))
            for a in (2.0 * math.pi * k / ELLIPSE_SEGMENTS
                      for k in range(ELLIPSE_SEGMENTS))
        ]
    raise ValueError(f"Unknown shape type: {type(shape)}")


def bounding_box(shape: AnyShape) -> RectangleShape:
    """Smallest axis-aligned box containing ``shape``."""
    if isinstance(shape, RectangleShape):
        return shape.normalized()
    if isinstance(shape, EllipseShape):
        return RectangleShape(shape.x, shape.y, shape.w, shape.h).normalized()
    verts = shape_vertices(shape)
    if not verts:
        return RectangleShape()
    xs = [v.x for v in verts]
    ys = [v.y for v in verts]
    return RectangleShape(min(xs), min(ys), max(xs) - min(xs), max(ys) - min(ys))


# ── Intersection ──


def segment_intersection(
    x1: float, y1: float, x2: float, y2: float,
    x3: float, y3: float, x4: float, y4: float,
) -> tuple[float, float] | None:
    """Intersection of segments P1P2 and P3P4, or None.

    Standard parametric form; both parameters t (along P1P2) and u
    (along P3P4) must lie in [0, 1].
    """
    denom = (x1 - x2) * (y3 - y4) - (y1 - y2) * (x3 - x4)
    if abs(denom) < _PARALLEL_EPS:
        return None
    t = ((x1 - x3) * (y3 - y4) - (y1 - y3) * (x3 - x4)) / denom
    u = -((x1 - x2) * (y1 - y3) - (y1 - y2) * (x1 - x3)) / denom
    if 0.0 <= t <= 1.0 and 0.0 <= u <= 1.0:
        return x1 + t * (x2 - x1), y1 + t * (y2 - y1)
    return None


def locate_boundary_crossing(
    vertices: list[Point2D],
    prev: tuple[float, float],
    curr: tuple[float, float],
) -> BoundaryCrossing | None:
    """Find where the step prev→curr crosses the polygon outline.

    Edges are tested in vertex order and the first hit wins. When no
    edge intersects (a long step jumped over a thin electrode) the first
    vertex and first edge are returned with ``exact=False``. An empty
    outline returns None.
    """
    n = len(vertices)
    if n == 0:
        return None
    for i in range(n):
        a = vertices[i]
        b = vertices[(i + 1) % n]
        hit = segment_intersection(
            prev[0], prev[1], curr[0], curr[1], a.x, a.y, b.x, b.y,
        )
        if hit is not None:
            return BoundaryCrossing(hit[0], hit[1], i, (i + 1) % n)
    return BoundaryCrossing(vertices[0].x, vertices[0].y, 0, 1 % n, exact=False)


def outward_normal(
    edge_start: Point2D,
    edge_end: Point2D,
    approach: tuple[float, float],
) -> tuple[float, float]:
    """Unit normal of an edge, oriented against the approach direction.

    A degenerate (zero-length) edge falls back to the reversed approach
    direction; a zero approach vector leaves the edge's left normal.
    """
    nx = edge_end.y - edge_start.y
    ny = edge_start.x - edge_end.x
    length = math.hypot(nx, ny)
    if length == 0.0:
        alen = math.hypot(approach[0], approach[1])
        if alen == 0.0:
            return 0.0, 0.0
        return -approach[0] / alen, -approach[1] / alen
    nx /= length
    ny /= length
    if nx * approach[0] + ny * approach[1] > 0.0:
        nx, ny = -nx, -ny
    return nx, ny
