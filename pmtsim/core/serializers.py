"""Serialization utilities — layout ↔ JSON-safe dict conversion.

Enums are stored by value, shapes carry their ``type`` discriminator.
``dict_to_layout`` validates its input and raises ValueError on anything
it cannot turn into a layout.
"""

from __future__ import annotations

import dataclasses
from enum import Enum
from typing import Any

import numpy as np

from pmtsim.constants import LAYOUT_SCHEMA_VERSION
from pmtsim.models.component import Component, ComponentType, DynodeParams, YieldModel
from pmtsim.models.layout import PmtLayout
from pmtsim.models.shapes import (
    AnyShape,
    EllipseShape,
    PolygonShape,
    RectangleShape,
    ShapeType,
)


# =====================================================================
# Generic helpers
# =====================================================================


def _serialize_value(val: Any) -> Any:
    """Convert a value to a JSON-safe type."""
    if val is None:
        return None
    if isinstance(val, Enum):
        return val.value
    if isinstance(val, np.ndarray):
        return val.tolist()
    if dataclasses.is_dataclass(val) and not isinstance(val, type):
        return _dataclass_to_dict(val)
    if isinstance(val, (list, tuple)):
        return [_serialize_value(v) for v in val]
    if isinstance(val, (int, float, str, bool)):
        return val
    return str(val)


def _dataclass_to_dict(obj: Any) -> dict:
    """Recursively convert a dataclass to a JSON-safe dict."""
    return {f.name: _serialize_value(getattr(obj, f.name))
            for f in dataclasses.fields(obj)}


def _number(value: Any, what: str) -> float:
    if isinstance(value, bool):
        raise ValueError(f"{what} must be a number, got {value!r}")
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{what} must be a number, got {value!r}") from exc


def _enum(enum_cls: type[Enum], value: Any, what: str) -> Any:
    try:
        return enum_cls(value)
    except ValueError as exc:
        raise ValueError(f"Unknown {what}: {value!r}") from exc


# =====================================================================
# Layout serialization
# =====================================================================


def layout_to_dict(layout: PmtLayout) -> dict:
    """Serialize a PmtLayout to a JSON-safe dict with schema_version."""
    d = _dataclass_to_dict(layout)
    d["schema_version"] = LAYOUT_SCHEMA_VERSION
    return d


def dict_to_layout(data: dict) -> PmtLayout:
    """Deserialize and validate a layout dict.

    Components may give their outline either as ``shape`` or, as older
    exports do, as a bare ``vertices`` point list.

    Raises:
        ValueError: Unknown component/shape/model type, malformed vertex
            list, non-numeric value or a duplicated singleton electrode.
    """
    if not isinstance(data, dict):
        raise ValueError("Layout data must be a dict")
    raw_components = data.get("components", [])
    if not isinstance(raw_components, list):
        raise ValueError("'components' must be a list")

    layout = PmtLayout(name=str(data.get("name", "New Tube")),
                       grid_enabled=bool(data.get("grid_enabled", False)))
    if data.get("id"):
        layout.id = str(data["id"])
    for i, raw in enumerate(raw_components):
        layout.add_component(_dict_to_component(raw, i))
    return layout


def _dict_to_component(data: Any, index: int) -> Component:
    if not isinstance(data, dict):
        raise ValueError(f"Component {index} must be a dict")
    if "type" not in data:
        raise ValueError(f"Component {index} has no type")

    if data.get("shape") is not None:
        shape = _dict_to_shape(data["shape"])
    elif data.get("vertices") is not None:
        shape = _polygon(data["vertices"])
    else:
        shape = None

    comp = Component(
        type=_enum(ComponentType, data["type"], "component type"),
        x=_number(data.get("x", 0.0), f"Component {index} x"),
        y=_number(data.get("y", 0.0), f"Component {index} y"),
        voltage=_number(data.get("voltage", 0.0), f"Component {index} voltage"),
        shape=shape,
        yield_model=_enum(YieldModel, data.get("yield_model", "simple"), "yield model"),
        params=_dict_to_params(data.get("params") or {}),
        name=str(data.get("name", "")),
    )
    if data.get("id"):
        comp.id = str(data["id"])
    return comp


def _dict_to_params(data: Any) -> DynodeParams:
    if not isinstance(data, dict):
        raise ValueError("Dynode params must be a dict")
    params = DynodeParams()
    known = {f.name for f in dataclasses.fields(DynodeParams)}
    for key, value in data.items():
        # "lambda" is a keyword in Python
        name = "lambda_" if key == "lambda" else key
        if name not in known:
            raise ValueError(f"Unknown dynode parameter: {key!r}")
        if name == "material":
            params.material = str(value)
        else:
            setattr(params, name, _number(value, f"Dynode parameter {key}"))
    return params


def _dict_to_shape(data: Any) -> AnyShape:
    if not isinstance(data, dict):
        raise ValueError("Shape must be a dict")
    shape_type = _enum(ShapeType, data.get("type"), "shape type")
    if shape_type is ShapeType.POLYGON:
        return _polygon(data.get("vertices"))
    box = [_number(data.get(k, 0.0), f"Shape {k}") for k in ("x", "y", "w", "h")]
    if shape_type is ShapeType.RECTANGLE:
        return RectangleShape(*box)
    return EllipseShape(*box)


def _polygon(points: Any) -> PolygonShape:
    if not isinstance(points, list) or len(points) < 3:
        raise ValueError("Polygon needs a list of at least 3 vertices")
    try:
        return PolygonShape.from_points(points)
    except (KeyError, IndexError, TypeError, ValueError) as exc:
        raise ValueError(f"Malformed vertex list: {exc}") from exc
