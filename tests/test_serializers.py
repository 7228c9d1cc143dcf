"""Tests for pmtsim.core.serializers — layout ↔ dict conversion.

Covers:
  - Round trip of the default layout and of explicit shapes
  - JSON compatibility of the serialized form
  - Older exports with a bare ``vertices`` list
  - Validation errors (unknown types, malformed vertices, bad numbers)
"""

import json

import pytest

from pmtsim.constants import LAYOUT_SCHEMA_VERSION
from pmtsim.core.serializers import dict_to_layout, layout_to_dict
from pmtsim.models.component import Component, ComponentType, DynodeParams, YieldModel
from pmtsim.models.layout import default_layout
from pmtsim.models.shapes import (
    EllipseShape,
    Point2D,
    PolygonShape,
    RectangleShape,
    ShapeType,
)


@pytest.fixture
def layout():
    lay = default_layout(num_dynodes=3)
    lay.dynodes[0].shape = PolygonShape([Point2D(0, 0), Point2D(20, 0), Point2D(10, 15)])
    lay.dynodes[1].shape = EllipseShape(300, 280, 40, 20)
    lay.dynodes[1].yield_model = YieldModel.VAUGHAN
    lay.dynodes[1].params = DynodeParams(material="Cs3Sb")
    lay.dynodes[2].shape = RectangleShape(400, 290, -20, 20)
    lay.add_component(Component(ComponentType.GRID, x=150, y=300, voltage=-50))
    lay.grid_enabled = True
    return lay


def _minimal(**component):
    base = {"type": "dinode", "x": 1, "y": 2, "voltage": 3}
    base.update(component)
    return {"name": "T", "components": [base]}


class TestRoundTrip:
    def test_layout_roundtrip(self, layout):
        restored = dict_to_layout(layout_to_dict(layout))
        assert restored == layout

    def test_json_compatible(self, layout):
        text = json.dumps(layout_to_dict(layout))
        restored = dict_to_layout(json.loads(text))
        assert restored == layout

    def test_schema_version(self, layout):
        d = layout_to_dict(layout)
        assert d["schema_version"] == LAYOUT_SCHEMA_VERSION
        assert d["components"][0]["type"] == "photocathode"

    def test_shape_discriminator(self, layout):
        d = layout_to_dict(layout)
        shape = d["components"][1]["shape"]
        assert shape["type"] == ShapeType.POLYGON.value
        assert shape["vertices"][1] == {"x": 20, "y": 0}


class TestLoading:
    def test_bare_vertices(self):
        data = _minimal(vertices=[[0, 0], [10, 0], [5, 8]])
        comp = dict_to_layout(data).components[0]
        assert isinstance(comp.shape, PolygonShape)
        assert comp.shape.vertices[2] == Point2D(5.0, 8.0)

    def test_lambda_param_key(self):
        data = _minimal(params={"lambda": 0.7, "r": 3})
        params = dict_to_layout(data).components[0].params
        assert params.lambda_ == pytest.approx(0.7)
        assert params.r == pytest.approx(3.0)

    def test_defaults(self):
        lay = dict_to_layout({})
        assert lay.components == []
        assert lay.name == "New Tube"
        assert not lay.grid_enabled


class TestValidation:
    @pytest.mark.parametrize("data", [
        [],
        {"components": {}},
        {"components": ["dinode"]},
        {"components": [{"x": 1}]},
    ])
    def test_malformed_structure(self, data):
        with pytest.raises(ValueError):
            dict_to_layout(data)

    def test_unknown_component_type(self):
        with pytest.raises(ValueError, match="component type"):
            dict_to_layout(_minimal(type="photomultiplier"))

    def test_unknown_shape_type(self):
        with pytest.raises(ValueError, match="shape type"):
            dict_to_layout(_minimal(shape={"type": "hexagon"}))

    def test_unknown_yield_model(self):
        with pytest.raises(ValueError, match="yield model"):
            dict_to_layout(_minimal(yield_model="magic"))

    @pytest.mark.parametrize("vertices", [
        [[0, 0], [1, 1]],
        [[0, 0], [1, 1], [2]],
        [{"x": 0}, {"x": 1, "y": 1}, {"x": 2, "y": 0}],
        "0,0 1,1 2,0",
    ])
    def test_malformed_vertices(self, vertices):
        with pytest.raises(ValueError):
            dict_to_layout(_minimal(vertices=vertices))

    @pytest.mark.parametrize("value", ["abc", None, True, [1]])
    def test_non_numeric_voltage(self, value):
        with pytest.raises(ValueError):
            dict_to_layout(_minimal(voltage=value))

    def test_unknown_param(self):
        with pytest.raises(ValueError, match="Unknown dynode parameter"):
            dict_to_layout(_minimal(params={"zeta": 1}))

    def test_duplicate_singleton(self):
        data = {"components": [{"type": "anode"}, {"type": "anode"}]}
        with pytest.raises(ValueError):
            dict_to_layout(data)
