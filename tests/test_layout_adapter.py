"""Layout → exact-engine adapter tests."""

import math

import numpy as np
import pytest

from pmtsim.core.cascade_simulator import simulate_cascade
from pmtsim.core.field_model import FieldModel
from pmtsim.core.layout_adapter import build_cascade_config, component_region, scale_shape
from pmtsim.core.units import speed_to_ev
from pmtsim.core.vector_math import norm
from pmtsim.models.cascade import IMPACT_ANODE, CascadeOutcome
from pmtsim.models.component import Component, ComponentType
from pmtsim.models.layout import PmtLayout, default_layout
from pmtsim.models.shapes import EllipseShape, Point2D, PolygonShape, RectangleShape


@pytest.fixture
def layout():
    return default_layout()


class TestScaleShape:
    def test_rectangle(self):
        s = scale_shape(RectangleShape(10, 20, 30, 40), 0.5)
        assert (s.x, s.y, s.w, s.h) == (5.0, 10.0, 15.0, 20.0)

    def test_ellipse(self):
        s = scale_shape(EllipseShape(10, 20, 30, 40), 2.0)
        assert isinstance(s, EllipseShape)
        assert (s.x, s.y, s.w, s.h) == (20.0, 40.0, 60.0, 80.0)

    def test_polygon_is_copied(self):
        poly = PolygonShape([Point2D(0, 0), Point2D(10, 0), Point2D(0, 10)])
        s = scale_shape(poly, 0.5)
        assert s.vertices[1] == Point2D(5.0, 0.0)
        assert poly.vertices[1] == Point2D(10, 0)


class TestBuildConfig:
    def test_regions_in_millimetres(self, layout):
        cfg = build_cascade_config(layout, mm_per_px=0.1)
        anode = cfg.anodes[0]
        # Implicit 20 px square around (900, 450)
        assert anode.is_interior(90.0, 45.0)
        assert not anode.is_interior(91.5, 45.0)
        assert len(cfg.dynodes) == 6
        assert cfg.grids == []

    def test_stage_voltages(self, layout):
        cfg = build_cascade_config(layout)
        expected = [d.voltage - layout.previous_voltage(d) for d in layout.dynodes]
        assert [r.delta_v for r in cfg.dynodes] == pytest.approx(expected)
        assert cfg.cathode_voltage == layout.photocathode.voltage

    def test_start_and_energy(self, layout):
        cfg = build_cascade_config(layout, initial_energy_ev=2.0, direction=(3.0, 4.0))
        np.testing.assert_allclose(cfg.x0[:2], [0.01, 0.015])
        assert speed_to_ev(norm(np.asarray(cfg.v0, dtype=float))) == pytest.approx(2.0)
        assert cfg.v0[1] / cfg.v0[0] == pytest.approx(4.0 / 3.0)

    def test_default_direction_aims_at_first_dynode(self, layout):
        cfg = build_cascade_config(layout)
        cathode, d1 = layout.photocathode, layout.dynodes[0]
        assert cfg.v0[1] / cfg.v0[0] == pytest.approx((d1.y - cathode.y) / (d1.x - cathode.x))
        assert cfg.v0[0] > 0.0

    def test_volume_is_canvas(self, layout):
        cfg = build_cascade_config(layout, width_px=500, height_px=200)
        assert cfg.volume.is_interior(49.0, 19.0)
        assert not cfg.volume.is_interior(51.0, 10.0)

    def test_stage_field_evaluated_in_metres(self, layout):
        cfg = build_cascade_config(layout)
        cathode, d1 = layout.photocathode, layout.dynodes[0]
        mid = ((cathode.x + d1.x) * 5e-5, (cathode.y + d1.y) * 5e-5)
        gap = math.hypot(d1.x - cathode.x, d1.y - cathode.y) * 1e-4
        e, _ = cfg.sampler.sample(*mid)
        assert math.hypot(e[0], e[1]) == pytest.approx((d1.voltage - cathode.voltage) / gap)
        # Electrons (force −E) are driven from the cathode toward D1
        assert -e[0] > 0.0 and -e[1] > 0.0

    def test_field_scale(self, layout):
        plain = build_cascade_config(layout).sampler.sample(0.02, 0.02)[0]
        scaled = build_cascade_config(layout, field_scale=0.5).sampler.sample(0.02, 0.02)[0]
        np.testing.assert_allclose(scaled, 0.5 * plain)

    def test_coulomb_field_model(self, layout):
        cfg = build_cascade_config(layout, field_model="coulomb", field_scale=2.0)
        model = FieldModel.from_components(layout.components, length_scale=1e-4,
                                           epsilon=1e-12)
        e, _ = cfg.sampler.sample(0.03, 0.02)
        np.testing.assert_allclose(e[:2], 2.0 * np.array(model.field(0.03, 0.02)))

    def test_unknown_field_model(self, layout):
        with pytest.raises(ValueError, match="field model"):
            build_cascade_config(layout, field_model="finite-element")

    def test_only_enabled_grid(self, layout):
        layout.add_component(Component(ComponentType.GRID, x=120, y=300))
        layout.add_component(Component(ComponentType.ACCELERATOR, x=850, y=100))
        assert len(build_cascade_config(layout).grids) == 1
        layout.grid_enabled = True
        assert len(build_cascade_config(layout).grids) == 2

    def test_kwargs_forwarded(self, layout):
        cfg = build_cascade_config(layout, trace=True, max_steps=10, cathode_voltage=5.0)
        assert cfg.trace
        assert cfg.max_steps == 10
        assert cfg.cathode_voltage == 5.0

    def test_snapshot_is_independent(self, layout):
        cfg = build_cascade_config(layout)
        layout.anode.voltage = 0.0
        layout.anode.x = 0.0
        assert cfg.anodes[0].voltage == 1000.0
        assert cfg.anodes[0].is_interior(90.0, 45.0)

    def test_component_region_name(self):
        comp = Component(ComponentType.DINODE, x=10, y=10)
        assert component_region(comp, 1.0).name == "dinode"

    @pytest.mark.parametrize("scale", [0.0, -0.1])
    def test_bad_scale(self, layout, scale):
        with pytest.raises(ValueError):
            build_cascade_config(layout, mm_per_px=scale)

    def test_no_cathode_needs_start(self):
        layout = PmtLayout()
        with pytest.raises(ValueError):
            build_cascade_config(layout)
        cfg = build_cascade_config(layout, start=(10.0, 20.0))
        assert cfg.cathode_voltage == 0.0


class TestEndToEnd:
    def test_default_tube_cascades_to_anode(self, layout):
        cfg = build_cascade_config(layout, dt=1e-11, rng=np.random.default_rng(0))
        result = simulate_cascade(cfg)
        assert result.outcome is CascadeOutcome.HIT_ANODE
        assert result.impacts == [0, 1, 2, 3, 4, 5, IMPACT_ANODE]
        assert [c.dynode_index for c in result.collisions] == list(range(6))
        assert not result.step_cap_hit and not result.depth_cap_hit
        assert result.generations == 7

    def test_every_stage_multiplies(self, layout):
        cfg = build_cascade_config(layout, dt=1e-11, rng=np.random.default_rng(1))
        result = simulate_cascade(cfg)
        assert len(result.collisions) == 6
        for event in result.collisions:
            # 1100 V over seven stages, plus the departure energy
            assert event.energy_ev == pytest.approx(159.0, abs=3.0)
            assert event.yield_value > 1.0
        assert result.gain == pytest.approx(
            math.prod(c.yield_value for c in result.collisions))
        assert result.gain > 1.0

