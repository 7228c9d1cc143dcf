"""Tube layout tests — singleton rules, chain voltages, expected gain."""

import math

import pytest

from pmtsim.models.component import Component, ComponentType, DynodeParams
from pmtsim.models.layout import PmtLayout, default_layout


@pytest.fixture
def layout():
    return default_layout()


class TestDefaultLayout:
    def test_roles(self, layout):
        assert layout.photocathode is not None
        assert layout.anode is not None
        assert len(layout.dynodes) == 6
        assert layout.absorbers == []

    def test_voltages_rise_along_chain(self, layout):
        volts = [layout.photocathode.voltage]
        volts += [d.voltage for d in layout.dynodes]
        volts.append(layout.anode.voltage)
        assert all(b > a for a, b in zip(volts, volts[1:]))

    def test_dynodes_between_electrodes(self, layout):
        xs = [d.x for d in layout.dynodes]
        assert xs == sorted(xs)
        assert layout.photocathode.x < xs[0]
        assert xs[-1] < layout.anode.x

    def test_chain_zig_zags(self, layout):
        ys = [c.y for c in layout.chain]
        assert len(ys) == 8
        assert ys[0::2] == [150.0] * 4
        assert ys[1::2] == [450.0] * 4

    def test_plates_face_next_electrode(self, layout):
        chain = layout.chain
        for prev, dyn, nxt in zip(chain, chain[1:], chain[2:]):
            front = dyn.vertices()[:2]
            # Front face through the centre, body behind it
            assert (front[0].x + front[1].x) / 2 == pytest.approx(dyn.x)
            assert (front[0].y + front[1].y) / 2 == pytest.approx(dyn.y)
            assert not dyn.contains_point((dyn.x + nxt.x) / 2, (dyn.y + nxt.y) / 2)
            assert not dyn.contains_point((dyn.x + prev.x) / 2, (dyn.y + prev.y) / 2)
            gap = math.hypot(nxt.x - dyn.x, nxt.y - dyn.y)
            ux, uy = (nxt.x - dyn.x) / gap, (nxt.y - dyn.y) / gap
            assert dyn.contains_point(dyn.x - 2.0 * ux, dyn.y - 2.0 * uy)


class TestEditing:
    def test_duplicate_singleton_rejected(self, layout):
        with pytest.raises(ValueError):
            layout.add_component(Component(ComponentType.ANODE))

    def test_many_dynodes_allowed(self, layout):
        layout.add_component(Component(ComponentType.DINODE, x=500, y=100))
        assert len(layout.dynodes) == 7

    def test_remove_dynode(self, layout):
        dyn = layout.dynodes[2]
        assert layout.remove_component(dyn.id) is dyn
        assert dyn not in layout.components

    def test_remove_singleton_rejected(self, layout):
        with pytest.raises(ValueError):
            layout.remove_component(layout.photocathode.id)

    def test_remove_unknown_id(self, layout):
        with pytest.raises(KeyError):
            layout.remove_component("no-such-id")


class TestChain:
    def test_previous_voltage(self, layout):
        d1, d2 = layout.dynodes[:2]
        assert layout.previous_voltage(d1) == layout.photocathode.voltage
        assert layout.previous_voltage(d2) == d1.voltage

    def test_grid_precedes_first_dynode_when_enabled(self, layout):
        layout.add_component(Component(ComponentType.GRID, voltage=-20.0))
        d1 = layout.dynodes[0]
        assert layout.previous_voltage(d1) == -100.0
        layout.grid_enabled = True
        assert layout.previous_voltage(d1) == -20.0
        assert len(layout.active_absorbers) == 1

    def test_chain_skips_missing_electrodes(self):
        layout = PmtLayout()
        dyn = layout.add_component(Component(ComponentType.DINODE))
        assert layout.chain == [dyn]

    def test_no_cathode_gives_zero(self):
        layout = PmtLayout()
        dyn = layout.add_component(Component(ComponentType.DINODE, voltage=50.0))
        assert layout.previous_voltage(dyn) == 0.0

    def test_expected_gain_grows_with_stages(self, layout):
        for dyn in layout.dynodes:
            dyn.params = DynodeParams(r=1.0, beta=0.5)
        gains = [layout.expected_chain_gain(n) for n in range(7)]
        assert gains[0] == 1.0
        assert all(b >= a for a, b in zip(gains, gains[1:]))

    def test_expected_gain_default_params(self, layout):
        # r = 2, beta = 0 on every stage
        assert layout.expected_chain_gain() == pytest.approx(2.0 ** 6)
        assert layout.expected_chain_gain(3) == pytest.approx(8.0)
