"""Unit conversion chain: px ↔ mm ↔ m, degree ↔ radian, eV ↔ m/s."""

import math
import pytest

from pmtsim.constants import ELECTRON_CHARGE, ELECTRON_MASS
from pmtsim.core.units import (
    px_to_mm, mm_to_px,
    mm_to_m, m_to_mm,
    deg_to_rad, rad_to_deg,
    speed_to_ev, ev_to_speed,
)


class TestLengthConversion:
    def test_px_to_mm(self):
        assert px_to_mm(100.0, 0.1) == pytest.approx(10.0)
        assert px_to_mm(0.0, 0.1) == pytest.approx(0.0)

    def test_mm_to_px(self):
        assert mm_to_px(10.0, 0.1) == pytest.approx(100.0)

    def test_mm_to_m(self):
        assert mm_to_m(1000.0) == pytest.approx(1.0)
        assert mm_to_m(1.0) == pytest.approx(1e-3)

    def test_m_to_mm(self):
        assert m_to_mm(0.012) == pytest.approx(12.0)

    def test_roundtrip(self):
        assert mm_to_px(px_to_mm(350.0, 0.25), 0.25) == pytest.approx(350.0)
        assert m_to_mm(mm_to_m(42.5)) == pytest.approx(42.5)


class TestAngleConversion:
    def test_deg_to_rad(self):
        assert deg_to_rad(180.0) == pytest.approx(math.pi)
        assert deg_to_rad(90.0) == pytest.approx(math.pi / 2)

    def test_rad_to_deg(self):
        assert rad_to_deg(math.pi / 2) == pytest.approx(90.0)


class TestElectronEnergy:
    def test_two_ev_secondary_speed(self):
        # sqrt(2 * 2 eV * e / m_e) ≈ 8.39e5 m/s
        assert ev_to_speed(2.0) == pytest.approx(8.387e5, rel=1e-3)

    def test_speed_to_ev_formula(self):
        v = 5.0e6
        expected = 0.5 * (ELECTRON_MASS / abs(ELECTRON_CHARGE)) * v * v
        assert speed_to_ev(v) == pytest.approx(expected)

    def test_roundtrip(self):
        assert speed_to_ev(ev_to_speed(100.0)) == pytest.approx(100.0)

    def test_negative_energy_is_zero_speed(self):
        assert ev_to_speed(-5.0) == 0.0
