"""
Unit tests for the polarization voltage curve.
"""

import pytest
import numpy as np
from li_ion_sim.plant.cell_parameters import CellParameters
from li_ion_sim.plant.voltage_curve import PolarizationCurve


class TestPolarizationCurve:
    """Test suite for PolarizationCurve class."""

    def test_curve_constants(self):
        """Fitted constants of the reference cell."""
        params = CellParameters()
        curve = PolarizationCurve(params)

        expected_k = abs((4.05 - 3.6 + 0.45 * (np.exp(-2.5 * 1.1) - 1.0)) * (2.45 - 1.1) / 1.1)

        assert curve.A == pytest.approx(0.45)
        assert curve.B == pytest.approx(2.5)
        assert curve.K == pytest.approx(expected_k)
        assert curve.E0 == pytest.approx(4.05 + expected_k + 0.083 * 2.33 - 0.45)

        info = curve.get_curve_info()
        assert info['q_rated_ah'] == 2.45
        assert info['internal_resistance_ohm'] == 0.083

    def test_full_cell_at_fit_current(self):
        """A full cell at the fit current is at the full-charge voltage."""
        params = CellParameters()
        curve = PolarizationCurve(params)

        assert curve.terminal_voltage(params.typ_current, 0.0) == pytest.approx(params.e_full, abs=1e-9)

    def test_open_circuit_voltage_full_cell(self):
        """Without load a full cell sits r * typ_current above the full-charge voltage."""
        params = CellParameters()
        curve = PolarizationCurve(params)

        assert curve.open_circuit_voltage(0.0) == pytest.approx(params.e_full + 0.083 * 2.33)
        assert curve.terminal_voltage(0.0, 0.0) == curve.open_circuit_voltage(0.0)

    def test_voltage_decreases_with_drain(self):
        """Voltage falls as charge is drained."""
        curve = PolarizationCurve(CellParameters())

        voltages = [curve.terminal_voltage(1.0, it) for it in np.linspace(0.0, 2.4, 25)]

        assert np.all(np.diff(voltages) < 0.0)

    def test_voltage_decreases_with_current(self):
        """Internal resistance drop grows with current."""
        curve = PolarizationCurve(CellParameters())

        v_low = curve.terminal_voltage(0.5, 1.0)
        v_high = curve.terminal_voltage(2.0, 1.0)

        assert v_low - v_high == pytest.approx(0.083 * 1.5)

    def test_rated_capacity_is_singular(self):
        """The curve is undefined at and beyond the rated capacity."""
        curve = PolarizationCurve(CellParameters())

        with pytest.raises(AssertionError):
            curve.open_circuit_voltage(2.45)
        with pytest.raises(AssertionError):
            curve.terminal_voltage(1.0, 3.0)

    def test_discharge_curve(self):
        """Vectorized curve matches the scalar terminal voltage."""
        curve = PolarizationCurve(CellParameters())
        capacities = np.linspace(0.0, 2.4, 50)

        voltages = curve.discharge_curve(capacities, 1.0)

        assert voltages.shape == (50,)
        for it, v in zip(capacities, voltages):
            assert v == pytest.approx(curve.terminal_voltage(1.0, it))

        with pytest.raises(ValueError, match="below q_rated"):
            curve.discharge_curve(np.array([0.0, 2.45]), 1.0)


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
