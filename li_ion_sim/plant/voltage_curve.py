"""
Polarization Voltage Curve

Empirical four-parameter discharge curve fitted from a manufacturer datasheet:

    A  = e_full - e_exp
    B  = 3 / q_exp
    K  = |(e_full - e_nom + A * (exp(-B * q_nom) - 1)) * (q_rated - q_nom) / q_nom|
    E0 = e_full + K + r * typ_current - A
    E  = E0 - K * q_rated / (q_rated - it) + A * exp(-B * it)
    V  = E - r * i

where it is the drained capacity in Ah and i the present current in A.
"""

import logging

import numpy as np

from li_ion_sim.plant.cell_parameters import CellParameters

logger = logging.getLogger(__name__)


class PolarizationCurve:
    """
    Terminal voltage of a cell as function of drained capacity and current.

    Parameters:
        parameters: Cell parameter set holding the curve fit
    """

    def __init__(self, parameters: CellParameters):
        self._params = parameters
        self._q_rated = parameters.q_rated
        self._r = parameters.internal_resistance

        # empirical factors
        self.A = parameters.e_full - parameters.e_exp
        self.B = 3.0 / parameters.q_exp

        # slope of the polarization curve
        self.K = abs((parameters.e_full - parameters.e_nom + self.A * (np.exp(-self.B * parameters.q_nom) - 1.0))
                     * (parameters.q_rated - parameters.q_nom) / parameters.q_nom)

        # constant voltage
        self.E0 = parameters.e_full + self.K + self._r * parameters.typ_current - self.A

    def open_circuit_voltage(self, drained_capacity_ah: float) -> float:
        """
        Polarization (open-circuit) voltage at a state of charge.

        Precondition: drained_capacity_ah < q_rated. The q_rated / (q_rated - it)
        term diverges at q_rated; callers keep the drained capacity below it.

        Args:
            drained_capacity_ah: Charge removed from the cell in Ah

        Returns:
            Voltage in V
        """
        assert drained_capacity_ah < self._q_rated, (
            f"drained capacity {drained_capacity_ah}Ah must stay below q_rated {self._q_rated}Ah")

        it = drained_capacity_ah
        return float(self.E0 - self.K * self._q_rated / (self._q_rated - it) + self.A * np.exp(-self.B * it))

    def terminal_voltage(self, current_a: float, drained_capacity_ah: float) -> float:
        """
        Terminal voltage under load.

        Args:
            current_a: Present discharge current in A
            drained_capacity_ah: Charge removed from the cell in Ah (< q_rated)

        Returns:
            Voltage in V
        """
        e = self.open_circuit_voltage(drained_capacity_ah)
        v = e - self._r * current_a
        logger.debug(f"Voltage: {v:.6f}V with E: {e:.6f}V")
        return v

    def discharge_curve(self, capacities_ah: np.ndarray, current_a: float) -> np.ndarray:
        """
        Evaluate the terminal voltage over an array of drained capacities.

        Args:
            capacities_ah: Drained capacities in Ah (all < q_rated)
            current_a: Discharge current in A

        Returns:
            Array of terminal voltages in V
        """
        it = np.asarray(capacities_ah, dtype=float)
        if np.any(it >= self._q_rated):
            raise ValueError(f"Drained capacities must stay below q_rated ({self._q_rated}Ah)")

        e = self.E0 - self.K * self._q_rated / (self._q_rated - it) + self.A * np.exp(-self.B * it)
        return e - self._r * current_a

    def get_curve_info(self) -> dict:
        """Fitted curve constants."""
        return {
            'A': self.A,
            'B': self.B,
            'K': self.K,
            'E0': self.E0,
            'internal_resistance_ohm': self._r,
            'q_rated_ah': self._q_rated,
        }
