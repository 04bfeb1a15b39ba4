"""
RV (Rakhmatov-Vrudhula) Battery Discharge Model

This module implements the diffusion-based discharge approximation:
- Decay kernel: truncated exponential series for one load segment
- Discharge integrator: effective discharge alpha(t) over the whole load history

alpha(t) replaces the naive I*t integral. Charge that is temporarily
unavailable during a high load recovers during rest, so pulsed loads drain
less effective capacity than the same ampere-minutes at constant current.

Units:
    times are seconds at the interface and minutes inside the kernel,
    loads are mA, alpha is mA*min.
"""

import numpy as np
from typing import Union

from li_ion_sim.plant.load_history import LoadHistory

DEFAULT_NUM_TERMS = 10

SECONDS_PER_MINUTE = 60.0
MA_MIN_PER_AH = 60.0 * 1000.0  # 1 Ah = 1000 mA * 60 min
SECONDS_PER_HOUR = 3600.0

ArrayLike = Union[float, np.ndarray]


def rv_model_a_function(
    t: float,
    sk: ArrayLike,
    sk_1: ArrayLike,
    beta: float,
    num_terms: int = DEFAULT_NUM_TERMS
) -> ArrayLike:
    """
    Evaluate the RV decay kernel for the interval [sk_1, sk] seen from time t.

    kernel = delta + 2 * sum_{m=1..N} [exp(-b*m^2*D1) - exp(-b*m^2*D2)] / (b*m^2)
    with b = beta^2, D1 = t - sk, D2 = t - sk_1, delta = sk - sk_1 (minutes).

    The series is truncated at num_terms; the truncation error is accepted.

    Args:
        t: Evaluation time in seconds
        sk: Segment end time(s) in seconds
        sk_1: Segment start time(s) in seconds
        beta: RV diffusion parameter (> 0)
        num_terms: Number of series terms (default: 10)

    Returns:
        Kernel value in minutes (float for scalar input, array otherwise)
    """
    if beta <= 0:
        raise ValueError(f"beta must be positive, got {beta}")

    sk = np.asarray(sk, dtype=float)
    sk_1 = np.asarray(sk_1, dtype=float)

    # everything is in minutes
    first_delta = (t - sk) / SECONDS_PER_MINUTE
    second_delta = (t - sk_1) / SECONDS_PER_MINUTE
    delta = (sk - sk_1) / SECONDS_PER_MINUTE

    m = np.arange(1, int(num_terms) + 1, dtype=float)
    square = beta * beta * m * m

    terms = (np.exp(-np.multiply.outer(first_delta, square)) -
             np.exp(-np.multiply.outer(second_delta, square))) / square
    kernel = delta + 2.0 * terms.sum(axis=-1)

    if kernel.ndim == 0:
        return float(kernel)
    return kernel


def alpha_to_ah(alpha: float) -> float:
    """Convert an effective discharge in mA*min to Ah."""
    return alpha / MA_MIN_PER_AH


def alpha_to_energy_j(alpha: float, voltage_v: float) -> float:
    """Energy in J delivered at voltage_v for an effective discharge in mA*min."""
    return alpha_to_ah(alpha) * SECONDS_PER_HOUR * voltage_v


class RvDischargeIntegrator:
    """
    Effective discharge alpha(t) of a cell under a piecewise-constant load.

    Parameters:
        history: Load history shared with the owning cell
        beta: RV diffusion parameter (> 0)
        num_terms: Number of series terms (default: 10)
    """

    def __init__(self, history: LoadHistory, beta: float, num_terms: int = DEFAULT_NUM_TERMS):
        if beta <= 0:
            raise ValueError(f"beta must be positive, got {beta}")
        if num_terms < 1:
            raise ValueError(f"num_terms must be >= 1, got {num_terms}")

        self._history = history
        self._beta = beta
        self._num_terms = int(num_terms)

    @property
    def history(self) -> LoadHistory:
        return self._history

    @property
    def beta(self) -> float:
        return self._beta

    @property
    def num_terms(self) -> int:
        return self._num_terms

    def compute_accumulated_discharge(self, load_ma: float, time: float) -> float:
        """
        Record the present load and evaluate alpha at time.

        Args:
            load_ma: Present total load in mA
            time: Evaluation time in seconds

        Returns:
            Effective discharge in mA*min
        """
        self._history.record_sample(load_ma, time)
        return self.evaluate(time)

    def evaluate(self, time: float) -> float:
        """
        Evaluate alpha at time over the recorded history without sampling.

        Args:
            time: Evaluation time in seconds

        Returns:
            Effective discharge in mA*min
        """
        loads = self._history.loads
        boundaries = self._history.boundaries

        if not loads:
            return 0.0

        if len(loads) == 1:
            # constant load since the first sample
            return loads[0] * rv_model_a_function(time, boundaries[1], boundaries[0],
                                                  self._beta, self._num_terms)

        # changing load
        kernels = rv_model_a_function(time, np.array(boundaries[1:]), np.array(boundaries[:-1]),
                                      self._beta, self._num_terms)
        return float(np.dot(np.array(loads), kernels))
