"""
Device Energy Models

Consumers attached to a cell:
- DepletionObserver: anything that wants the one-shot depletion notification
- DeviceEnergyModel: an observer that also draws current from the cell
- SimpleDeviceEnergyModel: a device whose current is set externally
"""

import logging
from abc import ABC, abstractmethod
from typing import Callable, Optional

from li_ion_sim.sim.simulator import Simulator

logger = logging.getLogger(__name__)


class DepletionObserver(ABC):
    """Receives the depletion notification of an energy source."""

    @abstractmethod
    def handle_energy_depletion(self, source):
        """Called once when source is depleted."""


class CallbackDepletionObserver(DepletionObserver):
    """Adapts a plain callable taking the depleted source."""

    def __init__(self, callback: Callable):
        self._callback = callback

    def handle_energy_depletion(self, source):
        self._callback(source)

    def __eq__(self, other):
        if isinstance(other, CallbackDepletionObserver):
            return self._callback == other._callback
        return NotImplemented

    def __hash__(self):
        return hash(self._callback)


class DeviceEnergyModel(DepletionObserver):
    """Load consumer drawing current from an energy source."""

    @abstractmethod
    def get_current_a(self) -> float:
        """Present current draw in A."""


class SimpleDeviceEnergyModel(DeviceEnergyModel):
    """
    Device whose current draw is set directly.

    Parameters:
        simulator: Simulator providing the logical clock
        source: Energy source to draw from (optional, see set_energy_source)
    """

    def __init__(self, simulator: Simulator, source=None):
        self._simulator = simulator
        self._source = None
        self._current_a = 0.0
        self._total_energy_consumption_j = 0.0
        self._last_update_time = simulator.now
        self._depleted_at: Optional[float] = None

        if source is not None:
            self.set_energy_source(source)

    def set_energy_source(self, source):
        """Attach to source and register as one of its consumers."""
        self._source = source
        source.append_device_energy_model(self)

    def get_current_a(self) -> float:
        return self._current_a

    def set_current_a(self, current_a: float):
        """
        Change the current draw.

        The source is refreshed with the old current first so that the
        previous load segment ends at the change time. The supply voltage of
        the source keeps the ohmic drop of the old current until its next
        update, at most one update interval later.

        Args:
            current_a: Discharge current in A (>= 0)
        """
        if current_a < 0:
            raise ValueError(f"Discharge current must be >= 0, got {current_a}A (charging is not modelled)")

        now = self._simulator.now
        if self._source is not None:
            duration = now - self._last_update_time
            supply_voltage = self._source.get_supply_voltage()
            self._total_energy_consumption_j += duration * self._current_a * supply_voltage
            self._source.update_energy_source()

        self._last_update_time = now
        self._current_a = current_a
        logger.debug(f"t={now:.3f}s device current set to {current_a}A")

    def get_total_energy_consumption(self) -> float:
        """
        Energy drawn so far as a naive I*V*t integral in J.

        Includes the open interval since the last current change.
        """
        total = self._total_energy_consumption_j
        if self._source is not None:
            duration = self._simulator.now - self._last_update_time
            total += duration * self._current_a * self._source.get_supply_voltage()
        return total

    def handle_energy_depletion(self, source):
        self._depleted_at = self._simulator.now
        logger.info(f"t={self._depleted_at:.3f}s energy source depleted")

    @property
    def is_depleted(self) -> bool:
        return self._depleted_at is not None

    @property
    def depleted_at(self) -> Optional[float]:
        """Time of the depletion notification, None if not depleted."""
        return self._depleted_at
