"""
Li-ion Cell Energy Source (RV model)

This module implements a single Li-ion cell as an energy source of a
discrete-event simulation:
- Effective discharge from the RV diffusion model (recovery during rest)
- Terminal voltage from the empirical polarization curve
- Periodic re-evaluation of remaining energy on the simulator clock
- Depletion detection (energy fraction and minimum voltage)
- One-shot depletion notification to attached consumers

State machine:
    IDLE --initialize()--> ACTIVE --threshold crossed--> DEPLETED (terminal)
    any --dispose()--> DISPOSED (terminal)
"""

import logging
from dataclasses import dataclass, asdict
from enum import Enum
from typing import Callable, List, Optional, Union

import numpy as np

from li_ion_sim.plant.cell_parameters import CellParameters
from li_ion_sim.plant.device_model import CallbackDepletionObserver, DepletionObserver, DeviceEnergyModel
from li_ion_sim.plant.energy_trace import EnergyTrace
from li_ion_sim.plant.load_history import LoadHistory
from li_ion_sim.plant.rv_model import RvDischargeIntegrator, alpha_to_ah, alpha_to_energy_j
from li_ion_sim.plant.voltage_curve import PolarizationCurve
from li_ion_sim.sim.simulator import EventId, Simulator


class CellStatus(Enum):
    """Lifecycle of a cell."""
    IDLE = "idle"
    ACTIVE = "active"
    DEPLETED = "depleted"
    DISPOSED = "disposed"


@dataclass
class CellState:
    """Mutable bookkeeping of a cell, owned by LiIonCell."""
    remaining_energy_j: float
    supply_voltage_v: float
    drained_capacity_ah: float = 0.0
    last_update_alpha: float = 0.0  # mA*min
    last_update_time: float = 0.0  # s


class LiIonCell:
    """
    Li-ion cell energy source driven by the RV discharge model.

    Remaining energy is re-evaluated every energy_update_interval seconds,
    whenever an attached device changes its current, and on every read of
    the remaining energy. Once the remaining energy falls to the low-battery
    threshold or the terminal voltage to the minimum voltage, the cell is
    depleted: observers are notified once and periodic updates stop.

    Parameters:
        simulator: Simulator providing the clock and scheduler
        parameters: Cell parameter set (default: reference 18650 cell)
        trace: Optional diagnostic sink receiving one sample per update
        verbose: Enable debug logging (default: False)
    """

    def __init__(
        self,
        simulator: Simulator,
        parameters: Optional[CellParameters] = None,
        trace: Optional[EnergyTrace] = None,
        verbose: bool = False
    ):
        self._simulator = simulator
        self._params = parameters if parameters is not None else CellParameters()
        self._trace = trace

        self._curve = PolarizationCurve(self._params)
        self._history = LoadHistory(start_time=simulator.now)
        self._integrator = RvDischargeIntegrator(self._history, self._params.beta, self._params.num_terms)

        self._state = CellState(
            remaining_energy_j=self._params.initial_energy_j,
            supply_voltage_v=self._params.initial_cell_voltage,
            last_update_time=simulator.now
        )
        self._status = CellStatus.IDLE

        self._device_models: List[DeviceEnergyModel] = []
        self._observers: List[DepletionObserver] = []
        self._energy_update_event: Optional[EventId] = None

        self._logger = logging.getLogger(__name__)
        if verbose:
            self._logger.setLevel(logging.DEBUG)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def initialize(self):
        """Reset energy and voltage to the fully charged cell and start periodic updates."""
        if self._status is not CellStatus.IDLE:
            raise RuntimeError(f"Cell already initialized (status: {self._status.value})")

        self._state.remaining_energy_j = self._params.initial_energy_j
        self._state.supply_voltage_v = self._params.initial_cell_voltage
        self._status = CellStatus.ACTIVE
        self._logger.debug(f"t={self._simulator.now:.3f}s cell initialized with "
                           f"{self._state.remaining_energy_j:.3f}J")

        self.update_energy_source()  # start periodic update

    def dispose(self):
        """Stop updates for good and detach all consumers and observers."""
        self._status = CellStatus.DISPOSED
        self._simulator.cancel(self._energy_update_event)
        self._energy_update_event = None
        self._device_models = []
        self._observers = []

    # ------------------------------------------------------------------
    # Consumers
    # ------------------------------------------------------------------

    def append_device_energy_model(self, model: DeviceEnergyModel):
        """Attach a load consumer; it also receives the depletion notification."""
        if model not in self._device_models:
            self._device_models.append(model)
        self.register_depletion_observer(model)

    def register_depletion_observer(self, observer: Union[DepletionObserver, Callable]):
        """
        Register a depletion observer.

        Args:
            observer: DepletionObserver, or a callable taking the cell
        """
        if not isinstance(observer, DepletionObserver):
            if not callable(observer):
                raise TypeError(f"Observer must be a DepletionObserver or callable, got {type(observer)}")
            observer = CallbackDepletionObserver(observer)
        if observer not in self._observers:
            self._observers.append(observer)

    def calculate_total_current(self) -> float:
        """Sum of the present current of all attached devices in A."""
        return float(sum(model.get_current_a() for model in self._device_models))

    # ------------------------------------------------------------------
    # Energy update
    # ------------------------------------------------------------------

    def update_energy_source(self):
        """
        Re-evaluate remaining energy at the present time.

        Runs as the periodic tick, on load changes and on reads. Does nothing
        unless the cell is active or after the simulation has finished.
        """
        if self._status is not CellStatus.ACTIVE:
            return

        # do not update if simulation has finished
        if self._simulator.is_finished:
            return

        self._simulator.cancel(self._energy_update_event)
        self._energy_update_event = None

        self._calculate_remaining_energy()

        self._state.last_update_time = self._simulator.now

        if self._check_depletion():
            return  # stop periodic update

        self._energy_update_event = self._simulator.schedule(
            self._params.energy_update_interval,
            self.update_energy_source
        )

    def _calculate_remaining_energy(self):
        state = self._state
        now = self._simulator.now
        total_current_a = self.calculate_total_current()

        alpha = self._integrator.compute_accumulated_discharge(total_current_a * 1000.0, now)

        # energy = effective charge * voltage, in place of current * voltage * time
        energy_to_decrease_j = alpha_to_energy_j(alpha - state.last_update_alpha, state.supply_voltage_v)
        drained_capacity_ah = alpha_to_ah(alpha)

        if state.remaining_energy_j < energy_to_decrease_j or drained_capacity_ah >= self._params.q_rated:
            state.remaining_energy_j = 0.0  # energy never goes below 0
        else:
            state.remaining_energy_j -= energy_to_decrease_j
            state.drained_capacity_ah = drained_capacity_ah

        # recovery can give back at most what was drained
        state.remaining_energy_j = float(np.clip(state.remaining_energy_j, 0.0, self._params.initial_energy_j))

        state.supply_voltage_v = self._curve.terminal_voltage(total_current_a, state.drained_capacity_ah)
        state.last_update_alpha = alpha

        if self._trace is not None:
            self._trace.record(now, state.remaining_energy_j, state.supply_voltage_v, state.drained_capacity_ah)

        self._logger.debug(f"t={now:.3f}s I={total_current_a:.4f}A alpha={alpha:.4f}mAmin "
                           f"remaining energy = {state.remaining_energy_j:.4f}J "
                           f"V={state.supply_voltage_v:.4f}V")

    def _check_depletion(self) -> bool:
        """Fire the depletion notification if a threshold is crossed."""
        state = self._state
        if state.remaining_energy_j <= self._params.low_battery_threshold * self._params.initial_energy_j:
            self._handle_energy_drained(f"remaining energy {state.remaining_energy_j:.3f}J at or below "
                                        f"{self._params.low_battery_threshold:.0%} of initial energy")
            return True

        if state.supply_voltage_v <= self._params.min_voltage_threshold:
            self._handle_energy_drained(f"supply voltage {state.supply_voltage_v:.4f}V at or below "
                                        f"{self._params.min_voltage_threshold}V")
            return True

        return False

    def _handle_energy_drained(self, reason: str):
        if self._status is CellStatus.DEPLETED:
            return

        self._status = CellStatus.DEPLETED
        self._simulator.cancel(self._energy_update_event)
        self._energy_update_event = None

        self._logger.info(f"t={self._simulator.now:.3f}s energy depleted: {reason}")

        # notify DeviceEnergyModel objects and other observers
        for observer in list(self._observers):
            observer.handle_energy_depletion(self)

    def decrease_remaining_energy(self, energy_j: float):
        """
        Remove energy drawn outside the RV model.

        Args:
            energy_j: Energy in J (>= 0)
        """
        if energy_j < 0:
            raise ValueError(f"Energy to decrease must be >= 0, got {energy_j}J")

        self._state.remaining_energy_j = max(self._state.remaining_energy_j - energy_j, 0.0)
        self._logger.debug(f"t={self._simulator.now:.3f}s decreased remaining energy by {energy_j:.4f}J")

        if self._status is CellStatus.ACTIVE:
            self._check_depletion()

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    def get_remaining_energy(self) -> float:
        """Remaining energy in J (refreshed to the present time)."""
        # update energy source to get the latest remaining energy.
        self.update_energy_source()
        return self._state.remaining_energy_j

    def get_energy_fraction(self) -> float:
        """Remaining energy as a fraction of initial energy (refreshed)."""
        # update energy source to get the latest remaining energy.
        self.update_energy_source()
        return self._state.remaining_energy_j / self._params.initial_energy_j

    def get_supply_voltage(self) -> float:
        """Terminal voltage computed at the last update in V (not refreshed on read)."""
        return self._state.supply_voltage_v

    def get_initial_energy(self) -> float:
        return self._params.initial_energy_j

    def get_drained_capacity(self) -> float:
        """Drained capacity at the last update in Ah."""
        return self._state.drained_capacity_ah

    def get_status(self) -> CellStatus:
        return self._status

    def is_depleted(self) -> bool:
        return self._status is CellStatus.DEPLETED

    @property
    def parameters(self) -> CellParameters:
        return self._params

    @property
    def curve(self) -> PolarizationCurve:
        return self._curve

    @property
    def history(self) -> LoadHistory:
        return self._history

    @property
    def integrator(self) -> RvDischargeIntegrator:
        return self._integrator

    def has_pending_update(self) -> bool:
        """True while a periodic update is scheduled."""
        return self._energy_update_event is not None and self._energy_update_event.is_pending()

    def get_state(self) -> dict:
        """
        Get current cell state (no refresh).

        Returns:
            Dictionary with cell state variables
        """
        state = asdict(self._state)
        state.update({
            'status': self._status.value,
            'energy_fraction': self._state.remaining_energy_j / self._params.initial_energy_j,
            'previous_load_ma': self._history.previous_load,
            'last_sample_time': self._history.last_sample_time,
            'segments': self._history.segment_count,
        })
        return state
