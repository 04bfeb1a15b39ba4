"""
Reference Li-ion Cell Scenario

Discharges a single RV-model cell with a pulse-rest-pulse load:
    I for on_sec, rest for rest_sec, I again for on_sec
and prints the cell voltage and remaining energy at a fixed interval.
The rest period shows the recovery effect of the RV model.
"""

import argparse
import logging
from pathlib import Path
from typing import Optional

from li_ion_sim.plant.cell_model import LiIonCell
from li_ion_sim.plant.cell_parameters import CellParameters
from li_ion_sim.plant.device_model import SimpleDeviceEnergyModel
from li_ion_sim.plant.energy_trace import EnergyTrace
from li_ion_sim.sim.simulator import Simulator

logger = logging.getLogger(__name__)


def print_cell_info(simulator: Simulator, cell: LiIonCell, interval_sec: float, samples: EnergyTrace):
    """Print the cell state and reschedule until the simulation stops."""
    remaining_j = cell.get_remaining_energy()
    voltage_v = cell.get_supply_voltage()
    print(f"At {simulator.now:8.1f}s Cell voltage: {voltage_v:.4f} V "
          f"Remaining Capacity: {remaining_j:.3f} J")
    samples.record(simulator.now, remaining_j, voltage_v, cell.get_drained_capacity())

    if not simulator.is_finished:
        simulator.schedule(interval_sec, print_cell_info, simulator, cell, interval_sec, samples)


def run_scenario(
    current_a: float = 1.0,
    on_sec: float = 1800.0,
    rest_sec: float = 600.0,
    print_interval_sec: float = 20.0,
    parameters: Optional[CellParameters] = None,
    verbose: bool = False
) -> EnergyTrace:
    """
    Run the pulse-rest-pulse scenario.

    Args:
        current_a: Discharge current during the pulses in A
        on_sec: Duration of each pulse in seconds
        rest_sec: Duration of the rest period in seconds
        print_interval_sec: Interval between printed samples in seconds
        parameters: Cell parameters (default: reference cell)
        verbose: Enable debug logging of the cell

    Returns:
        EnergyTrace with the printed samples
    """
    simulator = Simulator()
    cell = LiIonCell(simulator, parameters=parameters, verbose=verbose)
    device = SimpleDeviceEnergyModel(simulator, source=cell)
    cell.initialize()

    now = 0.0
    device.set_current_a(current_a)
    now += on_sec

    simulator.schedule(now, device.set_current_a, 0.0)
    now += rest_sec

    simulator.schedule(now, device.set_current_a, current_a)
    now += on_sec

    samples = EnergyTrace()
    print_cell_info(simulator, cell, print_interval_sec, samples)

    simulator.stop(now)
    simulator.run()

    if device.is_depleted:
        print(f"Cell depleted at {device.depleted_at:.1f}s")
    print(f"Device energy consumption (I*V*t): {device.get_total_energy_consumption():.3f} J")

    cell.dispose()
    return samples


def main():
    """Main function with command-line argument parsing."""
    parser = argparse.ArgumentParser(
        description='Pulse-rest-pulse discharge of an RV-model Li-ion cell')
    parser.add_argument('--current', type=float, default=1.0,
                        help='Pulse current in Amperes (default: 1.0)')
    parser.add_argument('--on', type=float, default=1800.0,
                        help='Duration of each pulse in seconds (default: 1800)')
    parser.add_argument('--rest', type=float, default=600.0,
                        help='Rest duration between pulses in seconds (default: 600)')
    parser.add_argument('--interval', type=float, default=20.0,
                        help='Print interval in seconds (default: 20)')
    parser.add_argument('--config', type=str, default=None,
                        help='YAML file with cell parameters (default: reference cell)')
    parser.add_argument('--log-file', type=str, default=None,
                        help='Write the (time, remaining energy) series to this CSV file')
    parser.add_argument('--verbose', action='store_true',
                        help='Enable verbose logging')

    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format='%(levelname)s %(name)s: %(message)s')

    parameters = None
    if args.config:
        parameters = CellParameters.from_yaml(args.config)
        logger.info(f"Loaded cell parameters from {args.config}")

    samples = run_scenario(
        current_a=args.current,
        on_sec=args.on,
        rest_sec=args.rest,
        print_interval_sec=args.interval,
        parameters=parameters,
        verbose=args.verbose
    )

    if args.log_file:
        csv_path = samples.save_csv(Path(args.log_file))
        print(f"Energy series saved to: {csv_path}")


if __name__ == '__main__':
    main()
