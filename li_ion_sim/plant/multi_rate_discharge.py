"""
Multi-Rate Discharge Simulation: compare discharge curves at several currents
"""

import argparse
from dataclasses import replace
from typing import Dict, List, Optional

import numpy as np
import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt

from li_ion_sim.plant.cell_model import LiIonCell
from li_ion_sim.plant.cell_parameters import CellParameters
from li_ion_sim.plant.device_model import SimpleDeviceEnergyModel
from li_ion_sim.plant.energy_trace import EnergyTrace
from li_ion_sim.plant.voltage_curve import PolarizationCurve
from li_ion_sim.sim.simulator import Simulator

# 0.2C, 0.5C, 1C (fit current) and 2C of the reference cell
DEFAULT_CURRENTS_A = [0.49, 1.225, 2.33, 4.66]


def run_discharge_simulation(
    current_a: float,
    parameters: Optional[CellParameters] = None,
    update_interval_sec: float = 10.0,
    max_duration_sec: float = 48 * 3600.0
) -> Dict:
    """
    Discharge a fresh cell at constant current until it is depleted.

    Returns:
        Dictionary with time, voltage, drained capacity and energy data
    """
    parameters = parameters if parameters is not None else CellParameters()
    parameters = replace(parameters, energy_update_interval=update_interval_sec)

    simulator = Simulator()
    trace = EnergyTrace()
    cell = LiIonCell(simulator, parameters=parameters, trace=trace)
    device = SimpleDeviceEnergyModel(simulator, source=cell)
    cell.initialize()
    device.set_current_a(current_a)

    simulator.run(until=max_duration_sec)
    if not cell.is_depleted():
        print(f"WARNING: {current_a}A discharge not depleted after {max_duration_sec}s")

    df = trace.to_dataframe()
    cell.dispose()
    return {
        'time': df['time_s'].to_numpy(),
        'voltage': df['supply_voltage_V'].to_numpy(),
        'drained_ah': df['drained_capacity_Ah'].to_numpy(),
        'energy': df['remaining_energy_J'].to_numpy(),
        'current_a': current_a,
        'depleted': cell.is_depleted()
    }


def plot_multi_rate_comparison(
    currents_a: List[float] = DEFAULT_CURRENTS_A,
    parameters: Optional[CellParameters] = None,
    filename: Optional[str] = 'multi_rate_discharge.png'
) -> Dict[float, Dict]:
    """Run simulations at different currents and plot the discharge curves."""
    parameters = parameters if parameters is not None else CellParameters()

    print("=" * 80)
    print("Multi-Rate Discharge Simulation (RV model)")
    print("=" * 80)
    print(f"Rated capacity: {parameters.q_rated} Ah")
    print(f"Currents: {currents_a} A")
    print("=" * 80)

    results = {}
    for current_a in currents_a:
        print(f"\nRunning {current_a}A discharge simulation...")
        results[current_a] = run_discharge_simulation(current_a, parameters=parameters)
        result = results[current_a]
        print(f"  Completed: {len(result['time'])} updates, "
              f"Duration: {result['time'][-1]:.1f}s, "
              f"Final Voltage: {result['voltage'][-1]:.3f}V")

    if filename is None:
        return results

    print("\nGenerating comparison plot...")
    fig, ax = plt.subplots(1, 1, figsize=(12, 7))

    # Static polarization curve at the fit current (reference, only once)
    curve = PolarizationCurve(parameters)
    capacities = np.linspace(0.0, parameters.q_rated * 0.98, 200)
    ax.plot(capacities, curve.discharge_curve(capacities, parameters.typ_current),
            'k--', linewidth=1.5, alpha=0.6, label=f'Fitted curve at {parameters.typ_current}A', zorder=1)

    for i, current_a in enumerate(currents_a):
        result = results[current_a]
        ax.plot(result['drained_ah'], result['voltage'], linewidth=2.5,
                label=f'{current_a}A Discharge', zorder=2 + i)

    ax.axhline(parameters.min_voltage_threshold, color='gray', linestyle=':', label='Cut-off voltage')
    ax.set_xlabel('Drained Capacity (Ah)', fontsize=13, fontweight='bold')
    ax.set_ylabel('Voltage (V)', fontsize=13, fontweight='bold')
    ax.set_title('Li-ion Cell: Terminal Voltage vs Drained Capacity at Different Currents',
                 fontsize=14, fontweight='bold')
    ax.grid(True, alpha=0.3, linestyle='--')
    ax.legend(fontsize=11, loc='best', framealpha=0.9)

    plt.tight_layout()
    plt.savefig(filename, dpi=150, bbox_inches='tight')
    plt.close(fig)
    print(f"Plot saved to: {filename}")

    print("\n" + "=" * 80)
    print("Simulation Summary")
    print("=" * 80)
    for current_a in currents_a:
        result = results[current_a]
        print(f"\n{current_a}A Discharge:")
        print(f"  Duration: {result['time'][-1]:.1f}s ({result['time'][-1]/60:.2f} min)")
        print(f"  Initial Voltage: {result['voltage'][0]:.3f}V")
        print(f"  Final Voltage: {result['voltage'][-1]:.3f}V")
        print(f"  Drained Capacity: {result['drained_ah'][-1]:.3f} Ah")
        print(f"  Energy Discharged: {(result['energy'][0] - result['energy'][-1]) / 3600:.3f} Wh")
    print("=" * 80)

    return results


def main():
    parser = argparse.ArgumentParser(description='Compare RV-model discharge curves at several currents')
    parser.add_argument('--currents', type=float, nargs='+', default=DEFAULT_CURRENTS_A,
                        help=f'Discharge currents in Amperes (default: {DEFAULT_CURRENTS_A})')
    parser.add_argument('--config', type=str, default=None,
                        help='YAML cell parameters (default: reference cell)')
    parser.add_argument('--output', type=str, default='multi_rate_discharge.png',
                        help='Plot filename (default: multi_rate_discharge.png)')
    args = parser.parse_args()

    parameters = CellParameters.from_yaml(args.config) if args.config else None
    plot_multi_rate_comparison(args.currents, parameters=parameters, filename=args.output)


if __name__ == '__main__':
    main()
