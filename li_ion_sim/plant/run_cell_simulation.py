"""Generic script for running single-cell discharge simulations from command line.
Drives an RV-model Li-ion cell with a constant, pulse or YAML load profile."""
import argparse
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

import numpy as np
import pandas as pd
import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt

from li_ion_sim.plant.cell_model import LiIonCell
from li_ion_sim.plant.cell_parameters import CellParameters
from li_ion_sim.plant.current_profile import CurrentProfile
from li_ion_sim.plant.device_model import SimpleDeviceEnergyModel
from li_ion_sim.plant.energy_trace import EnergyTrace
from li_ion_sim.sim.simulator import Simulator

logger = logging.getLogger(__name__)

DEFAULT_OUTPUT_DIR = Path(__file__).parent / "output"


def build_profile(mode: str, current_amp: float = 1.0, duration_sec: Optional[float] = None,
                  period_sec: float = 60.0, duty_cycle: float = 0.5,
                  profile_file: Optional[str] = None) -> CurrentProfile:
    """Create the load profile selected on the command line."""
    if mode == 'constant':
        return CurrentProfile('constant', current_a=current_amp, duration_sec=duration_sec)
    elif mode == 'pulse':
        return CurrentProfile('pulse', current_high_a=current_amp, current_low_a=0.0,
                              period_sec=period_sec, duty_cycle=duty_cycle, duration_sec=duration_sec)
    elif mode == 'yaml':
        if profile_file is None:
            raise ValueError("A profile file is required for mode 'yaml'")
        return CurrentProfile('yaml', yaml_file=profile_file)
    raise ValueError(f"Mode must be 'constant', 'pulse' or 'yaml', got '{mode}'")


def run_simulation(profile: CurrentProfile, duration_sec: float, parameters: Optional[CellParameters] = None,
                   dt_sec: float = 1.0, save_csv: bool = True, csv_filename: Optional[str] = None,
                   save_plot: bool = False, plot_filename: Optional[str] = None,
                   output_dir: Path = DEFAULT_OUTPUT_DIR) -> pd.DataFrame:
    """
    Run a cell discharge simulation.

    Args:
        profile: Load profile applied to a single device
        duration_sec: Simulated time in seconds
        parameters: Cell parameters (default: reference cell)
        dt_sec: Profile sampling step in seconds
        save_csv: Whether to save CSV data (default: True)
        csv_filename: Filename for CSV (auto-generated if None)
        save_plot: Whether to save the plot (default: False)
        plot_filename: Filename for plot (auto-generated if None)
        output_dir: Directory for CSV and plot files

    Returns:
        DataFrame with one row per energy update
    """
    parameters = parameters if parameters is not None else CellParameters()

    simulator = Simulator()
    trace = EnergyTrace()
    cell = LiIonCell(simulator, parameters=parameters, trace=trace)
    device = SimpleDeviceEnergyModel(simulator, source=cell)
    cell.initialize()

    changes = profile.schedule_on(simulator, device, dt_sec=dt_sec, t_end=duration_sec)
    logger.info(f"Scheduled {changes} current changes over {duration_sec}s")

    print("=" * 80)
    print("Li-ion Cell Discharge Simulation (RV model)")
    print("=" * 80)
    print(f"Profile: {profile.get_profile_info()}")
    print(f"Rated capacity: {parameters.q_rated}Ah, initial energy: {parameters.initial_energy_j}J")
    print(f"Update interval: {parameters.energy_update_interval}s, beta: {parameters.beta}")
    print(f"Duration: {duration_sec}s")
    print("=" * 80)

    simulator.run(until=duration_sec)

    df = trace.to_dataframe()
    time_s = df['time_s'].to_numpy()
    df['current_A'] = [profile.get_current_at_time(t) / 1000.0 for t in time_s]

    print(f"\nSimulation completed:")
    print(f"  Energy updates: {len(df)}")
    print(f"  Final remaining energy: {df['remaining_energy_J'].iloc[-1]:.3f}J "
          f"({df['remaining_energy_J'].iloc[-1] / parameters.initial_energy_j * 100:.2f}%)")
    print(f"  Final supply voltage: {df['supply_voltage_V'].iloc[-1]:.4f}V")
    print(f"  Drained capacity: {df['drained_capacity_Ah'].iloc[-1]:.4f}Ah")
    if cell.is_depleted():
        print(f"  Cell depleted at {device.depleted_at:.1f}s")

    if save_csv:
        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)
        if csv_filename is None:
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            csv_filename = f"cell_discharge_{timestamp}.csv"

        # Ensure filename doesn't have path separators
        csv_path = output_dir / Path(csv_filename).name
        df.to_csv(csv_path, index=False, float_format='%.6f')
        print(f"\nCSV data saved to: {csv_path}")
        print(f"  Total rows: {len(df)}")

    if save_plot:
        plot_results(df, plot_filename=plot_filename, output_dir=output_dir)

    cell.dispose()
    return df


def plot_results(df: pd.DataFrame, plot_filename: Optional[str] = None,
                 output_dir: Path = DEFAULT_OUTPUT_DIR) -> Path:
    """Plot simulation results."""
    print("\nGenerating plots...")

    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    if plot_filename is None:
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        plot_filename = f"cell_discharge_{timestamp}.png"
    plot_path = output_dir / Path(plot_filename).name

    time_min = df['time_s'].to_numpy() / 60.0

    fig, axes = plt.subplots(2, 2, figsize=(16, 12))
    fig.suptitle('Li-ion Cell Discharge (RV model)', fontsize=16, fontweight='bold')

    ax1 = axes[0, 0]
    ax1.plot(time_min, df['supply_voltage_V'], 'b-', linewidth=2, label='Terminal Voltage')
    ax1.set_xlabel('Time (min)', fontsize=12)
    ax1.set_ylabel('Voltage (V)', fontsize=12)
    ax1.set_title('Terminal Voltage vs Time', fontsize=13, fontweight='bold')
    ax1.grid(True, alpha=0.3)
    ax1.legend(fontsize=11, loc='best')

    ax2 = axes[0, 1]
    ax2.plot(time_min, df['remaining_energy_J'], 'g-', linewidth=2, label='Remaining Energy')
    ax2.set_xlabel('Time (min)', fontsize=12)
    ax2.set_ylabel('Energy (J)', fontsize=12)
    ax2.set_title('Remaining Energy vs Time', fontsize=13, fontweight='bold')
    ax2.grid(True, alpha=0.3)
    ax2.legend(fontsize=11, loc='best')

    ax3 = axes[1, 0]
    ax3.plot(df['drained_capacity_Ah'], df['supply_voltage_V'], 'b-', linewidth=2, label='Voltage')
    ax3.set_xlabel('Drained Capacity (Ah)', fontsize=12)
    ax3.set_ylabel('Voltage (V)', fontsize=12)
    ax3.set_title('Discharge Curve', fontsize=13, fontweight='bold')
    ax3.grid(True, alpha=0.3)
    ax3.legend(fontsize=11, loc='best')

    ax4 = axes[1, 1]
    ax4.step(time_min, df['current_A'], 'r-', where='post', linewidth=2, label='Load Current')
    ax4.set_xlabel('Time (min)', fontsize=12)
    ax4.set_ylabel('Current (A)', fontsize=12)
    ax4.set_title('Load Profile', fontsize=13, fontweight='bold')
    ax4.set_ylim(bottom=0.0, top=max(float(np.max(df['current_A'])) * 1.2, 0.1))
    ax4.grid(True, alpha=0.3)
    ax4.legend(fontsize=11, loc='best')

    plt.tight_layout()
    plt.savefig(plot_path, dpi=150, bbox_inches='tight')
    plt.close(fig)
    print(f"Plot saved to: {plot_path}")
    return plot_path


def main():
    """Main function with command-line argument parsing."""
    parser = argparse.ArgumentParser(
        description='Run an RV-model Li-ion cell discharge simulation',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Discharge at 1A for one hour
  python -m li_ion_sim.plant.run_cell_simulation --mode constant --current 1.0 --duration 3600

  # 2A pulses, 50% duty cycle, 10 minute period, with plot
  python -m li_ion_sim.plant.run_cell_simulation --mode pulse --current 2.0 --period 600 --duration 3600 --plot

  # Load profile from YAML and custom cell parameters
  python -m li_ion_sim.plant.run_cell_simulation --mode yaml --profile config/pulse_profile.yaml --config config/reference_cell.yaml
        """
    )

    parser.add_argument('--mode', type=str, choices=['constant', 'pulse', 'yaml'], default='constant',
                        help='Load profile type (default: constant)')
    parser.add_argument('--current', type=float, default=1.0,
                        help='Discharge current (pulse height) in Amperes (default: 1.0)')
    parser.add_argument('--duration', type=float, default=None,
                        help='Simulated time in seconds (default: profile duration or 3600)')
    parser.add_argument('--period', type=float, default=60.0,
                        help='Pulse period in seconds (default: 60)')
    parser.add_argument('--duty', type=float, default=0.5,
                        help='Pulse duty cycle 0-1 (default: 0.5)')
    parser.add_argument('--profile', type=str, default=None,
                        help='YAML load profile (mode yaml)')
    parser.add_argument('--config', type=str, default=None,
                        help='YAML cell parameters (default: reference cell)')
    parser.add_argument('--dt', type=float, default=1.0,
                        help='Profile sampling step in seconds (default: 1.0)')
    parser.add_argument('--plot', action='store_true',
                        help='Generate plot (default: False, CSV is always saved)')
    parser.add_argument('--plot-filename', type=str, default=None,
                        help='Custom filename for plot (default: auto-generated)')
    parser.add_argument('--csv-filename', type=str, default=None,
                        help='Custom filename for CSV (default: auto-generated)')
    parser.add_argument('--no-csv', action='store_true',
                        help='Do not save CSV data')
    parser.add_argument('--verbose', action='store_true',
                        help='Enable verbose logging')

    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format='%(levelname)s %(name)s: %(message)s')

    if args.mode == 'yaml' and args.profile is None:
        parser.error("--profile is required with --mode yaml")

    profile = build_profile(args.mode, current_amp=args.current, duration_sec=args.duration,
                            period_sec=args.period, duty_cycle=args.duty, profile_file=args.profile)

    duration_sec = args.duration
    if duration_sec is None:
        duration_sec = profile.get_duration()
        if duration_sec == float('inf'):
            duration_sec = 3600.0

    parameters = CellParameters.from_yaml(args.config) if args.config else None

    run_simulation(
        profile,
        duration_sec=duration_sec,
        parameters=parameters,
        dt_sec=args.dt,
        save_csv=not args.no_csv,
        csv_filename=args.csv_filename,
        save_plot=args.plot,
        plot_filename=args.plot_filename
    )

    print("\nSimulation complete!")


if __name__ == '__main__':
    main()
