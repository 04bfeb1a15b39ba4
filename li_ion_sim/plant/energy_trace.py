"""Diagnostic time series of a cell's remaining energy and voltage."""

from pathlib import Path
from typing import List, Union

import numpy as np
import pandas as pd


class EnergyTrace:
    """
    In-memory sink for (time, remaining energy) samples.

    A cell records one sample after every energy update. The series is meant
    for plotting and debugging, not as a stable file format.
    """

    COLUMNS = ['time_s', 'remaining_energy_J', 'supply_voltage_V', 'drained_capacity_Ah']

    def __init__(self):
        self._rows: List[tuple] = []

    def record(
        self,
        time_s: float,
        remaining_energy_j: float,
        supply_voltage_v: float,
        drained_capacity_ah: float = 0.0
    ):
        self._rows.append((float(time_s), float(remaining_energy_j),
                           float(supply_voltage_v), float(drained_capacity_ah)))

    def __len__(self) -> int:
        return len(self._rows)

    @property
    def times(self) -> np.ndarray:
        return np.array([row[0] for row in self._rows])

    @property
    def remaining_energy(self) -> np.ndarray:
        return np.array([row[1] for row in self._rows])

    @property
    def supply_voltage(self) -> np.ndarray:
        return np.array([row[2] for row in self._rows])

    def to_dataframe(self) -> pd.DataFrame:
        return pd.DataFrame(self._rows, columns=self.COLUMNS)

    def save_csv(self, csv_path: Union[str, Path]) -> Path:
        """
        Write the samples to CSV.

        Args:
            csv_path: Output file path (parent directories are created)

        Returns:
            Path of the written file
        """
        csv_path = Path(csv_path)
        csv_path.parent.mkdir(parents=True, exist_ok=True)
        self.to_dataframe().to_csv(csv_path, index=False, float_format='%.6f')
        return csv_path

    def clear(self):
        self._rows = []
