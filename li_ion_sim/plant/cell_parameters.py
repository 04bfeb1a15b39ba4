"""
Li-ion Cell Parameters

Immutable parameter set for the RV-model Li-ion cell:
- Polarization curve fit (voltages and capacities read off a datasheet discharge curve)
- Energy budget and depletion thresholds
- RV diffusion model shape parameter and series length
- Loading from dicts and YAML files, validated once at construction
"""

from dataclasses import dataclass, asdict, fields
from typing import Any, Dict, Mapping, Union
from pathlib import Path

import yaml


class CellConfigurationError(ValueError):
    """Raised when a cell parameter set is physically or numerically invalid."""


@dataclass(frozen=True)
class CellParameters:
    """
    Parameters of a single Li-ion cell.

    Defaults describe the reference 18650 cell (2.45 Ah, 4.05 V full charge)
    whose datasheet discharge curve was used to fit the polarization model.

    Attributes:
        e_full: Full-charge voltage in V, also the initial cell voltage
        e_nom: Voltage at the end of the nominal zone in V
        e_exp: Voltage at the end of the exponential zone in V
        q_rated: Rated capacity in Ah
        q_nom: Capacity at the end of the nominal zone in Ah
        q_exp: Capacity at the end of the exponential zone in Ah
        internal_resistance: Internal resistance in Ohm
        typ_current: Discharge current used to fit the curves in A
        min_voltage_threshold: Terminal voltage at which the cell is depleted in V
        initial_energy_j: Initial stored energy in J
        low_battery_threshold: Depletion threshold as a fraction of initial energy
        energy_update_interval: Time between periodic energy updates in s
        beta: RV model diffusion parameter in 1/sqrt(min)
        num_terms: Number of terms of the truncated RV series
    """

    e_full: float = 4.05
    e_nom: float = 3.6
    e_exp: float = 3.6
    q_rated: float = 2.45
    q_nom: float = 1.1
    q_exp: float = 1.2
    internal_resistance: float = 0.083
    typ_current: float = 2.33
    min_voltage_threshold: float = 3.3
    initial_energy_j: float = 31752.0
    low_battery_threshold: float = 0.10
    energy_update_interval: float = 1.0
    beta: float = 0.637
    num_terms: int = 10

    def __post_init__(self):
        self.validate()

    def validate(self):
        """
        Check the parameter set.

        Raises:
            CellConfigurationError: If any parameter is out of range
        """
        for name in ('e_full', 'e_nom', 'e_exp', 'min_voltage_threshold'):
            if getattr(self, name) <= 0:
                raise CellConfigurationError(f"{name} must be positive, got {getattr(self, name)}V")

        for name in ('q_rated', 'q_nom', 'q_exp'):
            if getattr(self, name) <= 0:
                raise CellConfigurationError(f"{name} must be positive, got {getattr(self, name)}Ah")

        if self.q_nom >= self.q_rated:
            raise CellConfigurationError(
                f"q_nom ({self.q_nom}Ah) must be below q_rated ({self.q_rated}Ah)")

        if self.internal_resistance < 0:
            raise CellConfigurationError(
                f"internal_resistance must be >= 0, got {self.internal_resistance} Ohm")

        if self.typ_current < 0:
            raise CellConfigurationError(f"typ_current must be >= 0, got {self.typ_current}A")

        if self.initial_energy_j <= 0:
            raise CellConfigurationError(f"initial_energy_j must be positive, got {self.initial_energy_j}J")

        if not 0.0 <= self.low_battery_threshold < 1.0:
            raise CellConfigurationError(
                f"low_battery_threshold must be in [0, 1), got {self.low_battery_threshold}")

        if self.energy_update_interval <= 0:
            raise CellConfigurationError(
                f"energy_update_interval must be positive, got {self.energy_update_interval}s")

        # beta appears squared in a denominator of the RV series
        if self.beta <= 0:
            raise CellConfigurationError(f"beta must be positive, got {self.beta}")

        if isinstance(self.num_terms, bool) or int(self.num_terms) != self.num_terms or self.num_terms < 1:
            raise CellConfigurationError(f"num_terms must be an integer >= 1, got {self.num_terms}")

    @property
    def initial_cell_voltage(self) -> float:
        """Voltage reported before the first update (fully charged cell)."""
        return self.e_full

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'CellParameters':
        """
        Build parameters from a mapping, missing keys keep their defaults.

        Args:
            data: Mapping of field name to value

        Returns:
            Validated CellParameters

        Raises:
            CellConfigurationError: On unknown keys or invalid values
        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise CellConfigurationError(f"Unknown cell parameter(s): {', '.join(unknown)}")

        values = {}
        for key, value in data.items():
            if key == 'num_terms':
                values[key] = value
            else:
                try:
                    values[key] = float(value)
                except (TypeError, ValueError):
                    raise CellConfigurationError(f"{key} must be a number, got {value!r}")
        return cls(**values)

    @classmethod
    def from_yaml(cls, yaml_file: Union[str, Path]) -> 'CellParameters':
        """
        Load parameters from a YAML file.

        The file may hold the fields at top level or under a 'cell' section:

            cell:
              q_rated: 2.45
              beta: 0.637

        Args:
            yaml_file: Path to YAML file

        Returns:
            Validated CellParameters
        """
        with open(yaml_file, 'r') as f:
            yaml_data = yaml.safe_load(f) or {}

        if not isinstance(yaml_data, dict):
            raise CellConfigurationError(f"{yaml_file}: expected a mapping of cell parameters")

        if 'cell' in yaml_data:
            yaml_data = yaml_data['cell'] or {}
        return cls.from_dict(yaml_data)

    def to_dict(self) -> Dict[str, Any]:
        """Return the parameters as a plain dictionary."""
        return asdict(self)
