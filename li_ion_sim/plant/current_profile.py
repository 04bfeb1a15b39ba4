"""
Discharge Current Profiles

This module provides load profiles that drive a device energy model:
- Constant current
- Pulse (square wave, e.g. radio bursts with rest periods)
- YAML-based profiles with time segments
- Dynamic profiles (current as a function of time)

Currents are discharge currents (positive values); charging is not modelled.
"""

import numpy as np
import yaml
from typing import Optional, List, Dict, Union, Callable
from enum import Enum

from li_ion_sim.sim.simulator import Simulator


class ProfileType(Enum):
    """Current profile types."""
    CONSTANT = "constant"
    PULSE = "pulse"
    YAML = "yaml"
    DYNAMIC = "dynamic"


class CurrentProfile:
    """
    Discharge Current Profile

    Parameters:
        profile_type: Type of profile (ProfileType enum or string)
        **kwargs: Profile-specific parameters:
            - constant: current_a, duration_sec
            - pulse: current_high_a, current_low_a, period_sec, duty_cycle, duration_sec, phase_sec
            - yaml: yaml_file (str) or yaml_data (dict)
            - dynamic: function (callable), duration_sec
    """

    def __init__(self, profile_type: Union[ProfileType, str], **kwargs):
        if isinstance(profile_type, str):
            try:
                profile_type = ProfileType(profile_type.lower())
            except ValueError:
                raise ValueError(f"Unknown profile type: {profile_type}")

        self._profile_type = profile_type

        self._duration_sec = 0.0
        self._segments: List[Dict] = []
        self._dynamic_function: Optional[Callable] = None

        if profile_type == ProfileType.CONSTANT:
            self._init_constant(**kwargs)
        elif profile_type == ProfileType.PULSE:
            self._init_pulse(**kwargs)
        elif profile_type == ProfileType.YAML:
            self._init_yaml(**kwargs)
        elif profile_type == ProfileType.DYNAMIC:
            self._init_dynamic(**kwargs)
        else:
            raise ValueError(f"Unsupported profile type: {profile_type}")

    @staticmethod
    def _check_discharge_current(current_a: float, name: str = 'current_a'):
        if current_a < 0:
            raise ValueError(f"{name} must be a discharge current >= 0, got {current_a}A")

    def _init_constant(self, current_a: float = 0.0, duration_sec: Optional[float] = None):
        """Initialize constant current profile."""
        self._check_discharge_current(current_a)
        self._current_a = current_a
        self._duration_sec = duration_sec if duration_sec is not None else float('inf')
        self._segments = [{'time_range': [0.0, self._duration_sec], 'current_a': current_a}]

    def _init_pulse(
        self,
        current_high_a: float,
        current_low_a: float = 0.0,
        period_sec: float = 60.0,
        duty_cycle: float = 0.5,
        duration_sec: Optional[float] = None,
        phase_sec: float = 0.0
    ):
        """
        Initialize pulse (square wave) profile.

        Args:
            current_high_a: Pulse current (A)
            current_low_a: Current between pulses (A, default: 0 = rest)
            period_sec: Period in seconds
            duty_cycle: Duty cycle (0-1), fraction of period at high current
            duration_sec: Total duration (None = infinite)
            phase_sec: Phase offset in seconds
        """
        if not 0.0 <= duty_cycle <= 1.0:
            raise ValueError("Duty cycle must be between 0 and 1")
        if period_sec <= 0:
            raise ValueError(f"Period must be positive, got {period_sec}s")
        self._check_discharge_current(current_high_a, 'current_high_a')
        self._check_discharge_current(current_low_a, 'current_low_a')

        self._current_high_a = current_high_a
        self._current_low_a = current_low_a
        self._period_sec = period_sec
        self._duty_cycle = duty_cycle
        self._phase_sec = phase_sec
        self._duration_sec = duration_sec if duration_sec is not None else float('inf')
        self._high_duration_sec = period_sec * duty_cycle

    def _init_yaml(self, yaml_file: Optional[str] = None, yaml_data: Optional[Dict] = None):
        """Initialize profile from YAML file or data."""
        if yaml_file is not None:
            with open(yaml_file, 'r') as f:
                yaml_data = yaml.safe_load(f)

        if yaml_data is None:
            raise ValueError("Either yaml_file or yaml_data must be provided")

        self._profile_name = yaml_data.get('name', 'Unnamed Profile')
        segments_data = yaml_data.get('segments', [])

        self._segments = []
        for seg in segments_data:
            time_range = [float(x) for x in seg.get('time_range', [0.0, 0.0])]
            current_a = float(seg.get('current_a', 0.0))
            self._check_discharge_current(current_a)

            self._segments.append({
                'time_range': time_range,
                'current_a': current_a,
                'description': seg.get('description', '')
            })

        # Sort segments by start time
        self._segments.sort(key=lambda x: x['time_range'][0])
        self._validate_segments()

        default_duration = self._segments[-1]['time_range'][1] if self._segments else 0.0
        self._duration_sec = float(yaml_data.get('duration_sec', default_duration))

    def _init_dynamic(self, function: Optional[Callable] = None, duration_sec: Optional[float] = None):
        """
        Initialize dynamic profile.

        Args:
            function: Callable that takes time (seconds) and returns current (A)
            duration_sec: Total duration (None = infinite)
        """
        if function is None:
            raise ValueError("A current function must be provided for a dynamic profile")

        self._dynamic_function = function
        self._duration_sec = duration_sec if duration_sec is not None else float('inf')

    def _validate_segments(self):
        """Validate YAML segments (ordered ranges, no overlaps)."""
        for i, seg in enumerate(self._segments):
            t_start, t_end = seg['time_range']
            if t_end < t_start:
                raise ValueError(f"Segment {i} ends ({t_end}s) before it starts ({t_start}s)")

        for i in range(len(self._segments) - 1):
            current_end = self._segments[i]['time_range'][1]
            next_start = self._segments[i + 1]['time_range'][0]

            if current_end > next_start:
                raise ValueError(f"Segment overlap: segment {i} ends at {current_end}s, "
                                 f"segment {i+1} starts at {next_start}s")

    def get_current_at_time(self, t_sec: float) -> float:
        """
        Get current at specified time.

        Args:
            t_sec: Time in seconds

        Returns:
            Current in mA (milliamperes), 0 outside the profile
        """
        if t_sec < 0 or t_sec > self._duration_sec:
            return 0.0

        if self._profile_type == ProfileType.CONSTANT:
            return self._current_a * 1000.0

        elif self._profile_type == ProfileType.PULSE:
            t_relative = (t_sec + self._phase_sec) % self._period_sec
            if t_relative < self._high_duration_sec:
                return self._current_high_a * 1000.0
            return self._current_low_a * 1000.0

        elif self._profile_type == ProfileType.YAML:
            for seg in self._segments:
                t_start, t_end = seg['time_range']
                if t_start <= t_sec < t_end:
                    return seg['current_a'] * 1000.0
            return 0.0

        elif self._profile_type == ProfileType.DYNAMIC:
            current_a = float(self._dynamic_function(t_sec))
            self._check_discharge_current(current_a)
            return current_a * 1000.0

        return 0.0

    def get_duration(self) -> float:
        """
        Get total duration of profile.

        Returns:
            Duration in seconds (float('inf') for infinite profiles)
        """
        return self._duration_sec

    def get_profile_info(self) -> Dict:
        """
        Get profile information.

        Returns:
            Dictionary with profile metadata
        """
        info = {
            'profile_type': self._profile_type.value,
            'duration_sec': self._duration_sec if self._duration_sec != float('inf') else None,
        }

        if self._profile_type == ProfileType.CONSTANT:
            info['current_a'] = self._current_a

        elif self._profile_type == ProfileType.PULSE:
            info.update({
                'current_high_a': self._current_high_a,
                'current_low_a': self._current_low_a,
                'period_sec': self._period_sec,
                'duty_cycle': self._duty_cycle,
                'average_current_a': (self._current_high_a * self._duty_cycle +
                                      self._current_low_a * (1.0 - self._duty_cycle))
            })

        elif self._profile_type == ProfileType.YAML:
            info.update({
                'name': getattr(self, '_profile_name', 'Unnamed'),
                'num_segments': len(self._segments)
            })

        elif self._profile_type == ProfileType.DYNAMIC:
            info['has_function'] = self._dynamic_function is not None

        return info

    def generate_time_series(
        self,
        dt_sec: float = 1.0,
        t_start: float = 0.0,
        t_end: Optional[float] = None
    ) -> tuple:
        """
        Generate time series of current values.

        Args:
            dt_sec: Time step in seconds
            t_start: Start time in seconds
            t_end: End time in seconds (default: profile end, capped at 1 hour for infinite profiles)

        Returns:
            Tuple of (time_array, current_array_mA)
        """
        if dt_sec <= 0:
            raise ValueError(f"Time step must be positive, got {dt_sec}s")

        if t_end is None:
            if self._duration_sec == float('inf'):
                t_end = t_start + 3600.0  # 1 hour default
            else:
                t_end = self._duration_sec

        time_array = np.arange(t_start, t_end, dt_sec)
        current_array = np.array([self.get_current_at_time(t) for t in time_array])

        return time_array, current_array

    def schedule_on(self, simulator: Simulator, device, dt_sec: float = 1.0,
                    t_end: Optional[float] = None) -> int:
        """
        Schedule the profile's current changes on a device.

        The profile is sampled every dt_sec from the simulator's present time;
        device.set_current_a() is scheduled only where the sampled current
        changes. The device is set to 0 A at the end of a finite profile.

        Args:
            simulator: Simulator to schedule on
            device: Object with set_current_a(current_a)
            dt_sec: Sampling step in seconds
            t_end: Last sample time relative to now (default: profile duration)

        Returns:
            Number of scheduled current changes
        """
        time_array, current_array = self.generate_time_series(dt_sec=dt_sec, t_end=t_end)

        if t_end is None and self._duration_sec != float('inf'):
            time_array = np.append(time_array, self._duration_sec)
            current_array = np.append(current_array, 0.0)

        scheduled = 0
        previous_ma = None
        for t_sec, current_ma in zip(time_array, current_array):
            if current_ma != previous_ma:
                simulator.schedule(float(t_sec), device.set_current_a, float(current_ma) / 1000.0)
                previous_ma = current_ma
                scheduled += 1

        return scheduled
