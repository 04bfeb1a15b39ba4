"""
Unit tests for discharge current profiles.
"""

import pytest
import numpy as np
import tempfile
import os
from li_ion_sim.plant.current_profile import CurrentProfile, ProfileType
from li_ion_sim.sim.simulator import Simulator


class RecordingDevice:
    """Device stub recording every current change with its time."""

    def __init__(self, simulator):
        self.simulator = simulator
        self.changes = []

    def set_current_a(self, current_a):
        self.changes.append((self.simulator.now, current_a))


class TestCurrentProfile:
    """Test suite for CurrentProfile class."""

    def test_constant_profile(self):
        """Test constant current profile."""
        profile = CurrentProfile('constant', current_a=1.5, duration_sec=3600.0)

        assert profile.get_current_at_time(0.0) == 1500.0  # 1.5A = 1500mA
        assert profile.get_current_at_time(1000.0) == 1500.0
        assert profile.get_current_at_time(3600.0) == 1500.0

        # Test beyond duration
        assert profile.get_current_at_time(4000.0) == 0.0
        assert profile.get_duration() == 3600.0

    def test_constant_profile_infinite(self):
        """Test constant profile with infinite duration."""
        profile = CurrentProfile(ProfileType.CONSTANT, current_a=0.5)

        assert profile.get_current_at_time(0.0) == 500.0
        assert profile.get_current_at_time(100000.0) == 500.0
        assert profile.get_duration() == float('inf')

    def test_negative_current_rejected(self):
        """Charging currents are not part of a discharge profile."""
        with pytest.raises(ValueError, match="discharge current"):
            CurrentProfile('constant', current_a=-1.0)

        with pytest.raises(ValueError, match="current_low_a"):
            CurrentProfile('pulse', current_high_a=1.0, current_low_a=-0.5, period_sec=60.0)

    def test_unknown_profile_type(self):
        """Test unknown profile type string."""
        with pytest.raises(ValueError, match="Unknown profile type"):
            CurrentProfile('sawtooth', current_a=1.0)

    def test_pulse_profile(self):
        """Test pulse (square wave) profile."""
        profile = CurrentProfile(
            'pulse',
            current_high_a=2.0,
            current_low_a=0.0,
            period_sec=60.0,
            duty_cycle=0.5,
            duration_sec=300.0
        )

        # Pulse starts high
        assert profile.get_current_at_time(0.0) == 2000.0
        assert profile.get_current_at_time(30.0) == 0.0
        assert profile.get_current_at_time(60.0) == 2000.0
        assert profile.get_current_at_time(90.0) == 0.0
        assert profile.get_duration() == 300.0

    def test_pulse_profile_duty_cycle(self):
        """Test pulse profile with a 25% duty cycle."""
        profile = CurrentProfile(
            'pulse',
            current_high_a=4.0,
            current_low_a=0.1,
            period_sec=60.0,
            duty_cycle=0.25
        )

        assert profile.get_current_at_time(0.0) == 4000.0
        assert profile.get_current_at_time(15.0) == pytest.approx(100.0)
        assert profile.get_current_at_time(30.0) == pytest.approx(100.0)

        info = profile.get_profile_info()
        assert info['average_current_a'] == pytest.approx(4.0 * 0.25 + 0.1 * 0.75)

    def test_pulse_profile_phase(self):
        """Test pulse profile with phase offset."""
        profile = CurrentProfile(
            'pulse',
            current_high_a=1.0,
            period_sec=60.0,
            duty_cycle=0.5,
            phase_sec=30.0
        )

        # At t=0, with 30s phase, we are in the rest half
        assert profile.get_current_at_time(0.0) == 0.0
        assert profile.get_current_at_time(30.0) == 1000.0

    def test_pulse_invalid_duty_cycle(self):
        """Test duty cycle validation."""
        with pytest.raises(ValueError, match="Duty cycle"):
            CurrentProfile('pulse', current_high_a=1.0, period_sec=60.0, duty_cycle=1.5)

    def test_yaml_profile(self):
        """Test YAML profile loading."""
        yaml_content = """
name: "Test_Profile"
duration_sec: 3600
segments:
  - time_range: [0, 1800]
    current_a: 1.0
    description: "Discharge"
  - time_range: [1800, 3600]
    current_a: 0.25
    description: "Standby"
"""

        with tempfile.NamedTemporaryFile(mode='w', suffix='.yaml', delete=False) as f:
            f.write(yaml_content)
            yaml_file = f.name

        try:
            profile = CurrentProfile('yaml', yaml_file=yaml_file)

            assert profile.get_current_at_time(0.0) == 1000.0
            assert profile.get_current_at_time(1799.0) == 1000.0
            assert profile.get_current_at_time(1800.0) == 250.0
            assert profile.get_current_at_time(3599.0) == 250.0

            # Test beyond duration
            assert profile.get_current_at_time(4000.0) == 0.0
            assert profile.get_duration() == 3600.0

            info = profile.get_profile_info()
            assert info['name'] == "Test_Profile"
            assert info['num_segments'] == 2

        finally:
            os.unlink(yaml_file)

    def test_yaml_profile_default_duration(self):
        """Duration defaults to the end of the last segment."""
        profile = CurrentProfile('yaml', yaml_data={
            'segments': [
                {'time_range': [600, 900], 'current_a': 2.0},
                {'time_range': [0, 300], 'current_a': 1.0},
            ]
        })

        assert profile.get_duration() == 900.0
        # Segments are sorted, gaps carry no current
        assert profile.get_current_at_time(100.0) == 1000.0
        assert profile.get_current_at_time(450.0) == 0.0
        assert profile.get_current_at_time(700.0) == 2000.0

    def test_yaml_profile_validation_overlap(self):
        """Test YAML profile validation (overlapping segments)."""
        yaml_content = """
name: "Invalid_Profile"
duration_sec: 1800
segments:
  - time_range: [0, 600]
    current_a: 1.0
  - time_range: [500, 1200]  # Overlaps with previous
    current_a: 0.5
"""

        with tempfile.NamedTemporaryFile(mode='w', suffix='.yaml', delete=False) as f:
            f.write(yaml_content)
            yaml_file = f.name

        try:
            with pytest.raises(ValueError, match="overlap"):
                CurrentProfile('yaml', yaml_file=yaml_file)
        finally:
            os.unlink(yaml_file)

    def test_yaml_profile_requires_data(self):
        """Test YAML profile without file or data."""
        with pytest.raises(ValueError, match="yaml_file or yaml_data"):
            CurrentProfile('yaml')

    def test_dynamic_profile_function(self):
        """Test dynamic profile with function."""
        def sin_current(t):
            return 1.0 + 0.5 * np.sin(2 * np.pi * t / 3600.0)

        profile = CurrentProfile('dynamic', function=sin_current, duration_sec=3600.0)

        assert profile.get_current_at_time(0.0) == pytest.approx(1000.0)
        assert profile.get_current_at_time(900.0) == pytest.approx(1500.0)
        assert profile.get_current_at_time(2700.0) == pytest.approx(500.0)
        assert profile.get_current_at_time(4000.0) == 0.0

    def test_dynamic_profile_requires_function(self):
        """Test dynamic profile without function."""
        with pytest.raises(ValueError, match="function"):
            CurrentProfile('dynamic', duration_sec=10.0)

    def test_generate_time_series(self):
        """Test generate_time_series() method."""
        profile = CurrentProfile('constant', current_a=2.0, duration_sec=100.0)

        time_array, current_array = profile.generate_time_series(dt_sec=1.0, t_start=0.0)

        assert len(time_array) == len(current_array)
        assert len(time_array) == 100  # 100 seconds / 1 second step
        assert np.allclose(current_array, 2000.0)

    def test_generate_time_series_infinite_profile(self):
        """Infinite profiles are capped at one hour unless t_end is given."""
        profile = CurrentProfile('constant', current_a=1.0)

        time_array, _ = profile.generate_time_series(dt_sec=60.0)
        assert len(time_array) == 60

        time_array, _ = profile.generate_time_series(dt_sec=10.0, t_end=100.0)
        assert len(time_array) == 10

    def test_schedule_on_pulse(self):
        """Pulse edges are scheduled as current changes on the device."""
        simulator = Simulator()
        device = RecordingDevice(simulator)
        profile = CurrentProfile('pulse', current_high_a=2.0, current_low_a=0.0,
                                 period_sec=600.0, duty_cycle=0.5, duration_sec=1200.0)

        scheduled = profile.schedule_on(simulator, device, dt_sec=1.0)
        simulator.run()

        assert scheduled == 4
        assert device.changes == [(0.0, 2.0), (300.0, 0.0), (600.0, 2.0), (900.0, 0.0)]

    def test_schedule_on_constant_switches_off_at_end(self):
        """A finite profile ends with the device at 0 A."""
        simulator = Simulator()
        device = RecordingDevice(simulator)
        profile = CurrentProfile('constant', current_a=0.5, duration_sec=120.0)

        profile.schedule_on(simulator, device, dt_sec=10.0)
        simulator.run()

        assert device.changes == [(0.0, 0.5), (120.0, 0.0)]


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
