"""
Load History Tracker

Records the discharge current of a cell as piecewise-constant segments.
A new segment starts only when the sampled load differs from the previous one
(exact comparison); otherwise the end of the open segment advances to the
sample time.
"""

from typing import List

# Sentinel for "no load sampled yet"
NO_LOAD = -1.0


class LoadHistory:
    """
    Piecewise-constant load history.

    Boundaries always hold one entry more than loads:
        boundaries = [s0, s1, ..., sk]   (sk = time of the latest sample)
        loads      = [I1, ..., Ik]       (Ii active on [s(i-1), si])

    Parameters:
        start_time: Time of the first boundary in seconds (default: 0.0)
    """

    def __init__(self, start_time: float = 0.0):
        self._boundaries: List[float] = [float(start_time)]
        self._loads: List[float] = []
        self._previous_load = NO_LOAD
        self._last_sample_time = float(start_time)

    def record_sample(self, load_ma: float, time: float):
        """
        Record the instantaneous load at a time.

        Must be called with the present load before every discharge
        evaluation, even if the load did not change.

        Args:
            load_ma: Total load in mA
            time: Sample time in seconds (not before the previous sample)
        """
        if time < self._last_sample_time:
            raise ValueError(
                f"Sample time {time}s is before the previous sample at {self._last_sample_time}s")

        if load_ma != self._previous_load:
            self._boundaries[-1] = self._last_sample_time
            self._loads.append(load_ma)
            self._boundaries.append(time)
            self._previous_load = load_ma
        else:
            self._boundaries[-1] = time

        self._last_sample_time = time

        assert len(self._loads) == len(self._boundaries) - 1, "load/boundary count mismatch"

    @property
    def loads(self) -> List[float]:
        """Recorded segment loads in mA (copy)."""
        return list(self._loads)

    @property
    def boundaries(self) -> List[float]:
        """Segment boundaries in seconds (copy)."""
        return list(self._boundaries)

    @property
    def segment_count(self) -> int:
        return len(self._loads)

    @property
    def previous_load(self) -> float:
        """Last recorded load in mA, NO_LOAD before the first sample."""
        return self._previous_load

    @property
    def last_sample_time(self) -> float:
        return self._last_sample_time

    @property
    def first_sample_time(self) -> float:
        return self._boundaries[0]

    def __len__(self) -> int:
        return len(self._loads)

    def __repr__(self) -> str:
        return (f"LoadHistory(segments={len(self._loads)}, "
                f"last_sample_time={self._last_sample_time})")
