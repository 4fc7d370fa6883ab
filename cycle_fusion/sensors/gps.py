"""
GPS fix processing: jump rejection, bounded history and windowed speed.
"""

import logging
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Iterator, List, Optional, Tuple

from ..exceptions import InvalidSampleRejected
from ..math.constants import (
    GEO_HISTORY_CAPACITY,
    GPS_JUMP_THRESHOLD_M,
    MIN_JUDGEABLE_GAP_S,
    SMOOTHING_WINDOW_MS,
    SPEED_MARGIN_FACTOR,
    SPEED_MARGIN_OFFSET,
    UNKNOWN_SPEED_LIMIT,
)
from ..math.utils import haversine_distance, calculate_bearing

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GeoSample:
    """One position fix as delivered by the location provider."""

    # Position (decimal degrees)
    latitude: float
    longitude: float

    # Device-reported ground speed (m/s) and horizontal accuracy (m)
    speed: Optional[float] = None
    accuracy: Optional[float] = None

    # Milliseconds, provider clock
    timestamp_ms: int = 0


class GeoHistory:
    """
    Bounded sequence of accepted fixes, oldest evicted first.
    """

    def __init__(self, capacity: int = GEO_HISTORY_CAPACITY):
        if capacity < 2:
            raise ValueError("History capacity must be at least 2")
        self.capacity = capacity
        self._samples = deque(maxlen=capacity)

    def append(self, sample: GeoSample):
        self._samples.append(sample)

    def __len__(self) -> int:
        return len(self._samples)

    def __iter__(self) -> Iterator[GeoSample]:
        return iter(self._samples)

    def __bool__(self) -> bool:
        return bool(self._samples)

    @property
    def last(self) -> Optional[GeoSample]:
        return self._samples[-1] if self._samples else None

    @property
    def previous(self) -> Optional[GeoSample]:
        """The fix accepted just before the last one."""
        return self._samples[-2] if len(self._samples) >= 2 else None

    def samples(self) -> Tuple[GeoSample, ...]:
        """Read-only snapshot, oldest first."""
        return tuple(self._samples)

    def window(self, reference_ms: int, window_ms: int) -> List[GeoSample]:
        """Samples strictly younger than ``window_ms`` at ``reference_ms``."""
        return [s for s in self._samples if reference_ms - s.timestamp_ms < window_ms]


class ValidationResult(Enum):
    ACCEPTED = "accepted"
    REJECTED_AS_JUMP = "rejected_as_jump"


class GeoSampleValidator:
    """
    Rejects fixes that imply physically implausible motion.

    A fix is a jump when the distance from the last accepted fix exceeds
    either what the last reported speed (plus headroom for acceleration)
    could cover in the elapsed time, or an absolute distance threshold.
    """

    def __init__(self,
                 jump_threshold_m: float = GPS_JUMP_THRESHOLD_M,
                 speed_margin_factor: float = SPEED_MARGIN_FACTOR,
                 speed_margin_offset: float = SPEED_MARGIN_OFFSET,
                 unknown_speed_limit: float = UNKNOWN_SPEED_LIMIT,
                 min_time_gap_s: float = MIN_JUDGEABLE_GAP_S):
        self.jump_threshold_m = jump_threshold_m
        self.speed_margin_factor = speed_margin_factor
        self.speed_margin_offset = speed_margin_offset
        self.unknown_speed_limit = unknown_speed_limit
        self.min_time_gap_s = min_time_gap_s

    def max_plausible_speed(self, last: GeoSample) -> float:
        """Highest speed (m/s) we believe could follow ``last``."""
        if last.speed is None:
            return self.unknown_speed_limit
        return last.speed * self.speed_margin_factor + self.speed_margin_offset

    def inspect(self, history: GeoHistory,
                candidate: GeoSample) -> Optional[InvalidSampleRejected]:
        """
        Judge a candidate against the last accepted fix.

        Args:
            history: Accepted fixes so far
            candidate: New fix

        Returns:
            None if accepted, otherwise the rejection record
        """
        last = history.last
        if last is None:
            return None

        elapsed = (candidate.timestamp_ms - last.timestamp_ms) / 1000.0
        if elapsed < self.min_time_gap_s:
            return None

        distance = haversine_distance(
            last.latitude, last.longitude,
            candidate.latitude, candidate.longitude
        )
        limit = min(self.max_plausible_speed(last) * elapsed, self.jump_threshold_m)

        if distance > limit:
            logger.debug("GPS jump: %.1f m in %.2f s (limit %.1f m)",
                         distance, elapsed, limit)
            return InvalidSampleRejected(candidate, distance, limit, elapsed)
        return None

    def validate(self, history: GeoHistory, candidate: GeoSample) -> ValidationResult:
        if self.inspect(history, candidate) is None:
            return ValidationResult.ACCEPTED
        return ValidationResult.REJECTED_AS_JUMP


def derive_speed(previous: GeoSample, current: GeoSample) -> Optional[float]:
    """
    Instantaneous speed implied by two consecutive fixes.

    Returns:
        Speed in m/s, or None when the fixes are not ordered in time
    """
    dt = (current.timestamp_ms - previous.timestamp_ms) / 1000.0
    if dt <= 0:
        return None
    return haversine_distance(
        previous.latitude, previous.longitude,
        current.latitude, current.longitude
    ) / dt


def heading_between(previous: GeoSample, current: GeoSample) -> float:
    """Initial great-circle bearing in degrees [0, 360)."""
    return calculate_bearing(
        previous.latitude, previous.longitude,
        current.latitude, current.longitude
    )


class WindowedSpeedSmoother:
    """
    Distance-over-time speed across a trailing time window.

    Independent of the Kalman estimate. The window is anchored at the
    newest accepted fix, so results depend only on fix timestamps.
    """

    def __init__(self, window_ms: int = SMOOTHING_WINDOW_MS):
        self.window_ms = window_ms

    def update(self, history: GeoHistory, previous: float) -> float:
        """
        Compute the smoothed speed.

        Args:
            history: Accepted fixes
            previous: Last smoothed speed, returned when data is too sparse

        Returns:
            Smoothed speed in m/s
        """
        last = history.last
        if last is None:
            return previous

        recent = history.window(last.timestamp_ms, self.window_ms)
        if len(recent) < 2:
            return previous

        elapsed = (recent[-1].timestamp_ms - recent[0].timestamp_ms) / 1000.0
        if elapsed <= 0:
            return previous

        total_distance = sum(
            haversine_distance(a.latitude, a.longitude, b.latitude, b.longitude)
            for a, b in zip(recent, recent[1:])
        )
        return total_distance / elapsed
