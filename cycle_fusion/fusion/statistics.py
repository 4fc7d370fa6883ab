"""
Per-session ride statistics.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from .estimate import FusedEstimate


@dataclass
class RideStatistics:
    """Running totals for one tracking session."""

    accepted_fixes: int = 0
    rejected_fixes: int = 0
    inertial_samples: int = 0

    total_distance_m: float = 0.0
    max_speed: float = 0.0      # Highest smoothed speed (m/s)
    speed_sum: float = 0.0

    first_fix_ms: Optional[int] = None
    last_fix_ms: Optional[int] = None

    def record_fix(self, estimate: FusedEstimate, distance_m: float, timestamp_ms: int):
        """Account for one accepted fix and the estimate it produced."""
        self.accepted_fixes += 1
        self.total_distance_m += distance_m
        self.speed_sum += estimate.speed
        self.max_speed = max(self.max_speed, estimate.smoothed_speed)

        if self.first_fix_ms is None:
            self.first_fix_ms = timestamp_ms
        self.last_fix_ms = timestamp_ms

    def record_rejection(self):
        self.rejected_fixes += 1

    def record_inertial(self):
        self.inertial_samples += 1

    @property
    def average_speed(self) -> float:
        """Mean published speed (m/s)."""
        if self.accepted_fixes == 0:
            return 0.0
        return self.speed_sum / self.accepted_fixes

    @property
    def duration_s(self) -> float:
        if self.first_fix_ms is None or self.last_fix_ms is None:
            return 0.0
        return (self.last_fix_ms - self.first_fix_ms) / 1000.0

    def as_dict(self) -> Dict[str, Any]:
        return {
            'accepted_fixes': self.accepted_fixes,
            'rejected_fixes': self.rejected_fixes,
            'inertial_samples': self.inertial_samples,
            'total_distance_m': self.total_distance_m,
            'max_speed': self.max_speed,
            'average_speed': self.average_speed,
            'duration_s': self.duration_s
        }
