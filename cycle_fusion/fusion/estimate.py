"""
Fused speed estimate published to consumers.
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import Optional

from ..math.constants import HIGH_CONFIDENCE_ACCURACY_M, MEDIUM_CONFIDENCE_ACCURACY_M, MS_TO_KMH


class Confidence(IntEnum):
    """Qualitative reliability of a fused estimate. Ordered low to high."""

    LOW = 0
    MEDIUM = 1
    HIGH = 2

    def __str__(self) -> str:
        return self.name.lower()


def grade_confidence(accuracy: Optional[float], calibrated: bool,
                     high_accuracy_m: float = HIGH_CONFIDENCE_ACCURACY_M,
                     medium_accuracy_m: float = MEDIUM_CONFIDENCE_ACCURACY_M) -> Confidence:
    """
    Grade a fix by its reported accuracy and the calibration state.

    High needs a tight fix and a completed motion calibration; unknown
    accuracy is always Low.
    """
    if accuracy is None:
        return Confidence.LOW
    if accuracy < high_accuracy_m and calibrated:
        return Confidence.HIGH
    if accuracy < medium_accuracy_m:
        return Confidence.MEDIUM
    return Confidence.LOW


@dataclass(frozen=True)
class FusedEstimate:
    """
    One fused reading, rebuilt from scratch on every accepted GPS fix.
    """

    # Kalman-filtered and windowed speeds (m/s, never negative)
    speed: float = 0.0
    smoothed_speed: float = 0.0

    # Position of the fix that produced this estimate (degrees)
    latitude: float = 0.0
    longitude: float = 0.0

    # Degrees clockwise from north in [0, 360), None until two fixes
    heading: Optional[float] = None

    confidence: Confidence = Confidence.LOW
    is_moving: bool = False

    # m/s²
    acceleration: float = 0.0

    timestamp_ms: Optional[int] = None

    @property
    def speed_kmh(self) -> float:
        return self.speed * MS_TO_KMH

    @property
    def smoothed_speed_kmh(self) -> float:
        return self.smoothed_speed * MS_TO_KMH

    def __str__(self) -> str:
        heading = f"{self.heading:.1f}°" if self.heading is not None else "n/a"
        return (
            f"FusedEstimate(speed={self.speed:.2f} m/s, "
            f"smoothed={self.smoothed_speed:.2f} m/s, "
            f"heading={heading}, confidence={self.confidence}, "
            f"moving={self.is_moving}, accel={self.acceleration:.2f} m/s²)"
        )
