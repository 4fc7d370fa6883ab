"""
Inertial sample processing: noise-floor calibration and pedaling detection.
"""

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np

from ..math.utils import vector_magnitude
from ..math.constants import (
    CALIBRATION_SAMPLES,
    DEFAULT_NOISE_THRESHOLD,
    FORWARD_MOTION_MIN,
    GRAVITY_MS2,
    INERTIAL_MOVEMENT_THRESHOLD,
    INERTIAL_SPEED_BUFFER,
    NOISE_THRESHOLD_FACTOR,
    SIDEWAYS_MOTION_MAX,
    VERTICAL_OSCILLATION_MAX,
    VERTICAL_OSCILLATION_MIN,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InertialSample:
    """One motion reading as delivered by the platform."""

    # Accelerometer data, gravity included (m/s²)
    accel_x: float
    accel_y: float
    accel_z: float

    # Rotation rate (deg/s)
    gyro_x: float = 0.0
    gyro_y: float = 0.0
    gyro_z: float = 0.0

    # Milliseconds, provider clock
    timestamp_ms: int = 0

    @property
    def acceleration(self) -> np.ndarray:
        """Get acceleration as numpy array."""
        return np.array([self.accel_x, self.accel_y, self.accel_z])

    @property
    def rotation_rate(self) -> np.ndarray:
        """Get rotation rate as numpy array."""
        return np.array([self.gyro_x, self.gyro_y, self.gyro_z])

    @property
    def magnitude(self) -> float:
        """Norm of the acceleration vector (m/s²)."""
        return vector_magnitude(self.acceleration)


def is_cycling_motion(sample: InertialSample) -> bool:
    """
    Coarse heuristic: does this reading look like pedaling?

    Pedaling shows a moderate vertical oscillation, some forward
    acceleration and little sideways sway. This is not a trained model.
    """
    vertical = abs(sample.accel_y)
    vertical_oscillation = VERTICAL_OSCILLATION_MIN < vertical < VERTICAL_OSCILLATION_MAX
    forward_motion = abs(sample.accel_z) > FORWARD_MOTION_MIN
    minimal_sideways_motion = abs(sample.accel_x) < SIDEWAYS_MOTION_MAX

    return vertical_oscillation and forward_motion and minimal_sideways_motion


@dataclass
class CalibrationProfile:
    """Device noise floor learned from a burst of idle samples."""

    sample_buffer: List[float] = field(default_factory=list)
    noise_threshold: float = DEFAULT_NOISE_THRESHOLD
    is_calibrating: bool = False

    # Mean idle magnitude, gravity until calibrated
    baseline: float = GRAVITY_MS2

    # Number of completed calibrations this session
    completed: int = 0

    @property
    def is_complete(self) -> bool:
        return self.completed > 0 and not self.is_calibrating


class MotionCalibrator:
    """
    Learns a noise threshold from acceleration magnitudes.

    While calibrating, magnitudes are buffered; once ``samples`` have
    been collected the threshold becomes ``stddev * threshold_factor``
    and the buffer is dropped. The previous threshold stays in force
    until a new calibration completes.
    """

    def __init__(self, samples: int = CALIBRATION_SAMPLES,
                 threshold_factor: float = NOISE_THRESHOLD_FACTOR):
        if samples < 1:
            raise ValueError("Calibration needs at least one sample")
        self.samples = samples
        self.threshold_factor = threshold_factor

    def start(self, profile: CalibrationProfile):
        """Begin (or restart) collecting idle samples."""
        profile.sample_buffer = []
        profile.is_calibrating = True

    def add_sample(self, profile: CalibrationProfile, magnitude: float) -> bool:
        """
        Feed one acceleration magnitude.

        Returns:
            True if this sample completed the calibration
        """
        if not profile.is_calibrating:
            return False

        profile.sample_buffer.append(magnitude)
        if len(profile.sample_buffer) < self.samples:
            return False

        magnitudes = np.array(profile.sample_buffer)
        mean = float(np.mean(magnitudes))
        std = float(np.std(magnitudes))

        profile.noise_threshold = std * self.threshold_factor
        profile.baseline = mean
        profile.is_calibrating = False
        profile.sample_buffer = []
        profile.completed += 1

        logger.info("Motion calibration complete: mean %.3f m/s², noise threshold %.3f m/s²",
                    mean, profile.noise_threshold)
        return True


@dataclass(frozen=True)
class MotionState:
    """Snapshot of what the inertial stream alone says about the ride."""

    acceleration: tuple = (0.0, 0.0, 0.0)
    rotation_rate: tuple = (0.0, 0.0, 0.0)
    speed: float = 0.0          # m/s, coarse
    is_moving: bool = False
    is_cycling: bool = False
    confidence: float = 0.0     # [0, 1]


class InertialMotionEstimator:
    """
    Coarse inertial-only speed and motion detection.

    Diagnostic only: integrates the deviation from the idle magnitude,
    less the noise floor, over pedaling bursts. Drifts, and never feeds the
    published speed.
    """

    def __init__(self,
                 movement_threshold: float = INERTIAL_MOVEMENT_THRESHOLD,
                 buffer_size: int = INERTIAL_SPEED_BUFFER):
        self.movement_threshold = movement_threshold
        self.speed_buffer = deque(maxlen=buffer_size)
        self.last_timestamp_ms: Optional[int] = None
        self.state = MotionState()

    def reset(self):
        self.speed_buffer.clear()
        self.last_timestamp_ms = None
        self.state = MotionState()

    def update(self, sample: InertialSample, noise_threshold: float,
               baseline: float = GRAVITY_MS2) -> MotionState:
        """
        Fold one post-calibration sample into the motion state.

        Args:
            sample: Inertial reading
            noise_threshold: Calibrated noise floor (m/s²)
            baseline: Calibrated idle magnitude (m/s²)
        """
        dynamic = abs(sample.magnitude - baseline)
        cycling = is_cycling_motion(sample)

        if self.last_timestamp_ms is not None:
            dt = (sample.timestamp_ms - self.last_timestamp_ms) / 1000.0
            excess = max(0.0, dynamic - noise_threshold)
            if dt > 0 and excess > self.movement_threshold and cycling:
                self.speed_buffer.append(excess * dt)
        self.last_timestamp_ms = sample.timestamp_ms

        speed = float(np.mean(self.speed_buffer)) if self.speed_buffer else 0.0

        self.state = MotionState(
            acceleration=(sample.accel_x, sample.accel_y, sample.accel_z),
            rotation_rate=(sample.gyro_x, sample.gyro_y, sample.gyro_z),
            speed=speed,
            is_moving=dynamic > self.movement_threshold + noise_threshold,
            is_cycling=cycling,
            confidence=self._confidence(cycling),
        )
        return self.state

    def _confidence(self, cycling: bool) -> float:
        if len(self.speed_buffer) < 3:
            return 0.0

        # Lower variance means steadier readings
        variance = float(np.var(self.speed_buffer))
        variance_confidence = max(0.0, 1.0 - variance / 10.0)

        if cycling:
            return 0.7 + 0.3 * variance_confidence
        return 0.3 * variance_confidence
