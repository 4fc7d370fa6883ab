"""
Sensor data processing modules.
"""

from .gps import GeoSample, GeoHistory, GeoSampleValidator, ValidationResult, WindowedSpeedSmoother
from .imu import InertialSample, CalibrationProfile, MotionCalibrator, MotionState, InertialMotionEstimator, is_cycling_motion
from .sources import Subscription, PositionSource, MotionSource, ReplayPositionSource, ReplayMotionSource

__all__ = [
    "GeoSample", "GeoHistory", "GeoSampleValidator", "ValidationResult", "WindowedSpeedSmoother",
    "InertialSample", "CalibrationProfile", "MotionCalibrator", "MotionState",
    "InertialMotionEstimator", "is_cycling_motion",
    "Subscription", "PositionSource", "MotionSource", "ReplayPositionSource", "ReplayMotionSource",
]
