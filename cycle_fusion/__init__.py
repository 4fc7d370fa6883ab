"""
Cycling speed fusion.

This package provides platform-independent implementations of:
- GPS jump rejection, windowed smoothing and scalar Kalman filtering
- Inertial noise calibration and pedaling detection
- A fusion session publishing speed, heading and confidence
"""

__version__ = "1.0.0"
__author__ = "Cycle Fusion Team"

from .config import Config
from .exceptions import (
    FusionError,
    InvalidSampleRejected,
    MotionUnavailable,
    PositionError,
    PositionPermissionDenied,
    PositionTimeout,
    PositionUnavailable,
    SessionStateError,
)
from .fusion import Confidence, FusedEstimate, FusionCombiner, TrackingState
from .kalman import KalmanState, ScalarKalmanFilter
from .math import calculate_bearing, haversine_distance
from .sensors import GeoSample, InertialSample, ReplayMotionSource, ReplayPositionSource

__all__ = [
    "Config",
    "FusionCombiner",
    "TrackingState",
    "FusedEstimate",
    "Confidence",
    "GeoSample",
    "InertialSample",
    "ReplayPositionSource",
    "ReplayMotionSource",
    "ScalarKalmanFilter",
    "KalmanState",
    "haversine_distance",
    "calculate_bearing",
    "FusionError",
    "PositionError",
    "PositionUnavailable",
    "PositionPermissionDenied",
    "PositionTimeout",
    "MotionUnavailable",
    "InvalidSampleRejected",
    "SessionStateError"
]
