"""
Scalar Kalman filter for speed estimation.
"""

from .kalman import ScalarKalmanFilter
from .state import KalmanState

__all__ = ["ScalarKalmanFilter", "KalmanState"]
