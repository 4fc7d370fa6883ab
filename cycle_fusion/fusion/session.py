"""
State owned by one tracking session.
"""

from dataclasses import dataclass, field
from typing import Optional

from ..kalman.state import KalmanState
from ..sensors.gps import GeoHistory
from ..sensors.imu import CalibrationProfile, InertialMotionEstimator, InertialSample
from ..sensors.sources import Subscription
from .estimate import FusedEstimate
from .statistics import RideStatistics


@dataclass
class TrackingSession:
    """
    Mutable state of one start/stop cycle.

    Created by ``FusionCombiner.start()`` and dropped by ``stop()``.
    Callbacks carry the generation they were subscribed under and are
    ignored once it no longer matches the live session.
    """

    generation: int
    kalman_state: KalmanState
    history: GeoHistory
    calibration: CalibrationProfile
    motion: InertialMotionEstimator

    # Last published estimate and its smoothed speed
    estimate: Optional[FusedEstimate] = None
    smoothed_speed: float = 0.0

    last_inertial: Optional[InertialSample] = None
    motion_available: bool = False

    statistics: RideStatistics = field(default_factory=RideStatistics)

    position_subscription: Optional[Subscription] = None
    motion_subscription: Optional[Subscription] = None

    def cancel_subscriptions(self):
        """Release both sensor subscriptions. Safe to call repeatedly."""
        for subscription in (self.position_subscription, self.motion_subscription):
            if subscription is not None:
                subscription.cancel()
