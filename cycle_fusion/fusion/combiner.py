"""
Fusion of GPS fixes and inertial samples into one speed estimate.
"""

import logging
from enum import Enum
from functools import partial
from typing import Any, Callable, Dict, List, Optional

from ..config import Config
from ..exceptions import (
    InvalidSampleRejected,
    MotionUnavailable,
    PositionError,
    PositionUnavailable,
    SessionStateError,
)
from ..kalman import ScalarKalmanFilter
from ..math.utils import haversine_distance
from ..sensors.gps import (
    GeoHistory,
    GeoSample,
    GeoSampleValidator,
    WindowedSpeedSmoother,
    derive_speed,
    heading_between,
)
from ..sensors.imu import (
    CalibrationProfile,
    InertialMotionEstimator,
    InertialSample,
    MotionCalibrator,
    MotionState,
)
from ..sensors.sources import MotionSource, PositionSource
from .estimate import FusedEstimate, grade_confidence
from .session import TrackingSession
from .statistics import RideStatistics

logger = logging.getLogger(__name__)

EstimateListener = Callable[[FusedEstimate], None]
ErrorListener = Callable[[PositionError], None]


class TrackingState(Enum):
    IDLE = "idle"
    TRACKING = "tracking"


class FusionCombiner:
    """
    Orchestrates one cyclist's speed fusion.

    GPS fixes drive publication: every accepted fix produces a new
    ``FusedEstimate`` for all listeners. Inertial samples only update
    calibration and motion state between fixes. Callbacks are expected
    one at a time from the host's event loop; no locking is done.
    """

    def __init__(self,
                 position_source: Optional[PositionSource] = None,
                 motion_source: Optional[MotionSource] = None,
                 config: Optional[Config] = None):
        """
        Initialize the combiner.

        Args:
            position_source: Platform location provider
            motion_source: Platform motion provider, None if the platform has none
            config: Tuning values (defaults if None)
        """
        self.position_source = position_source
        self.motion_source = motion_source
        self.config = config or Config()

        kalman = self.config.kalman
        self.kalman_filter = ScalarKalmanFilter(
            process_noise=kalman["process_noise"],
            measurement_noise_base=kalman["measurement_noise_base"],
            initial_estimate_error=kalman["initial_estimate_error"]
        )

        validation = self.config.validation
        self.validator = GeoSampleValidator(
            jump_threshold_m=validation["jump_threshold_m"],
            speed_margin_factor=validation["speed_margin_factor"],
            speed_margin_offset=validation["speed_margin_offset"],
            unknown_speed_limit=validation["unknown_speed_limit"],
            min_time_gap_s=validation["min_time_gap_s"]
        )
        self.history_capacity = validation["history_capacity"]

        self.smoother = WindowedSpeedSmoother(self.config.smoothing["window_ms"])

        calibration = self.config.calibration
        self.calibrator = MotionCalibrator(
            samples=calibration["samples"],
            threshold_factor=calibration["threshold_factor"]
        )
        self.default_noise_threshold = calibration["default_noise_threshold"]

        self.movement_threshold = self.config.motion["movement_threshold"]
        self.inertial_blend_weight = self.config.inertial_blend_weight

        # Session state
        self._session: Optional[TrackingSession] = None
        self._generation = 0
        self._last_statistics: Optional[RideStatistics] = None

        # Outputs
        self.estimate = FusedEstimate()
        self.raw_fix: Optional[GeoSample] = None
        self.last_rejection: Optional[InvalidSampleRejected] = None
        self.last_error: Optional[PositionError] = None

        self._listeners: List[EstimateListener] = []
        self._error_listeners: List[ErrorListener] = []

    # ------------------------------------------------------------------
    # Lifecycle

    def start(self) -> bool:
        """
        Start a tracking session.

        Resets the Kalman state, the fix history and the motion
        calibration, then subscribes to both sensor streams.

        Returns:
            False if a session was already running, or if the new session
            ended from a callback delivered while subscribing

        Raises:
            PositionUnavailable: no position source
            PositionError: the position source refused the subscription
        """
        if self._session is not None:
            logger.warning("Tracking session already active")
            return False

        if self.position_source is None:
            error = PositionUnavailable("No position source configured")
            self.last_error = error
            raise error

        self._generation += 1
        session = TrackingSession(
            generation=self._generation,
            kalman_state=self.kalman_filter.initial_state(),
            history=GeoHistory(self.history_capacity),
            calibration=CalibrationProfile(noise_threshold=self.default_noise_threshold),
            motion=InertialMotionEstimator(
                movement_threshold=self.config.motion["inertial_movement_threshold"],
                buffer_size=self.config.motion["speed_buffer_size"]
            )
        )
        self._session = session

        self.estimate = FusedEstimate()
        self.raw_fix = None
        self.last_rejection = None
        self.last_error = None

        try:
            subscription = self.position_source.subscribe(
                partial(self._on_fix, session.generation),
                partial(self._on_position_error, session.generation)
            )
        except PositionError as e:
            logger.warning("Position stream refused: %s", e)
            self.last_error = e
            self._teardown()
            raise

        if self._session is not session:
            # Stopped from a callback delivered inside subscribe()
            subscription.cancel()
            logger.warning("Tracking session %d ended while subscribing", session.generation)
            return False

        session.position_subscription = subscription
        self._last_statistics = session.statistics

        self._subscribe_motion(session)
        if self._session is not session:
            return False

        logger.info("Tracking session %d started (%s)", session.generation,
                    "GPS + motion" if session.motion_available else "GPS only")
        return True

    def _subscribe_motion(self, session: TrackingSession):
        if self.motion_source is None:
            logger.warning("No motion source, running GPS-only")
            return

        session.motion_available = True
        self.calibrator.start(session.calibration)
        try:
            subscription = self.motion_source.subscribe(
                partial(self._on_inertial, session.generation)
            )
        except MotionUnavailable as e:
            logger.warning("Motion sensors unavailable (%s), running GPS-only", e)
            session.motion_available = False
            session.calibration.is_calibrating = False
            session.calibration.sample_buffer = []
            return

        if self._session is not session:
            subscription.cancel()
            return
        session.motion_subscription = subscription

    def stop(self) -> bool:
        """
        Stop the tracking session and release both subscriptions.

        Returns:
            False if no session was running
        """
        if self._session is None:
            return False

        generation = self._session.generation
        self._teardown()
        logger.info("Tracking session %d stopped", generation)
        return True

    def _teardown(self):
        session, self._session = self._session, None
        if session is not None:
            session.cancel_subscriptions()

    def request_recalibration(self) -> bool:
        """
        Restart motion calibration. The current noise threshold stays in
        effect until the new calibration completes.

        Returns:
            False if motion sensors are unavailable

        Raises:
            SessionStateError: no session is running
        """
        session = self._require_session()
        if not session.motion_available:
            logger.warning("Recalibration ignored: motion sensors unavailable")
            return False

        self.calibrator.start(session.calibration)
        session.motion.reset()
        logger.info("Motion recalibration requested")
        return True

    # ------------------------------------------------------------------
    # Listeners

    def add_listener(self, callback: EstimateListener) -> Callable[[], None]:
        """
        Register for new estimates.

        Returns:
            Function that removes the listener
        """
        self._listeners.append(callback)
        return partial(self._remove, self._listeners, callback)

    def add_error_listener(self, callback: ErrorListener) -> Callable[[], None]:
        """Register for position errors that end a session."""
        self._error_listeners.append(callback)
        return partial(self._remove, self._error_listeners, callback)

    @staticmethod
    def _remove(listeners: list, callback):
        if callback in listeners:
            listeners.remove(callback)

    # ------------------------------------------------------------------
    # Sensor callbacks

    def _active(self, generation: int) -> Optional[TrackingSession]:
        session = self._session
        if session is None or session.generation != generation:
            return None
        return session

    def _on_fix(self, generation: int, sample: GeoSample):
        session = self._active(generation)
        if session is None:
            return

        self.raw_fix = sample

        rejection = self.validator.inspect(session.history, sample)
        if rejection is not None:
            self.last_rejection = rejection
            session.statistics.record_rejection()
            return

        session.history.append(sample)
        previous = session.history.previous

        estimate = self._fuse(session, sample, previous)

        distance = 0.0
        if previous is not None:
            distance = haversine_distance(
                previous.latitude, previous.longitude,
                sample.latitude, sample.longitude
            )
        session.statistics.record_fix(estimate, distance, sample.timestamp_ms)

        self._publish(estimate)

    def _on_inertial(self, generation: int, sample: InertialSample):
        session = self._active(generation)
        if session is None:
            return

        session.last_inertial = sample
        session.statistics.record_inertial()

        if session.calibration.is_calibrating:
            self.calibrator.add_sample(session.calibration, sample.magnitude)
            return

        session.motion.update(sample, session.calibration.noise_threshold,
                              session.calibration.baseline)

    def _on_position_error(self, generation: int, error: PositionError):
        if self._active(generation) is None:
            return

        logger.warning("Position stream failed, ending session: %s", error)
        self.last_error = error
        self.stop()

        for listener in list(self._error_listeners):
            listener(error)

    # ------------------------------------------------------------------
    # Fusion

    def _fuse(self, session: TrackingSession, sample: GeoSample,
              previous: Optional[GeoSample]) -> FusedEstimate:
        """Build the estimate for a freshly accepted fix."""
        calibration = session.calibration

        heading = None
        if previous is not None:
            heading = heading_between(previous, sample)

        confidence = grade_confidence(
            sample.accuracy, calibration.is_complete,
            self.config.confidence["high_accuracy_m"],
            self.config.confidence["medium_accuracy_m"]
        )

        # Stillness cannot be proven before the noise floor is known
        is_moving = calibration.is_calibrating or (
            sample.speed is not None and sample.speed > self.movement_threshold
        )

        # Prefer the device-reported speed, else derive one from the last fix
        measurement = sample.speed
        if measurement is None and previous is not None:
            measurement = derive_speed(previous, sample)

        if measurement is not None:
            session.kalman_state, speed = self.kalman_filter.update(
                session.kalman_state, measurement, sample.accuracy
            )
        else:
            # Nothing to measure: hold the filter's estimate rather than report 0
            speed = session.kalman_state.estimate

        smoothed_speed = max(0.0, self.smoother.update(session.history, session.smoothed_speed))

        acceleration = self._acceleration(session, sample, smoothed_speed)

        estimate = FusedEstimate(
            speed=max(0.0, speed),
            smoothed_speed=smoothed_speed,
            latitude=sample.latitude,
            longitude=sample.longitude,
            heading=heading,
            confidence=confidence,
            is_moving=is_moving,
            acceleration=acceleration,
            timestamp_ms=sample.timestamp_ms
        )

        session.estimate = estimate
        session.smoothed_speed = smoothed_speed
        return estimate

    def _acceleration(self, session: TrackingSession, sample: GeoSample,
                      smoothed_speed: float) -> float:
        """
        Derivative of the smoothed speed, blended with the raw inertial
        magnitude while calibrating. The blend is a tunable heuristic.
        """
        gps_acceleration = 0.0
        previous = session.estimate
        if previous is not None and previous.timestamp_ms is not None:
            dt = (sample.timestamp_ms - previous.timestamp_ms) / 1000.0
            if dt > 0:
                gps_acceleration = (smoothed_speed - previous.smoothed_speed) / dt

        if session.calibration.is_calibrating and session.last_inertial is not None:
            weight = self.inertial_blend_weight
            return weight * session.last_inertial.magnitude + (1 - weight) * gps_acceleration

        return gps_acceleration

    def _publish(self, estimate: FusedEstimate):
        self.estimate = estimate
        logger.debug("Published %s", estimate)

        for listener in list(self._listeners):
            listener(estimate)

    # ------------------------------------------------------------------
    # Status

    def _require_session(self) -> TrackingSession:
        if self._session is None:
            raise SessionStateError("No tracking session is active")
        return self._session

    @property
    def state(self) -> TrackingState:
        return TrackingState.TRACKING if self._session is not None else TrackingState.IDLE

    @property
    def is_tracking(self) -> bool:
        return self._session is not None

    @property
    def is_calibrating(self) -> bool:
        return self._session is not None and self._session.calibration.is_calibrating

    @property
    def calibration_complete(self) -> bool:
        return self._session is not None and self._session.calibration.is_complete

    @property
    def motion_available(self) -> bool:
        return self._session is not None and self._session.motion_available

    @property
    def noise_threshold(self) -> Optional[float]:
        if self._session is None:
            return None
        return self._session.calibration.noise_threshold

    @property
    def motion_state(self) -> MotionState:
        if self._session is None:
            return MotionState()
        return self._session.motion.state

    @property
    def history(self) -> tuple:
        """Accepted fixes of the current session, oldest first."""
        if self._session is None:
            return ()
        return self._session.history.samples()

    @property
    def statistics(self) -> RideStatistics:
        """
        Statistics of the current session, or of the last one after stop.

        Raises:
            SessionStateError: no session was ever started
        """
        if self._session is not None:
            return self._session.statistics
        if self._last_statistics is None:
            raise SessionStateError("No tracking session has been started")
        return self._last_statistics

    def get_statistics(self) -> Dict[str, Any]:
        """Get combiner statistics."""
        stats = {
            'state': self.state.value,
            'motion_available': self.motion_available,
            'is_calibrating': self.is_calibrating,
            'calibration_complete': self.calibration_complete,
            'noise_threshold': self.noise_threshold,
            'history_length': len(self.history),
            'kalman_estimate': None,
            'kalman_variance': None,
            'ride': None
        }
        if self._session is not None or self._last_statistics is not None:
            stats['ride'] = self.statistics.as_dict()
        if self._session is not None:
            stats['kalman_estimate'] = self._session.kalman_state.estimate
            stats['kalman_variance'] = self._session.kalman_state.estimate_error_variance
        return stats
