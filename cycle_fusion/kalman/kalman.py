"""
One-dimensional Kalman filter for speed smoothing.
"""

from typing import Optional, Tuple

from .state import KalmanState
from ..math.constants import INITIAL_ESTIMATE_ERROR, MEASUREMENT_NOISE_BASE, PROCESS_NOISE


class ScalarKalmanFilter:
    """
    Random-walk Kalman filter over a single scalar.

    Measurement noise scales with the fix's reported accuracy, so a
    poor fix moves the estimate less than a good one. The filter is
    stateless; callers own the ``KalmanState``.
    """

    def __init__(self,
                 process_noise: float = PROCESS_NOISE,
                 measurement_noise_base: float = MEASUREMENT_NOISE_BASE,
                 initial_estimate_error: float = INITIAL_ESTIMATE_ERROR):
        """
        Initialize the filter.

        Args:
            process_noise: Variance added per step
            measurement_noise_base: Measurement variance at 10 m accuracy
            initial_estimate_error: Variance of a fresh state
        """
        if process_noise <= 0 or measurement_noise_base <= 0:
            raise ValueError("Noise parameters must be positive")
        self.process_noise = process_noise
        self.measurement_noise_base = measurement_noise_base
        self.initial_estimate_error = initial_estimate_error

    def initial_state(self) -> KalmanState:
        return KalmanState.initial(self.initial_estimate_error)

    def measurement_noise(self, accuracy: Optional[float]) -> float:
        """
        Measurement variance for a fix of the given accuracy (meters).

        Unknown or non-positive accuracy is treated as poor.
        """
        if accuracy is None or accuracy <= 0:
            return self.measurement_noise_base * 2
        return self.measurement_noise_base * accuracy / 10.0

    def update(self, state: KalmanState, measurement: float,
               accuracy: Optional[float] = None) -> Tuple[KalmanState, float]:
        """
        Run one predict/update cycle.

        Args:
            state: Current filter state
            measurement: New measurement
            accuracy: Reported accuracy of the source fix (meters)

        Returns:
            (new state, new estimate)
        """
        # Predict
        variance = state.estimate_error_variance + self.process_noise

        # Update
        gain = variance / (variance + self.measurement_noise(accuracy))
        estimate = state.estimate + gain * (measurement - state.estimate)
        variance = (1 - gain) * variance

        return KalmanState(estimate, variance), estimate
