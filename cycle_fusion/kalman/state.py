"""
Scalar Kalman filter state.
"""

from dataclasses import dataclass

from ..math.constants import INITIAL_ESTIMATE_ERROR


@dataclass(frozen=True)
class KalmanState:
    """
    Estimate of one scalar quantity and its error variance.

    The error variance is always strictly positive.
    """

    estimate: float = 0.0
    estimate_error_variance: float = INITIAL_ESTIMATE_ERROR

    def __post_init__(self):
        if not self.estimate_error_variance > 0:
            raise ValueError("Estimate error variance must be positive")

    @classmethod
    def initial(cls, initial_estimate_error: float = INITIAL_ESTIMATE_ERROR) -> 'KalmanState':
        """State at the start of a tracking session."""
        return cls(0.0, initial_estimate_error)

    def __str__(self) -> str:
        return (
            f"KalmanState(estimate={self.estimate:.3f}, "
            f"variance={self.estimate_error_variance:.5f})"
        )
