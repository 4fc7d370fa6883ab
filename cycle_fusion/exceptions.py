"""
Error taxonomy for speed fusion sessions.
"""

from typing import Optional


class FusionError(Exception):
    """Base class for all speed fusion errors."""


class SessionStateError(FusionError):
    """Operation requires a tracking session that does not exist."""


class PositionError(FusionError):
    """Failure of the position stream. Terminates the active session."""


class PositionUnavailable(PositionError):
    """The platform has no geolocation capability."""


class PositionPermissionDenied(PositionError):
    """The user or platform refused access to location."""


class PositionTimeout(PositionError):
    """The location provider did not deliver a fix in time."""


class MotionUnavailable(FusionError):
    """
    The platform cannot deliver inertial samples.

    Non-fatal: the combiner falls back to GPS-only fusion.
    """


class InvalidSampleRejected(FusionError):
    """
    A GPS fix was rejected as a jump.

    Never raised out of the combiner; instances are kept as the record
    of the most recent rejection.
    """

    def __init__(self, sample, distance: float, limit: float,
                 elapsed: Optional[float] = None):
        self.sample = sample
        self.distance = distance
        self.limit = limit
        self.elapsed = elapsed
        super().__init__(
            f"Rejected fix at {sample.latitude:.6f}, {sample.longitude:.6f}: "
            f"moved {distance:.1f} m, limit {limit:.1f} m"
        )
