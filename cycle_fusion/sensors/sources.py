"""
Sensor stream interfaces and in-memory replay sources.

Platforms deliver position and motion samples through callbacks. A
source hands back a ``Subscription`` token at subscribe time; cancelling
the token stops delivery synchronously.
"""

from abc import ABC, abstractmethod
from typing import Callable, List, Optional

from ..exceptions import MotionUnavailable, PositionError
from .gps import GeoSample
from .imu import InertialSample


FixCallback = Callable[[GeoSample], None]
ErrorCallback = Callable[[PositionError], None]
MotionCallback = Callable[[InertialSample], None]


class Subscription:
    """
    Cancellation token for one sensor subscription.

    ``cancel()`` runs the release hook at most once.
    """

    def __init__(self, release: Optional[Callable[[], None]] = None):
        self._release = release
        self.active = True

    def cancel(self) -> bool:
        """
        Stop delivery.

        Returns:
            True if this call cancelled the subscription
        """
        if not self.active:
            return False
        self.active = False
        release, self._release = self._release, None
        if release is not None:
            release()
        return True


class PositionSource(ABC):
    """Platform location provider."""

    @abstractmethod
    def subscribe(self, on_fix: FixCallback, on_error: ErrorCallback) -> Subscription:
        """
        Start delivering fixes.

        Raises:
            PositionError: if location cannot be provided at all
        """


class MotionSource(ABC):
    """Platform motion provider."""

    @abstractmethod
    def subscribe(self, on_sample: MotionCallback) -> Subscription:
        """
        Start delivering inertial samples.

        Raises:
            MotionUnavailable: if the platform has no motion sensors or
                access was denied
        """


class ReplayPositionSource(PositionSource):
    """
    Position source driven by hand, for tests and recorded rides.
    """

    def __init__(self, subscribe_error: Optional[PositionError] = None):
        self.subscribe_error = subscribe_error
        self._subscribers: List[tuple] = []

        # Statistics
        self.subscribe_count = 0
        self.unsubscribe_count = 0

    def subscribe(self, on_fix: FixCallback, on_error: ErrorCallback) -> Subscription:
        if self.subscribe_error is not None:
            raise self.subscribe_error

        self.subscribe_count += 1
        entry = (on_fix, on_error)
        self._subscribers.append(entry)

        def release():
            self._subscribers.remove(entry)
            self.unsubscribe_count += 1

        return Subscription(release)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def emit(self, sample: GeoSample):
        """Deliver a fix to every live subscriber."""
        for entry in list(self._subscribers):
            if entry in self._subscribers:
                entry[0](sample)

    def fail(self, error: PositionError):
        """Deliver an error on the error channel."""
        for entry in list(self._subscribers):
            if entry in self._subscribers:
                entry[1](error)


class ReplayMotionSource(MotionSource):
    """
    Motion source driven by hand. ``available=False`` models a platform
    without motion sensors or with access denied.
    """

    def __init__(self, available: bool = True):
        self.available = available
        self._subscribers: List[MotionCallback] = []

        # Statistics
        self.subscribe_count = 0
        self.unsubscribe_count = 0

    def subscribe(self, on_sample: MotionCallback) -> Subscription:
        if not self.available:
            raise MotionUnavailable("Motion sensors are not available")

        self.subscribe_count += 1
        self._subscribers.append(on_sample)

        def release():
            self._subscribers.remove(on_sample)
            self.unsubscribe_count += 1

        return Subscription(release)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def emit(self, sample: InertialSample):
        for callback in list(self._subscribers):
            if callback in self._subscribers:
                callback(sample)
