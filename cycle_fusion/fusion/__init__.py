"""
Fusion of GPS and inertial streams into published speed estimates.
"""

from .combiner import FusionCombiner, TrackingState
from .estimate import Confidence, FusedEstimate, grade_confidence
from .session import TrackingSession
from .statistics import RideStatistics

__all__ = [
    "FusionCombiner", "TrackingState", "Confidence", "FusedEstimate",
    "grade_confidence", "TrackingSession", "RideStatistics"
]
