"""
Mathematical utilities for speed fusion calculations.
"""

from .utils import haversine_distance, calculate_bearing, wrap_degrees, vector_magnitude
from .constants import *

__all__ = ["haversine_distance", "calculate_bearing", "wrap_degrees", "vector_magnitude"]
