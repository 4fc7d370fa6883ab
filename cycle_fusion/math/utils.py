"""
Geodesy and vector helpers for speed fusion.
"""

import math

import numpy as np

from .constants import DEG_TO_RAD, EARTH_RADIUS_M, RAD_TO_DEG


def wrap_degrees(angle):
    """
    Wrap angle to [0, 360) range.

    Args:
        angle (float): Angle in degrees

    Returns:
        float: Wrapped angle in [0, 360)
    """
    wrapped = angle % 360.0
    # -1e-15 % 360 rounds to 360.0
    return 0.0 if wrapped >= 360.0 else wrapped

def haversine_distance(lat1, lon1, lat2, lon2):
    """
    Calculate the great circle distance between two points on Earth.

    Args:
        lat1, lon1: Latitude and longitude of first point (degrees)
        lat2, lon2: Latitude and longitude of second point (degrees)

    Returns:
        float: Distance in meters
    """
    # Convert to radians
    lat1, lon1, lat2, lon2 = (v * DEG_TO_RAD for v in (lat1, lon1, lat2, lon2))

    # Haversine formula
    dlat = lat2 - lat1
    dlon = lon2 - lon1
    a = math.sin(dlat/2)**2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon/2)**2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_M * c

def calculate_bearing(lat1, lon1, lat2, lon2):
    """
    Calculate the initial bearing between two GPS coordinates.

    Args:
        lat1, lon1: Starting latitude and longitude (degrees)
        lat2, lon2: Ending latitude and longitude (degrees)

    Returns:
        float: Bearing in degrees [0, 360), clockwise from north
    """
    # Convert to radians
    lat1, lon1, lat2, lon2 = (v * DEG_TO_RAD for v in (lat1, lon1, lat2, lon2))

    dlon = lon2 - lon1

    y = math.sin(dlon) * math.cos(lat2)
    x = math.cos(lat1) * math.sin(lat2) - math.sin(lat1) * math.cos(lat2) * math.cos(dlon)

    return wrap_degrees(math.atan2(y, x) * RAD_TO_DEG)

def vector_magnitude(vector):
    """Euclidean norm of a 3-vector."""
    return float(np.linalg.norm(vector))
