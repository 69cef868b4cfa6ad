# location_check.py
from math import radians, sin, cos, sqrt, atan2

EARTH_RADIUS_M = 6371000.0


def haversine_m(lat1, lon1, lat2, lon2):
    lat1, lon1, lat2, lon2 = map(radians, [float(lat1), float(lon1), float(lat2), float(lon2)])
    dlat = lat2 - lat1
    dlon = lon2 - lon1
    a = sin(dlat/2)**2 + cos(lat1) * cos(lat2) * sin(dlon/2)**2
    c = 2 * atan2(sqrt(a), sqrt(1-a))
    return EARTH_RADIUS_M * c


def check_attendance_location(lat, lon, site_lat, site_lon, allowed_distance_meters):
    """Return (is_within, distance). Anything strictly beyond the radius is rejected.

    A NaN distance compares false against the radius and is rejected too.
    """
    distance = haversine_m(lat, lon, site_lat, site_lon)
    is_within = distance <= float(allowed_distance_meters)
    return is_within, distance
