# ==================== UTILS/DISTANCE_CALCULATOR.PY ====================
from geopy.distance import great_circle

EARTH_RADIUS_KM = 6371


class DistanceCalculator:
    """Great-circle distances on a sphere of radius 6371 km"""

    @staticmethod
    def get_distance_km(lat1, lng1, lat2, lng2):
        """Get distance in kilometers (not rounded)"""
        coord1 = (lat1, lng1)
        coord2 = (lat2, lng2)
        return great_circle(coord1, coord2, radius=EARTH_RADIUS_KM).km

    @staticmethod
    def nearest(items, latitude, longitude, radius_km, limit=10):
        """Items within ``radius_km`` of a point, nearest first.

        Each item must expose ``latitude`` and ``longitude``; the computed
        distance is attached as ``distance_km``.
        """
        found = []
        for item in items:
            item.distance_km = DistanceCalculator.get_distance_km(
                latitude, longitude, item.latitude, item.longitude
            )
            if item.distance_km <= radius_km:
                found.append(item)
        found.sort(key=lambda item: item.distance_km)
        return found[:limit]
