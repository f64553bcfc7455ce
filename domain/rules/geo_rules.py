from math import asin, cos, radians, sin, sqrt

EARTH_RADIUS_KM = 6371.0
DEFAULT_ADMISSION_RADIUS_KM = 0.1


class GeoRules:
    @staticmethod
    def distance_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
        """
        Great-circle distance (haversine) in kilometers.
        Callers validate coordinate ranges; out-of-range input still yields a number.
        """
        lat1, lon1, lat2, lon2 = map(radians, [lat1, lon1, lat2, lon2])
        dlat = lat2 - lat1
        dlon = lon2 - lon1
        a = sin(dlat / 2) ** 2 + cos(lat1) * cos(lat2) * sin(dlon / 2) ** 2
        # Float noise can push `a` a hair past 1.0 for antipodal points
        c = 2 * asin(sqrt(min(1.0, a)))
        return EARTH_RADIUS_KM * c


class AdmissionRules:
    @staticmethod
    def is_admissible(distance_km: float, threshold_km: float = DEFAULT_ADMISSION_RADIUS_KM) -> bool:
        return distance_km <= threshold_km
