import math

from django.utils import timezone

from .models import Camp

EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1, lon1, lat2, lon2):
    p1 = math.radians(lat1)
    p2 = math.radians(lat2)
    dlat = math.radians(lat2 - lat1)
    dlon = math.radians(lon2 - lon1)

    a = math.sin(dlat / 2) ** 2 + math.cos(p1) * math.cos(p2) * math.sin(dlon / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def bounding_box(lat, lng, radius_km):
    """Coarse lat/lng window around a point, used to prefilter rows in SQL."""
    dlat = math.degrees(radius_km / EARTH_RADIUS_KM)
    cos_lat = math.cos(math.radians(lat))
    if cos_lat < 1e-6:
        return lat - dlat, lat + dlat, -180.0, 180.0
    dlng = math.degrees(radius_km / (EARTH_RADIUS_KM * cos_lat))
    return lat - dlat, lat + dlat, lng - dlng, lng + dlng


def format_distance(km):
    """Metres (rounded) under one kilometre, otherwise kilometres to two decimals."""
    metres = km * 1000
    if metres < 1000:
        return round(metres), "m"
    return round(km, 2), "km"


def nearby_camps(lat, lng, radius_km, statuses=None, with_future_dates=False, limit=None):
    """
    Camps within ``radius_km`` of the point, nearest first, as ``(camp, km)`` pairs.
    """
    min_lat, max_lat, min_lng, max_lng = bounding_box(lat, lng, radius_km)
    qs = (
        Camp.objects
        .filter(latitude__gte=min_lat, latitude__lte=max_lat)
        .prefetch_related("dates")
    )
    if min_lng >= -180 and max_lng <= 180:
        qs = qs.filter(longitude__gte=min_lng, longitude__lte=max_lng)
    if statuses:
        qs = qs.filter(status__in=statuses)
    if with_future_dates:
        qs = qs.filter(dates__date__gte=timezone.localdate()).distinct()

    found = []
    for camp in qs:
        km = haversine_km(lat, lng, camp.latitude, camp.longitude)
        if km <= radius_km:
            found.append((camp, km))

    found.sort(key=lambda pair: (pair[1], pair[0].pk))
    if limit is not None:
        found = found[:limit]
    return found
