"""Per-observer risk scoring for seismic events."""

from __future__ import annotations

import math

from seismic_monitor.models import NO_OBSERVER, RiskAssessment, RiskLevel, SeismicEvent

EARTH_RADIUS_KM = 6371.0

# Magnitude at which intensity is exactly 1.
REFERENCE_MAGNITUDE = 4.5

HIGH_THRESHOLD = 70
MEDIUM_THRESHOLD = 30


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in km between two points on a 6371 km sphere."""
    lat1, lon1, lat2, lon2 = map(math.radians, [lat1, lon1, lat2, lon2])
    dlat = lat2 - lat1
    dlon = lon2 - lon1
    a = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    a = min(a, 1.0)
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def _is_missing(coord: float | None) -> bool:
    # Zero counts as missing: an observer at exactly 0.0 gets no assessment.
    return coord is None or coord == 0 or math.isnan(coord)


def risk_level(score: int) -> RiskLevel:
    """Band a score. Boundary values fall into the lower band."""
    if score > HIGH_THRESHOLD:
        return "High"
    if score > MEDIUM_THRESHOLD:
        return "Medium"
    return "Low"


def raw_score(magnitude: float, distance_km: float, depth_km: float) -> float:
    """Unclamped impact score.

    intensity   = 10^(M - 4.5)
    attenuation = distance/10 + depth/5 + 1
    score       = intensity / attenuation * 100

    Negative depths (above the reference ellipsoid) enter the formula as
    given. Zero attenuation yields +inf, which the caller clamps to 100.
    """
    intensity = math.pow(10, magnitude - REFERENCE_MAGNITUDE)
    attenuation = distance_km / 10 + depth_km / 5 + 1
    if attenuation == 0:
        return math.inf
    return intensity / attenuation * 100


def compute_risk(
    event: SeismicEvent,
    observer_lat: float | None,
    observer_lon: float | None,
) -> RiskAssessment:
    """Assess *event* for an observer at (*observer_lat*, *observer_lon*).

    Returns the N/A assessment when either coordinate is absent, zero or NaN.
    """
    if _is_missing(observer_lat) or _is_missing(observer_lon):
        return NO_OBSERVER

    distance = haversine_km(observer_lat, observer_lon, event.latitude, event.longitude)
    score = _round_half_up(min(max(raw_score(event.magnitude, distance, event.depth_km), 0.0), 100.0))
    return RiskAssessment(
        distance_km=round(distance, 1),
        score=score,
        level=risk_level(score),
    )
