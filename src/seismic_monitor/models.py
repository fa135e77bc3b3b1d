"""Data models for the seismic monitor."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Literal

RiskLevel = Literal["Low", "Medium", "High", "N/A"]


@dataclass(frozen=True)
class SeismicEvent:
    """A single quake, either ingested from the feed or reported by a user."""

    external_id: str
    magnitude: float
    place: str | None
    occurred_at_ms: int
    depth_km: float
    longitude: float
    latitude: float
    casualties: int = 0
    is_user_reported: bool = False


@dataclass(frozen=True)
class RiskAssessment:
    """Risk of one event relative to an observer. Computed per query, never stored."""

    distance_km: float
    score: int
    level: RiskLevel


NO_OBSERVER = RiskAssessment(distance_km=0.0, score=0, level="N/A")


@dataclass(frozen=True)
class ScoredEvent:
    """An event paired with the risk assessment for the requesting observer."""

    event: SeismicEvent
    risk: RiskAssessment

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self.event)
        data["risk"] = asdict(self.risk)
        return data
