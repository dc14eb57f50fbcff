"""Routing domain models."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

# Cell value for pairs the provider reported as unreachable.
UNREACHABLE_MINUTES = 999
# Returned for lookups involving an id that is not part of the matrix.
MISSING_LOCATION_MINUTES = 9999


def team_location_id(team_id: object) -> str:
    return f"team_{team_id}"


def job_location_id(job_id: object) -> str:
    return f"job_{job_id}"


@dataclass(slots=True)
class Location:
    id: str
    lat: Optional[float] = None
    lng: Optional[float] = None
    address: str = ""

    @property
    def has_coordinates(self) -> bool:
        return self.lat is not None and self.lng is not None


@dataclass(slots=True)
class GeocodeResult:
    lat: float
    lng: float
    formatted_address: str
    place_id: str
    provider: str


@dataclass(slots=True)
class DistanceMatrix:
    """Dense travel-time matrix in whole minutes.

    ``minutes[i][j]`` is the drive time from ``location_ids[i]`` to
    ``location_ids[j]``. Entries are not assumed symmetric and are always
    populated; unreachable pairs hold ``UNREACHABLE_MINUTES``.
    """

    location_ids: List[str]
    minutes: List[List[int]]
    source: str = "haversine"
    _index: dict[str, int] = field(default_factory=dict, repr=False)

    def __post_init__(self) -> None:
        self._index = {location_id: idx for idx, location_id in enumerate(self.location_ids)}

    def __contains__(self, location_id: object) -> bool:
        return location_id in self._index

    def __len__(self) -> int:
        return len(self.location_ids)

    def duration(self, from_id: str, to_id: str) -> int:
        from_idx = self._index.get(from_id)
        to_idx = self._index.get(to_id)
        if from_idx is None or to_idx is None:
            return MISSING_LOCATION_MINUTES
        return self.minutes[from_idx][to_idx]


@dataclass(slots=True)
class OptimizedStop:
    job_id: str
    order: int
    arrival_minutes: int
    departure_minutes: int
    estimated_arrival: str
    estimated_departure: str
    arrival_window: str
    drive_time_minutes: int
    job_duration_minutes: int
    address: str
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    service_type: Optional[str] = None


@dataclass(slots=True)
class OptimizedRoute:
    team_id: str
    team_name: str
    lead_id: Optional[str]
    lead_notification_id: Optional[str]
    stops: List[OptimizedStop]
    total_drive_time_minutes: int
    total_job_time_minutes: int
    total_revenue_estimate: float
    first_departure_time: str
    last_completion_time: str


@dataclass(slots=True)
class UnassignedJob:
    job_id: str
    reason: str


@dataclass(slots=True)
class OptimizationStats:
    total_jobs: int
    assigned_jobs: int
    total_teams: int
    active_teams: int
    total_drive_minutes: int
    total_revenue_estimate: float
    generated_at: str
    matrix_source: Optional[str] = None


@dataclass(slots=True)
class OptimizationResult:
    date: str
    routes: List[OptimizedRoute]
    unassigned_jobs: List[UnassignedJob]
    warnings: List[str]
    stats: OptimizationStats
