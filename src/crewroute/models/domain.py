"""Domain models for crews and the jobs they are routed to."""

from dataclasses import dataclass, field
from typing import Optional


@dataclass(slots=True)
class TeamMember:
    """An active member of a crew."""

    id: str
    name: str
    role: str = "member"
    notification_id: Optional[str] = None


@dataclass(slots=True)
class Team:
    """A field crew anchored to its lead's home for routing purposes."""

    id: str
    name: str
    lead_id: Optional[str] = None
    lead_name: Optional[str] = None
    lead_notification_id: Optional[str] = None
    home_lat: Optional[float] = None
    home_lng: Optional[float] = None
    max_jobs_per_day: int = 6
    members: list[TeamMember] = field(default_factory=list)

    @property
    def has_home(self) -> bool:
        return self.home_lat is not None and self.home_lng is not None


@dataclass(slots=True)
class Job:
    """A job scheduled for a date. Customer fields are display-only."""

    id: str
    address: str
    date: str
    lat: Optional[float] = None
    lng: Optional[float] = None
    team_id: Optional[str] = None
    hours: Optional[float] = None
    price: Optional[float] = None
    service_type: Optional[str] = None
    scheduled_at: Optional[str] = None
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    notes: Optional[str] = None

    @property
    def has_coordinates(self) -> bool:
        return self.lat is not None and self.lng is not None
