from __future__ import annotations

from typing import Sequence

import pytest

from crewroute.models.domain import Job, Team
from crewroute.services.routing.models import DistanceMatrix


class FakeClock:
    """Manually advanced clock whose ``sleep`` moves time forward instantly."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


def make_team(
    tid: str,
    lat: float | None = 34.05,
    lng: float | None = -118.25,
    *,
    max_jobs: int = 6,
    lead_id: str | None = "L",
    notification_id: str | None = "chat-1",
) -> Team:
    return Team(
        id=tid,
        name=f"Team {tid}",
        lead_id=f"{lead_id}{tid}" if lead_id else None,
        lead_name=f"Lead {tid}" if lead_id else None,
        lead_notification_id=notification_id,
        home_lat=lat,
        home_lng=lng,
        max_jobs_per_day=max_jobs,
    )


def make_job(
    jid: str,
    lat: float | None = None,
    lng: float | None = None,
    *,
    date: str = "2026-10-20",
    team_id: str | None = None,
    hours: float | None = None,
    price: float | None = None,
    address: str | None = None,
) -> Job:
    return Job(
        id=jid,
        address=address or f"{jid} Main St, Los Angeles, CA",
        date=date,
        lat=lat,
        lng=lng,
        team_id=team_id,
        hours=hours,
        price=price,
        customer_name=f"Customer {jid}",
        customer_phone="+15550100",
    )


def matrix_from(ids: Sequence[str], rows: Sequence[Sequence[int]]) -> DistanceMatrix:
    return DistanceMatrix(location_ids=list(ids), minutes=[list(row) for row in rows], source="provider")


def line_matrix(positions: dict[str, int]) -> DistanceMatrix:
    """Matrix for points on a line where drive time is the distance between positions."""
    ids = list(positions)
    return matrix_from(ids, [[abs(positions[a] - positions[b]) for b in ids] for a in ids])
