"""Loaders for the teams and jobs an optimization run works on.

The optimizer only depends on the ``RoutingRepository`` protocol. The
Supabase implementation mirrors the production schema; the in-memory one
backs tests and offline runs.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping, Optional, Protocol, Sequence

from ..db.supabase import get_supabase_client
from ..models.domain import Job, Team, TeamMember

logger = logging.getLogger(__name__)


class RepositoryError(RuntimeError):
    """Raised when teams or jobs cannot be loaded."""


class RoutingRepository(Protocol):
    def load_teams(self, tenant_id: str) -> list[Team]:
        ...

    def load_jobs(self, date: str, tenant_id: str) -> list[Job]:
        ...


def _coerce_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _coerce_id(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    return str(value)


def _first(value: Any) -> Optional[Mapping[str, Any]]:
    if isinstance(value, list):
        return value[0] if value else None
    return value


def team_from_row(row: Mapping[str, Any]) -> Team:
    """Build a Team from a ``teams`` row with nested ``team_members -> cleaners``.

    The lead is the first active member with role ``lead`` whose cleaner
    record is active. A team without one is returned with ``lead_id=None``.
    """
    members_raw = row.get("team_members") or []
    active = [
        member
        for member in members_raw
        if member.get("is_active") and (_first(member.get("cleaners")) or {}).get("active")
    ]
    lead_member = next((member for member in active if member.get("role") == "lead"), None)
    lead = _first(lead_member.get("cleaners")) if lead_member else None

    members = [
        TeamMember(
            id=str(_first(member["cleaners"])["id"]),
            name=_first(member["cleaners"]).get("name") or "",
            role=member.get("role") or "member",
            notification_id=_coerce_id(_first(member["cleaners"]).get("telegram_id")),
        )
        for member in active
    ]

    return Team(
        id=str(row["id"]),
        name=row.get("name") or f"Team {row['id']}",
        lead_id=_coerce_id(lead.get("id")) if lead else None,
        lead_name=lead.get("name") if lead else None,
        lead_notification_id=_coerce_id(lead.get("telegram_id")) if lead else None,
        home_lat=_coerce_float(lead.get("home_lat")) if lead else None,
        home_lng=_coerce_float(lead.get("home_lng")) if lead else None,
        max_jobs_per_day=int(lead.get("max_jobs_per_day") or 6) if lead else 6,
        members=members,
    )


def job_from_row(row: Mapping[str, Any]) -> Job:
    """Build a Job from a ``jobs`` row with an optional nested ``customers`` record."""
    customer = _first(row.get("customers"))
    customer_name = None
    if customer:
        customer_name = " ".join(
            part for part in (customer.get("first_name"), customer.get("last_name")) if part
        ).strip() or None

    return Job(
        id=str(row["id"]),
        address=row.get("address") or "",
        date=str(row.get("date") or ""),
        lat=_coerce_float(row.get("lat")),
        lng=_coerce_float(row.get("lng")),
        team_id=_coerce_id(row.get("team_id")),
        hours=_coerce_float(row.get("hours")) or None,
        price=_coerce_float(row.get("price")) or None,
        service_type=row.get("service_type") or None,
        scheduled_at=row.get("scheduled_at") or None,
        customer_name=customer_name,
        customer_phone=(customer or {}).get("phone_number") or row.get("phone_number") or None,
        notes=row.get("notes") or None,
    )


class InMemoryRepository:
    """Repository over plain records keyed by tenant."""

    def __init__(
        self,
        teams: Mapping[str, Sequence[Team]] | None = None,
        jobs: Mapping[str, Sequence[Job]] | None = None,
    ) -> None:
        self._teams = {tenant: list(items) for tenant, items in (teams or {}).items()}
        self._jobs = {tenant: list(items) for tenant, items in (jobs or {}).items()}

    @classmethod
    def from_rows(
        cls,
        tenant_id: str,
        team_rows: Iterable[Mapping[str, Any]],
        job_rows: Iterable[Mapping[str, Any]],
    ) -> "InMemoryRepository":
        return cls(
            teams={tenant_id: [team_from_row(row) for row in team_rows]},
            jobs={tenant_id: [job_from_row(row) for row in job_rows]},
        )

    def load_teams(self, tenant_id: str) -> list[Team]:
        return list(self._teams.get(tenant_id, []))

    def load_jobs(self, date: str, tenant_id: str) -> list[Job]:
        return [job for job in self._jobs.get(tenant_id, []) if job.date == date]


class SupabaseRepository:
    """Load active teams and non-cancelled jobs from Supabase."""

    TEAM_COLUMNS = (
        "id, name, active, team_members ( id, role, is_active, cleaner_id, "
        "cleaners ( id, name, phone, telegram_id, is_team_lead, home_lat, home_lng, max_jobs_per_day, active ) )"
    )
    JOB_COLUMNS = (
        "id, address, date, scheduled_at, service_type, price, hours, notes, team_id, phone_number, "
        "customers ( first_name, last_name, phone_number )"
    )

    def __init__(self, client: Any = None) -> None:
        self.client = client or get_supabase_client()
        if self.client is None:
            raise RepositoryError("Supabase is not configured. Set CREWROUTE_SUPABASE_URL and CREWROUTE_SUPABASE_KEY.")

    def load_teams(self, tenant_id: str) -> list[Team]:
        try:
            response = (
                self.client.table("teams")
                .select(self.TEAM_COLUMNS)
                .eq("tenant_id", tenant_id)
                .eq("active", True)
                .execute()
            )
        except Exception as exc:
            raise RepositoryError(f"Failed to load teams for tenant {tenant_id}: {exc}") from exc

        teams: list[Team] = []
        for row in response.data or []:
            try:
                teams.append(team_from_row(row))
            except (KeyError, TypeError, ValueError) as exc:
                logger.warning(f"Skipping invalid team row {row.get('id')}: {exc}")
        return teams

    def load_jobs(self, date: str, tenant_id: str) -> list[Job]:
        try:
            response = (
                self.client.table("jobs")
                .select(self.JOB_COLUMNS)
                .eq("tenant_id", tenant_id)
                .eq("date", date)
                .neq("status", "cancelled")
                .order("scheduled_at")
                .execute()
            )
        except Exception as exc:
            raise RepositoryError(f"Failed to load jobs for {date}: {exc}") from exc

        jobs: list[Job] = []
        for row in response.data or []:
            try:
                jobs.append(job_from_row(row))
            except (KeyError, TypeError, ValueError) as exc:
                logger.warning(f"Skipping invalid job row {row.get('id')}: {exc}")
        return jobs
