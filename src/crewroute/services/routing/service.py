"""Routing orchestration service."""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Sequence

from ...config import settings
from ...data.repository import RepositoryError, RoutingRepository, SupabaseRepository
from ...models.domain import Job, Team
from ...persistence.filesystem import FileStorage
from ..outputs.routing_formatter import optimization_result_to_csv, optimization_result_to_json
from .assignment import assign_jobs
from .feasibility import audit_routes
from .geocoder import LocationResolver, build_location_resolver
from .matrix import DistanceMatrixBuilder, build_matrix_builder
from .models import (
    Location,
    OptimizationResult,
    OptimizationStats,
    OptimizedRoute,
    UnassignedJob,
    job_location_id,
    team_location_id,
)
from .schedule import calculate_etas, format_clock, parse_start_time
from .sequencer import sequence_stops

NO_TEAMS_WARNING = "No active teams with home locations found"
NO_JOBS_WARNING = "No jobs found for this date"
ALL_GEOCODING_FAILED_WARNING = "All job addresses failed geocoding"

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class OptimizeOptions:
    start_time: Optional[str] = None
    max_jobs_per_team: Optional[int] = None
    max_drive_minutes: Optional[int] = None
    daily_target_revenue: Optional[float] = None

    def resolved(self) -> "OptimizeOptions":
        """Fill unset fields from settings. Explicit zeros are kept; negatives are rejected."""
        for name in ("max_jobs_per_team", "max_drive_minutes", "daily_target_revenue"):
            value = getattr(self, name)
            if value is not None and value < 0:
                raise ValueError(f"{name} must be >= 0, got {value}")
        return OptimizeOptions(
            start_time=self.start_time or settings.default_start_time,
            max_jobs_per_team=(
                self.max_jobs_per_team if self.max_jobs_per_team is not None else settings.max_jobs_per_team
            ),
            max_drive_minutes=(
                self.max_drive_minutes if self.max_drive_minutes is not None else settings.max_drive_minutes
            ),
            daily_target_revenue=(
                self.daily_target_revenue if self.daily_target_revenue is not None else settings.daily_target_revenue
            ),
        )


def qualify_teams(teams: Sequence[Team]) -> tuple[list[Team], list[str]]:
    """Keep teams that can be routed; explain every team that is skipped."""
    qualified: list[Team] = []
    warnings: list[str] = []

    for team in teams:
        if team.lead_id is None:
            msg = f'Team "{team.name}" has no active lead assigned - skipped from routing'
            logger.warning(msg)
            warnings.append(msg)
            continue
        if not team.has_home:
            msg = (
                f'Team "{team.name}" lead "{team.lead_name}" has no home coordinates - skipped from routing. '
                "Update home address in cleaner settings."
            )
            logger.warning(msg)
            warnings.append(msg)
            continue
        if not team.lead_notification_id:
            warnings.append(
                f'Team "{team.name}" lead "{team.lead_name}" has no notification channel - route will be '
                "optimized but the team lead won't be notified"
            )
        qualified.append(team)

    return qualified, warnings


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def build_empty_result(
    date: str,
    jobs: Sequence[Job],
    team_count: int,
    warnings: list[str],
    unassigned: list[UnassignedJob] | None = None,
) -> OptimizationResult:
    if unassigned is None:
        reason = warnings[0] if warnings else "Unknown"
        unassigned = [UnassignedJob(job_id=job.id, reason=reason) for job in jobs]
    return OptimizationResult(
        date=date,
        routes=[],
        unassigned_jobs=unassigned,
        warnings=warnings,
        stats=OptimizationStats(
            total_jobs=len(jobs),
            assigned_jobs=0,
            total_teams=team_count,
            active_teams=0,
            total_drive_minutes=0,
            total_revenue_estimate=0.0,
            generated_at=_now_iso(),
        ),
    )


class RouteOptimizer:
    """Plan one day of routes for one tenant.

    Runs the resolver, matrix builder, assignment, sequencing, scheduling and
    audit steps in order. Problems with individual teams or jobs are reported
    as warnings or unassigned entries instead of failing the run.
    """

    def __init__(
        self,
        repository: RoutingRepository,
        resolver: LocationResolver | None = None,
        matrix_builder: DistanceMatrixBuilder | None = None,
    ) -> None:
        self.repository = repository
        self.resolver = resolver if resolver is not None else build_location_resolver()
        self.matrix_builder = matrix_builder if matrix_builder is not None else build_matrix_builder(self.resolver)

    def _load_teams(self, tenant_id: str) -> tuple[list[Team], list[str]]:
        try:
            teams = self.repository.load_teams(tenant_id)
        except RepositoryError as exc:
            logger.error(f"Failed to load teams: {exc}")
            return [], ["Failed to load teams from database"]
        return qualify_teams(teams)

    def _load_jobs(self, date: str, tenant_id: str) -> tuple[list[Job], list[str]]:
        try:
            jobs = self.repository.load_jobs(date, tenant_id)
        except RepositoryError as exc:
            logger.error(f"Failed to load jobs: {exc}")
            return [], ["Failed to load jobs from database"]
        # Coordinates are annotated on copies so the caller's records stay untouched.
        return [dataclasses.replace(job) for job in jobs], []

    def _geocode_jobs(self, jobs: Sequence[Job]) -> None:
        needs_geocode = [job for job in jobs if not job.has_coordinates]
        if not needs_geocode:
            return
        logger.info(f"Geocoding {len(needs_geocode)} job addresses")
        geocoded = self.resolver.resolve_many(job.address for job in needs_geocode)
        for job in needs_geocode:
            result = geocoded.get(job.address)
            if result is not None:
                job.lat = result.lat
                job.lng = result.lng

    def optimize_routes_for_date(
        self,
        date: str,
        tenant_id: str,
        options: OptimizeOptions | None = None,
    ) -> OptimizationResult:
        opts = (options or OptimizeOptions()).resolved()
        parse_start_time(opts.start_time)
        logger.info(f"Optimizing routes for {date}, tenant {tenant_id}")

        teams, skipped_warnings = self._load_teams(tenant_id)
        jobs, job_warnings = self._load_jobs(date, tenant_id)
        skipped_warnings.extend(job_warnings)

        if not teams:
            return build_empty_result(date, jobs, 0, [NO_TEAMS_WARNING, *skipped_warnings])
        if not jobs:
            return build_empty_result(date, [], len(teams), [NO_JOBS_WARNING, *skipped_warnings])

        logger.info(f"Found {len(teams)} teams and {len(jobs)} jobs")

        self._geocode_jobs(jobs)
        routable = [job for job in jobs if job.has_coordinates]
        unassigned = [
            UnassignedJob(job_id=job.id, reason=f"Could not geocode address: {job.address}")
            for job in jobs
            if not job.has_coordinates
        ]
        if not routable:
            return build_empty_result(date, jobs, len(teams), [ALL_GEOCODING_FAILED_WARNING, *skipped_warnings], unassigned)

        locations = [Location(id=team_location_id(team.id), lat=team.home_lat, lng=team.home_lng) for team in teams]
        locations.extend(
            Location(id=job_location_id(job.id), lat=job.lat, lng=job.lng, address=job.address) for job in routable
        )
        logger.info(f"Building distance matrix for {len(locations)} locations")
        matrix = self.matrix_builder.pairwise_matrix(locations)

        assignment = assign_jobs(
            routable,
            teams,
            matrix,
            max_jobs_per_team=opts.max_jobs_per_team,
            max_drive_minutes=opts.max_drive_minutes,
        )
        unassigned.extend(assignment.unassigned)

        jobs_by_location = {job_location_id(job.id): job for job in routable}
        routes: list[OptimizedRoute] = []
        for team in teams:
            team_job_ids = assignment.assignments.get(str(team.id)) or []
            if not team_job_ids:
                continue
            start_id = team_location_id(team.id)
            ordered = sequence_stops([job_location_id(job_id) for job_id in team_job_ids], start_id, matrix)
            stops = calculate_etas(ordered, start_id, opts.start_time, jobs_by_location, matrix)
            revenue = sum(jobs_by_location[job_location_id(stop.job_id)].price or 0.0 for stop in stops)
            routes.append(
                OptimizedRoute(
                    team_id=team.id,
                    team_name=team.name,
                    lead_id=team.lead_id,
                    lead_notification_id=team.lead_notification_id,
                    stops=stops,
                    total_drive_time_minutes=sum(stop.drive_time_minutes for stop in stops),
                    total_job_time_minutes=sum(stop.job_duration_minutes for stop in stops),
                    total_revenue_estimate=revenue,
                    first_departure_time=format_clock(parse_start_time(opts.start_time)),
                    last_completion_time=stops[-1].estimated_departure,
                )
            )

        warnings = list(skipped_warnings)
        if matrix.source == "haversine_fallback":
            warnings.append("Distance-matrix provider failed; drive times are straight-line estimates")
        warnings.extend(
            audit_routes(
                routes,
                max_drive_minutes=opts.max_drive_minutes,
                daily_target_revenue=opts.daily_target_revenue,
            )
        )

        assigned_count = sum(len(route.stops) for route in routes)
        logger.info(f"Done: {assigned_count} jobs assigned to {len(routes)} teams, {len(unassigned)} unassigned")

        return OptimizationResult(
            date=date,
            routes=routes,
            unassigned_jobs=unassigned,
            warnings=warnings,
            stats=OptimizationStats(
                total_jobs=len(jobs),
                assigned_jobs=assigned_count,
                total_teams=len(teams),
                active_teams=len(routes),
                total_drive_minutes=sum(route.total_drive_time_minutes for route in routes),
                total_revenue_estimate=sum(route.total_revenue_estimate for route in routes),
                generated_at=_now_iso(),
                matrix_source=matrix.source,
            ),
        )


def optimize_routes_for_date(
    date: str,
    tenant_id: str,
    options: OptimizeOptions | None = None,
    *,
    repository: RoutingRepository | None = None,
) -> OptimizationResult:
    """Optimize one tenant's day with the default providers and Supabase data."""
    optimizer = RouteOptimizer(repository if repository is not None else SupabaseRepository())
    return optimizer.optimize_routes_for_date(date, tenant_id, options)


def save_result_outputs(result: OptimizationResult, root: Path | None = None) -> Path:
    """Write ``summary.json`` and ``stops.csv`` for a run and return the run directory."""
    storage = FileStorage(root=root)
    run_dir = storage.make_run_directory(prefix=f"routes_{result.date}")
    storage.write_json(run_dir / "summary.json", optimization_result_to_json(result))
    storage.write_csv(run_dir / "stops.csv", optimization_result_to_csv(result))
    return run_dir
