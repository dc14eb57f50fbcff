"""Greedy nearest-tail assignment of jobs to teams."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Sequence

from ...models.domain import Job, Team
from .models import DistanceMatrix, UnassignedJob, job_location_id, team_location_id

CAPACITY_EXHAUSTED = "All teams at capacity"

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class AssignmentResult:
    assignments: Dict[str, List[str]]
    unassigned: List[UnassignedJob] = field(default_factory=list)


def team_capacity(team: Team, max_jobs_per_team: int) -> int:
    return max(0, min(team.max_jobs_per_day, max_jobs_per_team))


def _sweep_order(jobs: Sequence[Job]) -> list[Job]:
    # Pre-assigned first, then north to south. sorted() is stable.
    return sorted(jobs, key=lambda job: (0 if job.team_id else 1, -(job.lat or 0.0)))


def assign_jobs(
    jobs: Sequence[Job],
    teams: Sequence[Team],
    matrix: DistanceMatrix,
    *,
    max_jobs_per_team: int,
    max_drive_minutes: int,
) -> AssignmentResult:
    """Assign each job to the team whose current tail is nearest.

    A team's tail starts at its home and moves to every job it receives.
    Pre-assignments are honoured while the team has room; otherwise the job
    competes like any other. Ties go to the earlier team. Assignments over
    ``max_drive_minutes`` are kept; the feasibility audit reports them.
    """
    assignments: Dict[str, List[str]] = {str(team.id): [] for team in teams}
    capacity = {str(team.id): team_capacity(team, max_jobs_per_team) for team in teams}
    tails = {str(team.id): team_location_id(team.id) for team in teams}
    unassigned: list[UnassignedJob] = []

    for job in _sweep_order(jobs):
        job_loc = job_location_id(job.id)
        if job_loc not in matrix:
            unassigned.append(UnassignedJob(job_id=job.id, reason=f"Location not in distance matrix: {job.address}"))
            continue

        preferred = str(job.team_id) if job.team_id else None
        if preferred in assignments and len(assignments[preferred]) < capacity[preferred]:
            assignments[preferred].append(job.id)
            tails[preferred] = job_loc
            continue
        if preferred is not None:
            logger.info(f"Job {job.id} pre-assigned to team {preferred} which is full or inactive; reassigning")

        best_team: str | None = None
        best_duration = float("inf")
        for team in teams:
            team_id = str(team.id)
            if len(assignments[team_id]) >= capacity[team_id]:
                continue
            duration = matrix.duration(tails[team_id], job_loc)
            if duration < best_duration:
                best_duration = duration
                best_team = team_id

        if best_team is None:
            unassigned.append(UnassignedJob(job_id=job.id, reason=CAPACITY_EXHAUSTED))
            continue

        if best_duration > max_drive_minutes:
            logger.warning(
                f"Job {job.id} is {best_duration} min from nearest team {best_team} (limit: {max_drive_minutes})"
            )
        assignments[best_team].append(job.id)
        tails[best_team] = job_loc

    return AssignmentResult(assignments=assignments, unassigned=unassigned)
