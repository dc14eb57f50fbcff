"""Arrival and departure estimates for an ordered route."""

from __future__ import annotations

from typing import Mapping, Sequence

from ...models.domain import Job
from ..geospatial import round_half_up
from .models import DistanceMatrix, OptimizedStop

DEFAULT_JOB_MINUTES = 120
ARRIVAL_WINDOW_MINUTES = 30


def parse_start_time(value: str) -> int:
    """Parse ``"HH:MM"`` (24-hour) into minutes since midnight."""
    try:
        hour_text, minute_text = value.strip().split(":")
        hour, minute = int(hour_text), int(minute_text)
    except (AttributeError, ValueError) as exc:
        raise ValueError(f"Invalid start time '{value}', expected HH:MM") from exc
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        raise ValueError(f"Invalid start time '{value}', expected HH:MM")
    return hour * 60 + minute


def format_clock(minutes_since_midnight: int) -> str:
    """Render minutes since midnight as ``h:MM AM/PM``, wrapping past midnight."""
    hours = (minutes_since_midnight // 60) % 24
    minutes = minutes_since_midnight % 60
    period = "PM" if hours >= 12 else "AM"
    hours_12 = 12 if hours == 0 else hours - 12 if hours > 12 else hours
    return f"{hours_12}:{minutes:02d} {period}"


def job_duration_minutes(job: Job | None) -> int:
    if job is None or not job.hours:
        return DEFAULT_JOB_MINUTES
    return round_half_up(job.hours * 60)


def calculate_etas(
    stop_ids: Sequence[str],
    start_id: str,
    start_time: str,
    jobs_by_location: Mapping[str, Job],
    matrix: DistanceMatrix,
) -> list[OptimizedStop]:
    clock = parse_start_time(start_time)
    previous = start_id
    stops: list[OptimizedStop] = []

    for order, location_id in enumerate(stop_ids, start=1):
        job = jobs_by_location[location_id]
        drive = matrix.duration(previous, location_id)
        arrival = clock + drive
        duration = job_duration_minutes(job)
        departure = arrival + duration

        stops.append(
            OptimizedStop(
                job_id=job.id,
                order=order,
                arrival_minutes=arrival,
                departure_minutes=departure,
                estimated_arrival=format_clock(arrival),
                estimated_departure=format_clock(departure),
                arrival_window=f"{format_clock(arrival)} - {format_clock(arrival + ARRIVAL_WINDOW_MINUTES)}",
                drive_time_minutes=drive,
                job_duration_minutes=duration,
                address=job.address,
                customer_name=job.customer_name,
                customer_phone=job.customer_phone,
                service_type=job.service_type,
            )
        )
        clock = departure
        previous = location_id

    return stops
