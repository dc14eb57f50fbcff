"""Serializers for optimization results."""

from __future__ import annotations

import csv
import io
from dataclasses import asdict

from ..routing.models import OptimizationResult


def optimization_result_to_json(result: OptimizationResult) -> dict:
    return {
        "date": result.date,
        "routes": [
            {
                "team_id": route.team_id,
                "team_name": route.team_name,
                "lead_id": route.lead_id,
                "lead_notification_id": route.lead_notification_id,
                "total_drive_time_minutes": route.total_drive_time_minutes,
                "total_job_time_minutes": route.total_job_time_minutes,
                "total_revenue_estimate": route.total_revenue_estimate,
                "first_departure_time": route.first_departure_time,
                "last_completion_time": route.last_completion_time,
                "stops": [asdict(stop) for stop in route.stops],
            }
            for route in result.routes
        ],
        "unassigned_jobs": [asdict(item) for item in result.unassigned_jobs],
        "warnings": list(result.warnings),
        "stats": asdict(result.stats),
    }


def optimization_result_to_csv(result: OptimizationResult) -> str:
    buffer = io.StringIO()
    fieldnames = [
        "team_id",
        "team_name",
        "order",
        "job_id",
        "address",
        "estimated_arrival",
        "estimated_departure",
        "arrival_window",
        "drive_time_minutes",
        "job_duration_minutes",
        "customer_name",
        "customer_phone",
    ]
    writer = csv.DictWriter(buffer, fieldnames=fieldnames, lineterminator="\n")
    writer.writeheader()
    for route in result.routes:
        for stop in route.stops:
            writer.writerow(
                {
                    "team_id": route.team_id,
                    "team_name": route.team_name,
                    "order": stop.order,
                    "job_id": stop.job_id,
                    "address": stop.address,
                    "estimated_arrival": stop.estimated_arrival,
                    "estimated_departure": stop.estimated_departure,
                    "arrival_window": stop.arrival_window,
                    "drive_time_minutes": stop.drive_time_minutes,
                    "job_duration_minutes": stop.job_duration_minutes,
                    "customer_name": stop.customer_name or "",
                    "customer_phone": stop.customer_phone or "",
                }
            )
    return buffer.getvalue()
