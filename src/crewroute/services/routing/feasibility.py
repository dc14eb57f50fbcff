"""Advisory checks on optimized routes."""

from __future__ import annotations

from typing import Sequence

from .models import OptimizedRoute


def _money(value: float) -> str:
    return f"{value:g}" if float(value).is_integer() else f"{value:.2f}"


def audit_routes(
    routes: Sequence[OptimizedRoute],
    *,
    max_drive_minutes: int,
    daily_target_revenue: float,
) -> list[str]:
    warnings: list[str] = []

    for route in routes:
        for stop in route.stops:
            if stop.drive_time_minutes > max_drive_minutes:
                warnings.append(
                    f'Team "{route.team_name}" stop #{stop.order} ({stop.address}) has '
                    f"{stop.drive_time_minutes}min drive (limit: {max_drive_minutes}min)"
                )

        revenue = route.total_revenue_estimate
        if 0 < revenue < daily_target_revenue:
            warnings.append(
                f'Team "{route.team_name}" estimated revenue ${_money(revenue)} is below '
                f"${_money(daily_target_revenue)} target"
            )

        if route.total_drive_time_minutes > max_drive_minutes * len(route.stops):
            warnings.append(
                f'Team "{route.team_name}" total drive time {route.total_drive_time_minutes}min '
                f"seems excessive for {len(route.stops)} stops"
            )

    return warnings
