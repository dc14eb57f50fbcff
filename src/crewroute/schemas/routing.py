"""Routing request/response schemas."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class OptimizeOptionsModel(BaseModel):
    start_time: Optional[str] = Field(None, pattern=r"^\d{1,2}:\d{2}$", description="Crew start time, 24-hour HH:MM.")
    max_jobs_per_team: Optional[int] = Field(None, ge=1)
    max_drive_minutes: Optional[int] = Field(None, ge=1)
    daily_target_revenue: Optional[float] = Field(None, ge=0)


class OptimizeRequest(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    date: str = Field(..., pattern=r"^\d{4}-\d{2}-\d{2}$", description="Service date (YYYY-MM-DD).")
    tenant_id: str
    options: Optional[OptimizeOptionsModel] = None
    persist: bool = Field(default=False, description="Write summary.json and stops.csv under the data root.")


class OptimizedStopModel(BaseModel):
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


class OptimizedRouteModel(BaseModel):
    team_id: str
    team_name: str
    lead_id: Optional[str] = None
    lead_notification_id: Optional[str] = None
    total_drive_time_minutes: int
    total_job_time_minutes: int
    total_revenue_estimate: float
    first_departure_time: str
    last_completion_time: str
    stops: List[OptimizedStopModel]


class UnassignedJobModel(BaseModel):
    job_id: str
    reason: str


class OptimizationStatsModel(BaseModel):
    total_jobs: int
    assigned_jobs: int
    total_teams: int
    active_teams: int
    total_drive_minutes: int
    total_revenue_estimate: float
    generated_at: str
    matrix_source: Optional[str] = None


class OptimizationResultModel(BaseModel):
    date: str
    routes: List[OptimizedRouteModel]
    unassigned_jobs: List[UnassignedJobModel]
    warnings: List[str]
    stats: OptimizationStatsModel


class GeocodeResponse(BaseModel):
    address: str
    lat: float
    lng: float
    formatted_address: str
    place_id: str
    provider: str
