"""Routing endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ...data.repository import RepositoryError, SupabaseRepository
from ...schemas.routing import GeocodeResponse, OptimizationResultModel, OptimizeRequest
from ...services.outputs.routing_formatter import optimization_result_to_json
from ...services.routing.geocoder import LocationResolver, build_location_resolver
from ...services.routing.matrix import MatrixProviderError
from ...services.routing.service import OptimizeOptions, RouteOptimizer, save_result_outputs

router = APIRouter(prefix="/routes", tags=["routes"])


def get_route_optimizer() -> RouteOptimizer:
    try:
        repository = SupabaseRepository()
    except RepositoryError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    return RouteOptimizer(repository)


def get_location_resolver() -> LocationResolver:
    return build_location_resolver()


@router.post("/optimize", response_model=OptimizationResultModel, status_code=status.HTTP_200_OK)
def optimize(
    payload: OptimizeRequest,
    optimizer: RouteOptimizer = Depends(get_route_optimizer),
) -> OptimizationResultModel:
    options = OptimizeOptions(**payload.options.model_dump()) if payload.options else None
    try:
        result = optimizer.optimize_routes_for_date(payload.date, payload.tenant_id, options)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except MatrixProviderError as exc:
        logging.error(f"Distance-matrix provider failed during optimization: {exc}")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc
    except Exception as exc:
        logging.exception(f"Error optimizing routes: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to optimize routes: {str(exc)}",
        ) from exc

    if payload.persist:
        try:
            run_dir = save_result_outputs(result)
            logging.info(f"Saved optimization outputs to {run_dir}")
        except OSError as exc:
            # Routes are still valid; a failed write must not fail the request.
            logging.error(f"Failed to save optimization outputs: {exc}")

    return OptimizationResultModel(**optimization_result_to_json(result))


@router.get("/geocode", response_model=GeocodeResponse, status_code=status.HTTP_200_OK)
def geocode(
    address: str = Query(..., min_length=1),
    resolver: LocationResolver = Depends(get_location_resolver),
) -> GeocodeResponse:
    result = resolver.resolve(address)
    if result is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Could not geocode address: {address}")
    return GeocodeResponse(
        address=address,
        lat=result.lat,
        lng=result.lng,
        formatted_address=result.formatted_address,
        place_id=result.place_id,
        provider=result.provider,
    )
