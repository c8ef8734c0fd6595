from datetime import datetime
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Request
from features.tides.models.tide_types import (
    TideHeight,
    TideSnapshot,
    TideStatus
)
from features.tides.services.tide_service import TideService

router = APIRouter(
    prefix="/tides",
    tags=["Tides"]
)

def get_service(request: Request) -> TideService:
    """Dependency to get the TideService instance."""
    return request.app.state.tide_service

@router.get(
    "/current",
    response_model=TideStatus,
    summary="Get tides for the active station",
    description="Returns the current tide state and upcoming alerts for the selected station"
)
async def get_current_tides(
    service: TideService = Depends(get_service)
) -> TideStatus:
    """Get the tide state for the active selection."""
    return await service.refresh_active_selection()

@router.get(
    "/latest",
    response_model=TideStatus,
    summary="Get the last refreshed tide state",
    description="Returns the most recent tide state without contacting NOAA"
)
async def get_latest_tides(
    service: TideService = Depends(get_service)
) -> TideStatus:
    """Get the last tide state computed for the active selection."""
    if not service.latest:
        raise HTTPException(status_code=404, detail="No tide data has been loaded yet")
    return service.latest

@router.get(
    "/stations/{station_id}",
    response_model=TideSnapshot,
    summary="Get tide state for a station",
    description="Returns current height, trend, surrounding highs and lows and chart points"
)
async def get_station_tides(
    station_id: str,
    service: TideService = Depends(get_service)
) -> TideSnapshot:
    """Get the current tide state for a specific station."""
    return await service.get_station_snapshot(station_id)

@router.get(
    "/stations/{station_id}/height",
    response_model=TideHeight,
    summary="Get tide height at a time",
    description="Returns the interpolated height at the requested time (defaults to now)"
)
async def get_station_height(
    station_id: str,
    at: Optional[datetime] = None,
    service: TideService = Depends(get_service)
) -> TideHeight:
    """Get the interpolated tide height for a station."""
    return await service.get_height(station_id, at or datetime.now().astimezone())
