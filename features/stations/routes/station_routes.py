from typing import List
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from features.stations.models.station_types import (
    ActiveSelection,
    SelectionRequest,
    Station,
    StationDistance
)
from features.stations.services.station_service import StationDirectoryService
import logging

logger = logging.getLogger(__name__)
router = APIRouter(
    prefix="/stations",
    tags=["Stations"]
)

def get_service(request: Request) -> StationDirectoryService:
    """Dependency to get the StationDirectoryService instance."""
    return request.app.state.station_service

@router.get(
    "/search",
    response_model=List[Station],
    summary="Search tide stations",
    description="Returns up to 20 stations whose name or state contains the query"
)
async def search_stations(
    q: str = Query("", description="Free text matched against station name and state"),
    service: StationDirectoryService = Depends(get_service)
) -> List[Station]:
    """Search stations by name or state."""
    return await service.search(q)

@router.get(
    "/nearest",
    response_model=List[StationDistance],
    summary="Find nearest tide stations",
    description="Returns up to 10 stations ordered by great circle distance"
)
async def nearest_stations(
    lat: float = Query(..., ge=-90, le=90, description="Latitude in degrees"),
    lng: float = Query(..., ge=-180, le=180, description="Longitude in degrees"),
    service: StationDirectoryService = Depends(get_service)
) -> List[StationDistance]:
    """Get the stations closest to a coordinate."""
    return await service.nearest_with_distance(lat, lng)

@router.get(
    "/selection",
    response_model=ActiveSelection,
    summary="Get the active station"
)
async def get_selection(
    service: StationDirectoryService = Depends(get_service)
) -> ActiveSelection:
    """Get the currently selected station."""
    selection = await service.get_selection()
    if not selection:
        raise HTTPException(status_code=404, detail="No station has been selected")
    return selection

@router.put(
    "/selection",
    response_model=ActiveSelection,
    summary="Select the active station",
    description="Stores the station used for current tides and alerts"
)
async def select_station(
    body: SelectionRequest,
    service: StationDirectoryService = Depends(get_service)
) -> ActiveSelection:
    """Set the active station."""
    station = await service.get_station(body.station_id)
    if not station:
        raise HTTPException(status_code=404, detail=f"Station {body.station_id} not found")
    return await service.select_station(station)

@router.post(
    "/refresh",
    summary="Refresh the station catalog",
    description="Fetches the catalog now, joining a fetch that is already running"
)
async def refresh_catalog(
    service: StationDirectoryService = Depends(get_service)
):
    """Force a station catalog refresh."""
    catalog = await service.refresh()
    return {
        "stations": len(catalog.stations),
        "last_refreshed": catalog.last_refreshed
    }
