from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging
import os
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from core.config import settings
from core.logging_config import setup_logging
from core.scheduler import Scheduler

# Feature routes
from features.tides.routes.tide_routes import router as tide_router
from features.stations.routes.station_routes import router as station_router

# Services and clients
from features.stations.services.coops_metadata_client import CoopsMetadataClient
from features.stations.services.station_service import StationDirectoryService
from features.tides.services.coops_client import CoopsPredictionsClient
from features.tides.services.tide_service import TideService
from features.common.services.cache_store import FileCacheStore
from features.common.exceptions.tide_exceptions import (
    DataUnavailable,
    InvalidSelection,
    NetworkError,
    TideServiceError
)

setup_logging()
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    metadata_client = CoopsMetadataClient()
    predictions_client = CoopsPredictionsClient()
    station_service = None
    scheduler = None
    try:
        logger.info("🚀 Starting Tide State API...")

        store = FileCacheStore(settings.cache_dir)
        station_service = StationDirectoryService(
            fetch_catalog=metadata_client.fetch_station_catalog,
            store=store
        )
        tide_service = TideService(
            fetch_predictions=predictions_client.fetch_predictions,
            directory=station_service,
            store=store
        )

        # Serve from the disk cache right away; a fetch is scheduled if it is stale
        await station_service.start()
        cached = await tide_service.load_cached_snapshot()
        if cached:
            logger.info(f"📦 Restored tide state for {cached.location_name}")

        app.state.station_service = station_service
        app.state.tide_service = tide_service

        scheduler = Scheduler(station_service, tide_service)
        scheduler.start()
        app.state.scheduler = scheduler

        logger.info("\n✨ API startup complete - ready to serve requests")
        yield

    except Exception as e:
        logger.error(f"❌ Startup error: {str(e)}")
        raise
    finally:
        logger.info("\n🔄 Shutting down API...")
        if scheduler:
            scheduler.shutdown()
        if station_service:
            await station_service.close()
        await metadata_client.close()
        await predictions_client.close()
        logger.info("👋 API shutdown complete")

app = FastAPI(
    title="Tide State API",
    description="Current tide state, high/low tides and station lookup from NOAA CO-OPS predictions",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

ERROR_STATUS = {
    NetworkError: 503,
    DataUnavailable: 404,
    InvalidSelection: 422,
}

async def tide_error_handler(request: Request, exc: TideServiceError) -> JSONResponse:
    """Map domain errors to HTTP responses."""
    status_code = next(
        (code for error_type, code in ERROR_STATUS.items() if isinstance(exc, error_type)),
        500
    )
    logger.warning(f"{request.url.path} failed with {type(exc).__name__}: {str(exc)}")
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})

app.add_exception_handler(TideServiceError, tide_error_handler)

# Include feature routers
app.include_router(tide_router)
app.include_router(station_router)

@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "time": datetime.now(timezone.utc).isoformat()
    }

if __name__ == "__main__":
    import uvicorn

    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", 5010))

    uvicorn.run(
        "main:app",
        host=host,
        port=port,
        reload=True,
        log_level="info",
        workers=1
    )
