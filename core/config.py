from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Dict, Optional

class Settings(BaseSettings):
    """Application settings."""

    app_name: str = "TideStateAPI"

    # NOAA CO-OPS endpoints
    coops_metadata_url: str = "https://api.tidesandcurrents.noaa.gov/mdapi/prod/webapi"
    coops_base_url: str = "https://api.tidesandcurrents.noaa.gov/api/prod/datagetter"
    coops_station_type: str = "waterlevels"
    coops_params: Dict[str, str] = {
        "product": "predictions",
        "interval": "hilo",
        "datum": "MLLW",
        "units": "english",
        "time_zone": "gmt",
        "format": "json"
    }

    # Prediction request window relative to now
    prediction_days_back: int = 1
    prediction_days_forward: int = 4

    request_timeout: int = 30  # seconds
    prediction_cache_ttl: int = 14400  # seconds, matches the background refresh

    # On-disk cache
    cache_dir: str = "cache"
    station_catalog_key: str = "station_catalog"
    active_selection_key: str = "active_selection"
    tide_snapshot_key: str = "tide_snapshot"
    station_cache_ttl_days: int = 7

    # Directory queries
    search_limit: int = 20
    nearest_limit: int = 10

    # Chart window around now
    chart_window_back_hours: int = 12
    chart_window_forward_hours: int = 24

    # Alerts fire this long before the next high/low
    alert_lead_minutes: int = 30

    # Background jobs
    tide_refresh_hours: int = 4
    catalog_check_hours: int = 24

    log_level: str = "INFO"

    def get_cache_ttl(self) -> Dict[str, Optional[int]]:
        """Get cache TTL values in seconds."""
        return {
            "tide_predictions": self.prediction_cache_ttl
        }

    model_config = SettingsConfigDict(
        env_prefix="tides_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

settings = Settings()
