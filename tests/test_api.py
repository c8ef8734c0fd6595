"""
API endpoint tests for the FastAPI application, with fake NOAA collaborators.
"""
import pytest
from fastapi.testclient import TestClient

from conftest import FakeCatalogFetcher, FakePredictionFetcher
from features.common.exceptions.tide_exceptions import DataUnavailable, NetworkError
from features.stations.services.station_service import StationDirectoryService
from features.tides.services.tide_service import TideService
from main import app


@pytest.fixture
def catalog_fetcher(stations):
    return FakeCatalogFetcher(stations)


@pytest.fixture
def prediction_fetcher(tide_series):
    return FakePredictionFetcher(tide_series)


@pytest.fixture
def client(catalog_fetcher, prediction_fetcher, store, memory_cache, clock):
    """Test client wired to fresh services; the lifespan is not run."""
    directory = StationDirectoryService(fetch_catalog=catalog_fetcher, store=store, clock=clock)
    app.state.station_service = directory
    app.state.tide_service = TideService(
        fetch_predictions=prediction_fetcher,
        directory=directory,
        store=store,
        cache=memory_cache,
        clock=clock
    )
    return TestClient(app)


class TestHealthEndpoint:

    def test_health_returns_ok(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestStationEndpoints:
    """Tests for /stations routes."""

    def test_search(self, client):
        response = client.get("/stations/search", params={"q": "monterey"})
        assert response.status_code == 200
        data = response.json()
        assert data == [{
            "id": "9413450",
            "name": "Monterey",
            "region": "CA",
            "lat": 36.605,
            "lng": -121.8883
        }]

    def test_search_without_query_returns_first_page(self, client):
        response = client.get("/stations/search")
        assert response.status_code == 200
        assert len(response.json()) == 15

    def test_search_when_catalog_unreachable(self, client, catalog_fetcher):
        """Fetch failure with no cache gives an empty list, not an error."""
        catalog_fetcher.error = NetworkError("timed out")
        response = client.get("/stations/search", params={"q": "san"})
        assert response.status_code == 200
        assert response.json() == []

    def test_nearest(self, client):
        response = client.get("/stations/nearest", params={"lat": 32.75, "lng": -117.2})
        assert response.status_code == 200
        data = response.json()
        assert len(data) == 10
        assert data[0]["station"]["id"] == "9410170"
        distances = [d["distance_km"] for d in data]
        assert distances == sorted(distances)

    def test_nearest_validates_coordinates(self, client):
        response = client.get("/stations/nearest", params={"lat": 123, "lng": -117.2})
        assert response.status_code == 422

    def test_selection_round_trip(self, client):
        assert client.get("/stations/selection").status_code == 404

        response = client.put("/stations/selection", json={"station_id": "9410230"})
        assert response.status_code == 200
        assert response.json() == {"name": "La Jolla, CA", "lat": 32.8669, "lng": -117.2571, "stationId": "9410230"}

        response = client.get("/stations/selection")
        assert response.status_code == 200
        assert response.json()["stationId"] == "9410230"

    def test_select_unknown_station(self, client):
        response = client.put("/stations/selection", json={"station_id": "0000000"})
        assert response.status_code == 404

    def test_refresh(self, client, catalog_fetcher):
        response = client.post("/stations/refresh")
        assert response.status_code == 200
        assert response.json()["stations"] == 15
        assert catalog_fetcher.calls == 1

    def test_refresh_failure_maps_to_503(self, client, catalog_fetcher):
        catalog_fetcher.error = NetworkError("timed out")
        response = client.post("/stations/refresh")
        assert response.status_code == 503
        assert "timed out" in response.json()["detail"]


class TestTideEndpoints:
    """Tests for /tides routes."""

    def test_station_tides(self, client):
        response = client.get("/tides/stations/9413450")
        assert response.status_code == 200
        data = response.json()
        assert data["trend"] == "falling"
        assert data["next_low"]["height"] == 0.2
        assert data["last_high"]["height"] == 5.1
        assert len(data["chart_series"]) == 6
        assert data["chart_series"][0]["kind"] in ("high", "low")

    def test_station_height(self, client):
        response = client.get(
            "/tides/stations/9413450/height",
            params={"at": "2025-06-01T18:00:00Z"}
        )
        assert response.status_code == 200
        assert response.json()["height"] == pytest.approx(2.5)

    def test_unavailable_predictions(self, client, prediction_fetcher):
        prediction_fetcher.error = DataUnavailable("No Predictions data was found")
        response = client.get("/tides/stations/8443970")
        assert response.status_code == 404

    def test_network_failure(self, client, prediction_fetcher):
        prediction_fetcher.error = NetworkError("Unable to connect to tide service")
        response = client.get("/tides/stations/8443970")
        assert response.status_code == 503

    def test_current_requires_selection(self, client):
        response = client.get("/tides/current")
        assert response.status_code == 422

    def test_current_for_selection(self, client):
        client.put("/stations/selection", json={"station_id": "9413450"})

        response = client.get("/tides/current")
        assert response.status_code == 200
        data = response.json()
        assert data["location_name"] == "Monterey, CA"
        assert len(data["alerts"]) == 2
        assert data["alerts"][0]["title"] == "Low Tide Alert"

        latest = client.get("/tides/latest")
        assert latest.status_code == 200
        assert latest.json() == data
