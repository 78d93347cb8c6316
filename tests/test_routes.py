"""
Tests for the Flask blueprint in gigtrip/routes/travel.py
"""
import pytest
from flask import Flask
from unittest.mock import MagicMock, patch

from gigtrip.api.services.map_service import MapService
from gigtrip.api.services.search_service import SearchOutcome
from gigtrip.routes.travel import create_travel_blueprint


@pytest.fixture
def search_service():
    return MagicMock()


@pytest.fixture
def client(store, search_service):
    app = Flask(__name__)
    app.secret_key = "test"
    app.register_blueprint(create_travel_blueprint(store=store, search_service=search_service))
    return app.test_client()


@pytest.fixture
def signed_in(client):
    client.post("/travel/api/login")
    return client


class TestSearchRoutes:

    def test_health(self, client):
        assert client.get("/travel/health").get_json() == {"status": "ok", "service": "travel"}

    def test_events_requires_keyword(self, client):
        assert client.get("/travel/api/events").status_code == 400

    def test_events(self, client, search_service, event):
        search_service.search_events.return_value = SearchOutcome(items=[event])
        response = client.get("/travel/api/events?keyword=Taylor")
        assert response.status_code == 200
        assert response.get_json()["events"][0]["venue"] == "SoFi Stadium"

    def test_events_failure(self, client, search_service):
        search_service.search_events.return_value = SearchOutcome(failed=True, error="timeout")
        response = client.get("/travel/api/events?keyword=Taylor")
        assert response.status_code == 502
        assert response.get_json() == {"error": "timeout", "events": []}

    def test_places(self, client, search_service, hotel):
        search_service.search_places.return_value = SearchOutcome(items=[hotel])
        response = client.get("/travel/api/places?lat=34&lng=-118&type=lodging&radius=1600&minRating=4")
        assert response.status_code == 200
        assert response.get_json()["places"][0]["id"] == "h1"
        args, kwargs = search_service.search_places.call_args
        assert args[1:] == ("lodging", 1600)
        assert kwargs["min_rating"] == 4.0

    def test_places_bad_coordinates(self, client):
        assert client.get("/travel/api/places?lat=200&lng=0").status_code == 400

    def test_places_failure(self, client, search_service):
        search_service.search_places.return_value = SearchOutcome(failed=True, error="denied")
        response = client.get("/travel/api/places?lat=34&lng=-118")
        assert response.status_code == 502
        assert response.get_json()["places"] == []

    def test_distance(self, client):
        with patch.object(MapService, "distances_from", return_value=[{"id": "h1"}]) as mock_dist:
            response = client.post("/travel/api/distance", json={
                "origin": {"lat": 34, "lng": -118},
                "destinations": [{"id": "h1", "lat": 34.01, "lng": -118.01}],
            })
        assert response.get_json() == {"distances": [{"id": "h1"}]}
        mock_dist.assert_called_once()

    def test_distance_requires_origin(self, client):
        assert client.post("/travel/api/distance", json={}).status_code == 400

    def test_distance_bad_destination(self, client):
        with patch("gigtrip.api.places._get_client") as mock_client:
            response = client.post("/travel/api/distance", json={
                "origin": {"lat": 34, "lng": -118},
                "destinations": [{"id": "h1"}],
            })
        assert response.status_code == 400
        mock_client.assert_not_called()

    def test_distance_destinations_must_be_list(self, client):
        response = client.post("/travel/api/distance", json={
            "origin": {"lat": 34, "lng": -118}, "destinations": {"id": "h1"}})
        assert response.status_code == 400


class TestChatRoutes:

    def test_anonymous_list_is_empty(self, client, store):
        store.upsert_chat("debug-user-id", "c1", "Trip", {})
        assert client.get("/travel/api/chats").get_json() == {"chats": []}

    def test_anonymous_cannot_read(self, client):
        assert client.get("/travel/api/chats/c1").status_code == 401

    def test_list_get_rename_pin_delete(self, signed_in, store):
        store.upsert_chat("debug-user-id", "c1", "Trip", {"schedule": []})

        chats = signed_in.get("/travel/api/chats").get_json()["chats"]
        assert [c["id"] for c in chats] == ["c1"]

        record = signed_in.get("/travel/api/chats/c1").get_json()
        assert record["title"] == "Trip"

        chats = signed_in.post("/travel/api/chats/c1/rename", json={"title": "Vegas"}).get_json()["chats"]
        assert chats[0]["preview"] == "Vegas"

        chats = signed_in.post("/travel/api/chats/c1/pin").get_json()["chats"]
        assert chats[0]["isPinned"] is True

        assert signed_in.delete("/travel/api/chats/c1").get_json() == {"chats": []}
        assert signed_in.get("/travel/api/chats/c1").status_code == 404

    def test_rename_requires_title(self, signed_in):
        assert signed_in.post("/travel/api/chats/c1/rename", json={"title": " "}).status_code == 400

    def test_logout(self, signed_in):
        signed_in.post("/travel/api/logout")
        assert signed_in.get("/travel/api/chats/c1").status_code == 401
