"""
Unit tests for gigtrip/api/models.py
"""
import pytest

from gigtrip.api.models import (
    ChatSession,
    Event,
    Itinerary,
    Location,
    Place,
    PlaceCategory,
    classify_place_types,
)


class TestClassification:

    @pytest.mark.parametrize("types,category", [
        (["lodging"], PlaceCategory.HOTEL),
        (["restaurant", "lodging"], PlaceCategory.HOTEL),
        (["cafe", "food"], PlaceCategory.RESTAURANT),
        (["museum", "tourist_attraction"], PlaceCategory.ACTIVITY),
        ([], PlaceCategory.ACTIVITY),
        (None, PlaceCategory.ACTIVITY),
    ])
    def test_lodging_wins(self, types, category):
        assert classify_place_types(types) == category

    def test_category_fixed_on_ingest(self):
        place = Place(id="p", name="p", location=Location(0, 0), types=["bar"])
        assert place.category == PlaceCategory.RESTAURANT
        assert Place.from_dict(place.to_dict()).category == PlaceCategory.RESTAURANT


class TestSerialisation:

    def test_event_camel_case(self, event):
        data = event.to_dict()
        assert data["priceRange"] == "Price TBD"
        assert data["location"] == {"lat": 34.0, "lng": -118.0}
        assert Event.from_dict(data) == event

    def test_place_optional_fields_omitted(self):
        data = Place(id="p", name="p", location=Location(0, 0)).to_dict()
        assert "priceLevel" not in data
        assert "openNow" not in data

    def test_invalid_location(self):
        assert Location.from_dict({"lat": "x", "lng": 1}) is None
        assert Location.from_dict(None) is None

    def test_chat_record_round_trip(self, event, hotel):
        session = ChatSession(id="c1", title="Trip", selected_event=event,
                              itinerary=Itinerary(event=event, places=[hotel]))
        record = {"id": "c1", "title": "Trip", "data": session.to_data(), "isPinned": True}
        restored = ChatSession.from_record(record)
        assert restored.itinerary.places[0].id == "h1"
        assert restored.itinerary.places[0].category == PlaceCategory.HOTEL
        assert restored.selected_event == event
        assert restored.is_pinned


class TestItinerary:

    def test_add_place_once(self, hotel):
        itinerary = Itinerary()
        assert itinerary.add_place(hotel)
        assert not itinerary.add_place(hotel)
        assert itinerary.contains("h1")

    def test_latest_hotel(self, hotel, restaurant):
        second = Place(id="h2", name="Later Hotel", location=Location(1, 1), types=["hotel"])
        itinerary = Itinerary(places=[hotel, restaurant, second])
        assert itinerary.latest_hotel() is second
        assert Itinerary(places=[restaurant]).latest_hotel() is None
