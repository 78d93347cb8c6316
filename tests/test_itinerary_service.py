"""
Unit tests for gigtrip/api/services/itinerary_service.py
"""
import pytest

from gigtrip.api.models import ChatSession, ScheduleItem
from gigtrip.api.services.itinerary_service import ItineraryService, normalize_time_range


class TestNormalizeTimeRange:

    @pytest.mark.parametrize("raw,expected", [
        ("19:00 - 20:30", "7:00 PM - 8:30 PM"),
        ("7:00 PM - 8:30 PM", "7:00 PM - 8:30 PM"),
        ("7pm to 9pm", "7:00 PM - 9:00 PM"),
        ("6:30 - 8:00 PM", "6:30 PM - 8:00 PM"),
        ("00:15 - 01:00", "12:15 AM - 1:00 AM"),
        ("11:00 - 1:00 PM", "11:00 AM - 1:00 PM"),
        ("11:30 - 12:30 PM", "11:30 AM - 12:30 PM"),
        ("10:00 PM - 1:00 AM", "10:00 PM - 1:00 AM"),
    ])
    def test_readable_ranges(self, raw, expected):
        assert normalize_time_range(raw) == expected

    @pytest.mark.parametrize("raw", ["evening", "19:00", "25:00 - 26:00", "", None, 1900])
    def test_unreadable(self, raw):
        assert normalize_time_range(raw) is None


class TestItineraryChanges:

    def test_confirm_event_sets_title_once(self, event):
        session = ChatSession(id="c1")
        message = ItineraryService.confirm_event(session, event)
        assert session.title == event.name
        assert session.itinerary.event == event
        assert message.startswith("I want to attend: Taylor Swift")

        session.title = "My trip"
        ItineraryService.confirm_event(session, event)
        assert session.title == "My trip"

    def test_confirm_place_is_idempotent(self, hotel):
        session = ChatSession(id="c1")
        assert ItineraryService.confirm_place(session, hotel)
        assert not ItineraryService.confirm_place(session, hotel)
        assert session.itinerary.places == [hotel]

    def test_remove(self, event, hotel):
        session = ChatSession(id="c1")
        ItineraryService.confirm_event(session, event)
        ItineraryService.confirm_place(session, hotel)
        assert ItineraryService.remove_from_itinerary(session, "h1")
        assert ItineraryService.remove_from_itinerary(session, "ev1")
        assert session.itinerary.is_empty()
        assert not ItineraryService.remove_from_itinerary(session, "missing")


class TestScheduleRequest:

    def test_empty_itinerary_rejected(self):
        with pytest.raises(ValueError):
            ItineraryService.build_schedule_request(ChatSession(id="c1"))

    def test_lists_everything(self, event, hotel, restaurant):
        session = ChatSession(id="c1")
        ItineraryService.confirm_event(session, event)
        ItineraryService.confirm_place(session, hotel)
        ItineraryService.confirm_place(session, restaurant)
        request = ItineraryService.build_schedule_request(session)
        assert "SoFi Stadium" in request
        assert "Hotel: Stadium Inn" in request
        assert "Restaurant: Taco Spot" in request
        assert "```json" in request


class TestParseSchedule:

    REPLY = (
        "Here's your day!\n\n"
        "```json\n"
        '[{"time": "17:00 - 18:00", "activity": "Dinner", "description": "Taco Spot"},\n'
        ' {"time": "7:30 PM - 10:30 PM", "activity": "Concert", "description": "SoFi Stadium"}]\n'
        "```"
    )

    def test_fenced_block(self):
        items = ItineraryService.parse_schedule(self.REPLY)
        assert items == [
            ScheduleItem(time="5:00 PM - 6:00 PM", activity="Dinner", description="Taco Spot"),
            ScheduleItem(time="7:30 PM - 10:30 PM", activity="Concert", description="SoFi Stadium"),
        ]

    def test_uses_last_block(self):
        text = '```json\n[{"time": "bad"}]\n```\nFixed:\n' + self.REPLY
        assert len(ItineraryService.parse_schedule(text)) == 2

    def test_trailing_bare_array(self):
        text = 'Plan: [{"time": "9:00 AM - 10:00 AM", "activity": "Breakfast", "description": "Cafe"}]'
        assert ItineraryService.parse_schedule(text)[0].activity == "Breakfast"

    @pytest.mark.parametrize("text", [
        "No schedule here.",
        "```json\n{not json}\n```",
        '```json\n[{"time": "whenever", "activity": "Dinner", "description": "x"}]\n```',
        '```json\n[{"time": "7:00 PM - 8:00 PM", "activity": "Dinner"}]\n```',
        '```json\n[]\n```',
    ])
    def test_invalid_blocks(self, text):
        assert ItineraryService.parse_schedule(text) is None

    def test_strip_block(self):
        assert ItineraryService.strip_schedule_block(self.REPLY) == "Here's your day!"


class TestWelcomeBack:

    def test_with_event_and_places(self, event, hotel):
        session = ChatSession(id="c1")
        ItineraryService.confirm_event(session, event)
        ItineraryService.confirm_place(session, hotel)
        message = ItineraryService.format_welcome_back(session)
        assert "Taylor Swift" in message
        assert "1 place" in message

    def test_without_event(self):
        assert ItineraryService.format_welcome_back(ChatSession(id="c1")).startswith("Welcome back")
