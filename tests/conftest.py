import os
import sys

import pytest

# Project root, so `gigtrip` imports without an install
_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if _root not in sys.path:
    sys.path.insert(0, _root)

from gigtrip.api.database import ChatStore  # noqa: E402
from gigtrip.api.models import Event, Location, Place  # noqa: E402


# ---------------------------------------------------------------------------
# Domain fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def event():
    return Event(
        id="ev1",
        name="Taylor Swift | The Eras Tour",
        date="2026-08-01",
        time="19:30:00",
        venue="SoFi Stadium",
        city="Inglewood",
        state="CA",
        location=Location(lat=34.0, lng=-118.0),
    )


@pytest.fixture
def tbd_event():
    """An event whose venue has no coordinates."""
    return Event(id="ev-tbd", name="Mystery Show", venue="Venue TBD")


@pytest.fixture
def hotel():
    return Place(
        id="h1",
        name="Stadium Inn",
        location=Location(lat=34.01, lng=-118.01),
        address="1 Stadium Way",
        rating=4.2,
        price_level=1,
        types=["lodging", "point_of_interest"],
    )


@pytest.fixture
def restaurant():
    return Place(
        id="r1",
        name="Taco Spot",
        location=Location(lat=34.02, lng=-118.02),
        rating=4.6,
        price_level=1,
        types=["restaurant", "food"],
    )


@pytest.fixture
def attraction():
    return Place(
        id="a1",
        name="Pier Walk",
        location=Location(lat=34.03, lng=-118.03),
        rating=4.8,
        types=["tourist_attraction"],
    )


@pytest.fixture
def store(tmp_path):
    return ChatStore(f"sqlite:///{tmp_path / 'chats.db'}")


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------

class ScriptedLLM:
    """Stand-in for the streaming LLM: one scripted reply (list of chunks) per call."""

    def __init__(self, *replies):
        self.replies = list(replies)
        self.calls = []

    def queue(self, *chunks):
        self.replies.append(list(chunks))

    def __call__(self, history):
        self.calls.append([dict(m) for m in history])
        chunks = self.replies.pop(0) if self.replies else ["Okay."]
        for chunk in chunks:
            if isinstance(chunk, Exception):
                raise chunk
            yield chunk


class DeferredSpawn:
    """Collects background tasks so a test decides when (and in which order) they run."""

    def __init__(self):
        self.tasks = []

    def __call__(self, fn, *args, **kwargs):
        self.tasks.append((fn, args, kwargs))

    def run_all(self):
        while self.tasks:
            fn, args, kwargs = self.tasks.pop(0)
            fn(*args, **kwargs)

    def run(self, index):
        fn, args, kwargs = self.tasks.pop(index)
        fn(*args, **kwargs)


@pytest.fixture
def llm():
    return ScriptedLLM()


@pytest.fixture
def deferred_spawn():
    return DeferredSpawn()
