"""Bracketed directives embedded in assistant text.

The model steers the app by writing tokens such as ``[SEARCH_EVENT: Taylor
Swift]`` into its reply.  A :class:`DirectiveScanner` is fed the cumulative
text of one streamed response on every chunk and reports each directive kind
at most once, so a token split across chunk boundaries still fires exactly
once after its closing bracket arrives.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Set

logger = logging.getLogger(__name__)


class DirectiveKind(str, Enum):
    SEARCH_EVENT = "SEARCH_EVENT"
    FIND_PLACES = "FIND_PLACES"
    ASK_HOTELS = "ASK_HOTELS"
    CONFIRM_EVENT = "CONFIRM_EVENT"


PLACE_TYPES = ("hotel", "restaurant")
BUDGETS = ("cheap", "moderate", "expensive")

DEFAULT_PLACE_TYPE = "restaurant"
DEFAULT_BUDGET = "moderate"
DEFAULT_MIN_RATING = 0.0
DEFAULT_RADIUS = 1500

_SEARCH_EVENT_RE = re.compile(r"\[\s*SEARCH_EVENT\s*:\s*([^\]]*)\]", re.IGNORECASE)
_FIND_PLACES_RE = re.compile(r"\[\s*FIND_PLACES\s*:?\s*([^\]]*)\]", re.IGNORECASE)
_ASK_HOTELS_RE = re.compile(r"\[\s*ASK_HOTELS\s*\]", re.IGNORECASE)
_CONFIRM_EVENT_RE = re.compile(r"\[\s*CONFIRM_EVENT\s*\]", re.IGNORECASE)

_ALL_DIRECTIVES_RE = re.compile(
    r"\[\s*(?:SEARCH_EVENT\s*:[^\]]*|FIND_PLACES\s*:?[^\]]*|ASK_HOTELS\s*|CONFIRM_EVENT\s*)\]",
    re.IGNORECASE,
)
# unterminated "[NAME..." at the very end of a streaming reply
_TRAILING_OPEN_RE = re.compile(r"\[\s*([A-Za-z_]*)([^\[\]]*)$")


@dataclass(frozen=True)
class PlaceQuery:
    """Parameters of a ``FIND_PLACES`` directive."""

    type: str = DEFAULT_PLACE_TYPE
    budget: str = DEFAULT_BUDGET
    rating: float = DEFAULT_MIN_RATING
    radius: int = DEFAULT_RADIUS


@dataclass(frozen=True)
class Directive:
    kind: DirectiveKind
    keyword: Optional[str] = None
    query: Optional[PlaceQuery] = None


def parse_place_query(params: str) -> PlaceQuery:
    """Parse ``type=hotel | budget=cheap | rating=4 | radius=800``.

    Unknown keys are ignored and unusable values fall back to the defaults.
    """
    values = {}
    for part in (params or "").split("|"):
        if "=" not in part:
            continue
        key, _, value = part.partition("=")
        values[key.strip().lower()] = value.strip().lower()

    place_type = values.get("type", DEFAULT_PLACE_TYPE)
    if place_type not in PLACE_TYPES:
        logger.debug("Unknown place type %r, using %s", place_type, DEFAULT_PLACE_TYPE)
        place_type = DEFAULT_PLACE_TYPE

    budget = values.get("budget", DEFAULT_BUDGET)
    if budget not in BUDGETS:
        budget = DEFAULT_BUDGET

    try:
        rating = float(values.get("rating", DEFAULT_MIN_RATING))
    except ValueError:
        rating = DEFAULT_MIN_RATING
    rating = min(max(rating, 0.0), 5.0)

    try:
        radius = int(float(values.get("radius", DEFAULT_RADIUS)))
    except ValueError:
        radius = DEFAULT_RADIUS
    if radius <= 0:
        radius = DEFAULT_RADIUS

    return PlaceQuery(type=place_type, budget=budget, rating=rating, radius=radius)


def find_directives(text: str) -> List[Directive]:
    """Return the first complete directive of each kind found in ``text``."""
    found = []

    match = _SEARCH_EVENT_RE.search(text)
    if match and match.group(1).strip():
        found.append(Directive(DirectiveKind.SEARCH_EVENT, keyword=match.group(1).strip()))

    match = _FIND_PLACES_RE.search(text)
    if match:
        found.append(Directive(DirectiveKind.FIND_PLACES, query=parse_place_query(match.group(1))))

    if _ASK_HOTELS_RE.search(text):
        found.append(Directive(DirectiveKind.ASK_HOTELS))

    if _CONFIRM_EVENT_RE.search(text):
        found.append(Directive(DirectiveKind.CONFIRM_EVENT))

    return found


def _is_directive_prefix(name: str) -> bool:
    name = name.upper()
    return any(kind.value.startswith(name) or name.startswith(kind.value) for kind in DirectiveKind)


def clean_text(text: str, streaming: bool = False) -> str:
    """Remove every directive from ``text`` for display.

    With ``streaming`` set, an unterminated directive at the very end is
    hidden as well, since its closing bracket may still be on the way.
    """
    cleaned = _ALL_DIRECTIVES_RE.sub("", text or "")
    if streaming:
        match = _TRAILING_OPEN_RE.search(cleaned)
        if match and _is_directive_prefix(match.group(1)):
            cleaned = cleaned[:match.start()]
    # collapse blank lines left behind by a directive on its own line
    cleaned = re.sub(r"\n{3,}", "\n\n", cleaned)
    return cleaned.strip()


@dataclass
class ScanResult:
    directives: List[Directive]
    display: str


class DirectiveScanner:
    """Incremental scanner for one assistant response."""

    def __init__(self):
        self._fired: Set[DirectiveKind] = set()

    @property
    def fired(self) -> Set[DirectiveKind]:
        return set(self._fired)

    def scan(self, cumulative_text: str, streaming: bool = True) -> ScanResult:
        """Scan the text received so far and return only newly fired directives."""
        new = []
        for directive in find_directives(cumulative_text):
            if directive.kind in self._fired:
                continue
            self._fired.add(directive.kind)
            logger.info("Directive fired: %s", directive.kind.value)
            new.append(directive)
        return ScanResult(directives=new, display=clean_text(cumulative_text, streaming=streaming))
