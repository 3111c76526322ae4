"""Mapping from a plan request to a query text and the topics it must be grounded on."""

import re
from functools import lru_cache

from models.coverage import PlanRequest

SIGN_SPACING = "sign spacing"
TAPER_LENGTH = "taper length"
BUFFER_SPACE = "buffer space"
CHANNELIZING_DEVICES = "channelizing devices"
FLAGGER = "flagger"

BASE_TOPICS = (SIGN_SPACING, TAPER_LENGTH, BUFFER_SPACE, CHANNELIZING_DEVICES)

# Handbook phrasings that count as covering each topic.
TOPIC_TERMS: dict[str, tuple[str, ...]] = {
    SIGN_SPACING: (
        "sign spacing",
        "advance warning area",
        "advance warning",
        "warning signs",
        "spacing",
        "distance a",
        "distance b",
        "distance c",
        "table 6c-2",
        "table 6c",
        "table 2-4",
    ),
    TAPER_LENGTH: (
        "taper length",
        "taper",
        "merging taper",
        "shifting taper",
        "shoulder taper",
        "transition area",
        "taper formula",
    ),
    BUFFER_SPACE: (
        "buffer space",
        "buffer",
        "longitudinal buffer",
        "stopping distance",
        "braking distance",
        "activity area",
        "work space",
    ),
    CHANNELIZING_DEVICES: (
        "channelizing devices",
        "channelizing",
        "cones",
        "drums",
        "barricades",
        "arrow board",
        "arrow panel",
        "delineators",
        "traffic control devices",
    ),
    FLAGGER: (
        "flagger",
        "flaggers",
        "flagging",
        "stop/slow paddle",
        "one-lane, two-way",
    ),
}


def speed_band(posted_speed_mph: float) -> str:
    if posted_speed_mph <= 30:
        return "low speed"
    if posted_speed_mph <= 45:
        return "medium speed"
    return "high speed"


def build_query_text(request: PlanRequest) -> str:
    """Query text describing the work zone, for the handbook/example search."""
    words = [
        request.road_type.replace("_", " "),
        request.work_type.replace("_", " "),
        f"{request.posted_speed_mph:g} mph",
        speed_band(request.posted_speed_mph),
    ]
    if request.is_night:
        words.extend(["night work", "nighttime"])
    else:
        words.append("daytime")
    if request.notes and request.notes.strip():
        words.append(request.notes.strip())
    return " ".join(words).lower()


def required_topics_for(request: PlanRequest) -> list[str]:
    """Topics every plan must cite handbook guidance for."""
    topics = list(BASE_TOPICS)
    if request.work_type == "one_lane_two_way_flaggers":
        topics.append(FLAGGER)
    return topics


def topic_query(topic: str) -> str:
    """Search text for a targeted per-topic handbook query."""
    terms = TOPIC_TERMS.get(topic.lower(), ())
    return " ".join(dict.fromkeys((topic.lower(), *terms[:4])))


@lru_cache(maxsize=None)
def term_pattern(term: str) -> re.Pattern:
    """Whole-word pattern for a coverage term, tolerating a plural ending.

    A term ending in a single letter ("distance a") must match exactly, so
    "distance and" or "distance between" do not count.
    """
    term = term.lower().strip()
    if len(term.split()[-1]) > 1:
        return re.compile(r"\b" + re.escape(term) + r"(?:s|es)?\b")
    return re.compile(r"\b" + re.escape(term) + r"\b")
