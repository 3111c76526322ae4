from .coverage import (
    DEFAULT_MIN_SCORE,
    HANDBOOK_GUIDANCE,
    CoverageGate,
    GroundingResult,
    assess_coverage,
)
from .topics import (
    BASE_TOPICS,
    TOPIC_TERMS,
    build_query_text,
    required_topics_for,
    term_pattern,
    topic_query,
)

__all__ = [
    "DEFAULT_MIN_SCORE",
    "HANDBOOK_GUIDANCE",
    "CoverageGate",
    "GroundingResult",
    "assess_coverage",
    "BASE_TOPICS",
    "TOPIC_TERMS",
    "term_pattern",
    "build_query_text",
    "required_topics_for",
    "topic_query",
]
