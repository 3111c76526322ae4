import logging
import re
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional

from config import get_config_value
from errors import InsufficientCoverageError
from models.coverage import CoverageDetail, CoverageVerdict, PlanRequest, TopicCoverage
from models.retrieval import RetrievalResult
from pipelines.retrieval import RetrievalService
from .topics import (
    TOPIC_TERMS,
    build_query_text,
    required_topics_for,
    term_pattern,
    topic_query,
)

logger = logging.getLogger(__name__)

DEFAULT_MIN_SCORE = 0.30
DEFAULT_HANDBOOK_K = 12
DEFAULT_EXAMPLE_K = 4
DEFAULT_PER_TOPIC_K = 3

HANDBOOK_GUIDANCE = "handbook guidance"


def _supports(result: RetrievalResult, patterns: list[re.Pattern]) -> bool:
    text = (result.text or result.snippet).lower()
    label = (result.section_or_figure or "").lower()
    return any(p.search(text) or p.search(label) for p in patterns)


def assess_coverage(
    top_handbook_results: list[RetrievalResult],
    required_topics: Optional[list[str]] = None,
    min_score: float = DEFAULT_MIN_SCORE,
    topic_terms: Mapping[str, Iterable[str]] = TOPIC_TERMS,
    topic_results: Optional[list[RetrievalResult]] = None,
) -> CoverageVerdict:
    """Decide whether the retrieved handbook passages substantiate a request.

    Coverage is insufficient when there are no handbook results, when the
    best handbook score is below ``min_score``, or when a required topic has
    no supporting handbook chunk (matched on whole words in the chunk text
    or section label).

    ``missing`` lists the uncovered topics, preceded by "handbook guidance"
    when the relevance check itself fails. Pure function: no I/O.

    Args:
        top_handbook_results: Handbook results for the request's query. Only
            these decide relevance.
        required_topics: Concept labels the request needs grounding for.
        min_score: Minimum cosine score the best handbook result must reach.
        topic_terms: Phrasings that count as covering each known topic.
        topic_results: Extra handbook results (e.g. from per-topic searches)
            that may support topics but never count toward relevance.

    Returns:
        CoverageVerdict with the decision and the scores behind it.
    """
    handbooks = [r for r in top_handbook_results if r.folder_type == "handbook"]
    top = min(handbooks, key=lambda r: (-r.score, r.id), default=None)

    evidence = {r.id: r for r in handbooks}
    for r in topic_results or []:
        if r.folder_type == "handbook" and (
            r.id not in evidence or r.score > evidence[r.id].score
        ):
            evidence[r.id] = r
    candidates = sorted(evidence.values(), key=lambda r: (-r.score, r.id))

    if top is None:
        relevance_ok = False
        reason = "No handbook results were retrieved"
    elif top.score < min_score:
        relevance_ok = False
        reason = f"Top handbook score {top.score:.4f} is below the minimum {min_score:.2f}"
    else:
        relevance_ok = True
        reason = "Handbook guidance found"

    topics = []
    for topic in required_topics or []:
        terms = (topic, *topic_terms.get(topic.lower(), ()))
        patterns = [term_pattern(term) for term in dict.fromkeys(t.lower() for t in terms)]
        supporting = [r for r in candidates if _supports(r, patterns)]
        topics.append(
            TopicCoverage(
                topic=topic,
                covered=bool(supporting),
                supporting_ids=[r.id for r in supporting],
                best_score=max((r.score for r in supporting), default=None),
            )
        )

    uncovered = [t.topic for t in topics if not t.covered]
    missing = ([] if relevance_ok else [HANDBOOK_GUIDANCE]) + uncovered
    if relevance_ok and uncovered:
        reason = f"No handbook excerpt covers: {', '.join(uncovered)}"

    return CoverageVerdict(
        sufficient=relevance_ok and not uncovered,
        missing=missing,
        coverage_detail=CoverageDetail(
            min_score=min_score,
            top_score=top.score if top else None,
            top_id=top.id if top else None,
            result_count=len(handbooks),
            relevance_ok=relevance_ok,
            reason=reason,
            topics=topics,
        ),
    )


@dataclass(frozen=True)
class GroundingResult:
    query: str
    required_topics: list[str]
    handbooks: list[RetrievalResult]
    examples: list[RetrievalResult]
    verdict: CoverageVerdict


class CoverageGate:
    """Retrieves grounding for a plan request and applies the coverage check.

    Besides the request-wide query, each required topic gets its own small
    handbook search so that topic-specific passages are not crowded out.
    Those hits only count as topic support; relevance is judged on the
    request-wide results alone.
    """

    def __init__(
        self,
        service: RetrievalService,
        min_score: float = DEFAULT_MIN_SCORE,
        handbook_k: int = DEFAULT_HANDBOOK_K,
        example_k: int = DEFAULT_EXAMPLE_K,
        per_topic_k: int = DEFAULT_PER_TOPIC_K,
    ):
        self.service = service
        self.min_score = min_score
        self.handbook_k = handbook_k
        self.example_k = example_k
        self.per_topic_k = per_topic_k

    @classmethod
    def from_config(
        cls, config: dict[str, Any], service: RetrievalService
    ) -> "CoverageGate":
        return cls(
            service=service,
            min_score=get_config_value(config, "coverage.min_score", DEFAULT_MIN_SCORE),
            handbook_k=get_config_value(config, "coverage.handbook_k", DEFAULT_HANDBOOK_K),
            example_k=get_config_value(config, "coverage.example_k", DEFAULT_EXAMPLE_K),
            per_topic_k=get_config_value(
                config, "coverage.per_topic_k", DEFAULT_PER_TOPIC_K
            ),
        )

    def check(self, request: PlanRequest) -> GroundingResult:
        retriever = self.service.ensure_loaded()
        query = build_query_text(request)
        topics = required_topics_for(request)

        vector = retriever.embed_query(query)
        request_hits = retriever.search_by_vector(vector, self.handbook_k, "handbook")
        topic_hits: list[RetrievalResult] = []
        if self.per_topic_k > 0:
            for topic in topics:
                topic_hits.extend(
                    retriever.search(topic_query(topic), self.per_topic_k, "handbook")
                )
        examples = retriever.search_by_vector(vector, self.example_k, "example")

        verdict = assess_coverage(
            request_hits, topics, self.min_score, topic_results=topic_hits
        )
        merged: dict[str, RetrievalResult] = {}
        for r in request_hits + topic_hits:
            if r.id not in merged or r.score > merged[r.id].score:
                merged[r.id] = r
        handbooks = sorted(merged.values(), key=lambda r: (-r.score, r.id))
        logger.info(
            f"Coverage check: sufficient={verdict.sufficient} "
            f"handbooks={len(handbooks)} examples={len(examples)} "
            f"missing={verdict.missing}"
        )
        return GroundingResult(
            query=query,
            required_topics=topics,
            handbooks=handbooks,
            examples=examples,
            verdict=verdict,
        )

    def require(self, request: PlanRequest) -> GroundingResult:
        """Like ``check``, but raise InsufficientCoverageError on a negative verdict."""
        result = self.check(request)
        if not result.verdict.sufficient:
            raise InsufficientCoverageError(result.verdict)
        return result
