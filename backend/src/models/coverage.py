"""Coverage gate models."""

from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

RoadType = Literal["2_lane_undivided", "multilane_divided", "intersection"]
WorkType = Literal["shoulder_work", "lane_closure", "one_lane_two_way_flaggers"]


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PlanRequest(_CamelModel):
    """The fields of a plan-drafting request that drive retrieval."""

    road_type: RoadType
    posted_speed_mph: float = Field(gt=0)
    work_type: WorkType
    work_length_ft: float = Field(ge=0)
    is_night: bool = False
    notes: Optional[str] = None


class TopicCoverage(_CamelModel):
    topic: str
    covered: bool
    supporting_ids: list[str] = Field(default_factory=list)
    best_score: Optional[float] = None


class CoverageDetail(_CamelModel):
    min_score: float
    top_score: Optional[float] = None
    top_id: Optional[str] = None
    result_count: int
    relevance_ok: bool
    reason: str
    topics: list[TopicCoverage] = Field(default_factory=list)


class CoverageVerdict(_CamelModel):
    """Outcome of the coverage gate.

    ``missing`` names what could not be substantiated; ``coverage_detail``
    carries the scores behind the decision so callers can explain it.
    """

    sufficient: bool
    missing: list[str] = Field(default_factory=list)
    coverage_detail: CoverageDetail

    def to_response(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)
