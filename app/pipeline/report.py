from __future__ import annotations

from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field

from app.pipeline.scoring import ScoreBundle

if TYPE_CHECKING:
    from app.pipeline.chain import ChainResult


class FinalReport(BaseModel):
    """The cached unit and the ``/v1/analyze`` response body."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    final_score: float = Field(alias="finalScore", ge=0.0, le=10.0, multiple_of=0.5)
    score_bundle: ScoreBundle = Field(alias="baseScores")
    insights: str = ""
    roadmap: list[str] = Field(default_factory=list)
    quests: list[str] = Field(default_factory=list, max_length=3)

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)

    def to_cache_json(self) -> str:
        return self.model_dump_json(by_alias=True)

    @classmethod
    def from_cache_json(cls, payload: str) -> "FinalReport":
        return cls.model_validate_json(payload)


def assemble_report(chain: "ChainResult") -> FinalReport:
    return FinalReport(
        final_score=chain.final_score,
        score_bundle=chain.score_bundle,
        insights=chain.oracle.research_insights,
        roadmap=list(chain.mentor.cyber_roadmap),
        quests=list(chain.mentor.level_up_quests),
    )
