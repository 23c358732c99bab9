from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_SUB_SCORE = 50
MIN_SUB_SCORE = 1
MAX_SUB_SCORE = 100

MIN_FINAL_SCORE = Decimal("0")
MAX_FINAL_SCORE = Decimal("10")


class ScoreBundle(BaseModel):
    """The six sub-scores feeding the final risk score, each in [1, 100]."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    vigor: int = Field(default=DEFAULT_SUB_SCORE, ge=MIN_SUB_SCORE, le=MAX_SUB_SCORE)
    immunity: int = Field(default=DEFAULT_SUB_SCORE, ge=MIN_SUB_SCORE, le=MAX_SUB_SCORE)
    depth: int = Field(default=DEFAULT_SUB_SCORE, ge=MIN_SUB_SCORE, le=MAX_SUB_SCORE)
    width: int = Field(default=DEFAULT_SUB_SCORE, ge=MIN_SUB_SCORE, le=MAX_SUB_SCORE)
    variance: int = Field(default=DEFAULT_SUB_SCORE, ge=MIN_SUB_SCORE, le=MAX_SUB_SCORE)
    experience_context: int = Field(
        default=DEFAULT_SUB_SCORE,
        ge=MIN_SUB_SCORE,
        le=MAX_SUB_SCORE,
        alias="experience",
    )

    @property
    def total(self) -> int:
        return self.vigor + self.immunity + self.depth + self.width + self.variance + self.experience_context


def aggregate(
    vigor: int,
    immunity: int,
    depth: int,
    width: int,
    variance: int,
    experience_context: int,
) -> float:
    """Invert the summed attributes into a 0-10 automation-risk score.

    ``10 - total / 60`` is rounded to the nearest half step (ties away from
    zero) and only then clamped into [0, 10]. Decimal arithmetic keeps the
    half-step ties exact, e.g. a total of 315 gives 4.75 -> 5.0.
    """
    total = Decimal(vigor + immunity + depth + width + variance + experience_context)
    doubled = Decimal(20) - total / Decimal(30)
    rounded = doubled.quantize(Decimal("1"), rounding=ROUND_HALF_UP) / Decimal(2)
    clamped = max(MIN_FINAL_SCORE, min(MAX_FINAL_SCORE, rounded))
    return float(clamped)


def aggregate_bundle(bundle: ScoreBundle) -> float:
    return aggregate(
        bundle.vigor,
        bundle.immunity,
        bundle.depth,
        bundle.width,
        bundle.variance,
        bundle.experience_context,
    )
