from __future__ import annotations

import json
import logging
import math
import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field, model_validator

from app.pipeline.errors import StageParseError
from app.pipeline.scoring import DEFAULT_SUB_SCORE, MAX_SUB_SCORE, MIN_SUB_SCORE, ScoreBundle

logger = logging.getLogger(__name__)

_CODE_BLOCK_RE = re.compile(r"```(?:json)?\s*(\{[\s\S]*?\})\s*```")


def _extract_json_candidate(text: str) -> str | None:
    match = _CODE_BLOCK_RE.search(text)
    if match:
        return match.group(1)
    first_brace = text.find("{")
    last_brace = text.rfind("}")
    if first_brace != -1 and last_brace > first_brace:
        return text[first_brace : last_brace + 1]
    return None


def parse_json_object(stage: str, raw_text: str | None) -> dict[str, Any]:
    """Parse a provider response into a JSON object or raise ``StageParseError``."""
    text = (raw_text or "").strip()
    if not text:
        raise StageParseError(stage, "empty response")

    try:
        parsed = json.loads(text)
    except json.JSONDecodeError as exc:
        candidate = _extract_json_candidate(text)
        if candidate is None:
            raise StageParseError(stage, str(exc)) from exc
        try:
            parsed = json.loads(candidate)
        except json.JSONDecodeError as inner:
            raise StageParseError(stage, str(inner)) from inner

    if not isinstance(parsed, dict):
        raise StageParseError(stage, f"expected a JSON object, got {type(parsed).__name__}")
    return parsed


def coerce_score(value: Any) -> int | None:
    """Return ``value`` as an int sub-score, or None when it is not a usable score."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        number = Decimal(value)
    elif isinstance(value, float):
        if not math.isfinite(value):
            return None
        number = Decimal(str(value))
    elif isinstance(value, str):
        try:
            number = Decimal(value.strip())
        except InvalidOperation:
            return None
        if not number.is_finite():
            return None
    else:
        return None

    half = Decimal("0.5")
    if number < MIN_SUB_SCORE - half or number >= MAX_SUB_SCORE + half:
        return None
    return int(number.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def coerce_text(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def coerce_text_list(value: Any) -> list[str] | None:
    if not isinstance(value, list):
        return None
    return [item.strip() for item in value if isinstance(item, str) and item.strip()]


class StageResult(BaseModel):
    """Validated output of one agent stage.

    Subclasses declare which keys are scores, free text or text lists; the
    single ``_apply_defaults`` step below drops unknown keys and replaces any
    absent or invalid value with its default (50 for scores, empty otherwise).
    """

    model_config = ConfigDict(frozen=True)

    stage_name: ClassVar[str] = ""
    score_fields: ClassVar[tuple[str, ...]] = ()
    text_fields: ClassVar[tuple[str, ...]] = ()
    list_fields: ClassVar[tuple[str, ...]] = ()
    list_limits: ClassVar[dict[str, int]] = {}

    raw_provider_text: str = ""
    defaulted_fields: tuple[str, ...] = ()

    @model_validator(mode="before")
    @classmethod
    def _apply_defaults(cls, data: Any) -> dict[str, Any]:
        payload = data if isinstance(data, dict) else {}
        values: dict[str, Any] = {"raw_provider_text": payload.get("raw_provider_text", "")}
        defaulted: list[str] = []

        for name in cls.score_fields:
            score = coerce_score(payload.get(name))
            if score is None:
                score = DEFAULT_SUB_SCORE
                defaulted.append(name)
            values[name] = score

        for name in cls.text_fields:
            text = coerce_text(payload.get(name))
            if text is None:
                text = ""
                defaulted.append(name)
            values[name] = text

        for name in cls.list_fields:
            items = coerce_text_list(payload.get(name))
            if items is None:
                items = []
                defaulted.append(name)
            limit = cls.list_limits.get(name)
            if limit is not None:
                items = items[:limit]
            values[name] = items

        values["defaulted_fields"] = tuple(defaulted)
        return values

    @classmethod
    def from_provider_text(cls, raw_text: str | None):
        payload = parse_json_object(cls.stage_name, raw_text)
        result = cls.model_validate({**payload, "raw_provider_text": raw_text or ""})
        if result.defaulted_fields:
            logger.debug(
                "stage_fields_defaulted stage=%s fields=%s",
                cls.stage_name,
                ",".join(result.defaulted_fields),
            )
        return result

    @property
    def structured_fields(self) -> dict[str, Any]:
        names = (*self.score_fields, *self.text_fields, *self.list_fields)
        return {name: getattr(self, name) for name in names}


class ExtractorResult(StageResult):
    stage_name: ClassVar[str] = "extractor"
    score_fields: ClassVar[tuple[str, ...]] = ("vigor_score",)
    text_fields: ClassVar[tuple[str, ...]] = ("structured_profile",)

    structured_profile: str = ""
    vigor_score: int = DEFAULT_SUB_SCORE


class OracleResult(StageResult):
    stage_name: ClassVar[str] = "oracle"
    score_fields: ClassVar[tuple[str, ...]] = ("immunity_score",)
    text_fields: ClassVar[tuple[str, ...]] = ("research_insights",)

    research_insights: str = ""
    immunity_score: int = DEFAULT_SUB_SCORE


class JudgeResult(StageResult):
    stage_name: ClassVar[str] = "judge"
    score_fields: ClassVar[tuple[str, ...]] = (
        "domain_depth",
        "knowledge_width",
        "domain_variance",
        "experience_context",
    )

    domain_depth: int = DEFAULT_SUB_SCORE
    knowledge_width: int = DEFAULT_SUB_SCORE
    domain_variance: int = DEFAULT_SUB_SCORE
    experience_context: int = DEFAULT_SUB_SCORE


QUEST_COUNT = 3


class MentorResult(StageResult):
    stage_name: ClassVar[str] = "mentor"
    list_fields: ClassVar[tuple[str, ...]] = ("cyber_roadmap", "level_up_quests")
    list_limits: ClassVar[dict[str, int]] = {"level_up_quests": QUEST_COUNT}

    cyber_roadmap: list[str] = Field(default_factory=list)
    level_up_quests: list[str] = Field(default_factory=list)


def build_score_bundle(extractor: ExtractorResult, oracle: OracleResult, judge: JudgeResult) -> ScoreBundle:
    return ScoreBundle(
        vigor=extractor.vigor_score,
        immunity=oracle.immunity_score,
        depth=judge.domain_depth,
        width=judge.knowledge_width,
        variance=judge.domain_variance,
        experience_context=judge.experience_context,
    )
