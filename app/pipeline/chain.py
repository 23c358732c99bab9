from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from dataclasses import dataclass
from typing import Awaitable, TypeVar

from app.ai.types import ModelClient
from app.pipeline import prompts
from app.pipeline.errors import AnalysisCancelledError
from app.pipeline.profile_source import ProfileInput
from app.pipeline.scoring import ScoreBundle, aggregate_bundle
from app.pipeline.stages import (
    ExtractorResult,
    JudgeResult,
    MentorResult,
    OracleResult,
    StageResult,
    build_score_bundle,
)

logger = logging.getLogger(__name__)

ResultT = TypeVar("ResultT", bound=StageResult)


@dataclass(frozen=True)
class ChainResult:
    extractor: ExtractorResult
    oracle: OracleResult
    judge: JudgeResult
    mentor: MentorResult
    score_bundle: ScoreBundle
    final_score: float


def _raise_if_cancelled(cancel_event: asyncio.Event | None, next_stage: str) -> None:
    if cancel_event is not None and cancel_event.is_set():
        logger.info("agent_chain_cancelled before_stage=%s", next_stage)
        raise AnalysisCancelledError(f"Analysis was cancelled before the {next_stage} stage.")


async def _call_cancellable(call: Awaitable[str], cancel_event: asyncio.Event | None, stage: str) -> str:
    """Await a provider call, abandoning it as soon as ``cancel_event`` is set."""
    if cancel_event is None:
        return await call

    call_task = asyncio.ensure_future(call)
    cancel_task = asyncio.ensure_future(cancel_event.wait())
    try:
        await asyncio.wait({call_task, cancel_task}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        cancel_task.cancel()
        if not call_task.done():
            call_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await call_task

    if call_task.cancelled():
        logger.info("agent_chain_cancelled during_stage=%s", stage)
        raise AnalysisCancelledError(f"Analysis was cancelled during the {stage} stage.")
    return call_task.result()


async def _run_stage(
    result_cls: type[ResultT],
    client: ModelClient,
    system_prompt: str,
    user_prompt: str,
    temperature: float,
    cancel_event: asyncio.Event | None,
) -> ResultT:
    stage = result_cls.stage_name
    _raise_if_cancelled(cancel_event, stage)
    started = time.perf_counter()
    raw_text = await _call_cancellable(
        client.generate(system_prompt, user_prompt, temperature),
        cancel_event,
        stage,
    )
    result = result_cls.from_provider_text(raw_text)
    logger.info(
        "agent_stage_completed stage=%s model=%s latency_ms=%s defaulted=%s",
        stage,
        getattr(client, "model", "unknown"),
        int((time.perf_counter() - started) * 1000),
        len(result.defaulted_fields),
    )
    return result


async def run_extractor(
    client: ModelClient,
    profile: ProfileInput,
    cancel_event: asyncio.Event | None = None,
) -> ExtractorResult:
    return await _run_stage(
        ExtractorResult,
        client,
        prompts.EXTRACTOR_SYSTEM_PROMPT,
        prompts.extractor_user_prompt(profile),
        prompts.EXTRACTOR_TEMPERATURE,
        cancel_event,
    )


async def run_oracle(
    client: ModelClient,
    extractor: ExtractorResult,
    cancel_event: asyncio.Event | None = None,
) -> OracleResult:
    return await _run_stage(
        OracleResult,
        client,
        prompts.ORACLE_SYSTEM_PROMPT,
        prompts.oracle_user_prompt(extractor),
        prompts.ORACLE_TEMPERATURE,
        cancel_event,
    )


async def run_judge(
    client: ModelClient,
    extractor: ExtractorResult,
    oracle: OracleResult,
    cancel_event: asyncio.Event | None = None,
) -> JudgeResult:
    return await _run_stage(
        JudgeResult,
        client,
        prompts.JUDGE_SYSTEM_PROMPT,
        prompts.judge_user_prompt(extractor, oracle),
        prompts.JUDGE_TEMPERATURE,
        cancel_event,
    )


async def run_mentor(
    client: ModelClient,
    extractor: ExtractorResult,
    oracle: OracleResult,
    final_score: float,
    cancel_event: asyncio.Event | None = None,
) -> MentorResult:
    return await _run_stage(
        MentorResult,
        client,
        prompts.MENTOR_SYSTEM_PROMPT,
        prompts.mentor_user_prompt(extractor, oracle, final_score),
        prompts.MENTOR_TEMPERATURE,
        cancel_event,
    )


async def run_agent_chain(
    client: ModelClient,
    profile: ProfileInput,
    cancel_event: asyncio.Event | None = None,
) -> ChainResult:
    """Run Extractor -> Oracle -> Judge -> Mentor strictly in order.

    The final score is aggregated from the first three stages before the
    Mentor runs, since the Mentor prompt quotes it.
    """
    extractor = await run_extractor(client, profile, cancel_event)
    oracle = await run_oracle(client, extractor, cancel_event)
    judge = await run_judge(client, extractor, oracle, cancel_event)

    score_bundle = build_score_bundle(extractor, oracle, judge)
    final_score = aggregate_bundle(score_bundle)

    mentor = await run_mentor(client, extractor, oracle, final_score, cancel_event)
    return ChainResult(
        extractor=extractor,
        oracle=oracle,
        judge=judge,
        mentor=mentor,
        score_bundle=score_bundle,
        final_score=final_score,
    )
