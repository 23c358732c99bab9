from __future__ import annotations

import asyncio
import json
import logging
import time
import uuid
from dataclasses import dataclass
from typing import Callable

import httpx

from app.ai.config import load_ai_config
from app.ai.factory import get_model_client
from app.ai.types import ModelClient
from app.analytics.db import log_analysis_run
from app.core.config import settings
from app.pipeline.cache import CacheStore, cache_key
from app.pipeline.chain import run_agent_chain
from app.pipeline.errors import AnalysisCancelledError, AnalysisError, AnalysisTimeoutError
from app.pipeline.profile_source import Provenance, resolve_profile_input
from app.pipeline.report import FinalReport, assemble_report

logger = logging.getLogger("app.analysis")

ClientFactory = Callable[[str], ModelClient]


@dataclass(frozen=True)
class AnalysisResult:
    report: FinalReport
    cache_key: str
    cache_hit: bool
    provenance: Provenance
    model: str


def _log_run(
    *,
    run_id: str,
    model: str,
    provenance: Provenance,
    cache_hit: bool,
    status: str,
    started: float,
    error_code: str | None = None,
    final_score: float | None = None,
) -> None:
    latency_ms = int((time.perf_counter() - started) * 1000)
    logger.info(
        json.dumps(
            {
                "event": "analysis_run",
                "run_id": run_id,
                "model": model,
                "provenance": provenance.value,
                "cache_hit": cache_hit,
                "status": status,
                "error_code": error_code,
                "final_score": final_score,
                "latency_ms": latency_ms,
            }
        )
    )
    try:
        log_analysis_run(
            run_id=run_id,
            model=model,
            provenance=provenance.value,
            cache_hit=cache_hit,
            status=status,
            error_code=error_code,
            final_score=final_score,
            latency_ms=latency_ms,
        )
    except Exception:  # pragma: no cover
        logger.debug("analysis_run_logging_failed", exc_info=True)


async def _analyze(
    profile_text: str,
    model: str,
    *,
    cache: CacheStore,
    client_factory: ClientFactory,
    cancel_event: asyncio.Event | None,
    transport: httpx.AsyncBaseTransport | None,
    progress: dict[str, object],
) -> AnalysisResult:
    profile = await resolve_profile_input(profile_text, transport=transport)
    progress["provenance"] = profile.provenance

    key = cache_key(profile.text, model)
    cached = await asyncio.to_thread(cache.get, key)
    if cached is not None:
        logger.info("analysis_cache_hit key=%s", key[:12])
        progress["cache_hit"] = True
        return AnalysisResult(cached, key, True, profile.provenance, model)

    client = client_factory(model)
    chain = await run_agent_chain(client, profile, cancel_event)
    report = assemble_report(chain)

    if cancel_event is not None and cancel_event.is_set():
        raise AnalysisCancelledError("Analysis was cancelled before its report was stored.")
    await asyncio.to_thread(cache.put, key, report)
    return AnalysisResult(report, key, False, profile.provenance, model)


async def run_analysis(
    profile_text: str,
    model: str | None = None,
    *,
    cache: CacheStore,
    client_factory: ClientFactory = get_model_client,
    cancel_event: asyncio.Event | None = None,
    timeout_s: float | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> AnalysisResult:
    """Resolve, cache-check, run the four-stage chain and store one report.

    The whole unit of work shares one wall-clock budget. Timeouts, cancellation
    and stage failures leave the cache untouched.
    """
    run_id = uuid.uuid4().hex
    started = time.perf_counter()
    resolved_model = load_ai_config(model).model
    budget = timeout_s if timeout_s is not None else settings.analysis_timeout_s
    progress: dict[str, object] = {"provenance": Provenance.TRUSTED, "cache_hit": False}

    def _finish(status: str, error_code: str | None = None, final_score: float | None = None) -> None:
        _log_run(
            run_id=run_id,
            model=resolved_model,
            provenance=progress["provenance"],  # type: ignore[arg-type]
            cache_hit=bool(progress["cache_hit"]),
            status=status,
            started=started,
            error_code=error_code,
            final_score=final_score,
        )

    try:
        result = await asyncio.wait_for(
            _analyze(
                profile_text,
                resolved_model,
                cache=cache,
                client_factory=client_factory,
                cancel_event=cancel_event,
                transport=transport,
                progress=progress,
            ),
            timeout=budget,
        )
    except asyncio.TimeoutError as exc:
        _finish("error", error_code="timeout")
        raise AnalysisTimeoutError(f"Analysis exceeded the {budget:g}s time budget.") from exc
    except AnalysisError as exc:
        status = "cancelled" if isinstance(exc, AnalysisCancelledError) else "error"
        _finish(status, error_code=exc.code)
        raise
    except Exception:
        _finish("error", error_code="unexpected")
        raise

    _finish("success", final_score=result.report.final_score)
    return result
