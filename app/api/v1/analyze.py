import asyncio
import contextlib
import logging

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.ai.factory import get_model_client
from app.core.rate_limit import rate_limit
from app.pipeline.cache import CacheStore, get_cache_store
from app.pipeline.errors import (
    AnalysisCancelledError,
    AnalysisError,
    AnalysisTimeoutError,
    InsufficientContentError,
    SourceUnavailableError,
)
from app.services.analysis_service import ClientFactory, run_analysis

router = APIRouter()
logger = logging.getLogger(__name__)

SOURCE_BLOCKED_MESSAGE = (
    "LinkedIn blocked the automated data extraction. "
    "Please use the PDF Resume upload method instead for guaranteed results."
)
PIPELINE_FAILED_MESSAGE = "An error occurred during multi-agent analysis"
HTTP_CLIENT_CLOSED_REQUEST = 499


class AnalyzeRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    profile_text: str | None = Field(default=None, alias="profileText")
    model: str | None = Field(default=None, max_length=100)

    @field_validator("profile_text", mode="before")
    @classmethod
    def _non_string_is_empty(cls, value):
        return value if isinstance(value, str) else None


def get_client_factory() -> ClientFactory:
    return get_model_client


async def _watch_disconnect(request: Request, cancel_event: asyncio.Event, done: asyncio.Event) -> None:
    # Stops via `done`; is_disconnected() runs in an anyio scope that swallows Task.cancel().
    while not done.is_set() and not cancel_event.is_set():
        if await request.is_disconnected():
            logger.info("analyze_client_disconnected")
            cancel_event.set()
            return
        with contextlib.suppress(asyncio.TimeoutError):
            await asyncio.wait_for(done.wait(), timeout=0.5)


@router.post("/analyze")
@rate_limit()
async def analyze(
    request: Request,
    payload: AnalyzeRequest,
    cache: CacheStore = Depends(get_cache_store),
    client_factory: ClientFactory = Depends(get_client_factory),
):
    if not (payload.profile_text or "").strip():
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": "No profile text provided."})

    cancel_event = asyncio.Event()
    done = asyncio.Event()
    watcher = asyncio.create_task(_watch_disconnect(request, cancel_event, done))
    try:
        result = await run_analysis(
            payload.profile_text,
            payload.model,
            cache=cache,
            client_factory=client_factory,
            cancel_event=cancel_event,
        )
    except (SourceUnavailableError, InsufficientContentError) as exc:
        logger.warning("analyze_source_rejected code=%s: %s", exc.code, exc)
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": SOURCE_BLOCKED_MESSAGE, "code": exc.code},
        )
    except AnalysisCancelledError as exc:
        return JSONResponse(status_code=HTTP_CLIENT_CLOSED_REQUEST, content={"error": str(exc)})
    except AnalysisTimeoutError as exc:
        logger.error("analyze_timeout: %s", exc)
        return JSONResponse(
            status_code=status.HTTP_504_GATEWAY_TIMEOUT,
            content={"error": PIPELINE_FAILED_MESSAGE, "details": str(exc)},
        )
    except AnalysisError as exc:
        logger.exception("analyze_failed code=%s", exc.code)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": PIPELINE_FAILED_MESSAGE, "details": str(exc)},
        )
    except Exception as exc:  # noqa: BLE001
        logger.exception("analyze_unexpected_error")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": PIPELINE_FAILED_MESSAGE, "details": str(exc)},
        )
    finally:
        done.set()
        await watcher

    return result.report.to_payload()
