from .cache import CacheStore, InMemoryCacheStore, SqliteCacheStore, build_cache_store, cache_key
from .chain import ChainResult, run_agent_chain
from .errors import (
    AnalysisCancelledError,
    AnalysisError,
    AnalysisTimeoutError,
    InsufficientContentError,
    ProviderError,
    SourceUnavailableError,
    StageParseError,
)
from .report import FinalReport, assemble_report
from .sanitizer import sanitize
from .scoring import ScoreBundle, aggregate

__all__ = [
    "CacheStore",
    "InMemoryCacheStore",
    "SqliteCacheStore",
    "build_cache_store",
    "cache_key",
    "ChainResult",
    "run_agent_chain",
    "AnalysisError",
    "AnalysisCancelledError",
    "AnalysisTimeoutError",
    "InsufficientContentError",
    "ProviderError",
    "SourceUnavailableError",
    "StageParseError",
    "FinalReport",
    "assemble_report",
    "sanitize",
    "ScoreBundle",
    "aggregate",
]
