from __future__ import annotations

import hashlib
import logging
import os
import sqlite3
import threading
from datetime import datetime, timezone
from functools import lru_cache
from typing import Protocol

from app.core.config import settings
from app.pipeline.report import FinalReport

logger = logging.getLogger(__name__)


def cache_key(content_text: str, model_id: str) -> str:
    """Hex SHA-256 of the exact Extractor input text followed by the model id."""
    return hashlib.sha256(content_text.encode("utf-8") + model_id.encode("utf-8")).hexdigest()


class CacheStore(Protocol):
    def get(self, key: str) -> FinalReport | None: ...

    def put(self, key: str, report: FinalReport) -> None: ...


class InMemoryCacheStore:
    def __init__(self) -> None:
        self._entries: dict[str, str] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> FinalReport | None:
        with self._lock:
            payload = self._entries.get(key)
        if payload is None:
            return None
        return FinalReport.from_cache_json(payload)

    def put(self, key: str, report: FinalReport) -> None:
        payload = report.to_cache_json()
        with self._lock:
            self._entries[key] = payload

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class SqliteCacheStore:
    """Durable key -> report mapping; no eviction, last writer wins per key."""

    def __init__(self, db_path: str):
        self._db_path = db_path
        self._conn: sqlite3.Connection | None = None
        self._conn_lock = threading.Lock()

    def _get_connection(self) -> sqlite3.Connection:
        with self._conn_lock:
            if self._conn is not None:
                return self._conn

            directory = os.path.dirname(self._db_path)
            if directory:
                os.makedirs(directory, exist_ok=True)

            self._conn = sqlite3.connect(
                self._db_path,
                check_same_thread=False,
                timeout=5,
                isolation_level=None,
            )
            self._conn.execute("PRAGMA journal_mode=WAL;")
            self._conn.execute("PRAGMA synchronous=NORMAL;")
            self._conn.execute("PRAGMA busy_timeout=5000;")
            self._conn.execute(
                """
                CREATE TABLE IF NOT EXISTS analysis_cache (
                    cache_key TEXT PRIMARY KEY,
                    report_json TEXT NOT NULL,
                    stored_at TEXT NOT NULL
                );
                """
            )
            return self._conn

    def get(self, key: str) -> FinalReport | None:
        conn = self._get_connection()
        with self._conn_lock:
            row = conn.execute(
                "SELECT report_json FROM analysis_cache WHERE cache_key = ?",
                (key,),
            ).fetchone()
        if not row:
            return None
        return FinalReport.from_cache_json(row[0])

    def put(self, key: str, report: FinalReport) -> None:
        conn = self._get_connection()
        payload = report.to_cache_json()
        with self._conn_lock:
            conn.execute(
                """
                INSERT OR REPLACE INTO analysis_cache (cache_key, report_json, stored_at)
                VALUES (?, ?, ?)
                """,
                (key, payload, datetime.now(timezone.utc).isoformat()),
            )

    def close(self) -> None:
        with self._conn_lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None


def build_cache_store(backend: str | None = None) -> CacheStore:
    selected = (backend or settings.cache_backend).strip().lower()
    if selected == "memory":
        return InMemoryCacheStore()
    if selected == "sqlite":
        return SqliteCacheStore(settings.cache_db_path)
    raise ValueError(f"Unsupported CACHE_BACKEND='{selected}'")


@lru_cache(maxsize=1)
def get_cache_store() -> CacheStore:
    store = build_cache_store()
    logger.info("analysis_cache_ready backend=%s", settings.cache_backend)
    return store
