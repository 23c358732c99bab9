from __future__ import annotations

import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from app.core.config import settings


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _get_db_path() -> Path:
    return Path(settings.analytics_db_path)


def init_db() -> None:
    if not settings.analytics_enabled:
        return
    db_path = _get_db_path()
    db_path.parent.mkdir(parents=True, exist_ok=True)
    with sqlite3.connect(db_path) as conn:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS analysis_runs (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                created_at TEXT NOT NULL,
                run_id TEXT NOT NULL,
                model TEXT NOT NULL,
                provenance TEXT NOT NULL,
                cache_hit INTEGER NOT NULL,
                status TEXT NOT NULL,
                error_code TEXT,
                final_score REAL,
                latency_ms INTEGER
            )
            """
        )
        conn.execute(
            """
            CREATE INDEX IF NOT EXISTS idx_analysis_runs_created_at
            ON analysis_runs (created_at)
            """
        )
        conn.commit()
    purge_old_records()


def log_analysis_run(
    *,
    run_id: str,
    model: str,
    provenance: str,
    cache_hit: bool,
    status: str,
    error_code: str | None = None,
    final_score: float | None = None,
    latency_ms: int | None = None,
) -> None:
    if not settings.analytics_enabled:
        return
    db_path = _get_db_path()
    with sqlite3.connect(db_path) as conn:
        conn.execute(
            """
            INSERT INTO analysis_runs (
                created_at, run_id, model, provenance, cache_hit, status, error_code, final_score, latency_ms
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                _utc_now(),
                run_id,
                model,
                provenance,
                1 if cache_hit else 0,
                status,
                error_code,
                final_score,
                latency_ms,
            ),
        )
        conn.commit()


def purge_old_records() -> dict[str, int]:
    if not settings.analytics_enabled:
        return {"analysis_runs": 0}

    retention = max(1, int(settings.analytics_retention_days))
    with sqlite3.connect(_get_db_path()) as conn:
        cur = conn.execute(
            "DELETE FROM analysis_runs WHERE created_at < strftime('%Y-%m-%dT%H:%M:%S', 'now', ?)",
            (f"-{retention} days",),
        )
        deleted = int(cur.rowcount or 0)
        conn.commit()
    return {"analysis_runs": deleted}


def _row_to_dict(cursor: sqlite3.Cursor, row: tuple) -> dict[str, Any]:
    return {col[0]: row[idx] for idx, col in enumerate(cursor.description)}


def get_summary() -> dict[str, Any]:
    if not settings.analytics_enabled:
        return {"enabled": False}
    with sqlite3.connect(_get_db_path()) as conn:
        cur = conn.execute(
            """
            SELECT
                COUNT(*) AS total,
                COALESCE(SUM(cache_hit), 0) AS cache_hits,
                COALESCE(SUM(CASE WHEN status = 'success' THEN 1 ELSE 0 END), 0) AS succeeded,
                AVG(CASE WHEN status = 'success' THEN final_score END) AS avg_final_score
            FROM analysis_runs
            """
        )
        summary = _row_to_dict(cur, cur.fetchone())
        cur = conn.execute(
            """
            SELECT status, COUNT(*) AS count
            FROM analysis_runs
            GROUP BY status
            ORDER BY count DESC
            """
        )
        by_status = {row[0]: row[1] for row in cur.fetchall()}
    return {"enabled": True, **summary, "by_status": by_status}


def get_latest(limit: int = 20) -> list[dict[str, Any]]:
    if not settings.analytics_enabled:
        return []
    with sqlite3.connect(_get_db_path()) as conn:
        cur = conn.execute(
            """
            SELECT created_at, run_id, model, provenance, cache_hit, status, error_code, final_score, latency_ms
            FROM analysis_runs
            ORDER BY id DESC
            LIMIT ?
            """,
            (limit,),
        )
        rows = cur.fetchall()
        return [_row_to_dict(cur, row) for row in rows]
