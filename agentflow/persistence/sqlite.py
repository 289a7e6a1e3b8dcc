"""SQLite implementation of the run repository."""

from __future__ import annotations

import asyncio
import json
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Any

from ..contracts import utcnow
from .models import RunInstance, StepRecord
from .repository import RunRepository


def _dumps(value: Any) -> str:
    return json.dumps(value, default=str)


def _parse_time(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


class SQLiteRunRepository(RunRepository):
    """Persist run history using SQLite."""

    def __init__(self, db_path: str | Path):
        self.db_path = str(db_path)
        self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._ensure_schema()

    # ------------------------------------------------------------------
    # Schema management
    def _ensure_schema(self) -> None:
        with self._conn:
            self._conn.execute(
                """
                CREATE TABLE IF NOT EXISTS runs (
                    run_id TEXT PRIMARY KEY,
                    workflow_id TEXT,
                    workflow_name TEXT,
                    variables TEXT,
                    status TEXT NOT NULL,
                    started_at TEXT,
                    finished_at TEXT
                )
                """
            )
            self._conn.execute(
                """
                CREATE TABLE IF NOT EXISTS step_history (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    run_id TEXT NOT NULL,
                    step_id TEXT NOT NULL,
                    sequence INTEGER NOT NULL,
                    started_at TEXT,
                    completed_at TEXT,
                    status TEXT,
                    output TEXT,
                    error TEXT
                )
                """
            )

    def close(self) -> None:
        self._conn.close()

    # ------------------------------------------------------------------
    # Helper methods
    def _write(self, query: str, *params: Any) -> None:
        with self._conn:
            self._conn.execute(query, params)

    def _read(self, query: str, *params: Any) -> list[sqlite3.Row]:
        return self._conn.execute(query, params).fetchall()

    def _run_from_row(self, row: sqlite3.Row, steps: list[StepRecord]) -> RunInstance:
        return RunInstance(
            run_id=row["run_id"],
            workflow_id=row["workflow_id"],
            workflow_name=row["workflow_name"],
            variables=json.loads(row["variables"]) if row["variables"] else {},
            status=row["status"],
            started_at=_parse_time(row["started_at"]),
            finished_at=_parse_time(row["finished_at"]),
            steps=steps,
        )

    # ------------------------------------------------------------------
    # Repository API
    async def create_run(
        self,
        run_id: str,
        workflow_id: str | None = None,
        workflow_name: str | None = None,
        variables: dict | None = None,
    ) -> None:
        await asyncio.to_thread(
            self._write,
            "INSERT INTO runs (run_id, workflow_id, workflow_name, variables, status, started_at) VALUES (?, ?, ?, ?, ?, ?)",
            run_id,
            workflow_id,
            workflow_name,
            _dumps(variables or {}),
            "running",
            utcnow().isoformat(),
        )

    async def mark_step_started(self, run_id: str, step_id: str, sequence: int) -> None:
        await asyncio.to_thread(
            self._write,
            "INSERT INTO step_history (run_id, step_id, sequence, started_at) VALUES (?, ?, ?, ?)",
            run_id,
            step_id,
            sequence,
            utcnow().isoformat(),
        )

    async def mark_step_completed(
        self,
        run_id: str,
        step_id: str,
        sequence: int,
        status: str,
        output: dict | None = None,
        error: dict | None = None,
    ) -> None:
        await asyncio.to_thread(
            self._write,
            """
            UPDATE step_history
            SET completed_at = ?, status = ?, output = ?, error = ?
            WHERE run_id = ? AND step_id = ? AND sequence = ?
            """,
            utcnow().isoformat(),
            status,
            _dumps(output or {}),
            _dumps(error) if error else None,
            run_id,
            step_id,
            sequence,
        )

    async def update_variables(self, run_id: str, variables: dict) -> None:
        await asyncio.to_thread(
            self._write,
            "UPDATE runs SET variables = ? WHERE run_id = ?",
            _dumps(variables),
            run_id,
        )

    async def mark_run_completed(self, run_id: str, status: str = "completed") -> None:
        await asyncio.to_thread(
            self._write,
            "UPDATE runs SET status = ?, finished_at = ? WHERE run_id = ?",
            status,
            utcnow().isoformat(),
            run_id,
        )

    async def get_run(self, run_id: str) -> RunInstance | None:
        rows = await asyncio.to_thread(
            self._read,
            "SELECT run_id, workflow_id, workflow_name, variables, status, started_at, finished_at FROM runs WHERE run_id = ?",
            run_id,
        )
        if not rows:
            return None
        step_rows = await asyncio.to_thread(
            self._read,
            "SELECT id, run_id, step_id, sequence, started_at, completed_at, status, output, error FROM step_history WHERE run_id = ? ORDER BY sequence, id",
            run_id,
        )
        steps = [
            StepRecord(
                id=r["id"],
                run_id=r["run_id"],
                step_id=r["step_id"],
                sequence=r["sequence"],
                started_at=_parse_time(r["started_at"]),
                completed_at=_parse_time(r["completed_at"]),
                status=r["status"],
                output=json.loads(r["output"]) if r["output"] else None,
                error=json.loads(r["error"]) if r["error"] else None,
            )
            for r in step_rows
        ]
        return self._run_from_row(rows[0], steps)

    async def list_runs(self) -> list[RunInstance]:
        rows = await asyncio.to_thread(
            self._read,
            "SELECT run_id, workflow_id, workflow_name, variables, status, started_at, finished_at FROM runs ORDER BY started_at",
        )
        return [self._run_from_row(row, []) for row in rows]
