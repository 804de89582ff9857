"""SQLite implementation of the workflow repository."""

from __future__ import annotations

import asyncio
import json
import sqlite3
import threading
from pathlib import Path
from typing import Any, Optional, Sequence

from ..exceptions import ConcurrentModificationError, NotFoundOrAccessDenied
from ..models import StepExecution, WorkflowExecution
from .repository import WorkflowRepository

EXECUTION_COLUMNS = (
    "id",
    "tenant_id",
    "template_id",
    "template_name",
    "name",
    "created_by",
    "case_id",
    "collection_id",
    "document_ids",
    "status",
    "current_step",
    "total_steps",
    "progress_percentage",
    "failure_reason",
    "created_at",
    "started_at",
    "completed_at",
    "version",
)

STEP_COLUMNS = (
    "id",
    "execution_id",
    "tenant_id",
    "step_number",
    "step_name",
    "step_type",
    "status",
    "input_data",
    "output_data",
    "error_message",
    "started_at",
    "completed_at",
    "version",
)

JSON_COLUMNS = {"document_ids", "input_data", "output_data"}

# Never rewritten by a save; ownership is fixed when the row is created.
KEY_COLUMNS = ("id", "tenant_id", "execution_id", "version")


def record_to_row(record: WorkflowExecution | StepExecution, columns: Sequence[str]) -> list[Any]:
    """Flatten a model into column order, encoding structured values as JSON."""
    data = record.model_dump(mode="json")
    return [
        json.dumps(data[col]) if col in JSON_COLUMNS and data[col] is not None else data[col]
        for col in columns
    ]


def row_to_dict(row: Any, columns: Sequence[str]) -> dict[str, Any]:
    data = {col: row[col] for col in columns}
    for col in JSON_COLUMNS.intersection(columns):
        if isinstance(data[col], str):
            data[col] = json.loads(data[col])
    return data


class SQLiteWorkflowRepository(WorkflowRepository):
    """Persist workflow state using SQLite."""

    def __init__(self, db_path: str | Path):
        self.db_path = str(db_path)
        self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._lock = threading.Lock()
        self._ensure_schema()

    # ------------------------------------------------------------------
    # Schema management
    def _ensure_schema(self) -> None:
        with self._lock:
            cur = self._conn.cursor()
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS workflow_executions (
                    id TEXT PRIMARY KEY,
                    tenant_id TEXT NOT NULL,
                    template_id TEXT NOT NULL,
                    template_name TEXT NOT NULL,
                    name TEXT NOT NULL,
                    created_by TEXT NOT NULL,
                    case_id TEXT,
                    collection_id TEXT,
                    document_ids TEXT NOT NULL,
                    status TEXT NOT NULL,
                    current_step INTEGER NOT NULL,
                    total_steps INTEGER NOT NULL,
                    progress_percentage INTEGER NOT NULL,
                    failure_reason TEXT,
                    created_at TEXT NOT NULL,
                    started_at TEXT,
                    completed_at TEXT,
                    version INTEGER NOT NULL
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS step_executions (
                    id TEXT PRIMARY KEY,
                    execution_id TEXT NOT NULL REFERENCES workflow_executions(id),
                    tenant_id TEXT NOT NULL,
                    step_number INTEGER NOT NULL,
                    step_name TEXT NOT NULL,
                    step_type TEXT NOT NULL,
                    status TEXT NOT NULL,
                    input_data TEXT NOT NULL,
                    output_data TEXT,
                    error_message TEXT,
                    started_at TEXT,
                    completed_at TEXT,
                    version INTEGER NOT NULL,
                    UNIQUE (execution_id, step_number)
                )
                """
            )
            cur.execute(
                "CREATE INDEX IF NOT EXISTS idx_executions_tenant ON workflow_executions(tenant_id, created_at)"
            )
            self._conn.commit()

    # ------------------------------------------------------------------
    # Helper methods
    def _insert_all(
        self, execution: WorkflowExecution, steps: Sequence[StepExecution]
    ) -> None:
        with self._lock:
            cur = self._conn.cursor()
            try:
                cur.execute(
                    f"INSERT INTO workflow_executions ({', '.join(EXECUTION_COLUMNS)}) "
                    f"VALUES ({', '.join('?' for _ in EXECUTION_COLUMNS)})",
                    record_to_row(execution, EXECUTION_COLUMNS),
                )
                cur.executemany(
                    f"INSERT INTO step_executions ({', '.join(STEP_COLUMNS)}) "
                    f"VALUES ({', '.join('?' for _ in STEP_COLUMNS)})",
                    [record_to_row(step, STEP_COLUMNS) for step in steps],
                )
            except sqlite3.Error:
                self._conn.rollback()
                raise
            self._conn.commit()

    def _compare_and_set(
        self,
        table: str,
        kind: str,
        columns: Sequence[str],
        record: WorkflowExecution | StepExecution,
    ) -> None:
        values = record_to_row(record, columns)
        assignments = [(col, val) for col, val in zip(columns, values) if col not in KEY_COLUMNS]
        with self._lock:
            cur = self._conn.cursor()
            cur.execute(
                f"UPDATE {table} SET {', '.join(f'{col} = ?' for col, _ in assignments)}, "
                "version = version + 1 WHERE id = ? AND tenant_id = ? AND version = ?",
                [val for _, val in assignments] + [record.id, record.tenant_id, record.version],
            )
            self._conn.commit()
            if cur.rowcount == 1:
                return
            cur.execute(
                f"SELECT 1 FROM {table} WHERE id = ? AND tenant_id = ?",
                (record.id, record.tenant_id),
            )
            visible = cur.fetchone() is not None
        if not visible:
            raise NotFoundOrAccessDenied(f"{kind.capitalize()} {record.id} not found")
        raise ConcurrentModificationError(kind, record.id, record.version)

    def _fetchone(self, query: str, *params: Any) -> sqlite3.Row | None:
        with self._lock:
            cur = self._conn.cursor()
            cur.execute(query, params)
            return cur.fetchone()

    def _fetchall(self, query: str, *params: Any) -> list[sqlite3.Row]:
        with self._lock:
            cur = self._conn.cursor()
            cur.execute(query, params)
            return cur.fetchall()

    # ------------------------------------------------------------------
    # Repository API
    async def create_execution(
        self, execution: WorkflowExecution, steps: Sequence[StepExecution]
    ) -> None:
        await asyncio.to_thread(self._insert_all, execution, steps)

    async def get_execution(
        self, execution_id: str, tenant_id: str
    ) -> Optional[WorkflowExecution]:
        row = await asyncio.to_thread(
            self._fetchone,
            f"SELECT {', '.join(EXECUTION_COLUMNS)} FROM workflow_executions WHERE id = ? AND tenant_id = ?",
            execution_id,
            tenant_id,
        )
        if not row:
            return None
        return WorkflowExecution.model_validate(row_to_dict(row, EXECUTION_COLUMNS))

    async def list_executions(
        self, tenant_id: str, created_by: Optional[str] = None
    ) -> list[WorkflowExecution]:
        query = f"SELECT {', '.join(EXECUTION_COLUMNS)} FROM workflow_executions WHERE tenant_id = ?"
        params: list[Any] = [tenant_id]
        if created_by is not None:
            query += " AND created_by = ?"
            params.append(created_by)
        query += " ORDER BY created_at DESC"
        rows = await asyncio.to_thread(self._fetchall, query, *params)
        return [WorkflowExecution.model_validate(row_to_dict(r, EXECUTION_COLUMNS)) for r in rows]

    async def list_steps(self, execution_id: str, tenant_id: str) -> list[StepExecution]:
        rows = await asyncio.to_thread(
            self._fetchall,
            f"SELECT {', '.join(STEP_COLUMNS)} FROM step_executions "
            "WHERE execution_id = ? AND tenant_id = ? ORDER BY step_number",
            execution_id,
            tenant_id,
        )
        return [StepExecution.model_validate(row_to_dict(r, STEP_COLUMNS)) for r in rows]

    async def get_step(self, step_id: str, tenant_id: str) -> Optional[StepExecution]:
        row = await asyncio.to_thread(
            self._fetchone,
            f"SELECT {', '.join(STEP_COLUMNS)} FROM step_executions WHERE id = ? AND tenant_id = ?",
            step_id,
            tenant_id,
        )
        if not row:
            return None
        return StepExecution.model_validate(row_to_dict(row, STEP_COLUMNS))

    async def save_execution(self, execution: WorkflowExecution) -> WorkflowExecution:
        await asyncio.to_thread(
            self._compare_and_set, "workflow_executions", "execution", EXECUTION_COLUMNS, execution
        )
        return execution.model_copy(update={"version": execution.version + 1})

    async def save_step(self, step: StepExecution) -> StepExecution:
        await asyncio.to_thread(self._compare_and_set, "step_executions", "step", STEP_COLUMNS, step)
        return step.model_copy(update={"version": step.version + 1})
