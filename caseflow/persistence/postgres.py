"""PostgreSQL implementation of the workflow repository."""

from __future__ import annotations

from typing import Any, Optional, Sequence

import asyncpg

from ..exceptions import ConcurrentModificationError, NotFoundOrAccessDenied
from ..models import StepExecution, WorkflowExecution
from .repository import WorkflowRepository
from .sqlite import EXECUTION_COLUMNS, KEY_COLUMNS, STEP_COLUMNS, record_to_row, row_to_dict

TIMESTAMP_COLUMNS = {"created_at", "started_at", "completed_at"}


def _pg_values(record: WorkflowExecution | StepExecution, columns: Sequence[str]) -> list[Any]:
    """Column values with timestamps as datetimes, which asyncpg requires."""
    values = record_to_row(record, columns)
    return [
        getattr(record, col) if col in TIMESTAMP_COLUMNS else value
        for col, value in zip(columns, values)
    ]


class PostgresWorkflowRepository(WorkflowRepository):
    """Persist workflow state using PostgreSQL."""

    def __init__(self, dsn: str):
        self._dsn = dsn
        self._initialized = False

    async def _connect(self) -> asyncpg.Connection:
        conn = await asyncpg.connect(self._dsn)
        if not self._initialized:
            await self._ensure_schema(conn)
            self._initialized = True
        return conn

    async def _ensure_schema(self, conn: asyncpg.Connection) -> None:
        await conn.execute(
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
                document_ids JSONB NOT NULL,
                status TEXT NOT NULL,
                current_step INTEGER NOT NULL,
                total_steps INTEGER NOT NULL,
                progress_percentage INTEGER NOT NULL,
                failure_reason TEXT,
                created_at TIMESTAMPTZ NOT NULL,
                started_at TIMESTAMPTZ,
                completed_at TIMESTAMPTZ,
                version INTEGER NOT NULL
            )
            """
        )
        await conn.execute(
            """
            CREATE TABLE IF NOT EXISTS step_executions (
                id TEXT PRIMARY KEY,
                execution_id TEXT NOT NULL REFERENCES workflow_executions(id),
                tenant_id TEXT NOT NULL,
                step_number INTEGER NOT NULL,
                step_name TEXT NOT NULL,
                step_type TEXT NOT NULL,
                status TEXT NOT NULL,
                input_data JSONB NOT NULL,
                output_data JSONB,
                error_message TEXT,
                started_at TIMESTAMPTZ,
                completed_at TIMESTAMPTZ,
                version INTEGER NOT NULL,
                UNIQUE (execution_id, step_number)
            )
            """
        )

    @staticmethod
    def _insert_sql(table: str, columns: Sequence[str]) -> str:
        placeholders = ", ".join(f"${i}" for i in range(1, len(columns) + 1))
        return f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({placeholders})"

    @staticmethod
    def _update_sql(table: str, columns: Sequence[str]) -> tuple[str, list[str]]:
        assigned = [col for col in columns if col not in KEY_COLUMNS]
        sets = ", ".join(f"{col} = ${i}" for i, col in enumerate(assigned, start=1))
        n = len(assigned)
        return (
            f"UPDATE {table} SET {sets}, version = version + 1 "
            f"WHERE id = ${n + 1} AND tenant_id = ${n + 2} AND version = ${n + 3}",
            assigned,
        )

    async def _compare_and_set(
        self,
        table: str,
        kind: str,
        columns: Sequence[str],
        record: WorkflowExecution | StepExecution,
    ) -> None:
        query, assigned = self._update_sql(table, columns)
        values = dict(zip(columns, _pg_values(record, columns)))
        conn = await self._connect()
        try:
            status = await conn.execute(
                query,
                *[values[col] for col in assigned],
                record.id,
                record.tenant_id,
                record.version,
            )
            if status.endswith(" 1"):
                return
            visible = await conn.fetchval(
                f"SELECT 1 FROM {table} WHERE id = $1 AND tenant_id = $2",
                record.id,
                record.tenant_id,
            )
        finally:
            await conn.close()
        if visible is None:
            raise NotFoundOrAccessDenied(f"{kind.capitalize()} {record.id} not found")
        raise ConcurrentModificationError(kind, record.id, record.version)

    # ------------------------------------------------------------------
    async def create_execution(
        self, execution: WorkflowExecution, steps: Sequence[StepExecution]
    ) -> None:
        conn = await self._connect()
        try:
            async with conn.transaction():
                await conn.execute(
                    self._insert_sql("workflow_executions", EXECUTION_COLUMNS),
                    *_pg_values(execution, EXECUTION_COLUMNS),
                )
                await conn.executemany(
                    self._insert_sql("step_executions", STEP_COLUMNS),
                    [_pg_values(step, STEP_COLUMNS) for step in steps],
                )
        finally:
            await conn.close()

    async def get_execution(
        self, execution_id: str, tenant_id: str
    ) -> Optional[WorkflowExecution]:
        conn = await self._connect()
        try:
            row = await conn.fetchrow(
                f"SELECT {', '.join(EXECUTION_COLUMNS)} FROM workflow_executions "
                "WHERE id = $1 AND tenant_id = $2",
                execution_id,
                tenant_id,
            )
        finally:
            await conn.close()
        if not row:
            return None
        return WorkflowExecution.model_validate(row_to_dict(row, EXECUTION_COLUMNS))

    async def list_executions(
        self, tenant_id: str, created_by: Optional[str] = None
    ) -> list[WorkflowExecution]:
        query = f"SELECT {', '.join(EXECUTION_COLUMNS)} FROM workflow_executions WHERE tenant_id = $1"
        params: list[Any] = [tenant_id]
        if created_by is not None:
            query += " AND created_by = $2"
            params.append(created_by)
        query += " ORDER BY created_at DESC"
        conn = await self._connect()
        try:
            rows = await conn.fetch(query, *params)
        finally:
            await conn.close()
        return [WorkflowExecution.model_validate(row_to_dict(r, EXECUTION_COLUMNS)) for r in rows]

    async def list_steps(self, execution_id: str, tenant_id: str) -> list[StepExecution]:
        conn = await self._connect()
        try:
            rows = await conn.fetch(
                f"SELECT {', '.join(STEP_COLUMNS)} FROM step_executions "
                "WHERE execution_id = $1 AND tenant_id = $2 ORDER BY step_number",
                execution_id,
                tenant_id,
            )
        finally:
            await conn.close()
        return [StepExecution.model_validate(row_to_dict(r, STEP_COLUMNS)) for r in rows]

    async def get_step(self, step_id: str, tenant_id: str) -> Optional[StepExecution]:
        conn = await self._connect()
        try:
            row = await conn.fetchrow(
                f"SELECT {', '.join(STEP_COLUMNS)} FROM step_executions WHERE id = $1 AND tenant_id = $2",
                step_id,
                tenant_id,
            )
        finally:
            await conn.close()
        if not row:
            return None
        return StepExecution.model_validate(row_to_dict(row, STEP_COLUMNS))

    async def save_execution(self, execution: WorkflowExecution) -> WorkflowExecution:
        await self._compare_and_set("workflow_executions", "execution", EXECUTION_COLUMNS, execution)
        return execution.model_copy(update={"version": execution.version + 1})

    async def save_step(self, step: StepExecution) -> StepExecution:
        await self._compare_and_set("step_executions", "step", STEP_COLUMNS, step)
        return step.model_copy(update={"version": step.version + 1})
