"""Persisted workflow state: executions and their step records."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from .steps.configs import StepInput, StepType
from .steps.results import StepResult


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


class ExecutionStatus(str, Enum):
    PENDING = "PENDING"
    RUNNING = "RUNNING"
    WAITING_USER = "WAITING_USER"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self in (ExecutionStatus.COMPLETED, ExecutionStatus.FAILED)


class StepStatus(str, Enum):
    PENDING = "PENDING"
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    WAITING_USER = "WAITING_USER"


class WorkflowExecution(BaseModel):
    """One run of a template against a document set and optional case."""

    id: str = Field(default_factory=new_id)
    tenant_id: str
    template_id: str
    template_name: str
    name: str
    created_by: str
    case_id: Optional[str] = None
    collection_id: Optional[str] = None
    document_ids: list[str] = Field(default_factory=list)
    status: ExecutionStatus = ExecutionStatus.PENDING
    current_step: int = 0
    total_steps: int
    progress_percentage: int = 0
    failure_reason: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    version: int = 0

    def record_progress(self, step_number: int) -> None:
        """Advance progress to ``step_number``, the last fully completed step."""
        self.current_step = step_number
        self.progress_percentage = (step_number * 100) // self.total_steps


class StepExecution(BaseModel):
    """Persisted state of one step within one execution."""

    id: str = Field(default_factory=new_id)
    execution_id: str
    tenant_id: str
    step_number: int = Field(..., ge=1)
    step_name: str
    step_type: StepType
    status: StepStatus = StepStatus.PENDING
    input_data: StepInput
    output_data: Optional[StepResult] = None
    error_message: Optional[str] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    version: int = 0


class ExecutionContext(BaseModel):
    """Plain snapshot of an execution handed to step handlers.

    Built from the persisted row before any handler runs so handlers never
    reach back into the repository.
    """

    model_config = ConfigDict(frozen=True)

    execution_id: str
    tenant_id: str
    creator_id: str
    execution_name: str
    template_name: str
    case_id: Optional[str] = None
    collection_id: Optional[str] = None

    @classmethod
    def from_execution(cls, execution: WorkflowExecution) -> "ExecutionContext":
        return cls(
            execution_id=execution.id,
            tenant_id=execution.tenant_id,
            creator_id=execution.created_by,
            execution_name=execution.name,
            template_name=execution.template_name,
            case_id=execution.case_id,
            collection_id=execution.collection_id,
        )


class ExecutionSnapshot(BaseModel):
    """Read-only view of an execution and its ordered steps."""

    execution: WorkflowExecution
    steps: list[StepExecution] = Field(default_factory=list)

    def step(self, step_number: int) -> StepExecution:
        return next(s for s in self.steps if s.step_number == step_number)
