"""Typed outputs produced by step handlers."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter


def _now() -> datetime:
    return datetime.now(timezone.utc)


class AnalysisView(BaseModel):
    """A stored document analysis as surfaced by a DISPLAY step."""

    document_id: str
    analysis_id: str
    file_name: str = "Unknown"
    document_type: str = "Unknown"
    summary: str = ""
    key_findings: str = ""
    risk_level: str = ""


class ActionItemView(BaseModel):
    id: str
    title: str
    description: str
    priority: Optional[str] = None
    status: Optional[str] = None
    deadline: Optional[str] = None
    category: Optional[str] = None


class TimelineEventView(BaseModel):
    id: str
    title: str
    description: Optional[str] = None
    event_type: Optional[str] = None
    event_date: Optional[str] = None
    is_deadline: bool = False


class DisplayResult(BaseModel):
    kind: Literal["display"] = "display"
    display_type: str
    analysis_count: int
    analyses: list[AnalysisView] = Field(default_factory=list)
    action_items: Optional[list[ActionItemView]] = None
    action_item_count: Optional[int] = None
    timeline_events: Optional[list[TimelineEventView]] = None
    timeline_event_count: Optional[int] = None
    upcoming_deadlines: Optional[list[TimelineEventView]] = None


class SynthesisResult(BaseModel):
    kind: Literal["synthesis"] = "synthesis"
    synthesis_type: str
    content: str
    document_count: int
    artifact_id: str
    artifact_name: str
    message: str
    generated_at: datetime = Field(default_factory=_now)


class GenerationResult(BaseModel):
    kind: Literal["generation"] = "generation"
    generation_type: str
    content: str
    document_count: int
    generated_at: datetime = Field(default_factory=_now)


class DraftIntegrationResult(BaseModel):
    kind: Literal["integration_draft"] = "integration_draft"
    integration_type: str = "create_draft"
    draft_content: str
    artifact_id: str
    artifact_name: str
    message: str = "Draft created and available in Drafting"
    completed_at: datetime = Field(default_factory=_now)


class ResearchIntegrationResult(BaseModel):
    kind: Literal["integration_research"] = "integration_research"
    integration_type: str = "legal_research"
    content: str
    artifact_id: str
    artifact_name: str
    document_count: int
    message: str
    completed_at: datetime = Field(default_factory=_now)


class PassthroughIntegrationResult(BaseModel):
    kind: Literal["integration"] = "integration"
    integration_type: str
    message: str = "Integration step completed"
    completed_at: datetime = Field(default_factory=_now)


class ActionResult(BaseModel):
    """Output of an ACTION step while it waits for the user."""

    kind: Literal["action"] = "action"
    action_type: str
    message: str
    notifications_sent: Optional[int] = None


class ResumedActionResult(BaseModel):
    """Output of an ACTION step after a user resumed the workflow."""

    kind: Literal["action_resumed"] = "action_resumed"
    action_type: str
    message: str
    notifications_sent: Optional[int] = None
    user_input: dict[str, Any] = Field(default_factory=dict)
    resumed_at: datetime = Field(default_factory=_now)


StepResult = Annotated[
    Union[
        DisplayResult,
        SynthesisResult,
        GenerationResult,
        DraftIntegrationResult,
        ResearchIntegrationResult,
        PassthroughIntegrationResult,
        ActionResult,
        ResumedActionResult,
    ],
    Field(discriminator="kind"),
]

_step_result_adapter: TypeAdapter[StepResult] = TypeAdapter(StepResult)


def parse_step_result(data: dict) -> StepResult:
    return _step_result_adapter.validate_python(data)


class WaitForUser(BaseModel):
    """Returned by a handler that cannot finish without human input."""

    result: ActionResult
