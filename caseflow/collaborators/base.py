"""Interfaces of the services the engine consumes but does not own."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Optional, Protocol, Sequence

from pydantic import BaseModel


class DocumentAnalysis(BaseModel):
    """Previously computed analysis of one document."""

    id: str
    document_id: str
    file_name: Optional[str] = None
    detected_type: Optional[str] = None
    summary: Optional[str] = None
    key_findings: Optional[str] = None
    risk_level: Optional[str] = None
    full_text: Optional[str] = None


class ActionItem(BaseModel):
    id: str
    analysis_id: str
    description: str
    priority: Optional[str] = None
    status: Optional[str] = None
    deadline: Optional[date] = None
    category: Optional[str] = None


class TimelineEvent(BaseModel):
    id: str
    analysis_id: str
    title: str
    description: Optional[str] = None
    event_type: Optional[str] = None
    event_date: Optional[date | datetime] = None


class AnalysisStore(Protocol):
    async def get_document_analysis(
        self, document_id: str, tenant_id: str
    ) -> Optional[DocumentAnalysis]:
        """Return the analysis for ``document_id`` or ``None`` when there is none."""

    async def get_action_items(
        self, analysis_ids: Sequence[str], tenant_id: str
    ) -> list[ActionItem]:
        """Action items extracted from the given analyses, earliest deadline first."""

    async def get_timeline_events(
        self, analysis_ids: Sequence[str], tenant_id: str
    ) -> list[TimelineEvent]:
        """Timeline events extracted from the given analyses, in date order."""


class TextGenerator(Protocol):
    async def generate(self, prompt: str, deep_thinking: bool = False) -> str:
        """Turn ``prompt`` into text. ``deep_thinking`` selects the higher-effort mode."""


class ArtifactSink(Protocol):
    async def create_draft(
        self,
        owner_user_id: str,
        name: str,
        case_id: Optional[str],
        execution_id: str,
        content: str,
        document_type: Optional[str] = None,
    ) -> str:
        """Store a reviewable draft and return its id."""

    async def create_research(
        self,
        owner_user_id: str,
        name: str,
        case_id: Optional[str],
        execution_id: str,
        content: str,
        document_count: int,
        description: Optional[str] = None,
    ) -> str:
        """Store a research session and return its id."""


class CaseDirectory(Protocol):
    async def get_case_assignees(self, case_id: str, tenant_id: str) -> list[str]:
        """User ids actively assigned to ``case_id``."""


class Notifier(Protocol):
    async def notify(
        self, title: str, body: str, user_id: str, kind: str, data: dict[str, Any]
    ) -> None:
        """Deliver one notification. Raises on delivery failure."""


@dataclass
class Collaborators:
    """Bundle of external services handed to the step handlers."""

    analyses: AnalysisStore
    generator: TextGenerator
    artifacts: ArtifactSink
    cases: CaseDirectory
    notifier: Notifier
