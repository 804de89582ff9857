"""In-memory collaborator backends for tests and local runs."""

from __future__ import annotations

import uuid
from collections import defaultdict
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Sequence

from pydantic import BaseModel, Field

from .base import ActionItem, DocumentAnalysis, TimelineEvent


class InMemoryAnalysisStore:
    """Analyses, action items and timeline events keyed by tenant."""

    def __init__(self) -> None:
        self._analyses: Dict[tuple[str, str], DocumentAnalysis] = {}
        self._action_items: Dict[str, List[ActionItem]] = defaultdict(list)
        self._timeline: Dict[str, List[TimelineEvent]] = defaultdict(list)

    def add_analysis(self, tenant_id: str, analysis: DocumentAnalysis) -> None:
        self._analyses[(tenant_id, analysis.document_id)] = analysis

    def add_action_item(self, tenant_id: str, item: ActionItem) -> None:
        self._action_items[tenant_id].append(item)

    def add_timeline_event(self, tenant_id: str, event: TimelineEvent) -> None:
        self._timeline[tenant_id].append(event)

    async def get_document_analysis(
        self, document_id: str, tenant_id: str
    ) -> Optional[DocumentAnalysis]:
        return self._analyses.get((tenant_id, document_id))

    async def get_action_items(
        self, analysis_ids: Sequence[str], tenant_id: str
    ) -> list[ActionItem]:
        wanted = set(analysis_ids)
        items = [i for i in self._action_items[tenant_id] if i.analysis_id in wanted]
        return sorted(items, key=lambda i: (i.deadline is None, i.deadline or date.max))

    async def get_timeline_events(
        self, analysis_ids: Sequence[str], tenant_id: str
    ) -> list[TimelineEvent]:
        wanted = set(analysis_ids)
        events = [e for e in self._timeline[tenant_id] if e.analysis_id in wanted]
        return sorted(events, key=lambda e: (e.event_date is None, str(e.event_date or "")))


class StoredArtifact(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    kind: str
    owner_user_id: str
    name: str
    case_id: Optional[str] = None
    execution_id: str
    content: str
    document_type: Optional[str] = None
    document_count: Optional[int] = None
    description: Optional[str] = None


class InMemoryArtifactSink:
    """Keeps created drafts and research sessions in a list."""

    def __init__(self) -> None:
        self.artifacts: List[StoredArtifact] = []

    async def create_draft(
        self,
        owner_user_id: str,
        name: str,
        case_id: Optional[str],
        execution_id: str,
        content: str,
        document_type: Optional[str] = None,
    ) -> str:
        artifact = StoredArtifact(
            kind="draft",
            owner_user_id=owner_user_id,
            name=name,
            case_id=case_id,
            execution_id=execution_id,
            content=content,
            document_type=document_type,
        )
        self.artifacts.append(artifact)
        return artifact.id

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
        artifact = StoredArtifact(
            kind="research",
            owner_user_id=owner_user_id,
            name=name,
            case_id=case_id,
            execution_id=execution_id,
            content=content,
            document_count=document_count,
            description=description,
        )
        self.artifacts.append(artifact)
        return artifact.id


class InMemoryCaseDirectory:
    """Case assignments keyed by tenant and case id."""

    def __init__(self) -> None:
        self._assignees: Dict[tuple[str, str], List[str]] = {}

    def assign(self, tenant_id: str, case_id: str, user_ids: Sequence[str]) -> None:
        self._assignees[(tenant_id, case_id)] = list(user_ids)

    async def get_case_assignees(self, case_id: str, tenant_id: str) -> list[str]:
        return list(self._assignees.get((tenant_id, case_id), []))


class SentNotification(BaseModel):
    title: str
    body: str
    user_id: str
    kind: str
    data: dict[str, Any]
    sent_at: datetime = Field(default_factory=datetime.utcnow)


class InMemoryNotifier:
    """Records notifications instead of delivering them."""

    def __init__(self) -> None:
        self.sent: List[SentNotification] = []

    async def notify(
        self, title: str, body: str, user_id: str, kind: str, data: dict[str, Any]
    ) -> None:
        self.sent.append(
            SentNotification(title=title, body=body, user_id=user_id, kind=kind, data=data)
        )
