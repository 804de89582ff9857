"""Shared fixtures: in-memory collaborators and a fully wired engine."""

from __future__ import annotations

import asyncio
from datetime import date

import pytest

from caseflow.collaborators import (
    ActionItem,
    Collaborators,
    DocumentAnalysis,
    InMemoryAnalysisStore,
    InMemoryArtifactSink,
    InMemoryCaseDirectory,
    InMemoryNotifier,
    TimelineEvent,
)
from caseflow.config import CaseflowConfig, WorkerConfig
from caseflow.contracts import TenantContext
from caseflow.engine import build_engine
from caseflow.exceptions import ExternalServiceError
from caseflow.persistence import InMemoryWorkflowRepository
from caseflow.templates import InMemoryTemplateRepository, WorkflowTemplate
from caseflow.transports import InMemoryTransport

TENANT = "acme"
OTHER_TENANT = "globex"
CREATOR = "user-creator"
CASE_ID = "case-1"


class ScriptedGenerator:
    """Records prompts and returns numbered responses.

    With ``hold_deep_thinking`` set, deep-thinking calls signal ``holding``
    and then wait for ``release``.
    """

    def __init__(self) -> None:
        self.calls: list[tuple[str, bool]] = []
        self.fail_on: str | None = None
        self.hold_deep_thinking = False
        self.holding = asyncio.Event()
        self.release = asyncio.Event()

    async def generate(self, prompt: str, deep_thinking: bool = False) -> str:
        self.calls.append((prompt, deep_thinking))
        if deep_thinking and self.hold_deep_thinking:
            self.holding.set()
            await self.release.wait()
        if self.fail_on is not None and self.fail_on in prompt:
            raise ExternalServiceError("generation", "backend unavailable")
        return f"generated text #{len(self.calls)}"


class FlakyNotifier(InMemoryNotifier):
    """Fails delivery to the users listed in ``failing``."""

    def __init__(self) -> None:
        super().__init__()
        self.failing: set[str] = set()

    async def notify(self, title, body, user_id, kind, data) -> None:
        if user_id in self.failing:
            raise ConnectionError(f"push gateway refused {user_id}")
        await super().notify(title, body, user_id, kind, data)


@pytest.fixture
def tenant() -> TenantContext:
    return TenantContext(tenant_id=TENANT, user_id=CREATOR)


@pytest.fixture
def other_tenant() -> TenantContext:
    return TenantContext(tenant_id=OTHER_TENANT, user_id="intruder")


@pytest.fixture
def analyses() -> InMemoryAnalysisStore:
    store = InMemoryAnalysisStore()
    store.add_analysis(
        TENANT,
        DocumentAnalysis(
            id="an-1",
            document_id="doc-1",
            file_name="complaint.pdf",
            detected_type="Complaint",
            summary="Breach of supply contract",
            key_findings="Late deliveries in Q3",
            risk_level="HIGH",
            full_text="FULL TEXT OF THE COMPLAINT",
        ),
    )
    store.add_analysis(
        TENANT,
        DocumentAnalysis(
            id="an-2",
            document_id="doc-2",
            file_name="contract.pdf",
            detected_type="Contract",
            summary="Master supply agreement",
            key_findings="Liquidated damages clause",
            risk_level="MEDIUM",
            full_text="FULL TEXT OF THE CONTRACT",
        ),
    )
    store.add_action_item(
        TENANT,
        ActionItem(
            id="ai-1",
            analysis_id="an-1",
            description="File answer",
            priority="HIGH",
            status="OPEN",
            deadline=date(2026, 11, 2),
            category="Pleadings",
        ),
    )
    store.add_timeline_event(
        TENANT,
        TimelineEvent(
            id="te-1",
            analysis_id="an-1",
            title="Answer due",
            event_type="DEADLINE",
            event_date=date(2026, 11, 2),
        ),
    )
    store.add_timeline_event(
        TENANT,
        TimelineEvent(
            id="te-2",
            analysis_id="an-2",
            title="Contract signed",
            event_type="EXECUTION",
            event_date=date(2024, 3, 1),
        ),
    )
    return store


@pytest.fixture
def generator() -> ScriptedGenerator:
    return ScriptedGenerator()


@pytest.fixture
def artifacts() -> InMemoryArtifactSink:
    return InMemoryArtifactSink()


@pytest.fixture
def cases() -> InMemoryCaseDirectory:
    directory = InMemoryCaseDirectory()
    directory.assign(TENANT, CASE_ID, [CREATOR, "user-x", "user-y"])
    return directory


@pytest.fixture
def notifier() -> FlakyNotifier:
    return FlakyNotifier()


@pytest.fixture
def collaborators(analyses, generator, artifacts, cases, notifier) -> Collaborators:
    return Collaborators(
        analyses=analyses,
        generator=generator,
        artifacts=artifacts,
        cases=cases,
        notifier=notifier,
    )


@pytest.fixture
def templates() -> InMemoryTemplateRepository:
    return InMemoryTemplateRepository(
        [
            WorkflowTemplate.from_dict(
                {
                    "id": "due-diligence",
                    "name": "Due Diligence",
                    "steps": [
                        {"name": "Review", "type": "display", "display_type": "full"},
                        {"name": "Risks", "type": "synthesis", "synthesis_type": "risk_matrix"},
                        {"name": "Team review", "type": "action", "action_type": "notify_team"},
                        {
                            "name": "Report",
                            "type": "generation",
                            "generation_type": "due_diligence_report",
                        },
                    ],
                }
            ),
            WorkflowTemplate.from_dict(
                {
                    "id": "summaries",
                    "name": "Summaries",
                    "steps": [
                        {"name": "Review", "type": "display"},
                        {"name": "Summary", "type": "synthesis"},
                        {"name": "Report", "type": "generation"},
                    ],
                }
            ),
            WorkflowTemplate.from_dict(
                {
                    "id": "acme-private",
                    "name": "Acme Intake",
                    "organization_id": TENANT,
                    "steps": [{"name": "Review", "type": "display"}],
                }
            ),
            WorkflowTemplate(id="empty", name="Empty"),
        ]
    )


@pytest.fixture
def engine(collaborators, templates):
    config = CaseflowConfig(worker=WorkerConfig(dispatch_delay=0))
    return build_engine(
        collaborators,
        templates,
        config=config,
        repository=InMemoryWorkflowRepository(),
        transport=InMemoryTransport(poll_interval=0.01),
    )


async def settle(engine, lifespan: float = 0.1) -> None:
    """Let the worker drain every queued run request."""
    await engine.worker.start(lifespan=lifespan)
