"""Run a due-diligence workflow end to end with in-memory collaborators.

Also usable as a worker factory:

    caseflow worker --factory guides.in_memory_example:build_worker
"""

import asyncio

from caseflow import TenantContext, WorkflowTemplate, build_engine
from caseflow.collaborators import (
    Collaborators,
    DocumentAnalysis,
    InMemoryAnalysisStore,
    InMemoryArtifactSink,
    InMemoryCaseDirectory,
    InMemoryNotifier,
)
from caseflow.collaborators.agent_generator import AgentTextGenerator
from caseflow.templates import InMemoryTemplateRepository

TENANT = TenantContext(tenant_id="acme", user_id="alice")

TEMPLATE = WorkflowTemplate.from_dict(
    {
        "id": "due-diligence",
        "name": "Due Diligence",
        "steps": [
            {"name": "Review documents", "type": "display", "display_type": "full"},
            {"name": "Risk matrix", "type": "synthesis", "synthesis_type": "risk_matrix"},
            {"name": "Team review", "type": "action", "action_type": "notify_team"},
            {
                "name": "DD report",
                "type": "integration",
                "integration_type": "create_draft",
                "generation_type": "due_diligence_report",
            },
        ],
    }
)


def build_collaborators() -> Collaborators:
    analyses = InMemoryAnalysisStore()
    analyses.add_analysis(
        TENANT.tenant_id,
        DocumentAnalysis(
            id="an-1",
            document_id="doc-1",
            file_name="share_purchase_agreement.pdf",
            detected_type="Contract",
            summary="Purchase of 100% of Target Ltd shares",
            key_findings="Uncapped indemnity for tax liabilities",
            risk_level="HIGH",
        ),
    )
    cases = InMemoryCaseDirectory()
    cases.assign(TENANT.tenant_id, "case-42", ["alice", "bob", "carol"])
    return Collaborators(
        analyses=analyses,
        generator=AgentTextGenerator.from_config(),
        artifacts=InMemoryArtifactSink(),
        cases=cases,
        notifier=InMemoryNotifier(),
    )


def build_engine_for_example():
    return build_engine(build_collaborators(), InMemoryTemplateRepository([TEMPLATE]))


def build_worker():
    return build_engine_for_example().worker


async def main():
    engine = build_engine_for_example()
    execution = await engine.service.start_workflow(
        "due-diligence",
        TENANT,
        creator_id="alice",
        document_ids=["doc-1"],
        case_id="case-42",
        name="Target Ltd acquisition",
    )
    await engine.worker.start(lifespan=1)

    snapshot = await engine.service.get_execution_with_steps(execution.id, TENANT)
    print(f"{snapshot.execution.name}: {snapshot.execution.status.value}")
    waiting = snapshot.step(3)
    print(f"Step 3 says: {waiting.output_data.message}")

    await engine.service.resume_workflow(execution.id, waiting.id, TENANT, {"approved": True})
    await engine.worker.start(lifespan=1)

    snapshot = await engine.service.get_execution_with_steps(execution.id, TENANT)
    print(f"{snapshot.execution.name}: {snapshot.execution.status.value}")


if __name__ == "__main__":
    asyncio.run(main())
