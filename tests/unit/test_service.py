"""Tests for the synchronous surface of the workflow service."""

import pytest

from conftest import CREATOR, settle
from caseflow.contracts import RUN_TOPIC
from caseflow.exceptions import (
    InvalidTemplateError,
    NotFoundOrAccessDenied,
    StepNotWaitingError,
)
from caseflow.models import ExecutionStatus, StepStatus
from caseflow.steps.configs import SynthesisConfig


@pytest.mark.asyncio
async def test_start_materializes_records_and_only_schedules(engine, tenant, generator):
    execution = await engine.service.start_workflow(
        "summaries",
        tenant,
        creator_id=CREATOR,
        document_ids=["doc-1", "doc-2"],
        collection_id="col-9",
    )

    assert execution.status == ExecutionStatus.PENDING
    assert execution.name == "Summaries"
    assert execution.total_steps == 3
    # nothing runs until a worker consumes the request
    assert generator.calls == []
    assert engine.transport.pending(RUN_TOPIC) == 1

    snapshot = await engine.service.get_execution_with_steps(execution.id, tenant)
    assert [s.step_number for s in snapshot.steps] == [1, 2, 3]
    assert all(s.status == StepStatus.PENDING for s in snapshot.steps)
    assert snapshot.step(2).input_data.config == SynthesisConfig()
    assert snapshot.step(2).input_data.document_ids == ["doc-1", "doc-2"]


@pytest.mark.asyncio
async def test_start_rejects_unknown_foreign_and_empty_templates(engine, tenant, other_tenant):
    with pytest.raises(NotFoundOrAccessDenied):
        await engine.service.start_workflow("nope", tenant, creator_id=CREATOR)
    with pytest.raises(NotFoundOrAccessDenied):
        await engine.service.start_workflow("acme-private", other_tenant, creator_id="intruder")
    with pytest.raises(InvalidTemplateError):
        await engine.service.start_workflow("empty", tenant, creator_id=CREATOR)
    assert engine.transport.pending(RUN_TOPIC) == 0


@pytest.mark.asyncio
async def test_custom_name_is_kept(engine, tenant):
    execution = await engine.service.start_workflow(
        "acme-private", tenant, creator_id=CREATOR, name="Intake for Smith"
    )
    assert execution.name == "Intake for Smith"
    assert execution.template_name == "Acme Intake"


@pytest.mark.asyncio
async def test_resume_rejects_steps_that_are_not_waiting(engine, tenant):
    execution = await engine.service.start_workflow("summaries", tenant, creator_id=CREATOR)
    snapshot = await engine.service.get_execution_with_steps(execution.id, tenant)

    with pytest.raises(StepNotWaitingError):
        await engine.service.resume_workflow(execution.id, snapshot.step(1).id, tenant)


@pytest.mark.asyncio
async def test_resume_rejects_step_from_another_execution(engine, tenant):
    first = await engine.service.start_workflow("due-diligence", tenant, creator_id=CREATOR)
    second = await engine.service.start_workflow("due-diligence", tenant, creator_id=CREATOR)
    await settle(engine)

    other_step = (await engine.service.get_execution_with_steps(second.id, tenant)).step(3)
    with pytest.raises(NotFoundOrAccessDenied):
        await engine.service.resume_workflow(first.id, other_step.id, tenant)


@pytest.mark.asyncio
async def test_list_executions_and_templates(engine, tenant, other_tenant):
    mine = await engine.service.start_workflow("summaries", tenant, creator_id=CREATOR)
    theirs = await engine.service.start_workflow(
        "summaries", tenant, creator_id="user-x"
    )

    assert {e.id for e in await engine.service.list_executions(tenant)} == {mine.id, theirs.id}
    assert [e.id for e in await engine.service.list_executions(tenant, created_by=CREATOR)] == [mine.id]
    assert await engine.service.list_executions(other_tenant) == []

    assert "acme-private" in [t.id for t in await engine.service.list_templates(tenant)]
    assert "acme-private" not in [t.id for t in await engine.service.list_templates(other_tenant)]
    assert (await engine.service.get_template("summaries", other_tenant)).name == "Summaries"
