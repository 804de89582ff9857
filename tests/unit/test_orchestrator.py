"""Tests for the orchestrator's step walk and state transitions."""

import asyncio

import pytest

from conftest import CREATOR, TENANT
from caseflow.contracts import TenantContext
from caseflow.exceptions import NotFoundOrAccessDenied
from caseflow.models import (
    ExecutionStatus,
    StepExecution,
    StepStatus,
    WorkflowExecution,
)
from caseflow.orchestrator import Orchestrator
from caseflow.persistence import InMemoryWorkflowRepository
from caseflow.steps.configs import StepInput, parse_step_config
from caseflow.steps.registry import build_handlers

TENANT_CTX = TenantContext(tenant_id=TENANT, user_id=CREATOR)


async def _create(repo, *configs, document_ids=("doc-1", "doc-2")):
    execution = WorkflowExecution(
        tenant_id=TENANT,
        template_id="tpl",
        template_name="Template",
        name="Run",
        created_by=CREATOR,
        case_id="case-1",
        document_ids=list(document_ids),
        total_steps=len(configs),
    )
    steps = [
        StepExecution(
            execution_id=execution.id,
            tenant_id=TENANT,
            step_number=n,
            step_name=f"Step {n}",
            step_type=parse_step_config(config).type,
            input_data=StepInput(
                document_ids=list(document_ids), config=parse_step_config(config)
            ),
        )
        for n, config in enumerate(configs, start=1)
    ]
    await repo.create_execution(execution, steps)
    return execution


@pytest.fixture
def repo():
    return InMemoryWorkflowRepository()


@pytest.fixture
def orchestrator(repo, collaborators):
    return Orchestrator(repo, build_handlers(collaborators))


@pytest.mark.asyncio
async def test_run_completes_linear_workflow(repo, orchestrator):
    execution = await _create(
        repo, {"type": "display"}, {"type": "synthesis"}, {"type": "generation"}
    )
    await orchestrator.run(execution.id, TENANT_CTX)

    stored = await repo.get_execution(execution.id, TENANT)
    steps = await repo.list_steps(execution.id, TENANT)
    assert stored.status == ExecutionStatus.COMPLETED
    assert stored.current_step == 3
    assert stored.progress_percentage == 100
    assert stored.started_at is not None
    assert stored.completed_at is not None
    assert all(s.status == StepStatus.COMPLETED for s in steps)
    assert [s.output_data.kind for s in steps] == ["display", "synthesis", "generation"]


@pytest.mark.asyncio
async def test_failing_step_stops_the_run(repo, orchestrator, generator, artifacts):
    generator.fail_on = "LEGAL REPORT"
    execution = await _create(
        repo,
        {"type": "synthesis"},
        {"type": "generation"},
        {"type": "display"},
    )
    await orchestrator.run(execution.id, TENANT_CTX)

    stored = await repo.get_execution(execution.id, TENANT)
    steps = await repo.list_steps(execution.id, TENANT)
    assert stored.status == ExecutionStatus.FAILED
    assert [s.status for s in steps] == [
        StepStatus.COMPLETED,
        StepStatus.FAILED,
        StepStatus.PENDING,
    ]
    assert "backend unavailable" in steps[1].error_message
    assert steps[1].output_data is None
    # progress freezes at the last completed step and earlier artifacts stay
    assert stored.current_step == 1
    assert stored.progress_percentage == 33
    assert len(artifacts.artifacts) == 1


@pytest.mark.asyncio
async def test_action_step_pauses_the_run(repo, orchestrator):
    execution = await _create(
        repo,
        {"type": "display"},
        {"type": "action", "action_type": "approval"},
        {"type": "display"},
    )
    await orchestrator.run(execution.id, TENANT_CTX)

    stored = await repo.get_execution(execution.id, TENANT)
    steps = await repo.list_steps(execution.id, TENANT)
    assert stored.status == ExecutionStatus.WAITING_USER
    assert [s.status for s in steps] == [
        StepStatus.COMPLETED,
        StepStatus.WAITING_USER,
        StepStatus.PENDING,
    ]
    assert steps[1].output_data.message == "Waiting for client/partner approval"
    assert stored.current_step == 1
    assert stored.progress_percentage == 33


@pytest.mark.asyncio
async def test_run_is_noop_while_a_step_waits(repo, orchestrator, notifier):
    execution = await _create(
        repo, {"type": "action", "action_type": "notify_team"}, {"type": "display"}
    )
    await orchestrator.run(execution.id, TENANT_CTX)
    await orchestrator.run(execution.id, TENANT_CTX)

    assert len(notifier.sent) == 2
    stored = await repo.get_execution(execution.id, TENANT)
    assert stored.status == ExecutionStatus.WAITING_USER


@pytest.mark.asyncio
async def test_run_is_noop_on_terminal_execution(repo, orchestrator, generator):
    execution = await _create(repo, {"type": "synthesis"})
    await orchestrator.run(execution.id, TENANT_CTX)
    await orchestrator.run(execution.id, TENANT_CTX)
    assert len(generator.calls) == 1


@pytest.mark.asyncio
async def test_run_keeps_original_start_time_and_skips_completed_steps(repo, orchestrator, generator):
    execution = await _create(
        repo,
        {"type": "synthesis"},
        {"type": "action"},
        {"type": "generation"},
    )
    await orchestrator.run(execution.id, TENANT_CTX)
    paused = await repo.get_execution(execution.id, TENANT)

    steps = await repo.list_steps(execution.id, TENANT)
    waiting = steps[1]
    waiting.status = StepStatus.COMPLETED
    await repo.save_step(waiting)

    await orchestrator.run(execution.id, TENANT_CTX)
    stored = await repo.get_execution(execution.id, TENANT)
    assert stored.status == ExecutionStatus.COMPLETED
    assert stored.started_at == paused.started_at
    assert [deep for _, deep in generator.calls] == [False, True]


@pytest.mark.asyncio
async def test_run_stops_when_step_already_claimed(repo, orchestrator, generator):
    execution = await _create(repo, {"type": "synthesis"}, {"type": "generation"})
    steps = await repo.list_steps(execution.id, TENANT)
    steps[0].status = StepStatus.RUNNING
    await repo.save_step(steps[0])

    await orchestrator.run(execution.id, TENANT_CTX)
    assert generator.calls == []
    stored_steps = await repo.list_steps(execution.id, TENANT)
    assert stored_steps[1].status == StepStatus.PENDING


@pytest.mark.asyncio
async def test_run_under_other_tenant_is_rejected(repo, orchestrator, generator):
    execution = await _create(repo, {"type": "synthesis"})
    with pytest.raises(NotFoundOrAccessDenied):
        await orchestrator.run(execution.id, TenantContext(tenant_id="globex"))
    stored = await repo.get_execution(execution.id, TENANT)
    assert stored.status == ExecutionStatus.PENDING
    assert generator.calls == []


def test_orchestrator_requires_handler_for_every_step_type(repo, collaborators):
    handlers = build_handlers(collaborators)
    handlers.pop(next(iter(handlers)))
    with pytest.raises(ValueError, match="No handler registered"):
        Orchestrator(repo, handlers)


@pytest.mark.asyncio
async def test_duplicate_run_during_a_step_does_not_strand_the_execution(
    repo, orchestrator, generator
):
    execution = await _create(
        repo, {"type": "synthesis"}, {"type": "generation"}, {"type": "synthesis"}
    )
    generator.hold_deep_thinking = True
    first = asyncio.create_task(orchestrator.run(execution.id, TENANT_CTX))
    await asyncio.wait_for(generator.holding.wait(), timeout=1)

    # A redelivered request finds step 2 claimed and leaves everything alone.
    await orchestrator.run(execution.id, TENANT_CTX)
    # Another writer touches the execution row while step 2 is in flight.
    await repo.save_execution(await repo.get_execution(execution.id, TENANT))

    generator.release.set()
    await asyncio.wait_for(first, timeout=1)

    stored = await repo.get_execution(execution.id, TENANT)
    assert stored.status == ExecutionStatus.COMPLETED
    assert stored.progress_percentage == 100
    steps = await repo.list_steps(execution.id, TENANT)
    assert [s.status for s in steps] == [StepStatus.COMPLETED] * 3
    assert [deep for _, deep in generator.calls] == [False, True, False]


@pytest.mark.asyncio
async def test_duplicate_run_does_not_touch_the_execution_row(repo, orchestrator, generator):
    execution = await _create(repo, {"type": "generation"})
    generator.hold_deep_thinking = True
    first = asyncio.create_task(orchestrator.run(execution.id, TENANT_CTX))
    await asyncio.wait_for(generator.holding.wait(), timeout=1)
    before = await repo.get_execution(execution.id, TENANT)

    await orchestrator.run(execution.id, TENANT_CTX)

    after = await repo.get_execution(execution.id, TENANT)
    assert after.version == before.version
    assert after.status == ExecutionStatus.RUNNING
    generator.release.set()
    await first
