import asyncio
import textwrap

import pytest
from typer.testing import CliRunner

import caseflow.persistence as persistence
from caseflow.cli import app
from caseflow.models import ExecutionStatus, StepExecution, StepStatus, WorkflowExecution
from caseflow.persistence import InMemoryWorkflowRepository
from caseflow.steps.configs import ActionConfig, DisplayConfig, StepInput
from caseflow.steps.results import ActionResult

runner = CliRunner()


@pytest.fixture
def repo(monkeypatch) -> InMemoryWorkflowRepository:
    repo = InMemoryWorkflowRepository()
    monkeypatch.setattr(persistence, "_repository_instance", repo)
    return repo


def _seed(repo, tenant_id="acme", name="Smith intake") -> WorkflowExecution:
    execution = WorkflowExecution(
        tenant_id=tenant_id,
        template_id="tpl",
        template_name="Intake",
        name=name,
        created_by="user-1",
        total_steps=2,
        status=ExecutionStatus.WAITING_USER,
        current_step=1,
        progress_percentage=50,
    )
    steps = [
        StepExecution(
            execution_id=execution.id,
            tenant_id=tenant_id,
            step_number=1,
            step_name="Review",
            step_type="display",
            status=StepStatus.COMPLETED,
            input_data=StepInput(config=DisplayConfig()),
        ),
        StepExecution(
            execution_id=execution.id,
            tenant_id=tenant_id,
            step_number=2,
            step_name="Approve",
            step_type="action",
            status=StepStatus.WAITING_USER,
            input_data=StepInput(config=ActionConfig(action_type="approval")),
            output_data=ActionResult(
                action_type="approval", message="Waiting for client/partner approval"
            ),
        ),
    ]
    asyncio.run(repo.create_execution(execution, steps))
    return execution


def test_execution_list_is_tenant_scoped(repo):
    mine = _seed(repo)
    theirs = _seed(repo, tenant_id="globex", name="Other")

    result = runner.invoke(app, ["execution", "list", "--tenant", "acme"])
    assert result.exit_code == 0, result.stdout
    assert mine.id in result.stdout
    assert "WAITING_USER" in result.stdout
    assert theirs.id not in result.stdout

    empty = runner.invoke(app, ["execution", "list", "--tenant", "acme", "--user", "nobody"])
    assert "No executions found" in empty.stdout


def test_execution_show_details_and_missing(repo):
    execution = _seed(repo)

    result = runner.invoke(app, ["execution", "show", execution.id, "--tenant", "acme"])
    assert result.exit_code == 0, result.stdout
    assert "WAITING_USER 50%" in result.stdout
    assert "1. Review [display]: COMPLETED" in result.stdout
    assert "Waiting for client/partner approval" in result.stdout

    foreign = runner.invoke(app, ["execution", "show", execution.id, "--tenant", "globex"])
    assert foreign.exit_code == 1
    assert "Execution not found" in foreign.stdout


def test_template_list(tmp_path):
    path = tmp_path / "templates.yaml"
    path.write_text(
        textwrap.dedent(
            """
            templates:
              - id: dd
                name: Due Diligence
                steps:
                  - {name: Review, type: display}
                  - {name: Report, type: generation}
              - id: private
                name: Private
                organization_id: globex
                steps:
                  - {name: Review, type: display}
            """
        )
    )

    result = runner.invoke(app, ["template", "list", str(path), "--tenant", "acme"])
    assert result.exit_code == 0, result.stdout
    assert "dd\tDue Diligence\tsystem\tdisplay, generation" in result.stdout
    assert "private" not in result.stdout


def test_template_list_reports_invalid_file(tmp_path):
    path = tmp_path / "templates.yaml"
    path.write_text("templates:\n  - {id: x, name: X, steps: [{type: teleport}]}\n")

    result = runner.invoke(app, ["template", "list", str(path), "--tenant", "acme"])
    assert result.exit_code == 1
    assert "Could not load templates" in result.stdout


def test_worker_runs_factory_worker(tmp_path, monkeypatch):
    (tmp_path / "cli_worker_factory.py").write_text(
        textwrap.dedent(
            """
            from caseflow.persistence import InMemoryWorkflowRepository
            from caseflow.transports import InMemoryTransport
            from caseflow.worker import WorkflowWorker

            class Idle:
                async def run(self, execution_id, tenant):
                    pass

            def build():
                return WorkflowWorker(
                    InMemoryTransport(poll_interval=0.01),
                    Idle(),
                    InMemoryWorkflowRepository(),
                    dispatch_delay=0,
                )

            def wrong():
                return object()
            """
        )
    )
    monkeypatch.syspath_prepend(str(tmp_path))

    ok = runner.invoke(
        app, ["worker", "--factory", "cli_worker_factory:build", "--lifespan", "0.05"]
    )
    assert ok.exit_code == 0, ok.stdout
    assert "Starting workflow worker" in ok.stdout

    bad = runner.invoke(app, ["worker", "--factory", "cli_worker_factory:wrong"])
    assert bad.exit_code == 1
    assert "expected WorkflowWorker" in bad.stdout

    missing = runner.invoke(app, ["worker", "--factory", "no_colon_here"])
    assert missing.exit_code != 0
