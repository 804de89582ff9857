"""Command line interface for caseflow workers and inspection."""

from __future__ import annotations

import asyncio
import importlib
import logging
from pathlib import Path
from typing import Optional

import typer

from .contracts import TenantContext
from .exceptions import CaseflowError
from .persistence import get_repository
from .templates import InMemoryTemplateRepository, load_templates
from .tenancy import TenantLogFilter
from .worker import WorkflowWorker

LOG_FORMAT = "%(asctime)s %(levelname)s [%(tenant_id)s] %(name)s: %(message)s"

app = typer.Typer(help="CLI for caseflow workflow executions")

execution_app = typer.Typer(help="Inspect workflow executions")
template_app = typer.Typer(help="Inspect workflow templates")

app.add_typer(execution_app, name="execution")
app.add_typer(template_app, name="template")


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
    for handler in logging.getLogger().handlers:
        if not any(isinstance(f, TenantLogFilter) for f in handler.filters):
            handler.addFilter(TenantLogFilter())


@app.callback()
def main(log_level: str = typer.Option("INFO", help="Logging level")) -> None:
    """caseflow CLI entry point."""
    configure_logging(log_level)


@execution_app.command("list")
def execution_list(
    tenant: str = typer.Option(..., help="Tenant whose executions to list"),
    user: Optional[str] = typer.Option(None, help="Only executions created by this user"),
) -> None:
    """
    List a tenant's executions, newest first.

    Example:
        caseflow execution list --tenant acme
        # Output: 6f1c...    WAITING_USER    2/4    Due diligence
    """
    repo = get_repository()
    executions = asyncio.run(repo.list_executions(tenant, created_by=user))
    if not executions:
        typer.echo("No executions found")
        return
    for ex in executions:
        typer.echo(
            f"{ex.id}\t{ex.status.value}\t{ex.current_step}/{ex.total_steps}\t{ex.name}"
        )


@execution_app.command("show")
def execution_show(
    execution_id: str,
    tenant: str = typer.Option(..., help="Tenant that owns the execution"),
) -> None:
    """
    Show an execution with its step-by-step state.

    Example:
        caseflow execution show 6f1c... --tenant acme
        # Output: Execution 6f1c... (Due diligence): WAITING_USER 50%
        #         1. Review [display]: COMPLETED
        #         2. Notify [action]: WAITING_USER - Team members have been notified (2 notifications sent)
    """
    repo = get_repository()
    ex = asyncio.run(repo.get_execution(execution_id, tenant))
    if ex is None:
        typer.echo("Execution not found")
        raise typer.Exit(code=1)
    steps = asyncio.run(repo.list_steps(execution_id, tenant))
    typer.echo(
        f"Execution {ex.id} ({ex.name}): {ex.status.value} {ex.progress_percentage}%"
    )
    if ex.failure_reason:
        typer.echo(f"Failure: {ex.failure_reason}")
    for step in steps:
        line = f"{step.step_number}. {step.step_name} [{step.step_type.value}]: {step.status.value}"
        if step.error_message:
            line += f" - {step.error_message}"
        elif step.output_data is not None and hasattr(step.output_data, "message"):
            line += f" - {step.output_data.message}"
        typer.echo(line)


@template_app.command("list")
def template_list(
    path: Path,
    tenant: str = typer.Option(..., help="Tenant to list visible templates for"),
) -> None:
    """List the templates in a YAML file that ``tenant`` may start."""
    try:
        templates = InMemoryTemplateRepository(load_templates(path))
    except (CaseflowError, OSError) as exc:
        typer.secho(f"Could not load templates: {exc}", fg=typer.colors.RED)
        raise typer.Exit(code=1)

    visible = asyncio.run(templates.list_templates(tenant))
    if not visible:
        typer.echo("No templates found")
        return
    for t in visible:
        kinds = ", ".join(step.step_type.value for step in t.steps)
        owner = t.organization_id or "system"
        typer.echo(f"{t.id}\t{t.name}\t{owner}\t{kinds}")


def _load_factory(spec: str):
    module_name, _, attr = spec.partition(":")
    if not module_name or not attr:
        raise typer.BadParameter("expected 'module:factory'")
    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise typer.BadParameter(f"cannot import {module_name}: {exc}")
    factory = getattr(module, attr, None)
    if factory is None:
        raise typer.BadParameter(f"{module_name} has no attribute {attr}")
    return factory


@app.command("worker")
def worker(
    factory: str = typer.Option(
        ..., help="'module:function' returning a configured WorkflowWorker"
    ),
    lifespan: Optional[float] = typer.Option(
        None, help="Stop after this many seconds (default: run until stopped)"
    ),
    recover_unacked: bool = typer.Option(
        False,
        "--recover-unacked",
        help="Requeue requests a crashed worker took but never acknowledged",
    ),
) -> None:
    """
    Run a worker that consumes workflow run requests.

    The worker needs the application's collaborators (analysis store,
    generator, artifact sink, ...), so it is built by a user-supplied factory.

    Example:
        caseflow worker --factory myapp.workflows:build_worker
    """
    built = _load_factory(factory)()
    if not isinstance(built, WorkflowWorker):
        typer.secho(
            f"{factory} returned {type(built).__name__}, expected WorkflowWorker",
            fg=typer.colors.RED,
        )
        raise typer.Exit(code=1)
    typer.echo("Starting workflow worker")
    asyncio.run(built.start(lifespan=lifespan, recover_unacked=recover_unacked))


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    app()
