"""Preview, gate and apply a parsed plan against the companion service."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path
from typing import Protocol

from rich.console import Console
from rich.markup import escape

from raze.agent.edits import apply_edit
from raze.agent.models import (
    Action,
    ActionOutcome,
    EditFile,
    ListDirectory,
    Plan,
    ReadFile,
    SessionState,
    TurnConfig,
    TurnReport,
    WriteFile,
)
from raze.companion.client import ServiceError

LOGGER = logging.getLogger(__name__)

READ_EXCERPT_CHARS = 2000
ConfirmPlan = Callable[[Plan], bool]


class FileService(Protocol):
    def read_file(self, path: str) -> dict[str, object] | None: ...

    def write_file(self, path: str, content: str) -> dict[str, object]: ...

    def list_directory(self, path: str) -> dict[str, object] | None: ...


class Availability(Protocol):
    def ensure_available(self) -> bool: ...


def describe_action(action: Action) -> str:
    return f"{action.kind} {action.path}"


class ExecutionEngine:
    """Runs the preview/confirm/apply cycle for one plan.

    Actions are applied strictly in order. A :class:`ServiceError` fails only
    the action that raised it; every action in the plan is attempted.
    Without a ``confirm_plan`` callback, a plan that is neither ``auto`` nor a
    dry run is declined.
    """

    def __init__(
        self,
        *,
        service: FileService,
        supervisor: Availability,
        log_dir: str | Path | None = None,
        console: Console | None = None,
        confirm_plan: ConfirmPlan | None = None,
    ) -> None:
        self.service = service
        self.supervisor = supervisor
        self.log_dir = Path(log_dir) if log_dir is not None else None
        self.console = console or Console()
        self.confirm_plan = confirm_plan

    def run_turn(self, plan: Plan, config: TurnConfig, session: SessionState) -> TurnReport:
        self._print_preview(plan)

        if not self._resolve_proceed(plan, config):
            self.console.print("[yellow]Action(s) cancelled.[/yellow]")
            return TurnReport(proceeded=False, aborted="declined", active_file=session.last_file)

        if not config.dry_run and not self.supervisor.ensure_available():
            self.console.print(
                f"[red]Companion service is not reachable on port {config.port}.[/red]"
            )
            self.console.print(
                f"[yellow]Start it manually with: raze serve --port {config.port}[/yellow]"
            )
            return TurnReport(
                proceeded=False,
                aborted="companion_unavailable",
                active_file=session.last_file,
            )

        report = TurnReport(proceeded=True)
        for index, action in enumerate(plan.actions, start=1):
            if config.dry_run:
                outcome = ActionOutcome(index=index, action=action, status="skipped")
            else:
                outcome = self._attempt(index, action, session)
            report.outcomes.append(outcome)
            self._append_log(outcome, config=config)

        if config.dry_run:
            self.console.print("[cyan]Dry run: no actions were executed.[/cyan]")
        elif plan.primary_file:
            session.last_file = plan.primary_file

        report.active_file = session.last_file
        if report.failures:
            self.console.print(
                f"[yellow]{report.failures} of {len(plan.actions)} action(s) failed.[/yellow]"
            )
        if session.last_file:
            self.console.print(f"[cyan]Active file:[/cyan] {escape(session.last_file)}")
        return report

    def _print_preview(self, plan: Plan) -> None:
        self.console.print(f"[cyan]Plan ({len(plan.actions)} action(s)):[/cyan]")
        for index, action in enumerate(plan.actions, start=1):
            self.console.print(f"  {index}. {escape(describe_action(action))}")

    def _resolve_proceed(self, plan: Plan, config: TurnConfig) -> bool:
        if config.auto or config.dry_run:
            return True
        if not self.confirm_plan:
            return False
        return self.confirm_plan(plan)

    def _attempt(self, index: int, action: Action, session: SessionState) -> ActionOutcome:
        try:
            detail = self._execute(action, session)
        except ServiceError as exc:
            self.console.print(
                f"[red]Action {index} ({escape(describe_action(action))}) failed:[/red] "
                f"{escape(str(exc))}"
            )
            return ActionOutcome(index=index, action=action, status="failed", detail=str(exc))

        if detail is not None:
            self.console.print(
                f"[red]Action {index} ({escape(describe_action(action))}) failed:[/red] "
                f"{escape(detail)}"
            )
            return ActionOutcome(index=index, action=action, status="failed", detail=detail)

        self.console.print(f"[green]Action {index} ({escape(describe_action(action))}) done.[/green]")
        return ActionOutcome(index=index, action=action, status="ok")

    def _execute(self, action: Action, session: SessionState) -> str | None:
        """Apply one action; return a failure detail or ``None`` on success."""
        if isinstance(action, WriteFile):
            self.service.write_file(action.path, action.content)
            session.last_file = action.path
            return None

        if isinstance(action, EditFile):
            current = self.service.read_file(action.path)
            original = current.get("content") if current else None
            updated = apply_edit(
                original if isinstance(original, str) else "",
                action.find,
                action.replace,
            )
            self.service.write_file(action.path, updated)
            session.last_file = action.path
            return None

        if isinstance(action, ReadFile):
            result = self.service.read_file(action.path)
            content = result.get("content") if result else None
            if not isinstance(content, str):
                return "file could not be read"
            self.console.print(f"[bold]--- {escape(action.path)} ---[/bold]")
            self.console.print(
                content[:READ_EXCERPT_CHARS],
                markup=False,
                highlight=False,
                soft_wrap=True,
            )
            if len(content) > READ_EXCERPT_CHARS:
                self.console.print(f"[dim]... ({len(content)} characters total)[/dim]")
            session.last_file = action.path
            return None

        if isinstance(action, ListDirectory):
            listing = self.service.list_directory(action.path)
            if listing is None:
                return "directory could not be listed"
            self.console.print(
                json.dumps(listing, indent=2, ensure_ascii=False),
                markup=False,
                highlight=False,
                soft_wrap=True,
            )
            return None

        raise TypeError(f"Unsupported action type: {type(action).__name__}")

    def _append_log(self, outcome: ActionOutcome, *, config: TurnConfig) -> None:
        if self.log_dir is None:
            return
        day_file = self.log_dir / f"turns-{datetime.now(timezone.utc).date().isoformat()}.log"
        entry = {
            "log_version": 1,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "provider": config.provider,
            "model": config.model,
            "port": config.port,
            "dry_run": config.dry_run,
            "index": outcome.index,
            "action": outcome.action.kind,
            "path": outcome.action.path,
            "status": outcome.status,
            "detail": outcome.detail,
        }
        try:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            with day_file.open("a", encoding="utf-8") as handle:
                handle.write(json.dumps(entry) + "\n")
        except OSError as exc:
            LOGGER.warning(
                "turn_log_write_failed",
                extra={"log_dir": str(self.log_dir), "error": str(exc)},
            )
