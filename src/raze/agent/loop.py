"""One prompt-to-plan-to-execution cycle per user turn."""

from __future__ import annotations

import logging
from typing import Protocol

from rich.console import Console
from rich.markup import escape

from raze.agent.engine import ExecutionEngine
from raze.agent.models import ParseFailure, SessionState, TurnConfig, TurnReport
from raze.agent.plan_parser import extract_plan
from raze.llm.client import LLMRequestError

LOGGER = logging.getLogger(__name__)


class PlanModel(Protocol):
    def complete(self, prompt: str, *, current_file: str | None = None) -> str: ...


class HealthProbe(Protocol):
    def health(self) -> bool: ...


class AssistantLoop:
    """Runs the prompt/model/plan/execute cycle and keeps session state."""

    def __init__(
        self,
        *,
        client: PlanModel,
        engine: ExecutionEngine,
        companion: HealthProbe,
        config: TurnConfig,
        session: SessionState | None = None,
        console: Console | None = None,
    ) -> None:
        self.client = client
        self.engine = engine
        self.companion = companion
        self.config = config
        self.session = session or SessionState()
        self.console = console or engine.console

    def handle_prompt(self, prompt: str) -> TurnReport | None:
        """Run a single turn; ``None`` means no plan was executed."""
        try:
            with self.console.status("AI is thinking..."):
                raw_text = self.client.complete(prompt, current_file=self.session.last_file)
        except LLMRequestError as exc:
            LOGGER.error("turn_llm_failed", extra={"error": str(exc)})
            self.console.print(f"[red]AI request failed:[/red] {escape(str(exc))}")
            if not self.companion.health():
                self.console.print(
                    "[yellow]Hint: the companion service on port "
                    f"{self.config.port} is also not responding; start it with "
                    f"'raze serve --port {self.config.port}'.[/yellow]"
                )
            return None

        plan = extract_plan(raw_text)
        if isinstance(plan, ParseFailure):
            LOGGER.info("turn_plan_unparsed", extra={"reason": plan.reason})
            self.console.print(raw_text, markup=False, highlight=False, soft_wrap=True)
            return None

        if not plan.actions:
            self.console.print("[yellow]The model returned an empty plan.[/yellow]")
            return None

        return self.engine.run_turn(plan, self.config, self.session)
