"""Command-line interface for raze."""

from __future__ import annotations

import argparse
import logging
from typing import cast

from rich.console import Console
from rich.prompt import Confirm

from .agent.engine import ExecutionEngine
from .agent.loop import AssistantLoop
from .agent.models import Plan, ProviderName, SessionState, TurnConfig
from .companion import create_companion
from .companion.launcher import serve
from .config import AppConfig
from .llm.client import SUPPORTED_PROVIDERS, LLMClient

LOGGER = logging.getLogger(__name__)
EXIT_WORDS = {"exit", "quit"}


class CLIArgs(argparse.Namespace):
    command: str | None
    prompt: list[str]
    provider: str | None
    model: str | None
    port: int | None
    auto: bool
    dry_run: bool
    host: str
    root: str | None


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="raze", description="raze developer assistant")
    subparsers = parser.add_subparsers(dest="command")

    ai = subparsers.add_parser("ai", help="Turn a natural-language request into file edits")
    ai.add_argument("prompt", nargs="*", help="Request for the model; omit for interactive chat")
    ai.add_argument(
        "--provider",
        choices=sorted(SUPPORTED_PROVIDERS),
        help="Model provider (overrides RAZE_PROVIDER).",
    )
    ai.add_argument("--model", help="Model to use (overrides RAZE_MODEL).")
    ai.add_argument("--port", type=int, help="Companion service port (overrides RAZE_PORT).")
    ai.add_argument(
        "--auto",
        action="store_true",
        default=None,
        help="Apply the plan without asking for confirmation.",
    )
    ai.add_argument(
        "--dry-run",
        dest="dry_run",
        action="store_true",
        default=None,
        help="Preview the plan without executing any action.",
    )

    serve_parser = subparsers.add_parser("serve", help="Run the companion service in the foreground")
    serve_parser.add_argument("--port", type=int, help="Port to serve on (overrides RAZE_PORT).")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Host to bind to.")
    serve_parser.add_argument("--root", default=None, help="Directory served (default: cwd).")
    return parser


def build_turn_config(args: CLIArgs, config: AppConfig) -> TurnConfig:
    provider = args.provider or config.provider
    return TurnConfig(
        provider=cast(ProviderName, provider),
        model=args.model or config.default_model_for(provider),
        port=args.port or config.port,
        auto=config.auto if args.auto is None else args.auto,
        dry_run=config.dry_run if args.dry_run is None else args.dry_run,
    )


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = cast(CLIArgs, parser.parse_args(argv))
    config = AppConfig.from_env()
    logging.basicConfig(level=getattr(logging, config.log_level, logging.WARNING))

    if args.command == "serve":
        serve(port=args.port or config.port, host=args.host, root=args.root)
        return 0
    if args.command != "ai":
        parser.print_help()
        return 0

    console = Console()
    turn_config = build_turn_config(args, config)
    if turn_config.provider not in SUPPORTED_PROVIDERS:
        console.print(f"[red]Unsupported provider: {turn_config.provider}[/red]")
        return 1

    client = LLMClient(
        provider=turn_config.provider,
        model=turn_config.model,
        api_key=config.api_key_for(turn_config.provider),
        api_url=config.api_url_for(turn_config.provider),
        system_prompt=config.system_prompt,
        timeout=config.request_timeout,
    )
    companion, supervisor = create_companion(turn_config.port)
    engine = ExecutionEngine(
        service=companion,
        supervisor=supervisor,
        log_dir=config.log_dir,
        console=console,
        confirm_plan=lambda plan: _confirm_plan(plan, console),
    )
    loop = AssistantLoop(
        client=client,
        engine=engine,
        companion=companion,
        config=turn_config,
        session=SessionState(),
        console=console,
    )

    prompt = " ".join(args.prompt).strip()
    if prompt:
        loop.handle_prompt(prompt)
        return 0

    console.print("[cyan]Interactive mode. Type 'exit' to quit.[/cyan]")
    while True:
        try:
            line = input("raze> ").strip()
        except EOFError:
            break
        if line.lower() in EXIT_WORDS:
            break
        if not line:
            continue
        loop.handle_prompt(line)

    LOGGER.debug("session_ended", extra={"last_file": loop.session.last_file})
    return 0


def _confirm_plan(plan: Plan, console: Console) -> bool:
    return Confirm.ask(f"Execute {len(plan.actions)} action(s)?", default=True, console=console)


if __name__ == "__main__":
    raise SystemExit(main())
