"""Data models used by the plan execution engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

ProviderName = Literal["openai", "gemini"]
OutcomeStatus = Literal["ok", "failed", "skipped"]
AbortReason = Literal["declined", "companion_unavailable"]


@dataclass(frozen=True, slots=True)
class WriteFile:
    """Replace a file's content."""

    path: str
    content: str

    kind = "write_file"


@dataclass(frozen=True, slots=True)
class EditFile:
    """Find/replace inside a file; ``find`` may be a ``/pattern/flags`` regex."""

    path: str
    find: str
    replace: str

    kind = "edit_file"


@dataclass(frozen=True, slots=True)
class ReadFile:
    path: str

    kind = "read_file"


@dataclass(frozen=True, slots=True)
class ListDirectory:
    path: str

    kind = "list_directory"


Action = WriteFile | EditFile | ReadFile | ListDirectory


@dataclass(frozen=True, slots=True)
class Plan:
    """Ordered actions extracted from one model response."""

    actions: tuple[Action, ...]
    primary_file: str | None = None


@dataclass(frozen=True, slots=True)
class ParseFailure:
    """Model output that did not contain a usable plan."""

    raw_text: str
    reason: str


@dataclass(slots=True)
class SessionState:
    """Process-lifetime hint about the file the user is working on."""

    last_file: str | None = None


@dataclass(frozen=True, slots=True)
class TurnConfig:
    """Per-invocation settings for one turn."""

    provider: ProviderName
    model: str
    port: int
    auto: bool = False
    dry_run: bool = False


@dataclass(slots=True)
class ActionOutcome:
    """Result of attempting a single action."""

    index: int
    action: Action
    status: OutcomeStatus
    detail: str | None = None


@dataclass(slots=True)
class TurnReport:
    """Captured outcome of one engine turn."""

    proceeded: bool
    aborted: AbortReason | None = None
    outcomes: list[ActionOutcome] = field(default_factory=list)
    active_file: str | None = None

    @property
    def failures(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.status == "failed")
