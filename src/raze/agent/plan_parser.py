"""Extract a structured action plan from free-form model output."""

from __future__ import annotations

import json
import logging
import re

from raze.agent.models import (
    Action,
    EditFile,
    ListDirectory,
    ParseFailure,
    Plan,
    ReadFile,
    WriteFile,
)

LOGGER = logging.getLogger(__name__)

_FENCED_BLOCK = re.compile(r"```(?:json)?[ \t]*\n(.*?)\n?```", re.IGNORECASE | re.DOTALL)


class _InvalidAction(ValueError):
    pass


def extract_plan(raw_text: str) -> Plan | ParseFailure:
    """Return the plan embedded in ``raw_text`` or a failure describing why not.

    A fenced code block wins over bare JSON. Without a fence, the first ``{`` is
    matched to its closing brace with a plain depth counter. Nothing here raises:
    every problem becomes a :class:`ParseFailure` so the caller can show the raw
    text instead of running a half-understood plan.
    """
    candidate = _find_candidate(raw_text or "")
    if candidate is None:
        return ParseFailure(raw_text=raw_text, reason="no JSON object found")

    try:
        parsed = json.loads(candidate)
    except json.JSONDecodeError as exc:
        LOGGER.debug("plan_json_decode_failed", extra={"error": str(exc)})
        return ParseFailure(raw_text=raw_text, reason=f"invalid JSON: {exc}")

    if not isinstance(parsed, dict) or not isinstance(parsed.get("actions"), list):
        return ParseFailure(raw_text=raw_text, reason="JSON has no 'actions' list")

    actions: list[Action] = []
    for index, entry in enumerate(parsed["actions"], start=1):
        try:
            actions.append(_to_action(entry))
        except _InvalidAction as exc:
            return ParseFailure(raw_text=raw_text, reason=f"action {index}: {exc}")

    primary_file = parsed.get("primaryFile", parsed.get("primary_file"))
    if not isinstance(primary_file, str) or not primary_file.strip():
        primary_file = None

    return Plan(actions=tuple(actions), primary_file=primary_file)


def _find_candidate(text: str) -> str | None:
    fenced = _FENCED_BLOCK.search(text)
    if fenced:
        return fenced.group(1)

    start = text.find("{")
    if start < 0:
        return None
    depth = 0
    for position in range(start, len(text)):
        char = text[position]
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
        if depth == 0:
            return text[start : position + 1]
    return None


def _to_action(entry: object) -> Action:
    if not isinstance(entry, dict):
        raise _InvalidAction("expected an object")

    kind = entry.get("action")
    path = entry.get("path", entry.get("target"))
    if path is None and kind == ListDirectory.kind:
        path = "."
    if not isinstance(path, str) or not path.strip():
        raise _InvalidAction("missing 'path'")

    if kind == WriteFile.kind:
        return WriteFile(path=path, content=_string_field(entry, "content"))
    if kind == EditFile.kind:
        return EditFile(
            path=path,
            find=_string_field(entry, "find"),
            replace=_string_field(entry, "replace"),
        )
    if kind == ReadFile.kind:
        return ReadFile(path=path)
    if kind == ListDirectory.kind:
        return ListDirectory(path=path)
    raise _InvalidAction(f"unsupported action {kind!r}")


def _string_field(entry: dict[str, object], key: str) -> str:
    value = entry.get(key, "")
    if value is None:
        return ""
    if not isinstance(value, str):
        raise _InvalidAction(f"'{key}' must be a string")
    return value
