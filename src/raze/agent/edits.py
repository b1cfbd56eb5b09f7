"""Find/replace edits with optional ``/pattern/flags`` regex syntax."""

from __future__ import annotations

import logging
import re

LOGGER = logging.getLogger(__name__)

_REGEX_LITERAL = re.compile(r"^/(.+)/([A-Za-z]*)$", re.DOTALL)

_FLAG_MAP = {
    "i": re.IGNORECASE,
    "m": re.MULTILINE,
    "s": re.DOTALL,
    # no-ops
    "u": 0,
    "y": 0,
}


def apply_edit(original: str, find: str | None, replace: str | None) -> str:
    """Apply one edit and return the new content.

    ``find`` shaped like ``/pattern/flags`` is treated as a regular expression;
    the ``g`` flag replaces every match, otherwise only the first. Anything else
    is a literal substring replaced once. An empty ``find`` leaves the content
    untouched, and a regex that cannot be compiled or applied falls back to the
    literal behaviour.
    """
    if not find:
        return original
    replacement = replace or ""

    match = _REGEX_LITERAL.match(find)
    if match:
        try:
            return _apply_regex(original, match.group(1), match.group(2), replacement)
        except re.error as exc:
            LOGGER.warning(
                "edit_regex_fallback_to_literal",
                extra={"find": find, "error": str(exc)},
            )

    return original.replace(find, replacement, 1)


def _apply_regex(original: str, pattern: str, flags: str, replacement: str) -> str:
    compiled_flags = 0
    replace_all = False
    for flag in flags:
        if flag == "g":
            replace_all = True
            continue
        if flag not in _FLAG_MAP:
            raise re.error(f"unsupported regex flag {flag!r}")
        compiled_flags |= _FLAG_MAP[flag]

    compiled = re.compile(pattern, compiled_flags)
    return compiled.sub(replacement, original, count=0 if replace_all else 1)
