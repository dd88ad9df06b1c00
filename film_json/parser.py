"""Raw JSON text handling: auto-fix heuristics, parse, syntax diagnostics.

The auto-fix pass is pattern based and deliberately shallow: it never tries
to re-balance braces or understand nesting.  When parsing still fails, the
decode error is turned into a diagnostic carrying the line number and a small
window of surrounding source lines.
"""
from __future__ import annotations

import json
import logging
import re
from typing import Any, List, Optional

from pydantic import BaseModel, Field

from film_json.diagnostics import Diagnostic

logger = logging.getLogger(__name__)

# (name, pattern, replacement), applied in this order.
_FIXES = (
    ("trailing comma", re.compile(r",(\s*[}\]])"), r"\1"),
    ("single-quoted keys", re.compile(r"'([^']+)'(\s*:)"), r'"\1"\2'),
    ("string null", re.compile(r':\s*"null"'), ": null"),
    ("repeated commas", re.compile(r",\s*,"), ","),
)

_POSITION_RE = re.compile(r"position\s+(\d+)", re.IGNORECASE)

# Lines shown on each side of the failing line.
_CONTEXT_RADIUS = 2


class AutoFixResult(BaseModel):
    fixed: bool
    text: str
    fixes: List[str] = Field(default_factory=list)


class ParseResult(BaseModel):
    is_valid: bool
    data: Any = None
    errors: List[Diagnostic] = Field(default_factory=list)
    auto_fixed: bool = False
    fixed_text: Optional[str] = None
    fix_count: int = 0


# ── Auto-fix ──────────────────────────────────────────────────────────────────


def auto_fix_json(text: str) -> AutoFixResult:
    """Apply every matching repair to *text*.

    Repairs: trailing commas before ``}``/``]``; ``'key':`` to ``"key":``;
    ``"null"`` values to ``null``; ``,,`` to ``,``.  ``fixes`` names the
    repairs that fired, in application order; ``fixed`` is False and the text
    is returned unchanged when none did.
    """
    fixes: List[str] = []
    for name, pattern, replacement in _FIXES:
        if pattern.search(text):
            text = pattern.sub(replacement, text)
            fixes.append(name)
    return AutoFixResult(fixed=bool(fixes), text=text, fixes=fixes)


# ── Syntax diagnostics ────────────────────────────────────────────────────────


def line_of_offset(text: str, offset: int) -> int:
    """1-based line number of character *offset* in *text*."""
    return text[:offset].count("\n") + 1


def context_window(text: str, line: int, radius: int = _CONTEXT_RADIUS) -> str:
    """Lines ``line-radius .. line+radius`` (clamped), each prefixed "<n>: "."""
    all_lines = text.split("\n")
    start = max(0, line - 1 - radius)
    end = min(len(all_lines), line + radius)
    return "\n".join(f"{start + i + 1}: {l}" for i, l in enumerate(all_lines[start:end]))


def extract_syntax_diagnostic(message: str, text: str) -> Diagnostic:
    """Turn a parse-failure *message* into a line-numbered diagnostic.

    The character offset is taken from ``position <n>`` in the message.  When
    no offset is present the diagnostic has an empty path and no suggestion.
    """
    match = _POSITION_RE.search(message)
    if not match:
        return Diagnostic(
            type="syntax", severity="error", category="schema", path="", message=message,
        )
    line = line_of_offset(text, int(match.group(1)))
    return Diagnostic(
        type="syntax",
        severity="error",
        category="schema",
        path=f"Line {line}",
        message=message,
        line=line,
        suggestion="Near the error:\n" + context_window(text, line),
    )


def decode_error_message(exc: json.JSONDecodeError) -> str:
    return f"{exc.msg}: line {exc.lineno} column {exc.colno} (position {exc.pos})"


# ── Parsing ───────────────────────────────────────────────────────────────────


def parse_json(text: str) -> ParseResult:
    """Parse *text*, falling back to the auto-fix pass.

    Returns a ParseResult:
      - valid, no errors                    — parsed as-is
      - valid, one info diagnostic per fix  — parsed after auto-fix
      - invalid, one syntax error           — empty input or unrecoverable
    """
    if not text.strip():
        return ParseResult(
            is_valid=False,
            errors=[
                Diagnostic(
                    type="syntax", severity="error", category="schema",
                    path="", message="JSON input is empty.",
                )
            ],
        )

    try:
        return ParseResult(is_valid=True, data=json.loads(text))
    except json.JSONDecodeError as first_error:
        fix = auto_fix_json(text)
        if fix.fixed:
            try:
                data = json.loads(fix.text)
            except json.JSONDecodeError:
                logger.debug("auto-fix applied %s but text still does not parse", fix.fixes)
            else:
                logger.info("parsed after auto-fix: %s", ", ".join(fix.fixes))
                return ParseResult(
                    is_valid=True,
                    data=data,
                    errors=[
                        Diagnostic(
                            type="syntax", severity="info", category="schema",
                            path="", message=f"Auto-fixed: {name}",
                        )
                        for name in fix.fixes
                    ],
                    auto_fixed=True,
                    fixed_text=fix.text,
                    fix_count=len(fix.fixes),
                )
        return ParseResult(
            is_valid=False,
            errors=[extract_syntax_diagnostic(decode_error_message(first_error), text)],
        )


def salvage_json_object(text: str) -> str:
    """Return the outermost ``{...}`` span of *text* if *text* does not parse.

    Handles files where the JSON object is wrapped in prose or code fences.
    Text that parses, or that has no brace pair, is returned unchanged.
    """
    try:
        json.loads(text)
        return text
    except json.JSONDecodeError:
        pass
    first = text.find("{")
    last = text.rfind("}")
    if first != -1 and last > first:
        return text[first:last + 1]
    return text


def format_json(text: str) -> str:
    """Pretty-print *text* (indent 2); unparseable text is returned as-is."""
    try:
        return json.dumps(json.loads(text), indent=2, ensure_ascii=False)
    except json.JSONDecodeError:
        return text
