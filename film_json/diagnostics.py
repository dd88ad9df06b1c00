"""Diagnostic artifact shared by the parser and the validators."""
from __future__ import annotations

from typing import Dict, Iterable, List, Literal, Optional

from pydantic import BaseModel

Severity = Literal["error", "warning", "info"]
DiagnosticType = Literal["syntax", "schema", "structure"]
Category = Literal["essential", "story", "visual", "schema", "other"]

CATEGORIES: tuple = ("essential", "story", "visual", "schema", "other")


class Diagnostic(BaseModel):
    """One finding about a document.

    ``path`` is a dotted/bracketed field path (``scenes[0].shots[2].shot_id``)
    or ``"Line <n>"`` for syntax failures; ``suggestion`` carries the source
    context window when one is available.
    """

    type: DiagnosticType = "schema"
    severity: Severity = "error"
    category: Category
    path: str = ""
    message: str
    line: Optional[int] = None
    suggestion: Optional[str] = None

    def describe(self) -> str:
        return f"{self.path}: {self.message}" if self.path else self.message


def has_errors(diagnostics: Iterable[Diagnostic]) -> bool:
    return any(d.severity == "error" for d in diagnostics)


def group_by_category(diagnostics: Iterable[Diagnostic]) -> Dict[str, List[Diagnostic]]:
    """Bucket *diagnostics* by category; every category key is present."""
    groups: Dict[str, List[Diagnostic]] = {c: [] for c in CATEGORIES}
    for diag in diagnostics:
        groups.get(diag.category, groups["other"]).append(diag)
    return groups


def category_status(diagnostics: Iterable[Diagnostic]) -> Literal["pass", "fail", "warning"]:
    """pass when empty, fail when any error, otherwise warning."""
    items = list(diagnostics)
    if not items:
        return "pass"
    return "fail" if has_errors(items) else "warning"
