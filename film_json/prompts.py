"""Prompt strings handed back to the generating model.

All functions are pure string builders over documents and diagnostics.
"""
from __future__ import annotations

import re
from typing import Iterable, List, Mapping, Optional, Sequence

from film_json.diagnostics import Diagnostic
from film_json.models import Shot

_KEY_PREFIX_RE = re.compile(r"^\d+_")

_STATUS_TAGS = {
    "new": " [New]",
    "split": " [Split]",
    "split-added": " [Split Added]",
    "merged": " [Merged]",
}


def format_blocks_to_prompt(blocks: Optional[Mapping[str, str]]) -> str:
    """Render a block map as ``KEY:VALUE; KEY:VALUE;``.

    Keys lose their numeric ordering prefix ("1_STYLE" -> "STYLE") and are
    upper-cased; empty values are skipped.  Output order is the map's order.
    A map with nothing to render still yields the terminating ";".
    """
    if blocks is None:
        return ""
    parts = [
        f"{_KEY_PREFIX_RE.sub('', key).upper()}:{value.strip()}"
        for key, value in blocks.items()
        if isinstance(value, str) and value.strip()
    ]
    return "; ".join(parts) + ";"


def _numbered(diagnostics: Iterable[Diagnostic]) -> str:
    return "\n".join(f"{i + 1}. {d.describe()}" for i, d in enumerate(diagnostics))


def correction_prompt(
    diagnostics: Sequence[Diagnostic],
    category: Optional[str] = None,
) -> str:
    """Request text asking for a corrected document.

    With *category* only that category's diagnostics are listed; source
    context windows of syntax errors are appended when present.
    """
    selected = [d for d in diagnostics if category is None or d.category == category]
    contexts = [d.suggestion for d in selected if d.suggestion]

    sections: List[str] = [
        "[JSON correction request]",
        f"■ Category: {category.upper() if category else 'ALL'}",
        "■ Issues:\n" + _numbered(selected),
    ]
    if contexts:
        sections.append("■ Source near the error:\n" + "\n\n".join(contexts))
    sections.append("■ Request:\nFix the issues above and output the complete JSON again.")
    return "\n\n".join(sections)


def modified_shots(shots: Sequence[Shot]) -> List[Shot]:
    """Shots carrying a non-blank free-form correction request."""
    return [s for s in shots if isinstance(s.freeInput, str) and s.freeInput.strip()]


def modification_requests_text(shots: Sequence[Shot]) -> str:
    """``[<shot_id>] <request>`` blocks for every modified shot."""
    return "\n\n".join(f"[{s.shot_id}] {s.freeInput}" for s in modified_shots(shots))


def scene_update_prompt(scene_id: str, shots: Sequence[Shot]) -> str:
    """Direction update request for a reconciled scene.

    Lists every shot with its change tag, then the per-shot requests.
    """
    header = "# Scene Direction Update Request\n\n"
    intro = (
        f"Please generate the visual direction for Scene {scene_id} based on the "
        "following updated shot list and specific modification requests.\n\n"
    )
    shot_list = "\n".join(
        f"{s.shot_id}:{_STATUS_TAGS.get(s.updateStatus or '', '')} {s.shot_text}"
        for s in shots
    )
    text = header + intro + "## Updated Shot List\n" + shot_list

    requests = modified_shots(shots)
    if requests:
        text += "\n\n## Specific Modification Requests\n" + "\n".join(
            f"{s.shot_id}: {s.freeInput}" for s in requests
        )
    return text
