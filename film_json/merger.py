"""
merger.py — Combine independently edited documents of one film.

mergeable batch  — every file carries the same ``film_id`` (exact match
                   against the first file).  Any mismatch aborts the whole
                   merge; no partial result is produced.

Stage 1 merge    — the "main" file (scenario step, or has a scenario) is the
                   base; visual block entities from the other files are
                   appended unless their id is already present.
Stage 2 merge    — the first file is the metadata base; scenes from all files
                   are collected, the first occurrence of each scene_id wins,
                   and the result is sorted by scene_id.

Both paths are pure: inputs are deep-copied, never mutated.  Duplicate ids are
warnings, not errors.
"""

from __future__ import annotations

import copy
import json
import logging
from typing import Any, Dict, List, Literal, Optional, Sequence, Set

from pydantic import BaseModel, Field

from film_json.constants import (
    MERGED_STAGE1_STEP,
    VISUAL_KIND_LABELS,
    VISUAL_KINDS,
)
from film_json.models import detect_kind
from film_json.parser import salvage_json_object

logger = logging.getLogger(__name__)

FileType = Literal["main", "asset", "unknown"]


class ParsedFile(BaseModel):
    """One input of a merge batch."""

    name: str
    parsed: Dict[str, Any]
    content: str = ""
    type: FileType = "unknown"
    film_id: str = "UNKNOWN"


class MergeResult(BaseModel):
    success: bool = False
    merged: Optional[Dict[str, Any]] = None
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Input classification
# ---------------------------------------------------------------------------

def _has_scenario(parsed: Any) -> bool:
    current_work = parsed.get("current_work") if isinstance(parsed, dict) else None
    if not isinstance(current_work, dict):
        return False
    scenario = current_work.get("scenario")
    # An empty object still counts as present.
    return scenario is not None and scenario is not False and scenario != "" and scenario != 0


def _is_main_candidate(parsed: Dict[str, Any]) -> bool:
    return parsed.get("current_step") == "scenario_development" or _has_scenario(parsed)


def classify_document(parsed: Dict[str, Any]) -> FileType:
    """main: scenario step or has a scenario; asset: asset step or visual blocks."""
    if _is_main_candidate(parsed):
        return "main"
    visual_blocks = parsed.get("visual_blocks")
    if parsed.get("current_step") == "asset_addition" or (
        isinstance(visual_blocks, dict) and len(visual_blocks) > 0
    ):
        return "asset"
    return "unknown"


def classify_file(name: str, content: str) -> Optional[ParsedFile]:
    """Parse *content* into a ParsedFile, or return None if it is not a JSON object.

    Text around the outermost ``{...}`` (prose, code fences) is ignored.
    """
    text = salvage_json_object(content)
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError as exc:
        logger.warning("failed to parse %s: %s", name, exc)
        return None
    if not isinstance(parsed, dict):
        logger.warning("failed to parse %s: top-level value is not an object", name)
        return None
    film_id = parsed.get("film_id")
    return ParsedFile(
        name=name,
        parsed=parsed,
        content=text,
        type=classify_document(parsed),
        film_id=film_id if isinstance(film_id, str) and film_id else "UNKNOWN",
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def merge_documents(files: Sequence[ParsedFile]) -> MergeResult:
    """Merge *files* into one document.

    Returns:
        MergeResult(success=True, merged=<doc>, warnings=[...]) on success.
        MergeResult(success=False, merged=None, errors=[...]) when the batch
        is empty or the film_id values disagree.
    """
    if not files:
        return MergeResult(errors=["No files to merge."])

    first_film_id = files[0].parsed.get("film_id")
    mismatched = [f.name for f in files if f.parsed.get("film_id") != first_film_id]
    if mismatched:
        return MergeResult(
            errors=[
                "All files must share the same film_id "
                f"(expected: {first_film_id}, mismatched: {', '.join(mismatched)})"
            ]
        )

    if detect_kind(files[0].parsed) == "stage2":
        result = _merge_stage2(files)
    else:
        result = _merge_stage1(files)
    logger.info(
        "merged %d files (%d warnings, %d errors)",
        len(files), len(result.warnings), len(result.errors),
    )
    return result


# ---------------------------------------------------------------------------
# Stage 1
# ---------------------------------------------------------------------------

def _id_key(value: Any) -> Any:
    """Hashable stand-in for an id value (ids are normally strings)."""
    if value is None or isinstance(value, (str, int, float)):
        return value
    return repr(value)


def _entity_ids(entities: List[Any]) -> Set[Any]:
    return {_id_key(e.get("id")) for e in entities if isinstance(e, dict)}


def _merge_stage1(files: Sequence[ParsedFile]) -> MergeResult:
    result = MergeResult()

    main_index = next(
        (
            i for i, f in enumerate(files)
            if detect_kind(f.parsed) == "stage1" and _is_main_candidate(f.parsed)
        ),
        0,
    )
    merged: Dict[str, Any] = copy.deepcopy(files[main_index].parsed)

    if not isinstance(merged.get("visual_blocks"), dict):
        merged["visual_blocks"] = {}
    visual_blocks = merged["visual_blocks"]
    for kind in VISUAL_KINDS:
        if not isinstance(visual_blocks.get(kind), list):
            visual_blocks[kind] = []

    known_ids = {kind: _entity_ids(visual_blocks[kind]) for kind in VISUAL_KINDS}

    for index, file in enumerate(files):
        if index == main_index:
            continue
        if detect_kind(file.parsed) == "stage2":
            continue
        source_blocks = file.parsed.get("visual_blocks")
        if not isinstance(source_blocks, dict):
            continue
        for kind in VISUAL_KINDS:
            entries = source_blocks.get(kind)
            if not isinstance(entries, list):
                continue
            for entity in entries:
                if not isinstance(entity, dict):
                    continue
                entity_id = entity.get("id")
                if _id_key(entity_id) in known_ids[kind]:
                    result.warnings.append(
                        f"{file.name}: duplicate {VISUAL_KIND_LABELS[kind]} id ignored: "
                        f"{entity_id} ({entity.get('name')})"
                    )
                else:
                    visual_blocks[kind].append(copy.deepcopy(entity))
                    known_ids[kind].add(_id_key(entity_id))

    has_visuals = any(len(visual_blocks[kind]) > 0 for kind in VISUAL_KINDS)
    if has_visuals and merged.get("current_step") != MERGED_STAGE1_STEP:
        merged["current_step"] = MERGED_STAGE1_STEP

    result.success = True
    result.merged = merged
    return result


# ---------------------------------------------------------------------------
# Stage 2
# ---------------------------------------------------------------------------

def _scene_sort_key(scene: Any) -> str:
    # Lexicographic: correct only while scene ids stay two-digit (S01..S99).
    scene_id = scene.get("scene_id") if isinstance(scene, dict) else None
    return scene_id if isinstance(scene_id, str) else ""


def _merge_stage2(files: Sequence[ParsedFile]) -> MergeResult:
    result = MergeResult()
    merged: Dict[str, Any] = copy.deepcopy(files[0].parsed)

    all_scenes: List[Dict[str, Any]] = []
    scene_ids: Set[Any] = set()

    for file in files:
        if detect_kind(file.parsed) != "stage2":
            result.errors.append(f"{file.name}: not a Stage 2 document.")
            continue
        for scene in file.parsed.get("scenes") or []:
            scene_id = scene.get("scene_id") if isinstance(scene, dict) else None
            if _id_key(scene_id) in scene_ids:
                result.warnings.append(
                    f"{file.name}: duplicate scene id ignored: {scene_id} (not overwritten)"
                )
            else:
                all_scenes.append(copy.deepcopy(scene))
                scene_ids.add(_id_key(scene_id))

    all_scenes.sort(key=_scene_sort_key)
    merged["scenes"] = all_scenes

    result.success = True
    result.merged = merged
    return result
