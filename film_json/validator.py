"""Stage 1 / Stage 2 document rule validators.

Both validators take a parsed JSON value and return an ordered list of
``Diagnostic``.  They never raise: every nested lookup tolerates missing or
mistyped parents and emits a diagnostic instead.  Running a validator twice
on the same document yields the same list in the same order.
"""
from __future__ import annotations

import re
from typing import Any, List, Optional

from film_json.constants import (
    CAMERA_SPEEDS,
    CAMERA_TYPES,
    CONCEPT_ART_KEYS,
    DURATION_PATTERN,
    FILM_ID_PATTERN,
    LOGLINE_STEPS,
    REGULAR_SHOT_TYPE,
    SCENARIO_STEPS,
    SCENE_ID_PATTERN,
    SHOT_ID_PATTERN,
    STAGE1_ROOT_KEYS,
    STAGE1_STEPS,
    STAGE2_STEPS,
    TREATMENT_STEPS,
    VISUAL_KINDS,
    VISUAL_STEPS,
)
from film_json.diagnostics import Category, Diagnostic, Severity
from film_json.models import LoadedDocument

_FILM_ID_RE = re.compile(FILM_ID_PATTERN)
_SCENE_ID_RE = re.compile(SCENE_ID_PATTERN)
_SHOT_ID_RE = re.compile(SHOT_ID_PATTERN)
_DURATION_RE = re.compile(DURATION_PATTERN)


# ── Lookup helpers ────────────────────────────────────────────────────────────


def _get(obj: Any, key: str) -> Any:
    """``obj[key]`` when *obj* is a dict, else None."""
    return obj.get(key) if isinstance(obj, dict) else None


def _missing(value: Any) -> bool:
    """True for absent/empty scalars: None, False, "", 0.

    Containers count as present even when empty; emptiness of lists is
    checked separately where it matters.
    """
    if value is None or value is False:
        return True
    if isinstance(value, str):
        return value == ""
    if isinstance(value, (int, float)):
        return value == 0
    return False


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _matches(pattern: "re.Pattern[str]", value: Any) -> bool:
    return isinstance(value, str) and pattern.match(value) is not None


def _step_in(step: Any, steps: frozenset) -> bool:
    return isinstance(step, str) and step in steps


class _Collector:
    """Accumulates diagnostics in emission order."""

    def __init__(self) -> None:
        self.items: List[Diagnostic] = []

    def add(
        self,
        category: Category,
        message: str,
        path: str,
        severity: Severity = "error",
    ) -> None:
        self.items.append(
            Diagnostic(
                type="schema",
                severity=severity,
                category=category,
                path=path,
                message=message,
            )
        )


def _not_an_object(stage: str) -> List[Diagnostic]:
    return [
        Diagnostic(
            type="structure",
            severity="error",
            category="essential",
            path="",
            message=f"{stage} document must be a JSON object",
        )
    ]


# ── Stage 1 ───────────────────────────────────────────────────────────────────


def validate_stage1(data: Any) -> List[Diagnostic]:
    """Validate *data* against the Stage 1 document rules.

    Story fields are only required once ``current_step`` says that phase has
    been reached; visual block lists only from ``asset_addition`` on.
    """
    if not isinstance(data, dict):
        return _not_an_object("Stage 1")
    out = _Collector()

    # 1. essential fields
    film_id = data.get("film_id")
    if _missing(film_id):
        out.add("essential", "film_id is missing.", "film_id")
    elif not isinstance(film_id, str):
        out.add("schema", "film_id must be a string.", "film_id")

    step = data.get("current_step")
    if _missing(step):
        out.add("essential", "current_step is missing.", "current_step")
    elif step not in STAGE1_STEPS:
        out.add("schema", f"Invalid current_step: {step}", "current_step")

    if _missing(data.get("film_metadata")):
        out.add("essential", "film_metadata is missing.", "film_metadata")

    if _missing(data.get("timestamp")):
        out.add("essential", "timestamp is missing.", "timestamp")

    # 2. story fields, by step
    cw = data.get("current_work")

    if _step_in(step, LOGLINE_STEPS):
        if _missing(_get(cw, "logline")):
            out.add("story", "logline is missing.", "current_work.logline", "warning")
        if _missing(_get(cw, "synopsis")):
            out.add("story", "synopsis is missing.", "current_work.synopsis", "warning")

    if _step_in(step, TREATMENT_STEPS):
        treatment = _get(cw, "treatment")
        if _missing(treatment):
            out.add("story", "treatment object is missing.", "current_work.treatment", "warning")
        elif _missing(_get(treatment, "treatment_title")):
            out.add(
                "story", "treatment_title is missing.",
                "current_work.treatment.treatment_title", "warning",
            )

    if _step_in(step, SCENARIO_STEPS):
        scenario = _get(cw, "scenario")
        if _missing(scenario):
            out.add("story", "scenario object is missing.", "current_work.scenario")
        else:
            if _missing(_get(scenario, "scenario_title")):
                out.add(
                    "story", "scenario_title is missing.",
                    "current_work.scenario.scenario_title", "warning",
                )
            scenes = _get(scenario, "scenes")
            if not isinstance(scenes, list) or len(scenes) == 0:
                out.add(
                    "story", "scenes array is empty or missing.",
                    "current_work.scenario.scenes", "warning",
                )

    # 3. visual blocks
    if _step_in(step, VISUAL_STEPS):
        vb = data.get("visual_blocks")
        if _missing(vb):
            out.add("visual", "visual_blocks object is missing at the top level.", "visual_blocks")
        else:
            for kind in VISUAL_KINDS:
                entries = _get(vb, kind)
                if not isinstance(entries, list):
                    out.add("visual", f"{kind} array is missing.", f"visual_blocks.{kind}")
                elif len(entries) == 0:
                    out.add("visual", f"{kind} list is empty.", f"visual_blocks.{kind}", "warning")

    # 4. metadata types
    metadata = data.get("film_metadata")
    if isinstance(metadata, dict):
        if "duration_minutes" in metadata and not _is_number(metadata["duration_minutes"]):
            out.add("schema", "duration_minutes must be a number.", "film_metadata.duration_minutes")
        artist = metadata.get("artist")
        if not _missing(artist) and not isinstance(artist, str):
            out.add("schema", "artist must be a string.", "film_metadata.artist")

    # 5. unknown top-level keys
    for key in data:
        if key not in STAGE1_ROOT_KEYS:
            out.add("other", f"Unknown top-level field: {key}", key, "info")

    return out.items


# ── Stage 2 ───────────────────────────────────────────────────────────────────


def _validate_camera(out: _Collector, camera: Any, path: str) -> None:
    cam_type = _get(camera, "type")
    if _missing(cam_type):
        out.add("schema", "camera_movement.type is missing.", f"{path}.type")
    elif cam_type not in CAMERA_TYPES:
        out.add("schema", f"Invalid camera type: {cam_type}", f"{path}.type")

    speed = _get(camera, "speed")
    if not _missing(speed) and speed not in CAMERA_SPEEDS:
        out.add("schema", f"Invalid speed: {speed}", f"{path}.speed")

    duration = _get(camera, "duration")
    if not _missing(duration) and not _matches(_DURATION_RE, duration):
        out.add("schema", "Invalid duration format (example: 4s).", f"{path}.duration")


def _validate_shot(out: _Collector, shot: Any, path: str) -> None:
    shot_id = _get(shot, "shot_id")
    if _missing(shot_id):
        out.add("essential", "shot_id is missing.", f"{path}.shot_id")
    elif not _matches(_SHOT_ID_RE, shot_id):
        out.add("schema", "Invalid shot_id format (example: S01.01.01).", f"{path}.shot_id")

    shot_type = _get(shot, "shot_type")
    if not _missing(shot_type) and shot_type != REGULAR_SHOT_TYPE:
        out.add(
            "schema", f"shot_type must be 'regular' (found: {shot_type}).", f"{path}.shot_type",
        )

    if _missing(_get(shot, "shot_text")):
        out.add("story", "shot_text is missing.", f"{path}.shot_text")

    camera = _get(shot, "camera_movement")
    if _missing(camera):
        out.add("visual", "camera_movement is missing.", f"{path}.camera_movement")
    else:
        _validate_camera(out, camera, f"{path}.camera_movement")

    for key in ("movement_description", "starting_frame", "ending_frame"):
        if _missing(_get(shot, key)):
            out.add("visual", f"{key} is missing.", f"{path}.{key}")


def _validate_scene(out: _Collector, scene: Any, path: str) -> None:
    scene_id = _get(scene, "scene_id")
    if _missing(scene_id):
        out.add("essential", "scene_id is missing.", f"{path}.scene_id")
    elif not _matches(_SCENE_ID_RE, scene_id):
        out.add("schema", "Invalid scene_id format (example: S01).", f"{path}.scene_id")

    if _missing(_get(scene, "scene_title")):
        out.add("story", "scene_title is missing.", f"{path}.scene_title")
    if _missing(_get(scene, "scene_scenario")):
        out.add("story", "scene_scenario is missing.", f"{path}.scene_scenario")

    refs = _get(scene, "concept_art_references")
    if _missing(refs):
        out.add("visual", "concept_art_references is missing.", f"{path}.concept_art_references")
    else:
        for key in CONCEPT_ART_KEYS:
            if _missing(_get(refs, key)):
                out.add(
                    "visual", f"{key} reference is missing.",
                    f"{path}.concept_art_references.{key}",
                )

    shots = _get(scene, "shots")
    if not isinstance(shots, list):
        out.add("story", "shots array is missing.", f"{path}.shots")
    elif len(shots) == 0:
        out.add("story", "At least one shot is required.", f"{path}.shots")
    else:
        for shot_idx, shot in enumerate(shots):
            _validate_shot(out, shot, f"{path}.shots[{shot_idx}]")


def validate_stage2(data: Any) -> List[Diagnostic]:
    """Validate *data* against the Stage 2 document rules.

    A document with an empty ``scenes`` list yields a single story warning for
    ``scenes`` and no scene or shot diagnostics.
    """
    if not isinstance(data, dict):
        return _not_an_object("Stage 2")
    out = _Collector()

    film_id = data.get("film_id")
    if _missing(film_id):
        out.add("essential", "film_id is missing.", "film_id")
    elif not _matches(_FILM_ID_RE, film_id):
        out.add("schema", "Invalid film_id format (example: FILM_123456).", "film_id")

    step = data.get("current_step")
    if _missing(step):
        out.add("essential", "current_step is missing.", "current_step")
    elif step not in STAGE2_STEPS:
        out.add("schema", f"Invalid current_step: {step}", "current_step")

    if _missing(data.get("timestamp")):
        out.add("essential", "timestamp is missing.", "timestamp")

    scenes = data.get("scenes")
    if not isinstance(scenes, list):
        out.add("story", "scenes array is missing.", "scenes")
    elif len(scenes) == 0:
        out.add("story", "At least one scene is required.", "scenes", "warning")
    else:
        for scene_idx, scene in enumerate(scenes):
            _validate_scene(out, scene, f"scenes[{scene_idx}]")

    return out.items


# ── Dispatch ──────────────────────────────────────────────────────────────────


def validate_document(doc: LoadedDocument) -> List[Diagnostic]:
    """Run the validator matching ``doc.kind``."""
    if doc.kind == "stage2":
        return validate_stage2(doc.data)
    if doc.kind == "stage1":
        return validate_stage1(doc.data)
    raise ValueError(f"unknown document kind: {doc.kind!r}")


def validate_scene(scene: Any, index: Optional[int] = None) -> List[Diagnostic]:
    """Validate a single Stage 2 scene (used after scene edits and imports)."""
    out = _Collector()
    path = f"scenes[{index}]" if index is not None else "scene"
    _validate_scene(out, scene, path)
    return out.items
