"""Re-segment edited scene text into a shot list against the prior shots.

Public entry point
------------------
    reconcile_shots(scene_id, edited_text, prior_shots, scene_title=...) -> List[Shot]

Every non-blank line of the edited text becomes one shot.  Lines are matched
back to prior shots (substring in either direction, or token similarity) and
each new shot is tagged with an ``updateStatus``:

    new          — no prior shot matched
    none         — exactly one prior shot matched, and no other line matched it
    split        — first line matching a prior shot that several lines matched
    split-added  — later lines matching that same prior shot
    merged       — the line matched several prior shots

Camera metadata is carried from the best-matching prior shot; merged shots
combine the camera fields of all their prior shots.

The function is pure: *prior_shots* is never mutated and no session state is
read.
"""
from __future__ import annotations

import logging
import re
from typing import Dict, List, NamedTuple, Optional, Sequence, Union

from film_json.editing.similarity import normalize_text, similarity
from film_json.models import CameraMovement, Shot

logger = logging.getLogger(__name__)

# Similarity above which a line matches a prior shot.
SIMILARITY_THRESHOLD: float = 0.3
# Normalized text must be longer than this to take part in substring matching.
_MIN_SUBSTRING_LEN: int = 2

_TYPE_JOIN = " + "
_SPEED_JOIN = " / "
_DURATION_JOIN = " + "

_LINE_SPLIT_RE = re.compile(r"\r?\n")


class LineMatch(NamedTuple):
    line: str
    shot_id: str
    candidates: List[Shot]


# ── Line handling ─────────────────────────────────────────────────────────────


def split_edited_text(text: str) -> List[str]:
    """Split edited scene text into shot lines, dropping blank lines."""
    return [line for line in _LINE_SPLIT_RE.split(text) if line.strip()]


def make_line_shot_id(scene_id: str, position: int) -> str:
    """Synthetic shot id for the 1-based *position*: "{scene_id}.{NN}"."""
    return f"{scene_id}.{position:02d}"


# ── Matching ──────────────────────────────────────────────────────────────────


def _is_match(line: str, clean_line: str, prior: Shot) -> bool:
    prior_text = prior.shot_text or ""
    clean_prior = normalize_text(prior_text)
    if len(clean_line) > _MIN_SUBSTRING_LEN and clean_line in clean_prior:
        return True
    if len(clean_prior) > _MIN_SUBSTRING_LEN and clean_prior in clean_line:
        return True
    return similarity(line, prior_text) > SIMILARITY_THRESHOLD


def match_candidates(line: str, prior_shots: Sequence[Shot]) -> List[Shot]:
    """Prior shots matching *line*, best similarity first.

    The sort is stable, so equally similar shots keep their prior order.
    """
    clean_line = normalize_text(line)
    matched = [prior for prior in prior_shots if _is_match(line, clean_line, prior)]
    matched.sort(key=lambda prior: similarity(line, prior.shot_text or ""), reverse=True)
    return matched


def _usage_counts(matches: Sequence[LineMatch]) -> Dict[str, int]:
    usage: Dict[str, int] = {}
    for lm in matches:
        for prior in lm.candidates:
            usage[prior.shot_id] = usage.get(prior.shot_id, 0) + 1
    return usage


# ── Camera metadata ───────────────────────────────────────────────────────────


def _unique_values(values) -> List[str]:
    seen: List[str] = []
    for value in values:
        if not value:
            continue
        text = value if isinstance(value, str) else str(value)
        if text not in seen:
            seen.append(text)
    return seen


def merge_camera_movements(shots: Sequence[Shot]) -> Optional[CameraMovement]:
    """Combine the camera fields of *shots* for a merged shot.

    type and duration are joined with " + ", speed with " / ", each after
    dropping empty values and duplicates (first-seen order).  Returns the first
    shot's camera unchanged when none of the shots has a camera type.
    """
    cameras = [s.camera_movement for s in shots if s.camera_movement is not None]
    types = _unique_values(c.type for c in cameras)
    if not types:
        first = shots[0].camera_movement if shots else None
        return first.model_copy(deep=True) if first is not None else None
    speeds = _unique_values(c.speed for c in cameras)
    durations = _unique_values(c.duration for c in cameras)
    return CameraMovement(
        type=_TYPE_JOIN.join(types),
        speed=_SPEED_JOIN.join(speeds) or None,
        duration=_DURATION_JOIN.join(durations) or None,
    )


# ── Reconciliation ────────────────────────────────────────────────────────────


def reconcile_shots(
    scene_id: str,
    edited_text: Union[str, Sequence[str]],
    prior_shots: Sequence[Shot],
    scene_title: str = "",
) -> List[Shot]:
    """Build the new shot list for *scene_id* from *edited_text*.

    Args:
        scene_id:    Id of the scene being edited (e.g. "S01").
        edited_text: The edited scene text, one shot per line, or the lines
                     themselves.  Blank lines are dropped either way.
        prior_shots: The scene's shot list before the edit.
        scene_title: Stored on shots that match no prior shot.

    Returns:
        One Shot per non-blank line, in line order, each with updateStatus set.
    """
    if isinstance(edited_text, str):
        lines = split_edited_text(edited_text)
    else:
        lines = [line for line in edited_text if line.strip()]

    matches = [
        LineMatch(
            line=line,
            shot_id=make_line_shot_id(scene_id, idx + 1),
            candidates=match_candidates(line, prior_shots),
        )
        for idx, line in enumerate(lines)
    ]
    usage = _usage_counts(matches)
    seen: Dict[str, int] = {}

    new_shots: List[Shot] = []
    for lm in matches:
        base = lm.candidates[0] if lm.candidates else None
        camera = base.camera_movement if base is not None else None

        if base is None:
            status = "new"
        elif len(lm.candidates) > 1:
            status = "merged"
            camera = merge_camera_movements(lm.candidates)
        else:
            prior_id = base.shot_id
            seen_count = seen.get(prior_id, 0)
            if usage.get(prior_id, 0) > 1:
                status = "split" if seen_count == 0 else "split-added"
            else:
                status = "none"
            seen[prior_id] = seen_count + 1

        if base is not None:
            shot = base.model_copy(
                deep=True,
                update={
                    "shot_id": lm.shot_id,
                    "shot_text": lm.line,
                    "camera_movement": (
                        camera.model_copy(deep=True) if camera is not None else None
                    ),
                    "updateStatus": status,
                },
            )
        else:
            shot = Shot(
                shot_id=lm.shot_id,
                shot_type="regular",
                shot_text=lm.line,
                shot_character=[],
                scene=scene_title,
                camera_movement=None,
                updateStatus=status,
            )
        new_shots.append(shot)

    logger.debug(
        "reconciled scene %s: %d lines against %d prior shots",
        scene_id, len(new_shots), len(prior_shots),
    )
    return new_shots
