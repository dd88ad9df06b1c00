"""In-memory editing session: the single owner of the current document.

The session wires the pure core together:

    load_text / FileBatch  → parser / merger → validator
    apply_scene_edits      → reconciler      → validator
    import_scene_json      → scene contract  → validator
    export                 → stage serializer

Every operation replaces session state wholesale after the core call returns;
nothing is mutated half-way.  Loading a new document discards everything
from the previous one.
"""
from __future__ import annotations

import copy
import json
import logging
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import jsonschema
from pydantic import ValidationError

from film_json.contract_validate import validate_scene_payload
from film_json.diagnostics import Diagnostic
from film_json.editing.reconciler import reconcile_shots
from film_json.merger import MergeResult, ParsedFile, classify_file, merge_documents
from film_json.models import LoadedDocument, Shot
from film_json.parser import parse_json
from film_json.schemas.stage1_v1 import dump_stage1
from film_json.schemas.stage2_v1 import dump_stage2
from film_json.validator import validate_document

logger = logging.getLogger(__name__)

# confirm(pasted_scene_id, current_scene_id) -> proceed?
ConfirmPolicy = Callable[[str, str], bool]


class SceneImportError(ValueError):
    """Pasted scene JSON is unparseable or lacks ``scene_id`` / ``shots``."""


# ── Batch loading ─────────────────────────────────────────────────────────────


class FileBatch:
    """Collects file-read completions that may arrive in any order.

    ``on_complete`` runs exactly once, when the number of completions reaches
    ``expected``; files are handed over in their original (index) order.
    """

    def __init__(
        self,
        expected: int,
        on_complete: Callable[[List[ParsedFile], List[Tuple[str, str]]], None],
    ) -> None:
        if expected < 1:
            raise ValueError("a file batch needs at least one file")
        self.expected = expected
        self._on_complete = on_complete
        self._parsed: Dict[int, ParsedFile] = {}
        self._failed: Dict[int, Tuple[str, str]] = {}
        self._completed = 0

    @property
    def is_complete(self) -> bool:
        return self._completed >= self.expected

    def complete(self, index: int, name: str, content: str) -> None:
        """Register the read result of the file at position *index*."""
        if self.is_complete:
            raise ValueError("file batch already complete")
        if not 0 <= index < self.expected:
            raise ValueError(f"file index {index} out of range for batch of {self.expected}")
        if index in self._parsed or index in self._failed:
            raise ValueError(f"file index {index} already completed")

        parsed = classify_file(name, content)
        if parsed is None:
            self._failed[index] = (name, content)
        else:
            self._parsed[index] = parsed
        self._completed += 1

        if self.is_complete:
            self._on_complete(
                [self._parsed[i] for i in sorted(self._parsed)],
                [self._failed[i] for i in sorted(self._failed)],
            )


# ── Session ───────────────────────────────────────────────────────────────────


def _to_shots(raw_shots: Any) -> List[Shot]:
    """Typed view of a raw shot list; only non-object entries are rejected."""
    try:
        return [Shot.model_validate(s) for s in raw_shots or []]
    except ValidationError as exc:
        raise ValueError(f"scene contains malformed shots: {exc}") from exc


def _to_raw_shots(shots: Sequence[Shot]) -> List[Dict[str, Any]]:
    return [s.model_dump(mode="json", exclude_none=True) for s in shots]


class EditorSession:
    """Current document, its diagnostics and the scene-edit baseline."""

    def __init__(self) -> None:
        self.document: Optional[LoadedDocument] = None
        self.diagnostics: List[Diagnostic] = []
        self.merge_warnings: List[str] = []
        self.merge_errors: List[str] = []
        self.skipped_files: List[str] = []
        self.raw_text: str = ""
        self.needs_editing: bool = False
        self.active_scene_id: Optional[str] = None
        self._baseline_shots: List[Dict[str, Any]] = []

    # -- loading -----------------------------------------------------------

    def _replace(self, document: Optional[LoadedDocument], diagnostics: List[Diagnostic]) -> None:
        self.document = document
        self.diagnostics = diagnostics
        self.merge_warnings = []
        self.merge_errors = []
        self.skipped_files = []
        self.active_scene_id = None
        self._baseline_shots = []
        if document is not None and document.kind == "stage2":
            scenes = self._scenes()
            if scenes:
                self.open_scene(scenes[0].get("scene_id"))

    def load_text(self, text: str) -> List[Diagnostic]:
        """Parse and validate a single raw JSON text.

        On failure the raw text is kept and ``needs_editing`` is set so the
        caller can offer it for manual correction.
        """
        result = parse_json(text)
        self.raw_text = text
        if not result.is_valid or not isinstance(result.data, dict):
            errors = result.errors or [
                Diagnostic(
                    type="structure", severity="error", category="essential",
                    path="", message="Top-level JSON value must be an object.",
                )
            ]
            self._replace(None, errors)
            self.needs_editing = True
            logger.info("load failed; %d diagnostics", len(errors))
            return self.diagnostics

        document = LoadedDocument.from_data(result.data)
        self._replace(document, result.errors + validate_document(document))
        self.needs_editing = False
        logger.info("loaded %s document (%d diagnostics)", document.kind, len(self.diagnostics))
        return self.diagnostics

    def load_files(self, files: Sequence[ParsedFile]) -> MergeResult:
        """Merge and validate parsed files.

        A failed merge leaves the document untouched; ``merge_errors`` holds
        the errors of the last merge either way.
        """
        result = merge_documents(files)
        if not result.success or result.merged is None:
            logger.warning("merge aborted: %s", "; ".join(result.errors))
            self.merge_errors = list(result.errors)
            return result
        document = LoadedDocument.from_data(result.merged)
        self._replace(document, validate_document(document))
        self.merge_warnings = list(result.warnings)
        self.merge_errors = list(result.errors)
        self.raw_text = ""
        self.needs_editing = False
        return result

    def start_batch(self, expected: int) -> FileBatch:
        """Begin a multi-file load of *expected* files."""
        return FileBatch(expected, self._finish_batch)

    def _finish_batch(self, parsed: List[ParsedFile], failed: List[Tuple[str, str]]) -> None:
        if not parsed and len(failed) == 1:
            # A lone unparseable file goes to the editor instead of being dropped.
            self.load_text(failed[0][1])
            return
        skipped = [name for name, _ in failed]
        if skipped:
            logger.warning("skipped %d invalid JSON files: %s", len(skipped), ", ".join(skipped))
        if parsed:
            self.load_files(parsed)
        self.skipped_files = skipped

    # -- stage 2 scenes ----------------------------------------------------

    def _require_stage2(self) -> Dict[str, Any]:
        if self.document is None or self.document.kind != "stage2":
            raise ValueError("scene editing requires a loaded Stage 2 document")
        return self.document.data

    def _scenes(self) -> List[Dict[str, Any]]:
        return [s for s in self._require_stage2().get("scenes") or [] if isinstance(s, dict)]

    def scene(self, scene_id: str) -> Dict[str, Any]:
        for scene in self._scenes():
            if scene.get("scene_id") == scene_id:
                return scene
        raise KeyError(scene_id)

    def shots(self, scene_id: str) -> List[Shot]:
        return _to_shots(self.scene(scene_id).get("shots"))

    def scene_text(self, scene_id: str) -> str:
        """Shot texts of the scene, one per line (the editable form)."""
        return "\n".join(s.shot_text or "" for s in self.shots(scene_id))

    def open_scene(self, scene_id: str) -> None:
        """Make *scene_id* the active scene and capture its reset baseline."""
        scene = self.scene(scene_id)
        self.active_scene_id = scene_id
        self._baseline_shots = copy.deepcopy(scene.get("shots") or [])

    def _replace_scene(self, scene_id: str, new_scene: Dict[str, Any]) -> None:
        data = copy.deepcopy(self._require_stage2())
        data["scenes"] = [
            new_scene if isinstance(s, dict) and s.get("scene_id") == scene_id else s
            for s in data.get("scenes") or []
        ]
        document = LoadedDocument(kind="stage2", data=data)
        self.document = document
        self.diagnostics = validate_document(document)

    def _set_shots(self, scene_id: str, raw_shots: List[Dict[str, Any]]) -> None:
        new_scene = copy.deepcopy(self.scene(scene_id))
        new_scene["shots"] = raw_shots
        self._replace_scene(scene_id, new_scene)

    def apply_scene_edits(self, scene_id: str, edited_text: str) -> List[Shot]:
        """Re-segment the scene from *edited_text* and replace its shot list."""
        if scene_id != self.active_scene_id:
            self.open_scene(scene_id)
        scene = self.scene(scene_id)
        new_shots = reconcile_shots(
            scene_id,
            edited_text,
            _to_shots(scene.get("shots")),
            scene_title=scene.get("scene_title") or "",
        )
        self._set_shots(scene_id, _to_raw_shots(new_shots))
        logger.info("applied edits to %s: %d shots", scene_id, len(new_shots))
        return new_shots

    def reset_scene(self, scene_id: str) -> List[Shot]:
        """Restore the shot list captured when the scene was opened."""
        if scene_id != self.active_scene_id:
            raise ValueError(f"scene {scene_id} is not the active scene")
        self._set_shots(scene_id, copy.deepcopy(self._baseline_shots))
        return self.shots(scene_id)

    def update_shot(self, scene_id: str, shot_id: str, **fields: Any) -> Shot:
        """Set fields (e.g. ``freeInput``) on one shot of the scene."""
        raw_shots = copy.deepcopy(self.scene(scene_id).get("shots") or [])
        for raw in raw_shots:
            if isinstance(raw, dict) and raw.get("shot_id") == shot_id:
                raw.update(fields)
                self._set_shots(scene_id, raw_shots)
                return Shot.model_validate(raw)
        raise KeyError(shot_id)

    def import_scene_json(
        self,
        text: str,
        scene_id: str,
        confirm: Optional[ConfirmPolicy] = None,
    ) -> bool:
        """Replace scene *scene_id* with a pasted scene object.

        When the pasted ``scene_id`` differs, *confirm* decides; without a
        policy the import is declined.  Returns True when the scene was
        replaced.

        Raises:
            SceneImportError: text is not JSON or lacks scene_id / shots.
            KeyError: *scene_id* is not in the document.
        """
        try:
            payload = json.loads(text)
        except json.JSONDecodeError as exc:
            raise SceneImportError(f"Invalid JSON syntax: {exc}") from exc
        try:
            validate_scene_payload(payload)
        except jsonschema.ValidationError as exc:
            raise SceneImportError(
                f"Invalid scene JSON: missing 'scene_id' or 'shots' array ({exc.message})"
            ) from exc

        self.scene(scene_id)
        pasted_id = payload["scene_id"]
        if pasted_id != scene_id:
            if confirm is None or not confirm(pasted_id, scene_id):
                logger.info("scene import declined: pasted %s over %s", pasted_id, scene_id)
                return False

        self._replace_scene(scene_id, payload)
        self.open_scene(pasted_id)
        return True

    # -- export ------------------------------------------------------------

    def export(self) -> Tuple[str, str]:
        """Return ``(filename, json_text)`` for the current document."""
        if self.document is None:
            raise ValueError("no document loaded")
        data = self.document.data
        if self.document.kind == "stage2":
            scenes = data.get("scenes") or []
            first = scenes[0].get("scene_id") if scenes and isinstance(scenes[0], dict) else None
            return f"{first or 'stage2'}_edited.json", dump_stage2(data)
        return f"{data.get('film_id')}_{data.get('current_step')}.json", dump_stage1(data)
