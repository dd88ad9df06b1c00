"""Stage 2 document v1 — load, dump, model check."""
from __future__ import annotations

import copy
import json
from pathlib import Path
from typing import Any, Dict, List, Union

from pydantic import ValidationError

from film_json.constants import TRANSIENT_SHOT_FIELDS
from film_json.models import Stage2Document


def load_stage2(source: Union[str, bytes, dict, Path]) -> Stage2Document:
    """Parse a Stage 2 document from JSON string, bytes, dict, or file Path.

    Raises:
        ValidationError: data does not conform to the Stage 2 model.
        FileNotFoundError: Path does not exist.
    """
    if isinstance(source, Path):
        data = json.loads(source.read_text(encoding="utf-8"))
    elif isinstance(source, (str, bytes)):
        data = json.loads(source)
    else:
        data = source
    return Stage2Document.model_validate(data)


def strip_transient_fields(data: Dict[str, Any]) -> Dict[str, Any]:
    """Return a copy of *data* without editor-only shot fields."""
    clean = copy.deepcopy(data)
    for scene in clean.get("scenes") or []:
        if not isinstance(scene, dict):
            continue
        for shot in scene.get("shots") or []:
            if isinstance(shot, dict):
                for key in TRANSIENT_SHOT_FIELDS:
                    shot.pop(key, None)
    return clean


def dump_stage2(doc: Union[Stage2Document, Dict[str, Any]], *, indent: int = 2) -> str:
    """Serialize a Stage 2 document to indented JSON.

    ``updateStatus``, ``freeInput`` and ``userRequest`` are dropped from every
    shot; they only mean something inside an edit session.
    """
    if isinstance(doc, Stage2Document):
        raw = doc.model_dump(mode="json", exclude_unset=True)
    else:
        raw = doc
    return json.dumps(strip_transient_fields(raw), indent=indent, ensure_ascii=False)


def stage2_model_errors(data: dict) -> List[str]:
    """Check a raw dict against the Stage 2 model.

    Returns a list of human-readable error strings (empty list = valid).
    Does not raise.
    """
    try:
        Stage2Document.model_validate(data)
        return []
    except ValidationError as exc:
        return [f"{e['loc']}: {e['msg']}" for e in exc.errors()]
