"""Stage 1 document v1 — load, dump, model check.

Serialization keeps insertion order (no sort_keys): block maps feed prompt
strings whose content depends on key order.
"""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Union

from pydantic import ValidationError

from film_json.models import Stage1Document


def _read(source: Union[str, bytes, dict, Path]) -> Any:
    if isinstance(source, Path):
        return json.loads(source.read_text(encoding="utf-8"))
    if isinstance(source, (str, bytes)):
        return json.loads(source)
    return source


def load_stage1(source: Union[str, bytes, dict, Path]) -> Stage1Document:
    """Parse a Stage 1 document from JSON string, bytes, dict, or file Path.

    Raises:
        ValidationError: data does not conform to the Stage 1 model.
        FileNotFoundError: Path does not exist.
    """
    return Stage1Document.model_validate(_read(source))


def dump_stage1(doc: Union[Stage1Document, Dict[str, Any]], *, indent: int = 2) -> str:
    """Serialize a Stage 1 document to indented JSON, non-ASCII preserved."""
    if isinstance(doc, Stage1Document):
        raw = doc.model_dump(mode="json", exclude_unset=True)
    else:
        raw = doc
    return json.dumps(raw, indent=indent, ensure_ascii=False)


def stage1_model_errors(data: dict) -> List[str]:
    """Check a raw dict against the Stage 1 model.

    Returns a list of human-readable error strings (empty list = valid).
    Does not raise.
    """
    try:
        Stage1Document.model_validate(data)
        return []
    except ValidationError as exc:
        return [f"{e['loc']}: {e['msg']}" for e in exc.errors()]
