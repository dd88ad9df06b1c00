"""Scene text editing: similarity scoring and shot reconciliation."""

from film_json.editing.reconciler import (
    merge_camera_movements,
    reconcile_shots,
    split_edited_text,
)
from film_json.editing.similarity import normalize_text, similarity

__all__ = [
    "merge_camera_movements",
    "normalize_text",
    "reconcile_shots",
    "similarity",
    "split_edited_text",
]
