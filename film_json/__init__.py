"""Film pipeline JSON editor core — merge, validate, repair, re-segment."""

from film_json.diagnostics import Diagnostic
from film_json.editing.reconciler import reconcile_shots
from film_json.editing.similarity import similarity
from film_json.merger import MergeResult, ParsedFile, merge_documents
from film_json.parser import auto_fix_json, extract_syntax_diagnostic, parse_json
from film_json.validator import validate_document, validate_stage1, validate_stage2

__all__ = [
    "Diagnostic",
    "MergeResult",
    "ParsedFile",
    "auto_fix_json",
    "extract_syntax_diagnostic",
    "merge_documents",
    "parse_json",
    "reconcile_shots",
    "similarity",
    "validate_document",
    "validate_stage1",
    "validate_stage2",
]
