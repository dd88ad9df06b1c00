"""Versioned document loaders and serializers."""

from film_json.schemas.stage1_v1 import dump_stage1, load_stage1, stage1_model_errors
from film_json.schemas.stage2_v1 import dump_stage2, load_stage2, stage2_model_errors

__all__ = [
    "load_stage1",
    "dump_stage1",
    "stage1_model_errors",
    "load_stage2",
    "dump_stage2",
    "stage2_model_errors",
]
