"""Pipeline vocabularies shared by the models, validators and merger."""
from __future__ import annotations

# ── Stage 1 ───────────────────────────────────────────────────────────────────

STAGE1_STEPS = (
    "synopsis_planning",
    "scenario_development",
    "asset_addition",
    "concept_art_blocks_completed",
    "concept_art_generation",
)

STAGE1_ROOT_KEYS = (
    "film_id",
    "current_step",
    "timestamp",
    "film_metadata",
    "current_work",
    "visual_blocks",
)

# Steps at which the story fields are expected to be filled in.
LOGLINE_STEPS = frozenset({"synopsis_planning", "logline_synopsis_development"})
TREATMENT_STEPS = frozenset(
    {"treatment_expansion", "scenario_development", "concept_art_blocks_completed"}
)
SCENARIO_STEPS = frozenset({"scenario_development", "concept_art_blocks_completed"})
VISUAL_STEPS = frozenset(
    {"asset_addition", "concept_art_blocks_completed", "concept_art_generation"}
)

VISUAL_KINDS = ("characters", "locations", "props")

# Singular labels used in merge warnings.
VISUAL_KIND_LABELS = {
    "characters": "character",
    "locations": "location",
    "props": "prop",
}

MERGED_STAGE1_STEP = "concept_art_blocks_completed"

# ── Stage 2 ───────────────────────────────────────────────────────────────────

STAGE2_STEPS = ("shot_division_2A", "visual_direction_2B")

CAMERA_TYPES = (
    "static", "pan", "tilt", "dolly_in", "dolly_out", "dolly_zoom", "track", "truck",
    "crane", "crane_up", "crane_down", "handheld", "steadicam", "zoom", "rack_focus",
    "arc", "whip_pan", "whip_pan_down", "dutch_angle", "overhead", "worm_view",
    "spiral", "pendulum", "drift", "snap_zoom", "push_in", "pull_out",
    "slow_push_in", "quick_pull_back", "tracking_backward", "tracking_left",
    "tilt_down_then_focus",
)

CAMERA_SPEEDS = ("very_slow", "slow", "medium", "fast", "match_subject")

CONCEPT_ART_KEYS = ("characters", "location", "props")

FILM_ID_PATTERN = r"^FILM_[0-9]{6}$"
SCENE_ID_PATTERN = r"^S[0-9]{2}$"
SHOT_ID_PATTERN = r"^S[0-9]{2}\.[0-9]{2}\.[0-9]{2}$"
DURATION_PATTERN = r"^[0-9]+(\.[0-9]+)?s$"

REGULAR_SHOT_TYPE = "regular"

# Editor-only shot fields; never written on export.
TRANSIENT_SHOT_FIELDS = ("userRequest", "freeInput", "updateStatus")

