"""Stage 1 and Stage 2 document models.

extra="allow" on every model: documents arrive from hand-edited JSON and
LLM output, and unknown fields must survive a load/dump round trip rather
than being dropped.  Validation of required content is the job of
``film_json.validator``; these models only give the editor typed access.
"""
from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from film_json.constants import STAGE2_STEPS


# ── Stage 1 models ────────────────────────────────────────────────────────────


class FilmMetadata(BaseModel):
    model_config = ConfigDict(extra="allow")

    title_working: str = ""
    genre: str = ""
    duration_minutes: Optional[float] = None
    style: str = ""
    artist: Optional[str] = None
    medium: str = ""
    era: str = ""
    aspect_ratio: str = ""


class Synopsis(BaseModel):
    model_config = ConfigDict(extra="allow")

    act1: str = ""
    act2: str = ""
    act3: str = ""


class Sequence(BaseModel):
    model_config = ConfigDict(extra="allow")

    sequence_id: str
    sequence_title: str = ""
    narrative_function: str = ""
    treatment_text: str = ""


class Treatment(BaseModel):
    model_config = ConfigDict(extra="allow")

    treatment_title: str = ""
    story_structure_type: str = ""
    sequences: List[Sequence] = []


class ScenarioScene(BaseModel):
    """A scene of the Stage 1 scenario (prose only, no shots yet)."""

    model_config = ConfigDict(extra="allow")

    scene_number: Optional[int] = None
    scene_id: str
    sequence_id: str = ""
    scenario_text: str = ""


class Scenario(BaseModel):
    model_config = ConfigDict(extra="allow")

    scenario_title: str = ""
    scenes: List[ScenarioScene] = []


class CurrentWork(BaseModel):
    model_config = ConfigDict(extra="allow")

    logline: str = ""
    synopsis: Optional[Synopsis] = None
    treatment: Optional[Treatment] = None
    scenario: Optional[Scenario] = None


class VisualEntity(BaseModel):
    """A character, location or prop.

    ``blocks`` keeps the key order of the source document; prompt strings are
    built by iterating it, so reordering changes the prompt.
    """

    model_config = ConfigDict(extra="allow")

    id: str
    name: str = ""
    blocks: Dict[str, str] = {}


class Character(VisualEntity):
    character_detail: Optional[str] = None
    voice_style: Optional[str] = None


class Location(VisualEntity):
    pass


class Prop(VisualEntity):
    prop_detail: Optional[str] = None


class VisualBlocks(BaseModel):
    model_config = ConfigDict(extra="allow")

    characters: List[Character] = []
    locations: List[Location] = []
    props: List[Prop] = []

    def entity_count(self) -> int:
        return len(self.characters) + len(self.locations) + len(self.props)


class Stage1Document(BaseModel):
    """Story and asset metadata for a film (pipeline stage 1)."""

    model_config = ConfigDict(extra="allow")

    film_id: str
    current_step: str
    timestamp: str = ""
    film_metadata: Optional[FilmMetadata] = None
    current_work: Optional[CurrentWork] = None
    visual_blocks: Optional[VisualBlocks] = None


# ── Stage 2 models ────────────────────────────────────────────────────────────


class CameraMovement(BaseModel):
    """Camera fields as found in the document.

    Values are not checked here; a flagged camera (no type, ``duration: 4``)
    must still load so the scene can be edited.
    """

    model_config = ConfigDict(extra="allow")

    type: Optional[Any] = None
    speed: Optional[Any] = None
    duration: Optional[Any] = None
    secondary: Optional[Any] = None
    focus_shift: Optional[Any] = None


class Shot(BaseModel):
    """A single shot of a Stage 2 scene.

    ``shot_id``, ``shot_text`` and ``updateStatus`` are coerced to str because
    the reconciler and prompts work on them; every other field is carried as
    found.
    ``userRequest``, ``freeInput`` and ``updateStatus`` belong to the current
    edit session only and are stripped on export.
    """

    model_config = ConfigDict(extra="allow")

    shot_id: Optional[str] = ""
    shot_type: Optional[Any] = "regular"
    shot_text: Optional[str] = ""
    shot_character: Optional[Any] = []
    scene: Optional[Any] = None
    movement_description: Optional[Any] = None
    camera_movement: Optional[CameraMovement] = None
    starting_frame: Optional[Any] = None
    ending_frame: Optional[Any] = None

    userRequest: Optional[Any] = None
    freeInput: Optional[Any] = None
    updateStatus: Optional[str] = None

    @field_validator("shot_id", "shot_text", "updateStatus", mode="before")
    @classmethod
    def _scalar_to_str(cls, value: Any) -> Any:
        if value is None or isinstance(value, str):
            return value
        return str(value)

    @field_validator("camera_movement", mode="before")
    @classmethod
    def _wrap_bare_camera(cls, value: Any) -> Any:
        # "pan" -> {"type": "pan"}; empty scalars mean no camera.
        if value is None or isinstance(value, (dict, CameraMovement)):
            return value
        if value == "" or value is False or value == 0:
            return None
        return {"type": value}


class ConceptArtReferences(BaseModel):
    model_config = ConfigDict(extra="allow")

    characters: List[str] = []
    location: str = ""
    props: List[str] = []


class Scene(BaseModel):
    model_config = ConfigDict(extra="allow")

    scene_id: str
    scene_title: str = ""
    scene_scenario: str = ""
    concept_art_references: Optional[ConceptArtReferences] = None
    shots: List[Shot] = []


class Stage2Document(BaseModel):
    """Shot-division data for a film (pipeline stage 2)."""

    model_config = ConfigDict(extra="allow")

    film_id: str
    current_step: Literal["shot_division_2A", "visual_direction_2B"]
    timestamp: str = ""
    scenes: List[Scene] = []


# ── Stage discrimination ──────────────────────────────────────────────────────

DocumentKind = Literal["stage1", "stage2"]


def detect_kind(data: Any) -> DocumentKind:
    """Return "stage2" iff *data* has a ``scenes`` list and a Stage 2 step."""
    if (
        isinstance(data, dict)
        and isinstance(data.get("scenes"), list)
        and data.get("current_step") in STAGE2_STEPS
    ):
        return "stage2"
    return "stage1"


class LoadedDocument(BaseModel):
    """A parsed document tagged with its stage, decided once at load time."""

    kind: DocumentKind
    data: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_data(cls, data: Dict[str, Any]) -> "LoadedDocument":
        return cls(kind=detect_kind(data), data=data)

