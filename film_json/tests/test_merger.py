"""Tests for multi-file merging (Stage 1 visual blocks, Stage 2 scenes)."""
from __future__ import annotations

import copy
import json

import pytest

from film_json.merger import (
    ParsedFile,
    classify_document,
    classify_file,
    merge_documents,
)

_FILM = "FILM_000123"


def _stage1(step: str, **extra) -> dict:
    doc = {
        "film_id": _FILM,
        "current_step": step,
        "timestamp": "2025-01-01T00:00:00Z",
        "film_metadata": {"title_working": "Harbor"},
    }
    doc.update(extra)
    return doc


def _main_doc() -> dict:
    return _stage1(
        "scenario_development",
        current_work={"logline": "A storm.", "scenario": {"scenario_title": "Harbor", "scenes": []}},
    )


def _asset_doc() -> dict:
    return _stage1(
        "asset_addition",
        visual_blocks={
            "characters": [
                {"id": "CHAR_01", "name": "Lena", "blocks": {"1_STYLE": "noir"}},
                {"id": "CHAR_02", "name": "Marcus", "blocks": {}},
            ],
            "locations": [{"id": "LOC_01", "name": "Harbor", "blocks": {}}],
            "props": [{"id": "PROP_01", "name": "Lantern", "blocks": {}}],
        },
    )


def _stage2(*scene_ids: str, step: str = "shot_division_2A") -> dict:
    return {
        "film_id": _FILM,
        "current_step": step,
        "timestamp": "2025-01-02T00:00:00Z",
        "scenes": [{"scene_id": sid, "scene_title": f"Scene {sid}", "shots": []} for sid in scene_ids],
    }


def _pf(name: str, parsed: dict) -> ParsedFile:
    return ParsedFile(name=name, parsed=parsed)


class TestFatalErrors:

    def test_empty_batch_fails(self):
        result = merge_documents([])
        assert result.success is False
        assert result.merged is None
        assert result.errors

    def test_film_id_mismatch_aborts(self):
        other = _asset_doc()
        other["film_id"] = "FILM_999999"
        result = merge_documents([_pf("main.json", _main_doc()), _pf("assets.json", other)])
        assert result.success is False
        assert result.merged is None
        assert "assets.json" in result.errors[0]
        assert "main.json" not in result.errors[0]

    def test_missing_film_id_mismatches(self):
        other = _asset_doc()
        del other["film_id"]
        result = merge_documents([_pf("main.json", _main_doc()), _pf("a.json", other)])
        assert result.success is False


class TestStage1Merge:

    def test_assets_appended_to_main(self):
        result = merge_documents([_pf("assets.json", _asset_doc()), _pf("main.json", _main_doc())])
        assert result.success
        merged = result.merged
        # main file is the base even though it came second
        assert merged["current_work"]["logline"] == "A storm."
        assert [c["id"] for c in merged["visual_blocks"]["characters"]] == ["CHAR_01", "CHAR_02"]
        assert merged["current_step"] == "concept_art_blocks_completed"
        assert result.warnings == []

    def test_duplicate_ids_warned_and_dropped(self):
        first = _asset_doc()
        second = _asset_doc()
        second["visual_blocks"]["characters"][0]["name"] = "Lena (v2)"
        result = merge_documents([_pf("a.json", first), _pf("b.json", second)])
        assert result.success
        chars = result.merged["visual_blocks"]["characters"]
        assert [c["name"] for c in chars] == ["Lena", "Marcus"]
        assert "b.json: duplicate character id ignored: CHAR_01 (Lena (v2))" in result.warnings

    def test_self_merge_warns_for_every_entity(self):
        doc = _asset_doc()
        result = merge_documents([_pf("a.json", doc), _pf("a.json", copy.deepcopy(doc))])
        assert len(result.warnings) == 4
        vb = result.merged["visual_blocks"]
        assert len(vb["characters"]) + len(vb["locations"]) + len(vb["props"]) == 4

    def test_first_file_is_base_without_main_candidate(self):
        a = _asset_doc()
        b = _stage1("asset_addition", visual_blocks={"props": [{"id": "PROP_02", "name": "Rope"}]})
        result = merge_documents([_pf("a.json", a), _pf("b.json", b)])
        props = result.merged["visual_blocks"]["props"]
        assert [p["id"] for p in props] == ["PROP_01", "PROP_02"]

    def test_empty_scenario_object_marks_main_file(self):
        a = _asset_doc()
        b = _stage1("asset_addition", current_work={"scenario": {}})
        result = merge_documents([_pf("a.json", a), _pf("b.json", b)])
        assert result.merged["current_work"] == {"scenario": {}}
        assert len(result.merged["visual_blocks"]["characters"]) == 2

    def test_visual_lists_created_when_absent(self):
        result = merge_documents([_pf("main.json", _main_doc())])
        assert result.merged["visual_blocks"] == {"characters": [], "locations": [], "props": []}
        # no entities: step untouched
        assert result.merged["current_step"] == "scenario_development"

    def test_inputs_not_mutated(self):
        main = _main_doc()
        assets = _asset_doc()
        before = (copy.deepcopy(main), copy.deepcopy(assets))
        merge_documents([_pf("main.json", main), _pf("assets.json", assets)])
        assert (main, assets) == before

    def test_step_already_completed_kept(self):
        doc = _asset_doc()
        doc["current_step"] = "concept_art_blocks_completed"
        result = merge_documents([_pf("a.json", doc)])
        assert result.merged["current_step"] == "concept_art_blocks_completed"


class TestStage2Merge:

    def test_scenes_collected_and_sorted(self):
        result = merge_documents([
            _pf("s3.json", _stage2("S03", "S01")),
            _pf("s2.json", _stage2("S02")),
        ])
        assert result.success
        assert [s["scene_id"] for s in result.merged["scenes"]] == ["S01", "S02", "S03"]
        assert result.merged["timestamp"] == "2025-01-02T00:00:00Z"

    def test_duplicate_scene_kept_first(self):
        a = _stage2("S01")
        b = _stage2("S01", "S02")
        b["scenes"][0]["scene_title"] = "Overwritten?"
        result = merge_documents([_pf("a.json", a), _pf("b.json", b)])
        scenes = result.merged["scenes"]
        assert len(scenes) == 2
        assert scenes[0]["scene_title"] == "Scene S01"
        assert len(result.warnings) == 1
        assert "b.json" in result.warnings[0] and "S01" in result.warnings[0]

    def test_output_not_longer_than_inputs(self):
        files = [_pf("a.json", _stage2("S02", "S01")), _pf("b.json", _stage2("S02", "S04"))]
        result = merge_documents(files)
        ids = [s["scene_id"] for s in result.merged["scenes"]]
        assert len(ids) <= 4
        assert ids == sorted(ids)
        assert len(ids) == len(set(ids))

    def test_stage1_file_in_stage2_batch_reported(self):
        result = merge_documents([_pf("a.json", _stage2("S01")), _pf("b.json", _asset_doc())])
        assert result.success
        assert result.errors == ["b.json: not a Stage 2 document."]
        assert [s["scene_id"] for s in result.merged["scenes"]] == ["S01"]


class TestClassify:

    def test_classify_document(self):
        assert classify_document(_main_doc()) == "main"
        assert classify_document(_asset_doc()) == "asset"
        assert classify_document(_stage1("synopsis_planning")) == "unknown"

    @pytest.mark.parametrize("scenario, expected", [({}, "main"), (None, "unknown"), ("", "unknown")])
    def test_scenario_presence(self, scenario, expected):
        doc = _stage1("synopsis_planning", current_work={"scenario": scenario})
        assert classify_document(doc) == expected

    def test_classify_file_salvages_wrapped_json(self):
        text = "Here is the file:\n```json\n" + json.dumps(_asset_doc()) + "\n```"
        parsed = classify_file("assets.json", text)
        assert parsed is not None
        assert parsed.type == "asset"
        assert parsed.film_id == _FILM

    def test_classify_file_rejects_garbage(self):
        assert classify_file("bad.json", "{not json") is None

    def test_classify_file_rejects_non_object(self):
        assert classify_file("list.json", "[1, 2]") is None

    @pytest.mark.parametrize("film_id", [None, 42])
    def test_unknown_film_id(self, film_id):
        doc = _stage1("synopsis_planning")
        doc["film_id"] = film_id
        parsed = classify_file("x.json", json.dumps(doc))
        assert parsed.film_id == "UNKNOWN"
