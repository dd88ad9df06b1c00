"""Tests for the film-json command line."""
from __future__ import annotations

import copy
import json

import pytest

from film_json.cli import main

_SHOT = {
    "shot_id": "S01.01.01",
    "shot_type": "regular",
    "shot_text": "Lena opens the heavy door.",
    "shot_character": ["CHAR_01"],
    "camera_movement": {"type": "push_in", "speed": "slow"},
    "movement_description": {"mood_emotion": "tense"},
    "starting_frame": {"camera_composition": "wide"},
    "ending_frame": {"camera_composition": "close"},
}

_STAGE2 = {
    "film_id": "FILM_000123",
    "current_step": "shot_division_2A",
    "timestamp": "2025-01-02T00:00:00Z",
    "scenes": [
        {
            "scene_id": "S01",
            "scene_title": "Harbor",
            "scene_scenario": "Rain on the pier.",
            "concept_art_references": {
                "characters": ["CHAR_01"],
                "location": "LOC_01",
                "props": ["PROP_01"],
            },
            "shots": [_SHOT],
        }
    ],
}


def _write(tmp_path, name: str, data) -> str:
    path = tmp_path / name
    text = data if isinstance(data, str) else json.dumps(data)
    path.write_text(text, encoding="utf-8")
    return str(path)


def _run(argv) -> int:
    with pytest.raises(SystemExit) as exc_info:
        main(argv)
    return exc_info.value.code


class TestValidate:

    def test_valid(self, tmp_path, capsys):
        path = _write(tmp_path, "doc.json", _STAGE2)
        assert _run(["validate", "--input", path]) == 0
        assert "OK: document is valid" in capsys.readouterr().out

    def test_invalid(self, tmp_path, capsys):
        doc = copy.deepcopy(_STAGE2)
        doc["film_id"] = "FILM_1"
        path = _write(tmp_path, "doc.json", doc)
        assert _run(["validate", "--input", path]) == 1
        out = capsys.readouterr().out
        assert "[error] schema film_id:" in out
        assert "ERROR: invalid document" in out

    def test_syntax_error_context_printed(self, tmp_path, capsys):
        path = _write(tmp_path, "doc.json", '{\n  "a": 1\n  "b": 2\n}')
        assert _run(["validate", "--input", path]) == 1
        out = capsys.readouterr().out
        assert "Line 3" in out
        assert "Near the error:" in out

    def test_prompt(self, tmp_path, capsys):
        doc = copy.deepcopy(_STAGE2)
        del doc["scenes"][0]["scene_title"]
        path = _write(tmp_path, "doc.json", doc)
        assert _run(["validate", "--input", path, "--prompt", "--category", "story"]) == 1
        out = capsys.readouterr().out
        assert "[JSON correction request]" in out
        assert "■ Category: STORY" in out

    def test_missing_file(self, tmp_path, capsys):
        assert _run(["validate", "--input", str(tmp_path / "absent.json")]) == 1
        assert "ERROR: cannot read" in capsys.readouterr().out


class TestMerge:

    def test_merge(self, tmp_path, capsys):
        second = copy.deepcopy(_STAGE2)
        second["scenes"][0]["scene_id"] = "S02"
        a = _write(tmp_path, "a.json", second)
        b = _write(tmp_path, "b.json", _STAGE2)
        out_path = tmp_path / "merged.json"
        assert _run(["merge", "--inputs", a, b, "--output", str(out_path)]) == 0
        assert "OK: merged 2 files" in capsys.readouterr().out
        merged = json.loads(out_path.read_text(encoding="utf-8"))
        assert [s["scene_id"] for s in merged["scenes"]] == ["S01", "S02"]

    def test_duplicate_scene_warning(self, tmp_path, capsys):
        a = _write(tmp_path, "a.json", _STAGE2)
        b = _write(tmp_path, "b.json", _STAGE2)
        assert _run(["merge", "--inputs", a, b, "--output", str(tmp_path / "m.json")]) == 0
        assert "WARNING: b.json: duplicate scene id ignored: S01" in capsys.readouterr().out

    def test_film_id_mismatch(self, tmp_path, capsys):
        a = _write(tmp_path, "a.json", _STAGE2)
        b = _write(tmp_path, "b.json", {**_STAGE2, "film_id": "FILM_999999"})
        out_path = tmp_path / "m.json"
        assert _run(["merge", "--inputs", a, b, "--output", str(out_path)]) == 1
        out = capsys.readouterr().out
        assert "ERROR: All files must share the same film_id" in out
        assert "b.json" in out
        assert "ERROR: merge failed" in out
        assert not out_path.exists()

    def test_stage1_file_reported(self, tmp_path, capsys):
        a = _write(tmp_path, "a.json", _STAGE2)
        b = _write(tmp_path, "notes.json", {"film_id": "FILM_000123", "current_step": "asset_addition"})
        out_path = tmp_path / "m.json"
        assert _run(["merge", "--inputs", a, b, "--output", str(out_path)]) == 0
        assert "ERROR: notes.json: not a Stage 2 document." in capsys.readouterr().out
        assert out_path.exists()


class TestFix:

    def test_fix_to_stdout(self, tmp_path, capsys):
        path = _write(tmp_path, "broken.json", '{"a": 1,}')
        assert _run(["fix", "--input", path]) == 0
        captured = capsys.readouterr()
        assert captured.out.strip() == '{"a": 1}'
        assert "FIXED: trailing comma" in captured.err

    def test_fix_to_file(self, tmp_path):
        path = _write(tmp_path, "broken.json", "{'a': \"null\"}")
        out_path = tmp_path / "fixed.json"
        assert _run(["fix", "--input", path, "--output", str(out_path)]) == 0
        assert json.loads(out_path.read_text(encoding="utf-8")) == {"a": None}


class TestReconcile:

    def test_reconcile(self, tmp_path, capsys):
        doc = _write(tmp_path, "doc.json", _STAGE2)
        text = _write(tmp_path, "scene.txt", "Lena opens the heavy door.\nA gull screams overhead.\n")
        out_path = tmp_path / "edited.json"
        code = _run(["reconcile", "--input", doc, "--scene", "S01", "--text", text,
                     "--output", str(out_path)])
        assert code == 0
        out = capsys.readouterr().out
        assert "# Scene Direction Update Request" in out
        assert "S01.02: [New] A gull screams overhead." in out
        edited = json.loads(out_path.read_text(encoding="utf-8"))
        shots = edited["scenes"][0]["shots"]
        assert [s["shot_text"] for s in shots] == [
            "Lena opens the heavy door.",
            "A gull screams overhead.",
        ]
        assert "updateStatus" not in shots[1]

    def test_unknown_scene(self, tmp_path, capsys):
        doc = _write(tmp_path, "doc.json", _STAGE2)
        text = _write(tmp_path, "scene.txt", "x")
        assert _run(["reconcile", "--input", doc, "--scene", "S09", "--text", text]) == 1
        assert "ERROR: scene S09 not found" in capsys.readouterr().out

    def test_not_stage2(self, tmp_path, capsys):
        doc = _write(tmp_path, "doc.json", {"film_id": "FILM_000123", "current_step": "asset_addition"})
        text = _write(tmp_path, "scene.txt", "x")
        assert _run(["reconcile", "--input", doc, "--scene", "S01", "--text", text]) == 1
        assert "Stage 2" in capsys.readouterr().out


def test_no_command(capsys):
    assert _run([]) == 1
