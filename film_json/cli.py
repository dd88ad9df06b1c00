"""film-json CLI entry point."""
from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import List

_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"


def setup_logging(level: str) -> None:
    """Send log records to stderr so stdout stays machine-readable."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format=_LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[logging.StreamHandler(sys.stderr)],
    )


def main(argv: List[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="film-json",
        description="Film pipeline JSON editor — validate, merge, repair, re-segment",
    )
    parser.add_argument(
        "--log-level", default=os.environ.get("FILM_JSON_LOG_LEVEL", "WARNING"),
        help="Logging level (default: $FILM_JSON_LOG_LEVEL or WARNING)",
    )
    sub = parser.add_subparsers(dest="command", metavar="COMMAND")

    validate_parser = sub.add_parser("validate", help="Validate a Stage 1 or Stage 2 JSON file")
    validate_parser.add_argument(
        "--input", required=True, metavar="doc.json", help="Path to the document",
    )
    validate_parser.add_argument(
        "--prompt", action="store_true",
        help="Print a correction request instead of the diagnostic list",
    )
    validate_parser.add_argument(
        "--category", default=None,
        choices=["essential", "story", "visual", "schema", "other"],
        help="Restrict the correction request to one category",
    )

    merge_parser = sub.add_parser("merge", help="Merge JSON files of one film")
    merge_parser.add_argument(
        "--inputs", required=True, nargs="+", metavar="part.json",
        help="Files to merge, in order",
    )
    merge_parser.add_argument(
        "--output", required=True, metavar="merged.json",
        help="Destination path for the merged document",
    )

    fix_parser = sub.add_parser("fix", help="Apply auto-fix heuristics to malformed JSON")
    fix_parser.add_argument("--input", required=True, metavar="broken.json")
    fix_parser.add_argument(
        "--output", default=None, metavar="fixed.json",
        help="Destination path (default: print to stdout)",
    )

    reconcile_parser = sub.add_parser(
        "reconcile", help="Re-segment a Stage 2 scene from edited text",
    )
    reconcile_parser.add_argument("--input", required=True, metavar="stage2.json")
    reconcile_parser.add_argument("--scene", required=True, metavar="S01")
    reconcile_parser.add_argument(
        "--text", required=True, metavar="scene.txt",
        help="Edited scene text, one shot per line",
    )
    reconcile_parser.add_argument("--output", default=None, metavar="edited.json")

    args = parser.parse_args(argv)
    setup_logging(args.log_level)

    if args.command == "validate":
        sys.exit(_cmd_validate(Path(args.input), args.prompt, args.category))
    elif args.command == "merge":
        sys.exit(_cmd_merge([Path(p) for p in args.inputs], Path(args.output)))
    elif args.command == "fix":
        sys.exit(_cmd_fix(Path(args.input), Path(args.output) if args.output else None))
    elif args.command == "reconcile":
        sys.exit(
            _cmd_reconcile(
                Path(args.input), args.scene, Path(args.text),
                Path(args.output) if args.output else None,
            )
        )
    else:
        parser.print_help()
        sys.exit(1)


def _read(path: Path) -> str | None:
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        print(f"ERROR: cannot read {path}: {exc.strerror}")
        return None


def _cmd_validate(path: Path, as_prompt: bool, category: str | None) -> int:
    from film_json.diagnostics import has_errors
    from film_json.prompts import correction_prompt
    from film_json.session import EditorSession

    text = _read(path)
    if text is None:
        return 1
    session = EditorSession()
    diagnostics = session.load_text(text)
    if as_prompt:
        print(correction_prompt(diagnostics, category))
    else:
        for diag in diagnostics:
            print(f"[{diag.severity}] {diag.category} {diag.describe()}")
            if diag.suggestion:
                print(diag.suggestion)
    if has_errors(diagnostics):
        print("ERROR: invalid document")
        return 1
    print("OK: document is valid")
    return 0


def _cmd_merge(paths: List[Path], output: Path) -> int:
    from film_json.session import EditorSession

    session = EditorSession()
    batch = session.start_batch(len(paths))
    for index, path in enumerate(paths):
        text = _read(path)
        if text is None:
            return 1
        batch.complete(index, path.name, text)

    for name in session.skipped_files:
        print(f"WARNING: skipped invalid JSON file {name}")
    for error in session.merge_errors:
        print(f"ERROR: {error}")
    if session.document is None or session.needs_editing:
        print("ERROR: merge failed")
        return 1
    for warning in session.merge_warnings:
        print(f"WARNING: {warning}")
    _, body = session.export()
    output.write_text(body, encoding="utf-8")
    print(f"OK: merged {len(paths)} files into {output}")
    return 0


def _cmd_fix(path: Path, output: Path | None) -> int:
    from film_json.parser import auto_fix_json

    text = _read(path)
    if text is None:
        return 1
    result = auto_fix_json(text)
    for name in result.fixes:
        print(f"FIXED: {name}", file=sys.stderr)
    if output is None:
        print(result.text)
    else:
        output.write_text(result.text, encoding="utf-8")
    return 0


def _cmd_reconcile(path: Path, scene_id: str, text_path: Path, output: Path | None) -> int:
    from film_json.prompts import scene_update_prompt
    from film_json.session import EditorSession

    text = _read(path)
    edited = _read(text_path)
    if text is None or edited is None:
        return 1
    session = EditorSession()
    session.load_text(text)
    try:
        shots = session.apply_scene_edits(scene_id, edited)
    except KeyError:
        print(f"ERROR: scene {scene_id} not found")
        return 1
    except ValueError as exc:
        print(f"ERROR: {exc}")
        return 1
    print(scene_update_prompt(scene_id, shots))
    if output is not None:
        _, body = session.export()
        output.write_text(body, encoding="utf-8")
    return 0


if __name__ == "__main__":
    main()
