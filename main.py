# main.py
"""
Entry Point — Observation Bundler (photo-to-observation assignment)

Purpose
-------
Assign a folder of field photos to a file of numbered inspection notes and
emit the orchestration result as JSON:
  1) Load settings (defaults or --config JSON, then OBSBUNDLE_* env overrides).
  2) Read photos (sorted by filename; ids are 1-based positions) and notes.
  3) Run the assignment orchestrator (analyze → match → verify → repair → name).
  4) Write {assignments, photo_names, diagnostics} to --out or stdout.

Design
------
- CLI-friendly; heavy lifting lives in src/orchestrators/assignment_orchestrator.py.
- Provider is configuration-driven. Without credentials the OpenAI provider
  falls back to the deterministic mock classifier.
- No CSV or archive output; those belong to the surrounding workflow.

Usage
-----
    python main.py --photos data/sample/photos --notes data/sample/notes.txt
    python main.py --photos ./site --notes ./notes.txt --provider mock --out result.json --log-level DEBUG
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from src.core.log import configure_logging
from src.core.media.photos import list_images, load_photos
from src.core.notes import extract_observation_notes
from src.inputs.settings import SettingsLoader
from src.orchestrators.assignment_orchestrator import orchestrate

logger = logging.getLogger("main")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse CLI arguments for configurable runs."""
    p = argparse.ArgumentParser(description="Observation Bundler: assign photos to inspection notes")
    p.add_argument("--photos", type=str, required=True, help="Folder of photos (sorted by filename).")
    p.add_argument("--notes", type=str, required=True, help="Text file with numbered notes (`1. ...` per line).")
    p.add_argument("--config", type=str, default=None, help="Path to JSON settings file.")
    p.add_argument(
        "--provider",
        type=str,
        default=None,
        choices=["mock", "openai"],
        help='Classifier provider: "mock" or "openai" (overrides config).',
    )
    p.add_argument("--out", type=str, default=None, help="Output JSON path (default: stdout).")
    p.add_argument("--log-level", type=str, default="INFO", help="Logging level (DEBUG, INFO, WARNING, ...).")
    return p.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """Run the assignment pipeline and write the result JSON."""
    args = parse_args(argv)
    configure_logging(args.log_level)

    loader = SettingsLoader()
    settings = loader.with_overrides(loader.load(args.config), provider=args.provider)

    photo_paths = list_images(args.photos)
    photos = load_photos(photo_paths)
    notes = extract_observation_notes(Path(args.notes).read_text(encoding="utf-8"))
    if not notes:
        logger.error("No numbered notes found in %s", args.notes)
        return 2
    if not photos:
        logger.error("No images found in %s", args.photos)
        return 2

    result = orchestrate(photos, notes, settings=settings)
    payload = result.model_dump_json(indent=2)

    if args.out:
        out_path = Path(args.out)
        out_path.parent.mkdir(parents=True, exist_ok=True)
        out_path.write_text(payload, encoding="utf-8")
        logger.info("Result written to %s", out_path)
    else:
        sys.stdout.write(payload + "\n")

    if not result.diagnostics.validation.valid:
        logger.warning("Final assignment has validation errors: %s", "; ".join(result.diagnostics.validation.errors))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
