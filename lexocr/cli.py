"""Command-line interface for legal PDF extraction."""

from __future__ import annotations

import argparse
import dataclasses
import json
import sys
from pathlib import Path

from .config import PipelineConfig, configure_logging, load_pipeline_config, log_startup_config
from .document import process_document
from .extract import ExtractionOrchestrator
from .quota import QuotaTracker
from .utils import ExtractionError, validate_pdf_path


def build_parser() -> argparse.ArgumentParser:
    """Create the CLI argument parser."""

    parser = argparse.ArgumentParser(
        description="Extract text, metadata and structure from a French legal PDF."
    )
    parser.add_argument("pdf_path", nargs="?", help="Path to the PDF file.")
    parser.add_argument(
        "--json",
        dest="json_output",
        type=str,
        default=None,
        metavar="FILE",
        help="Write the structured JSON rendering to FILE.",
    )
    parser.add_argument(
        "--html",
        dest="html_output",
        type=str,
        default=None,
        metavar="FILE",
        help="Write the HTML rendering to FILE.",
    )
    parser.add_argument(
        "--raster-scale",
        type=float,
        default=None,
        help="Page render zoom factor, 1.0 = 72 dpi (default: RASTER_SCALE or 2.0).",
    )
    parser.add_argument(
        "--no-cloud",
        action="store_true",
        help="Disable cloud OCR even if it is configured.",
    )
    parser.add_argument(
        "--quota-file",
        type=str,
        default=None,
        metavar="FILE",
        help="Cloud OCR quota record (default: QUOTA_FILE or data/vision-quota.json).",
    )
    parser.add_argument(
        "--lang",
        type=str,
        default=None,
        help="Tesseract language code (default: TESSERACT_LANG or fra).",
    )
    parser.add_argument(
        "--quota-stats",
        action="store_true",
        help="Print cloud OCR quota usage and exit.",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        help="Logging level (default: LOG_LEVEL or INFO).",
    )
    return parser


def _config_from_args(args: argparse.Namespace) -> PipelineConfig:
    config = load_pipeline_config()
    overrides: dict[str, object] = {}
    if args.raster_scale is not None:
        overrides["raster_scale"] = args.raster_scale
    if args.no_cloud:
        overrides["cloud_ocr_enabled"] = False
    if args.quota_file:
        overrides["quota_file"] = args.quota_file
    if args.lang:
        overrides["tesseract_lang"] = args.lang
    return dataclasses.replace(config, **overrides)


def main(argv: list[str] | None = None) -> int:
    """Entry point for the CLI."""

    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level)

    try:
        config = _config_from_args(args)
        log_startup_config(config)

        if args.quota_stats:
            stats = QuotaTracker.from_config(config).get_quota_stats()
            print(stats.model_dump_json(indent=2))
            return 0

        if not args.pdf_path:
            parser.error("pdf_path is required unless --quota-stats is given")

        pdf_path = validate_pdf_path(args.pdf_path)
        orchestrator = ExtractionOrchestrator.from_config(config)
        document = process_document(pdf_path, orchestrator=orchestrator)

        if args.json_output:
            Path(args.json_output).write_text(
                json.dumps(document.json_data, ensure_ascii=False, indent=2), encoding="utf-8"
            )
            print(f"JSON written to {args.json_output}", file=sys.stderr)
        if args.html_output:
            Path(args.html_output).write_text(document.html, encoding="utf-8")
            print(f"HTML written to {args.html_output}", file=sys.stderr)
        print(document.model_dump_json(indent=2, by_alias=True))
        return 0
    except ExtractionError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    except Exception as exc:  # pragma: no cover - safety net
        print(f"Unexpected error: {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
