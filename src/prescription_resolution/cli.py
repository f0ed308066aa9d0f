# ============================================================================
# src/prescription_resolution/cli.py
# ============================================================================
"""
Command-line entry point (console script: rx-resolve)

Usage:
    rx-resolve analyze prescription.txt --catalog data/catalog/catalog.json
    rx-resolve analyze prescription.txt --catalog catalog.db --classifier ollama --json
    rx-resolve build-catalog data/catalog/catalog.json catalog.db
    rx-resolve check-classifier
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import List, Optional

from .catalog import build_catalog_db, load_records, open_catalog
from .classifiers import create_classifier
from .config import logging_settings
from .core.config import get_config
from .core.context.results import PrescriptionAnalysisResult
from .processors import PrescriptionAnalyzer
from .utils.exceptions import PrescriptionResolutionError
from .utils.logging import setup_logging


def _print_report(result: PrescriptionAnalysisResult):
    print(f"\n{'=' * 60}")
    print("Prescription Analysis")
    print(f"{'=' * 60}")
    print(f"Overall confidence:    {result.overall_confidence:.2f}")
    print(f"Requires consultation: {'yes' if result.requires_consultation else 'no'}")
    print(f"Estimated total:       {result.total_estimated_price:,.0f}")

    if result.extracted_info:
        print("\n--- Prescription info ---")
        for key, value in result.extracted_info.items():
            print(f"  {key}: {value}")

    print(f"\n--- Found ({len(result.found_medicines)}) ---")
    for resolution in result.found_medicines:
        match = resolution.exact_match
        print(
            f"  ✓ {resolution.parsed.original_text}\n"
            f"      -> {match.catalog_entry.name} x{resolution.quantity} "
            f"({match.match_reason.value}, {match.confidence:.2f})"
        )

    print(f"\n--- Not found ({len(result.not_found_medicines)}) ---")
    for resolution in result.not_found_medicines:
        print(f"  ✗ {resolution.parsed.original_text}")
        if not resolution.suggestions:
            print("      (no suggestions)")
        for suggestion in resolution.suggestions:
            print(
                f"      ~ {suggestion.name} ({suggestion.confidence:.2f}, "
                f"{suggestion.match_count}/4) {suggestion.match_explanation}"
            )

    if result.notes:
        print("\n--- Notes ---")
        for note in result.notes:
            print(f"  - {note}")
    print(f"{'=' * 60}\n")


async def _analyze(args) -> int:
    text = Path(args.file).read_text(encoding="utf-8")
    config = {}
    if args.classifier:
        config['classifier_backend'] = args.classifier

    catalog = open_catalog(args.catalog or get_config()['catalog_path'])
    classifier = create_classifier(config)
    try:
        analyzer = PrescriptionAnalyzer(catalog, classifier=classifier, config=config)
        result = await analyzer.analyze(text)
    finally:
        await classifier.close()
        await catalog.close()

    if args.json:
        print(json.dumps(result.to_dict(), ensure_ascii=False, indent=2))
    else:
        _print_report(result)
    return 0


async def _check_classifier(args) -> int:
    config = {'classifier_backend': args.classifier} if args.classifier else {}
    classifier = create_classifier(config)
    try:
        status = await classifier.health_check()
    finally:
        await classifier.close()
    print(json.dumps(status, ensure_ascii=False, indent=2))
    return 0 if status.get("healthy") else 1


def _build_catalog(args) -> int:
    records = load_records(args.source)
    count = build_catalog_db(records, args.db)
    print(f"Wrote {count} catalog entries to {args.db}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rx-resolve",
        description="Resolve prescription medicines against a pharmacy catalog"
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    analyze = subparsers.add_parser("analyze", help="Analyze an OCR'd prescription text file")
    analyze.add_argument("file", help="Text file with the OCR output")
    analyze.add_argument("--catalog", help="Catalog file (.json, .db, .sqlite)")
    analyze.add_argument("--classifier", choices=["none", "ollama"], help="Taxonomy classifier backend")
    analyze.add_argument("--json", action="store_true", help="Print the result as JSON")

    build = subparsers.add_parser("build-catalog", help="Build a SQLite catalog from a JSON export")
    build.add_argument("source", help="JSON catalog export")
    build.add_argument("db", help="SQLite database to (re)create")

    check = subparsers.add_parser("check-classifier", help="Check the taxonomy classifier backend")
    check.add_argument("--classifier", choices=["none", "ollama"], help="Backend to check")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    level = "DEBUG" if args.verbose else logging_settings.LOG_LEVEL
    if getattr(args, "json", False) and not args.verbose:
        # Keep stdout parseable
        level = "WARNING"
    setup_logging(level, logging_settings.LOG_FILE, logging_settings.LOG_JSON)

    try:
        if args.command == "analyze":
            return asyncio.run(_analyze(args))
        if args.command == "build-catalog":
            return _build_catalog(args)
        if args.command == "check-classifier":
            return asyncio.run(_check_classifier(args))
    except (PrescriptionResolutionError, OSError) as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2
    return 1


if __name__ == "__main__":
    sys.exit(main())
