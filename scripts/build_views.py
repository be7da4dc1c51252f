#!/usr/bin/env python3
"""Build the static front-end views from a raw record-store export.

Reads the raw JSON dump (one collection per entity kind), runs the materialization pipeline and
writes every view under the output directory.

Usage:
    python scripts/build_views.py
    python scripts/build_views.py --input public/data/raw-airtable-data.json --output-dir out/
    python scripts/build_views.py --primary-entity storyteller --project "Orange Sky"
    python scripts/build_views.py --dry-run --summary
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from loguru import logger

# Add the project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from storyledger.ingestion.record_lookup import load_raw_dump  # noqa: E402
from storyledger.pipeline.materialization_pipeline import MaterializationPipeline  # noqa: E402
from storyledger.storage.view_writer import JsonViewWriter  # noqa: E402
from storyledger.utils.config import load_config  # noqa: E402


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Materialize denormalized story views from a raw record-store export",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )

    parser.add_argument(
        "--config",
        "-c",
        type=Path,
        default=Path("config/config.yaml"),
        help="Path to configuration file (default: config/config.yaml)",
    )
    parser.add_argument(
        "--input",
        "-i",
        type=Path,
        default=None,
        help="Raw JSON export (default: raw_data_path from config)",
    )
    parser.add_argument(
        "--output-dir",
        "-o",
        type=Path,
        default=None,
        help="Output directory for views (default: output.output_dir from config)",
    )
    parser.add_argument(
        "--primary-entity",
        choices=["media", "storyteller"],
        default=None,
        help="Override resolution.primary_entity",
    )
    parser.add_argument("--project", default=None, help="Only keep records from this project")
    parser.add_argument(
        "--workers", type=int, default=None, help="Concurrent view writes (default: from config)"
    )
    parser.add_argument(
        "--dry-run", action="store_true", help="Run the pipeline without writing any views"
    )
    parser.add_argument(
        "--summary", action="store_true", help="Print a Markdown analytics summary to stdout"
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")

    args = parser.parse_args()

    try:
        config = load_config(args.config)
    except (FileNotFoundError, ValueError) as exc:
        print(f"Error loading config: {exc}", file=sys.stderr)
        return 1

    log_level = "DEBUG" if args.verbose else config.logging.level
    logger.remove()
    logger.add(
        sys.stderr,
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <level>{message}</level>",
        level=log_level,
    )
    if config.logging.file:
        Path(config.logging.file).parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            config.logging.file,
            level=log_level,
            rotation=config.logging.rotation,
            retention=config.logging.retention,
        )

    if args.primary_entity:
        config.resolution.primary_entity = args.primary_entity
    if args.project:
        config.normalization.project_filter = args.project

    input_path = args.input or config.raw_data_path
    output_dir = args.output_dir or config.output.output_dir

    try:
        raw = load_raw_dump(input_path)
    except (FileNotFoundError, ValueError) as exc:
        logger.error("Cannot load raw export: {}", exc)
        return 1

    writer = None
    if not args.dry_run:
        writer = JsonViewWriter(
            output_dir,
            max_workers=args.workers or config.output.write_workers,
            indent=config.output.indent,
        )

    pipeline = MaterializationPipeline(config)
    try:
        result = pipeline.run(raw, writer=writer)
    except ValueError as exc:
        logger.error("Pipeline failed: {}", exc)
        return 1
    except OSError as exc:
        logger.error("Failed to write views to {}: {}", output_dir, exc)
        return 1

    if args.summary:
        print(result.analytics.to_markdown())

    counts = result.views["metadata.json"]["counts"]
    if args.dry_run:
        logger.info("Dry run: {} views built, nothing written ({})", len(result.views), counts)
    else:
        logger.info("Done. {} views written to {} ({})", len(result.written), output_dir, counts)
    return 0


if __name__ == "__main__":
    sys.exit(main())
