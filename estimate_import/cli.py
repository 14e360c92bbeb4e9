"""Command line entry point for importing estimate files."""
import argparse
import json
import sys
from pathlib import Path

from estimate_import.core.config import load_settings
from estimate_import.core.errors import EstimateParsingError
from estimate_import.core.logging import configure_logging
from estimate_import.parsers import parse_document
from estimate_import.pipeline import SINKS, run_pipeline


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI entry point."""

    parser = argparse.ArgumentParser(description="Parse BMS and EMS collision estimates")
    parser.add_argument(
        "--data-dir",
        type=Path,
        default=Path("sample_data/estimates"),
        help="Directory holding .xml/.bms and .ems/.txt estimate files",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=Path("output/estimate_lines.csv"),
        help="CSV file to write estimate lines to",
    )
    parser.add_argument(
        "--sink",
        choices=list(SINKS),
        default="csv",
        help="Additional sink to write after the CSV",
    )
    parser.add_argument(
        "--excel-output",
        type=Path,
        default=Path("output/estimate_lines.xlsx"),
        help="Excel file to write when --sink=excel",
    )
    parser.add_argument(
        "--file",
        type=Path,
        help="Parse a single estimate and print it as JSON instead of running the pipeline",
    )
    parser.add_argument(
        "--format",
        choices=["BMS", "EMS"],
        help="Format of --file; detected from content when omitted",
    )
    parser.add_argument(
        "--env-file",
        type=Path,
        default=Path(".env"),
        help="Optional KEY=value file with ESTIMATE_* settings",
    )
    return parser


def main() -> None:
    """Entrypoint for running the importer from the command line."""

    configure_logging()
    args = build_parser().parse_args()
    settings = load_settings(args.env_file)

    if args.file is not None:
        try:
            result = parse_document(args.file.read_bytes(), fmt=args.format, settings=settings)
        except EstimateParsingError as exc:
            print(f"Could not parse {args.file}: {exc}", file=sys.stderr)
            raise SystemExit(1) from exc
        print(json.dumps(result.to_dict(), indent=2))
        return

    output_path = run_pipeline(
        args.data_dir,
        args.output,
        sink=args.sink,
        excel_path=args.excel_output,
        settings=settings,
    )
    print(f"Wrote {output_path}")


if __name__ == "__main__":
    main()
