#!/usr/bin/env python3
"""
CLI for generating property appraisal report PDFs.

Usage:
    python -m reporting.cli sample
    python -m reporting.cli generate <input_json>

Examples:
    # Generate sample report for testing
    python -m reporting.cli sample

    # Generate from a JSON appraisal export
    python -m reporting.cli generate appraisals/OB-2025-0147.json --report-type detailed
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from .filtering import filter_appraisal, filter_market, filter_property_images
from .pdf_generator import ReportGenerator
from .schemas import (
    AppraisalData,
    Language,
    MarketAnalysis,
    PropertyData,
    ReportOptions,
    ReportType,
    ReportValidationError,
    create_sample_inputs,
)


def parse_report_from_json(data: dict) -> tuple[PropertyData, AppraisalData, MarketAnalysis, ReportOptions]:
    """
    Parse a JSON dictionary into report inputs.

    Args:
        data: Dictionary with "property", "appraisal", "market" and
            optional "options" keys

    Returns:
        (property, appraisal, market, options) ready for report generation
    """
    property_data = PropertyData.from_dict(data.get("property") or {})
    appraisal = AppraisalData.from_dict(data.get("appraisal") or {})
    market = MarketAnalysis.from_dict(data.get("market"))
    options = ReportOptions.from_dict(data.get("options"))
    return property_data, appraisal, market, options


def apply_overrides(options: ReportOptions, args) -> ReportOptions:
    """Apply command-line flags on top of the options read from JSON."""
    changes = {}
    if getattr(args, "report_type", None):
        changes["report_type"] = ReportType.from_string(args.report_type)
    if getattr(args, "language", None):
        changes["language"] = Language.from_string(args.language)
    if getattr(args, "no_images", False):
        changes["include_images"] = False
    if getattr(args, "watermark", None) is not None:
        changes["watermark"] = args.watermark
    return options.with_changes(**changes) if changes else options


def apply_privacy_filters(property_data, appraisal, market, report_type: ReportType):
    """Redact the inputs for a report tier before planning."""
    property_data.images = filter_property_images(property_data.images, report_type)
    return property_data, filter_appraisal(appraisal, report_type), filter_market(market, report_type)


def _print_result(result) -> None:
    print(f"Report generated: {result.path} ({result.pages} pages)")
    if result.degraded_blocks:
        print(f"Warning: sections rendered as placeholders: {', '.join(result.degraded_blocks)}")


def cmd_sample(args):
    """Generate a sample appraisal report for testing."""
    print("Generating sample appraisal report...")

    property_data, appraisal, market, options = create_sample_inputs()
    options = apply_overrides(options, args)
    result = ReportGenerator().generate_report(property_data, appraisal, market, options)

    _print_result(result)
    return 0


def cmd_generate(args):
    """Generate a report from a JSON appraisal file."""
    input_path = Path(args.input_file)

    if not input_path.exists():
        print(f"Error: File not found: {input_path}", file=sys.stderr)
        return 1

    print(f"Loading appraisal from: {input_path}")

    try:
        with open(input_path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        print(f"Error: Invalid JSON: {e}", file=sys.stderr)
        return 1

    try:
        property_data, appraisal, market, options = parse_report_from_json(data)
        options = apply_overrides(options, args)
    except (KeyError, TypeError, ValueError) as e:
        print(f"Error: Invalid appraisal data: {e}", file=sys.stderr)
        return 1

    if args.filter:
        property_data, appraisal, market = apply_privacy_filters(
            property_data, appraisal, market, options.report_type
        )

    print(f"Generating {options.report_type.value} report for: {appraisal.reference_number}")
    try:
        result = ReportGenerator().generate_report(property_data, appraisal, market, options)
    except ReportValidationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    _print_result(result)
    return 0


def _add_option_flags(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--report-type",
        choices=[t.value for t in ReportType],
        help="Report tier (overrides the JSON options)",
    )
    parser.add_argument(
        "--language",
        choices=[lang.value for lang in Language],
        help="Output language (overrides the JSON options)",
    )
    parser.add_argument(
        "--no-images",
        action="store_true",
        help="Leave out the property image gallery",
    )
    parser.add_argument(
        "--watermark",
        help="Watermark text drawn over every section",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="OpenBeit - Property Appraisal Report Generator",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    python -m reporting.cli sample
    python -m reporting.cli generate appraisals/OB-2025-0147.json

Output:
    Reports are saved to: reports/APR-<reference_number>.pdf
        """,
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Log section and page progress",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # Sample command
    sample_parser = subparsers.add_parser(
        "sample",
        help="Generate a sample report with mock data",
    )
    _add_option_flags(sample_parser)
    sample_parser.set_defaults(func=cmd_sample)

    # Generate command
    gen_parser = subparsers.add_parser(
        "generate",
        help="Generate a report from a JSON appraisal file",
    )
    gen_parser.add_argument(
        "input_file",
        help="Path to JSON file with property, appraisal, market and options",
    )
    gen_parser.add_argument(
        "--filter",
        action="store_true",
        help="Apply the report tier's privacy filtering before generating",
    )
    _add_option_flags(gen_parser)
    gen_parser.set_defaults(func=cmd_generate)

    return parser


def main(argv=None):
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
