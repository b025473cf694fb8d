"""
Command Line Interface Module

Parses command-line arguments for the LevelMap measurement engine.
"""

import argparse
import json
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import List, Optional, Tuple

from .config import load_settings
from .constants import Units
from .errors import LevelMapError


def parse_point(point_str: str) -> Tuple[float, float, float]:
    """
    Parse a world point "x,y,z" in meters.

    Examples:
        "0,0,0" -> (0.0, 0.0, 0.0)
        "1.5, 0, -2" -> (1.5, 0.0, -2.0)
    """
    parts = [p.strip() for p in point_str.split(",")]
    if len(parts) != 3:
        raise argparse.ArgumentTypeError(f"Expected x,y,z but got '{point_str}'")
    try:
        return tuple(float(p) for p in parts)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Non-numeric coordinate in '{point_str}'")


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser for the measurement engine."""
    parser = argparse.ArgumentParser(
        prog="levelmap",
        description="Floor level grid, ruler reading and tolerance analysis",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m levelmap.cli grid --corner-a 0,0,0 --corner-b 2,0,3 --rows 4 --cols 4
  python -m levelmap.cli analyze -i session.json --tolerance 0.25
  python -m levelmap.cli measure -i ruler.jpg --units metric
  python -m levelmap.cli convert 1.375 --from imperial --to metric
  python -m levelmap.cli parse "1 3/8"
        """
    )

    parser.add_argument(
        "--config",
        help="Settings YAML file (default: config/settings.yaml)"
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Verbose output"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # grid
    grid_parser = subparsers.add_parser("grid", help="Generate grid points from two corners")
    grid_parser.add_argument("--corner-a", type=parse_point, required=True, help="First corner x,y,z (m)")
    grid_parser.add_argument("--corner-b", type=parse_point, required=True, help="Second corner x,y,z (m)")
    grid_parser.add_argument("--rows", type=int, help="Grid rows (2-26)")
    grid_parser.add_argument("--cols", type=int, help="Grid columns (2-50)")

    # analyze
    analyze_parser = subparsers.add_parser("analyze", help="Statistics and quality for a session file")
    analyze_parser.add_argument("-i", "--input", required=True, help="Session JSON file")
    analyze_parser.add_argument("--tolerance", type=float, help="Override session tolerance")

    # measure
    measure_parser = subparsers.add_parser("measure", help="Read a ruler photo")
    measure_parser.add_argument("-i", "--input", required=True, help="Ruler photo")
    measure_parser.add_argument("--units", choices=list(Units.ALL), help="Measurement units")

    # convert
    convert_parser = subparsers.add_parser("convert", help="Convert a value between unit systems")
    convert_parser.add_argument("value", type=float, help="Value in source units")
    convert_parser.add_argument("--from", dest="from_units", choices=list(Units.ALL), required=True)
    convert_parser.add_argument("--to", dest="to_units", choices=list(Units.ALL), required=True)
    convert_parser.add_argument("--resolution", help="Fractional resolution for imperial output (1/8, 1/16)")

    # parse
    parse_parser = subparsers.add_parser("parse", help="Parse measurement text")
    parse_parser.add_argument("text", help='Text such as "1 3/8" or "35"')
    parse_parser.add_argument("--units", choices=list(Units.ALL), default=Units.IMPERIAL)

    return parser


def validate_args(args: argparse.Namespace) -> Tuple[bool, str]:
    """
    Validate parsed arguments.

    Args:
        args: Parsed arguments

    Returns:
        Tuple of (is_valid, error_message)
    """
    if args.config and not Path(args.config).exists():
        return False, f"Settings file not found: {args.config}"

    if args.command in ("analyze", "measure"):
        if not Path(args.input).exists():
            return False, f"Input file not found: {args.input}"

    if args.command == "analyze" and args.tolerance is not None and args.tolerance <= 0:
        return False, f"Tolerance must be positive: {args.tolerance}"

    return True, ""


def parse_args(args: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse and validate command-line arguments.

    Args:
        args: Optional list of arguments (uses sys.argv if None)

    Returns:
        Parsed and validated arguments
    """
    parser = create_parser()
    parsed = parser.parse_args(args)

    is_valid, error_msg = validate_args(parsed)
    if not is_valid:
        parser.error(error_msg)

    return parsed


def run_command(args: argparse.Namespace) -> dict:
    """Execute a parsed command and return its JSON-serializable output."""
    from .calibration.unit_converter import (
        convert_and_format,
        format_measurement,
        parse_measurement,
        resolution_from_string,
    )
    from .pipeline import MeasurementSession, load_session_file

    settings = load_settings(args.config)

    if args.command == "grid":
        session = MeasurementSession.from_corners(
            args.corner_a,
            args.corner_b,
            rows=args.rows if args.rows is not None else settings.rows,
            cols=args.cols if args.cols is not None else settings.cols,
            units=settings.units,
            tolerance=settings.tolerance,
            resolution=settings.resolution,
        )
        return {
            "session": session.geometry.to_export_record(),
            "points": [
                {"label": p.label, "worldPosition": list(p.world_position)}
                for p in session.snapshot()
            ],
        }

    if args.command == "analyze":
        session = load_session_file(args.input)
        if args.tolerance is not None:
            session = MeasurementSession(
                replace(session.geometry, tolerance=args.tolerance),
                session.snapshot(),
            )
        session.recompute()
        return session.export_summary()

    if args.command == "measure":
        from .measurement.extractor import MeasurementExtractor
        from .measurement.vision import OpenCVVisionAnalyzer, load_image

        units = args.units or settings.units
        resolution = settings.resolution if units == Units.IMPERIAL else None
        extractor = MeasurementExtractor(OpenCVVisionAnalyzer(), units, resolution)
        return extractor.measure(load_image(args.input)).to_dict()

    if args.command == "convert":
        resolution = resolution_from_string(args.resolution) if args.resolution else None
        return {
            "input": format_measurement(args.value, args.from_units),
            "output": convert_and_format(args.value, args.from_units, args.to_units, resolution),
        }

    if args.command == "parse":
        value = parse_measurement(args.text, args.units)
        return {"text": args.text, "value": value}

    raise ValueError(f"Unknown command: {args.command}")


def main():
    """Main entry point for CLI."""
    args = parse_args()

    log_level = logging.DEBUG if args.verbose else logging.WARNING
    logging.basicConfig(level=log_level, format='%(message)s')

    try:
        output = run_command(args)
    except LevelMapError as e:
        print(f"\nError: {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        print("\nProcessing cancelled by user")
        sys.exit(1)

    print(json.dumps(output, indent=2))


if __name__ == "__main__":
    main()
