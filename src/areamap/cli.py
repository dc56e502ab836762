"""CLI entry point for rendering choropleth maps."""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional, Tuple

from areamap.config import SIMD_DISPLAY_NAMES, load_settings_from_env
from areamap.errors import PipelineError
from areamap.pipeline import ChoroplethMapper


def parse_measure(value: str) -> Tuple[str, str]:
    """Split COLUMN[:DISPLAY] into (column, display name)."""
    column, _, display = value.partition(":")
    if not column:
        raise argparse.ArgumentTypeError(f"Invalid measure '{value}'")
    return column, display or SIMD_DISPLAY_NAMES.get(column, column)


def resolve_output(path: str, output_dir: str) -> str:
    """Place a relative output path under output_dir; absolute paths pass through."""
    return str(Path(output_dir) / path)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Join boundaries with a deprivation dataset and render choropleth maps"
    )
    boundaries = parser.add_mutually_exclusive_group(required=True)
    boundaries.add_argument("--boundaries", help="Boundary file (e.g. a .shp)")
    boundaries.add_argument("--boundary-preset", help="Registered boundary dataset name")
    parser.add_argument(
        "--boundary-id",
        help="Identifier column in the boundary file",
    )

    measurements = parser.add_mutually_exclusive_group(required=True)
    measurements.add_argument("--measurements", help="Tabular measurement file (.csv)")
    measurements.add_argument("--measurement-preset", help="Registered measurement dataset name")
    parser.add_argument(
        "--measurement-id",
        help="Identifier column in the measurement file",
    )
    parser.add_argument(
        "--measure",
        action="append",
        type=parse_measure,
        default=[],
        metavar="COLUMN[:DISPLAY]",
        help="Measurement column to map; repeat for several layers",
    )

    parser.add_argument("--filter-column", help="Attribute column to filter on")
    parser.add_argument(
        "--filter-value",
        action="append",
        default=[],
        help="Accepted value for --filter-column; repeat to accept several",
    )

    parser.add_argument(
        "--static",
        help="Write a static map image to this path (relative to AREAMAP_OUTPUT_DIR)",
    )
    parser.add_argument("--border-column", help="Column driving static border colors")
    parser.add_argument("--title", help="Static map title")
    parser.add_argument(
        "--interactive",
        help="Write an interactive HTML map to this path (relative to AREAMAP_OUTPUT_DIR)",
    )
    parser.add_argument("--log-level", help="Logging level (default from AREAMAP_LOG_LEVEL)")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = load_settings_from_env()
    logging.basicConfig(
        level=(args.log_level or settings.log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.boundaries and not args.boundary_id:
        parser.error("--boundary-id is required with --boundaries")
    if args.measurements and not args.measurement_id:
        parser.error("--measurement-id is required with --measurements")
    if args.filter_value and not args.filter_column:
        parser.error("--filter-value requires --filter-column")
    if not (args.static or args.interactive):
        parser.error("Nothing to render: pass --static and/or --interactive")

    mapper = ChoroplethMapper(settings)

    try:
        if args.boundaries:
            mapper.load_boundaries(args.boundaries, args.boundary_id)
        else:
            mapper.load_boundaries_from_config(args.boundary_preset)

        if args.measurements:
            mapper.load_measurements(
                args.measurements,
                args.measurement_id,
                value_columns=[column for column, _ in args.measure] or None,
            )
        else:
            mapper.load_measurements_from_config(args.measurement_preset)

        mapper.join()

        if args.filter_column:
            values = args.filter_value
            mapper.filter(args.filter_column, values[0] if len(values) == 1 else values)

        layers = args.measure or [
            (column, SIMD_DISPLAY_NAMES.get(column, column))
            for column in mapper.joined.value_columns
        ]
        if not layers:
            parser.error("No measurement columns to map; pass --measure")

        print(f"Mapping {len(mapper.joined)} regions")
        print(f"  Layers: {', '.join(name for _, name in layers)}")

        if args.static:
            column, display = layers[0]
            static_path = resolve_output(args.static, settings.output_dir)
            static = mapper.render_static(
                column,
                title=args.title,
                legend_label=display,
                border_column=args.border_column,
                save_path=static_path,
            )
            static.close()
            print(f"  Static map: {static_path}")

        if args.interactive:
            interactive_path = resolve_output(args.interactive, settings.output_dir)
            mapper.render_interactive(layers, save_path=interactive_path)
            print(f"  Interactive map: {interactive_path}")

    except (PipelineError, ValueError, KeyError) as e:
        print(f"Rendering failed: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
