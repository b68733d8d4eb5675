#!/usr/bin/env python3
"""
CLI for the pipe notch template generator.
Usage:
  python cli.py --d1 100 --d2 50 --angle 45 --type both --format dxf pdf
  python cli.py --config params.json --format xlsx stl --output-dir out/
"""
import argparse
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent))
from notch import (
    PipeParameters, load_params, compute_mesh, to_trimesh,
    compute_unrolled_contour, write_dxf, render_pdf, export_ordinates,
    dxf_filename, pdf_filename, xlsx_filename, stl_filename,
)
from notch.logging_config import setup_logging

FORMATS = ("dxf", "pdf", "xlsx", "stl")

# argparse dest -> PipeParameters field
PARAM_FLAGS = {
    'd1': 'd1',
    'd2': 'd2',
    'thickness': 'thickness',
    'angle': 'angle',
    'offset': 'offset',
    'welding_gap': 'welding_gap',
    'start_angle': 'start_angle',
    'padding_d1': 'padding_d1',
    'padding_d2': 'padding_d2',
}


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Pipe notch (saddle) template generator")

    # Geometry
    parser.add_argument("--config", help="JSON file with pipe parameters")
    parser.add_argument("--d1", type=float, help="Main pipe outer diameter (mm)")
    parser.add_argument("--d2", type=float, help="Branch pipe outer diameter (mm)")
    parser.add_argument("--thickness", type=float, help="Branch wall thickness (mm)")
    parser.add_argument("--angle", type=float, help="Angle between pipe axes (deg, 1-90)")
    parser.add_argument("--offset", type=float, help="Branch axis offset from D1 center (mm)")
    parser.add_argument("--welding-gap", type=float, help="Welding gap (mm)")
    parser.add_argument("--start-angle", type=float, help="Seam rotation (deg)")
    parser.add_argument("--padding-d1", type=float, help="Hole template padding (mm)")
    parser.add_argument("--padding-d2", type=float, help="Branch template padding (mm)")
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("--od", dest="calc_by_id", action="store_true", default=None,
                      help="Intersection test with the branch outer diameter (deep cut)")
    mode.add_argument("--id", dest="calc_by_id", action="store_false", default=None,
                      help="Intersection test with the branch inner diameter")

    # Output
    parser.add_argument("--type", choices=["pipe", "hole", "both"], default="both",
                        help="Template to export")
    parser.add_argument("--format", nargs="+", choices=FORMATS, default=["dxf"],
                        help="Output formats")
    parser.add_argument("--output-dir", default=".", help="Output directory")
    parser.add_argument("--steps", type=int, default=360, help="Contour resolution")
    parser.add_argument("--step-deg", type=float, default=10.0,
                        help="Station spacing of the Excel ordinate table (deg)")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")

    args = parser.parse_args(argv)
    if args.steps < 1:
        parser.error(f"--steps must be at least 1, got {args.steps}")
    if args.step_deg <= 0:
        parser.error(f"--step-deg must be positive, got {args.step_deg}")
    return args


def build_params(args):
    """Defaults <- JSON config <- command-line flags."""
    params = load_params(args.config) if args.config else PipeParameters()
    overrides = {field: getattr(args, dest) for dest, field in PARAM_FLAGS.items()
                 if getattr(args, dest) is not None}
    if args.calc_by_id is not None:
        overrides['calc_by_id'] = args.calc_by_id
    return params.replace(**overrides) if overrides else params


def main(argv=None):
    args = parse_args(argv)
    setup_logging(logging.DEBUG if args.verbose else logging.WARNING)

    if args.config:
        print(f"📋 Loading parameters from: {args.config}")
    try:
        params = build_params(args)
    except (OSError, ValueError) as e:
        print(f"❌ Invalid parameters: {e}")
        return 1

    print(f"📐 D1={params.d1:g} D2={params.d2:g} T={params.thickness:g} "
          f"angle={params.angle:g}° offset={params.offset:g} "
          f"gap={params.welding_gap:g} ({'OD' if params.calc_by_id else 'ID'})")

    result = compute_mesh(params)
    if not result.is_valid:
        print(f"❌ {result.error}")
        return 1

    out_dir = Path(args.output_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    kinds = ["pipe", "hole"] if args.type == "both" else [args.type]
    status = 0

    for kind in kinds:
        if "dxf" not in args.format and "pdf" not in args.format:
            break
        contour = compute_unrolled_contour(params, kind, args.steps)
        if len(contour) == 0:
            print(f"⚠️ No {kind} geometry to export")
            status = 1
            continue

        if "dxf" in args.format:
            path = out_dir / dxf_filename(params, kind)
            path.write_text(write_dxf(contour, kind), encoding="utf-8")
            print(f"💾 {kind} DXF: {path}")
        if "pdf" in args.format:
            path = out_dir / pdf_filename(params, kind)
            path.write_bytes(render_pdf(contour, params, kind))
            print(f"💾 {kind} PDF: {path}")

    if "xlsx" in args.format:
        path = out_dir / xlsx_filename(params)
        export_ordinates(params, path, args.step_deg)
        print(f"💾 Ordinate table: {path}")

    if "stl" in args.format:
        path = out_dir / stl_filename(params)
        to_trimesh(compute_mesh(params, 256)).export(str(path))
        print(f"💾 Branch mesh: {path}")

    return status


if __name__ == "__main__":
    sys.exit(main())
