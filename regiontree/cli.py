import argparse
import logging
import sys

from . import config
from .builder import build_from_geometry, build_from_sets
from .query import RegionMap


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="regiontree",
        description="Build and query H3 region lookup trees",
    )
    ap.add_argument(
        "--log-level",
        default=config.DEFAULT_LOG_LEVEL,
        help="Logging level (DEBUG, INFO, WARNING, ...).",
    )
    sub = ap.add_subparsers(dest="command", required=True)

    gen = sub.add_parser("generate", help="Generate a region tree from h3idz region sets")
    gen.add_argument("out", help="Output file")
    gen.add_argument("sets", nargs="+", help="Input h3idz files (gzip of u64 LE cells)")
    gen.add_argument("--progress", action="store_true", help="Show progress bars")

    world = sub.add_parser("gen-world", help="Generate a region tree from a GeoJSON FeatureCollection")
    world.add_argument("out", help="Output file")
    world.add_argument("world", help="GeoJSON FeatureCollection; each feature needs geometry and properties")
    world.add_argument(
        "--resolution",
        type=int,
        default=config.DEFAULT_RESOLUTION,
        help=f"H3 resolution to rasterize at (default: {config.DEFAULT_RESOLUTION})",
    )
    world.add_argument(
        "--workers",
        type=int,
        default=config.DEFAULT_WORKERS,
        help=f"Rasterization threads (default: {config.DEFAULT_WORKERS})",
    )
    world.add_argument("--progress", action="store_true", help="Show progress bars")

    look = sub.add_parser("lookup", help="Lookup target H3 cell")
    look.add_argument("map", help="Region tree file")
    look.add_argument("idx", help="Target H3 index, hexadecimal")

    info = sub.add_parser("info", help="Summarize a region tree file")
    info.add_argument("map", help="Region tree file")
    return ap


def run_cli(args: argparse.Namespace) -> int:
    if args.command == "generate":
        build_from_sets(args.out, args.sets, progress=args.progress)
    elif args.command == "gen-world":
        build_from_geometry(
            args.out,
            args.world,
            resolution=args.resolution,
            workers=args.workers,
            progress=args.progress,
        )
    elif args.command == "lookup":
        with RegionMap(args.map) as rm:
            value = rm.lookup(args.idx)
        if value is None:
            print("no entry", file=sys.stderr)
        else:
            print(value)
    elif args.command == "info":
        with RegionMap(args.map) as rm:
            summary = rm.describe()
        print(f"{summary['path']}: {summary['records']} records, {summary['size']} bytes")
        for label, value in enumerate(summary["labels"]):
            print(f"{label:>3}  {value}")
    return 0


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.INFO),
        format="[%(levelname)s] %(name)s: %(message)s",
    )
    try:
        return run_cli(args)
    except KeyboardInterrupt:
        print("\n[cli] Interrupted.", file=sys.stderr)
        return 130  # 128 + SIGINT
    except Exception as e:
        print(f"[error] {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
