"""twi-map command line.

Usage:
    twi-map import ./export-dir
    twi-map aggregate            # aggregate, then assign coordinates
    twi-map aggregate --no-coords
    twi-map coords
    twi-map set-coord "Liscor" 190 -40
    twi-map status
    twi-map serve --port 8080
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sqlite3
import sys

from twi_map.infra import config
from twi_map.infra.logging_setup import configure_logging
from twi_map.models.aggregate import Confidence

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="twi-map",
        description="Resolve per-chapter location extractions into a placeable map dataset",
    )
    parser.add_argument("--data-dir", help="database directory (default: $TWI_MAP_DATA_DIR)")
    parser.add_argument("--tables-dir", help="directory with the JSON vocabulary tables")
    parser.add_argument("--min-mentions", type=int, help="minimum distinct-chapter mentions")
    parser.add_argument("--max-depth", type=int, help="containment hops to an anchor")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")

    sub = parser.add_subparsers(dest="command", required=True)

    p_import = sub.add_parser("import", help="load toc.json and extractions/*.json")
    p_import.add_argument("directory")

    p_agg = sub.add_parser("aggregate", help="merge extractions into the location dataset")
    p_agg.add_argument(
        "--no-coords", dest="coords", action="store_false",
        help="skip coordinate assignment",
    )

    sub.add_parser("coords", help="assign estimated coordinates to the stored aggregate")
    sub.add_parser("status", help="show pipeline progress")

    p_set = sub.add_parser("set-coord", help="pin a location to a manual coordinate")
    p_set.add_argument("location")
    p_set.add_argument("x", type=float)
    p_set.add_argument("y", type=float)
    p_set.add_argument(
        "--confidence",
        choices=[c.value for c in Confidence if c is not Confidence.estimated],
        default=Confidence.high.value,
    )

    p_clear = sub.add_parser("clear-coord", help="remove a manual coordinate")
    p_clear.add_argument("location")

    p_serve = sub.add_parser("serve", help="serve the read-only map API")
    p_serve.add_argument("--host", default=None)
    p_serve.add_argument("--port", type=int, default=None)

    return parser


async def _cmd_import(args: argparse.Namespace) -> int:
    from twi_map.services.import_service import import_directory

    summary = await import_directory(args.directory)
    print(
        f"Imported: {summary.chapters} chapters, {summary.extractions} extractions"
        f" ({summary.failed} failed)"
    )
    return 0


async def _cmd_aggregate(args: argparse.Namespace) -> int:
    from twi_map.services.name_tables import load_name_tables
    from twi_map.services.pipeline_service import run_aggregation

    tables = load_name_tables()
    print("Aggregating extractions...")
    summary = await run_aggregation(
        tables, min_mentions=args.min_mentions, max_depth=args.max_depth
    )
    print(
        f"Aggregated: {summary.locations} locations, {summary.relationships} relationships,"
        f" {summary.containment} containment rules"
        f" ({summary.extracted}/{summary.chapters} chapters extracted,"
        f" {summary.unreadable} unreadable)"
    )
    if args.coords:
        return await _assign_coords(args, tables, summary.data)
    return 0


async def _cmd_coords(args: argparse.Namespace) -> int:
    from twi_map.services.name_tables import load_name_tables

    return await _assign_coords(args, load_name_tables(), None)


async def _assign_coords(args, tables, data) -> int:
    from twi_map.services.pipeline_service import run_coordinate_assignment

    print("Assigning coordinates...")
    summary = await run_coordinate_assignment(data, tables, max_depth=args.max_depth)
    print(
        f"Coordinates: {summary.written} written ({summary.seeded} seeded,"
        f" {summary.propagated} near a parent, {summary.defaulted} type defaults),"
        f" {summary.manual} manual preserved"
    )
    return 0


async def _cmd_status(args: argparse.Namespace) -> int:
    from twi_map.services.pipeline_service import get_status

    status = await get_status()
    print("Pipeline Status")
    print("===============")
    print(f"TOC chapters:         {status.chapters}")
    print(f"Chapters extracted:   {status.extracted} / {status.chapters}")
    print(f"Aggregated locations: {status.locations}")
    print(f"Coordinates:          {status.coordinates} ({status.manual_coordinates} manual)")
    if status.volumes:
        print()
        print("Per-Volume Breakdown")
        print("--------------------")
        for vol, (total, extracted) in status.volumes.items():
            print(f"  {vol:<8}  chapters: {total:3d}  extracted: {extracted:3d}")
    return 0


def _location_key(name: str) -> str:
    from twi_map.services.canonical_resolver import CanonicalResolver
    from twi_map.services.name_tables import load_name_tables

    return CanonicalResolver(load_name_tables()).resolve(name)


async def _cmd_set_coord(args: argparse.Namespace) -> int:
    from twi_map.db import coordinate_store

    key = _location_key(args.location)
    coord = await coordinate_store.set_manual_coordinate(
        key, args.x, args.y, Confidence(args.confidence)
    )
    print(f"Pinned {key!r} at ({coord.x}, {coord.y}) [{coord.confidence.value}, manual]")
    return 0


async def _cmd_clear_coord(args: argparse.Namespace) -> int:
    from twi_map.db import coordinate_store

    key = _location_key(args.location)
    if await coordinate_store.clear_manual_coordinate(key):
        print(f"Cleared manual coordinate for {key!r}")
        return 0
    print(f"No manual coordinate for {key!r}", file=sys.stderr)
    return 1


_COMMANDS = {
    "import": _cmd_import,
    "aggregate": _cmd_aggregate,
    "coords": _cmd_coords,
    "status": _cmd_status,
    "set-coord": _cmd_set_coord,
    "clear-coord": _cmd_clear_coord,
}


async def _run(args: argparse.Namespace) -> int:
    from twi_map.db.sqlite_db import init_db

    await init_db()
    return await _COMMANDS[args.command](args)


def _serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run(
        "twi_map.api.main:app",
        host=args.host or config.SERVER_HOST,
        port=args.port or config.SERVER_PORT,
        log_level="debug" if args.verbose else "info",
    )
    return 0


def main(argv: list[str] | None = None) -> int:
    from twi_map.db.extraction_store import ExtractionReadError
    from twi_map.services.name_tables import NameTableError
    from twi_map.services.pipeline_service import CoordinateWriteError

    args = _build_parser().parse_args(argv)
    configure_logging(args.verbose)

    if args.data_dir:
        config.set_data_dir(args.data_dir)
    if args.tables_dir:
        config.set_tables_dir(args.tables_dir)

    if args.command == "serve":
        return _serve(args)

    try:
        return asyncio.run(_run(args))
    except (NameTableError, CoordinateWriteError, ExtractionReadError, sqlite3.Error) as exc:
        logger.debug("Command %s failed", args.command, exc_info=True)
        print(f"error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
