"""CLI entry point for Magnifico place discovery."""

import argparse
import asyncio
import logging
import sys

import yaml

from magnifico.core.config import Settings
from magnifico.core.errors import DiscoveryError
from magnifico.core.schemas import Coordinates, PlaceType, ScoredPlace, Viewport
from magnifico.pipeline.explain import display_score, format_price_level, significant_factors
from magnifico.pipeline.orchestrator import build_orchestrator, export_results_json


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Magnifico - discover and rank nearby hotels and restaurants",
    )
    parser.add_argument(
        "--config",
        default="config/settings.yaml",
        help="Path to settings YAML file (default: config/settings.yaml)",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose (DEBUG) logging",
    )
    subparsers = parser.add_subparsers(dest="command")

    # --- discover subcommand (default) ---
    discover_parser = subparsers.add_parser("discover", help="Rank places near a location")
    discover_parser.add_argument("--lat", type=float, required=True, help="Latitude")
    discover_parser.add_argument("--lng", type=float, required=True, help="Longitude")
    discover_parser.add_argument(
        "--type",
        dest="place_type",
        default=PlaceType.HOTEL.value,
        choices=[t.value for t in PlaceType],
        help="Place category (default: hotel)",
    )
    discover_parser.add_argument(
        "--viewport",
        help="Restrict to a rectangle: SOUTH,WEST,NORTH,EAST",
    )
    discover_parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Seconds to wait for the provider (default: provider timeout)",
    )
    discover_parser.add_argument(
        "--limit",
        type=int,
        default=10,
        help="Number of places to print (default: 10)",
    )
    discover_parser.add_argument(
        "--export",
        choices=["json"],
        help="Export results to format (json)",
    )

    # --- weights subcommand ---
    subparsers.add_parser("weights", help="Print the active scoring weights as YAML")

    args = parser.parse_args(argv)
    if args.command is None:
        parser.error("a command is required (discover or weights)")
    return args


def setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def parse_viewport(raw: str) -> Viewport:
    """Parse 'SOUTH,WEST,NORTH,EAST' into a Viewport."""
    parts = [p.strip() for p in raw.split(",")]
    if len(parts) != 4:
        msg = f"viewport needs 4 comma-separated numbers, got '{raw}'"
        raise ValueError(msg)
    south, west, north, east = (float(p) for p in parts)
    return Viewport(
        low=Coordinates(latitude=south, longitude=west),
        high=Coordinates(latitude=north, longitude=east),
    )


def print_places(places: list[ScoredPlace], limit: int) -> None:
    print(f"\n{len(places)} places ranked.")
    for position, place in enumerate(places[:limit], start=1):
        c = place.candidate
        price = format_price_level(c.price_level)
        rating = f"{c.rating:.1f}" if c.rating is not None else "-"
        print(
            f"{position:>2}. {c.name}  [{display_score(place.total_score):.1f}]"
            f"  rating {rating}{'  ' + price.symbol if price else ''}"
        )
        for factor in significant_factors(place.breakdown):
            print(f"      {factor.icon} {factor.label}: {factor.score:+.1f} ({factor.reason})")


async def run_discover(settings: Settings, args: argparse.Namespace) -> None:
    """Run one discovery request against the configured provider."""
    orchestrator = build_orchestrator(settings)
    viewport = parse_viewport(args.viewport) if args.viewport else None
    try:
        places = await orchestrator.discover(
            Coordinates(latitude=args.lat, longitude=args.lng),
            PlaceType(args.place_type),
            viewport,
            timeout=args.timeout,
        )
    finally:
        aclose = getattr(orchestrator.transport, "aclose", None)
        if aclose is not None:
            await aclose()

    if args.export == "json":
        print(export_results_json(places))
    else:
        print_places(places, args.limit)


def cmd_weights(settings: Settings) -> None:
    """Handle weights subcommand."""
    dumped = {t.value: w.model_dump(mode="json") for t, w in settings.weights.items()}
    print(yaml.safe_dump(dumped, sort_keys=False, allow_unicode=True))


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    setup_logging(args.verbose)

    try:
        settings = Settings.from_yaml(args.config)
    except (FileNotFoundError, ValueError) as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        sys.exit(1)

    if args.command == "weights":
        cmd_weights(settings)
        return

    try:
        asyncio.run(run_discover(settings, args))
    except (DiscoveryError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
