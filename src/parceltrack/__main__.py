"""
ParcelTrack - Entry Point

Run with: python -m parceltrack
"""

import argparse
import asyncio
import json
import logging
import sys

from parceltrack import __version__
from parceltrack.config import Settings
from parceltrack.errors import RegistryError, TrackError
from parceltrack.services import CarrierRegistry, TrackerService


def setup_logging(verbose: bool = False, level_name: str = "INFO") -> None:
    """Configure logging for the application."""
    level = logging.DEBUG if verbose else getattr(logging, level_name.upper(), logging.INFO)

    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    # Reduce noise from third-party libraries
    logging.getLogger("asyncio").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="parceltrack",
        description="ParcelTrack - track parcels across carriers",
    )

    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose (debug) logging",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the HTTP API")
    serve.add_argument(
        "--host",
        type=str,
        default="0.0.0.0",
        help="Host address to bind to (default: 0.0.0.0)",
    )
    serve.add_argument(
        "-p",
        "--port",
        type=int,
        default=8000,
        help="HTTP port (default: 8000)",
    )

    track = subparsers.add_parser("track", help="Track one parcel and print it as JSON")
    track.add_argument("carrier_id", help="Carrier id, e.g. uk.royalmail")
    track.add_argument("tracking_number")

    subparsers.add_parser("carriers", help="List enabled carriers")

    return parser.parse_args(argv)


async def run_track(settings: Settings, carrier_id: str, tracking_number: str) -> None:
    registry = CarrierRegistry(settings)
    try:
        await registry.init()
        track_info = await TrackerService(registry, settings).track(carrier_id, tracking_number)
    finally:
        await registry.aclose()

    print(json.dumps(track_info.model_dump(mode="json", by_alias=True), indent=2))


async def run_carriers(settings: Settings) -> None:
    registry = CarrierRegistry(settings)
    try:
        await registry.init()
    finally:
        await registry.aclose()

    for carrier in registry.carriers:
        print(f"{carrier.carrier_id}\t{carrier.name}")


def run_server(settings: Settings, host: str, port: int) -> None:
    """Start and run the HTTP API."""
    import uvicorn

    from parceltrack.main import create_app

    uvicorn.run(create_app(settings), host=host, port=port)


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the application."""
    args = parse_args(argv)
    settings = Settings()
    setup_logging(verbose=args.verbose or settings.debug, level_name=settings.log_level)

    logger = logging.getLogger("parceltrack")

    try:
        if args.command == "serve":
            run_server(settings, args.host, args.port)
        elif args.command == "track":
            asyncio.run(run_track(settings, args.carrier_id, args.tracking_number))
        else:
            asyncio.run(run_carriers(settings))
    except KeyboardInterrupt:
        logger.info("Shutdown requested by user")
    except TrackError as e:
        print(f"{e.code}: {e.message}", file=sys.stderr)
        return 1
    except RegistryError as e:
        logger.error("Cannot start carrier registry: %s", e)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
