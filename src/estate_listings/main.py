"""Command-line entry point: serve the API, initialise or seed the database."""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from pydantic import TypeAdapter, ValidationError

from estate_listings.config import Settings
from estate_listings.db import PropertyStorage
from estate_listings.logging import configure_logging, get_logger
from estate_listings.models import Property

logger = get_logger(__name__)

_SEED_ADAPTER = TypeAdapter(list[Property])


def load_seed_file(path: Path) -> list[Property]:
    """Parse a JSON array of listings (camelCase or snake_case keys).

    Raises:
        ValidationError: If any entry is not a valid listing.
    """
    return _SEED_ADAPTER.validate_json(path.read_bytes())


async def init_db(settings: Settings) -> None:
    """Create the schema if it does not exist yet."""
    storage = PropertyStorage(settings.database_path)
    try:
        await storage.initialize()
    finally:
        await storage.close()


async def seed(settings: Settings, path: Path) -> int:
    """Insert listings from a JSON seed file, skipping ids that already exist.

    Returns:
        Number of listings inserted.
    """
    listings = load_seed_file(path)
    storage = PropertyStorage(settings.database_path)
    inserted = 0
    try:
        await storage.initialize()
        for prop in listings:
            if await storage.find_unique(prop.id) is not None:
                logger.debug("seed_listing_exists", property_id=prop.id)
                continue
            await storage.insert(prop)
            inserted += 1
    finally:
        await storage.close()

    logger.info("seed_complete", path=str(path), total=len(listings), inserted=inserted)
    return inserted


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Estate Listings - property listing search and admin API"
    )
    parser.add_argument(
        "--serve",
        action="store_true",
        help="Start the web API server",
    )
    parser.add_argument(
        "--init-db",
        action="store_true",
        help="Create the database schema and exit",
    )
    parser.add_argument(
        "--seed",
        type=Path,
        default=None,
        metavar="FILE",
        help="Insert listings from a JSON array file",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug-level logging for troubleshooting",
    )
    args = parser.parse_args()

    try:
        settings = Settings()
    except ValidationError as e:
        configure_logging(json_output=False)
        logger.error("failed_to_load_settings", error=str(e))
        print(f"Error: Failed to load settings. {e}")
        print("Settings are read from ESTATE_LISTINGS_* environment variables or .env")
        sys.exit(1)

    level = logging.DEBUG if args.debug else settings.log_level
    configure_logging(json_output=settings.json_logs, level=level)

    if args.serve:
        import uvicorn

        from estate_listings.web.app import create_app

        if args.debug:
            settings = settings.model_copy(update={"log_level": "debug"})
        app = create_app(settings)
        uvicorn.run(app, host=settings.web_host, port=settings.web_port, log_level="info")
    elif args.seed is not None:
        try:
            asyncio.run(seed(settings, args.seed))
        except (OSError, ValidationError) as e:
            logger.error("seed_failed", path=str(args.seed), error=str(e))
            sys.exit(1)
    elif args.init_db:
        asyncio.run(init_db(settings))
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
