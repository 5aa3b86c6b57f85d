"""Database migration runner."""

import logging
from pathlib import Path

import aiosqlite

from greenhealth.errors import StoreUnavailable

logger = logging.getLogger(__name__)


async def init_database(db_path: Path) -> None:
    """Initialize the database with the schema."""
    schema_path = Path(__file__).parent / "schema.sql"

    try:
        async with aiosqlite.connect(db_path) as db:
            # Read and execute schema
            with open(schema_path) as f:
                schema_sql = f.read()

            await db.executescript(schema_sql)
            await db.commit()
    except aiosqlite.Error as e:
        raise StoreUnavailable(f"Could not initialize database at {db_path}: {e}") from e

    logger.info(f"Database initialized at {db_path}")


async def run_migrations(db_path: Path) -> None:
    """Run any pending migrations.

    Currently just ensures the database is initialized.
    """
    await init_database(db_path)
