"""
Initial database setup: creates the users table.
"""
import asyncio
import logging

from vault_auth.core.config import Settings
from vault_auth.core.database.connection import Database

logger = logging.getLogger(__name__)


async def run_migration():
    """Run the initial database migration"""
    settings = Settings()
    database = Database(settings.database_url)
    try:
        if not await database.check_connection():
            raise ConnectionError("Cannot connect to database")

        await database.create_tables()
        logger.info("Database migration completed successfully")
    finally:
        await database.dispose()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(run_migration())
