"""
Database initialization script
Run this to apply schema.sql and optionally seed sample data
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from config import DatabaseConfig
from database import ConnectionPool

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

SCHEMA_FILE = Path(__file__).parent.parent / "schema.sql"

SAMPLE_SERIES = [
    (1, "Talks", "Weekly talks"),
    (2, "Workshops", None),
]

SAMPLE_EVENTS = [
    (10, "Intro", 1),
    (11, "Standalone", None),
    (12, "Hands-on asyncio", 2),
]


async def apply_schema(pool: ConnectionPool, schema_file: Path = SCHEMA_FILE):
    """Apply schema.sql in a single transaction"""
    logger.info(f"Applying schema from {schema_file}...")
    schema_sql = schema_file.read_text(encoding='utf-8')

    async with pool.lease() as lease:
        async with lease.connection.transaction():
            await lease.connection.execute(schema_sql)
    logger.info("✅ Schema applied successfully")


async def seed_sample_data(pool: ConnectionPool):
    """Insert the sample series and events, replacing rows with the same ids"""
    async with pool.lease() as lease:
        conn = lease.connection
        async with conn.transaction():
            await conn.executemany(
                "INSERT INTO series (id, name, description) VALUES ($1, $2, $3) "
                "ON CONFLICT (id) DO UPDATE SET name = EXCLUDED.name, description = EXCLUDED.description",
                SAMPLE_SERIES,
            )
            await conn.executemany(
                "INSERT INTO events (id, title, part_of) VALUES ($1, $2, $3) "
                "ON CONFLICT (id) DO UPDATE SET title = EXCLUDED.title, part_of = EXCLUDED.part_of",
                SAMPLE_EVENTS,
            )
    logger.info(f"✅ Seeded {len(SAMPLE_SERIES)} series and {len(SAMPLE_EVENTS)} events")


async def initialize_database(config: DatabaseConfig, seed: bool = False):
    """Initialize database with schema"""
    pool = ConnectionPool(config)
    await pool.open()
    try:
        await apply_schema(pool)
        if seed:
            await seed_sample_data(pool)
    except Exception as e:
        logger.error(f"❌ Initialization failed: {e}")
        raise
    finally:
        await pool.close()


def main():
    parser = argparse.ArgumentParser(description="Initialize the series/events database")
    parser.add_argument('--seed', action='store_true', help='Insert sample data')
    args = parser.parse_args()

    config = DatabaseConfig.from_environment()
    asyncio.run(initialize_database(config, seed=args.seed))


if __name__ == "__main__":
    main()
