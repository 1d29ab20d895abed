"""
Database connection and utilities
"""
import asyncpg
import json
import logging
from typing import Optional

from ...config import settings

logger = logging.getLogger(__name__)


SCHEMA = [
    """
    CREATE TABLE IF NOT EXISTS users (
        id UUID PRIMARY KEY,
        username VARCHAR(255) NOT NULL UNIQUE,
        email VARCHAR(255) NOT NULL UNIQUE,
        first_name VARCHAR(255),
        last_name VARCHAR(255),
        password_hash VARCHAR(255) NOT NULL,
        created_at TIMESTAMP NOT NULL DEFAULT (NOW() AT TIME ZONE 'utc'),
        updated_at TIMESTAMP NOT NULL DEFAULT (NOW() AT TIME ZONE 'utc')
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS posts (
        id UUID PRIMARY KEY,
        title VARCHAR(255) NOT NULL,
        body TEXT NOT NULL,
        is_private BOOLEAN NOT NULL DEFAULT false,
        metadata JSONB NOT NULL DEFAULT '{}'::jsonb,
        tags VARCHAR(255)[] NOT NULL DEFAULT '{}',
        user_id UUID NOT NULL REFERENCES users (id) ON DELETE CASCADE,
        deleted_at TIMESTAMP,
        created_at TIMESTAMP NOT NULL DEFAULT (NOW() AT TIME ZONE 'utc'),
        updated_at TIMESTAMP NOT NULL DEFAULT (NOW() AT TIME ZONE 'utc')
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS images (
        id UUID PRIMARY KEY,
        url VARCHAR(1024) NOT NULL,
        post_id UUID NOT NULL REFERENCES posts (id) ON DELETE CASCADE,
        created_at TIMESTAMP NOT NULL DEFAULT (NOW() AT TIME ZONE 'utc')
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS messages (
        id UUID PRIMARY KEY,
        content TEXT NOT NULL,
        expires_at TIMESTAMP,
        user_id UUID NOT NULL REFERENCES users (id) ON DELETE CASCADE,
        created_at TIMESTAMP NOT NULL DEFAULT (NOW() AT TIME ZONE 'utc'),
        updated_at TIMESTAMP NOT NULL DEFAULT (NOW() AT TIME ZONE 'utc')
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_posts_user_id ON posts (user_id)",
    "CREATE INDEX IF NOT EXISTS idx_posts_live ON posts (created_at DESC) WHERE deleted_at IS NULL",
    "CREATE INDEX IF NOT EXISTS idx_images_post_id ON images (post_id)",
    "CREATE INDEX IF NOT EXISTS idx_messages_expires_at ON messages (expires_at)",
]


async def _init_connection(conn: asyncpg.Connection):
    """Decode JSONB columns into Python objects"""
    await conn.set_type_codec(
        "jsonb",
        encoder=json.dumps,
        decoder=json.loads,
        schema="pg_catalog",
    )


def affected_rows(status: str) -> int:
    """Read the row count from a command status tag such as 'UPDATE 3'"""
    try:
        return int(status.rsplit(" ", 1)[-1])
    except (AttributeError, ValueError):
        return 0


class DatabaseConnection:
    """Database connection manager"""

    def __init__(self):
        self.pool: Optional[asyncpg.Pool] = None

    async def connect(self):
        """Create database connection pool"""
        try:
            self.pool = await asyncpg.create_pool(
                settings.DATABASE_URL,
                min_size=1,
                max_size=settings.DB_POOL_SIZE,
                command_timeout=60,
                init=_init_connection,
            )
            logger.info(f"Database pool created with size {settings.DB_POOL_SIZE}")

            await self._init_schema()
        except Exception as e:
            logger.error(f"Failed to connect to database: {e}")
            raise

    async def disconnect(self):
        """Close database connection pool"""
        if self.pool:
            await self.pool.close()
            logger.info("Database pool closed")

    async def _init_schema(self):
        """Create tables and indexes if they are missing"""
        async with self.pool.acquire() as conn:
            for statement in SCHEMA:
                await conn.execute(statement)
        logger.info("Database schema initialized")

    async def fetch_one(self, query: str, *args):
        """Fetch a single row"""
        async with self.pool.acquire() as conn:
            return await conn.fetchrow(query, *args)

    async def fetch_all(self, query: str, *args):
        """Fetch all rows"""
        async with self.pool.acquire() as conn:
            return await conn.fetch(query, *args)

    async def execute(self, query: str, *args):
        """Execute a query without returning results"""
        async with self.pool.acquire() as conn:
            return await conn.execute(query, *args)


# Global database instance
db_connection = DatabaseConnection()
