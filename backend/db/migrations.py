"""Database migration utilities"""
import logging

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine

logger = logging.getLogger(__name__)

# column -> (type, default SQL or None)
USER_PROFILE_COLUMNS = {
    "display_name": ("VARCHAR", None),
    "role": ("VARCHAR", "'donor'"),
}


async def add_missing_user_columns(engine: AsyncEngine):
    """Add the profile columns to a users table created before they existed.

    ``create_all`` never alters an existing table, so a database that already
    had fastapi-users' ``users`` table would otherwise miss them.
    """
    async with engine.begin() as conn:
        result = await conn.execute(
            text("""
                SELECT column_name
                FROM information_schema.columns
                WHERE table_name = 'users'
            """)
        )
        existing_columns = {row[0] for row in result.fetchall()}
        if not existing_columns:
            return

        for column_name, (column_type, default_value) in USER_PROFILE_COLUMNS.items():
            if column_name in existing_columns:
                logger.debug("%s column already exists in users table", column_name)
                continue

            logger.info("Adding %s column to users table...", column_name)
            if default_value is None:
                await conn.execute(text(f"ALTER TABLE users ADD COLUMN {column_name} {column_type}"))
                continue

            # Add with a default, backfill, then enforce NOT NULL
            await conn.execute(
                text(f"""
                    ALTER TABLE users
                    ADD COLUMN {column_name} {column_type} DEFAULT {default_value}
                """)
            )
            await conn.execute(
                text(f"""
                    UPDATE users
                    SET {column_name} = {default_value}
                    WHERE {column_name} IS NULL
                """)
            )
            await conn.execute(
                text(f"""
                    ALTER TABLE users
                    ALTER COLUMN {column_name} SET NOT NULL
                """)
            )
            logger.info("Successfully added %s column to users table", column_name)
