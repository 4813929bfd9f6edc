"""
SQL migration runner.

Applies ``migrations/*.sql`` files in name order, each exactly once,
recording applied files in the ``_migrations`` table.
"""
from pathlib import Path
from typing import List, Optional

import asyncpg

from pkg.logger.logger import get_logger


logger = get_logger(__name__)

MIGRATIONS_DIR = Path(__file__).resolve().parents[3] / "migrations"


async def get_applied_migrations(conn: asyncpg.Connection) -> set[str]:
    """
    Get list of already applied migrations.

    Args:
        conn: Database connection.

    Returns:
        Set of applied migration names.
    """
    await conn.execute("""
        CREATE TABLE IF NOT EXISTS _migrations (
            id SERIAL PRIMARY KEY,
            name VARCHAR(255) NOT NULL UNIQUE,
            applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    """)

    rows = await conn.fetch("SELECT name FROM _migrations")
    return {row["name"] for row in rows}


async def apply_migration(
    conn: asyncpg.Connection,
    migration_path: Path,
) -> None:
    """
    Apply a single migration in its own transaction.

    Args:
        conn: Database connection.
        migration_path: Path to migration SQL file.
    """
    migration_name = migration_path.name
    sql = migration_path.read_text()

    async with conn.transaction():
        await conn.execute(sql)
        await conn.execute(
            "INSERT INTO _migrations (name) VALUES ($1)",
            migration_name,
        )

    logger.info("Applied migration", migration=migration_name)


def pending_migrations(migrations_dir: Path, applied: set[str]) -> List[Path]:
    """
    List migration files not yet applied, in name order.

    Args:
        migrations_dir: Directory holding ``*.sql`` files.
        applied: Names already recorded as applied.

    Returns:
        Paths to apply.
    """
    if not migrations_dir.exists():
        logger.warning("Migrations directory not found", path=str(migrations_dir))
        return []
    return [
        path for path in sorted(migrations_dir.glob("*.sql"))
        if path.name not in applied
    ]


async def run_migrations(dsn: str, migrations_dir: Optional[Path] = None) -> int:
    """
    Run all pending migrations.

    Args:
        dsn: Database connection string.
        migrations_dir: Directory holding ``*.sql`` files.

    Returns:
        Number of migrations applied.
    """
    conn = await asyncpg.connect(dsn)
    try:
        applied = await get_applied_migrations(conn)
        pending = pending_migrations(migrations_dir or MIGRATIONS_DIR, applied)

        if not pending:
            logger.info("All migrations already applied", applied=len(applied))
            return 0

        for migration_path in pending:
            await apply_migration(conn, migration_path)

        logger.info("Migrations applied", count=len(pending))
        return len(pending)
    finally:
        await conn.close()


async def rollback_migration(dsn: str, migration_name: str) -> bool:
    """
    Remove a migration from the tracking table.

    Database changes made by the migration are not reverted.

    Args:
        dsn: Database connection string.
        migration_name: Name of migration to forget.

    Returns:
        True if a tracking row was removed.
    """
    conn = await asyncpg.connect(dsn)
    try:
        result = await conn.execute(
            "DELETE FROM _migrations WHERE name = $1",
            migration_name,
        )
    finally:
        await conn.close()
    return result == "DELETE 1"
