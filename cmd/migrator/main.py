"""
Database Migrator Entry Point.

Applies database migrations using SQL files.
"""
import asyncio
import sys

from dotenv import load_dotenv

from config.settings import get_settings
from internal.infrastructure.postgres.migrations import (
    rollback_migration,
    run_migrations,
)
from pkg.logger.logger import setup_logging


# Load environment variables
load_dotenv()


def main() -> None:
    """Main entry point."""
    settings = get_settings()
    setup_logging(level=settings.log_level, json_format=settings.json_logs)

    if len(sys.argv) > 1:
        command = sys.argv[1]

        if command == "rollback" and len(sys.argv) > 2:
            migration_name = sys.argv[2]
            removed = asyncio.run(rollback_migration(settings.dsn, migration_name))
            if removed:
                print(f"  ✓ Rolled back: {migration_name}")
            else:
                print(f"  ! Migration not found: {migration_name}")
        else:
            print(f"Unknown command: {command}")
            print("Usage:")
            print("  python main.py           # Run all migrations")
            print("  python main.py rollback <migration_name>  # Rollback migration")
            sys.exit(1)
    else:
        applied = asyncio.run(run_migrations(settings.dsn))
        print(f"✓ {applied} migration(s) applied")


if __name__ == "__main__":
    main()
