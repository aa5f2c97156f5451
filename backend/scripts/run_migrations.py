"""
Apply the SQL files in backend/migrations/ to the configured database.

Statements that fail with "already exists" are skipped, so the script is
safe to re-run. Tables are created first so index migrations have targets.

Run from the backend/ directory:
    python scripts/run_migrations.py [--dir migrations]
"""
import argparse
import asyncio
import logging
import os
import sys

# Add backend/ to path so we can import config
BACKEND_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, BACKEND_DIR)

from config import settings  # noqa: E402
from database import engine, init_db  # noqa: E402
from exceptions import MigrationError  # noqa: E402
from services.migration_runner import run_migrations  # noqa: E402

logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
logger = logging.getLogger("run_migrations")


async def main(directory: str) -> int:
    print(f"📂 Database: {settings.database_url}")
    print(f"📁 Migrations: {directory}")
    try:
        await init_db()
        summary = await run_migrations(engine, directory)
    except MigrationError as e:
        print(f"❌ {e}")
        return 1
    finally:
        await engine.dispose()

    print("✅ Migration complete!")
    print(f"   - {summary['files']} file(s)")
    print(f"   - {summary['executed']} statement(s) executed")
    print(f"   - {summary['skipped']} statement(s) skipped (already applied)")
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Run BizChat SQL migrations")
    parser.add_argument("--dir", default=os.path.join(BACKEND_DIR, settings.migrations_dir))
    args = parser.parse_args()
    sys.exit(asyncio.run(main(args.dir)))
