"""
SQL migration runner.

Applies every ``*.sql`` file in the migrations directory in lexical order.
Files may contain drizzle-style ``--> statement-breakpoint`` markers; those
are stripped and statements are split on ';'. Each statement runs in its own
transaction. Statements failing with "already exists" are counted as skipped
so the runner is safe to re-run on every start; any other failure stops the
run with MigrationError.
"""
import logging
import os
from pathlib import Path

from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncEngine

from exceptions import MigrationError

logger = logging.getLogger(__name__)

BREAKPOINT_MARKER = "--> statement-breakpoint"


def split_statements(sql: str) -> list[str]:
    """Split a migration file into executable statements, dropping comment-only chunks."""
    sql = sql.replace(BREAKPOINT_MARKER, "")
    statements = []
    for chunk in sql.split(";"):
        lines = [ln for ln in chunk.splitlines() if ln.strip() and not ln.strip().startswith("--")]
        if lines:
            statements.append("\n".join(lines).strip())
    return statements


def _already_exists(exc: Exception) -> bool:
    return "already exists" in str(exc).lower()


def list_migration_files(directory: str) -> list[Path]:
    path = Path(directory)
    if not path.is_dir():
        return []
    return sorted(p for p in path.iterdir() if p.suffix == ".sql" and p.is_file())


async def run_migrations(engine: AsyncEngine, directory: str) -> dict:
    """
    Returns:
        dict: {files, executed, skipped}
    """
    files = list_migration_files(directory)
    if not files:
        logger.info(f"No migrations found in {os.path.abspath(directory)}")
        return {"files": 0, "executed": 0, "skipped": 0}

    executed = skipped = 0
    for file in files:
        statements = split_statements(file.read_text(encoding="utf-8"))
        for statement in statements:
            try:
                async with engine.begin() as conn:
                    await conn.exec_driver_sql(statement)
                executed += 1
            except DBAPIError as e:
                if _already_exists(e):
                    skipped += 1
                    continue
                logger.error(f"Migration {file.name} failed: {e}")
                raise MigrationError(file.name, statement, e) from e
        logger.info(f"Applied {file.name} ({len(statements)} statement(s))")

    logger.info(f"Migrations complete: {len(files)} file(s), {executed} executed, {skipped} skipped")
    return {"files": len(files), "executed": executed, "skipped": skipped}
