"""
Tests for the SQL migration runner.
"""
import os, sys
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from database import Base
from exceptions import MigrationError
from services.migration_runner import list_migration_files, run_migrations, split_statements

MIGRATIONS_DIR = os.path.join(os.path.dirname(os.path.dirname(__file__)), "migrations")


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


class TestSplitStatements:

    @pytest.mark.unit
    def test_breakpoints_and_comments_dropped(self):
        sql = (
            "-- header comment\n"
            "CREATE TABLE a (id INTEGER);\n"
            "--> statement-breakpoint\n"
            "CREATE INDEX ix_a ON a (id);\n"
            "-- trailing comment only\n"
        )
        assert split_statements(sql) == ["CREATE TABLE a (id INTEGER)", "CREATE INDEX ix_a ON a (id)"]

    @pytest.mark.unit
    def test_empty_file(self):
        assert split_statements("\n-- nothing here\n") == []

    @pytest.mark.unit
    def test_files_sorted_and_filtered(self, tmp_path):
        (tmp_path / "0002_b.sql").write_text("SELECT 1;")
        (tmp_path / "0001_a.sql").write_text("SELECT 1;")
        (tmp_path / "README.md").write_text("not sql")
        assert [p.name for p in list_migration_files(str(tmp_path))] == ["0001_a.sql", "0002_b.sql"]
        assert list_migration_files(str(tmp_path / "missing")) == []


class TestRunMigrations:

    @pytest.mark.asyncio
    async def test_bundled_migrations_apply_then_skip(self, engine):
        first = await run_migrations(engine, MIGRATIONS_DIR)
        assert first["files"] == 2
        assert first["executed"] == 6
        assert first["skipped"] == 0

        again = await run_migrations(engine, MIGRATIONS_DIR)
        assert again["executed"] == 0
        assert again["skipped"] == 6

    @pytest.mark.asyncio
    async def test_no_directory(self, engine, tmp_path):
        assert await run_migrations(engine, str(tmp_path / "none")) == {"files": 0, "executed": 0, "skipped": 0}

    @pytest.mark.asyncio
    async def test_broken_statement_raises(self, engine, tmp_path):
        (tmp_path / "0001_bad.sql").write_text("CREATE INDEX ix_bad ON no_such_table (id);")
        with pytest.raises(MigrationError) as exc_info:
            await run_migrations(engine, str(tmp_path))
        assert exc_info.value.filename == "0001_bad.sql"
        assert "no_such_table" in exc_info.value.statement
