"""
Schema migrations for the event store and read-model tables.

Files named NNN_description.sql in this directory are applied in version
order and recorded in schema_migrations. Each file runs in its own
transaction under a Postgres advisory lock, so two service instances
starting together apply every file exactly once.

Usage:
    from migrations.runner import run_migrations

    applied = await run_migrations(db)
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Set

import asyncpg

from allocator_governance.infrastructure.persistence.database import Database, DatabaseError
from allocator_governance.utils.logging_setup import get_logger

logger = get_logger(__name__)

MIGRATIONS_DIR = Path(__file__).resolve().parent

# Key for pg_advisory_xact_lock shared by every allocator-governance instance
MIGRATION_LOCK_KEY = 0x616C6C6F63

CREATE_MIGRATIONS_TABLE = """
    CREATE TABLE IF NOT EXISTS schema_migrations (
        version     TEXT PRIMARY KEY,
        name        TEXT NOT NULL,
        applied_at  TIMESTAMPTZ NOT NULL DEFAULT NOW()
    )
"""


@dataclass
class Migration:
    version: str
    name: str
    path: Path
    applied_at: Optional[datetime] = None

    @property
    def is_applied(self) -> bool:
        return self.applied_at is not None


class MigrationError(Exception):
    """A migration file could not be read or applied."""


class MigrationRunner:
    FILENAME = re.compile(r"^(\d{3})_(.+)\.sql$")

    def __init__(self, db: Database, migrations_dir: Path | str = MIGRATIONS_DIR):
        self._db = db
        self._migrations_dir = Path(migrations_dir)

    async def run(self, target_version: Optional[str] = None) -> List[Migration]:
        """
        Apply pending migrations up to and including target_version (all when None).

        Returns:
            The migrations this call applied.

        Raises:
            MigrationError: On the first failing file. Earlier files stay applied.
        """
        pending = await self.get_pending_migrations()
        if target_version:
            pending = [m for m in pending if m.version <= target_version]
        if not pending:
            logger.info("Schema is up to date")
            return []

        applied = []
        for migration in pending:
            try:
                if await self._apply(migration):
                    applied.append(migration)
            except (OSError, DatabaseError, asyncpg.PostgresError) as e:
                logger.error(f"Migration {migration.version}_{migration.name} failed: {e}")
                raise MigrationError(
                    f"Migration {migration.version} ({migration.name}) failed: {e}"
                ) from e

        logger.info(f"Applied {len(applied)} migration(s): {[m.version for m in applied]}")
        return applied

    async def get_pending_migrations(self) -> List[Migration]:
        await self._db.execute(CREATE_MIGRATIONS_TABLE)
        applied = await self._applied_versions()
        return [m for m in self.discover_migrations() if m.version not in applied]

    async def get_current_version(self) -> Optional[str]:
        """Latest applied version, or None on an empty schema."""
        await self._db.execute(CREATE_MIGRATIONS_TABLE)
        return await self._db.fetchval("SELECT MAX(version) FROM schema_migrations")

    def discover_migrations(self) -> List[Migration]:
        if not self._migrations_dir.is_dir():
            logger.warning(f"Migrations directory not found: {self._migrations_dir}")
            return []

        found = []
        for path in self._migrations_dir.glob("*.sql"):
            match = self.FILENAME.match(path.name)
            if match is None:
                logger.debug(f"Ignoring {path.name}: not an NNN_name.sql file")
                continue
            found.append(Migration(version=match.group(1), name=match.group(2), path=path))
        return sorted(found, key=lambda m: m.version)

    async def _applied_versions(self) -> Set[str]:
        rows = await self._db.fetch("SELECT version FROM schema_migrations")
        return {row["version"] for row in rows}

    async def _apply(self, migration: Migration) -> bool:
        """Apply one file; False when another instance applied it first."""
        sql = migration.path.read_text()
        async with self._db.transaction() as conn:
            await conn.execute("SELECT pg_advisory_xact_lock($1)", MIGRATION_LOCK_KEY)
            if await conn.fetchval(
                "SELECT 1 FROM schema_migrations WHERE version = $1", migration.version
            ):
                logger.info(f"Migration {migration.version} already applied by another instance")
                return False

            logger.info(f"Applying migration {migration.version}: {migration.name}")
            await conn.execute(sql)
            migration.applied_at = await conn.fetchval(
                "INSERT INTO schema_migrations (version, name) VALUES ($1, $2) RETURNING applied_at",
                migration.version,
                migration.name,
            )
        return True


async def run_migrations(db: Database, migrations_dir: Path | str = MIGRATIONS_DIR) -> List[Migration]:
    """Apply all pending migrations."""
    return await MigrationRunner(db, migrations_dir).run()
