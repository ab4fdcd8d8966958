# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Programmatic migration runner.

Applies the revisions in migrations/versions without going through the
alembic CLI, for deployments that migrate on startup and for tests. The
applied revision is kept in the standard alembic_version table, so the CLI
and this runner can be used on the same database.

Example:
    from src.infrastructure.database.migrations.runner import run_migrations

    applied = await run_migrations(settings.database.url)
"""

import importlib
import logging
import pkgutil
from types import ModuleType

from alembic.operations import Operations
from alembic.runtime.migration import MigrationContext
from sqlalchemy import text
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import AsyncConnection, create_async_engine

from src.infrastructure.database.migrations import versions

logger = logging.getLogger(__name__)

VERSIONS_PACKAGE = versions.__name__


class MigrationError(Exception):
    """Raised when revisions cannot be resolved or loaded."""


def list_revisions() -> list[str]:
    """Get revision module names in apply order.

    Revision modules are named with a zero-padded sequence prefix, so
    lexical order is apply order.
    """
    return sorted(
        info.name
        for info in pkgutil.iter_modules(versions.__path__)
        if info.name[:1].isdigit()
    )


def pending_revisions(
    current: str | None,
    target: str | None = None,
) -> list[str]:
    """Get the revisions between current (exclusive) and target (inclusive).

    Raises:
        MigrationError: If current or target is not a known revision.
    """
    revisions = list_revisions()
    known = set(revisions)

    if current is not None and current not in known:
        raise MigrationError(f"Database is at unknown revision {current}")
    if target is not None and target not in known:
        raise MigrationError(f"Unknown target revision {target}")

    start = revisions.index(current) + 1 if current else 0
    end = revisions.index(target) + 1 if target else len(revisions)
    return revisions[start:end]


async def run_migrations(db_url: str, target: str | None = None) -> list[str]:
    """Upgrade a database to target, or to the latest revision.

    Each revision runs in its own transaction together with the version
    bump.

    Args:
        db_url: Async database URL.
        target: Revision to stop at. Defaults to the latest.

    Returns:
        Revisions applied, in order. Empty if already up to date.

    Raises:
        MigrationError: If a revision cannot be loaded, or the database
            is at a revision this runner does not know.
    """
    engine = create_async_engine(db_url, echo=False)
    applied: list[str] = []

    try:
        async with engine.begin() as conn:
            current = await _current_revision(conn)

        todo = pending_revisions(current, target)
        if not todo:
            logger.info("Database is up to date at %s", current)
            return applied

        for revision in todo:
            module = _load_revision(revision)
            async with engine.begin() as conn:
                await conn.run_sync(_upgrade, module)
                await _set_revision(conn, revision)
            applied.append(revision)
            logger.info("Applied migration %s", revision)

        return applied
    finally:
        await engine.dispose()


async def get_migration_status(db_url: str) -> dict[str, object]:
    """Report the current revision and what remains to be applied."""
    engine = create_async_engine(db_url, echo=False)
    try:
        async with engine.begin() as conn:
            current = await _current_revision(conn)
    finally:
        await engine.dispose()

    pending = pending_revisions(current)
    revisions = list_revisions()
    return {
        "current_revision": current,
        "latest_revision": revisions[-1] if revisions else None,
        "pending_revisions": pending,
        "is_up_to_date": not pending,
    }


async def _current_revision(conn: AsyncConnection) -> str | None:
    await conn.execute(
        text(
            "CREATE TABLE IF NOT EXISTS alembic_version ("
            "version_num VARCHAR(128) NOT NULL, "
            "CONSTRAINT alembic_version_pkc PRIMARY KEY (version_num))"
        )
    )
    result = await conn.execute(text("SELECT version_num FROM alembic_version"))
    return result.scalar_one_or_none()


async def _set_revision(conn: AsyncConnection, revision: str) -> None:
    await conn.execute(text("DELETE FROM alembic_version"))
    await conn.execute(
        text("INSERT INTO alembic_version (version_num) VALUES (:revision)"),
        {"revision": revision},
    )


def _load_revision(revision: str) -> ModuleType:
    try:
        module = importlib.import_module(f"{VERSIONS_PACKAGE}.{revision}")
    except ImportError as e:
        raise MigrationError(f"Cannot import migration {revision}: {e}") from e

    if not callable(getattr(module, "upgrade", None)):
        raise MigrationError(f"Migration {revision} has no upgrade()")
    return module


def _upgrade(connection: Connection, module: ModuleType) -> None:
    """Run a revision's upgrade() with alembic's op bound to connection."""
    context = MigrationContext.configure(connection)
    with Operations.context(context):
        module.upgrade()
