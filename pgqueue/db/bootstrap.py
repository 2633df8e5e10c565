"""
Schema bootstrap and migration.

Run once per client construction. Concurrent bootstraps from several
processes serialize on a transaction-scoped advisory lock.
"""

import logging

from sqlalchemy import func, inspect, select, text
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine
from sqlalchemy.schema import CreateIndex

from pgqueue.constants import (
    BOOTSTRAP_LOCK_KEY,
    META_INFO_TABLE,
    MIN_SERVER_VERSION_NUM,
    SCHEMA_VERSION_KEY,
    TARGET_SCHEMA_VERSION,
    TASKS_TABLE,
)
from pgqueue.db import statements
from pgqueue.db.models import Base, TaskRecord
from pgqueue.errors import SchemaVersionError

logger = logging.getLogger(__name__)

# Version N -> statements bringing a version N store to N + 1
_MIGRATIONS: dict[int, tuple[str, ...]] = {
    1: (
        f"ALTER TABLE {TASKS_TABLE} ADD COLUMN IF NOT EXISTS attempts INTEGER NOT NULL DEFAULT 0",
    ),
}


async def validate_connection(engine: AsyncEngine) -> int:
    """
    Make sure the store is usable and at the target schema version.

    Returns:
        The schema version after bootstrapping.

    Raises:
        SchemaVersionError: If the server is too old or the stored schema
            is newer than this library understands.
    """
    async with engine.begin() as conn:
        await check_server_version(conn)
        await conn.execute(select(func.pg_advisory_xact_lock(BOOTSTRAP_LOCK_KEY)))

        version = await schema_version(conn)
        if version == 0:
            await create_schema(conn)
        else:
            await migrate_schema(conn, version, TARGET_SCHEMA_VERSION)

    return TARGET_SCHEMA_VERSION


async def check_server_version(conn: AsyncConnection) -> None:
    result = await conn.execute(text("SHOW server_version_num"))
    raw = result.scalar_one()
    try:
        version_num = int(raw)
    except (TypeError, ValueError) as e:
        raise SchemaVersionError(f"unexpected database version {raw!r}") from e

    if version_num < MIN_SERVER_VERSION_NUM:
        raise SchemaVersionError(
            f"postgres server version {version_num} does not meet "
            f"requirement >= {MIN_SERVER_VERSION_NUM}"
        )


async def schema_version(conn: AsyncConnection) -> int:
    """Return the stored schema version, 0 when the store is empty."""
    exists = await conn.run_sync(lambda sync_conn: inspect(sync_conn).has_table(META_INFO_TABLE))
    if not exists:
        return 0

    result = await conn.execute(statements.get_meta(SCHEMA_VERSION_KEY))
    value = result.scalar_one_or_none()
    if value is None:
        return 0
    try:
        return int(value)
    except ValueError as e:
        raise SchemaVersionError(f"unexpected schema version {value!r}") from e


async def create_schema(conn: AsyncConnection) -> None:
    await conn.run_sync(Base.metadata.create_all)
    await conn.execute(statements.set_meta(SCHEMA_VERSION_KEY, str(TARGET_SCHEMA_VERSION)))
    logger.info("Created queue schema", extra={"schema_version": TARGET_SCHEMA_VERSION})


async def migrate_schema(conn: AsyncConnection, current: int, target: int) -> None:
    if current == target:
        return
    if current > target:
        raise SchemaVersionError(
            f"schema version {current} is newer than supported version {target}"
        )

    for version in range(current, target):
        for sql in _MIGRATIONS.get(version, ()):
            await conn.execute(text(sql))

    # create_all only adds missing tables; indexes on existing tables need explicit DDL
    await conn.run_sync(Base.metadata.create_all)
    for index in sorted(TaskRecord.__table__.indexes, key=lambda ix: ix.name):
        await conn.execute(CreateIndex(index, if_not_exists=True))
    await conn.execute(statements.set_meta(SCHEMA_VERSION_KEY, str(target)))
    logger.info(
        "Migrated queue schema",
        extra={"from_version": current, "to_version": target},
    )
