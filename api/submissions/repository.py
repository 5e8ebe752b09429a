"""
Submission persistence.
This module is where submission-related SQL lives.
"""

from __future__ import annotations

import asyncio
from typing import Any, Mapping, Protocol

import asyncpg

from .errors import SchemaMismatchError, StoreError, TransientStoreError
from .schemas import SUBMISSION_COLUMNS

# SQLSTATEs that mean the table layout does not match what we write.
_SCHEMA_MISMATCH_STATES = {
    "42703",  # undefined_column
    "42P01",  # undefined_table
}

# SQLSTATEs worth resubmitting after.
_TRANSIENT_STATES = {
    "53300",  # too_many_connections
    "57P01",  # admin_shutdown
    "57P03",  # cannot_connect_now
    "40001",  # serialization_failure
}


class Database(Protocol):
    async def fetch_one(self, sql: str, *args: Any) -> dict[str, Any] | None: ...


def _insert_sql() -> str:
    # Only column names (a fixed tuple) are interpolated; values are bound.
    columns = ",\n          ".join(SUBMISSION_COLUMNS)
    placeholders = ", ".join(f"${i}" for i in range(1, len(SUBMISSION_COLUMNS) + 1))
    return f"""
        INSERT INTO submissions (
          {columns}
        )
        VALUES ({placeholders})
        RETURNING id
        """


INSERT_SUBMISSION_SQL = _insert_sql()


def submission_values(fields: Mapping[str, Any], *, visual_links: str | None) -> list[Any]:
    """
    Bind values in `SUBMISSION_COLUMNS` order; absent fields become NULL.
    """
    values: list[Any] = []
    for column in SUBMISSION_COLUMNS:
        if column == "visual_links":
            values.append(visual_links)
        else:
            values.append(fields.get(column))
    return values


def classify_store_error(exc: BaseException) -> StoreError:
    """
    Map a driver/socket failure to the submission store taxonomy.
    """
    sqlstate = getattr(exc, "sqlstate", None)

    if sqlstate in _SCHEMA_MISMATCH_STATES:
        return SchemaMismatchError(
            f"submissions table layout does not match the expected columns: {exc}",
            sqlstate=sqlstate,
        )

    if sqlstate is not None and (sqlstate.startswith("08") or sqlstate in _TRANSIENT_STATES):
        return TransientStoreError(f"Database temporarily unavailable: {exc}", sqlstate=sqlstate)

    # Rejected bind values; raised by the driver before anything is sent.
    if isinstance(exc, asyncpg.exceptions.DataError):
        return StoreError(f"Failed to insert submission: {exc}", sqlstate=sqlstate)

    if isinstance(exc, (asyncpg.exceptions.InterfaceError, OSError, asyncio.TimeoutError)):
        return TransientStoreError(
            f"Database temporarily unavailable: {type(exc).__name__}: {exc}",
            sqlstate=sqlstate,
        )

    return StoreError(f"Failed to insert submission: {exc}", sqlstate=sqlstate)


async def insert_submission(
    database: Database,
    fields: Mapping[str, Any],
    *,
    visual_links: str | None,
) -> int:
    """
    Insert one submission row and return its generated id.
    """
    try:
        row = await database.fetch_one(
            INSERT_SUBMISSION_SQL,
            *submission_values(fields, visual_links=visual_links),
        )
    except (asyncpg.PostgresError, asyncpg.exceptions.InterfaceError, OSError, asyncio.TimeoutError) as exc:
        raise classify_store_error(exc) from exc

    if row is None or "id" not in row:
        raise StoreError("Failed to insert submission: no id returned.")
    return int(row["id"])
