"""
Atomic insert-or-accumulate primitives.

Every write that can race with another request (session touch, unique
visit, heatmap increment, rollups, run claims) goes through a single
INSERT ... ON CONFLICT statement so the store resolves the conflict.
"""
from typing import Any

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from footfall.core.database import Base


def dialect_insert(session: AsyncSession, model: type[Base]) -> Any:
    """Return the conflict-aware INSERT construct for the session's backend."""
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        return postgresql.insert(model)
    if dialect == "sqlite":
        return sqlite.insert(model)
    raise NotImplementedError(f"No atomic upsert support for dialect '{dialect}'")


async def insert_ignore(
    session: AsyncSession,
    model: type[Base],
    values: dict[str, Any],
    conflict_columns: list[str],
) -> bool:
    """Insert a row unless the conflict key exists. Returns True if a row was written."""
    stmt = (
        dialect_insert(session, model)
        .values(**values)
        .on_conflict_do_nothing(index_elements=conflict_columns)
    )
    result = await session.execute(stmt)
    return (result.rowcount or 0) > 0


async def insert_or_accumulate(
    session: AsyncSession,
    model: type[Base],
    values: dict[str, Any],
    conflict_columns: list[str],
    increments: dict[str, Any],
    overwrite: tuple[str, ...] = (),
) -> None:
    """
    Insert a row, or add `increments` onto the existing counters.

    `increments` maps a column name to the amount added on conflict; the
    inserted row starts from the value given in `values`. Columns listed in
    `overwrite` take the incoming value on conflict.
    """
    stmt = dialect_insert(session, model).values(**values)
    table = model.__table__
    set_: dict[str, Any] = {
        column: table.c[column] + amount for column, amount in increments.items()
    }
    for column in overwrite:
        set_[column] = stmt.excluded[column]
    await session.execute(
        stmt.on_conflict_do_update(index_elements=conflict_columns, set_=set_)
    )


async def insert_or_replace(
    session: AsyncSession,
    model: type[Base],
    values: dict[str, Any],
    conflict_columns: list[str],
) -> None:
    """Insert a row, or overwrite every non-key column of the existing one."""
    stmt = dialect_insert(session, model).values(**values)
    set_ = {
        column: stmt.excluded[column]
        for column in values
        if column not in conflict_columns and column != "id"
    }
    await session.execute(
        stmt.on_conflict_do_update(index_elements=conflict_columns, set_=set_)
    )
