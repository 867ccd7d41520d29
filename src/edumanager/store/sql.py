"""
SQLAlchemy-backed record store.

Implements ``RecordStore`` over an async sessionmaker. Each call runs in its
own session; the ``mark_bulk_attendance`` procedure is the only operation
that writes several rows, and it does so in a single transaction.
"""
from __future__ import annotations

from contextlib import asynccontextmanager
from enum import Enum
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, List, Mapping, Optional, Sequence

from sqlalchemy import delete as sa_delete
from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from edumanager.db.models import TABLES, AttendanceRecord, Student
from edumanager.exceptions import EduManagerError, RecordNotFoundError, RetryPolicy, StoreError
from edumanager.observability import get_logger

from .base import AnyOf, Condition, Filter, Order, Row

logger = get_logger(__name__)

Procedure = Callable[[AsyncSession, Mapping[str, Any]], Awaitable[Any]]


def _coerce(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    return value


class SQLAlchemyRecordStore:
    """
    Record store backed by SQLAlchemy async sessions.

    Rows are returned as dicts keyed by column name. Relationships named in
    ``embed`` are eager-loaded and nested as dicts (or ``None``).
    """

    def __init__(
        self,
        sessionmaker: async_sessionmaker[AsyncSession],
        tables: Optional[Mapping[str, type]] = None,
    ) -> None:
        self._sessionmaker = sessionmaker
        self._tables: Dict[str, type] = dict(tables or TABLES)
        self._procedures: Dict[str, Procedure] = {
            "mark_bulk_attendance": self._mark_bulk_attendance,
        }

    def register_procedure(self, name: str, procedure: Procedure) -> None:
        self._procedures[name] = procedure

    # ------------------------------------------------------------------
    # RecordStore API
    # ------------------------------------------------------------------
    async def select(
        self,
        table: str,
        *,
        filters: Sequence[Condition] = (),
        order: Sequence[Order] = (),
        limit: Optional[int] = None,
        embed: Sequence[str] = (),
    ) -> List[Row]:
        model = self._model(table)
        stmt = select(model)
        for condition in filters:
            stmt = stmt.where(self._condition(model, table, condition))
        for o in order:
            column = self._column(model, table, o.column)
            stmt = stmt.order_by(column.desc() if o.descending else column.asc())
        if limit is not None:
            stmt = stmt.limit(limit)
        if embed:
            stmt = stmt.options(*self._embed_options(model, table, embed))

        async with self._session(table, "select") as session:
            result = await session.execute(stmt)
            rows = [self._serialize(obj, embed) for obj in result.scalars().all()]

        logger.debug(f"Selected {len(rows)} rows from {table}")
        return rows

    async def insert(
        self, table: str, payload: Mapping[str, Any], *, embed: Sequence[str] = ()
    ) -> Row:
        model = self._model(table)
        values = self._values(model, table, payload)

        async with self._session(table, "insert") as session:
            obj = model(**values)
            session.add(obj)
            await session.commit()
            row = await self._reload(session, model, table, obj.id, embed)

        logger.debug(f"Inserted {table}: {row['id']}")
        return row

    async def update(
        self,
        table: str,
        record_id: str,
        fields: Mapping[str, Any],
        *,
        embed: Sequence[str] = (),
    ) -> Row:
        model = self._model(table)
        values = self._values(model, table, fields)
        values.pop("id", None)

        async with self._session(table, "update") as session:
            obj = await session.get(model, record_id)
            if obj is None:
                raise RecordNotFoundError(table, record_id, "update")
            for key, value in values.items():
                setattr(obj, key, value)
            await session.commit()
            row = await self._reload(session, model, table, record_id, embed)

        logger.debug(f"Updated {table}: {record_id}")
        return row

    async def delete(self, table: str, record_id: str) -> None:
        model = self._model(table)

        async with self._session(table, "delete") as session:
            result = await session.execute(sa_delete(model).where(model.id == record_id))
            if result.rowcount == 0:
                raise RecordNotFoundError(table, record_id, "delete")
            await session.commit()

        logger.debug(f"Deleted {table}: {record_id}")

    async def upsert(
        self,
        table: str,
        payload: Mapping[str, Any],
        *,
        on_conflict: Sequence[str],
        embed: Sequence[str] = (),
    ) -> Row:
        model = self._model(table)
        values = self._values(model, table, payload)
        missing = [key for key in on_conflict if key not in values]
        if missing:
            raise StoreError(
                f"Upsert on {table} needs values for conflict columns {missing}",
                table=table,
                operation="upsert",
                retry_policy=RetryPolicy.NEVER,
            )

        async with self._session(table, "upsert") as session:
            obj = await self._upsert_in_session(session, model, table, values, on_conflict)
            await session.commit()
            row = await self._reload(session, model, table, obj.id, embed)

        logger.debug(f"Upserted {table}: {row['id']}")
        return row

    async def rpc(self, name: str, args: Mapping[str, Any]) -> Any:
        procedure = self._procedures.get(name)
        if procedure is None:
            raise StoreError(
                f"Unknown procedure '{name}'",
                operation="rpc",
                retry_policy=RetryPolicy.NEVER,
            )

        async with self._session(name, "rpc") as session:
            result = await procedure(session, args)
            await session.commit()

        logger.debug(f"Procedure {name} completed")
        return result

    # ------------------------------------------------------------------
    # Procedures
    # ------------------------------------------------------------------
    async def _mark_bulk_attendance(
        self, session: AsyncSession, args: Mapping[str, Any]
    ) -> int:
        """
        Upsert one attendance row per student for a class and date.

        ``records`` maps student row ids to statuses. All rows are written in
        the caller's transaction: an unknown student or an invalid status
        fails the whole batch.
        """
        statuses: Mapping[str, Any] = args.get("records") or {}
        if not statuses:
            return 0

        result = await session.execute(select(Student).where(Student.id.in_(list(statuses))))
        students = {s.id: s for s in result.scalars().all()}
        unknown = sorted(set(statuses) - set(students))
        if unknown:
            raise StoreError(
                f"Unknown student ids: {', '.join(unknown)}",
                table="students",
                operation="rpc",
                retry_policy=RetryPolicy.NEVER,
            )

        for student_id, status in statuses.items():
            await self._upsert_in_session(
                session,
                AttendanceRecord,
                "attendance",
                {
                    "user_id": students[student_id].user_id,
                    "date": args["date"],
                    "status": _coerce(status),
                    "recorded_by": args.get("recorded_by"),
                    "class_id": args.get("class_id"),
                },
                ("user_id", "date"),
            )
        return len(statuses)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    @asynccontextmanager
    async def _session(self, table: str, operation: str) -> AsyncIterator[AsyncSession]:
        async with self._sessionmaker() as session:
            try:
                yield session
            except EduManagerError:
                await session.rollback()
                raise
            except IntegrityError as e:
                await session.rollback()
                raise StoreError(
                    f"Constraint violation on {table}: {e.orig}",
                    table=table,
                    operation=operation,
                    error_code="constraint_violation",
                    retry_policy=RetryPolicy.NEVER,
                    cause=e,
                ) from e
            except SQLAlchemyError as e:
                await session.rollback()
                raise StoreError(
                    f"{operation} on {table} failed: {e}",
                    table=table,
                    operation=operation,
                    cause=e,
                ) from e

    def _model(self, table: str) -> type:
        try:
            return self._tables[table]
        except KeyError:
            raise StoreError(
                f"Unknown table '{table}'", table=table, retry_policy=RetryPolicy.NEVER
            ) from None

    def _column(self, model: type, table: str, name: str) -> Any:
        if model.__table__.columns.get(name) is None:
            raise StoreError(
                f"Unknown column '{name}' on {table}",
                table=table,
                retry_policy=RetryPolicy.NEVER,
            )
        return getattr(model, name)

    def _condition(self, model: type, table: str, condition: Condition) -> Any:
        if isinstance(condition, AnyOf):
            return or_(*(self._condition(model, table, f) for f in condition.filters))

        assert isinstance(condition, Filter)
        column = self._column(model, table, condition.column)
        if condition.op == "eq":
            if condition.value is None:
                return column.is_(None)
            return column == _coerce(condition.value)
        if condition.op == "in":
            return column.in_([_coerce(v) for v in condition.value])
        raise StoreError(
            f"Unsupported filter operator '{condition.op}'",
            table=table,
            retry_policy=RetryPolicy.NEVER,
        )

    def _values(self, model: type, table: str, payload: Mapping[str, Any]) -> Dict[str, Any]:
        values = {}
        for key, value in payload.items():
            self._column(model, table, key)
            values[key] = _coerce(value)
        return values

    def _embed_options(self, model: type, table: str, embed: Sequence[str]) -> List[Any]:
        relationships = model.__mapper__.relationships
        options = []
        for name in embed:
            if name not in relationships:
                raise StoreError(
                    f"Unknown relationship '{name}' on {table}",
                    table=table,
                    retry_policy=RetryPolicy.NEVER,
                )
            options.append(selectinload(getattr(model, name)))
        return options

    async def _reload(
        self,
        session: AsyncSession,
        model: type,
        table: str,
        record_id: Any,
        embed: Sequence[str],
    ) -> Row:
        stmt = (
            select(model)
            .where(model.id == record_id)
            .execution_options(populate_existing=True)
        )
        if embed:
            stmt = stmt.options(*self._embed_options(model, table, embed))
        obj = (await session.execute(stmt)).scalar_one_or_none()
        if obj is None:
            raise RecordNotFoundError(table, record_id, "select")
        return self._serialize(obj, embed)

    async def _upsert_in_session(
        self,
        session: AsyncSession,
        model: type,
        table: str,
        values: Mapping[str, Any],
        on_conflict: Sequence[str],
    ) -> Any:
        stmt = select(model)
        for key in on_conflict:
            stmt = stmt.where(self._column(model, table, key) == values[key])
        existing = (await session.execute(stmt)).scalar_one_or_none()

        if existing is None:
            obj = model(**values)
            session.add(obj)
            await session.flush()
            return obj

        for key, value in values.items():
            if key != "id":
                setattr(existing, key, value)
        await session.flush()
        return existing

    def _serialize(self, obj: Any, embed: Sequence[str] = ()) -> Row:
        row: Row = {column.key: getattr(obj, column.key) for column in obj.__table__.columns}
        for name in embed:
            related = getattr(obj, name)
            row[name] = self._serialize(related) if related is not None else None
        return row
