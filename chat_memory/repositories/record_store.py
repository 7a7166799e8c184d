"""Record store adapter: keyed records with filtered queries."""

import functools
import operator
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any, Literal, ParamSpec, Protocol, TypeVar

import structlog
from sqlalchemy import ColumnElement, delete, inspect, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from chat_memory.core.database import Base
from chat_memory.core.exceptions import StoreError
from chat_memory.models.chat_session import ChatSession

logger = structlog.get_logger()

P = ParamSpec("P")
R = TypeVar("R")

Record = dict[str, Any]
OrderBy = tuple[str, Literal["asc", "desc"]]


class FilterOp(str, Enum):
    """Comparison applied by a filter."""

    EQ = "eq"
    NE = "ne"
    GT = "gt"
    GE = "ge"
    LT = "lt"
    LE = "le"


_OPERATORS: dict[FilterOp, Callable[[Any, Any], Any]] = {
    FilterOp.EQ: operator.eq,
    FilterOp.NE: operator.ne,
    FilterOp.GT: operator.gt,
    FilterOp.GE: operator.ge,
    FilterOp.LT: operator.lt,
    FilterOp.LE: operator.le,
}


@dataclass(frozen=True)
class Filter:
    """A single ``field <op> value`` condition."""

    field: str
    op: FilterOp
    value: Any

    def apply(self, left: Any) -> Any:
        """Evaluate against a column expression or a plain value."""
        return _OPERATORS[self.op](left, self.value)


def eq(field: str, value: Any) -> Filter:
    return Filter(field, FilterOp.EQ, value)


def gt(field: str, value: Any) -> Filter:
    return Filter(field, FilterOp.GT, value)


class RecordStore(Protocol):
    """Persistence contract consumed by the session services.

    Records are plain mappings of column name to value. Filters are combined
    with AND. Failures of the backend surface as ``StoreError``.
    """

    async def insert(self, table: str, record: Record) -> Record:
        """Store a new record and return it as persisted."""
        ...

    async def select_one(self, table: str, filters: Sequence[Filter]) -> Record | None:
        """Return the single matching record, or ``None``."""
        ...

    async def select_many(
        self,
        table: str,
        filters: Sequence[Filter],
        order_by: OrderBy | None = None,
        limit: int | None = None,
        columns: Sequence[str] | None = None,
    ) -> list[Record]:
        """Return matching records, optionally projected to ``columns``."""
        ...

    async def update(
        self, table: str, filters: Sequence[Filter], patch: Record
    ) -> int:
        """Apply ``patch`` to matching records and return how many changed."""
        ...

    async def delete_where(self, table: str, filters: Sequence[Filter]) -> list[str]:
        """Delete matching records and return their ids."""
        ...


def _translate_errors(
    func: Callable[P, Awaitable[R]],
) -> Callable[P, Awaitable[R]]:
    """Re-raise SQLAlchemy failures as ``StoreError``."""

    @functools.wraps(func)
    async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        try:
            return await func(*args, **kwargs)
        except SQLAlchemyError as exc:
            logger.error("Record store request failed", operation=func.__name__)
            raise StoreError(f"Record store {func.__name__} failed") from exc

    return wrapper


class SqlRecordStore:
    """``RecordStore`` backed by an async SQLAlchemy session.

    Writes are flushed but not committed: the owner of the ``AsyncSession``
    decides whether the unit of work commits or rolls back.
    """

    tables: dict[str, type[Base]] = {ChatSession.__tablename__: ChatSession}

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    def _model(self, table: str) -> type[Base]:
        try:
            return self.tables[table]
        except KeyError:
            raise ValueError(f"Unknown table: {table}") from None

    @staticmethod
    def _where(model: type[Base], filters: Sequence[Filter]) -> list[ColumnElement]:
        return [f.apply(getattr(model, f.field)) for f in filters]

    @staticmethod
    def _to_record(row: Base) -> Record:
        return {
            attr.key: getattr(row, attr.key)
            for attr in inspect(row).mapper.column_attrs
        }

    @_translate_errors
    async def insert(self, table: str, record: Record) -> Record:
        row = self._model(table)(**record)
        self._session.add(row)
        await self._session.flush()
        await self._session.refresh(row)
        return self._to_record(row)

    @_translate_errors
    async def select_one(self, table: str, filters: Sequence[Filter]) -> Record | None:
        model = self._model(table)
        result = await self._session.execute(
            select(model)
            .where(*self._where(model, filters))
            .execution_options(populate_existing=True)
        )
        row = result.scalar_one_or_none()
        return self._to_record(row) if row is not None else None

    @_translate_errors
    async def select_many(
        self,
        table: str,
        filters: Sequence[Filter],
        order_by: OrderBy | None = None,
        limit: int | None = None,
        columns: Sequence[str] | None = None,
    ) -> list[Record]:
        model = self._model(table)
        if columns:
            stmt = select(*(getattr(model, name) for name in columns))
        else:
            stmt = select(model).execution_options(populate_existing=True)
        stmt = stmt.where(*self._where(model, filters))

        if order_by is not None:
            column = getattr(model, order_by[0])
            stmt = stmt.order_by(column.desc() if order_by[1] == "desc" else column.asc())
        if limit is not None:
            stmt = stmt.limit(limit)

        result = await self._session.execute(stmt)
        if columns:
            return [dict(row._mapping) for row in result]
        return [self._to_record(row) for row in result.scalars().all()]

    @_translate_errors
    async def update(
        self, table: str, filters: Sequence[Filter], patch: Record
    ) -> int:
        model = self._model(table)
        result = await self._session.execute(
            update(model)
            .where(*self._where(model, filters))
            .values(**patch)
            .execution_options(synchronize_session=False)
        )
        return int(result.rowcount or 0)

    @_translate_errors
    async def delete_where(self, table: str, filters: Sequence[Filter]) -> list[str]:
        model = self._model(table)
        conditions = self._where(model, filters)
        found = await self._session.execute(select(model.id).where(*conditions))
        ids = [str(row_id) for row_id in found.scalars().all()]
        if not ids:
            return []

        result = await self._session.execute(
            delete(model)
            .where(model.id.in_(ids))
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != len(ids):
            raise StoreError(
                f"Deleted {result.rowcount} of {len(ids)} matching records"
            )
        return ids
