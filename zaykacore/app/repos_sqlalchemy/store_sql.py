"""SQLAlchemy implementation of the on-device record store.

All reads and writes are scoped by ``restaurant_id``. Callers either let each
method open its own transaction or pass the ``session`` yielded by
:meth:`LocalStore.transaction` to group several writes into one commit unit.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Iterable, Type

from sqlalchemy import delete as sa_delete
from sqlalchemy import func, inspect, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from ..models_tenant import (
    CreditTransaction,
    Customer,
    Expense,
    Notification,
    Order,
    OrderItem,
    Tax,
)
from ..exceptions import IOFailure, NotFound, TenantMismatch
from ..utils.clock import day_bound, utcnow
from ..utils.money import ZERO
from ..utils.soft_delete import active, soft_delete
from . import TenantGuard

logger = logging.getLogger("store")

# columns an upsert never copies over an existing row
_PROTECTED = {"created_at", "deleted_at"}
_LEDGER_MODELS = (Customer, CreditTransaction)
# child tables first so nothing dangles mid-way
_CLEAR_ORDER = (CreditTransaction, Customer, Order, Expense, Tax, Notification)


class LocalStore(TenantGuard):
    """Durable tenant-scoped storage for the six record families."""

    def __init__(self, engine: AsyncEngine) -> None:
        self.engine = engine
        self.sessionmaker = async_sessionmaker(engine, expire_on_commit=False)

    @asynccontextmanager
    async def transaction(self, tenant_id: str) -> AsyncIterator[AsyncSession]:
        """Yield a session whose writes commit together or not at all.

        Any ``SQLAlchemyError`` rolls the whole unit back and surfaces as
        :class:`IOFailure`.
        """

        self.assert_tenant(tenant_id)
        try:
            async with self.sessionmaker() as session:
                async with session.begin():
                    yield session
        except SQLAlchemyError as exc:
            logger.error(
                "local transaction rolled back",
                exc_info=True,
                extra={"tenant": tenant_id, "op": "transaction"},
            )
            raise IOFailure("local storage failure", hint=type(exc).__name__) from exc

    @asynccontextmanager
    async def _scope(
        self, tenant_id: str, session: AsyncSession | None
    ) -> AsyncIterator[AsyncSession]:
        if session is not None:
            yield session
            return
        async with self.transaction(tenant_id) as own:
            yield own

    # ------------------------------------------------------------------
    # generic record operations

    async def upsert(self, tenant_id: str, record, *, session: AsyncSession | None = None):
        """Insert ``record`` or replace the stored row with the same key.

        Every column of an existing row is overwritten. A required column left
        as ``None`` falls back to its column default and raises ``ValueError``
        when it has none. ``created_at`` and ``deleted_at`` of an existing row
        are kept, and a customer's ``credit_balance`` is never written here.
        """

        tenant_id = self.assert_tenant(tenant_id)
        self.assert_owned(record, tenant_id)
        model = type(record)
        async with self._scope(tenant_id, session) as s:
            if isinstance(record, OrderItem):
                await self._assert_parent_order(s, tenant_id, record.order_id)
            existing = await self._find(s, tenant_id, model, record.id, include_deleted=True)
            if existing is None:
                if record.id is not None and await s.get(model, self._pk(model, tenant_id, record.id)):
                    raise TenantMismatch("record id belongs to another restaurant")
                if isinstance(record, Customer):
                    record.credit_balance = ZERO
                s.add(record)
                await s.flush()
                return record
            protected = set(_PROTECTED)
            if isinstance(existing, Customer):
                protected.add("credit_balance")
            for column in inspect(model).columns:
                name = column.key
                if name in protected or name == "updated_at" or column.primary_key:
                    continue
                value = getattr(record, name)
                if value is None and not column.nullable:
                    default = column.default
                    if default is None or not default.is_scalar:
                        raise ValueError(f"{model.__tablename__}.{name} is required")
                    value = default.arg
                setattr(existing, name, value)
            if hasattr(existing, "updated_at"):
                existing.updated_at = utcnow()
            await s.flush()
            return existing

    async def find(
        self,
        tenant_id: str,
        model: Type,
        record_id: str,
        *,
        include_deleted: bool = False,
        session: AsyncSession | None = None,
    ):
        """Return the record or ``None``."""

        tenant_id = self.assert_tenant(tenant_id)
        async with self._scope(tenant_id, session) as s:
            return await self._find(s, tenant_id, model, record_id, include_deleted=include_deleted)

    async def get(
        self, tenant_id: str, model: Type, record_id: str, *, session: AsyncSession | None = None
    ):
        """Return the record or raise :class:`NotFound`."""

        record = await self.find(tenant_id, model, record_id, session=session)
        if record is None:
            raise NotFound(f"{model.__tablename__} {record_id} not found")
        return record

    async def list(
        self,
        tenant_id: str,
        model: Type,
        *criteria,
        order_by: Iterable | None = None,
        include_deleted: bool = False,
        session: AsyncSession | None = None,
    ) -> list:
        """Return the tenant's rows of ``model`` matching ``criteria``."""

        tenant_id = self.assert_tenant(tenant_id)
        stmt = self._scoped(select(model), model, tenant_id, include_deleted)
        if criteria:
            stmt = stmt.where(*criteria)
        if order_by is not None:
            stmt = stmt.order_by(*order_by)
        async with self._scope(tenant_id, session) as s:
            result = await s.execute(stmt)
            return list(result.scalars().all())

    async def delete(
        self, tenant_id: str, model: Type, record_id: str, *, session: AsyncSession | None = None
    ) -> None:
        """Remove a record; notifications are soft-deleted.

        Customers and credit transactions are owned by the credit ledger and
        cannot be removed through this method.
        """

        if model in _LEDGER_MODELS:
            raise ValueError(f"{model.__tablename__} rows are removed through the credit ledger")
        tenant_id = self.assert_tenant(tenant_id)
        async with self._scope(tenant_id, session) as s:
            record = await self._find(s, tenant_id, model, record_id)
            if record is None:
                raise NotFound(f"{model.__tablename__} {record_id} not found")
            if model is Notification:
                soft_delete(record)
                record.updated_at = record.deleted_at
            else:
                if model is Order:
                    await s.execute(sa_delete(OrderItem).where(OrderItem.order_id == record.id))
                await s.delete(record)
            await s.flush()
        logger.info(
            "deleted %s %s", model.__tablename__, record_id,
            extra={"tenant": tenant_id, "op": "delete"},
        )

    async def clear_restaurant_data(self, tenant_id: str) -> dict[str, int]:
        """Remove every row of ``tenant_id`` across all record families."""

        tenant_id = self.assert_tenant(tenant_id)
        counts: dict[str, int] = {}
        async with self.transaction(tenant_id) as s:
            order_ids = select(Order.id).where(Order.restaurant_id == tenant_id)
            result = await s.execute(
                sa_delete(OrderItem).where(OrderItem.order_id.in_(order_ids))
            )
            counts[OrderItem.__tablename__] = result.rowcount or 0
            for model in _CLEAR_ORDER:
                result = await s.execute(
                    sa_delete(model).where(model.restaurant_id == tenant_id)
                )
                counts[model.__tablename__] = result.rowcount or 0
        logger.info("cleared restaurant data", extra={"tenant": tenant_id, "op": "clear"})
        return counts

    # ------------------------------------------------------------------
    # family specific reads

    async def notifications(
        self, tenant_id: str, *, include_deleted: bool = False, session: AsyncSession | None = None
    ) -> list[Notification]:
        """Return notifications newest first."""

        return await self.list(
            tenant_id,
            Notification,
            order_by=(Notification.created_at.desc(), Notification.id.desc()),
            include_deleted=include_deleted,
            session=session,
        )

    async def orders_in_range(self, tenant_id: str, start: str, end: str) -> list[Order]:
        """Return orders created on ``start``..``end`` inclusive, oldest first."""

        lo, hi = day_bound(start), day_bound(end)
        return await self.list(
            tenant_id,
            Order,
            func.date(Order.created_at) >= lo,
            func.date(Order.created_at) <= hi,
            order_by=(Order.created_at, Order.id),
        )

    async def expenses_in_range(self, tenant_id: str, start: str, end: str) -> list[Expense]:
        lo, hi = day_bound(start), day_bound(end)
        return await self.list(
            tenant_id,
            Expense,
            func.date(Expense.date) >= lo,
            func.date(Expense.date) <= hi,
            order_by=(Expense.date, Expense.created_at, Expense.id),
        )

    async def items_for_orders(self, tenant_id: str, order_ids: Iterable[str]) -> list[OrderItem]:
        """Return the line items of the given orders of ``tenant_id``."""

        tenant_id = self.assert_tenant(tenant_id)
        ids = list(order_ids)
        if not ids:
            return []
        stmt = (
            select(OrderItem)
            .join(Order, Order.id == OrderItem.order_id)
            .where(Order.restaurant_id == tenant_id, OrderItem.order_id.in_(ids))
            .order_by(OrderItem.order_id, OrderItem.created_at, OrderItem.id)
        )
        async with self.transaction(tenant_id) as s:
            result = await s.execute(stmt)
            return list(result.scalars().all())

    async def taxes(self, tenant_id: str) -> list[Tax]:
        return await self.list(tenant_id, Tax, order_by=(Tax.created_at, Tax.name))

    async def dispose(self) -> None:
        await self.engine.dispose()

    # ------------------------------------------------------------------
    # helpers

    @staticmethod
    def _pk(model: Type, tenant_id: str, record_id: str):
        if model is Notification:
            return (tenant_id, record_id)
        return record_id

    @staticmethod
    def _scoped(stmt, model: Type, tenant_id: str, include_deleted: bool):
        if model is OrderItem:
            stmt = stmt.join(Order, Order.id == OrderItem.order_id).where(
                Order.restaurant_id == tenant_id
            )
        else:
            stmt = stmt.where(model.restaurant_id == tenant_id)
        if hasattr(model, "deleted_at") and not include_deleted:
            stmt = stmt.where(active(model))
        return stmt

    async def _find(
        self,
        session: AsyncSession,
        tenant_id: str,
        model: Type,
        record_id: str | None,
        *,
        include_deleted: bool = False,
    ):
        if record_id is None:
            return None
        stmt = self._scoped(select(model), model, tenant_id, include_deleted).where(
            model.id == record_id
        )
        result = await session.execute(stmt)
        return result.scalars().first()

    async def _assert_parent_order(
        self, session: AsyncSession, tenant_id: str, order_id: str | None
    ) -> None:
        order = await self._find(session, tenant_id, Order, order_id)
        if order is None:
            raise NotFound(f"orders {order_id} not found")


__all__ = ["LocalStore"]
