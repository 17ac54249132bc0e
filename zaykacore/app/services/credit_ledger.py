"""Customer credit ledger.

Balances are a cached projection of the append-only ``credit_transactions``
table. Every credit or payment inserts one transaction and updates the
customer's ``credit_balance`` inside the same store transaction, while a
per-customer lock keeps concurrent calls from computing stale balances.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from sqlalchemy import delete, func, select

from config import get_settings

from ..domain.kinds import TransactionType
from ..exceptions import ExceedsBalance, InvalidAmount, OutstandingBalance
from ..models_tenant import CreditTransaction, Customer
from ..repos_sqlalchemy import LocalStore
from ..routes_metrics import ledger_entries_total, ledger_rejections_total
from ..utils.clock import utcnow
from ..utils.locks import KeyedLocks
from ..utils.money import ZERO, money, to_decimal

logger = logging.getLogger("ledger")


@dataclass
class CreditSummary:
    total_outstanding: Decimal
    total_credit: Decimal
    customers_with_credit: int


def _positive_amount(amount: object) -> Decimal:
    """Return ``amount`` rounded to paise or raise :class:`InvalidAmount`."""

    if isinstance(amount, bool):
        raise InvalidAmount("amount must be a number")
    try:
        value = to_decimal(amount)
    except ValueError as exc:
        raise InvalidAmount("amount must be a number") from exc
    if not value.is_finite():
        raise InvalidAmount("amount must be finite")
    value = money(value)
    if value <= 0:
        raise InvalidAmount("amount must be greater than zero")
    return value


class CreditLedger:
    """Append credits and payments against customer balances."""

    def __init__(self, store: LocalStore, *, block_delete_with_balance: bool | None = None) -> None:
        self.store = store
        if block_delete_with_balance is None:
            block_delete_with_balance = get_settings().block_delete_with_balance
        self.block_delete_with_balance = block_delete_with_balance
        self._locks = KeyedLocks()

    # ------------------------------------------------------------------
    # customers

    async def save_customer(
        self,
        tenant_id: str,
        *,
        name: str,
        mobile: str,
        address: Optional[str] = None,
        customer_id: Optional[str] = None,
    ) -> Customer:
        """Create a customer with a zero balance or update contact details."""

        name, mobile = (name or "").strip(), (mobile or "").strip()
        if not name or not mobile:
            raise ValueError("customer name and mobile are required")
        record = Customer(
            id=customer_id,
            restaurant_id=tenant_id,
            name=name,
            mobile=mobile,
            address=(address or "").strip() or None,
        )
        return await self.store.upsert(tenant_id, record)

    async def get_customer(self, tenant_id: str, customer_id: str) -> Customer:
        return await self.store.get(tenant_id, Customer, customer_id)

    async def list_customers(self, tenant_id: str) -> list[Customer]:
        return await self.store.list(tenant_id, Customer, order_by=(Customer.name, Customer.id))

    async def summary(self, tenant_id: str) -> CreditSummary:
        """Outstanding credit across the tenant's customers."""

        balances = [money(c.credit_balance) for c in await self.list_customers(tenant_id)]
        return CreditSummary(
            total_outstanding=money(sum((b for b in balances if b > 0), ZERO)),
            total_credit=money(sum(balances, ZERO)),
            customers_with_credit=sum(1 for b in balances if b != 0),
        )

    async def delete_customer(self, tenant_id: str, customer_id: str) -> Decimal:
        """Remove a customer together with its ledger.

        Returns the balance the customer still owed so the caller can warn
        about it. When ``block_delete_with_balance`` is set a non-zero
        balance raises :class:`OutstandingBalance` instead.
        """

        tenant_id = self.store.assert_tenant(tenant_id)
        async with self._locks.hold((tenant_id, customer_id)):
            async with self.store.transaction(tenant_id) as session:
                customer = await self.store.get(tenant_id, Customer, customer_id, session=session)
                balance = money(customer.credit_balance)
                if balance != 0 and self.block_delete_with_balance:
                    raise OutstandingBalance(
                        f"customer has an outstanding balance of {balance}",
                        hint="settle the balance before deleting",
                    )
                await session.execute(
                    delete(CreditTransaction).where(
                        CreditTransaction.restaurant_id == tenant_id,
                        CreditTransaction.customer_id == customer_id,
                    )
                )
                await session.delete(customer)
        if balance != 0:
            logger.warning(
                "customer deleted with outstanding balance %s",
                balance,
                extra={"tenant": tenant_id, "op": "delete_customer"},
            )
        return balance

    # ------------------------------------------------------------------
    # ledger

    async def add_credit(
        self, tenant_id: str, customer_id: str, amount: object, description: Optional[str] = None
    ) -> CreditTransaction:
        """Increase the customer's balance by ``amount``."""

        return await self._append(tenant_id, customer_id, TransactionType.CREDIT, amount, description)

    async def record_payment(
        self, tenant_id: str, customer_id: str, amount: object, description: Optional[str] = None
    ) -> CreditTransaction:
        """Decrease the balance by ``amount``; never below zero."""

        return await self._append(tenant_id, customer_id, TransactionType.PAYMENT, amount, description)

    async def _append(
        self,
        tenant_id: str,
        customer_id: str,
        kind: TransactionType,
        amount: object,
        description: Optional[str],
    ) -> CreditTransaction:
        tenant_id = self.store.assert_tenant(tenant_id)
        try:
            value = _positive_amount(amount)
            async with self._locks.hold((tenant_id, customer_id)):
                async with self.store.transaction(tenant_id) as session:
                    customer = await self.store.get(
                        tenant_id, Customer, customer_id, session=session
                    )
                    balance = money(customer.credit_balance)
                    if kind is TransactionType.PAYMENT and value > balance:
                        raise ExceedsBalance(value, balance)
                    signed = value if kind is TransactionType.CREDIT else -value
                    after = money(balance + signed)
                    now = utcnow()
                    entry = CreditTransaction(
                        restaurant_id=tenant_id,
                        customer_id=customer_id,
                        seq=await self._next_seq(session, tenant_id, customer_id),
                        amount=signed,
                        type=kind.value,
                        description=(description or "").strip() or None,
                        balance_after=after,
                        created_at=now,
                    )
                    session.add(entry)
                    customer.credit_balance = after
                    customer.updated_at = now
        except (InvalidAmount, ExceedsBalance) as exc:
            ledger_rejections_total.labels(code=exc.code).inc()
            raise
        ledger_entries_total.labels(type=kind.value).inc()
        logger.info(
            "%s %s recorded, balance %s",
            kind.value,
            value,
            after,
            extra={"tenant": tenant_id, "op": "ledger"},
        )
        return entry

    @staticmethod
    async def _next_seq(session, tenant_id: str, customer_id: str) -> int:
        current = await session.scalar(
            select(func.max(CreditTransaction.seq)).where(
                CreditTransaction.restaurant_id == tenant_id,
                CreditTransaction.customer_id == customer_id,
            )
        )
        return (current or 0) + 1

    async def history(self, tenant_id: str, customer_id: str) -> list[CreditTransaction]:
        """Return the customer's transactions oldest first."""

        async with self.store.transaction(tenant_id) as session:
            await self.store.get(tenant_id, Customer, customer_id, session=session)
            return await self.store.list(
                tenant_id,
                CreditTransaction,
                CreditTransaction.customer_id == customer_id,
                order_by=(CreditTransaction.created_at, CreditTransaction.seq),
                session=session,
            )

    async def recompute_balance(self, tenant_id: str, customer_id: str) -> Decimal:
        """Re-derive ``credit_balance`` from the ledger and store it."""

        tenant_id = self.store.assert_tenant(tenant_id)
        async with self._locks.hold((tenant_id, customer_id)):
            async with self.store.transaction(tenant_id) as session:
                customer = await self.store.get(tenant_id, Customer, customer_id, session=session)
                total = await session.scalar(
                    select(func.coalesce(func.sum(CreditTransaction.amount), 0)).where(
                        CreditTransaction.restaurant_id == tenant_id,
                        CreditTransaction.customer_id == customer_id,
                    )
                )
                balance = money(total)
                if money(customer.credit_balance) != balance:
                    logger.warning(
                        "balance drift %s -> %s",
                        customer.credit_balance,
                        balance,
                        extra={"tenant": tenant_id, "op": "recompute"},
                    )
                    customer.credit_balance = balance
                    customer.updated_at = utcnow()
        return balance

    async def verify(self, tenant_id: str, customer_id: str) -> bool:
        """Check the running balances and the cached balance against the ledger."""

        customer = await self.get_customer(tenant_id, customer_id)
        running = ZERO
        for entry in await self.history(tenant_id, customer_id):
            running = money(running + to_decimal(entry.amount))
            if money(entry.balance_after) != running:
                return False
        return money(customer.credit_balance) == running


__all__ = ["CreditLedger", "CreditSummary"]
