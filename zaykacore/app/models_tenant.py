"""Tenant-scoped record models for the on-device store.

Every table except ``order_items`` carries the owning ``restaurant_id``;
order items are scoped through their parent order. The models are kept
isolated from any application wiring so that they can be used in tests
independently."""

from __future__ import annotations

import uuid

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import declarative_base

from .utils.clock import utcnow

Base = declarative_base()


def new_id(prefix: str) -> str:
    """Return a fresh identifier such as ``ct_1f9c2b7a04de``."""

    return f"{prefix}_{uuid.uuid4().hex[:12]}"


class Notification(Base):
    """Server-originated notifications mirrored on the device."""

    __tablename__ = "notifications"

    restaurant_id = Column(String, primary_key=True)
    id = Column(String, primary_key=True)
    title = Column(String, nullable=False)
    message = Column(Text, nullable=False)
    type = Column(String, nullable=False, default="info")
    is_read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow)
    deleted_at = Column(DateTime, nullable=True)


class Customer(Base):
    """Customers who may buy on credit.

    ``credit_balance`` is a projection of the customer's ledger and is only
    written by :mod:`zaykacore.app.services.credit_ledger`.
    """

    __tablename__ = "customers"

    id = Column(String, primary_key=True, default=lambda: new_id("cus"))
    restaurant_id = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False)
    mobile = Column(String, nullable=False)
    address = Column(Text, nullable=True)
    credit_balance = Column(Numeric(10, 2), nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow)


class CreditTransaction(Base):
    """Append-only entries of a customer's credit ledger."""

    __tablename__ = "credit_transactions"
    __table_args__ = (
        CheckConstraint("type IN ('CREDIT', 'PAYMENT')", name="ck_credit_tx_type"),
    )

    id = Column(String, primary_key=True, default=lambda: new_id("ct"))
    restaurant_id = Column(String, nullable=False, index=True)
    customer_id = Column(String, ForeignKey("customers.id"), nullable=False, index=True)
    seq = Column(Integer, nullable=False)
    amount = Column(Numeric(10, 2), nullable=False)
    type = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    balance_after = Column(Numeric(10, 2), nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)


class Order(Base):
    """Billed orders recorded by the billing flow."""

    __tablename__ = "orders"
    __table_args__ = (
        CheckConstraint("total_amount >= 0", name="ck_orders_total_non_negative"),
    )

    id = Column(String, primary_key=True, default=lambda: new_id("ord"))
    restaurant_id = Column(String, nullable=False, index=True)
    order_number = Column(String, nullable=False)
    customer_id = Column(String, nullable=True)
    table_id = Column(String, nullable=True)
    order_type = Column(String, nullable=False, default="Counter")
    status = Column(String, nullable=False, default="PENDING")
    subtotal = Column(Numeric(10, 2), nullable=False, default=0)
    tax_amount = Column(Numeric(10, 2), nullable=False, default=0)
    discount_amount = Column(Numeric(10, 2), nullable=False, default=0)
    total_amount = Column(Numeric(10, 2), nullable=False)
    payment_status = Column(String, nullable=False, default="PENDING")
    payment_method = Column(String, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow)


class OrderItem(Base):
    """Line items belonging to an order."""

    __tablename__ = "order_items"

    id = Column(String, primary_key=True, default=lambda: new_id("oi"))
    order_id = Column(String, ForeignKey("orders.id"), nullable=False, index=True)
    menu_item_id = Column(String, nullable=True)
    item_name = Column(String, nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
    unit_price = Column(Numeric(10, 2), nullable=False, default=0)
    total_price = Column(Numeric(10, 2), nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)


class Expense(Base):
    """Operating expenses entered on the device."""

    __tablename__ = "expenses"
    __table_args__ = (CheckConstraint("amount > 0", name="ck_expenses_amount_positive"),)

    id = Column(String, primary_key=True, default=lambda: new_id("exp"))
    restaurant_id = Column(String, nullable=False, index=True)
    category = Column(String, nullable=False)
    amount = Column(Numeric(10, 2), nullable=False)
    description = Column(Text, nullable=True)
    date = Column(Date, nullable=False)
    vendor_name = Column(String, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow)


class Tax(Base):
    """Configured tax rows such as ``CGST`` and ``SGST``."""

    __tablename__ = "taxes"
    __table_args__ = (
        CheckConstraint("percentage >= 0", name="ck_taxes_percentage_non_negative"),
    )

    id = Column(String, primary_key=True, default=lambda: new_id("tax"))
    restaurant_id = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False)
    percentage = Column(Numeric(5, 2), nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow)


TENANT_MODELS = (Notification, Customer, CreditTransaction, Order, Expense, Tax)
