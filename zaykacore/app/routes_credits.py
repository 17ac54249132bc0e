"""Routes for customer credits."""

from __future__ import annotations

from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel

from .deps.tenant import get_tenant_id
from .services.credit_ledger import CreditLedger
from .utils.money import as_number
from .utils.responses import ok

router = APIRouter(prefix="/api/customers")


class CustomerPayload(BaseModel):
    name: str
    mobile: str
    address: Optional[str] = None


class AmountPayload(BaseModel):
    # kept loose so non-positive amounts surface as INVALID_AMOUNT
    amount: Decimal
    description: Optional[str] = None


def get_ledger(request: Request) -> CreditLedger:
    return request.app.state.ledger


def _customer(c) -> dict:
    return {
        "id": c.id,
        "name": c.name,
        "mobile": c.mobile,
        "address": c.address,
        "creditBalance": as_number(c.credit_balance),
    }


def _entry(t) -> dict:
    return {
        "id": t.id,
        "customerId": t.customer_id,
        "amount": as_number(t.amount),
        "type": t.type,
        "description": t.description,
        "balanceAfter": as_number(t.balance_after),
        "createdAt": t.created_at.isoformat(),
    }


@router.get("")
async def list_customers(
    tenant_id: str = Depends(get_tenant_id), ledger: CreditLedger = Depends(get_ledger)
) -> dict:
    return ok([_customer(c) for c in await ledger.list_customers(tenant_id)])


@router.post("")
async def create_customer(
    payload: CustomerPayload,
    tenant_id: str = Depends(get_tenant_id),
    ledger: CreditLedger = Depends(get_ledger),
) -> dict:
    customer = await ledger.save_customer(
        tenant_id, name=payload.name, mobile=payload.mobile, address=payload.address
    )
    return ok(_customer(customer))


@router.get("/summary")
async def credit_summary(
    tenant_id: str = Depends(get_tenant_id), ledger: CreditLedger = Depends(get_ledger)
) -> dict:
    summary = await ledger.summary(tenant_id)
    return ok(
        {
            "totalOutstanding": as_number(summary.total_outstanding),
            "totalCredit": as_number(summary.total_credit),
            "customersWithCredit": summary.customers_with_credit,
        }
    )


@router.get("/{customer_id}")
async def get_customer(
    customer_id: str,
    tenant_id: str = Depends(get_tenant_id),
    ledger: CreditLedger = Depends(get_ledger),
) -> dict:
    return ok(_customer(await ledger.get_customer(tenant_id, customer_id)))


@router.put("/{customer_id}")
async def update_customer(
    customer_id: str,
    payload: CustomerPayload,
    tenant_id: str = Depends(get_tenant_id),
    ledger: CreditLedger = Depends(get_ledger),
) -> dict:
    await ledger.get_customer(tenant_id, customer_id)
    customer = await ledger.save_customer(
        tenant_id,
        customer_id=customer_id,
        name=payload.name,
        mobile=payload.mobile,
        address=payload.address,
    )
    return ok(_customer(customer))


@router.delete("/{customer_id}")
async def delete_customer(
    customer_id: str,
    tenant_id: str = Depends(get_tenant_id),
    ledger: CreditLedger = Depends(get_ledger),
) -> dict:
    """Delete a customer and its history; reports the balance written off."""

    balance = await ledger.delete_customer(tenant_id, customer_id)
    return ok({"id": customer_id, "outstandingBalance": as_number(balance)})


@router.post("/{customer_id}/credit")
async def add_credit(
    customer_id: str,
    payload: AmountPayload,
    tenant_id: str = Depends(get_tenant_id),
    ledger: CreditLedger = Depends(get_ledger),
) -> dict:
    entry = await ledger.add_credit(tenant_id, customer_id, payload.amount, payload.description)
    return ok(_entry(entry))


@router.post("/{customer_id}/payment")
async def record_payment(
    customer_id: str,
    payload: AmountPayload,
    tenant_id: str = Depends(get_tenant_id),
    ledger: CreditLedger = Depends(get_ledger),
) -> dict:
    entry = await ledger.record_payment(
        tenant_id, customer_id, payload.amount, payload.description
    )
    return ok(_entry(entry))


@router.get("/{customer_id}/history")
async def history(
    customer_id: str,
    tenant_id: str = Depends(get_tenant_id),
    ledger: CreditLedger = Depends(get_ledger),
) -> dict:
    return ok([_entry(t) for t in await ledger.history(tenant_id, customer_id)])


@router.post("/{customer_id}/recompute")
async def recompute(
    customer_id: str,
    tenant_id: str = Depends(get_tenant_id),
    ledger: CreditLedger = Depends(get_ledger),
) -> dict:
    balance = await ledger.recompute_balance(tenant_id, customer_id)
    return ok(
        {
            "creditBalance": as_number(balance),
            "consistent": await ledger.verify(tenant_id, customer_id),
        }
    )
