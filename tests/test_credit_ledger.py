"""Credit ledger invariants and scenarios."""

import random
from decimal import Decimal

import anyio
import pytest

from zaykacore.app.exceptions import (
    ExceedsBalance,
    InvalidAmount,
    NotFound,
    OutstandingBalance,
)
from zaykacore.app.models_tenant import CreditTransaction, Customer
from zaykacore.app.services.credit_ledger import CreditLedger

from factories import OTHER, TENANT


async def _customer(ledger: CreditLedger, tenant: str = TENANT, name: str = "Meena"):
    return await ledger.save_customer(tenant, name=name, mobile="9876543210")


async def _assert_invariants(ledger: CreditLedger, customer_id: str) -> None:
    history = await ledger.history(TENANT, customer_id)
    running = Decimal("0")
    for entry in history:
        running += entry.amount
        assert entry.balance_after == running
        assert entry.balance_after >= 0
        if entry.type == "CREDIT":
            assert entry.amount > 0
        else:
            assert entry.amount < 0
    customer = await ledger.get_customer(TENANT, customer_id)
    assert customer.credit_balance == running
    assert await ledger.verify(TENANT, customer_id)


@pytest.mark.anyio
async def test_credit_then_payments_scenario(store):
    ledger = CreditLedger(store)
    c = await _customer(ledger)
    assert c.credit_balance == 0

    credit = await ledger.add_credit(TENANT, c.id, 500)
    assert credit.type == "CREDIT"
    assert credit.amount == Decimal("500")
    assert credit.balance_after == Decimal("500")
    assert (await ledger.get_customer(TENANT, c.id)).credit_balance == Decimal("500")

    payment = await ledger.record_payment(TENANT, c.id, 200)
    assert payment.type == "PAYMENT"
    assert payment.amount == Decimal("-200")
    assert payment.balance_after == Decimal("300")

    with pytest.raises(ExceedsBalance):
        await ledger.record_payment(TENANT, c.id, 400)

    assert (await ledger.get_customer(TENANT, c.id)).credit_balance == Decimal("300")
    history = await ledger.history(TENANT, c.id)
    assert [t.type for t in history] == ["CREDIT", "PAYMENT"]
    assert [t.seq for t in history] == [1, 2]
    await _assert_invariants(ledger, c.id)


@pytest.mark.anyio
@pytest.mark.parametrize("amount", [0, -5, "abc", "NaN", "Infinity", True, None, "0.001"])
async def test_invalid_amounts_are_rejected(store, amount):
    ledger = CreditLedger(store)
    c = await _customer(ledger)
    with pytest.raises(InvalidAmount):
        await ledger.add_credit(TENANT, c.id, amount)
    with pytest.raises(InvalidAmount):
        await ledger.record_payment(TENANT, c.id, amount)
    assert await ledger.history(TENANT, c.id) == []


@pytest.mark.anyio
async def test_payment_equal_to_balance_clears_it(store):
    ledger = CreditLedger(store)
    c = await _customer(ledger)
    await ledger.add_credit(TENANT, c.id, "99.99")
    entry = await ledger.record_payment(TENANT, c.id, Decimal("99.99"))
    assert entry.balance_after == 0
    with pytest.raises(ExceedsBalance):
        await ledger.record_payment(TENANT, c.id, "0.01")


@pytest.mark.anyio
async def test_random_sequences_keep_invariants(store):
    rng = random.Random(20240115)
    ledger = CreditLedger(store)
    c = await _customer(ledger)
    balance = Decimal("0")
    for _ in range(60):
        amount = Decimal(rng.randint(1, 50000)) / 100
        if rng.random() < 0.55:
            await ledger.add_credit(TENANT, c.id, amount)
            balance += amount
        else:
            try:
                await ledger.record_payment(TENANT, c.id, amount)
                balance -= amount
            except ExceedsBalance:
                assert amount > balance
    assert (await ledger.get_customer(TENANT, c.id)).credit_balance == balance
    await _assert_invariants(ledger, c.id)


@pytest.mark.anyio
async def test_concurrent_payments_serialize(store):
    ledger = CreditLedger(store)
    c = await _customer(ledger)
    await ledger.add_credit(TENANT, c.id, 100)
    outcomes: list[str] = []

    async def pay() -> None:
        try:
            await ledger.record_payment(TENANT, c.id, 30)
            outcomes.append("ok")
        except ExceedsBalance:
            outcomes.append("rejected")

    async with anyio.create_task_group() as tg:
        for _ in range(5):
            tg.start_soon(pay)

    assert outcomes.count("ok") == 3
    assert outcomes.count("rejected") == 2
    assert (await ledger.get_customer(TENANT, c.id)).credit_balance == Decimal("10")
    await _assert_invariants(ledger, c.id)


@pytest.mark.anyio
async def test_unknown_customer(store):
    ledger = CreditLedger(store)
    with pytest.raises(NotFound):
        await ledger.add_credit(TENANT, "cus_missing", 10)
    with pytest.raises(NotFound):
        await ledger.history(TENANT, "cus_missing")


@pytest.mark.anyio
async def test_other_tenant_cannot_touch_ledger(store):
    ledger = CreditLedger(store)
    c = await _customer(ledger)
    with pytest.raises(NotFound):
        await ledger.add_credit(OTHER, c.id, 10)
    assert await ledger.list_customers(OTHER) == []


@pytest.mark.anyio
async def test_delete_customer_with_balance_warns_and_removes_history(store):
    ledger = CreditLedger(store, block_delete_with_balance=False)
    c = await _customer(ledger)
    await ledger.add_credit(TENANT, c.id, 250)

    owed = await ledger.delete_customer(TENANT, c.id)

    assert owed == Decimal("250")
    assert await store.find(TENANT, Customer, c.id) is None
    assert await store.list(TENANT, CreditTransaction) == []


@pytest.mark.anyio
async def test_delete_customer_can_be_blocked(store):
    ledger = CreditLedger(store, block_delete_with_balance=True)
    c = await _customer(ledger)
    await ledger.add_credit(TENANT, c.id, 10)

    with pytest.raises(OutstandingBalance):
        await ledger.delete_customer(TENANT, c.id)
    assert len(await ledger.history(TENANT, c.id)) == 1

    await ledger.record_payment(TENANT, c.id, 10)
    assert await ledger.delete_customer(TENANT, c.id) == 0


@pytest.mark.anyio
async def test_save_customer_update_keeps_balance(store):
    ledger = CreditLedger(store)
    c = await _customer(ledger)
    await ledger.add_credit(TENANT, c.id, 75)
    updated = await ledger.save_customer(
        TENANT, customer_id=c.id, name="Meena R", mobile="9876543210", address="MG Road"
    )
    assert updated.name == "Meena R"
    assert updated.address == "MG Road"
    assert updated.credit_balance == Decimal("75")

    with pytest.raises(ValueError):
        await ledger.save_customer(TENANT, name=" ", mobile="1")


@pytest.mark.anyio
async def test_summary(store):
    ledger = CreditLedger(store)
    a = await _customer(ledger, name="Anil")
    b = await _customer(ledger, name="Bina")
    await _customer(ledger, name="Chetan")
    await ledger.add_credit(TENANT, a.id, 120)
    await ledger.add_credit(TENANT, b.id, "30.50")

    summary = await ledger.summary(TENANT)

    assert summary.total_outstanding == Decimal("150.50")
    assert summary.total_credit == Decimal("150.50")
    assert summary.customers_with_credit == 2
    assert [c.name for c in await ledger.list_customers(TENANT)] == ["Anil", "Bina", "Chetan"]


@pytest.mark.anyio
async def test_recompute_repairs_drifted_balance(store):
    ledger = CreditLedger(store)
    c = await _customer(ledger)
    await ledger.add_credit(TENANT, c.id, 40)
    async with store.transaction(TENANT) as session:
        row = await store.get(TENANT, Customer, c.id, session=session)
        row.credit_balance = Decimal("1000")

    assert await ledger.verify(TENANT, c.id) is False
    assert await ledger.recompute_balance(TENANT, c.id) == Decimal("40")
    assert await ledger.verify(TENANT, c.id) is True
