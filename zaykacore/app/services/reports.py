"""Sales, profit and loss, expense and tax reports.

Report builders are pure functions over rows loaded by
:class:`ReportGenerator`; amounts stay ``Decimal`` and are rounded to paise.
The CSV renderers keep the row labels and column order expected by
spreadsheets already built on these exports.
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Iterable, List, Optional, Sequence

from config import get_settings

from ..routes_metrics import reports_exported_total
from ..tax import gst_engine
from ..utils.clock import day_bound
from ..utils.exports import CSV_MIME, JSON_MIME, ExportFile, FileSink, rows_to_csv, to_json
from ..utils.money import ZERO, fmt, money, to_decimal

logger = logging.getLogger("reports")

REPORT_FILENAMES = {
    "sales": "Sales-Report",
    "pnl": "Profit-Loss-Report",
    "expenses": "Expenses-Report",
    "tax": "Tax-Report",
}
REPORT_KINDS = tuple(REPORT_FILENAMES) + gst_engine.GST_TYPES
FORMATS = ("csv", "json")

WALK_IN = "Walk-in Customer"
NOT_AVAILABLE = "N/A"


def _day(value: date | datetime | str | None) -> Optional[date]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def display_date(value) -> str:
    """``05 Jan 2024`` style dates used in CSV detail rows."""
    day = _day(value)
    return day.strftime("%d %b %Y") if day else ""


def _share(part: Decimal, whole: Decimal) -> Decimal:
    if whole <= 0:
        return ZERO
    return money(part / whole * 100)


def _total(values: Iterable) -> Decimal:
    return money(sum((to_decimal(v) for v in values), ZERO))


def _average(total: Decimal, count: int) -> Decimal:
    return money(total / count) if count else ZERO


# ----------------------------------------------------------------------
# builders


def sales_report(orders: Sequence, start: str, end: str) -> dict:
    revenue = _total(o.total_amount for o in orders)
    rows = [
        {
            "date": _day(o.created_at).isoformat(),
            "order_id": o.order_number,
            "customer": "Customer" if o.customer_id else WALK_IN,
            "amount": money(o.total_amount),
            "payment_method": o.payment_method or NOT_AVAILABLE,
            "status": o.payment_status,
        }
        for o in orders
    ]
    return {
        "report_type": "sales",
        "period": {"start": start, "end": end},
        "orders": rows,
        "summary": {
            "total_orders": len(rows),
            "total_revenue": revenue,
            "avg_order_value": _average(revenue, len(rows)),
        },
    }


def pnl_report(orders: Sequence, expenses: Sequence, start: str, end: str) -> dict:
    """Net profit is revenue less expenses; margin is 0 without revenue."""

    revenue = _total(o.total_amount for o in orders)
    spent = _total(e.amount for e in expenses)
    net = revenue - spent
    return {
        "report_type": "pnl",
        "period": {"start": start, "end": end},
        "total_revenue": revenue,
        "total_orders": len(orders),
        "avg_order_value": _average(revenue, len(orders)),
        "total_expenses": spent,
        "net_profit": net,
        "profit_margin": _share(net, revenue),
    }


def expense_report(expenses: Sequence, start: str, end: str) -> dict:
    total = _total(e.amount for e in expenses)
    by_category: "OrderedDict[str, Decimal]" = OrderedDict()
    for expense in expenses:
        by_category[expense.category] = by_category.get(expense.category, ZERO) + to_decimal(
            expense.amount
        )
    return {
        "report_type": "expenses",
        "period": {"start": start, "end": end},
        "expenses": [
            {
                "date": _day(e.date).isoformat(),
                "category": e.category,
                "amount": money(e.amount),
                "description": e.description or NOT_AVAILABLE,
                "vendor": e.vendor_name or NOT_AVAILABLE,
            }
            for e in expenses
        ],
        "by_category": [
            {"category": name, "amount": money(amount), "percentage": _share(amount, total)}
            for name, amount in by_category.items()
        ],
        "total_expenses": total,
    }


def tax_report(orders: Sequence, taxes: Sequence, start: str, end: str) -> dict:
    breakdown = gst_engine.tax_breakdown(orders, taxes)
    percentages: dict[str, Decimal] = {}
    for tax in taxes:
        percentages[tax.name] = percentages.get(tax.name, ZERO) + to_decimal(tax.percentage)
    return {
        "report_type": "tax",
        "period": {"start": start, "end": end},
        "breakdown": [
            {"name": name, "percentage": percentages[name], "amount": amount}
            for name, amount in breakdown.items()
        ],
        "total_tax_collected": _total(o.tax_amount for o in orders),
    }


# ----------------------------------------------------------------------
# CSV layouts


def _period(report: dict) -> str:
    return f"Period: {report['period']['start']} to {report['period']['end']}"


def _num(value: Any) -> str:
    """Render a number without trailing zeros, e.g. ``9`` or ``2.5``."""

    if isinstance(value, Decimal):
        text = format(value.normalize(), "f")
        return "0" if text in ("-0", "") else text
    return str(value)


def _cell(value: Any) -> str:
    # zero and missing values are exported as empty cells
    if value is None or value == "" or (not isinstance(value, str) and value == 0):
        return ""
    return _num(value)


def sales_rows(report: dict) -> list[list]:
    rows: list[list] = [["SALES REPORT"], [_period(report)], []]
    rows.append(["Date", "Order ID", "Customer", "Amount", "Payment Method", "Status"])
    for r in report["orders"]:
        rows.append(
            [
                display_date(r["date"]),
                r["order_id"],
                r["customer"],
                fmt(r["amount"]),
                r["payment_method"],
                r["status"],
            ]
        )
    summary = report["summary"]
    rows += [
        [],
        ["Summary"],
        ["Total Orders", summary["total_orders"]],
        ["Total Revenue", fmt(summary["total_revenue"])],
        ["Average Order Value", fmt(summary["avg_order_value"])],
    ]
    return rows


def pnl_rows(report: dict) -> list[list]:
    return [
        ["PROFIT & LOSS STATEMENT"],
        [_period(report)],
        [],
        ["REVENUE"],
        ["Total Sales Revenue", fmt(report["total_revenue"])],
        ["Total Orders", report["total_orders"]],
        ["Average Order Value", fmt(report["avg_order_value"])],
        [],
        ["EXPENSES"],
        ["Total Expenses", fmt(report["total_expenses"])],
        [],
        ["PROFIT CALCULATION"],
        ["Total Revenue", fmt(report["total_revenue"])],
        ["Less: Total Expenses", fmt(report["total_expenses"])],
        ["NET PROFIT", fmt(report["net_profit"])],
        ["Profit Margin", f"{fmt(report['profit_margin'])}%"],
    ]


def expense_rows(report: dict) -> list[list]:
    rows: list[list] = [["EXPENSES REPORT"], [_period(report)], []]
    rows.append(["Date", "Category", "Amount", "Description", "Vendor"])
    for e in report["expenses"]:
        rows.append(
            [display_date(e["date"]), e["category"], fmt(e["amount"]), e["description"], e["vendor"]]
        )
    rows += [[], ["EXPENSE SUMMARY BY CATEGORY"]]
    for c in report["by_category"]:
        rows.append([c["category"], fmt(c["amount"]), f"{fmt(c['percentage'])}%"])
    rows += [[], ["Total Expenses", fmt(report["total_expenses"])]]
    return rows


def tax_rows(report: dict) -> list[list]:
    rows: list[list] = [["TAX REPORT (GST)"], [_period(report)], [], ["TAX BREAKDOWN BY TYPE"]]
    for t in report["breakdown"]:
        rows.append([f"{t['name']} ({_num(t['percentage'])}%)", fmt(t["amount"])])
    rows += [[], ["Total Tax Collected", fmt(report["total_tax_collected"])]]
    return rows


def gst_rows(kind: str, data: dict) -> list[list]:
    if kind == "GSTR-1":
        rows: list[list] = [
            ["GSTR-1 Report"],
            ["GSTIN", data.get("gstin") or ""],
            ["Filing Period", data.get("fp") or ""],
            [],
            ["B2CS (Business to Consumer Small)"],
            ["Supply Type", "Place of Supply", "Rate", "Taxable Value", "CGST", "SGST", "Cess", "Type", "ETIN"],
        ]
        for b in data.get("b2cs", []):
            keys = ("sply_ty", "pos", "rt", "txval", "camt", "samt", "csamt", "typ", "etin")
            rows.append([_cell(b.get(k)) for k in keys])
        rows += [
            [],
            ["HSN/SAC Summary"],
            [
                "Number", "HSN/SAC Code", "Description", "UQC", "Quantity", "Rate",
                "B2C Value", "B2B Value", "Total Value", "CGST", "SGST", "IGST", "Cess",
            ],
        ]
        for h in data.get("hsn", []):
            keys = (
                "num", "hsn_sc", "desc", "uqc", "qty", "rt", "txval_b2c",
                "txval_b2b", "tot_txval", "camt", "samt", "iamt", "csamt",
            )
            rows.append([_cell(h.get(k)) for k in keys])
        return rows
    if kind == "GSTR-2":
        rows = [
            ["Supplier GSTIN", "Invoice Number", "Invoice Date", "Taxable Value", "CGST", "SGST", "IGST", "Total Value"]
        ]
        keys = (
            "supplier_gstin", "invoice_number", "invoice_date", "taxable_value",
            "cgst", "sgst", "igst", "total_value",
        )
        for tx in data.get("transactions", []):
            rows.append([_cell(tx.get(k)) for k in keys])
        return rows
    if kind == "GSTR-3B":
        totals = data.get("totals", {})
        itc = totals.get("input_tax_credit", {})
        paid = totals.get("tax_paid", {})
        return [
            ["Description", "Amount"],
            ["Taxable Sales", _cell(totals.get("taxable_sales"))],
            ["CGST", _cell(totals.get("cgst"))],
            ["SGST", _cell(totals.get("sgst"))],
            ["Grand Total", _cell(totals.get("grand_total"))],
            ["Input Tax Credit - CGST", _cell(itc.get("cgst"))],
            ["Input Tax Credit - SGST", _cell(itc.get("sgst"))],
            ["Tax Paid - CGST", _cell(paid.get("cgst"))],
            ["Tax Paid - SGST", _cell(paid.get("sgst"))],
        ]
    raise ValueError(f"unknown GST report type: {kind}")


_CSV_LAYOUTS = {
    "sales": sales_rows,
    "pnl": pnl_rows,
    "expenses": expense_rows,
    "tax": tax_rows,
}


def export_filename(kind: str, start: str, end: str, ext: str) -> str:
    if kind in gst_engine.GST_TYPES:
        return f"{kind}_{start}_to_{end}.{ext}"
    return f"{REPORT_FILENAMES[kind]}-{start}-to-{end}.{ext}"


def serialize(kind: str, data: dict, fmt_: str) -> tuple[str, str]:
    """Return ``(content, mime_type)``; CSV carries a UTF-8 BOM, JSON never."""

    if fmt_ == "json":
        return to_json(data), JSON_MIME
    if kind in gst_engine.GST_TYPES:
        return rows_to_csv(gst_rows(kind, data)), CSV_MIME
    return rows_to_csv(_CSV_LAYOUTS[kind](data)), CSV_MIME


# ----------------------------------------------------------------------
# generator


@dataclass
class Snapshot:
    orders: List[Any] = field(default_factory=list)
    expenses: List[Any] = field(default_factory=list)
    taxes: List[Any] = field(default_factory=list)
    items_by_order: dict = field(default_factory=dict)


class ReportGenerator:
    """Load a snapshot from the store and build or export a report."""

    def __init__(
        self,
        store,
        sink: FileSink | None = None,
        *,
        gstin: str | None = None,
        state_code: str | None = None,
    ) -> None:
        settings = get_settings()
        self.store = store
        self.sink = sink
        self.gstin = gstin if gstin is not None else settings.gstin
        self.state_code = state_code or settings.gst_state_code

    async def snapshot(self, tenant_id: str, start: str, end: str, *, with_items: bool = False) -> Snapshot:
        snap = Snapshot(
            orders=await self.store.orders_in_range(tenant_id, start, end),
            expenses=await self.store.expenses_in_range(tenant_id, start, end),
            taxes=await self.store.taxes(tenant_id),
        )
        if with_items:
            items = await self.store.items_for_orders(tenant_id, [o.id for o in snap.orders])
            for item in items:
                snap.items_by_order.setdefault(item.order_id, []).append(item)
        return snap

    async def generate(self, tenant_id: str, kind: str, start: str, end: str) -> dict:
        """Build the ``kind`` report for ``start``..``end`` inclusive."""

        if kind not in REPORT_KINDS:
            raise ValueError(f"unknown report kind: {kind}")
        start, end = day_bound(start), day_bound(end)
        snap = await self.snapshot(
            tenant_id, start, end, with_items=kind in ("GSTR-1", "GSTR-3B")
        )
        if kind == "sales":
            return sales_report(snap.orders, start, end)
        if kind == "pnl":
            return pnl_report(snap.orders, snap.expenses, start, end)
        if kind == "expenses":
            return expense_report(snap.expenses, start, end)
        if kind == "tax":
            return tax_report(snap.orders, snap.taxes, start, end)
        return gst_engine.build(
            kind,
            snap.orders,
            snap.items_by_order,
            snap.taxes,
            start,
            gstin=self.gstin,
            state_code=self.state_code,
        )

    async def export(
        self, tenant_id: str, kind: str, start: str, end: str, fmt_: str = "csv"
    ) -> ExportFile:
        """Serialize a report and hand it to the file sink when one is set."""

        fmt_ = (fmt_ or "csv").lower()
        if fmt_ not in FORMATS:
            raise ValueError(f"unsupported export format: {fmt_}")
        data = await self.generate(tenant_id, kind, start, end)
        content, mime = serialize(kind, data, fmt_)
        export = ExportFile(
            content=content,
            filename=export_filename(kind, day_bound(start), day_bound(end), fmt_),
            mime_type=mime,
        )
        if self.sink is not None:
            await self.sink.write_and_offer(export.content, export.filename, export.mime_type)
        reports_exported_total.labels(kind=kind, format=fmt_).inc()
        logger.info("exported %s", export.filename, extra={"tenant": tenant_id, "op": "export"})
        return export


__all__ = [
    "ReportGenerator",
    "REPORT_KINDS",
    "display_date",
    "expense_report",
    "export_filename",
    "pnl_report",
    "sales_report",
    "serialize",
    "tax_report",
]
