from __future__ import annotations

"""GST return helpers for the reports screen.

This module centralises the GSTR-1, GSTR-2 and GSTR-3B summaries and the
per-tax breakdown with precise ₹0.01 rounding. Every builder is a pure
function of already-loaded rows.
"""

from collections import OrderedDict
from datetime import date
from decimal import Decimal
from typing import Iterable, Mapping, Sequence

from ..domain.kinds import is_served
from ..utils.money import ZERO, money, to_decimal

GstType = str  # "GSTR-1", "GSTR-2" or "GSTR-3B"

GST_TYPES = ("GSTR-1", "GSTR-2", "GSTR-3B")

DEFAULT_CGST = Decimal("9")
DEFAULT_SGST = Decimal("9")
DEFAULT_IGST = Decimal("18")

RESTAURANT_SAC = "996331"
RESTAURANT_SAC_DESC = "Restaurant, café, takeaway, room service, and food delivery services"

GSTIN_PLACEHOLDER = "<TAXPAYER_GSTIN>"
GT_PLACEHOLDER = "<ANNUAL_GROSS_TURNOVER_YTD>"
CUR_GT_PLACEHOLDER = "<CURRENT_PERIOD_GROSS_TURNOVER>"

# Illustrative inward supply; no purchase records exist on the device.
SAMPLE_SUPPLIER_GSTIN = "27AAAAA1111A1Z2"
SAMPLE_INVOICE_NUMBER = "PUR001"
SAMPLE_TAXABLE_VALUE = Decimal("5000")

# Share of output tax assumed claimable as input tax credit in GSTR-3B.
ITC_SHARE = Decimal("0.4")

HUNDRED = Decimal("100")


def _rate(taxes: Iterable, marker: str, default: Decimal) -> Decimal:
    for tax in taxes:
        if marker in (tax.name or "").upper():
            return to_decimal(tax.percentage)
    return default


def gst_rates(taxes: Sequence) -> dict[str, Decimal]:
    """Return CGST/SGST/IGST percentages from configured tax rows.

    A row matches when its name contains ``CGST``, ``SGST`` or ``IGST``;
    missing rows fall back to 9/9/18.
    """

    return {
        "cgst": _rate(taxes, "CGST", DEFAULT_CGST),
        "sgst": _rate(taxes, "SGST", DEFAULT_SGST),
        "igst": _rate(taxes, "IGST", DEFAULT_IGST),
    }


def filing_period(start: str) -> dict[str, str]:
    """Return ``{"month": "MM", "year": "YYYY"}`` of the range start."""

    day = date.fromisoformat(start[:10])
    return {"month": f"{day.month:02d}", "year": f"{day.year:04d}"}


def served_orders(orders: Iterable) -> list:
    return [o for o in orders if is_served(o)]


def taxable_value(orders: Iterable, items_by_order: Mapping[str, Sequence]) -> Decimal:
    """Σ of line item ``total_price`` over ``orders``."""

    total = ZERO
    for order in orders:
        for item in items_by_order.get(order.id, ()):
            total += to_decimal(item.total_price)
    return money(total)


def _pct(amount: Decimal, rate: Decimal) -> Decimal:
    return money(amount * rate / HUNDRED)


def gstr1(
    orders: Iterable,
    items_by_order: Mapping[str, Sequence],
    taxes: Sequence,
    start: str,
    *,
    gstin: str | None = None,
    state_code: str = "29",
) -> dict:
    """Build a GSTR-1 summary in the GST portal layout.

    Only served orders count. The taxable value is the sum of their line
    items; the tax actually collected on them is split evenly into the
    CGST and SGST buckets.
    """

    served = served_orders(orders)
    rates = gst_rates(taxes)
    total_rate = rates["cgst"] + rates["sgst"]
    txval = taxable_value(served, items_by_order)
    collected = money(sum((to_decimal(o.tax_amount) for o in served), ZERO))
    camt = money(collected / 2)
    samt = collected - camt
    period = filing_period(start)
    return {
        "gstin": gstin or GSTIN_PLACEHOLDER,
        "fp": f"{period['month']}{period['year']}",
        "gt": GT_PLACEHOLDER,
        "cur_gt": CUR_GT_PLACEHOLDER,
        "b2cs": [
            {
                "sply_ty": "OS",
                "pos": state_code,
                "rt": total_rate,
                "txval": txval,
                "camt": camt,
                "samt": samt,
                "csamt": ZERO,
                "typ": "E",
                "etin": None,
            }
        ],
        "hsn": [
            {
                "num": 1,
                "hsn_sc": RESTAURANT_SAC,
                "desc": RESTAURANT_SAC_DESC,
                "uqc": "NA",
                "qty": 0,
                "rt": total_rate,
                "txval_b2c": txval,
                "txval_b2b": ZERO,
                "tot_txval": txval,
                "camt": camt,
                "samt": samt,
                "iamt": ZERO,
                "csamt": ZERO,
            }
        ],
        "nil": [],
        "b2b": [],
        "b2cl": [],
        "cdnr": [],
        "cdnur": [],
        "exp": [],
        "at": [],
        "at_adj": [],
        "docs": [],
    }


def gstr2(taxes: Sequence, start: str) -> dict:
    """Return the fixed illustrative GSTR-2 data set."""

    rates = gst_rates(taxes)
    cgst = _pct(SAMPLE_TAXABLE_VALUE, rates["cgst"])
    sgst = _pct(SAMPLE_TAXABLE_VALUE, rates["sgst"])
    purchases = [
        {
            "supplier_gstin": SAMPLE_SUPPLIER_GSTIN,
            "invoice_number": SAMPLE_INVOICE_NUMBER,
            "invoice_date": start,
            "taxable_value": money(SAMPLE_TAXABLE_VALUE),
            "cgst": cgst,
            "sgst": sgst,
            "igst": ZERO,
            "total_value": money(SAMPLE_TAXABLE_VALUE + cgst + sgst),
        }
    ]
    return {
        "report_type": "GSTR-2",
        "report_period": filing_period(start),
        "transactions": purchases,
        "totals": {
            "total_taxable_value": money(sum((p["taxable_value"] for p in purchases), ZERO)),
            "total_cgst": money(sum((p["cgst"] for p in purchases), ZERO)),
            "total_sgst": money(sum((p["sgst"] for p in purchases), ZERO)),
            "grand_total": money(sum((p["total_value"] for p in purchases), ZERO)),
        },
    }


def gstr3b(
    orders: Iterable, items_by_order: Mapping[str, Sequence], taxes: Sequence, start: str
) -> dict:
    """Build the GSTR-3B summary with an estimated input tax credit."""

    served = served_orders(orders)
    rates = gst_rates(taxes)
    sales = taxable_value(served, items_by_order)
    cgst = _pct(sales, rates["cgst"])
    sgst = _pct(sales, rates["sgst"])
    itc = {"cgst": money(cgst * ITC_SHARE), "sgst": money(sgst * ITC_SHARE), "igst": ZERO}
    return {
        "report_type": "GSTR-3B",
        "report_period": filing_period(start),
        "totals": {
            "taxable_sales": sales,
            "cgst": cgst,
            "sgst": sgst,
            "grand_total": money(sales + cgst + sgst),
            "input_tax_credit": itc,
            "tax_paid": {
                "cgst": cgst - itc["cgst"],
                "sgst": sgst - itc["sgst"],
                "igst": ZERO,
            },
        },
    }


def build(
    kind: GstType,
    orders: Sequence,
    items_by_order: Mapping[str, Sequence],
    taxes: Sequence,
    start: str,
    *,
    gstin: str | None = None,
    state_code: str = "29",
) -> dict:
    if kind == "GSTR-1":
        return gstr1(orders, items_by_order, taxes, start, gstin=gstin, state_code=state_code)
    if kind == "GSTR-2":
        return gstr2(taxes, start)
    if kind == "GSTR-3B":
        return gstr3b(orders, items_by_order, taxes, start)
    raise ValueError(f"unknown GST report type: {kind}")


def tax_breakdown(orders: Iterable, taxes: Sequence) -> "OrderedDict[str, Decimal]":
    """Distribute each order's ``tax_amount`` over the configured tax rows.

    Each row receives its percentage share of the sum of all configured
    percentages. Rows sharing a name are merged. With no configured
    percentage nothing is distributed.
    """

    breakdown: "OrderedDict[str, Decimal]" = OrderedDict()
    for tax in taxes:
        breakdown.setdefault(tax.name, ZERO)
    total_pct = sum((to_decimal(t.percentage) for t in taxes), ZERO)
    if total_pct <= 0:
        return OrderedDict((name, ZERO) for name in breakdown)
    collected = sum((to_decimal(o.tax_amount) for o in orders), ZERO)
    for tax in taxes:
        breakdown[tax.name] += collected * to_decimal(tax.percentage) / total_pct
    return OrderedDict((name, money(amount)) for name, amount in breakdown.items())


__all__ = [
    "GST_TYPES",
    "RESTAURANT_SAC",
    "build",
    "filing_period",
    "gst_rates",
    "gstr1",
    "gstr2",
    "gstr3b",
    "served_orders",
    "tax_breakdown",
    "taxable_value",
]
