"""Routes building and exporting reports."""

from __future__ import annotations

import json

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response

from .deps.tenant import get_tenant_id
from .services.reports import REPORT_KINDS, ReportGenerator
from .utils.exports import to_json
from .utils.responses import ok

router = APIRouter(prefix="/api/reports")


def get_reports(request: Request) -> ReportGenerator:
    return request.app.state.reports


def _check_kind(kind: str) -> None:
    if kind not in REPORT_KINDS:
        raise HTTPException(status_code=404, detail=f"unknown report: {kind}")


@router.get("/{kind}")
async def report(
    kind: str,
    start: str = Query(..., min_length=1),
    end: str = Query(..., min_length=1),
    tenant_id: str = Depends(get_tenant_id),
    reports: ReportGenerator = Depends(get_reports),
) -> dict:
    """Return the report as JSON with amounts as numbers."""

    _check_kind(kind)
    data = await reports.generate(tenant_id, kind, start, end)
    return ok(json.loads(to_json(data)))


@router.get("/{kind}/export")
async def export(
    kind: str,
    start: str = Query(..., min_length=1),
    end: str = Query(..., min_length=1),
    format: str = Query(default="csv", pattern="^(csv|json)$"),
    tenant_id: str = Depends(get_tenant_id),
    reports: ReportGenerator = Depends(get_reports),
) -> Response:
    """Return the export file and hand it to the configured sink."""

    _check_kind(kind)
    exported = await reports.export(tenant_id, kind, start, end, format)
    return Response(
        content=exported.content.encode("utf-8"),
        media_type=exported.mime_type,
        headers={"Content-Disposition": f'attachment; filename="{exported.filename}"'},
    )
