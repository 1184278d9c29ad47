from __future__ import annotations

from datetime import date

from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import FileResponse

from prodtrack.application import get_engine_service
from prodtrack.core.exports import EXPORT_FORMATS, export_path
from prodtrack.core.schema import FinanceReport
from prodtrack.exporters.finance_tables import export_client_financials, export_team_earnings

router = APIRouter(prefix="/finance", tags=["finance"])


def _report(period: str, as_of: date | None) -> FinanceReport:
    try:
        return get_engine_service().finance_report(period, as_of=as_of)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@router.get("/clients")
async def get_client_financials(period: str = Query(...), as_of: date | None = Query(default=None)) -> dict:
    report = _report(period, as_of)
    return {"period": period, "items": [row.model_dump(mode="json") for row in report.clients]}


@router.get("/team")
async def get_team_earnings(period: str = Query(...), as_of: date | None = Query(default=None)) -> dict:
    report = _report(period, as_of)
    return {"period": period, "items": [row.model_dump(mode="json") for row in report.team]}


@router.get("/summary")
async def get_finance_summary(period: str = Query(...), as_of: date | None = Query(default=None)) -> dict:
    report = _report(period, as_of)
    return report.summary.model_dump(mode="json")


@router.get("/export")
async def export_finance_table(
    period: str = Query(...),
    table: str = Query(default="clients"),
    fmt: str = Query(default="csv"),
) -> FileResponse:
    if table not in {"clients", "team"}:
        raise HTTPException(status_code=400, detail="table must be clients or team")
    if fmt not in EXPORT_FORMATS:
        raise HTTPException(status_code=400, detail="fmt must be csv or xlsx")
    report = _report(period, None)
    path = export_path(period, table, fmt)
    if table == "clients":
        export_client_financials(path, report.clients)
    else:
        export_team_earnings(path, report.team)
    return FileResponse(path, filename=path.name)
