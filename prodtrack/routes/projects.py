from __future__ import annotations

from fastapi import APIRouter, HTTPException

from prodtrack.application import get_engine_service

router = APIRouter(tags=["projects"])


@router.post("/specifications/parse")
async def parse_specification(payload: dict) -> dict:
    text = payload.get("text")
    if text is not None and not isinstance(text, str):
        raise HTTPException(status_code=400, detail="text must be a string")
    parsed, total = get_engine_service().parse(text)
    return {**parsed.model_dump(mode="json"), "total_price": str(total)}


@router.get("/projects")
async def list_projects() -> dict:
    service = get_engine_service()
    reports = service.project_reports()
    return {
        "version": service.version(),
        "items": [
            {
                "project_id": report.project_id,
                "client_id": report.client_id,
                "title": report.title,
                "summary": report.summary.model_dump(mode="json"),
                "total_price": str(report.total_price),
                "orphans": len(report.orphans),
            }
            for report in reports
        ],
    }


@router.get("/projects/{project_id}")
async def get_project(project_id: str) -> dict:
    report = get_engine_service().project_report(project_id)
    if report is None:
        raise HTTPException(status_code=404, detail="project not found")
    return report.model_dump(mode="json")


@router.get("/projects/{project_id}/orphans")
async def get_project_orphans(project_id: str) -> dict:
    report = get_engine_service().project_report(project_id)
    if report is None:
        raise HTTPException(status_code=404, detail="project not found")
    return {"project_id": project_id, "items": [orphan.model_dump(mode="json") for orphan in report.orphans]}
