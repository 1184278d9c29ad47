from __future__ import annotations

from datetime import date

from fastapi import APIRouter, HTTPException, Query
from pydantic import ValidationError

from prodtrack.application import get_engine_service
from prodtrack.domain import COLLECTIONS

router = APIRouter(tags=["snapshot"])


@router.put("/snapshot")
async def replace_snapshot(payload: dict) -> dict:
    unknown = sorted(set(payload) - set(COLLECTIONS))
    if unknown:
        raise HTTPException(status_code=400, detail=f"unknown collections: {', '.join(unknown)}")
    service = get_engine_service()
    try:
        version = service.load_snapshot(payload)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return {"version": version}


@router.post("/snapshot/{collection}")
async def append_records(collection: str, payload: dict) -> dict:
    if collection not in COLLECTIONS:
        raise HTTPException(status_code=404, detail="collection not found")
    items = payload.get("items")
    if not isinstance(items, list):
        raise HTTPException(status_code=400, detail="items must be a list")
    service = get_engine_service()
    try:
        version = service.append_records(collection, items)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return {"version": version, "count": len(items)}


@router.post("/recompute")
async def trigger_recompute() -> dict:
    service = get_engine_service()
    version = service.recompute()
    return {"version": version}


@router.get("/anomalies")
async def get_anomalies(period: str | None = Query(default=None), as_of: date | None = Query(default=None)) -> dict:
    try:
        return get_engine_service().anomalies(period, as_of=as_of)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
