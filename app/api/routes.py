from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from app.core.config import settings
from app.core.security import require_operator, require_user
from app.schemas.leak import (
    LeakObservation,
    LeakRecord,
    LeakStatus,
    LeakSyncResponse,
    ResolveResponse,
)
from app.services.alerts import AlertQueue, should_alert
from app.services.leak_sync import Clock, LeakSynchronizer, wall_clock_ms
from app.storage import DocumentStore, SqliteDocumentStore

router = APIRouter()

def get_store() -> DocumentStore:
    return SqliteDocumentStore(settings.DATABASE_PATH)

def get_clock() -> Clock:
    return wall_clock_ms

@router.get("/health")
def health():
    return {"status": "ok", "service": settings.PROJECT_NAME}

@router.post("/leaks/sync", response_model=LeakSyncResponse)
def sync_leak(
    observation: LeakObservation,
    user=Depends(require_user),
    store: DocumentStore = Depends(get_store),
    clock: Clock = Depends(get_clock),
):
    result = LeakSynchronizer(store, clock=clock).sync_leak_event(observation)

    alert_id = None
    if should_alert(result, observation):
        alert_id = AlertQueue(store).enqueue_if_needed(observation, result.severity)

    return LeakSyncResponse(**result.model_dump(), alert_id=alert_id)

@router.post("/leaks/{record_id}/resolve", response_model=ResolveResponse)
def resolve_leak(
    record_id: str,
    user=Depends(require_operator),
    store: DocumentStore = Depends(get_store),
):
    LeakSynchronizer(store).resolve_leak(record_id)

    # resolving is best-effort; report what the store actually holds
    record = store.get_record(settings.LEAKS_COLLECTION, record_id)
    if record is None:
        raise HTTPException(404, "Leak record not found")
    return ResolveResponse(
        record_id=record.id,
        status=record.fields.get("status"),
        end_time=record.fields.get("end_time"),
    )

@router.get("/leaks", response_model=List[LeakRecord])
def list_leaks(
    asset_id: Optional[str] = None,
    status: Optional[LeakStatus] = None,
    limit: int = Query(50, ge=1, le=500),
    user=Depends(require_user),
    store: DocumentStore = Depends(get_store),
):
    filters = {}
    if asset_id:
        filters["asset_id"] = asset_id
    if status is not None:
        filters["status"] = status.value

    records = store.query_records(
        settings.LEAKS_COLLECTION,
        filters,
        order_by="last_update",
        descending=True,
        limit=limit,
    )
    return [LeakRecord(id=r.id, **r.fields) for r in records]

@router.get("/leaks/{record_id}", response_model=LeakRecord)
def get_leak(
    record_id: str,
    user=Depends(require_user),
    store: DocumentStore = Depends(get_store),
):
    record = store.get_record(settings.LEAKS_COLLECTION, record_id)
    if record is None:
        raise HTTPException(404, "Leak record not found")
    return LeakRecord(id=record.id, **record.fields)
