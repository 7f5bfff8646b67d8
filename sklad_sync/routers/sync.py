from fastapi import APIRouter, Depends, HTTPException, status

from sklad_sync import schemas
from sklad_sync.security import require_sync_token
from sklad_sync.services import sync_queue
from sklad_sync.services.sheets_client import SyncConfigurationError
from sklad_sync.services.sync_runner import run_sync

router = APIRouter(prefix="/sync", tags=["Sync"], dependencies=[Depends(require_sync_token)])


@router.post("/run", response_model=schemas.SyncJobQueued, status_code=status.HTTP_202_ACCEPTED)
def enqueue_sync(payload: schemas.SyncRunPayload | None = None):
    payload = payload or schemas.SyncRunPayload()
    try:
        job_id = sync_queue.enqueue_sync_job(payload.cabinets, payload.dry_run)
    except Exception as exc:
        raise HTTPException(status_code=503, detail=f"Очередь синхронизации недоступна: {exc}") from exc
    detail = None if sync_queue.has_active_worker() else "Нет активного воркера, задача будет ждать"
    return schemas.SyncJobQueued(status="queued", job_id=job_id, detail=detail)


@router.post("/run-now", response_model=schemas.SyncReport)
def run_sync_now(payload: schemas.SyncRunPayload | None = None):
    """
    Синхронный запуск без очереди. Подходит для небольшого числа кабинетов.
    """
    payload = payload or schemas.SyncRunPayload()
    try:
        report = run_sync(cabinets=payload.cabinets, dry_run=payload.dry_run)
    except SyncConfigurationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    sync_queue.set_last_report(report)
    return report


@router.get("/status", response_model=schemas.SyncStatus)
def read_sync_status():
    return sync_queue.get_worker_status()
