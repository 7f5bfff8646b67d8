from __future__ import annotations

import logging
import os
from functools import lru_cache
from typing import List, Optional

from redis import Redis
from redis.exceptions import RedisError
from rq import Queue, Worker

from sklad_sync.schemas import SyncReport

logger = logging.getLogger(__name__)

ERROR_KEY = "sklad_sync:last_error"
REPORT_KEY = "sklad_sync:last_report"
ERROR_TTL = 3600
REPORT_TTL = 7 * 24 * 3600
JOB_PATH = "sklad_sync.services.sync_worker.handle_sync_job"


@lru_cache
def _redis_connection() -> Redis:
    return Redis.from_url(os.getenv("RQ_REDIS_URL", "redis://localhost:6379/0"))


@lru_cache
def _queue() -> Queue:
    return Queue(
        os.getenv("RQ_QUEUE_NAME", "sync"),
        connection=_redis_connection(),
        default_timeout=int(os.getenv("RQ_DEFAULT_TIMEOUT", "900")),
    )


def enqueue_sync_job(cabinets: Optional[List[str]] = None, dry_run: bool = False) -> str:
    job = _queue().enqueue(JOB_PATH, cabinets, dry_run)
    logger.info("Задача синхронизации поставлена в очередь: %s", job.id)
    return job.id


def has_active_worker() -> bool:
    """True, если хотя бы один RQ-воркер слушает очередь синхронизации."""
    queue = _queue()
    try:
        return bool(Worker.all(queue=queue))
    except RedisError as exc:
        logger.warning("Redis недоступен, статус воркера неизвестен: %s", exc)
        return False


def _as_str(raw) -> Optional[str]:
    if isinstance(raw, (bytes, bytearray)):
        return raw.decode("utf-8", "replace")
    return raw


def _store(key: str, value: str, ttl: int) -> None:
    try:
        _redis_connection().set(key, value, ex=ttl)
    except RedisError as exc:
        logger.warning("Не удалось записать %s в Redis: %s", key, exc)


def _load(key: str) -> Optional[str]:
    try:
        return _as_str(_redis_connection().get(key))
    except RedisError as exc:
        logger.warning("Не удалось прочитать %s из Redis: %s", key, exc)
        return None


def set_last_error(message: str, ttl_seconds: int = ERROR_TTL) -> None:
    _store(ERROR_KEY, message, ttl_seconds)


def clear_last_error() -> None:
    try:
        _redis_connection().delete(ERROR_KEY)
    except RedisError as exc:
        logger.warning("Не удалось удалить %s из Redis: %s", ERROR_KEY, exc)


def get_last_error() -> Optional[str]:
    return _load(ERROR_KEY)


def set_last_report(report: SyncReport, ttl_seconds: int = REPORT_TTL) -> None:
    _store(REPORT_KEY, report.model_dump_json(), ttl_seconds)


def get_last_report() -> Optional[SyncReport]:
    raw = _load(REPORT_KEY)
    if raw is None:
        return None
    try:
        return SyncReport.model_validate_json(raw)
    except ValueError:
        logger.warning("Отчёт синхронизации в Redis повреждён, игнорируем")
        return None


def get_worker_status() -> dict:
    """Статус для /sync/status: есть ли воркер, последняя ошибка и последний отчёт."""
    return {
        "rq_worker_online": has_active_worker(),
        "last_error": get_last_error(),
        "last_report": get_last_report(),
    }
