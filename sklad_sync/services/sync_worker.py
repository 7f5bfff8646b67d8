from __future__ import annotations

import logging
from typing import List, Optional

from google.auth.exceptions import RefreshError

from sklad_sync import config
from sklad_sync.schemas import SyncReport
from sklad_sync.services import sync_queue
from sklad_sync.services.sheets_client import SyncConfigurationError
from sklad_sync.services.sync_runner import run_sync
from sklad_sync.utils.log import setup_logging

logger = logging.getLogger(__name__)
# rq worker не настраивает логирование сам
setup_logging(config.LOG_LEVEL)


def handle_sync_job(cabinets: Optional[List[str]] = None, dry_run: bool = False) -> Optional[dict]:
    try:
        report = run_sync(cabinets=cabinets, dry_run=dry_run)
    except SyncConfigurationError as exc:
        logger.warning("Синхронизация отключена: %s", exc)
        sync_queue.set_last_error(str(exc))
        return None
    except RefreshError as exc:
        message = _format_refresh_error(exc)
        logger.warning("Ошибка авторизации Google: %s", message)
        sync_queue.set_last_error(message)
        raise
    except Exception:
        logger.exception("Ошибка обработки задачи синхронизации")
        raise

    sync_queue.set_last_report(report)
    if report.failures:
        sync_queue.set_last_error(_format_failures(report))
    else:
        sync_queue.clear_last_error()
    return report.model_dump(mode="json")


def _format_failures(report: SyncReport) -> str:
    parts = [f"{failure.cabinet} ({failure.kind}): {failure.error}" for failure in report.failures]
    return "Не выгружены кабинеты: " + "; ".join(parts)


def _format_refresh_error(exc: RefreshError) -> str:
    # args: ("invalid_grant: Invalid JWT Signature.", {"error": "invalid_grant", ...})
    details = [arg for arg in exc.args if isinstance(arg, str)]
    details += [
        arg.get("error_description") or arg.get("error")
        for arg in exc.args
        if isinstance(arg, dict)
    ]
    reason = next((item for item in details if item), None) or str(exc)
    return f"Google отклонил сервисный аккаунт: {reason}. Проверьте ключ в CREDENTIALS."
