from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from google.auth.exceptions import RefreshError
from googleapiclient.errors import HttpError

from sklad_sync import config
from sklad_sync.schemas import SyncReport
from sklad_sync.services.sheets_client import SyncConfigurationError
from sklad_sync.services.sync_runner import run_sync
from sklad_sync.utils.log import setup_logging

logger = logging.getLogger("sklad_sync")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sklad-sync",
        description="Выгрузка остатков, заказов поставщикам и отгрузок МойСклад в Google Таблицу",
    )
    parser.add_argument("--spreadsheet-id", help="ID таблицы (по умолчанию SPREADSHEET_ID)")
    parser.add_argument("--credentials", help="Путь к ключу сервисного аккаунта (по умолчанию CREDENTIALS)")
    parser.add_argument("--workers", type=int, help="Сколько кабинетов выгружать параллельно")
    parser.add_argument(
        "--cabinet",
        action="append",
        dest="cabinets",
        metavar="NAME",
        help="Выгрузить только указанный кабинет (можно повторять)",
    )
    parser.add_argument("--dry-run", action="store_true", help="Только выгрузить и посчитать строки, таблицу не менять")
    parser.add_argument("--log-level", default=config.LOG_LEVEL, help="Уровень логирования")
    return parser


def _print_summary(report: SyncReport) -> None:
    for name, count in report.rows.items():
        print(f"{name}: {count}")
    for skipped in report.skipped:
        print(f"Пропущена строка {skipped.row_number}: {skipped.reason}")
    for failure in report.failures:
        print(f"Ошибка: кабинет «{failure.cabinet}» ({failure.kind}): {failure.error}", file=sys.stderr)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level.upper())

    try:
        report = run_sync(
            args.spreadsheet_id,
            args.credentials,
            cabinets=args.cabinets,
            max_workers=args.workers,
            dry_run=args.dry_run,
        )
    except SyncConfigurationError as exc:
        logger.error("Ошибка настройки: %s", exc)
        return 1
    except (RefreshError, HttpError):
        logger.exception("Ошибка Google Sheets API")
        return 1

    _print_summary(report)
    return 0 if report.ok else 1


if __name__ == "__main__":
    sys.exit(main())
