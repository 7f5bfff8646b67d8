from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional

from sklad_sync import config
from sklad_sync.schemas import Cabinet, CabinetFailure, Product, SyncReport
from sklad_sync.services import extractors
from sklad_sync.services.cabinets import load_cabinets
from sklad_sync.services.moysklad import ErpRequestError, MoySkladClient
from sklad_sync.services.sheet_layout import CATEGORIES, ORDERS, SHIPMENTS, STOCK
from sklad_sync.services.sheet_writer import SheetWriter
from sklad_sync.services.sheets_client import build_sheets_service, resolve_settings

logger = logging.getLogger(__name__)

ClientFactory = Callable[[Cabinet], MoySkladClient]


class CabinetSyncError(RuntimeError):
    def __init__(self, cabinet: str, kind: str, cause: Exception):
        self.cabinet = cabinet
        self.kind = kind
        self.cause = cause
        super().__init__(f"Кабинет «{cabinet}», выгрузка {kind}: {cause}")


@dataclass
class CabinetResult:
    cabinet: Cabinet
    rows: Dict[str, List[List[Any]]] = field(default_factory=dict)
    error: Optional[CabinetSyncError] = None


def process_cabinet(cabinet: Cabinet, client_factory: ClientFactory = MoySkladClient) -> CabinetResult:
    """
    Выгружает остатки, заказы поставщикам и отгрузки одного кабинета.
    Кэш товаров живёт только в рамках этого вызова.
    """
    logger.info("Обработка кабинета: %s", cabinet.name)
    result = CabinetResult(cabinet=cabinet)
    cache: Dict[str, Product] = {}
    kind = STOCK.kind
    try:
        with client_factory(cabinet) as client:

            def resolve(ref: Optional[str]) -> Product:
                return client.fetch_product(ref, cache)

            result.rows[STOCK.kind] = extractors.extract_stock(client.fetch_stock())

            kind = ORDERS.kind
            result.rows[ORDERS.kind] = extractors.extract_documents(
                client.fetch_purchase_orders(), extractors.ORDER_SKIP_TOKEN, resolve
            )

            kind = SHIPMENTS.kind
            result.rows[SHIPMENTS.kind] = extractors.extract_documents(
                client.fetch_shipments(), extractors.SHIPMENT_SKIP_TOKEN, resolve
            )
    except ErpRequestError as exc:
        result.rows = {}
        result.error = CabinetSyncError(cabinet.name, kind, exc)
    return result


def collect_results(
    cabinets: List[Cabinet],
    client_factory: ClientFactory = MoySkladClient,
    max_workers: int | None = None,
) -> List[CabinetResult]:
    """Кабинеты независимы, поэтому выгружаются параллельно; порядок результатов = порядок кабинетов."""
    if not cabinets:
        return []
    workers = max(1, min(max_workers or config.SYNC_MAX_WORKERS, len(cabinets)))
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="cabinet") as pool:
        return list(pool.map(lambda cabinet: process_cabinet(cabinet, client_factory), cabinets))


def buffer_result(writer: SheetWriter, result: CabinetResult) -> None:
    name = result.cabinet.name
    for category in CATEGORIES:
        sheet = category.sheet_name(name)
        writer.register_sheet(sheet, category.header)
        writer.buffer_rows(sheet, result.rows.get(category.kind, []))


def buffer_consolidated(
    writer: SheetWriter,
    cabinets: List[Cabinet],
    fresh: Dict[str, CabinetResult],
) -> List[str]:
    """
    Собирает общие листы в порядке кабинетов с листа «основа».
    Кабинеты, не выгруженные в этом запуске (отфильтрованные или упавшие),
    сохраняют строки, уже записанные в общих листах. Возвращает их названия.
    """
    kept = [cabinet.name for cabinet in cabinets if cabinet.name not in fresh]
    for category in CATEGORIES:
        previous: Dict[str, List[List[Any]]] = {}
        if kept:
            for row in writer.read_rows(category.consolidated_name):
                previous.setdefault(str(row[0]), []).append(row)

        sheet = category.consolidated_name
        for cabinet in cabinets:
            result = fresh.get(cabinet.name)
            if result is not None:
                writer.buffer_rows(sheet, extractors.with_cabinet(cabinet.name, result.rows.get(category.kind, [])))
            else:
                writer.buffer_rows(sheet, previous.get(cabinet.name, []))
    return kept


class SyncRunner:
    def __init__(
        self,
        service,
        spreadsheet_id: str,
        *,
        client_factory: ClientFactory = MoySkladClient,
        max_workers: int | None = None,
        dry_run: bool = False,
    ):
        self.service = service
        self.spreadsheet_id = spreadsheet_id
        self.client_factory = client_factory
        self.max_workers = max_workers
        self.dry_run = dry_run
        self.writer = SheetWriter(service, spreadsheet_id)

    def run(self, only: Optional[Iterable[str]] = None) -> SyncReport:
        report = SyncReport(started_at=datetime.now(timezone.utc), dry_run=self.dry_run)

        listing = load_cabinets(self.service, self.spreadsheet_id)
        cabinets = listing.cabinets
        if only:
            wanted = set(only)
            cabinets = [cabinet for cabinet in cabinets if cabinet.name in wanted]
            missing = wanted - {cabinet.name for cabinet in cabinets}
            if missing:
                logger.warning("Кабинеты не найдены на листе «основа»: %s", ", ".join(sorted(missing)))
        report.cabinets_total = len(cabinets)
        report.skipped = listing.skipped

        for category in CATEGORIES:
            self.writer.register_sheet(category.consolidated_name, category.consolidated_header)

        fresh: Dict[str, CabinetResult] = {}
        for result in collect_results(cabinets, self.client_factory, self.max_workers):
            if result.error is not None:
                logger.error("%s", result.error)
                report.failures.append(
                    CabinetFailure(
                        cabinet=result.error.cabinet,
                        kind=result.error.kind,
                        error=str(result.error.cause),
                    )
                )
                continue
            buffer_result(self.writer, result)
            fresh[result.cabinet.name] = result
            report.synced.append(result.cabinet.name)

        kept = buffer_consolidated(self.writer, listing.cabinets, fresh)
        if kept:
            logger.warning(
                "Общие листы (%s): для кабинетов %s оставлены строки прошлой выгрузки",
                ", ".join(category.consolidated_name for category in CATEGORIES),
                ", ".join(kept),
            )

        if self.dry_run:
            report.rows = {name: len(self.writer.pending(name)) for name in self.writer.sheet_names}
            logger.info("Пробный запуск: таблица не изменялась")
        else:
            report.rows = self.writer.flush_buffers()

        report.finished_at = datetime.now(timezone.utc)
        if report.failures:
            logger.warning(
                "Готово с ошибками: кабинетов выгружено %s из %s",
                len(report.synced),
                report.cabinets_total,
            )
        else:
            logger.info("Готово! Все данные загружены.")
        return report


def run_sync(
    spreadsheet_id: str | None = None,
    credentials: str | None = None,
    *,
    cabinets: Optional[Iterable[str]] = None,
    max_workers: int | None = None,
    dry_run: bool = False,
) -> SyncReport:
    spreadsheet_id, creds_source = resolve_settings(spreadsheet_id, credentials)
    service = build_sheets_service(creds_source)
    runner = SyncRunner(service, spreadsheet_id, max_workers=max_workers, dry_run=dry_run)
    return runner.run(only=cabinets)
