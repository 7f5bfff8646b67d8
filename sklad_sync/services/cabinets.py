from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, List, Sequence

from sklad_sync.schemas import Cabinet, SkippedCabinet
from sklad_sync.services.sheet_layout import CONSOLIDATED_SUFFIX, CREDENTIALS_RANGE

logger = logging.getLogger(__name__)

FIRST_DATA_ROW = 2


@dataclass
class CabinetListing:
    cabinets: List[Cabinet] = field(default_factory=list)
    skipped: List[SkippedCabinet] = field(default_factory=list)


def _cell(row: Sequence[Any], idx: int) -> str:
    if idx >= len(row) or row[idx] is None:
        return ""
    return str(row[idx]).strip()


def parse_cabinet_rows(values: Sequence[Sequence[Any]]) -> CabinetListing:
    """
    Разбирает строки листа «основа» (кабинет, логин, пароль).
    Пустые строки пропускаются молча, неполные и повторяющиеся — с предупреждением.
    """
    listing = CabinetListing()
    seen = set()
    for offset, row in enumerate(values or []):
        row_number = FIRST_DATA_ROW + offset
        name, login, password = (_cell(row, idx) for idx in range(3))
        if not (name or login or password):
            continue

        reason = None
        if not name:
            reason = "не указано название кабинета"
        elif not login or not password:
            reason = "не указан логин или пароль"
        elif name in seen:
            reason = "кабинет с таким названием уже есть выше"
        elif name == CONSOLIDATED_SUFFIX:
            reason = "название совпадает с общими листами"

        if reason:
            logger.warning("Строка %s листа «основа» пропущена: %s", row_number, reason)
            listing.skipped.append(SkippedCabinet(row_number=row_number, name=name or None, reason=reason))
            continue

        seen.add(name)
        listing.cabinets.append(Cabinet(name=name, login=login, password=password))
    return listing


def load_cabinets(service, spreadsheet_id: str) -> CabinetListing:
    response = (
        service.spreadsheets()
        .values()
        .get(spreadsheetId=spreadsheet_id, range=CREDENTIALS_RANGE)
        .execute()
    )
    return parse_cabinet_rows(response.get("values") or [])


def list_cabinets(service, spreadsheet_id: str) -> List[Cabinet]:
    return load_cabinets(service, spreadsheet_id).cabinets
