from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set

from sklad_sync.services.sheet_layout import header_for

logger = logging.getLogger(__name__)

CLEAR_CELLS = "A1:Z10000"


def a1_range(sheet_name: str, cells: str) -> str:
    escaped = sheet_name.replace("'", "''")
    return f"'{escaped}'!{cells}"


class SheetWriter:
    """
    Буферизует строки по листам и пишет их в таблицу одним append на лист.

    Листы, зарегистрированные через register_sheet, при flush_buffers очищаются
    и получают шапку заново, поэтому старые данные остаются видны до момента
    записи новых.
    """

    def __init__(self, service, spreadsheet_id: str):
        self.service = service
        self.spreadsheet_id = spreadsheet_id
        self._buffers: Dict[str, List[List[Any]]] = {}
        self._headers: Dict[str, List[str]] = {}
        self._titles: Optional[Set[str]] = None

    def _load_titles(self) -> Set[str]:
        if self._titles is None:
            metadata = (
                self.service.spreadsheets()
                .get(spreadsheetId=self.spreadsheet_id, fields="sheets.properties")
                .execute()
            )
            self._titles = {
                sheet.get("properties", {}).get("title")
                for sheet in metadata.get("sheets", [])
            }
        return self._titles

    def ensure_sheet_exists(self, name: str) -> bool:
        """Создаёт лист, если его нет. Возвращает True, если лист был создан."""
        titles = self._load_titles()
        if name in titles:
            return False
        logger.info("Создаю лист: %s", name)
        request = {"requests": [{"addSheet": {"properties": {"title": name}}}]}
        self.service.spreadsheets().batchUpdate(spreadsheetId=self.spreadsheet_id, body=request).execute()
        titles.add(name)
        return True

    def reset_sheet(self, name: str, header: Sequence[str]) -> None:
        self.ensure_sheet_exists(name)
        self.service.spreadsheets().values().clear(
            spreadsheetId=self.spreadsheet_id,
            range=a1_range(name, CLEAR_CELLS),
            body={},
        ).execute()
        self.service.spreadsheets().values().update(
            spreadsheetId=self.spreadsheet_id,
            range=a1_range(name, "A1"),
            valueInputOption="RAW",
            body={"values": [list(header)]},
        ).execute()

    def read_rows(self, name: str, cells: str = "A2:Z10000") -> List[List[Any]]:
        """Текущие строки листа без шапки; для отсутствующего листа пустой список."""
        if name not in self._load_titles():
            return []
        response = (
            self.service.spreadsheets()
            .values()
            .get(
                spreadsheetId=self.spreadsheet_id,
                range=a1_range(name, cells),
                valueRenderOption="UNFORMATTED_VALUE",
            )
            .execute()
        )
        return [list(row) for row in response.get("values") or [] if row]

    def register_sheet(self, name: str, header: Optional[Sequence[str]] = None) -> None:
        header = list(header) if header is not None else header_for(name)
        if header is None:
            raise ValueError(f"Не удалось определить шапку для листа «{name}»")
        self._headers[name] = header
        self._buffers.setdefault(name, [])

    def buffer_row(self, name: str, row: Sequence[Any]) -> None:
        self._buffers.setdefault(name, []).append(list(row))

    def buffer_rows(self, name: str, rows: Iterable[Sequence[Any]]) -> None:
        buffer = self._buffers.setdefault(name, [])
        buffer.extend(list(row) for row in rows)

    def pending(self, name: str) -> List[List[Any]]:
        return list(self._buffers.get(name, []))

    @property
    def sheet_names(self) -> List[str]:
        return list(self._buffers)

    def _append(self, name: str, rows: List[List[Any]]) -> None:
        self.service.spreadsheets().values().append(
            spreadsheetId=self.spreadsheet_id,
            range=a1_range(name, "A1"),
            valueInputOption="RAW",
            insertDataOption="INSERT_ROWS",
            body={"values": rows},
        ).execute()

    def flush_buffers(self) -> Dict[str, int]:
        """
        Пишет все буферы в порядке регистрации листов.
        Возвращает количество записанных строк данных по каждому листу.
        """
        written: Dict[str, int] = {}
        for name, rows in list(self._buffers.items()):
            header = self._headers.get(name)
            if header is None and not rows:
                continue

            if header is not None:
                self.reset_sheet(name, header)
                # повторный flush только дописывает строки
                del self._headers[name]
            else:
                self.ensure_sheet_exists(name)

            if rows:
                self._append(name, rows)
            logger.info("Лист «%s»: записано строк %s", name, len(rows))
            written[name] = len(rows)
            self._buffers[name] = []
        return written
