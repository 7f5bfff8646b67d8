from __future__ import annotations

from dataclasses import dataclass
from typing import List, Tuple

CREDENTIALS_RANGE = "основа!A2:C"
CONSOLIDATED_SUFFIX = "общее"
CABINET_COLUMN = "Кабинет"

DOCUMENT_HEADER = ("Дата", "Контрагент", "Статус", "Товар", "Артикул", "Код", "Количество")


@dataclass(frozen=True)
class SheetCategory:
    kind: str
    title: str
    header: Tuple[str, ...]

    def sheet_name(self, cabinet: str) -> str:
        return f"{self.title} {cabinet}"

    @property
    def consolidated_name(self) -> str:
        return f"{self.title} {CONSOLIDATED_SUFFIX}"

    @property
    def consolidated_header(self) -> List[str]:
        return [CABINET_COLUMN, *self.header]


STOCK = SheetCategory("stock", "Остатки", ("Наименование", "Артикул", "Код", "Остаток"))
ORDERS = SheetCategory("orders", "ПозицииЗаказов", DOCUMENT_HEADER)
SHIPMENTS = SheetCategory("shipments", "Отгрузки", DOCUMENT_HEADER)

CATEGORIES = (STOCK, ORDERS, SHIPMENTS)


def header_for(sheet_name: str) -> List[str] | None:
    """Шапка листа по его названию: категория определяется префиксом, кабинет не важен."""
    for category in CATEGORIES:
        if sheet_name == category.consolidated_name:
            return category.consolidated_header
        if sheet_name.startswith(f"{category.title} "):
            return list(category.header)
    return None
