from __future__ import annotations

from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional

from sklad_sync.schemas import Product
from sklad_sync.utils.normalization import as_number, as_text, date_part, lookup

ORDER_SKIP_TOKEN = "доставлено"
SHIPMENT_SKIP_TOKEN = "поступило в продажу"

Row = List[Any]
ProductResolver = Callable[[Optional[str]], Product]


def stock_row(record: Dict[str, Any]) -> Row:
    return [
        as_text(record.get("name")),
        as_text(record.get("article")),
        as_text(record.get("code")),
        as_number(record.get("stock")),
    ]


def extract_stock(records: Iterable[Dict[str, Any]]) -> List[Row]:
    return [stock_row(record) for record in records]


def is_excluded(document: Dict[str, Any], token: str) -> bool:
    state = lookup(document, "state", "name")
    if not isinstance(state, str):
        return False
    return token in state.lower()


def document_header(document: Dict[str, Any]) -> Row:
    return [
        date_part(document.get("moment")),
        as_text(lookup(document, "agent", "name")),
        as_text(lookup(document, "state", "name")),
    ]


def _positions(document: Dict[str, Any]) -> List[Dict[str, Any]]:
    rows = lookup(document, "positions", "rows")
    if not isinstance(rows, list):
        return []
    return [row for row in rows if isinstance(row, dict)]


def position_rows(document: Dict[str, Any], resolve_product: ProductResolver) -> Iterator[Row]:
    header = document_header(document)
    for position in _positions(document):
        product = resolve_product(lookup(position, "assortment", "meta", "href"))
        yield [
            *header,
            product.name,
            product.article,
            product.code,
            as_number(position.get("quantity")),
        ]


def extract_documents(
    documents: Iterable[Dict[str, Any]],
    skip_token: str,
    resolve_product: ProductResolver,
) -> List[Row]:
    """
    Строки «документ × позиция» в порядке выдачи API.
    Документы, статус которых содержит skip_token (без учёта регистра), пропускаются.
    """
    rows: List[Row] = []
    for document in documents:
        if is_excluded(document, skip_token):
            continue
        rows.extend(position_rows(document, resolve_product))
    return rows


def with_cabinet(cabinet: str, rows: Iterable[Row]) -> List[Row]:
    return [[cabinet, *row] for row in rows]
