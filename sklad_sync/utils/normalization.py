from __future__ import annotations

from typing import Any

from sklad_sync.schemas import PLACEHOLDER


def as_text(value: Any, placeholder: str = PLACEHOLDER) -> str:
    """
    Приводит значение из JSON МойСклад к строке для ячейки.
    None и пустые строки заменяются плейсхолдером, числа выводятся без ".0".
    """
    if value is None or isinstance(value, (dict, list)):
        return placeholder
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    text = str(value).strip()
    return text or placeholder


def as_number(value: Any) -> int | float:
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        return int(value) if isinstance(value, float) and value.is_integer() else value
    try:
        parsed = float(str(value).strip().replace(",", "."))
    except ValueError:
        return 0
    return int(parsed) if parsed.is_integer() else parsed


def date_part(moment: Any, placeholder: str = PLACEHOLDER) -> str:
    # МойСклад отдаёт "2024-05-01 12:00:00.000", ISO-вариант — через "T"
    if not isinstance(moment, str):
        return placeholder
    text = moment.strip()
    for separator in ("T", " "):
        if separator in text:
            text = text.split(separator, 1)[0]
            break
    return text or placeholder


def lookup(record: Any, *path: str) -> Any:
    """Безопасный доступ к вложенным полям: lookup(order, "state", "name")."""
    current = record
    for key in path:
        if not isinstance(current, dict):
            return None
        current = current.get(key)
    return current
