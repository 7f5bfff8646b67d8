# tests/conftest.py

import base64
import re
from typing import Any, Dict, List

import httpx
import pytest

from sklad_sync.schemas import Cabinet
from sklad_sync.services.moysklad import MoySkladClient

BASE_URL = "https://moysklad.test/api/remap/1.2"


def product_href(product_id: str) -> str:
    return f"{BASE_URL}/entity/product/{product_id}"


def position(product_id: str, quantity) -> Dict[str, Any]:
    return {"quantity": quantity, "assortment": {"meta": {"href": product_href(product_id)}}}


def document(moment: str, agent: str, state: str, positions: List[Dict[str, Any]]) -> Dict[str, Any]:
    return {
        "moment": moment,
        "agent": {"name": agent},
        "state": {"name": state},
        "positions": {"rows": positions},
    }


class _Request:
    def __init__(self, fn):
        self._fn = fn

    def execute(self):
        return self._fn()


def _split_range(range_ref: str):
    sheet, _, cells = range_ref.rpartition("!")
    if sheet.startswith("'") and sheet.endswith("'"):
        sheet = sheet[1:-1].replace("''", "'")
    match = re.match(r"[A-Z]+(\d+)", cells)
    start_row = int(match.group(1)) if match else 1
    return sheet, start_row


class FakeValues:
    def __init__(self, book: "FakeSheetsService"):
        self.book = book

    def get(self, spreadsheetId, range, valueRenderOption=None):
        def run():
            self.book.calls.append(("get", range))
            sheet, start_row = _split_range(range)
            rows = self.book._rows(sheet)[start_row - 1:]
            return {"range": range, "values": [list(row) for row in rows]}

        return _Request(run)

    def clear(self, spreadsheetId, range, body=None):
        def run():
            self.book.calls.append(("clear", range))
            sheet, _ = _split_range(range)
            self.book.sheets[sheet] = self.book._rows(sheet)[10000:]
            return {}

        return _Request(run)

    def update(self, spreadsheetId, range, valueInputOption, body):
        def run():
            self.book.calls.append(("update", range))
            sheet, start_row = _split_range(range)
            rows = self.book._rows(sheet)
            for offset, values in enumerate(body["values"]):
                idx = start_row - 1 + offset
                while len(rows) <= idx:
                    rows.append([])
                rows[idx] = list(values)
            return {}

        return _Request(run)

    def append(self, spreadsheetId, range, valueInputOption, body, insertDataOption=None):
        def run():
            self.book.calls.append(("append", range))
            sheet, _ = _split_range(range)
            rows = self.book._rows(sheet)
            while rows and not rows[-1]:
                rows.pop()
            rows.extend(list(values) for values in body["values"])
            return {}

        return _Request(run)


class FakeSpreadsheets:
    def __init__(self, book: "FakeSheetsService"):
        self.book = book

    def get(self, spreadsheetId, fields=None):
        def run():
            self.book.calls.append(("meta", None))
            return {"sheets": [{"properties": {"title": title}} for title in self.book.sheets]}

        return _Request(run)

    def batchUpdate(self, spreadsheetId, body):
        def run():
            for request in body["requests"]:
                title = request["addSheet"]["properties"]["title"]
                self.book.calls.append(("addSheet", title))
                self.book.sheets.setdefault(title, [])
            return {}

        return _Request(run)

    def values(self):
        return FakeValues(self.book)


class FakeSheetsService:
    """In-memory замена googleapiclient Sheets v4 с той же цепочкой вызовов."""

    def __init__(self, sheets: Dict[str, List[List[Any]]] | None = None):
        self.sheets: Dict[str, List[List[Any]]] = {name: [list(r) for r in rows] for name, rows in (sheets or {}).items()}
        self.calls: List[tuple] = []

    def _rows(self, sheet: str) -> List[List[Any]]:
        if sheet not in self.sheets:
            raise KeyError(f"Unable to parse range: {sheet}")
        return self.sheets[sheet]

    def spreadsheets(self):
        return FakeSpreadsheets(self)

    def data_rows(self, sheet: str) -> List[List[Any]]:
        return self.sheets[sheet][1:]

    def set_cabinets(self, rows: List[List[str]]) -> None:
        self.sheets["основа"] = [["Кабинет", "Логин", "Пароль"], *[list(r) for r in rows]]


class FakeMoySklad:
    """
    Данные МойСклад по логину: stock/orders/shipments + общий справочник товаров.
    Логины из failing отвечают 500 на все запросы.
    """

    def __init__(self):
        self.accounts: Dict[str, Dict[str, List[Dict[str, Any]]]] = {}
        self.products: Dict[str, Dict[str, Any]] = {}
        self.failing: Dict[str, str] = {}
        self.requests: List[httpx.Request] = []

    def account(self, login: str, stock=None, orders=None, shipments=None) -> None:
        self.accounts[login] = {
            "stock": stock or [],
            "orders": orders or [],
            "shipments": shipments or [],
        }

    def product(self, product_id: str, **fields) -> None:
        self.products[product_href(product_id)] = fields

    def _login(self, request: httpx.Request) -> str:
        raw = request.headers["Authorization"].split(" ", 1)[1]
        return base64.b64decode(raw).decode("utf-8").split(":", 1)[0]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        login = self._login(request)
        path = request.url.path
        if self.failing.get(login) == path.rsplit("/", 1)[-1] or self.failing.get(login) == "*":
            return httpx.Response(500, json={"errors": [{"error": "boom"}]})
        account = self.accounts.get(login)
        if account is None:
            return httpx.Response(401, json={"errors": [{"error": "auth"}]})
        if path.endswith("/report/stock/all"):
            return httpx.Response(200, json={"rows": account["stock"]})
        if path.endswith("/entity/purchaseorder"):
            return httpx.Response(200, json={"rows": account["orders"]})
        if path.endswith("/entity/demand"):
            return httpx.Response(200, json={"rows": account["shipments"]})
        product = self.products.get(str(request.url))
        if product is not None:
            return httpx.Response(200, json=product)
        return httpx.Response(404, json={"errors": [{"error": "not found"}]})

    def client_factory(self, cabinet: Cabinet) -> MoySkladClient:
        return MoySkladClient(cabinet, base_url=BASE_URL, transport=httpx.MockTransport(self.handler))

    def product_requests(self, login: str | None = None) -> List[httpx.Request]:
        return [
            r for r in self.requests
            if "/entity/product/" in r.url.path and (login is None or self._login(r) == login)
        ]


@pytest.fixture
def sheets() -> FakeSheetsService:
    return FakeSheetsService()


@pytest.fixture
def erp() -> FakeMoySklad:
    return FakeMoySklad()
