from __future__ import annotations

import base64
import logging
from typing import Any, Dict, List, MutableMapping, Optional

import httpx

from sklad_sync import config
from sklad_sync.schemas import Cabinet, Product
from sklad_sync.utils.normalization import as_text

logger = logging.getLogger(__name__)

USER_AGENT = "mysklad-sync-bot"

STOCK_PATH = "/report/stock/all?limit=1000"
PURCHASE_ORDERS_PATH = "/entity/purchaseorder?expand=positions,agent,state&limit=100"
SHIPMENTS_PATH = "/entity/demand?expand=positions,agent,state&limit=100"

PLACEHOLDER_PRODUCT = Product()

ProductCache = MutableMapping[str, Product]


class ErpRequestError(RuntimeError):
    """Ошибка транспорта или неуспешный HTTP-статус от МойСклад."""

    def __init__(self, url: str, message: str, status_code: Optional[int] = None):
        self.url = url
        self.status_code = status_code
        prefix = f"HTTP {status_code}" if status_code is not None else "Ошибка запроса"
        super().__init__(f"{prefix} {url}: {message}")


def build_auth_headers(login: str, password: str) -> Dict[str, str]:
    token = base64.b64encode(f"{login}:{password}".encode("utf-8")).decode("ascii")
    return {
        "Authorization": f"Basic {token}",
        "Content-Type": "application/json",
        "User-Agent": USER_AGENT,
    }


def normalize_product(payload: Dict[str, Any]) -> Product:
    return Product(
        name=as_text(payload.get("name")),
        article=as_text(payload.get("article")),
        code=as_text(payload.get("code")),
    )


class MoySkladClient:
    """
    Клиент одного кабинета МойСклад. Читается только первая страница каждого
    списка (limit из пути запроса), записи сверх лимита не попадают в выгрузку.
    """

    def __init__(
        self,
        cabinet: Cabinet,
        *,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        self.cabinet = cabinet
        self.base_url = (base_url or config.MOYSKLAD_API_URL).rstrip("/")
        self.product_requests = 0
        self._client = httpx.Client(
            headers=build_auth_headers(cabinet.login, cabinet.password),
            timeout=timeout if timeout is not None else config.MOYSKLAD_TIMEOUT,
            transport=transport,
        )

    def __enter__(self) -> "MoySkladClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def _get_json(self, url: str) -> Dict[str, Any]:
        logger.debug("[%s] GET %s", self.cabinet.name, url)
        try:
            response = self._client.get(url)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise ErpRequestError(url, exc.response.reason_phrase, exc.response.status_code) from exc
        except httpx.HTTPError as exc:
            raise ErpRequestError(url, str(exc) or type(exc).__name__) from exc

        try:
            data = response.json()
        except ValueError as exc:
            raise ErpRequestError(url, "ответ не является JSON", response.status_code) from exc
        return data if isinstance(data, dict) else {}

    def _list_rows(self, path: str) -> List[Dict[str, Any]]:
        data = self._get_json(f"{self.base_url}{path}")
        rows = data.get("rows")
        if not isinstance(rows, list):
            return []
        return [row for row in rows if isinstance(row, dict)]

    def fetch_stock(self) -> List[Dict[str, Any]]:
        return self._list_rows(STOCK_PATH)

    def fetch_purchase_orders(self) -> List[Dict[str, Any]]:
        return self._list_rows(PURCHASE_ORDERS_PATH)

    def fetch_shipments(self) -> List[Dict[str, Any]]:
        return self._list_rows(SHIPMENTS_PATH)

    def fetch_product(self, ref: Optional[str], cache: ProductCache) -> Product:
        if not ref:
            return PLACEHOLDER_PRODUCT
        cached = cache.get(ref)
        if cached is not None:
            return cached
        self.product_requests += 1
        product = normalize_product(self._get_json(ref))
        cache[ref] = product
        return product
