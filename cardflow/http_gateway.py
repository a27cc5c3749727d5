from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

from .config import GATEWAY_TIMEOUT, GATEWAY_URL
from .errors import PersistenceError
from .gateway import Record

logger = logging.getLogger(__name__)


class HttpGateway:
    """Gateway backed by the cardflow REST service.

    Pass ``client`` to reuse a configured :class:`httpx.AsyncClient` (for
    instance one built on ``httpx.ASGITransport``); otherwise one is created
    from ``base_url`` and owned by this gateway.
    """

    def __init__(
        self,
        base_url: str = GATEWAY_URL,
        *,
        timeout: Optional[float] = GATEWAY_TIMEOUT,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    async def __aenter__(self) -> "HttpGateway":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def _request(self, operation: str, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            response = await self.client.request(method, url, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            logger.warning(f"{operation} {method} {url} -> {status}")
            raise PersistenceError(operation, _detail(exc.response), status_code=status) from exc
        except httpx.HTTPError as exc:
            logger.warning(f"{operation} {method} {url} failed: {exc!r}")
            raise PersistenceError(operation, str(exc) or type(exc).__name__) from exc
        return response

    # === Lists ===

    async def list_lists(self) -> List[Record]:
        return _json("list_lists", await self._request("list_lists", "GET", "/api/lists"))

    async def create_list(self, title: str) -> Record:
        response = await self._request("create_list", "POST", "/api/lists", json={"title": title})
        return _json("create_list", response)

    async def delete_list(self, list_id: str) -> None:
        await self._request("delete_list", "DELETE", f"/api/lists/{list_id}")

    # === Cards ===

    async def list_cards(self) -> List[Record]:
        return _json("list_cards", await self._request("list_cards", "GET", "/api/cards"))

    async def create_card(self, title: str, list_id: str) -> Record:
        response = await self._request(
            "create_card", "POST", "/api/cards", json={"title": title, "list_id": list_id}
        )
        return _json("create_card", response)

    async def update_card(
        self,
        card_id: str,
        *,
        list_id: Optional[str] = None,
        position: Optional[int] = None,
    ) -> Record:
        body: Dict[str, Any] = {}
        if list_id is not None:
            body["list_id"] = list_id
        if position is not None:
            body["position"] = position
        response = await self._request("update_card", "PUT", f"/api/cards/{card_id}", json=body)
        return _json("update_card", response)

    async def delete_card(self, card_id: str) -> None:
        await self._request("delete_card", "DELETE", f"/api/cards/{card_id}")


def _detail(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        data = None
    detail = data.get("detail") if isinstance(data, dict) else None
    return detail if isinstance(detail, str) else response.reason_phrase or "request failed"


def _json(operation: str, response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError as exc:
        logger.warning(f"{operation} -> {response.status_code} with a non-JSON body")
        raise PersistenceError(operation, "invalid JSON response", status_code=response.status_code) from exc
