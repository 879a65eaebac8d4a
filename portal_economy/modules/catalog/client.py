"""
Read-only client for the remote character catalog.

Endpoint
--------
``GET {base_url}/character?page=N`` returns::

    {"info": {"pages": int, "next": url | null, ...},
     "results": [{"id": int, "name": str, "image": str, ...}, ...]}

Only ``id``, ``name`` and ``image`` are kept; ``next_page`` is derived
from ``info.next``.

Retries
-------
Timeouts, network errors and 408/425/429/5xx responses are retried up to
``retries`` times with exponential backoff. Other 4xx responses and
malformed bodies fail immediately with ``CatalogError``.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, List, Optional

import httpx

from portal_economy.core.exceptions import CatalogError
from portal_economy.core.logging.logger import get_logger
from portal_economy.domain.models import CatalogCharacter

logger = get_logger(__name__)

_RETRYABLE_STATUS_CODES = {408, 425, 429, 500, 502, 503, 504}


@dataclass(frozen=True)
class CatalogPage:
    results: List[CatalogCharacter]
    page: int
    pages: int
    next_page: Optional[int]


def _is_retryable(exc: Exception) -> bool:
    if isinstance(exc, (httpx.TimeoutException, httpx.NetworkError, httpx.RemoteProtocolError)):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code in _RETRYABLE_STATUS_CODES
    return False


def _parse_page(payload: Any, page: int) -> CatalogPage:
    if not isinstance(payload, dict):
        raise CatalogError("response body is not a JSON object")

    raw_results = payload.get("results")
    if not isinstance(raw_results, list):
        raise CatalogError("response has no 'results' list")

    results: List[CatalogCharacter] = []
    for raw in raw_results:
        if not isinstance(raw, dict) or "id" not in raw or "name" not in raw:
            raise CatalogError(f"malformed character entry: {raw!r}")
        results.append(
            CatalogCharacter(id=raw["id"], name=str(raw["name"]), image=str(raw.get("image", "")))
        )

    info = payload.get("info") or {}
    pages = int(info.get("pages") or page)
    next_page = page + 1 if info.get("next") else None
    return CatalogPage(results=results, page=page, pages=pages, next_page=next_page)


class CatalogClient:
    """
    Async catalog reader.

    Examples
    --------
    >>> async with CatalogClient("https://rickandmortyapi.com/api") as catalog:
    ...     page = await catalog.list_characters(1)
    ...     await engine.unlock_character(page.results[0])
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout_seconds: float = 10.0,
        retries: int = 2,
        backoff_seconds: float = 0.2,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout_seconds,
            headers={"Accept": "application/json"},
        )
        self._retries = max(0, int(retries))
        self._backoff = max(0.0, float(backoff_seconds))

    async def __aenter__(self) -> CatalogClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _get_json(self, path: str, params: dict[str, Any]) -> Any:
        attempts = self._retries + 1
        for attempt in range(attempts):
            try:
                response = await self._client.get(path, params=params)
                response.raise_for_status()
                return response.json()
            except (httpx.HTTPError, ValueError) as exc:
                retryable = _is_retryable(exc)
                if retryable and attempt < attempts - 1:
                    delay = self._backoff * (2**attempt)
                    logger.warning(
                        "Catalog request failed; retrying",
                        extra={
                            "path": path,
                            "attempt": attempt + 1,
                            "delay_seconds": delay,
                            "error_type": type(exc).__name__,
                        },
                    )
                    await asyncio.sleep(delay)
                    continue

                status = exc.response.status_code if isinstance(exc, httpx.HTTPStatusError) else None
                raise CatalogError(str(exc), status_code=status, is_retryable=retryable) from exc

        raise CatalogError("retries exhausted")

    async def list_characters(self, page: int = 1) -> CatalogPage:
        """
        Fetch one page of characters.

        Raises
        ------
        CatalogError
            On non-retryable HTTP errors, exhausted retries, or a malformed body.
        """
        if page < 1:
            raise ValueError(f"page must be >= 1, got {page}")
        payload = await self._get_json("/character", {"page": page})
        parsed = _parse_page(payload, page)
        logger.debug(
            "Catalog page fetched",
            extra={"page": page, "pages": parsed.pages, "result_count": len(parsed.results)},
        )
        return parsed
