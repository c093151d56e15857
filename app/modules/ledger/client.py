"""HTTP client for the optional content-hash ledger.

Every call returns a ``LedgerResult`` instead of raising: callers decide whether a
degraded ledger matters (ingestion reports it, corroborated retrieval denies).
"""

from __future__ import annotations

import asyncio
import enum
import logging
from dataclasses import dataclass
from typing import Any, Optional

import httpx

logger = logging.getLogger(__name__)


class LedgerStatus(str, enum.Enum):
    OK = "ok"
    DISABLED = "disabled"
    TIMEOUT = "timeout"
    ERROR = "error"


@dataclass(frozen=True)
class LedgerResult:
    status: LedgerStatus
    value: Optional[str] = None
    detail: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == LedgerStatus.OK


class LedgerClient:
    """Narrow async wrapper over the ledger's REST surface."""

    def __init__(
        self,
        base_url: str,
        *,
        api_key: Optional[str] = None,
        timeout: float = 5.0,
        enabled: bool = True,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.enabled = enabled
        headers = {"Authorization": f"Bearer {api_key}"} if api_key else {}
        self._client: Optional[httpx.AsyncClient] = None
        if enabled:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers=headers,
                timeout=timeout,
                transport=transport,
            )

    async def register_hash(self, material_id: str, content_hash: str) -> LedgerResult:
        return await self._call(
            "POST",
            f"/materials/{material_id}/hash",
            json={"hash": content_hash},
            field="tx",
        )

    async def get_hash(self, material_id: str) -> LedgerResult:
        return await self._call("GET", f"/materials/{material_id}/hash", field="hash")

    async def deregister(self, material_id: str) -> LedgerResult:
        return await self._call("DELETE", f"/materials/{material_id}", field="tx")

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _call(
        self, method: str, path: str, *, field: str, json: Optional[dict] = None
    ) -> LedgerResult:
        if not self.enabled or self._client is None:
            return LedgerResult(LedgerStatus.DISABLED)
        try:
            response = await asyncio.wait_for(
                self._client.request(method, path, json=json), timeout=self.timeout
            )
            response.raise_for_status()
            payload: Any = response.json()
        except (asyncio.TimeoutError, httpx.TimeoutException) as exc:
            logger.warning(
                "Ledger %s %s timed out",
                method,
                path,
                extra={"event": "ledger_degraded"},
            )
            return LedgerResult(LedgerStatus.TIMEOUT, detail=str(exc) or "timeout")
        except httpx.HTTPStatusError as exc:
            logger.warning(
                "Ledger %s %s rejected with %s",
                method,
                path,
                exc.response.status_code,
                extra={"event": "ledger_degraded"},
            )
            return LedgerResult(
                LedgerStatus.ERROR, detail=f"HTTP {exc.response.status_code}"
            )
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning(
                "Ledger %s %s failed: %s",
                method,
                path,
                exc,
                extra={"event": "ledger_degraded"},
            )
            return LedgerResult(LedgerStatus.ERROR, detail=str(exc))

        value = payload.get(field) if isinstance(payload, dict) else None
        if value is None:
            return LedgerResult(LedgerStatus.ERROR, detail=f"missing '{field}' in response")
        return LedgerResult(LedgerStatus.OK, value=str(value))


def build_ledger_client(settings, transport: Optional[httpx.AsyncBaseTransport] = None) -> LedgerClient:
    return LedgerClient(
        settings.ledger_url,
        api_key=settings.ledger_api_key,
        timeout=settings.ledger_timeout_seconds,
        enabled=settings.ledger_enabled,
        transport=transport,
    )
