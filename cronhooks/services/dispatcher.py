"""Outbound webhook delivery."""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Optional

import httpx

from ..errors import DispatchError
from ..logging_config import logger


DEFAULT_TIMEOUT_SECONDS = 10.0


@dataclass
class DispatchResult:
    """Outcome of a single callback attempt."""

    target: str
    success: bool
    status_code: Optional[int] = None
    error: Optional[str] = None
    elapsed_ms: float = 0.0


class CallbackDispatcher:
    """Fires a bare POST at a hook's URL and reports what happened.

    ``dispatch`` never raises: HTTP error statuses and transport failures
    are logged and returned as unsuccessful results.
    """

    def __init__(
        self,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._timeout = timeout_seconds
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def timeout_seconds(self) -> float:
        return self._timeout

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create async HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self._timeout),
                transport=self._transport,
            )
        return self._client

    async def dispatch(self, target: str, name: str) -> DispatchResult:
        started = time.monotonic()
        try:
            status_code = await self._post(target)
        except DispatchError as exc:
            elapsed_ms = (time.monotonic() - started) * 1000
            logger.warning(
                "Webhook dispatch failed",
                extra={
                    "hook_name": name,
                    "target": target,
                    "status_code": exc.status_code,
                    "error": str(exc),
                    "elapsed_ms": round(elapsed_ms, 1),
                },
            )
            return DispatchResult(
                target=target,
                success=False,
                status_code=exc.status_code,
                error=str(exc),
                elapsed_ms=elapsed_ms,
            )
        except Exception as exc:
            logger.exception(
                "Webhook dispatch crashed",
                extra={"hook_name": name, "target": target},
            )
            return DispatchResult(
                target=target,
                success=False,
                error=str(exc),
                elapsed_ms=(time.monotonic() - started) * 1000,
            )

        elapsed_ms = (time.monotonic() - started) * 1000
        logger.info(
            "Webhook dispatched",
            extra={
                "hook_name": name,
                "target": target,
                "status_code": status_code,
                "elapsed_ms": round(elapsed_ms, 1),
            },
        )
        return DispatchResult(
            target=target,
            success=True,
            status_code=status_code,
            elapsed_ms=elapsed_ms,
        )

    async def _post(self, target: str) -> int:
        client = await self._get_client()
        try:
            # httpx.Timeout bounds each read separately; this bounds the whole exchange.
            response = await asyncio.wait_for(client.post(target), self._timeout)
        except (asyncio.TimeoutError, httpx.TimeoutException) as exc:
            raise DispatchError(target, f"timed out after {self._timeout}s") from exc
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise DispatchError(target, f"{type(exc).__name__}: {exc}") from exc

        if not response.is_success:
            raise DispatchError(
                target,
                f"unexpected status {response.status_code}",
                status_code=response.status_code,
            )
        return response.status_code

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
        self._client = None


__all__ = ["CallbackDispatcher", "DispatchResult", "DEFAULT_TIMEOUT_SECONDS"]
