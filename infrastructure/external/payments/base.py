"""
Base payment client implementing shared concerns: http, retry, logging, decoding.

Concrete providers should subclass and implement provider-specific logic.
"""
from __future__ import annotations

from typing import Any, Callable, Optional
from contextlib import asynccontextmanager

import httpx
from tenacity import AsyncRetrying, stop_after_attempt, wait_exponential, retry_if_exception_type

from core.logging_config import get_logger
from application.dtos.payments import ProcessorResponse
from infrastructure.external.payments.exceptions import (
    PaymentProviderError,
    PaymentRecoverableError,
)


logger = get_logger(__name__)


class BasePaymentClient:
    provider: str = "base"

    def __init__(
        self,
        *,
        base_url: str,
        headers: Optional[dict[str, str]] = None,
        timeouts: Optional[dict[str, float]] = None,
        retry: Optional[dict[str, Any]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url if base_url.endswith("/") else base_url + "/"
        self._headers = {"Accept": "application/json", **(headers or {})}
        self._timeouts_cfg = timeouts or {"connect": 1.0, "read": 5.0, "write": 5.0, "pool": 10.0}
        self._retry_cfg = retry or {"max": 2, "base": 0.2}
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def timeouts(self) -> httpx.Timeout:
        return httpx.Timeout(
            connect=self._timeouts_cfg["connect"],
            read=self._timeouts_cfg["read"],
            write=self._timeouts_cfg["write"],
            pool=self._timeouts_cfg["pool"],
        )

    @asynccontextmanager
    async def client(self):
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers=self._headers,
                timeout=self.timeouts,
                transport=self._transport,
            )
        try:
            yield self._client
        finally:
            # Keep open for reuse; explicit aclose() will close.
            ...

    async def aclose(self) -> None:
        """Close underlying HTTP client if created."""
        if self._client is not None:
            try:
                await self._client.aclose()
            finally:
                self._client = None

    async def _retry(self, fn: Callable[[], Any]):
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(int(self._retry_cfg["max"]) + 1),
            wait=wait_exponential(multiplier=self._retry_cfg["base"], min=0.1, max=2.0),
            retry=retry_if_exception_type((httpx.TimeoutException, httpx.TransportError)),
            reraise=True,
        ):
            with attempt:
                return await fn()

    async def _request(self, method: str, path: str, *, json: Optional[dict[str, Any]] = None) -> ProcessorResponse:
        async def _send() -> httpx.Response:
            async with self.client() as c:
                return await c.request(method, path, json=json)

        try:
            response = await self._retry(_send)
        except httpx.TimeoutException as exc:
            raise PaymentRecoverableError(f"Request timeout: {method} {path}", provider=self.provider) from exc
        except httpx.HTTPError as exc:
            raise PaymentProviderError(f"Transport error: {exc}", provider=self.provider) from exc

        try:
            body = response.json()
        except ValueError as exc:
            raise PaymentProviderError(
                "Non-JSON response from processor",
                provider=self.provider,
                details={"status_code": response.status_code},
            ) from exc
        if not isinstance(body, dict):
            raise PaymentProviderError(
                "Unexpected response shape from processor",
                provider=self.provider,
                details={"status_code": response.status_code},
            )

        result = self._to_processor_response(response.status_code, body)
        self._log(
            "payment_provider_response",
            method=method,
            path=path,
            status_code=response.status_code,
            successful=result.successful,
        )
        logger.debug("payment_provider_response_body", provider=self.provider, path=path, body=body)
        return result

    def _to_processor_response(self, status_code: int, body: dict[str, Any]) -> ProcessorResponse:
        ok = 200 <= status_code < 300 and body.get("success", True) is not False
        error_code = body.get("error_code")
        return ProcessorResponse(
            successful=ok,
            status_code=status_code,
            body=body,
            error_code=None if error_code is None else str(error_code),
            error_info=body.get("error_info"),
        )

    def _log(self, event: str, **kwargs) -> None:
        logger.info(
            event,
            provider=self.provider,
            **kwargs,
        )
