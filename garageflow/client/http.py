"""Async HTTP client for the scheduling service, with typed errors and create retries."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable

import httpx

from garageflow.config import RetryConfig, get_settings
from garageflow.core.errors import (
    AssignmentConflictError, ConflictError, FieldError, GarageflowError, IncompleteChecklistError,
    InvalidTransitionError, NotFoundError, ReorderConflictError, TransientServerError,
    ValidationError,
)

logger = logging.getLogger(__name__)


def _body(response: httpx.Response) -> dict:
    try:
        data = response.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


def error_from_response(response: httpx.Response) -> GarageflowError:
    """Rebuild the domain error the service encoded in a non-2xx response."""
    status = response.status_code
    body = _body(response)
    message = body.get("message") or response.reason_phrase or f"HTTP {status}"

    if status >= 500:
        return TransientServerError(status, message)
    if status == 400:
        errors = [FieldError(e.get("path", ""), e.get("message", "")) for e in body.get("errors", [])]
        return ValidationError(errors or [FieldError("", message)], message)
    if status == 404:
        return NotFoundError(body.get("kind", "Resource"), body.get("id", response.request.url.path))
    if status == 409:
        reason = body.get("reason")
        if reason == AssignmentConflictError.reason:
            return AssignmentConflictError(
                body.get("technicianId", ""), body.get("centerId", ""), body.get("conflictingAssignmentIds", []),
            )
        if reason == ReorderConflictError.reason:
            return ReorderConflictError(
                body.get("centerId", ""), body.get("date", ""),
                body.get("expectedVersion"), body.get("currentVersion"),
            )
        details = {k: v for k, v in body.items() if k not in ("code", "reason", "message")}
        return ConflictError(message, reason=reason, details=details)
    if status == 422:
        if body.get("code") == IncompleteChecklistError.code:
            return IncompleteChecklistError(body.get("missingItemIds", []))
        if body.get("code") == InvalidTransitionError.code:
            return InvalidTransitionError(
                body.get("kind", ""), body.get("current", ""), body.get("target", ""), message=message,
            )
        return ValidationError([FieldError("", message)], message)
    return GarageflowError(message)


class ApiClient:
    """Thin wrapper over ``httpx.AsyncClient``.

    Every non-2xx response is raised as a :mod:`garageflow.core.errors` type.
    Calls made with ``retry=True`` (create-type operations) are retried on
    5xx and transport failures with exponential backoff; conflicts and
    validation failures are raised immediately.
    """

    def __init__(
        self,
        base_url: str | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float | None = None,
        retry: RetryConfig | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        settings = get_settings()
        self._http = httpx.AsyncClient(
            base_url=base_url or settings.api.base_url,
            timeout=timeout if timeout is not None else settings.api.timeout,
            transport=transport,
        )
        self._retry = retry or settings.retry
        self._sleep = sleep

    async def __aenter__(self) -> ApiClient:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _send(self, method: str, path: str, **kwargs) -> Any:
        try:
            response = await self._http.request(method, path, **kwargs)
        except httpx.TransportError as exc:
            raise TransientServerError(None, f"{method} {path} failed: {exc!r}") from exc
        if response.is_success:
            return response.json() if response.content else None
        raise error_from_response(response)

    async def request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: dict | None = None,
        retry: bool = False,
    ) -> Any:
        attempts = 1 + (self._retry.max_attempts if retry else 0)
        for attempt in range(attempts):
            try:
                return await self._send(method, path, json=json, params=params)
            except TransientServerError as exc:
                if attempt == attempts - 1:
                    if retry:
                        logger.error("%s %s failed after %d attempts: %s", method, path, attempts, exc)
                    raise
                delay = self._retry.base_delay * (2 ** attempt)
                logger.warning(
                    "Transient failure on %s %s (attempt %d/%d), retrying in %.1fs: %s",
                    method, path, attempt + 1, attempts, delay, exc,
                )
                await self._sleep(delay)
            except GarageflowError as exc:
                if attempt:
                    exc.after_transient = True
                raise

    async def get(self, path: str, params: dict | None = None) -> Any:
        return await self.request("GET", path, params=params)

    async def post(self, path: str, json: Any = None, *, retry: bool = False) -> Any:
        return await self.request("POST", path, json=json, retry=retry)

    async def put(self, path: str, json: Any = None) -> Any:
        return await self.request("PUT", path, json=json)

    async def patch(self, path: str, json: Any = None) -> Any:
        return await self.request("PATCH", path, json=json)

    async def delete(self, path: str) -> Any:
        return await self.request("DELETE", path)
