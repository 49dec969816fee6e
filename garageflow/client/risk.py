"""Optional customer blacklist lookup. Never blocks a booking when unavailable."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from garageflow.client.http import ApiClient
from garageflow.core.errors import GarageflowError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BlacklistResult:
    flagged: bool = False
    reason: str | None = None
    checked: bool = False


class RiskChecker:
    def __init__(self, api: ApiClient, url: str | None = None):
        self._api = api
        self._url = url

    @property
    def enabled(self) -> bool:
        return bool(self._url)

    async def check_blacklist(
        self,
        customer_ref: str | None = None,
        phone: str | None = None,
        email: str | None = None,
    ) -> BlacklistResult:
        if not self._url:
            return BlacklistResult()
        query = {"customerRef": customer_ref, "phone": phone, "email": email}
        query = {k: v for k, v in query.items() if v}
        if not query:
            return BlacklistResult()
        try:
            data = await self._api.post(self._url, json=query)
        except GarageflowError as exc:
            logger.warning("Blacklist check unavailable, continuing unflagged: %s", exc)
            return BlacklistResult()
        if not isinstance(data, dict):
            logger.warning("Blacklist check returned %s, continuing unflagged", type(data).__name__)
            return BlacklistResult()
        return BlacklistResult(flagged=bool(data.get("flagged")), reason=data.get("reason"), checked=True)
