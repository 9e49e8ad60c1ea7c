"""
Football data provider client

Thin async wrapper over a football-data.org v4 style API. Raises on any
non-success response or provider error payload; callers decide how to
degrade.
"""
import logging
from datetime import date
from typing import Any

import httpx


logger = logging.getLogger(__name__)


class ProviderError(Exception):
    """Provider answered with an error status or error payload (e.g. rate limit)"""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class FootballDataClient:
    """Fetches match lists and match details with an API key header."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        *,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    async def _get(self, path: str, params: dict[str, str] | None = None) -> dict[str, Any]:
        async with httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            headers={"X-Auth-Token": self.api_key},
            transport=self._transport,
        ) as client:
            response = await client.get(path, params=params)

        if not response.is_success:
            message = _error_message(response)
            logger.error(f"API Error: {response.status_code} {message}")
            raise ProviderError(message, status_code=response.status_code)

        try:
            data = response.json()
        except ValueError as e:
            raise ProviderError(f"Invalid JSON from {path}", status_code=response.status_code) from e

        if not isinstance(data, dict):
            raise ProviderError(f"Unexpected payload from {path}", status_code=response.status_code)

        if "errorCode" in data:
            raise ProviderError(str(data.get("message") or data["errorCode"]), status_code=response.status_code)

        return data

    async def get_matches(self, date_from: date, date_to: date) -> list[dict[str, Any]]:
        """Matches between two dates (inclusive)"""
        logger.info(f"Fetching matches for {date_from.isoformat()} to {date_to.isoformat()}...")
        data = await self._get(
            "/matches",
            params={"dateFrom": date_from.isoformat(), "dateTo": date_to.isoformat()},
        )
        return _match_list(data)

    async def get_live_matches(self) -> list[dict[str, Any]]:
        """Matches currently in play"""
        data = await self._get("/matches", params={"status": "IN_PLAY"})
        return _match_list(data)

    async def get_match(self, match_id: str) -> dict[str, Any]:
        """Match detail including the goal list"""
        return await self._get(f"/matches/{match_id}")


def _match_list(data: dict[str, Any]) -> list[dict[str, Any]]:
    matches = data.get("matches")
    if not isinstance(matches, list):
        raise ProviderError("Response has no match list")
    return matches


def _error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.reason_phrase or "request failed"
    if isinstance(payload, dict) and payload.get("message"):
        return str(payload["message"])
    return response.reason_phrase or "request failed"
