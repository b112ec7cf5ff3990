"""Capability adapter that calls the capability services over HTTP."""

import logging
from typing import Any

import httpx
from pydantic_core import to_jsonable_python

from src.capabilities.base import CapabilityResult
from src.core.config import settings
from src.core.exceptions import CapabilityError, ErrorType

logger = logging.getLogger(__name__)


class HttpCapability:
    """POSTs ``{action, userId, entities}`` to ``<base_url>/<service>``.

    Error mapping:
      - a JSON body with ``"error": "<ErrorType>"`` keeps that type
      - other HTTP errors map by status code (401/403 expired OAuth,
        404 not found, 429 rate limit, else API error)
      - transport timeouts map to ``TIMEOUT``
    """

    def __init__(
        self,
        service: str,
        base_url: str = "",
        api_key: str = "",
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.service = service
        self._base_url = (base_url or settings.capability_base_url).rstrip("/")
        self._api_key = api_key or settings.capability_api_key
        self._timeout = timeout or settings.capability_timeout_seconds
        self._client = client

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            headers = {"Content-Type": "application/json"}
            if self._api_key:
                headers["Authorization"] = f"Bearer {self._api_key}"
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                headers=headers,
                timeout=self._timeout,
            )
        return self._client

    async def call(self, action: str, user_id: str, entities: dict[str, Any]) -> CapabilityResult:
        client = await self._get_client()
        payload = {
            "action": action,
            "userId": user_id,
            "entities": to_jsonable_python(entities),
        }
        try:
            resp = await client.post(f"/{self.service}", json=payload)
        except httpx.TimeoutException as e:
            logger.warning("Capability %s.%s timed out", self.service, action)
            raise CapabilityError(ErrorType.TIMEOUT, self.service, detail=str(e)) from e
        except httpx.HTTPError as e:
            logger.warning("Capability %s.%s transport error: %s", self.service, action, e)
            raise CapabilityError(ErrorType.API_ERROR, self.service, detail=str(e)) from e

        body = self._json(resp)
        error_code = body.get("error") if isinstance(body, dict) else None
        if error_code is not None and not isinstance(error_code, str):
            error_code = str(error_code)

        if error_code in ErrorType.__members__:
            error_type = ErrorType(error_code)
            raise CapabilityError(
                error_type,
                self.service,
                status_code=resp.status_code,
                detail=str(body.get("message") or ""),
            )
        if resp.status_code >= 400:
            logger.error(
                "Capability %s.%s failed: %s %s", self.service, action, resp.status_code, resp.text[:200]
            )
            raise CapabilityError.from_status(self.service, resp.status_code, detail=resp.text[:200])
        if error_code:
            raise CapabilityError(ErrorType.API_ERROR, self.service, status_code=resp.status_code, detail=error_code)

        if not isinstance(body, dict):
            return CapabilityResult(message=resp.text)
        return CapabilityResult(message=str(body.get("message") or ""), data=body.get("data"))

    @staticmethod
    def _json(resp: httpx.Response) -> Any:
        try:
            return resp.json()
        except ValueError:
            return None

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None
