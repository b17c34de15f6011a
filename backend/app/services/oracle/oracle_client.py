# backend/app/services/oracle/oracle_client.py
import asyncio
import logging
from typing import Any, Optional

import httpx

from app.core.config import settings
from app.core.errors import OracleUnavailableError
from app.services.core_service.retry import async_retry

logger = logging.getLogger(__name__)


class ClassificationOracle:
    """
    HTTP client for the external classification oracle.

    POST {url} {"log_data": "<flow text>"} -> {"response": "<free text verdict>"}

    classify() returns the raw verdict text, or None when the oracle did not
    answer within the deadline (callers treat that like an unparseable answer).
    Transport / HTTP status failures raise OracleUnavailableError.
    """

    def __init__(
        self,
        url: Optional[str] = None,
        timeout: Optional[float] = None,
        retry_attempts: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.url = url or settings.ORACLE_URL
        self.timeout = settings.ORACLE_TIMEOUT_SECONDS if timeout is None else timeout
        self.retry_attempts = (
            settings.ORACLE_RETRY_ATTEMPTS if retry_attempts is None else retry_attempts
        )
        self._transport = transport

    async def _post(self, prompt: str) -> Any:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            resp = await client.post(self.url, json={"log_data": prompt})
            resp.raise_for_status()
            return resp.json()

    async def classify(self, prompt: str) -> Optional[str]:
        try:
            data = await asyncio.wait_for(
                async_retry(lambda: self._post(prompt), attempts=self.retry_attempts, base_delay=0.5),
                timeout=self.timeout,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException):
            logger.warning("Classification oracle timed out after %.1fs", self.timeout)
            return None
        except httpx.HTTPError as exc:
            raise OracleUnavailableError(
                f"Classification oracle request failed: {type(exc).__name__}: {exc}",
                context={"oracle_url": self.url},
            ) from exc
        except ValueError as exc:
            # body was not JSON; nothing to parse
            logger.warning("Classification oracle returned a non-JSON body: %s", exc)
            return None

        if isinstance(data, dict):
            text = data.get("response")
            return text if isinstance(text, str) else None
        if isinstance(data, str):
            return data
        return None
