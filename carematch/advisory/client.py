"""
Anthropic Messages API client for the advisory refiner.

One POST per call, bounded timeout. Errors are raised as AdvisoryClientError
carrying an AdvisoryError code; the refiner turns them into neutral output.
"""

import logging
import os
from typing import Optional

import httpx

from .models import AdvisoryError

logger = logging.getLogger(__name__)

# ============================================================================
# CONFIGURATION
# ============================================================================

ANTHROPIC_API_KEY = os.getenv("ANTHROPIC_API_KEY")
ADVISORY_MODEL = os.getenv("ADVISORY_MODEL", "claude-sonnet-4-20250514")
ADVISORY_BASE_URL = os.getenv("ADVISORY_BASE_URL", "https://api.anthropic.com/v1/messages")
ADVISORY_TIMEOUT_SECONDS = float(os.getenv("ADVISORY_TIMEOUT_SECONDS", "30"))
ADVISORY_MAX_TOKENS = int(os.getenv("ADVISORY_MAX_TOKENS", "2048"))
ANTHROPIC_VERSION = "2023-06-01"


class AdvisoryClientError(Exception):
    def __init__(self, error_code: AdvisoryError, message: str):
        self.error_code = error_code
        self.message = message
        super().__init__(f"{error_code.value}: {message}")


class AdvisoryClient:
    """
    Thin Messages API wrapper.

    transport is only for tests (httpx.MockTransport).
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        max_tokens: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key if api_key is not None else ANTHROPIC_API_KEY
        self.model = model or ADVISORY_MODEL
        self.base_url = base_url or ADVISORY_BASE_URL
        self.timeout = timeout if timeout is not None else ADVISORY_TIMEOUT_SECONDS
        self.max_tokens = max_tokens or ADVISORY_MAX_TOKENS
        self.transport = transport

        if not self.api_key:
            logger.warning("ANTHROPIC_API_KEY not configured, advisory output will be neutral")

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def _headers(self) -> dict:
        return {
            "x-api-key": self.api_key or "",
            "anthropic-version": ANTHROPIC_VERSION,
            "content-type": "application/json",
        }

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        """Return the first text block of the response."""
        if not self.is_configured:
            raise AdvisoryClientError(AdvisoryError.ADVISORY_NO_API_KEY, "API key not configured")

        payload = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "system": system_prompt,
            "messages": [{"role": "user", "content": user_prompt}],
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(self.base_url, headers=self._headers(), json=payload)
        except httpx.TimeoutException:
            raise AdvisoryClientError(
                AdvisoryError.ADVISORY_TIMEOUT,
                f"Advisory request timed out after {self.timeout}s",
            )
        except httpx.HTTPError as e:
            raise AdvisoryClientError(
                AdvisoryError.ADVISORY_HTTP_ERROR,
                f"Cannot reach advisory service: {type(e).__name__}",
            )

        if response.status_code != 200:
            raise AdvisoryClientError(
                AdvisoryError.ADVISORY_HTTP_ERROR,
                f"Advisory service returned HTTP {response.status_code}",
            )

        try:
            result = response.json()
        except ValueError:
            raise AdvisoryClientError(AdvisoryError.ADVISORY_INVALID_RESPONSE, "Response body is not JSON")

        for block in result.get("content") or []:
            if isinstance(block, dict) and block.get("type") == "text":
                return block.get("text") or ""

        raise AdvisoryClientError(AdvisoryError.ADVISORY_INVALID_RESPONSE, "No text content in response")
