"""
Shared OpenRouter HTTP plumbing.

Both the model catalog client and the token probe talk to OpenRouter with the
same credentials, attribution headers and client lifecycle.
"""

import json
import sys
from typing import Callable, Optional

import httpx

from tokenbench.config import BenchmarkConfig
from tokenbench.exceptions import MissingApiKeyError


class OpenRouterClient:
    """Base class holding the API key, the lazily created HTTP client and logging."""

    def __init__(
        self,
        api_key: str,
        config: Optional[BenchmarkConfig] = None,
        log_callback: Optional[Callable[[str, str], None]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            api_key: OpenRouter API key
            config: Benchmark configuration. If None, uses default.
            log_callback: Optional callback for logging (level, message)
            transport: Optional httpx transport, used in place of the network
        """
        if not api_key:
            raise MissingApiKeyError("OPENROUTER_API_KEY not found in environment variables")

        self.api_key = api_key
        self.config = config or BenchmarkConfig()
        self.log_callback = log_callback
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    def _log(self, level: str, message: str) -> None:
        """Log a message using the callback if available."""
        if self.log_callback:
            self.log_callback(level, message)
        else:
            print(f"[{level.upper()}] {message}", file=sys.stderr)

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.config.openrouter.timeout),
                transport=self._transport,
            )
        return self._client

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "HTTP-Referer": self.config.openrouter.site_url,
            "X-Title": self.config.openrouter.site_name,
        }

    @property
    def masked_key(self) -> str:
        return f"{self.api_key[:10]}..."

    async def close(self) -> None:
        """Close HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None


def extract_error_message(body: str) -> Optional[str]:
    """Pull ``error.message`` out of an OpenRouter error body, if it has one."""
    try:
        data = json.loads(body)
    except ValueError:
        return None

    if isinstance(data, dict):
        error = data.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
    return None
