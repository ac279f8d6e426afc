"""
Token probe.

Sends a whole corpus text to a model through OpenRouter's chat-completions
endpoint and reads back how many prompt tokens the model's tokenizer used.
The completion itself is capped to a few tokens and ignored.
"""

import json
from dataclasses import dataclass

import httpx

from tokenbench.client import OpenRouterClient, extract_error_message
from tokenbench.exceptions import ProbeError


@dataclass
class ProbeOutcome:
    """Token count (and cost, when reported) for one probe."""

    token_count: int
    estimated_cost: float = 0.0


class TokenProbe(OpenRouterClient):
    """Counts input tokens for a text under a given model."""

    def build_payload(self, text: str, model_id: str) -> dict:
        """Build the chat-completions request body for a probe."""
        return {
            "model": model_id,
            "messages": [
                {"role": "user", "content": text}
            ],
            "max_tokens": self.config.probe_max_tokens,
            "temperature": 0,
            "usage": {"include": True},
        }

    def _log_request(self, url: str, payload: dict, filename: str) -> None:
        self._log("debug", f"Request to OpenRouter API for {filename}:")
        self._log("debug", f"URL: {url}")
        self._log("debug", f"Authorization: Bearer {self.masked_key}")
        self._log("debug", "Body:")
        self._log("debug", json.dumps(payload, indent=2, ensure_ascii=False))

    def _log_failure(self, error: ProbeError, filename: str) -> None:
        self._log("debug", f"Probe failed for {filename}:")
        for line in error.diagnostics():
            self._log("debug", line)

    async def probe(self, text: str, model_id: str, filename: str = "") -> ProbeOutcome:
        """
        Count the prompt tokens ``model_id`` uses for ``text``.

        Args:
            text: Full corpus text, sent as a single user message
            model_id: OpenRouter model identifier
            filename: Name used in log messages

        Returns:
            ProbeOutcome with token count and estimated cost

        Raises:
            ProbeError: On transport failure, non-success status, unparseable
                body or missing prompt token usage
        """
        url = self.config.openrouter.chat_url
        payload = self.build_payload(text, model_id)
        filename = filename or model_id

        self._log_request(url, payload, filename)

        try:
            try:
                client = await self._get_client()
                response = await client.post(url, headers=self._headers(), json=payload)
            except httpx.HTTPError as e:
                raise ProbeError(f"Network error: {e}", url, payload) from e

            status = response.status_code
            body = response.text
            self._log("debug", f"Response Status: {status} {response.reason_phrase}")
            self._log("debug", f"Response Body: {body.strip()}")

            if not response.is_success:
                message = extract_error_message(body) or response.reason_phrase
                raise ProbeError(f"API error: {status} {message}", url, payload, status, body)

            try:
                data = json.loads(body)
            except ValueError as e:
                raise ProbeError(f"JSON parse error: {e}", url, payload, status, body) from e

            usage = data.get("usage") if isinstance(data, dict) else None
            if not isinstance(usage, dict) or not usage.get("prompt_tokens"):
                raise ProbeError("No token usage data", url, payload, status, body)

            cost = usage.get("cost") or usage.get("estimated_cost") or 0
            try:
                return ProbeOutcome(
                    token_count=int(usage["prompt_tokens"]),
                    estimated_cost=float(cost),
                )
            except (TypeError, ValueError) as e:
                raise ProbeError(f"Invalid usage data: {e}", url, payload, status, body) from e

        except ProbeError as e:
            self._log_failure(e, filename)
            raise
