"""
Unit tests for the token probe.
"""

import json

import httpx
import pytest

from tokenbench.exceptions import ProbeError
from tokenbench.probe import TokenProbe


def probe_with(config, api_key, handler, logs=None):
    log = (lambda level, message: logs.append((level, message))) if logs is not None else (lambda *_: None)
    return TokenProbe(api_key, config, log_callback=log, transport=httpx.MockTransport(handler))


class TestBuildPayload:
    """Test the probe request body."""

    def test_payload_shape(self, config, api_key):
        probe = TokenProbe(api_key, config)

        payload = probe.build_payload("Hello", "m1")

        assert payload == {
            "model": "m1",
            "messages": [{"role": "user", "content": "Hello"}],
            "max_tokens": 16,
            "temperature": 0,
            "usage": {"include": True},
        }


class TestProbe:
    """Test token probing against a mocked endpoint."""

    @pytest.mark.asyncio
    async def test_returns_prompt_tokens_and_cost(self, config, api_key, make_openrouter):
        fake = make_openrouter(token_counts={"Hello": 7})
        fake.costs["Hello"] = 0.00012
        probe = TokenProbe(api_key, config, log_callback=lambda *_: None, transport=fake.transport)

        outcome = await probe.probe("Hello", "m1", "eng.txt")
        await probe.close()

        assert outcome.token_count == 7
        assert outcome.estimated_cost == pytest.approx(0.00012)
        sent = json.loads(fake.chat_requests[0].content)
        assert sent["model"] == "m1"
        assert sent["messages"][0]["content"] == "Hello"

    @pytest.mark.asyncio
    async def test_estimated_cost_fallback(self, config, api_key):
        """``estimated_cost`` is used when ``cost`` is absent."""
        probe = probe_with(config, api_key, lambda request: httpx.Response(
            200, json={"usage": {"prompt_tokens": 3, "estimated_cost": 0.5}}
        ))

        outcome = await probe.probe("x", "m1")
        await probe.close()

        assert outcome.estimated_cost == 0.5

    @pytest.mark.asyncio
    async def test_missing_cost_is_zero(self, config, api_key):
        probe = probe_with(config, api_key, lambda request: httpx.Response(
            200, json={"usage": {"prompt_tokens": 3}}
        ))

        outcome = await probe.probe("x", "m1")
        await probe.close()

        assert outcome.estimated_cost == 0.0

    @pytest.mark.asyncio
    async def test_missing_usage_is_an_error(self, config, api_key):
        probe = probe_with(config, api_key, lambda request: httpx.Response(200, json={"choices": []}))

        with pytest.raises(ProbeError, match="No token usage data"):
            await probe.probe("x", "m1")
        await probe.close()

    @pytest.mark.asyncio
    async def test_zero_prompt_tokens_is_an_error(self, config, api_key):
        probe = probe_with(config, api_key, lambda request: httpx.Response(
            200, json={"usage": {"prompt_tokens": 0}}
        ))

        with pytest.raises(ProbeError, match="No token usage data"):
            await probe.probe("x", "m1")
        await probe.close()

    @pytest.mark.asyncio
    async def test_non_numeric_cost_is_an_error(self, config, api_key):
        probe = probe_with(config, api_key, lambda request: httpx.Response(
            200, json={"usage": {"prompt_tokens": 3, "cost": "n/a"}}
        ))

        with pytest.raises(ProbeError, match="Invalid usage data") as exc_info:
            await probe.probe("x", "m1")
        await probe.close()

        assert exc_info.value.status_code == 200
        assert "n/a" in exc_info.value.response_body

    @pytest.mark.asyncio
    async def test_malformed_prompt_tokens_is_an_error(self, config, api_key):
        probe = probe_with(config, api_key, lambda request: httpx.Response(
            200, json={"usage": {"prompt_tokens": {"text": 3}}}
        ))

        with pytest.raises(ProbeError, match="Invalid usage data"):
            await probe.probe("x", "m1")
        await probe.close()

    @pytest.mark.asyncio
    async def test_error_status_keeps_exchange(self, config, api_key):
        """A non-success status carries the status, body and the request sent."""
        probe = probe_with(config, api_key, lambda request: httpx.Response(
            429, json={"error": {"message": "Rate limited"}}
        ))

        with pytest.raises(ProbeError) as exc_info:
            await probe.probe("x", "m1")
        await probe.close()

        error = exc_info.value
        assert error.reason == "API error: 429 Rate limited"
        assert error.status_code == 429
        assert "Rate limited" in error.response_body
        assert error.request_payload["model"] == "m1"
        assert error.request_url.endswith("/chat/completions")

    @pytest.mark.asyncio
    async def test_invalid_json(self, config, api_key):
        probe = probe_with(config, api_key, lambda request: httpx.Response(200, text="not json"))

        with pytest.raises(ProbeError, match="JSON parse error"):
            await probe.probe("x", "m1")
        await probe.close()

    @pytest.mark.asyncio
    async def test_network_error(self, config, api_key):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        probe = probe_with(config, api_key, handler)

        with pytest.raises(ProbeError, match="Network error"):
            await probe.probe("x", "m1")
        await probe.close()

    @pytest.mark.asyncio
    async def test_failure_diagnostics_logged_at_debug(self, config, api_key):
        """Failures log the full request and response, at debug level only."""
        logs = []
        probe = probe_with(config, api_key, lambda request: httpx.Response(500, text="boom"), logs)

        with pytest.raises(ProbeError):
            await probe.probe("secret text", "m1", "eng.txt")
        await probe.close()

        assert all(level == "debug" for level, _ in logs)
        messages = [message for _, message in logs]
        assert "Probe failed for eng.txt:" in messages
        assert "Response Status: 500" in messages
        assert "boom" in messages
        assert any("secret text" in message for message in messages)

    @pytest.mark.asyncio
    async def test_api_key_masked_in_logs(self, config, api_key):
        logs = []
        probe = probe_with(config, api_key, lambda request: httpx.Response(
            200, json={"usage": {"prompt_tokens": 1}}
        ), logs)

        await probe.probe("x", "m1")
        await probe.close()

        assert not any(api_key in message for _, message in logs)
