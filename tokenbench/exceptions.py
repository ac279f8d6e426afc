"""
Token benchmark exceptions.

This module defines all custom exceptions used by the benchmark system.
"""

import json
from typing import Any, Optional


class TokenBenchError(Exception):
    """Base class for all benchmark errors."""
    pass


class ConfigError(TokenBenchError):
    """Raised when the configuration is unusable (missing model list, bad values)."""
    pass


class MissingApiKeyError(ConfigError):
    """Raised when an operation needs the OpenRouter API key and none was given."""
    pass


class CorpusError(TokenBenchError):
    """
    Raised when the corpus directory or one of its files cannot be read.

    A directory failure is fatal for the whole run; a file failure is recorded
    against the model being processed and the run continues.
    """
    pass


class CatalogError(TokenBenchError):
    """
    Raised when the model catalog cannot be fetched or understood.

    The message carries the upstream status code and, when the service sent
    one, its error message.
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ProbeError(TokenBenchError):
    """
    Raised when a token probe does not yield a usable token count.

    Keeps the complete exchange so that token accounting problems can be
    reproduced from the verbose log.
    """

    def __init__(
        self,
        reason: str,
        request_url: str,
        request_payload: dict[str, Any],
        status_code: Optional[int] = None,
        response_body: Optional[str] = None,
    ):
        super().__init__(reason)
        self.reason = reason
        self.request_url = request_url
        self.request_payload = request_payload
        self.status_code = status_code
        self.response_body = response_body

    def diagnostics(self) -> list[str]:
        """Render the outbound request and inbound response as log lines."""
        lines = [
            f"Request URL: {self.request_url}",
            "Request Body:",
            json.dumps(self.request_payload, indent=2, ensure_ascii=False),
        ]
        if self.status_code is not None:
            lines.append(f"Response Status: {self.status_code}")
        if self.response_body is not None:
            lines.append("Response Body:")
            lines.append(self.response_body)
        lines.append(f"Error: {self.reason}")
        return lines


class StorageError(TokenBenchError):
    """Raised when a results artifact cannot be written."""
    pass
