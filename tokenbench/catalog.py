"""
OpenRouter model catalog client.

Fetches the list of available models, resolves a single model by id and
classifies models as text-to-text for listings.
"""

import json
import time
from typing import Any, Optional

import httpx

from tokenbench.client import OpenRouterClient, extract_error_message
from tokenbench.exceptions import CatalogError
from tokenbench.models import ModelDescriptor


# Fragments that mark a model as producing something other than text
NON_TEXT_KEYWORDS = [
    "vision",
    "image",
    "audio",
    "tts",
    "whisper",
    "dall-e",
    "stable-diffusion",
    "midjourney",
    "imagen",
    "florence",
    "clip",
    "blip",
]


def normalize_models_response(data: Any) -> list[dict]:
    """
    Normalize the catalog response envelope to a list of model objects.

    The service has answered with a bare array, ``{"data": [...]}`` and
    ``{"models": [...]}``; all three are accepted.

    Raises:
        CatalogError: If the response has none of the known shapes
    """
    if isinstance(data, list):
        return data

    if isinstance(data, dict):
        if isinstance(data.get("data"), list):
            return data["data"]
        if isinstance(data.get("models"), list):
            return data["models"]
        raise CatalogError(
            "Invalid response format from API: expected array or object "
            "with 'data' or 'models' property"
        )

    raise CatalogError("Invalid response format from API: expected array or object")


def is_text_to_text(model: ModelDescriptor) -> bool:
    """
    Check whether a model takes text and produces text.

    Explicit modality fields win; otherwise the id, name and description are
    searched for non-text keywords. Models without any signal count as text.
    """
    output_modality = model.output_modality.lower()
    if output_modality:
        return output_modality == "text"

    modality = model.modality.lower()
    if modality:
        return "text" in modality

    haystack = f"{model.id} {model.name} {model.description}".lower()
    if any(keyword in haystack for keyword in NON_TEXT_KEYWORDS):
        return False

    return True


def format_models_table(models: list[ModelDescriptor], now: Optional[float] = None) -> list[str]:
    """
    Render models as a Markdown-style table of id, prompt price and age.

    Args:
        models: Models to render
        now: Current UNIX time (defaults to time.time())

    Returns:
        Table lines, header and separator first
    """
    now = time.time() if now is None else now

    rows = []
    for model in models:
        price = model.prompt_price
        price_str = f"{price * 1_000_000:.2f}" if price is not None else "N/A"
        days_str = "N/A"
        if model.created:
            days_str = str(int((now - model.created) // 86400))
        rows.append((model.id, price_str, days_str))

    id_width = max([len("Model ID")] + [len(r[0]) for r in rows])
    price_width = max([len("Price ($/1M)")] + [len(r[1]) for r in rows])
    days_width = max([len("Days Old")] + [len(r[2]) for r in rows])

    lines = [
        f"| {'Model ID'.ljust(id_width)} | {'Price ($/1M)'.rjust(price_width)} | {'Days Old'.rjust(days_width)} |",
        f"|{'-' * (id_width + 2)}|{'-' * (price_width + 2)}|{'-' * (days_width + 2)}|",
    ]
    for model_id, price_str, days_str in rows:
        lines.append(
            f"| {model_id.ljust(id_width)} | {price_str.rjust(price_width)} | {days_str.rjust(days_width)} |"
        )
    return lines


def format_models_plain(models: list[ModelDescriptor]) -> list[str]:
    """Render models as ``<modality> - <id>`` lines."""
    return [f"{model.modality} - {model.id}" for model in models]


class ModelCatalogClient(OpenRouterClient):
    """
    Client for the OpenRouter models endpoint.

    Models are fetched fresh on every call; nothing is cached between runs.
    """

    async def list_models(self) -> list[ModelDescriptor]:
        """
        Fetch all models, sorted by id.

        Raises:
            CatalogError: On transport failure, non-success status or unparseable body
        """
        url = self.config.openrouter.models_url
        self._log("debug", f"Request URL: {url}")
        self._log("debug", f"Authorization: Bearer {self.masked_key}")

        try:
            client = await self._get_client()
            response = await client.get(url, headers=self._headers())
        except httpx.HTTPError as e:
            raise CatalogError(f"Network error fetching models: {e}") from e

        self._log("debug", f"Response status: {response.status_code} {response.reason_phrase}")

        if not response.is_success:
            self._log("debug", f"Error response body: {response.text}")
            message = extract_error_message(response.text) or response.reason_phrase
            raise CatalogError(
                f"API error: {response.status_code} {message}",
                status_code=response.status_code,
            )

        self._log("debug", f"Response body (first 500 chars): {response.text[:500]}...")

        try:
            data = json.loads(response.text)
        except ValueError as e:
            raise CatalogError(
                f"Failed to parse JSON response: {e}",
                status_code=response.status_code,
            ) from e

        models = [
            ModelDescriptor.from_dict(item)
            for item in normalize_models_response(data)
            if isinstance(item, dict)
        ]
        models.sort(key=lambda m: m.id)

        self._log("debug", f"Total models found: {len(models)}")
        return models

    async def resolve_model(self, model_id: str) -> Optional[ModelDescriptor]:
        """
        Look a model up by id.

        Returns:
            ModelDescriptor or None if the catalog does not list it

        Raises:
            CatalogError: If the catalog cannot be fetched
        """
        for model in await self.list_models():
            if model.id == model_id:
                return model
        return None
