"""
Pytest configuration and fixtures for all tests.

This file is automatically loaded by pytest and provides common fixtures
and configuration for all test modules: a small two-language corpus, a
benchmark configuration pointing at temporary directories, and a fake
OpenRouter API served through httpx.MockTransport.
"""

import sys
import json
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

# Import pytest for fixtures
import httpx
import pytest

from tokenbench.config import BenchmarkConfig


# 100 characters, 15 words
ENG_TEXT = "abcdef " * 14 + "ab"
# 120 characters, 18 words
RUS_TEXT = "привет " * 17 + "я"

TEST_API_KEY = "sk-or-test-0123456789"


class FakeOpenRouter:
    """
    In-memory stand-in for the OpenRouter models and chat-completions endpoints.

    Token counts are looked up by the exact user message content; unknown
    texts cost one token per character.
    """

    def __init__(self, models=None, token_counts=None):
        self.models = models if models is not None else [
            {"id": "m1", "name": "Model One", "architecture": {"modality": "text->text"}},
        ]
        self.token_counts = dict(token_counts or {})
        self.costs = {}
        self.failing_texts = set()
        self.models_status = 200
        self.requests = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)

        if request.url.path.endswith("/models"):
            if self.models_status != 200:
                return httpx.Response(self.models_status, json={"error": {"message": "Catalog down"}})
            return httpx.Response(200, json={"data": self.models})

        payload = json.loads(request.content)
        content = payload["messages"][0]["content"]

        if content in self.failing_texts:
            return httpx.Response(500, json={"error": {"message": "Upstream failure"}})

        usage = {
            "prompt_tokens": self.token_counts.get(content, len(content)),
            "completion_tokens": 1,
            "cost": self.costs.get(content, 0),
        }
        return httpx.Response(200, json={"usage": usage, "choices": [{"message": {"content": "ok"}}]})

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    @property
    def chat_requests(self) -> list:
        return [r for r in self.requests if r.url.path.endswith("/chat/completions")]

    @property
    def catalog_requests(self) -> list:
        return [r for r in self.requests if r.url.path.endswith("/models")]


@pytest.fixture
def corpus_dir(tmp_path):
    """Corpus with eng.txt and rus.txt, plus a model list that must be ignored."""
    directory = tmp_path / "udhr"
    directory.mkdir()
    (directory / "eng.txt").write_text(ENG_TEXT, encoding="utf-8")
    (directory / "rus.txt").write_text(RUS_TEXT, encoding="utf-8")
    (directory / "models.txt").write_text("m1\n", encoding="utf-8")
    return directory


@pytest.fixture
def results_dir(tmp_path):
    return tmp_path / "results"


@pytest.fixture
def config(corpus_dir, results_dir):
    """Benchmark configuration over the temporary corpus, with no request delay."""
    config = BenchmarkConfig()
    config.openrouter.api_key = TEST_API_KEY
    config.paths.corpus_dir = corpus_dir
    config.paths.results_dir = results_dir
    config.request_delay = 0
    return config


@pytest.fixture
def fake_openrouter():
    """Fake API returning 30 tokens for eng.txt and 42 for rus.txt under model m1."""
    return FakeOpenRouter(token_counts={ENG_TEXT: 30, RUS_TEXT: 42})


@pytest.fixture
def api_key():
    return TEST_API_KEY


@pytest.fixture
def make_openrouter():
    """Factory for FakeOpenRouter instances with custom models or token counts."""
    return FakeOpenRouter


@pytest.fixture
def corpus_texts():
    """Contents of eng.txt and rus.txt, keyed by filename."""
    return {"eng.txt": ENG_TEXT, "rus.txt": RUS_TEXT}
