"""
Benchmark configuration module.

Defines configuration settings for the token benchmark including:
- OpenRouter settings for the model catalog and token probes
- Corpus, model list and results paths
- Request pacing
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

load_dotenv()


# Model used when no model is given to the streaming "count" command
DEFAULT_PROBE_MODEL = "anthropic/claude-3-haiku:beta"

# Name of the model list file; never treated as corpus text
MODELS_FILENAME = "models.txt"

# Enough output tokens to get a response without paying for a completion
DEFAULT_PROBE_MAX_TOKENS = 16

# Seconds to wait after each file to stay under upstream rate limits
DEFAULT_REQUEST_DELAY = 0.5


@dataclass
class OpenRouterConfig:
    """Configuration for the OpenRouter catalog and chat-completions API."""

    api_key: Optional[str] = field(
        default_factory=lambda: os.getenv("OPENROUTER_API_KEY")
    )
    api_base: str = field(
        default_factory=lambda: os.getenv("OPENROUTER_API_BASE", "https://openrouter.ai/api/v1")
    )
    timeout: int = field(
        default_factory=lambda: int(os.getenv("REQUEST_TIMEOUT", "120"))
    )

    # Request headers
    site_url: str = "https://github.com/tokenbench/tokenbench"
    site_name: str = "UDHR Token Counter"

    @property
    def models_url(self) -> str:
        return f"{self.api_base.rstrip('/')}/models"

    @property
    def chat_url(self) -> str:
        return f"{self.api_base.rstrip('/')}/chat/completions"


@dataclass
class PathConfig:
    """Configuration for file paths."""

    corpus_dir: Path = field(
        default_factory=lambda: Path(os.getenv("TOKENBENCH_CORPUS_DIR", "udhr"))
    )
    models_file: Path = field(
        default_factory=lambda: Path(os.getenv("TOKENBENCH_MODELS_FILE", MODELS_FILENAME))
    )
    results_dir: Path = field(default_factory=lambda: Path("results"))

    @property
    def index_file(self) -> Path:
        return self.results_dir / "index.json"

    @property
    def runs_dir(self) -> Path:
        return self.results_dir / "runs"


@dataclass
class BenchmarkConfig:
    """Main benchmark configuration aggregating all sub-configs."""

    openrouter: OpenRouterConfig = field(default_factory=OpenRouterConfig)
    paths: PathConfig = field(default_factory=PathConfig)

    default_model: str = DEFAULT_PROBE_MODEL
    probe_max_tokens: int = DEFAULT_PROBE_MAX_TOKENS
    request_delay: float = field(
        default_factory=lambda: float(
            os.getenv("TOKENBENCH_REQUEST_DELAY", str(DEFAULT_REQUEST_DELAY))
        )
    )

    @classmethod
    def from_env(cls) -> "BenchmarkConfig":
        """Create configuration from environment variables."""
        return cls()

    @classmethod
    def from_cli_args(
        cls,
        api_key: Optional[str] = None,
        results_dir: Optional[str] = None,
        corpus_dir: Optional[str] = None,
        models_file: Optional[str] = None,
        request_delay: Optional[float] = None,
        **kwargs
    ) -> "BenchmarkConfig":
        """Create configuration from CLI arguments with env fallbacks."""
        config = cls()

        if api_key:
            config.openrouter.api_key = api_key

        if results_dir:
            config.paths.results_dir = Path(results_dir)

        if corpus_dir:
            config.paths.corpus_dir = Path(corpus_dir)

        if models_file:
            config.paths.models_file = Path(models_file)

        if request_delay is not None:
            config.request_delay = request_delay

        return config

    def validate(self, require_api_key: bool = True) -> list[str]:
        """Validate configuration and return list of errors."""
        errors = []

        if require_api_key and not self.openrouter.api_key:
            errors.append(
                "OPENROUTER_API_KEY not found in environment variables. "
                "Set it in .env, export it, or use --api-key"
            )

        if self.request_delay < 0:
            errors.append(f"Request delay must not be negative: {self.request_delay}")

        if self.probe_max_tokens < 1:
            errors.append(f"Probe max tokens must be at least 1: {self.probe_max_tokens}")

        return errors
