"""
Data models for the token benchmark.

Defines dataclasses for:
- Corpus files and model descriptors
- Per-file probe results and per-model reports
- Run summaries and run index entries
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Optional


CSV_HEADER = ["filename", "characters", "words", "tokens", "model_id"]


@dataclass(frozen=True)
class FileEntry:
    """A corpus file. ``character_count`` is filled in once the file is read."""

    path: Path
    filename: str
    character_count: int = 0

    @property
    def language(self) -> str:
        """Language code, i.e. the filename without its extension."""
        return Path(self.filename).stem


@dataclass
class ModelDescriptor:
    """A model as listed by the catalog; ``raw`` is kept verbatim for persistence."""

    id: str
    raw: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict) -> "ModelDescriptor":
        """Create from a catalog entry."""
        return cls(id=str(data.get("id", "")), raw=data)

    def to_dict(self) -> dict:
        """Return the catalog entry unchanged."""
        return self.raw or {"id": self.id}

    @property
    def name(self) -> str:
        return self.raw.get("name") or ""

    @property
    def description(self) -> str:
        return self.raw.get("description") or ""

    @property
    def created(self) -> Optional[int]:
        return self.raw.get("created")

    @property
    def output_modality(self) -> str:
        return self.raw.get("output_modality") or ""

    @property
    def modality(self) -> str:
        """Architecture modality, e.g. ``text->text`` or ``text+image->text``."""
        architecture = self.raw.get("architecture") or {}
        return architecture.get("modality") or ""

    @property
    def prompt_price(self) -> Optional[float]:
        """Prompt price per token in USD, if the catalog publishes one."""
        pricing = self.raw.get("pricing") or {}
        try:
            return float(pricing["prompt"])
        except (KeyError, TypeError, ValueError):
            return None


@dataclass
class ProbeResult:
    """Token count for one corpus file under one model."""

    filename: str
    character_count: int
    word_count: int
    token_count: int
    model_id: str
    estimated_cost: float = 0.0

    def to_row(self) -> list:
        """Row matching CSV_HEADER."""
        return [
            self.filename,
            self.character_count,
            self.word_count,
            self.token_count,
            self.model_id,
        ]

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "filename": self.filename,
            "character_count": self.character_count,
            "word_count": self.word_count,
            "token_count": self.token_count,
            "model_id": self.model_id,
            "estimated_cost": self.estimated_cost,
        }


class ModelStatus(Enum):
    """Final state of one model within a run."""

    SKIPPED = "skipped"
    PERSISTED = "persisted"
    FAILED = "failed"


@dataclass
class ModelStats:
    """Counters accumulated while probing one model."""

    total_files: int = 0
    successful_files: int = 0
    total_tokens: int = 0
    total_estimated_cost: float = 0.0
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "total_files": self.total_files,
            "successful_files": self.successful_files,
            "total_tokens": self.total_tokens,
            "total_estimated_cost": self.total_estimated_cost,
            "errors": list(self.errors),
        }


@dataclass
class ModelReport:
    """Outcome of running one model over the corpus."""

    model_id: str
    status: ModelStatus
    results: list[ProbeResult] = field(default_factory=list)
    stats: ModelStats = field(default_factory=ModelStats)
    descriptor: Optional[ModelDescriptor] = None

    @property
    def skipped(self) -> bool:
        return self.status is ModelStatus.SKIPPED

    @property
    def has_errors(self) -> bool:
        return bool(self.stats.errors)

    def add_result(self, result: ProbeResult) -> None:
        """Record a successful probe and accumulate its totals."""
        self.results.append(result)
        self.stats.successful_files += 1
        self.stats.total_tokens += result.token_count
        self.stats.total_estimated_cost += result.estimated_cost

    def add_error(self, message: str) -> None:
        self.stats.errors.append(message)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "model_id": self.model_id,
            "status": self.status.value,
            "results": [r.to_dict() for r in self.results],
            "stats": self.stats.to_dict(),
        }


@dataclass
class ModelSummary:
    """Per-model line of a run summary."""

    model_id: str
    skipped: bool = False
    has_errors: bool = False
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "model_id": self.model_id,
            "skipped": self.skipped,
            "has_errors": self.has_errors,
            "errors": list(self.errors),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ModelSummary":
        """Create from dictionary."""
        return cls(
            model_id=data["model_id"],
            skipped=data.get("skipped", False),
            has_errors=data.get("has_errors", False),
            errors=list(data.get("errors", [])),
        )


@dataclass
class RunSummary:
    """Totals across every model of one run."""

    total_models: int = 0
    processed_models: int = 0
    skipped_models: int = 0
    models_with_errors: int = 0
    total_files: int = 0
    successful_files: int = 0
    total_errors: int = 0
    total_tokens: int = 0
    total_cost: float = 0.0
    models: list[ModelSummary] = field(default_factory=list)

    @classmethod
    def from_reports(cls, reports: list[ModelReport]) -> "RunSummary":
        """Aggregate per-model reports; skipped models count separately from processed ones."""
        summary = cls(total_models=len(reports))

        for report in reports:
            if report.skipped:
                summary.skipped_models += 1
            else:
                summary.processed_models += 1
                if report.has_errors:
                    summary.models_with_errors += 1

            summary.total_files += report.stats.total_files
            summary.successful_files += report.stats.successful_files
            summary.total_errors += len(report.stats.errors)
            summary.total_tokens += report.stats.total_tokens
            summary.total_cost += report.stats.total_estimated_cost

            summary.models.append(ModelSummary(
                model_id=report.model_id,
                skipped=report.skipped,
                has_errors=report.has_errors,
                errors=list(report.stats.errors),
            ))

        return summary

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "total_models": self.total_models,
            "processed_models": self.processed_models,
            "skipped_models": self.skipped_models,
            "models_with_errors": self.models_with_errors,
            "total_files": self.total_files,
            "successful_files": self.successful_files,
            "total_errors": self.total_errors,
            "total_tokens": self.total_tokens,
            "total_cost": self.total_cost,
            "models": [m.to_dict() for m in self.models],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "RunSummary":
        """Create from dictionary."""
        return cls(
            total_models=data.get("total_models", 0),
            processed_models=data.get("processed_models", 0),
            skipped_models=data.get("skipped_models", 0),
            models_with_errors=data.get("models_with_errors", 0),
            total_files=data.get("total_files", 0),
            successful_files=data.get("successful_files", 0),
            total_errors=data.get("total_errors", 0),
            total_tokens=data.get("total_tokens", 0),
            total_cost=data.get("total_cost", 0.0),
            models=[ModelSummary.from_dict(m) for m in data.get("models", [])],
        )


@dataclass
class RunIndexEntry:
    """One line of the append-only run index."""

    generated_filename: str
    timestamp: str
    summary: RunSummary

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "generated_filename": self.generated_filename,
            "timestamp": self.timestamp,
            "summary": self.summary.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "RunIndexEntry":
        """Create from dictionary."""
        return cls(
            generated_filename=data["generated_filename"],
            timestamp=data["timestamp"],
            summary=RunSummary.from_dict(data.get("summary", {})),
        )
