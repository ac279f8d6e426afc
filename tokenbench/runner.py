"""
Benchmark orchestrator.

Coordinates the complete benchmark workflow:
1. Resolve the corpus files (optionally one language)
2. For each model: skip if results exist, resolve it in the catalog,
   probe every file sequentially, persist results if nothing failed
3. Aggregate per-model outcomes into a run summary
4. Write the run detail file and append it to the run index
"""

import asyncio
import sys
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import AsyncIterator, Awaitable, Callable, Optional

import httpx

from tokenbench.catalog import ModelCatalogClient
from tokenbench.config import BenchmarkConfig
from tokenbench.corpus import CorpusResolver, count_words
from tokenbench.exceptions import CatalogError, ConfigError, CorpusError, ProbeError, StorageError
from tokenbench.models import (
    FileEntry, ModelReport, ModelStatus, ProbeResult, RunIndexEntry, RunSummary
)
from tokenbench.probe import TokenProbe
from tokenbench.results.storage import ResultsStorage, model_id_to_filename


def read_model_list(path: Path) -> list[str]:
    """
    Read model ids from a model list file.

    One id per line; blank lines and lines starting with ``#`` are ignored.

    Raises:
        ConfigError: If the file cannot be read
    """
    try:
        content = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(
            f"Error reading {path}: {e}. Create it with one model ID per line"
        ) from e

    return [
        line.strip() for line in content.splitlines()
        if line.strip() and not line.strip().startswith("#")
    ]


@dataclass
class FileOutcome:
    """Result of probing one file: either a ProbeResult or an error message."""

    entry: FileEntry
    result: Optional[ProbeResult] = None
    error: Optional[str] = None


@dataclass
class RunResult:
    """Everything a run produced."""

    summary: RunSummary
    index_entry: RunIndexEntry
    reports: list[ModelReport] = field(default_factory=list)
    detail_path: Optional[Path] = None


class ModelBatchRunner:
    """
    Runs one model over the corpus.

    Handles:
    - Skip-if-exists (unless overridden)
    - Model resolution
    - Sequential, rate-limited probing
    - All-or-nothing persistence of the model's artifacts
    """

    def __init__(
        self,
        config: BenchmarkConfig,
        corpus: CorpusResolver,
        probe: TokenProbe,
        catalog: Optional[ModelCatalogClient] = None,
        storage: Optional[ResultsStorage] = None,
        log_callback: Optional[Callable[[str, str], None]] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Args:
            config: Benchmark configuration
            corpus: Corpus resolver used to read files
            probe: Token probe
            catalog: Model catalog client, needed by run_model only
            storage: Results storage, needed by run_model only
            log_callback: Optional callback for logging (level, message)
            sleep: Awaitable used for the delay after each file
        """
        self.config = config
        self.corpus = corpus
        self.catalog = catalog
        self.probe = probe
        self.storage = storage
        self.log_callback = log_callback
        self._sleep = sleep

    def _log(self, level: str, message: str) -> None:
        """Log a message."""
        if self.log_callback:
            self.log_callback(level, message)
        else:
            print(f"[{level.upper()}] {message}", file=sys.stderr)

    async def _process_file(self, model_id: str, entry: FileEntry) -> FileOutcome:
        try:
            entry, text = self.corpus.read(entry)
        except CorpusError as e:
            self._log("warning", f"Skipping {entry.filename} - read error")
            return FileOutcome(entry=entry, error=str(e))

        self._log("info", f"Processing: {entry.filename} ({entry.character_count} characters)")

        try:
            outcome = await self.probe.probe(text, model_id, entry.filename)
        except ProbeError as e:
            self._log("error", f"{entry.filename}: token counting error ({e.reason})")
            return FileOutcome(
                entry=entry,
                error=f"Token counting failed for file: {entry.filename} ({e.reason})",
            )

        word_count = count_words(text)
        self._log("info", f"{entry.filename}: {word_count} words, {outcome.token_count} input tokens")

        return FileOutcome(
            entry=entry,
            result=ProbeResult(
                filename=entry.filename,
                character_count=entry.character_count,
                word_count=word_count,
                token_count=outcome.token_count,
                model_id=model_id,
                estimated_cost=outcome.estimated_cost,
            ),
        )

    async def iter_file_outcomes(
        self, model_id: str, files: list[FileEntry]
    ) -> AsyncIterator[FileOutcome]:
        """
        Probe files one after another, yielding each outcome.

        Waits ``config.request_delay`` seconds after every file, whatever
        its outcome, to respect upstream rate limits.
        """
        for entry in files:
            yield await self._process_file(model_id, entry)
            await self._sleep(self.config.request_delay)

    async def run_model(
        self,
        model_id: str,
        files: Optional[list[FileEntry]] = None,
        language_filter: Optional[str] = None,
        override: bool = False,
    ) -> ModelReport:
        """
        Run one model over the corpus and persist its results.

        Args:
            model_id: OpenRouter model identifier
            files: Corpus files to probe (None = resolve from the corpus)
            language_filter: Language code used when resolving files
            override: Re-probe even if results already exist

        Returns:
            ModelReport with status SKIPPED, PERSISTED or FAILED

        Raises:
            CorpusError: If files must be resolved and the corpus is unreadable
        """
        self._log("info", "=" * 50)
        self._log("info", f"Processing model: {model_id}")

        if not override:
            existing = self.storage.existing_artifacts(model_id)
            if existing:
                self._log("info", f"Skipping {model_id} - results already exist")
                for path in existing:
                    self._log("info", f"  File exists: {path}")
                self._log("info", "  Use --override to force re-processing")
                return ModelReport(model_id=model_id, status=ModelStatus.SKIPPED)

        report = ModelReport(model_id=model_id, status=ModelStatus.FAILED)

        try:
            descriptor = await self.catalog.resolve_model(model_id)
        except CatalogError as e:
            self._log("error", f"Error fetching model info for {model_id}: {e}")
            report.add_error(f"Error fetching model info for {model_id}: {e}")
            return report

        if descriptor is None:
            self._log("error", f"Model {model_id} not found in API")
            report.add_error(f"Model {model_id} not found in API")
            return report

        report.descriptor = descriptor

        if files is None:
            files = self.corpus.list_files(language_filter)
        self._log("info", f"Files to process: {len(files)}")

        async for outcome in self.iter_file_outcomes(model_id, files):
            report.stats.total_files += 1
            if outcome.result is not None:
                report.add_result(outcome.result)
            else:
                report.add_error(outcome.error)

        if report.has_errors:
            self._log("error", "Errors occurred during processing. Files not saved.")
            return report

        try:
            json_path, csv_path = self.storage.save_model_artifacts(descriptor, report.results)
        except StorageError as e:
            self._log("error", str(e))
            report.add_error(str(e))
            return report

        report.status = ModelStatus.PERSISTED
        self._log("info", f"Model info saved to: {json_path}")
        self._log("info", f"Results saved to: {csv_path}")
        self._log("info", f"Files processed: {report.stats.total_files}")
        self._log("info", f"Successful: {report.stats.successful_files}")
        self._log("info", f"Total input tokens: {report.stats.total_tokens}")
        self._log("info", f"Total estimated cost: {report.stats.total_estimated_cost:.10f}")

        return report


class BenchmarkRunner:
    """
    Main orchestrator for benchmark runs.

    Drives ModelBatchRunner once per model id, in order, then records the
    run in the run index. A model's failure never stops the run, and every
    run is indexed, failed models included.
    """

    def __init__(
        self,
        config: BenchmarkConfig,
        api_key: Optional[str] = None,
        storage: Optional[ResultsStorage] = None,
        corpus: Optional[CorpusResolver] = None,
        catalog: Optional[ModelCatalogClient] = None,
        probe: Optional[TokenProbe] = None,
        log_callback: Optional[Callable[[str, str], None]] = None,
        clock: Optional[Callable[[], datetime]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the benchmark runner.

        Args:
            config: Benchmark configuration
            api_key: OpenRouter API key (defaults to the configured one)
            storage: Results storage (defaults to config.paths.results_dir)
            corpus: Corpus resolver (defaults to config.paths.corpus_dir)
            catalog: Model catalog client
            probe: Token probe
            log_callback: Optional callback for logging (level, message)
            clock: Returns the run capture time (defaults to datetime.now)
            transport: Optional httpx transport for the default clients

        Raises:
            MissingApiKeyError: If no API key is available for the default clients
        """
        self.config = config
        self.log_callback = log_callback
        self.clock = clock or datetime.now

        api_key = api_key or config.openrouter.api_key
        self.storage = storage or ResultsStorage(config.paths.results_dir)
        self.corpus = corpus or CorpusResolver(config.paths.corpus_dir)
        self.catalog = catalog or ModelCatalogClient(
            api_key, config, log_callback=log_callback, transport=transport
        )
        self.probe = probe or TokenProbe(
            api_key, config, log_callback=log_callback, transport=transport
        )

    def _log(self, level: str, message: str) -> None:
        """Log a message."""
        if self.log_callback:
            self.log_callback(level, message)
        else:
            print(f"[{level.upper()}] {message}", file=sys.stderr)

    async def run_all(
        self,
        model_ids: list[str],
        language_filter: Optional[str] = None,
        override: bool = False,
    ) -> RunResult:
        """
        Execute a complete benchmark run.

        Args:
            model_ids: Models to benchmark, processed in this order
            language_filter: Optional language code restricting the corpus
            override: Re-probe models whose results already exist

        Returns:
            RunResult with summary, index entry and per-model reports

        Raises:
            ConfigError: If no models are given
            StorageError: If the results directory cannot be created
            CorpusError: If the corpus directory cannot be read
        """
        if not model_ids:
            raise ConfigError("No models specified. Use --model <id> or create models.txt")

        self.storage.ensure_results_dir()
        files = self.corpus.list_files(language_filter)
        captured_at = self.clock()

        if language_filter:
            self._log("info", f"Language filter: {language_filter}")
        self._log("info", f"Models: {len(model_ids)}, files: {len(files)}")

        batch = ModelBatchRunner(
            self.config, self.corpus, self.probe,
            catalog=self.catalog, storage=self.storage, log_callback=self.log_callback,
        )

        reports: list[ModelReport] = []
        claimed: dict[str, str] = {}

        try:
            for model_id in model_ids:
                safe_name = model_id_to_filename(model_id)
                owner = claimed.setdefault(safe_name, model_id)

                if owner != model_id:
                    message = (
                        f"Result filename '{safe_name}' for {model_id} "
                        f"collides with model {owner}"
                    )
                    self._log("error", message)
                    report = ModelReport(model_id=model_id, status=ModelStatus.FAILED)
                    report.add_error(message)
                else:
                    report = await batch.run_model(model_id, files=files, override=override)

                reports.append(report)
        finally:
            await self.close()

        summary = RunSummary.from_reports(reports)
        filename = self.storage.generate_run_filename(captured_at, len(files), len(model_ids))

        detail_path = self.storage.save_run_detail(filename, {
            "generated_filename": filename,
            "timestamp": captured_at.isoformat(),
            "language_filter": language_filter,
            "override": override,
            "models": list(model_ids),
            "files": [entry.filename for entry in files],
            "summary": summary.to_dict(),
            "reports": [report.to_dict() for report in reports],
        })

        index_entry = RunIndexEntry(
            generated_filename=filename,
            timestamp=captured_at.isoformat(),
            summary=summary,
        )
        self.storage.append_index_entry(index_entry)
        self._log("info", f"Run recorded: {detail_path}")

        return RunResult(
            summary=summary,
            index_entry=index_entry,
            reports=reports,
            detail_path=detail_path,
        )

    async def close(self) -> None:
        """Clean up resources."""
        await self.catalog.close()
        await self.probe.close()
