"""
Token benchmark CLI - Command line interface for the benchmark system.

Provides commands for:
- Running token benchmarks over one or many models
- Streaming token counts as CSV without saving results
- Listing models, corpus languages, corpus files and past runs

Data (CSV rows, listings) is written to stdout; progress, status and errors
are written to stderr so stdout stays parseable.
"""

import argparse
import asyncio
import csv
import sys
from typing import Callable, Optional

from tokenbench.catalog import (
    ModelCatalogClient, format_models_plain, format_models_table, is_text_to_text
)
from tokenbench.config import BenchmarkConfig
from tokenbench.corpus import CorpusResolver
from tokenbench.exceptions import CatalogError, ConfigError, CorpusError, StorageError
from tokenbench.models import CSV_HEADER, RunSummary
from tokenbench.probe import TokenProbe
from tokenbench.results.storage import ResultsStorage
from tokenbench.runner import BenchmarkRunner, ModelBatchRunner, read_model_list


# ANSI color codes for terminal output
class Colors:
    """Terminal color codes."""
    HEADER = '\033[95m'
    BLUE = '\033[94m'
    CYAN = '\033[96m'
    GREEN = '\033[92m'
    YELLOW = '\033[93m'
    RED = '\033[91m'
    ENDC = '\033[0m'
    BOLD = '\033[1m'


def colored(text: str, color: str) -> str:
    """Apply color to text if stderr is a terminal."""
    if sys.stderr.isatty():
        return f"{color}{text}{Colors.ENDC}"
    return text


def make_log_callback(verbose: bool = False) -> Callable[[str, str], None]:
    """Build a colored stderr logging callback; debug lines only when verbose."""
    level_colors = {
        "info": Colors.CYAN,
        "warning": Colors.YELLOW,
        "error": Colors.RED,
        "debug": Colors.BLUE,
    }

    def log_callback(level: str, message: str) -> None:
        if level.lower() == "debug" and not verbose:
            return
        color = level_colors.get(level.lower(), Colors.ENDC)
        prefix = colored(f"[{level.upper()}]", color)
        print(f"{prefix} {message}", file=sys.stderr)

    return log_callback


def emit(line: str = "") -> None:
    """Write narration to stderr."""
    print(line, file=sys.stderr)


def _build_config(args: argparse.Namespace) -> BenchmarkConfig:
    return BenchmarkConfig.from_cli_args(
        api_key=getattr(args, "api_key", None),
        results_dir=getattr(args, "results_dir", None),
        corpus_dir=getattr(args, "corpus_dir", None),
        models_file=getattr(args, "models_file", None),
        request_delay=getattr(args, "delay", None),
    )


def _check_config(config: BenchmarkConfig, log: Callable[[str, str], None],
                  require_api_key: bool = True) -> bool:
    errors = config.validate(require_api_key=require_api_key)
    for error in errors:
        log("error", error)
    if errors:
        log("error", "Run 'tokenbench --help' for help")
    return not errors


def cmd_run(args: argparse.Namespace) -> int:
    """Execute benchmark run command."""
    log = make_log_callback(args.verbose)
    config = _build_config(args)

    if not _check_config(config, log):
        return 1

    if args.model:
        model_ids = [args.model]
        log("info", f"Using specified model: {args.model}")
    else:
        try:
            model_ids = read_model_list(config.paths.models_file)
        except ConfigError as e:
            log("error", str(e))
            return 1
        log("info", f"Using models from {config.paths.models_file}: {len(model_ids)} model(s)")

    if not model_ids:
        log("error", "No models specified. Use --model <id> or create models.txt")
        return 1

    emit(colored("Starting token benchmarking via OpenRouter API", Colors.BOLD))
    emit("=" * 50)
    log("info", f"Results directory: {config.paths.results_dir}")

    runner = BenchmarkRunner(config, log_callback=log)

    try:
        result = asyncio.run(runner.run_all(
            model_ids,
            language_filter=args.language,
            override=args.override,
        ))
    except KeyboardInterrupt:
        emit(colored("\nBenchmark interrupted by user", Colors.YELLOW))
        return 130
    except (ConfigError, CorpusError, StorageError) as e:
        log("error", str(e))
        return 1

    print_run_summary(result.summary)
    return 1 if result.summary.models_with_errors else 0


def cmd_count(args: argparse.Namespace) -> int:
    """Stream token counts for the corpus as CSV on stdout, without saving."""
    log = make_log_callback(args.verbose)
    config = _build_config(args)

    if not _check_config(config, log):
        return 1

    corpus = CorpusResolver(config.paths.corpus_dir)
    try:
        files = corpus.list_files(args.language)
    except CorpusError as e:
        log("error", str(e))
        return 1

    if args.language and not files:
        log("error", f"File not found for language: {args.language}")
        log("error", "Use 'tokenbench languages' to view available languages")
        return 1

    model_id = args.model or config.default_model
    log("info", f"Model: {model_id}")
    log("info", f"Files found: {len(files)}")

    batch = ModelBatchRunner(
        config,
        corpus,
        TokenProbe(config.openrouter.api_key, config, log_callback=log),
        log_callback=log,
    )

    writer = csv.writer(sys.stdout, lineterminator="\n")
    writer.writerow(CSV_HEADER)

    async def _stream() -> tuple[int, int, int]:
        successful = failed = tokens = 0
        try:
            async for outcome in batch.iter_file_outcomes(model_id, files):
                if outcome.result is None:
                    failed += 1
                    continue
                writer.writerow(outcome.result.to_row())
                sys.stdout.flush()
                successful += 1
                tokens += outcome.result.token_count
        finally:
            await batch.probe.close()
        return successful, failed, tokens

    try:
        successful, failed, tokens = asyncio.run(_stream())
    except KeyboardInterrupt:
        emit(colored("\nInterrupted by user", Colors.YELLOW))
        return 130

    emit()
    emit("=" * 50)
    emit("RESULTS:")
    emit(f"Files processed: {successful + failed}")
    emit(f"Successful: {successful}")
    emit(f"Errors: {failed}")
    emit(f"Total input tokens: {tokens}")

    return 1 if failed else 0


def cmd_models(args: argparse.Namespace) -> int:
    """List models available from the catalog."""
    log = make_log_callback(args.verbose)
    config = _build_config(args)

    if not _check_config(config, log):
        return 1

    catalog = ModelCatalogClient(config.openrouter.api_key, config, log_callback=log)

    async def _fetch():
        try:
            return await catalog.list_models()
        finally:
            await catalog.close()

    try:
        models = asyncio.run(_fetch())
    except CatalogError as e:
        log("error", f"Failed to get models list: {e}")
        return 1

    if not args.all:
        models = [m for m in models if is_text_to_text(m)]

    if not models:
        log("warning", "No models found")
        return 0

    lines = format_models_plain(models) if args.plain else format_models_table(models)
    for line in lines:
        print(line)

    log("info", f"{len(models)} model(s)")
    return 0


def cmd_languages(args: argparse.Namespace) -> int:
    """List language codes available in the corpus."""
    log = make_log_callback(False)
    config = _build_config(args)

    try:
        languages = CorpusResolver(config.paths.corpus_dir).list_languages()
    except CorpusError as e:
        log("error", str(e))
        return 1

    for language in languages:
        print(language)
    return 0


def cmd_files(args: argparse.Namespace) -> int:
    """List corpus files."""
    log = make_log_callback(False)
    config = _build_config(args)

    try:
        files = CorpusResolver(config.paths.corpus_dir).list_files()
    except CorpusError as e:
        log("error", str(e))
        return 1

    for entry in files:
        print(entry.filename)

    emit(f"Total files: {len(files)}")
    return 0


def cmd_runs(args: argparse.Namespace) -> int:
    """List benchmark runs recorded in the run index."""
    log = make_log_callback(False)
    storage = ResultsStorage(args.results_dir)

    try:
        runs = storage.list_runs()
    except StorageError as e:
        log("error", str(e))
        return 1

    if not runs:
        emit(colored("No benchmark runs found.", Colors.YELLOW))
        return 0

    print(f"{'Run file':<44} {'Models':>7} {'Skipped':>8} {'Failed':>7} {'Files':>6} {'Tokens':>12}")
    print("-" * 89)

    for entry in runs:
        s = entry.summary
        print(
            f"{entry.generated_filename:<44} {s.total_models:>7} {s.skipped_models:>8} "
            f"{s.models_with_errors:>7} {s.total_files:>6} {s.total_tokens:>12}"
        )

    return 0


def print_run_summary(summary: RunSummary) -> None:
    """Print a summary of a benchmark run to stderr."""
    emit()
    emit("=" * 50)
    emit(colored("SUMMARY", Colors.BOLD))
    emit("=" * 50)
    emit(f"Models processed: {summary.processed_models} of {summary.total_models}")
    if summary.skipped_models:
        emit(f"Models skipped: {summary.skipped_models}")
    if summary.models_with_errors:
        emit(colored(f"Models with errors: {summary.models_with_errors}", Colors.RED))
    emit(f"Total files processed: {summary.total_files}")
    emit(f"Successfully processed: {summary.successful_files}")
    if summary.total_errors:
        emit(colored(f"Total errors: {summary.total_errors}", Colors.RED))
    emit(f"Total tokens: {summary.total_tokens:,}")
    emit(f"Total cost: {summary.total_cost:.10f}")

    failed = [m for m in summary.models if m.errors]
    if failed:
        emit()
        emit("=" * 50)
        emit(colored("ERRORS DETAILS", Colors.BOLD))
        emit("=" * 50)
        for model in failed:
            emit(colored(f"\n{model.model_id} ({len(model.errors)} error(s)):", Colors.RED))
            for error in model.errors:
                emit(f"   - {error}")

    emit()
    emit("=" * 50)
    emit(colored("All models processed!", Colors.GREEN))


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    corpus_options = argparse.ArgumentParser(add_help=False)
    corpus_options.add_argument(
        "--corpus-dir",
        help="Directory of <language>.txt files (default: udhr, or TOKENBENCH_CORPUS_DIR)"
    )

    api_options = argparse.ArgumentParser(add_help=False)
    api_options.add_argument(
        "--api-key",
        help="OpenRouter API key. Can also be set via OPENROUTER_API_KEY env var."
    )
    api_options.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Output raw API requests and responses (on stderr)"
    )

    parser = argparse.ArgumentParser(
        prog="tokenbench",
        description="Token benchmarking - compare how models tokenize the same multilingual corpus",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Benchmark every model listed in models.txt
  tokenbench run ./results

  # A single model, a single language
  tokenbench run ./results --model anthropic/claude-3-haiku:beta --language rus

  # Re-probe models that already have results
  tokenbench run ./results --override

  # Stream counts as CSV without saving
  tokenbench count --model openai/gpt-4o > counts.csv

  # Listings
  tokenbench models
  tokenbench languages
  tokenbench runs ./results

Environment variables:
  OPENROUTER_API_KEY    OpenRouter API key (required for run, count and models)
        """
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Run command
    run_parser = subparsers.add_parser(
        "run", parents=[corpus_options, api_options], help="Run a benchmark and save results"
    )
    run_parser.add_argument("results_dir", help="Directory where results will be saved")
    run_parser.add_argument(
        "-m", "--model",
        help="Model ID to use (if not specified, reads from the model list file)"
    )
    run_parser.add_argument(
        "-l", "--language",
        help="Only process the file for this language code (e.g. rus, eng)"
    )
    run_parser.add_argument(
        "--override",
        action="store_true",
        help="Overwrite existing result files"
    )
    run_parser.add_argument(
        "--models-file",
        help="Model list file, one model ID per line (default: models.txt)"
    )
    run_parser.add_argument(
        "--delay",
        type=float,
        help="Seconds to wait after each file (default: 0.5)"
    )
    run_parser.set_defaults(func=cmd_run)

    # Count command
    count_parser = subparsers.add_parser(
        "count", parents=[corpus_options, api_options],
        help="Print token counts as CSV on stdout without saving"
    )
    count_parser.add_argument("-m", "--model", help="Model ID to use")
    count_parser.add_argument("-l", "--language", help="Only process this language code")
    count_parser.add_argument("--delay", type=float, help="Seconds to wait after each file")
    count_parser.set_defaults(func=cmd_count)

    # Models command
    models_parser = subparsers.add_parser(
        "models", parents=[api_options], help="List available models"
    )
    models_parser.add_argument(
        "--all",
        action="store_true",
        help="Include models that do not look text-to-text"
    )
    models_parser.add_argument(
        "--plain",
        action="store_true",
        help="One '<modality> - <id>' line per model instead of a table"
    )
    models_parser.set_defaults(func=cmd_models)

    # Languages command
    languages_parser = subparsers.add_parser(
        "languages", parents=[corpus_options], help="List corpus language codes"
    )
    languages_parser.set_defaults(func=cmd_languages)

    # Files command
    files_parser = subparsers.add_parser(
        "files", parents=[corpus_options], help="List corpus files"
    )
    files_parser.set_defaults(func=cmd_files)

    # Runs command
    runs_parser = subparsers.add_parser("runs", help="List recorded benchmark runs")
    runs_parser.add_argument("results_dir", help="Results directory to read the run index from")
    runs_parser.set_defaults(func=cmd_runs)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point for the CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help(sys.stderr)
        return 0

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
