"""
Unit tests for the command line interface.

Network clients built by the CLI are pointed at the fake OpenRouter API by
patching the classes the cli module instantiates.
"""

import functools
import json

import pytest

from tokenbench import cli
from tokenbench.catalog import ModelCatalogClient
from tokenbench.probe import TokenProbe
from tokenbench.runner import BenchmarkRunner


@pytest.fixture
def patched_api(monkeypatch, fake_openrouter):
    """Route every client the CLI creates through the fake API."""
    transport = fake_openrouter.transport
    monkeypatch.setattr(cli, "BenchmarkRunner", functools.partial(BenchmarkRunner, transport=transport))
    monkeypatch.setattr(cli, "ModelCatalogClient", functools.partial(ModelCatalogClient, transport=transport))
    monkeypatch.setattr(cli, "TokenProbe", functools.partial(TokenProbe, transport=transport))
    return fake_openrouter


class TestParser:
    """Test argument parsing."""

    def test_run_arguments(self):
        args = cli.create_parser().parse_args(
            ["run", "out", "--model", "m1", "--language", "rus", "--override", "--delay", "0"]
        )

        assert args.command == "run"
        assert args.results_dir == "out"
        assert args.model == "m1"
        assert args.language == "rus"
        assert args.override is True
        assert args.delay == 0.0

    def test_run_requires_results_dir(self):
        with pytest.raises(SystemExit):
            cli.create_parser().parse_args(["run"])

    def test_no_command_prints_help(self, capsys):
        assert cli.main([]) == 0
        assert capsys.readouterr().out == ""


class TestRunCommand:
    """Test the run command end to end."""

    def test_run_writes_results_and_keeps_stdout_clean(
        self, patched_api, corpus_dir, results_dir, api_key, capsys
    ):
        exit_code = cli.main([
            "run", str(results_dir), "--corpus-dir", str(corpus_dir),
            "--api-key", api_key, "--model", "m1", "--delay", "0",
        ])

        captured = capsys.readouterr()
        assert exit_code == 0
        assert captured.out == ""
        assert "SUMMARY" in captured.err
        assert "Total tokens: 72" in captured.err
        assert (results_dir / "m1.csv").exists()
        assert len(json.loads((results_dir / "index.json").read_text(encoding="utf-8"))) == 1

    def test_run_reads_model_list(self, patched_api, corpus_dir, results_dir, api_key, capsys):
        exit_code = cli.main([
            "run", str(results_dir), "--corpus-dir", str(corpus_dir), "--api-key", api_key,
            "--models-file", str(corpus_dir / "models.txt"), "--delay", "0",
        ])

        assert exit_code == 0
        assert (results_dir / "m1.json").exists()

    def test_run_with_failed_model_exits_nonzero(
        self, patched_api, corpus_dir, results_dir, api_key, capsys
    ):
        exit_code = cli.main([
            "run", str(results_dir), "--corpus-dir", str(corpus_dir),
            "--api-key", api_key, "--model", "ghost", "--delay", "0",
        ])

        assert exit_code == 1
        assert "Model ghost not found in API" in capsys.readouterr().err
        assert (results_dir / "index.json").exists()

    def test_missing_api_key(self, monkeypatch, patched_api, corpus_dir, results_dir, capsys):
        monkeypatch.delenv("OPENROUTER_API_KEY", raising=False)

        exit_code = cli.main(["run", str(results_dir), "--corpus-dir", str(corpus_dir), "--model", "m1"])

        assert exit_code == 1
        assert "OPENROUTER_API_KEY" in capsys.readouterr().err
        assert patched_api.requests == []
        assert not results_dir.exists()

    def test_missing_model_list(self, patched_api, corpus_dir, results_dir, api_key, tmp_path, capsys):
        exit_code = cli.main([
            "run", str(results_dir), "--corpus-dir", str(corpus_dir), "--api-key", api_key,
            "--models-file", str(tmp_path / "nope.txt"),
        ])

        assert exit_code == 1
        assert "one model ID per line" in capsys.readouterr().err


class TestCountCommand:
    """Test streaming counts as CSV."""

    def test_count_streams_csv(self, patched_api, corpus_dir, results_dir, api_key, capsys):
        exit_code = cli.main([
            "count", "--corpus-dir", str(corpus_dir), "--api-key", api_key,
            "--model", "m1", "--delay", "0",
        ])

        captured = capsys.readouterr()
        assert exit_code == 0
        assert captured.out == (
            "filename,characters,words,tokens,model_id\n"
            "eng.txt,100,15,30,m1\n"
            "rus.txt,120,18,42,m1\n"
        )
        assert "Total input tokens: 72" in captured.err
        assert not results_dir.exists()

    def test_count_builds_no_catalog_or_storage(
        self, monkeypatch, patched_api, corpus_dir, api_key, capsys
    ):
        """Streaming builds no catalog client or results storage and never lists models."""
        def unexpected(*args, **kwargs):
            raise AssertionError("count must not build this collaborator")

        monkeypatch.setattr(cli, "ModelCatalogClient", unexpected)
        monkeypatch.setattr(cli, "ResultsStorage", unexpected)

        exit_code = cli.main([
            "count", "--corpus-dir", str(corpus_dir), "--api-key", api_key,
            "--model", "m1", "--delay", "0",
        ])

        assert exit_code == 0
        assert patched_api.catalog_requests == []
        assert len(patched_api.chat_requests) == 2

    def test_count_unknown_language(self, patched_api, corpus_dir, api_key, capsys):
        exit_code = cli.main([
            "count", "--corpus-dir", str(corpus_dir), "--api-key", api_key, "--language", "zzz",
        ])

        assert exit_code == 1
        assert "File not found for language: zzz" in capsys.readouterr().err


class TestListingCommands:
    """Test the listing commands."""

    def test_models_table(self, patched_api, api_key, capsys):
        patched_api.models.append({"id": "openai/dall-e-3", "architecture": {"modality": "image"}})

        assert cli.main(["models", "--api-key", api_key]) == 0

        out = capsys.readouterr().out
        assert "| Model ID" in out
        assert "m1" in out
        assert "dall-e" not in out

    def test_models_plain_all(self, patched_api, api_key, capsys):
        patched_api.models.append({"id": "openai/dall-e-3", "architecture": {"modality": "image"}})

        assert cli.main(["models", "--api-key", api_key, "--plain", "--all"]) == 0

        assert capsys.readouterr().out.splitlines() == [
            "text->text - m1",
            "image - openai/dall-e-3",
        ]

    def test_models_catalog_error(self, patched_api, api_key, capsys):
        patched_api.models_status = 401

        assert cli.main(["models", "--api-key", api_key]) == 1
        assert "Failed to get models list" in capsys.readouterr().err

    def test_languages(self, corpus_dir, capsys):
        assert cli.main(["languages", "--corpus-dir", str(corpus_dir)]) == 0
        assert capsys.readouterr().out.splitlines() == ["eng", "rus"]

    def test_files(self, corpus_dir, capsys):
        assert cli.main(["files", "--corpus-dir", str(corpus_dir)]) == 0

        captured = capsys.readouterr()
        assert captured.out.splitlines() == ["eng.txt", "rus.txt"]
        assert "Total files: 2" in captured.err

    def test_languages_missing_corpus(self, tmp_path, capsys):
        assert cli.main(["languages", "--corpus-dir", str(tmp_path / "none")]) == 1

    def test_runs(self, patched_api, corpus_dir, results_dir, api_key, capsys):
        cli.main([
            "run", str(results_dir), "--corpus-dir", str(corpus_dir),
            "--api-key", api_key, "--model", "m1", "--delay", "0",
        ])
        capsys.readouterr()

        assert cli.main(["runs", str(results_dir)]) == 0

        lines = capsys.readouterr().out.splitlines()
        assert lines[0].startswith("Run file")
        assert len(lines) == 3
        assert lines[2].endswith("72")

    def test_runs_empty(self, results_dir, capsys):
        assert cli.main(["runs", str(results_dir)]) == 0

        captured = capsys.readouterr()
        assert captured.out == ""
        assert "No benchmark runs found" in captured.err
