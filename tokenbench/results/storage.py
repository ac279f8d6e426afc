"""
File-based storage for benchmark results.

Provides:
- Per-model artifacts: ``<model>.csv`` (token table) and ``<model>.json`` (catalog metadata)
- Per-run detail files under ``runs/``
- The append-only run index ``index.json``
"""

import csv
import hashlib
import json
import os
import re
from datetime import datetime
from pathlib import Path

from ..exceptions import StorageError
from ..models import CSV_HEADER, ModelDescriptor, ProbeResult, RunIndexEntry


_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9._-]")

RUN_TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S_%f"


def model_id_to_filename(model_id: str) -> str:
    """Convert a model id to a filename-safe string (special characters become ``-``)."""
    return _UNSAFE_CHARS.sub("-", model_id)


def run_digest(file_count: int, model_count: int) -> str:
    """Short digest of the run scope, used to tell runs apart."""
    return hashlib.sha1(f"{file_count}:{model_count}".encode("utf-8")).hexdigest()[:8]


class ResultsStorage:
    """Handles persistence of benchmark results under one results directory."""

    def __init__(self, results_dir: Path):
        """
        Args:
            results_dir: Directory where artifacts and the run index live
        """
        self.results_dir = Path(results_dir)

    @property
    def index_path(self) -> Path:
        return self.results_dir / "index.json"

    @property
    def runs_dir(self) -> Path:
        return self.results_dir / "runs"

    def ensure_results_dir(self) -> None:
        """
        Create the results directory if it doesn't exist.

        Raises:
            StorageError: If the directory cannot be created
        """
        try:
            self.results_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Error creating results directory {self.results_dir}: {e}") from e

    # -- per-model artifacts -------------------------------------------------

    def csv_path(self, model_id: str) -> Path:
        return self.results_dir / f"{model_id_to_filename(model_id)}.csv"

    def json_path(self, model_id: str) -> Path:
        return self.results_dir / f"{model_id_to_filename(model_id)}.json"

    def existing_artifacts(self, model_id: str) -> list[Path]:
        """Artifacts already on disk for this model (empty list if none)."""
        return [
            path for path in (self.csv_path(model_id), self.json_path(model_id))
            if path.exists()
        ]

    @staticmethod
    def _staging_path(path: Path) -> Path:
        return path.with_name(f".{path.name}.tmp")

    def save_model_artifacts(
        self, descriptor: ModelDescriptor, results: list[ProbeResult]
    ) -> tuple[Path, Path]:
        """
        Write the model metadata file, then the token table.

        Both files are staged next to their targets and moved into place only
        once both were written, so existing artifacts are never truncated.
        The table is moved first: if the second move fails, the previous
        metadata sits beside the new table and the staged metadata is removed.

        Returns:
            Tuple of (json_path, csv_path)

        Raises:
            StorageError: If either file cannot be written
        """
        json_path = self.json_path(descriptor.id)
        csv_path = self.csv_path(descriptor.id)
        json_tmp = self._staging_path(json_path)
        csv_tmp = self._staging_path(csv_path)

        try:
            try:
                with open(json_tmp, "w", encoding="utf-8") as f:
                    json.dump(descriptor.to_dict(), f, indent=2, ensure_ascii=False)
            except (OSError, TypeError, ValueError) as e:
                raise StorageError(f"Failed to save model info: {e}") from e

            try:
                with open(csv_tmp, "w", newline="", encoding="utf-8") as f:
                    writer = csv.writer(f, lineterminator="\n")
                    writer.writerow(CSV_HEADER)
                    for result in results:
                        writer.writerow(result.to_row())
            except OSError as e:
                raise StorageError(f"Failed to save CSV: {e}") from e

            try:
                os.replace(csv_tmp, csv_path)
                os.replace(json_tmp, json_path)
            except OSError as e:
                raise StorageError(f"Failed to move results into place: {e}") from e

        finally:
            for tmp in (json_tmp, csv_tmp):
                if tmp.is_file():
                    tmp.unlink()

        return json_path, csv_path

    # -- runs and the run index ----------------------------------------------

    def generate_run_filename(self, captured_at: datetime, file_count: int, model_count: int) -> str:
        """Sortable, scope-tagged filename for a run detail file."""
        stamp = captured_at.strftime(RUN_TIMESTAMP_FORMAT)
        return f"{stamp}_{run_digest(file_count, model_count)}.json"

    def save_run_detail(self, filename: str, detail: dict) -> Path:
        """
        Save a run detail file under ``runs/``.

        Raises:
            StorageError: If the file cannot be written
        """
        path = self.runs_dir / filename
        try:
            self.runs_dir.mkdir(parents=True, exist_ok=True)
            with open(path, "w", encoding="utf-8") as f:
                json.dump(detail, f, indent=2, ensure_ascii=False)
        except OSError as e:
            raise StorageError(f"Failed to save run file {path}: {e}") from e
        return path

    def _read_index(self) -> list:
        """The run index as stored, entries untouched."""
        if not self.index_path.exists():
            return []

        try:
            with open(self.index_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise StorageError(f"Failed to read run index {self.index_path}: {e}") from e

        if not isinstance(data, list):
            raise StorageError(f"Run index {self.index_path} is not a list")

        return data

    def load_index(self) -> list[RunIndexEntry]:
        """
        Load the run index as typed entries.

        Raises:
            StorageError: If the index is not a JSON list of run entries
        """
        entries = []
        for item in self._read_index():
            try:
                entries.append(RunIndexEntry.from_dict(item))
            except (KeyError, TypeError, AttributeError) as e:
                raise StorageError(f"Malformed entry in run index {self.index_path}: {e}") from e
        return entries

    def append_index_entry(self, entry: RunIndexEntry) -> Path:
        """
        Append one entry to the run index.

        Existing entries are carried over exactly as read, unknown fields
        included. The new index is staged and moved into place, so a failed
        write leaves the previous index intact.

        Raises:
            StorageError: If the index cannot be read or written
        """
        entries = self._read_index()
        entries.append(entry.to_dict())

        self.ensure_results_dir()
        tmp = self._staging_path(self.index_path)
        try:
            with open(tmp, "w", encoding="utf-8") as f:
                json.dump(entries, f, indent=2, ensure_ascii=False)
            os.replace(tmp, self.index_path)
        except OSError as e:
            raise StorageError(f"Failed to write run index {self.index_path}: {e}") from e
        finally:
            if tmp.is_file():
                tmp.unlink()

        return self.index_path

    def list_runs(self) -> list[RunIndexEntry]:
        """All indexed runs, most recent first."""
        return list(reversed(self.load_index()))
