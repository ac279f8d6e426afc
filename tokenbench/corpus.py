"""
Corpus access for the token benchmark.

The corpus is a flat directory of ``<language-code>.txt`` files holding the
same reference text in each language. The model list file may live in the
same directory and is never returned as corpus text.
"""

import dataclasses
import re
from pathlib import Path
from typing import Iterable, Optional

from tokenbench.config import MODELS_FILENAME
from tokenbench.exceptions import CorpusError
from tokenbench.models import FileEntry


# Word delimiters: whitespace and common punctuation
_WORD_SPLIT = re.compile(r"""[\s.,;:!?()\[\]{}"'-]+""")


def count_words(text: str) -> int:
    """Count words, splitting on whitespace and punctuation."""
    return sum(1 for word in _WORD_SPLIT.split(text) if word)


class CorpusResolver:
    """Enumerates and reads the per-language corpus files."""

    def __init__(self, corpus_dir: Path, reserved_names: Iterable[str] = (MODELS_FILENAME,)):
        self.corpus_dir = Path(corpus_dir)
        self.reserved_names = frozenset(reserved_names)

    def _iter_text_files(self) -> list[Path]:
        try:
            return [
                path for path in self.corpus_dir.iterdir()
                if path.is_file()
                and path.suffix == ".txt"
                and path.name not in self.reserved_names
            ]
        except OSError as e:
            raise CorpusError(f"Error reading directory {self.corpus_dir}: {e}") from e

    def list_files(self, language_filter: Optional[str] = None) -> list[FileEntry]:
        """
        List corpus files sorted by filename.

        Args:
            language_filter: Language code; only the file whose name without
                extension equals it exactly is returned.

        Returns:
            List of FileEntry (character counts not yet known)

        Raises:
            CorpusError: If the corpus directory is missing or unreadable
        """
        entries = []
        for path in self._iter_text_files():
            if language_filter is not None and path.stem != language_filter:
                continue
            entries.append(FileEntry(path=path, filename=path.name))

        return sorted(entries, key=lambda entry: entry.filename)

    def list_languages(self) -> list[str]:
        """Sorted language codes available in the corpus."""
        return [entry.language for entry in self.list_files()]

    def read(self, entry: FileEntry) -> tuple[FileEntry, str]:
        """
        Read a corpus file.

        Returns:
            Tuple of (entry with character_count set, text)

        Raises:
            CorpusError: If the file cannot be read, is not UTF-8, or is empty
        """
        try:
            text = entry.path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise CorpusError(f"Failed to read file: {entry.filename} ({e})") from e

        if not text:
            raise CorpusError(f"Failed to read file: {entry.filename} (empty)")

        return dataclasses.replace(entry, character_count=len(text)), text
