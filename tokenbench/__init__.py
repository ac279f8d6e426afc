"""
Token benchmark for multilingual corpora.

This module provides tools for:
- Counting how many input tokens each model spends on the same text in many languages
- Running the count across a list of models with skip/override semantics
- Keeping an append-only index of runs for downstream viewers
"""

from tokenbench.config import BenchmarkConfig
from tokenbench.models import (
    FileEntry,
    ModelDescriptor,
    ProbeResult,
    ModelStats,
    ModelStatus,
    ModelReport,
    RunSummary,
    RunIndexEntry,
)

__version__ = "1.0.0"

__all__ = [
    "BenchmarkConfig",
    "FileEntry",
    "ModelDescriptor",
    "ProbeResult",
    "ModelStats",
    "ModelStatus",
    "ModelReport",
    "RunSummary",
    "RunIndexEntry",
]
