"""
Benchmark results persistence module.

Provides storage of per-model artifacts, run detail files and the run index.
"""

from .storage import ResultsStorage, model_id_to_filename

__all__ = ["ResultsStorage", "model_id_to_filename"]
