"""
Blob aggregate state and fold.

The repository lives in ``blobsource.aggregates.repository`` and is also
exported from ``blobsource``.
"""

from blobsource.aggregates.blob import Blob, fold

__all__ = [
    "Blob",
    "fold",
]
