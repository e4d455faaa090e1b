"""Cross-cutting helpers: constants, scratch directories, batching."""

from __future__ import annotations

import shutil
from collections.abc import Sequence
from pathlib import Path
from typing import TypeVar

T = TypeVar("T")

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

ALLOWED_COLLECTIONS = frozenset({"Бакалаврські роботи", "Магістерські роботи"})
COLLECTIONS_ATTR = "collections"
BUCKET_URL_ATTR = "bucketUrl"
CHAPTERS_ATTR = "chapters"
PDF_EXTENSION = ".pdf"
TEXT_EXTENSION = ".txt"
SOURCE_FILE_NAME = "source.pdf"
DEFAULT_MAX_WORKERS = 4

# Fraction of the page height treated as header (top) and footer (bottom).
HEADER_BAND = 0.067
FOOTER_BAND = 0.067


# ---------------------------------------------------------------------------
# Scratch directories
# ---------------------------------------------------------------------------


def scratch_dir_for(working_dir: Path, document_id: str) -> Path:
    """Return the private scratch directory of *document_id*."""
    return working_dir / document_id


def remove_scratch_dir(path: Path) -> bool:
    """Delete *path* recursively. Returns ``False`` if it did not exist."""
    if not path.exists():
        return False
    shutil.rmtree(path)
    return True


# ---------------------------------------------------------------------------
# Batching
# ---------------------------------------------------------------------------


def partition(items: Sequence[T], size: int) -> list[list[T]]:
    """Split *items* into contiguous batches of *size*; the last may be shorter."""
    if size < 1:
        raise ValueError(f"batch size must be positive, got {size}")
    return [list(items[i : i + size]) for i in range(0, len(items), size)]
