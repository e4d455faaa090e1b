"""Shared fixtures for the converter test suite.

Firestore, Cloud Storage and the PDF extractors are replaced by in-memory
fakes. The fake storage writes the stored text into the scratch PDF and the
fake extractor reads it back, so the whole task pipeline runs on real files.
"""

from __future__ import annotations

import logging
import sys
import threading
from pathlib import Path
from typing import Any

import pytest

from thesis_converter.errors import IOFailure
from thesis_converter.metadata import record_from_mapping
from thesis_converter.models import ConverterSettings, DocumentRecord

# ---------------------------------------------------------------------------
# Configure verbose logging for test debugging
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=logging.DEBUG,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    stream=sys.stderr,
    force=True,
)
log = logging.getLogger("conftest")

BACHELOR = "Бакалаврські роботи"
MASTER = "Магістерські роботи"
SOURCE_BUCKET = "theses-archive"
TARGET_BUCKET = "theses-text"

# Start anchor, one numbered header, end anchor -> two chapters.
THESIS_TEXT = (
    "Національний технічний університет України\n"
    "РЕФЕРАТ\n"
    "Робота містить два розділи.\n"
    "1 ВСТУП\n"
    "Актуальність теми дослідження.\n"
    "СПИСОК ЛІТЕРАТУРИ\n"
    "1. Іваненко І. Методи аналізу.\n"
)
THESIS_CHAPTERS = {
    "РЕФЕРАТ": "РЕФЕРАТ Робота містить два розділи. ",
    "1 ВСТУП": "1 ВСТУП Актуальність теми дослідження. ",
}


def pdf_url(name: str) -> str:
    return f"gs://{SOURCE_BUCKET}/2023/{name}.pdf"


def thesis_fields(name: str, collections: tuple[str, ...] = (BACHELOR,)) -> dict[str, Any]:
    return {"collections": list(collections), "bucketUrl": pdf_url(name)}


class FakeRef:
    def __init__(self, identifier: str) -> None:
        self.id = identifier

    def __repr__(self) -> str:
        return f"FakeRef({self.id!r})"


class FakeStore:
    """Metadata store keeping documents as plain dicts."""

    def __init__(self, documents: dict[str, dict[str, Any]] | None = None) -> None:
        self.documents = documents or {}
        self.reads: list[str] = []
        self.updates: list[tuple[str, dict[str, str]]] = []
        self.update_error: Exception | None = None
        self._lock = threading.Lock()

    def list_documents(self, collection_id: str) -> list[FakeRef]:
        return [FakeRef(identifier) for identifier in self.documents]

    def read(self, ref: FakeRef) -> DocumentRecord:
        with self._lock:
            self.reads.append(ref.id)
            return record_from_mapping(ref.id, dict(self.documents[ref.id]))

    def update_chapters(self, ref: FakeRef, chapters: dict[str, str]) -> None:
        if self.update_error is not None:
            raise self.update_error
        with self._lock:
            self.documents[ref.id]["chapters"] = dict(chapters)
            self.updates.append((ref.id, dict(chapters)))


class FakeStorage:
    """Object storage serving text as the "PDF" bytes.

    ``failures`` is the number of downloads that raise ``IOFailure`` before
    downloads start to succeed; ``None`` means every download fails.
    """

    def __init__(self, objects: dict[str, str] | None = None, failures: int | None = 0) -> None:
        self.objects = objects or {}
        self.failures = failures
        self.downloads: list[tuple[str, str]] = []
        self.uploads: dict[tuple[str, str], str] = {}
        self._lock = threading.Lock()

    def download(self, bucket: str, path: str, destination: Path) -> Path:
        with self._lock:
            self.downloads.append((bucket, path))
            failing = self.failures is None or len(self.downloads) <= self.failures
        if failing:
            raise IOFailure(f"simulated outage for gs://{bucket}/{path}")
        destination.parent.mkdir(parents=True, exist_ok=True)
        destination.write_text(self.objects.get(path, THESIS_TEXT), encoding="utf-8")
        return destination

    def upload_text(self, bucket: str, path: str, text: str) -> None:
        with self._lock:
            self.uploads[(bucket, path)] = text


class FakeExtractor:
    """Reads the scratch file back as text."""

    def __init__(self) -> None:
        self.calls: list[Path] = []

    def extract(self, pdf_path: Path) -> str:
        self.calls.append(pdf_path)
        return pdf_path.read_text(encoding="utf-8")


@pytest.fixture
def settings(tmp_path: Path) -> ConverterSettings:
    """Three attempts per document, batches of two, scratch under tmp_path."""
    return ConverterSettings(
        source_bucket=SOURCE_BUCKET,
        target_bucket=TARGET_BUCKET,
        project_id="kpi-archive",
        database_id="(default)",
        collection_id="documents",
        retries=3,
        batch_size=2,
        working_dir=tmp_path / "working",
    )


@pytest.fixture
def store() -> FakeStore:
    return FakeStore({"thesis-1": thesis_fields("thesis-1")})


@pytest.fixture
def storage() -> FakeStorage:
    return FakeStorage()


@pytest.fixture
def extractor() -> FakeExtractor:
    return FakeExtractor()

