"""Shared data models for the converter."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from .utils import DEFAULT_MAX_WORKERS


@dataclass
class DocumentRecord:
    """Snapshot of one thesis document in the metadata store."""

    identifier: str
    collections: tuple[str, ...] = ()
    bucket_url: Optional[str] = None
    chapters: Optional[dict[str, str]] = None


@dataclass
class TaskRecord:
    """Tracks the outcome of one conversion task."""

    document_id: str
    status: str = "pending"
    attempts: int = 0
    chapter_count: int = 0
    skip_reason: str = ""
    conversion_time_s: float = 0.0
    error: Optional[str] = None


@dataclass(frozen=True)
class ConverterSettings:
    """Run configuration, built once by the CLI."""

    source_bucket: str
    target_bucket: str
    project_id: str
    database_id: str
    collection_id: str
    retries: int
    batch_size: int
    max_workers: int = DEFAULT_MAX_WORKERS
    working_dir: Path = field(default_factory=lambda: Path("~/working").expanduser())
    extractor: str = "pdfplumber"
    export_text: bool = False
    clean_failed_scratch: bool = False
