"""Per-document conversion: gating, extraction, segmentation, persistence."""

from __future__ import annotations

import logging
import time
import traceback
from typing import Any, Optional

from .extraction import TextExtractor
from .metadata import FirestoreStore
from .models import ConverterSettings, DocumentRecord, TaskRecord
from .segmenter import DEFAULT_SEGMENTER, Segmenter
from .storage import ObjectStorage, source_path, text_export_path
from .utils import (
    ALLOWED_COLLECTIONS,
    PDF_EXTENSION,
    SOURCE_FILE_NAME,
    remove_scratch_dir,
    scratch_dir_for,
)

log = logging.getLogger(__name__)


def gating_reason(document: DocumentRecord) -> Optional[str]:
    """Why *document* must not be converted, or ``None`` to proceed."""
    if document.chapters is not None:
        return "chapters already present"
    if ALLOWED_COLLECTIONS.isdisjoint(document.collections):
        return "not a bachelor or master thesis"
    if not document.bucket_url or not document.bucket_url.endswith(PDF_EXTENSION):
        return "no PDF bucketUrl"
    return None


class ConversionTask:
    """Converts one thesis document, retrying up to ``settings.retries`` times.

    ``run`` never raises; the returned ``TaskRecord`` carries the outcome.
    Each attempt starts over from the metadata read with a fresh copy of the
    source PDF in the task's scratch directory.
    """

    def __init__(
        self,
        ref: Any,
        *,
        store: FirestoreStore,
        storage: ObjectStorage,
        extractor: TextExtractor,
        settings: ConverterSettings,
        segmenter: Segmenter | None = None,
    ) -> None:
        self.ref = ref
        self.document_id: str = ref.id
        self.store = store
        self.storage = storage
        self.extractor = extractor
        self.settings = settings
        self.segmenter = segmenter or DEFAULT_SEGMENTER
        self.scratch_dir = scratch_dir_for(settings.working_dir, ref.id)

    def run(self) -> TaskRecord:
        record = TaskRecord(document_id=self.document_id)
        retries = self.settings.retries
        log.info("Run task for %s", self.document_id)
        t0 = time.time()

        attempt = 1
        while attempt <= retries:
            record.attempts = attempt
            try:
                self.convert_document(record)
                record.error = None
                break
            except Exception as exc:
                record.error = traceback.format_exc()
                log.warning(
                    "Attempt %s/%s failed for %s: %s: %s",
                    attempt,
                    retries,
                    self.document_id,
                    type(exc).__name__,
                    exc,
                )
                attempt += 1
                if attempt <= retries:
                    log.info("Retrying task for %s", self.document_id)

        record.conversion_time_s = round(time.time() - t0, 2)
        if record.status in ("success", "skipped"):
            return record

        record.status = "error"
        if record.error is None:
            record.error = f"no attempts allowed (retries={retries})"
        log.error(
            "Failed task for %s after %s attempts:\n%s",
            self.document_id,
            record.attempts,
            record.error,
        )
        self._handle_failed_scratch()
        return record

    def convert_document(self, record: TaskRecord) -> None:
        """Run one attempt. Raises on any failure."""
        document = self.store.read(self.ref)
        reason = gating_reason(document)
        if reason is not None:
            record.status = "skipped"
            record.skip_reason = reason
            log.info("Skipped task for %s: %s", self.document_id, reason)
            return

        log.info("Starting task for %s", self.document_id)
        bucket = self.settings.source_bucket
        object_path = source_path(document.bucket_url, bucket)
        pdf_path = self.storage.download(
            bucket, object_path, self.scratch_dir / SOURCE_FILE_NAME
        )

        text = self.extractor.extract(pdf_path)
        if self.settings.export_text:
            self.storage.upload_text(
                self.settings.target_bucket,
                text_export_path(object_path),
                text,
            )

        chapters = self.segmenter.segment(text)
        self.store.update_chapters(self.ref, chapters)

        remove_scratch_dir(self.scratch_dir)
        record.status = "success"
        record.chapter_count = len(chapters)
        log.info(
            "Finished task for %s: %s chapters",
            self.document_id,
            record.chapter_count,
        )

    def _handle_failed_scratch(self) -> None:
        if not self.scratch_dir.exists():
            return
        if self.settings.clean_failed_scratch:
            try:
                remove_scratch_dir(self.scratch_dir)
            except OSError as exc:
                log.warning(
                    "Could not remove scratch directory %s: %s", self.scratch_dir, exc
                )
                return
            log.debug("Removed scratch directory %s", self.scratch_dir)
        else:
            log.warning("Keeping scratch directory %s for inspection", self.scratch_dir)
