"""CLI entrypoint for the thesis chapter converter.

Usage:
    python -m thesis_converter SOURCE_BUCKET TARGET_BUCKET PROJECT_ID \\
        DATABASE_ID COLLECTION_ID RETRIES BATCH_SIZE
    python -m thesis_converter ... --extractor pdfinfo --export-text
    python -m thesis_converter ... --max-workers 8 --detailed-logging
"""

from __future__ import annotations

import argparse
import functools
import logging
from logging.handlers import RotatingFileHandler
import time
from pathlib import Path

log = logging.getLogger(__name__)


def _setup_logging(
    *,
    verbose: bool,
    detailed_logging: bool,
    log_file: Path | None,
) -> None:
    root_logger = logging.getLogger()
    root_logger.handlers.clear()

    root_level = logging.DEBUG if verbose else logging.INFO
    root_logger.setLevel(root_level)

    console_fmt = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
    detailed_fmt = (
        "%(asctime)s | %(levelname)-8s | %(name)s | "
        "%(threadName)s | %(filename)s:%(lineno)d | %(message)s"
    )
    formatter = logging.Formatter(
        detailed_fmt if detailed_logging else console_fmt,
        "%Y-%m-%d %H:%M:%S",
    )

    console_handler = logging.StreamHandler()
    console_handler.setLevel(root_level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=20 * 1024 * 1024,
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(detailed_fmt, "%Y-%m-%d %H:%M:%S"))
        root_logger.addHandler(file_handler)

    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("google").setLevel(logging.WARNING)
    logging.getLogger("pdfminer").setLevel(logging.WARNING)
    logging.getLogger("docling").setLevel(logging.WARNING)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    from .extraction import EXTRACTOR_NAMES
    from .utils import DEFAULT_MAX_WORKERS

    parser = argparse.ArgumentParser(
        description="Split archived thesis PDFs into named chapters stored in Firestore"
    )
    parser.add_argument("source_bucket", help="GCS bucket holding the thesis PDFs")
    parser.add_argument(
        "target_bucket",
        help="GCS bucket for plain-text exports (used with --export-text)",
    )
    parser.add_argument("project_id", help="Google Cloud project ID")
    parser.add_argument("database_id", help="Firestore database ID")
    parser.add_argument("collection_id", help="Firestore collection of thesis records")
    parser.add_argument("retries", type=int, help="Attempts per document")
    parser.add_argument("batch_size", type=int, help="Documents per batch")

    parser.add_argument(
        "--max-workers",
        type=int,
        default=DEFAULT_MAX_WORKERS,
        help=f"Concurrent conversions per batch (default: {DEFAULT_MAX_WORKERS})",
    )
    parser.add_argument(
        "--working-dir",
        type=Path,
        default=Path("~/working"),
        help="Root of the per-document scratch directories (default: ~/working)",
    )
    parser.add_argument(
        "--extractor",
        choices=EXTRACTOR_NAMES,
        default="pdfplumber",
        help="PDF text extraction back-end (default: pdfplumber)",
    )
    parser.add_argument(
        "--export-text",
        action="store_true",
        help="Also upload the extracted text to TARGET_BUCKET as <name>.txt",
    )
    parser.add_argument(
        "--clean-failed-scratch",
        action="store_true",
        help="Delete the scratch directory of documents that ran out of retries",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging",
    )
    parser.add_argument(
        "--detailed-logging",
        action="store_true",
        help="Enable detailed logging (thread, file/line)",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Optional rotating log file path",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    """Convert every document of the collection."""
    from .extraction import create_extractor
    from .metadata import FirestoreStore
    from .models import ConverterSettings
    from .orchestrator import BatchOrchestrator, summarize
    from .storage import ObjectStorage
    from .task import ConversionTask

    args = parse_args(argv)
    _setup_logging(
        verbose=args.verbose,
        detailed_logging=args.detailed_logging,
        log_file=args.log_file,
    )

    settings = ConverterSettings(
        source_bucket=args.source_bucket,
        target_bucket=args.target_bucket,
        project_id=args.project_id,
        database_id=args.database_id,
        collection_id=args.collection_id,
        retries=args.retries,
        batch_size=max(1, args.batch_size),
        max_workers=max(1, args.max_workers),
        working_dir=args.working_dir.expanduser(),
        extractor=args.extractor,
        export_text=args.export_text,
        clean_failed_scratch=args.clean_failed_scratch,
    )
    log.info(
        "Settings: collection=%s retries=%s batch_size=%s max_workers=%s "
        "extractor=%s working_dir=%s",
        settings.collection_id,
        settings.retries,
        settings.batch_size,
        settings.max_workers,
        settings.extractor,
        settings.working_dir,
    )

    overall_t0 = time.perf_counter()
    store = FirestoreStore.connect(settings.project_id, settings.database_id)
    storage = ObjectStorage.connect(settings.project_id)
    extractor = create_extractor(settings.extractor)

    task_factory = functools.partial(
        ConversionTask,
        store=store,
        storage=storage,
        extractor=extractor,
        settings=settings,
    )
    orchestrator = BatchOrchestrator(
        store,
        task_factory,
        settings.collection_id,
        settings.batch_size,
        max_workers=settings.max_workers,
    )
    records = orchestrator.convert_documents()

    failed = [r for r in records if r.status == "error"]
    log.info("=" * 60)
    log.info("CONVERSION COMPLETE")
    log.info(f"  Documents:     {len(records)}")
    log.info(f"  Outcome:       {summarize(records)}")
    log.info(f"  Total runtime: {time.perf_counter() - overall_t0:.1f}s")
    if failed:
        log.warning("Failed documents:")
        for r in failed:
            last_line = (r.error or "unknown").strip().splitlines()[-1]
            log.warning(f"  - {r.document_id}: {last_line[:200]}")
