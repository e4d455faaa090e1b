"""Thesis PDF -> named chapters converter.

Public API -- all symbols that tests and external code import live here.
Internally the code is split across focused submodules; this file
re-exports the stable public surface so ``from thesis_converter import X``
works.
"""

from .errors import (
    ConversionError,
    ExtractionFailure,
    IOFailure,
    PersistenceFailure,
    StructureNotFound,
)
from .extraction import (
    DoclingExtractor,
    PageBands,
    PdfInfoExtractor,
    PdfPlumberExtractor,
    create_docling_converter,
    create_extractor,
    linearize_structure,
)
from .metadata import FirestoreStore, record_from_mapping
from .models import ConverterSettings, DocumentRecord, TaskRecord
from .orchestrator import BatchOrchestrator, summarize
from .segmenter import (
    DEFAULT_SEGMENTER,
    Segmenter,
    SegmenterConfig,
    clean_chapter_text,
    segment_text,
    strip_table_blocks,
)
from .storage import ObjectStorage, source_path, text_export_path
from .task import ConversionTask, gating_reason
from .utils import (
    ALLOWED_COLLECTIONS,
    FOOTER_BAND,
    HEADER_BAND,
    partition,
    remove_scratch_dir,
    scratch_dir_for,
)

__all__ = [
    # Errors
    "ConversionError",
    "StructureNotFound",
    "ExtractionFailure",
    "IOFailure",
    "PersistenceFailure",
    # Models
    "DocumentRecord",
    "TaskRecord",
    "ConverterSettings",
    # Constants
    "ALLOWED_COLLECTIONS",
    "HEADER_BAND",
    "FOOTER_BAND",
    # Utils
    "partition",
    "scratch_dir_for",
    "remove_scratch_dir",
    # Segmentation
    "Segmenter",
    "SegmenterConfig",
    "DEFAULT_SEGMENTER",
    "segment_text",
    "clean_chapter_text",
    "strip_table_blocks",
    # Extraction
    "PageBands",
    "PdfPlumberExtractor",
    "DoclingExtractor",
    "PdfInfoExtractor",
    "create_docling_converter",
    "create_extractor",
    "linearize_structure",
    # Storage
    "ObjectStorage",
    "source_path",
    "text_export_path",
    # Metadata
    "FirestoreStore",
    "record_from_mapping",
    # Tasks
    "ConversionTask",
    "gating_reason",
    "BatchOrchestrator",
    "summarize",
]
