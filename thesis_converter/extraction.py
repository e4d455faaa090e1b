"""PDF text extraction back-ends.

Every back-end exposes ``extract(pdf_path) -> str`` and drops the running
header and footer bands of each page. Choose one with ``create_extractor``.
"""

from __future__ import annotations

import importlib.util
import logging
import re
import shutil
import subprocess
import threading
import time
from pathlib import Path
from typing import Any, Callable, Protocol

from .errors import ExtractionFailure
from .segmenter import strip_table_blocks
from .utils import FOOTER_BAND, HEADER_BAND

log = logging.getLogger(__name__)

EXTRACTOR_NAMES = ("pdfplumber", "docling", "pdfinfo")

_TEXT_NODE = re.compile(r'^\s*"(.*)"\s*$')


class TextExtractor(Protocol):
    def extract(self, pdf_path: Path) -> str: ...


class PageBands:
    """Header/footer bounds in top-origin page units, memoised per page height.

    Create one per extraction call; page sizes of unrelated documents are
    never mixed.
    """

    def __init__(
        self,
        header_band: float = HEADER_BAND,
        footer_band: float = FOOTER_BAND,
    ) -> None:
        self.header_band = header_band
        self.footer_band = footer_band
        self._bounds: dict[float, tuple[float, float]] = {}

    def bounds(self, page_height: float) -> tuple[float, float]:
        bounds = self._bounds.get(page_height)
        if bounds is None:
            bounds = (
                page_height * self.header_band,
                page_height * (1 - self.footer_band),
            )
            self._bounds[page_height] = bounds
        return bounds

    def contains(self, page_height: float, y: float) -> bool:
        """True when *y* lies strictly between the header and footer bands."""
        header, footer = self.bounds(page_height)
        return header < y < footer


# ---------------------------------------------------------------------------
# pdfplumber
# ---------------------------------------------------------------------------


class PdfPlumberExtractor:
    """Character-level extraction with pdfplumber."""

    name = "pdfplumber"

    def __init__(
        self,
        header_band: float = HEADER_BAND,
        footer_band: float = FOOTER_BAND,
    ) -> None:
        self.header_band = header_band
        self.footer_band = footer_band

    def extract(self, pdf_path: Path) -> str:
        import pdfplumber

        bands = PageBands(self.header_band, self.footer_band)
        pages: list[str] = []
        try:
            with pdfplumber.open(pdf_path) as pdf:
                for page in pdf.pages:
                    body = page.filter(_band_filter(bands, page.height))
                    text = body.extract_text()
                    if text:
                        pages.append(text)
        except Exception as exc:
            raise ExtractionFailure(f"pdfplumber failed on {pdf_path}: {exc}") from exc

        log.debug("pdfplumber: %s pages with text in %s", len(pages), pdf_path.name)
        return "\n".join(pages)


def _band_filter(bands: PageBands, page_height: float) -> Callable[[dict], bool]:
    def _keep(obj: dict) -> bool:
        if obj.get("object_type") != "char":
            return True
        return bands.contains(page_height, obj["bottom"])

    return _keep


# ---------------------------------------------------------------------------
# Docling
# ---------------------------------------------------------------------------


def create_docling_converter(
    *,
    num_threads: int = 4,
    enable_ocr: bool = False,
) -> tuple[Any, str]:
    """Build a Docling ``DocumentConverter`` for thesis PDFs.

    Args:
        num_threads: Thread count used by Docling accelerator options.
        enable_ocr: Whether OCR runs on scanned pages.

    Returns:
        (converter, ocr_engine) where ``ocr_engine`` is a best-effort profile.
    """
    t0 = time.time()
    log.info("create_docling_converter: importing docling modules ...")

    from docling.datamodel.accelerator_options import AcceleratorOptions
    from docling.datamodel.base_models import InputFormat
    from docling.datamodel.pipeline_options import (
        EasyOcrOptions,
        PdfPipelineOptions,
        TesseractOcrOptions,
    )
    from docling.document_converter import DocumentConverter, PdfFormatOption

    accelerator_options = AcceleratorOptions(num_threads=max(1, num_threads))

    ocr_options = None
    ocr_engine = "disabled"
    if enable_ocr:
        if importlib.util.find_spec("easyocr") is not None:
            ocr_options = EasyOcrOptions(lang=["uk", "en"])
            ocr_engine = "easyocr"
        elif shutil.which("tesseract") is not None:
            ocr_options = TesseractOcrOptions(lang=["ukr", "eng"])
            ocr_engine = "tesseract"
        else:
            log.warning(
                "create_docling_converter: no OCR engine found; OCR disabled"
            )
            ocr_engine = "disabled-no-engine"

    if ocr_options is not None:
        pipeline_options = PdfPipelineOptions(
            do_ocr=True,
            ocr_options=ocr_options,
            accelerator_options=accelerator_options,
        )
    else:
        pipeline_options = PdfPipelineOptions(
            do_ocr=False,
            accelerator_options=accelerator_options,
        )
    pipeline_options.do_table_structure = False

    converter = DocumentConverter(
        format_options={
            InputFormat.PDF: PdfFormatOption(pipeline_options=pipeline_options),
        }
    )
    log.info(
        "Docling converter initialized (%s) in %.2fs",
        ocr_engine,
        time.time() - t0,
    )
    return converter, ocr_engine


class DoclingExtractor:
    """Layout-aware extraction through Docling text items."""

    name = "docling"

    def __init__(
        self,
        converter: Any = None,
        *,
        header_band: float = HEADER_BAND,
        footer_band: float = FOOTER_BAND,
        enable_ocr: bool = False,
    ) -> None:
        if converter is None:
            converter, _ = create_docling_converter(enable_ocr=enable_ocr)
        self._converter = converter
        # One DocumentConverter is shared by all workers.
        self._lock = threading.Lock()
        self.header_band = header_band
        self.footer_band = footer_band

    def extract(self, pdf_path: Path) -> str:
        t0 = time.time()
        try:
            with self._lock:
                result = self._converter.convert(source=str(pdf_path))
            doc = result.document
        except Exception as exc:
            raise ExtractionFailure(f"docling failed on {pdf_path}: {exc}") from exc

        bands = PageBands(self.header_band, self.footer_band)
        lines: list[str] = []
        for item, _level in doc.iterate_items():
            text = getattr(item, "text", "")
            prov = getattr(item, "prov", None)
            if not text or not prov:
                continue
            location = prov[0]
            page = doc.pages.get(location.page_no)
            if page is None or page.size is None:
                lines.append(text)
                continue
            height = page.size.height
            top = location.bbox.to_top_left_origin(page_height=height).t
            if bands.contains(height, top):
                lines.append(text)

        log.debug(
            "docling: %s text items kept from %s in %.2fs",
            len(lines),
            pdf_path.name,
            time.time() - t0,
        )
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# pdfinfo (poppler) structure tree
# ---------------------------------------------------------------------------


def linearize_structure(struct_text: str) -> str:
    """Keep the quoted text nodes of ``pdfinfo -struct-text``, one per line."""
    lines: list[str] = []
    for line in struct_text.split("\n"):
        match = _TEXT_NODE.match(line)
        if match:
            lines.append(match.group(1))
    return "\n".join(lines)


class PdfInfoExtractor:
    """Extraction from the tagged-PDF structure tree via ``pdfinfo``.

    Only works on tagged PDFs; running headers and footers are artifacts and
    never appear in the structure tree.
    """

    name = "pdfinfo"

    def __init__(self, binary: str = "pdfinfo") -> None:
        self.binary = binary

    def extract(self, pdf_path: Path) -> str:
        try:
            completed = subprocess.run(
                [self.binary, "-struct-text", str(pdf_path)],
                check=True,
                capture_output=True,
                text=True,
            )
        except (subprocess.SubprocessError, FileNotFoundError) as exc:
            raise ExtractionFailure(f"pdfinfo failed on {pdf_path}: {exc}") from exc

        struct_text = completed.stdout
        if not struct_text.strip():
            raise ExtractionFailure(f"{pdf_path.name} has no structure tree")
        return linearize_structure(strip_table_blocks(struct_text))


def create_extractor(name: str = "pdfplumber", **kwargs: Any) -> TextExtractor:
    """Instantiate the extraction back-end called *name*."""
    factories: dict[str, Callable[..., TextExtractor]] = {
        "pdfplumber": PdfPlumberExtractor,
        "docling": DoclingExtractor,
        "pdfinfo": PdfInfoExtractor,
    }
    try:
        factory = factories[name]
    except KeyError:
        raise ValueError(
            f"Unknown extractor {name!r}; expected one of {', '.join(EXTRACTOR_NAMES)}"
        ) from None
    return factory(**kwargs)
