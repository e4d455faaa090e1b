"""Regex segmentation of linearised thesis text into named chapters.

The pipeline runs in a fixed order::

    crop_to_start -> crop_to_end -> clean_up_breaks -> join_split_headers
        -> detect_headers -> split_into_chapters

Everything here is pure string processing. A ``Segmenter`` compiles its
patterns once and is safe to share between worker threads.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from .errors import StructureNotFound

log = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Patterns
# ---------------------------------------------------------------------------

# Ukrainian uppercase letters, as a regex character-class body.
UPPERCASE_ALPHABET = "А-ЯІЄЇҐ"

# Compiled with re.ASCII: \s never matches a no-break space.
DOCUMENT_START_REGEX = r"^\s*[0-9.]*\s*(РЕФЕРАТ|АНОТАЦІЯ)\s*$"
DOCUMENT_END_REGEX = (
    r"^[0-9.]*\s*("
    r"СПИСОК\s+(ЛІТЕРАТУРИ|.*ДЖЕРЕЛ)"
    r"|ПЕРЕЛІК\s+(ПОСИЛАНЬ|.*ДЖЕРЕЛ)"
    r"|ВИКОРИСТАН.*ЛІТЕРАТУРА"
    r"|ДЖЕРЕЛА"
    r")\s*$"
)
BREAKS_REGEX = r"(\s\n)+"

# pdfinfo -struct-text markers
TABLE_BLOCK_MARKER = "  Table (block)"
TOP_LEVEL_INDENT = 2


@dataclass(frozen=True)
class SegmenterConfig:
    """Heuristic thresholds and boundary switches.

    ``empty_without_end_anchor`` makes ``crop_to_end`` return ``""`` when no
    bibliography heading exists; ``drop_trailing_chapter`` discards the text
    after the last detected header. Both default to the long-standing
    behaviour.
    """

    alphabet: str = UPPERCASE_ALPHABET
    header_min_length: int = 5
    split_header_head: int = 30
    split_header_tail: int = 5
    empty_without_end_anchor: bool = True
    drop_trailing_chapter: bool = True


class Segmenter:
    """Turns extracted thesis text into an ordered ``{chapter name: text}`` map."""

    def __init__(self, config: SegmenterConfig | None = None) -> None:
        self.config = config or SegmenterConfig()
        letters = self.config.alphabet
        self._start = re.compile(DOCUMENT_START_REGEX, re.MULTILINE | re.ASCII)
        self._end = re.compile(DOCUMENT_END_REGEX, re.MULTILINE | re.ASCII)
        self._breaks = re.compile(BREAKS_REGEX, re.ASCII)
        self._split_header = re.compile(
            rf"([{letters}, ]{{{self.config.split_header_head},}})"
            rf"\n"
            rf"([{letters}, ]{{{self.config.split_header_tail},}})",
            re.ASCII,
        )
        self._header = re.compile(
            rf"^\s*[0-9.]*\s*"
            rf"([{letters}]{{{self.config.header_min_length},}}[{letters}, \n]*)"
            rf"\s*$",
            re.MULTILINE | re.ASCII,
        )

    # -- boundaries ---------------------------------------------------------

    def crop_to_start(self, text: str) -> str:
        """Return *text* from the first abstract heading onward."""
        match = self._start.search(text)
        if match is None:
            raise StructureNotFound("No document start found")
        return text[match.start() :]

    def crop_to_end(self, text: str) -> str:
        """Return *text* up to and including the last bibliography heading."""
        last_end = None
        for match in self._end.finditer(text):
            last_end = match.end()
        if last_end is None:
            if self.config.empty_without_end_anchor:
                return ""
            return text
        return text[:last_end]

    # -- normalisation ------------------------------------------------------

    def clean_up_breaks(self, text: str) -> str:
        """Collapse whitespace-then-newline runs into a single newline."""
        return self._breaks.sub("\n", text)

    def join_split_headers(self, text: str) -> str:
        """Rejoin long uppercase headers that a page break cut in two."""
        return self._split_header.sub(r"\1 \2", text)

    # -- chapters -----------------------------------------------------------

    def detect_headers(self, text: str) -> list[tuple[str, int]]:
        """Return ``(name, offset)`` for every header line, in text order."""
        return [
            (match.group(0).replace("\n", "").strip(), match.start())
            for match in self._header.finditer(text)
        ]

    def split_into_chapters(
        self, text: str, headers: list[tuple[str, int]]
    ) -> dict[str, str]:
        """Slice *text* between consecutive header offsets.

        A repeated header name keeps its first position and takes the later
        body.
        """
        bounds = [offset for _, offset in headers]
        if not self.config.drop_trailing_chapter:
            bounds.append(len(text))

        chapters: dict[str, str] = {}
        for (name, _), start, end in zip(headers, bounds, bounds[1:]):
            chapters[name] = clean_chapter_text(text[start:end])
        return chapters

    def segment(self, text: str) -> dict[str, str]:
        """Run the full pipeline on one document's text."""
        cropped = self.crop_to_end(self.crop_to_start(text))
        normalized = self.join_split_headers(self.clean_up_breaks(cropped))
        headers = self.detect_headers(normalized)
        log.debug(
            "segment: %s chars after cropping, %s headers",
            len(normalized),
            len(headers),
        )
        return self.split_into_chapters(normalized, headers)


def clean_chapter_text(text: str) -> str:
    """Flatten a chapter body onto one line."""
    return text.replace("\n", " ")


def strip_table_blocks(text: str) -> str:
    """Drop ``Table`` blocks from ``pdfinfo -struct-text`` output.

    A table block runs until the next top-level element.
    """
    kept: list[str] = []
    skipping = False
    for line in text.split("\n"):
        indent = len(line) - len(line.lstrip(" "))
        if line.startswith(TABLE_BLOCK_MARKER):
            skipping = True
        elif indent == TOP_LEVEL_INDENT:
            skipping = False
        if not skipping:
            kept.append(line)
    return "\n".join(kept)


DEFAULT_SEGMENTER = Segmenter()


def segment_text(text: str, segmenter: Segmenter | None = None) -> dict[str, str]:
    """Segment *text* with *segmenter* (the shared default when omitted)."""
    return (segmenter or DEFAULT_SEGMENTER).segment(text)
