from __future__ import annotations

import subprocess
import sys
import types

import pytest

from thesis_converter.errors import ExtractionFailure
from thesis_converter.extraction import (
    DoclingExtractor,
    PageBands,
    PdfInfoExtractor,
    PdfPlumberExtractor,
    create_extractor,
    linearize_structure,
)


def test_page_bands_bounds_and_cache():
    bands = PageBands()
    header, footer = bands.bounds(1000.0)
    assert header == pytest.approx(67.0)
    assert footer == pytest.approx(933.0)
    assert bands.bounds(1000.0) is bands.bounds(1000.0)


def test_page_bands_contains_is_strict():
    bands = PageBands(header_band=0.1, footer_band=0.1)
    assert bands.contains(100.0, 50.0) is True
    assert bands.contains(100.0, 10.0) is False
    assert bands.contains(100.0, 90.0) is False
    assert bands.contains(100.0, 5.0) is False


# ---------------------------------------------------------------------------
# pdfplumber
# ---------------------------------------------------------------------------


class _FakeFilteredPage:
    def __init__(self, objects):
        self.objects = objects

    def extract_text(self):
        return "".join(o["text"] for o in self.objects if o["object_type"] == "char")


class _FakePage:
    def __init__(self, height, objects):
        self.height = height
        self.objects = objects

    def filter(self, test_function):
        return _FakeFilteredPage([o for o in self.objects if test_function(o)])


class _FakePdf:
    def __init__(self, pages):
        self.pages = pages

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


def _char(text, bottom):
    return {"object_type": "char", "text": text, "bottom": bottom}


def test_pdfplumber_drops_header_and_footer_bands(monkeypatch, tmp_path):
    pages = [
        _FakePage(
            1000.0,
            [
                _char("H", 30.0),
                _char("A", 500.0),
                _char("B", 510.0),
                {"object_type": "rect", "text": "", "bottom": 10.0},
                _char("7", 980.0),
            ],
        ),
        _FakePage(1000.0, [_char("9", 990.0)]),
        _FakePage(800.0, [_char("C", 400.0)]),
    ]
    opened = []

    def _open(path):
        opened.append(path)
        return _FakePdf(pages)

    monkeypatch.setitem(sys.modules, "pdfplumber", types.SimpleNamespace(open=_open))

    pdf_path = tmp_path / "source.pdf"
    text = PdfPlumberExtractor().extract(pdf_path)

    assert opened == [pdf_path]
    assert text == "AB\nC"


def test_pdfplumber_errors_become_extraction_failure(monkeypatch, tmp_path):
    def _open(path):
        raise ValueError("not a PDF")

    monkeypatch.setitem(sys.modules, "pdfplumber", types.SimpleNamespace(open=_open))

    with pytest.raises(ExtractionFailure, match="not a PDF"):
        PdfPlumberExtractor().extract(tmp_path / "broken.pdf")


def _write_pdf(path, lines, height=1000):
    """Write a one-page PDF with each ``(y, text)`` drawn in Helvetica 12."""
    content = "".join(
        f"BT /F1 12 Tf 72 {y} Td ({text}) Tj ET\n" for y, text in lines
    ).encode("ascii")
    objects = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        b"<< /Type /Pages /Kids [3 0 R] /Count 1 >>",
        (
            f"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 600 {height}] "
            "/Resources << /Font << /F1 4 0 R >> >> /Contents 5 0 R >>"
        ).encode("ascii"),
        b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
        b"<< /Length %d >>\nstream\n" % len(content) + content + b"endstream",
    ]
    out = bytearray(b"%PDF-1.4\n")
    offsets = []
    for number, body in enumerate(objects, start=1):
        offsets.append(len(out))
        out += b"%d 0 obj\n" % number + body + b"\nendobj\n"
    xref = len(out)
    out += b"xref\n0 %d\n0000000000 65535 f \n" % (len(objects) + 1)
    for offset in offsets:
        out += b"%010d 00000 n \n" % offset
    out += b"trailer\n<< /Size %d /Root 1 0 R >>\nstartxref\n%d\n%%%%EOF\n" % (
        len(objects) + 1,
        xref,
    )
    path.write_bytes(bytes(out))
    return path


def test_pdfplumber_real_pdf_keeps_only_body(tmp_path):
    pytest.importorskip("pdfplumber")
    pdf_path = _write_pdf(
        tmp_path / "source.pdf",
        [(980, "HEADER"), (500, "BODY"), (20, "FOOTER")],
    )

    text = PdfPlumberExtractor().extract(pdf_path)

    assert text == "BODY"


# ---------------------------------------------------------------------------
# Docling
# ---------------------------------------------------------------------------


class _FakeBBox:
    def __init__(self, top):
        self.top = top

    def to_top_left_origin(self, page_height):
        return types.SimpleNamespace(t=self.top, b=self.top + 10)


def _text_item(text, top, page_no=1):
    prov = types.SimpleNamespace(page_no=page_no, bbox=_FakeBBox(top))
    return types.SimpleNamespace(text=text, prov=[prov])


class _FakeDoclingDoc:
    def __init__(self, items, pages):
        self._items = items
        self.pages = pages

    def iterate_items(self):
        for item in self._items:
            yield item, 0


class _FakeConverter:
    def __init__(self, doc=None, error=None):
        self.doc = doc
        self.error = error
        self.sources = []

    def convert(self, source):
        self.sources.append(source)
        if self.error is not None:
            raise self.error
        return types.SimpleNamespace(document=self.doc)


def test_docling_keeps_body_text_items(tmp_path):
    page = types.SimpleNamespace(size=types.SimpleNamespace(height=1000.0))
    doc = _FakeDoclingDoc(
        [
            _text_item("Колонтитул", 20.0),
            _text_item("РЕФЕРАТ", 100.0),
            types.SimpleNamespace(prov=[]),
            _text_item("Текст сторінки", 400.0),
            _text_item("12", 960.0),
        ],
        {1: page},
    )
    converter = _FakeConverter(doc)

    text = DoclingExtractor(converter).extract(tmp_path / "source.pdf")

    assert text == "РЕФЕРАТ\nТекст сторінки"
    assert converter.sources == [str(tmp_path / "source.pdf")]


def test_docling_errors_become_extraction_failure(tmp_path):
    converter = _FakeConverter(error=RuntimeError("pipeline crashed"))
    with pytest.raises(ExtractionFailure, match="pipeline crashed"):
        DoclingExtractor(converter).extract(tmp_path / "source.pdf")


# ---------------------------------------------------------------------------
# pdfinfo
# ---------------------------------------------------------------------------

STRUCT_TEXT = "\n".join(
    [
        "Document",
        "  H1 (block)",
        '    "РЕФЕРАТ"',
        "  P (block)",
        '    "Текст реферату"',
        "  Table (block)",
        "    TR (block)",
        '      "комірка"',
        "  H1 (block)",
        '    "1 ВСТУП"',
    ]
)


def test_linearize_structure_keeps_quoted_text():
    assert linearize_structure('  P (block)\n    "рядок"\n  /ListNumbering /None') == "рядок"


def test_pdfinfo_runs_struct_text(monkeypatch, tmp_path):
    calls = []

    def _run(cmd, **kwargs):
        calls.append((cmd, kwargs))
        return subprocess.CompletedProcess(cmd, 0, stdout=STRUCT_TEXT, stderr="")

    monkeypatch.setattr("thesis_converter.extraction.subprocess.run", _run)
    pdf_path = tmp_path / "source.pdf"

    text = PdfInfoExtractor().extract(pdf_path)

    assert text == "РЕФЕРАТ\nТекст реферату\n1 ВСТУП"
    assert calls[0][0] == ["pdfinfo", "-struct-text", str(pdf_path)]
    assert calls[0][1]["check"] is True


def test_pdfinfo_untagged_pdf_fails(monkeypatch, tmp_path):
    monkeypatch.setattr(
        "thesis_converter.extraction.subprocess.run",
        lambda cmd, **kwargs: subprocess.CompletedProcess(cmd, 0, stdout="\n", stderr=""),
    )
    with pytest.raises(ExtractionFailure, match="no structure tree"):
        PdfInfoExtractor().extract(tmp_path / "source.pdf")


@pytest.mark.parametrize(
    "error",
    [
        FileNotFoundError("pdfinfo"),
        subprocess.CalledProcessError(1, ["pdfinfo"]),
    ],
)
def test_pdfinfo_process_errors_become_extraction_failure(monkeypatch, tmp_path, error):
    def _run(cmd, **kwargs):
        raise error

    monkeypatch.setattr("thesis_converter.extraction.subprocess.run", _run)
    with pytest.raises(ExtractionFailure):
        PdfInfoExtractor().extract(tmp_path / "source.pdf")


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


def test_create_extractor_by_name():
    assert isinstance(create_extractor("pdfplumber"), PdfPlumberExtractor)
    assert isinstance(create_extractor("pdfinfo", binary="/usr/bin/pdfinfo"), PdfInfoExtractor)


def test_create_extractor_passes_docling_converter():
    converter = _FakeConverter()
    extractor = create_extractor("docling", converter=converter)
    assert isinstance(extractor, DoclingExtractor)


def test_create_extractor_rejects_unknown_name():
    with pytest.raises(ValueError, match="Unknown extractor"):
        create_extractor("tika")