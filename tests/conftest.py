from typing import List, Optional, Sequence, Tuple

import pytest

from schema import GlyphRun


def _glyph(text: str, x: float, y: float, size: float = 10.0, width: Optional[float] = None,
           scale_x: Optional[float] = None, skew_x: float = 0.0, skew_y: float = 0.0,
           scale_y: Optional[float] = None) -> GlyphRun:
    scale_x = size if scale_x is None else scale_x
    scale_y = size if scale_y is None else scale_y
    return GlyphRun(text=text, transform=(scale_x, skew_x, skew_y, scale_y, x, y), width=width)


def _build_pdf(pages: Sequence[Sequence[Tuple[float, float, str]]], font_size: int = 10) -> bytes:
    """Minimal Helvetica PDF; each page is a list of (x, y, text) lines."""
    objects = {
        1: b"<< /Type /Catalog /Pages 2 0 R >>",
        3: b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
    }
    kids = []
    next_id = 4
    for lines in pages:
        page_id, content_id = next_id, next_id + 1
        next_id += 2
        stream = b"".join(
            b"BT /F1 %d Tf %d %d Td (%s) Tj ET\n" % (font_size, x, y, text.encode('latin-1'))
            for x, y, text in lines
        )
        objects[content_id] = b"<< /Length %d >>\nstream\n" % len(stream) + stream + b"endstream"
        objects[page_id] = (
            b"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] "
            b"/Resources << /Font << /F1 3 0 R >> >> /Contents %d 0 R >>" % content_id
        )
        kids.append(page_id)
    objects[2] = b"<< /Type /Pages /Kids [%s] /Count %d >>" % (
        b" ".join(b"%d 0 R" % kid for kid in kids), len(kids))

    out = bytearray(b"%PDF-1.4\n")
    offsets = {}
    for number in sorted(objects):
        offsets[number] = len(out)
        out += b"%d 0 obj\n" % number + objects[number] + b"\nendobj\n"

    xref_position = len(out)
    size = max(objects) + 1
    out += b"xref\n0 %d\n0000000000 65535 f \n" % size
    out += b"".join(b"%010d 00000 n \n" % offsets[number] for number in range(1, size))
    out += b"trailer\n<< /Size %d /Root 1 0 R >>\nstartxref\n%d\n%%%%EOF\n" % (size, xref_position)
    return bytes(out)


class FakePage:
    """Stands in for a pdfplumber page."""

    def __init__(self, chars: List[dict], page_number: int = 1, text: str = ''):
        self.chars = chars
        self.page_number = page_number
        self._text = text

    def extract_text(self):
        return self._text


class GlyphPage:
    """Page handle that serves a fixed glyph stream."""

    def __init__(self, glyphs: List[GlyphRun]):
        self.glyphs = glyphs
        self.options = None

    def get_text_content(self, options=None):
        self.options = options
        return list(self.glyphs)


@pytest.fixture
def glyph():
    return _glyph


@pytest.fixture
def build_pdf():
    return _build_pdf


@pytest.fixture
def fake_page():
    return FakePage


@pytest.fixture
def glyph_page():
    return GlyphPage


@pytest.fixture
def statement_pdf():
    return _build_pdf([
        [
            (72, 750, "Capitec statement"),
            (72, 700, "01/02/2024GROCERY STORE R1 234.56 R 50 000.00"),
            (72, 680, "02/02/2024SALARY R10 000.00 R60 000.00"),
        ],
        [
            (72, 700, "03/02/2024CARD FEE -R5.00 R59 995.00"),
        ],
    ])
