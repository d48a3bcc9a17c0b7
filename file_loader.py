"""
Input loading and PDF decoding.

pdfplumber is the page decoder. Pages are exposed to rendering hooks as
PageHandle objects that yield the glyph stream of the page.
"""
import io
import logging
import math
import re
from pathlib import Path
from typing import Callable, List, Optional, Union

import pdfplumber
from pydantic import BaseModel

from config import RenderOptions
from errors import DecodeError, InputValidationError, StatementProcessingError
from schema import GlyphRun

logger = logging.getLogger(__name__)

PDF_MAGIC = b'%PDF-'
HEADER_SEARCH_BYTES = 1024

# Horizontal slack, as a fraction of font size, for two characters to count as touching
COMBINE_GAP_RATIO = 0.1


class DecodedDocument(BaseModel):
    text: str
    num_pages: int


class FileLoader:
    """Loads and validates statement documents."""

    SUPPORTED_EXTENSIONS = {'.pdf'}

    def __init__(self):
        self.logger = logging.getLogger(self.__class__.__name__)

    def load_file(self, file_path: Union[str, Path]) -> bytes:
        """
        Read a statement file into memory.

        Args:
            file_path: Path to the PDF

        Returns:
            Validated document bytes
        """
        path = Path(file_path)
        if not path.exists():
            raise InputValidationError(f"File not found: {file_path}")

        file_ext = path.suffix.lower()
        if file_ext not in self.SUPPORTED_EXTENSIONS:
            raise InputValidationError(f"Unsupported file type: {file_ext}")

        self.logger.info(f"Loading {file_ext} file: {file_path}")
        return self.validate_buffer(path.read_bytes())

    def validate_buffer(self, data) -> bytes:
        """Reject buffers that cannot be a PDF before the decoder sees them."""
        if not isinstance(data, (bytes, bytearray, memoryview)):
            raise InputValidationError(f"Expected bytes, received {type(data).__name__}")

        data = bytes(data)
        if not data:
            raise InputValidationError("PDF buffer is empty")

        if PDF_MAGIC not in data[:HEADER_SEARCH_BYTES]:
            raise InputValidationError("File must be a PDF")

        return data


class PageHandle:
    """One decoded page, as seen by a rendering hook."""

    def __init__(self, page):
        self.page = page

    @property
    def page_number(self) -> int:
        return self.page.page_number

    def get_text_content(self, options: Optional[RenderOptions] = None) -> List[GlyphRun]:
        """
        Glyph runs of the page in content-stream order.

        Args:
            options: normalize_whitespace / disable_combine_text_items

        Returns:
            List of GlyphRun
        """
        options = options or RenderOptions()
        chars = self.page.chars

        if options.disable_combine_text_items:
            runs = [self._char_to_glyph(char, char.get('text', ''), char['x1']) for char in chars]
        else:
            runs = self._combine(chars)

        if options.normalize_whitespace:
            runs = [run.model_copy(update={'text': re.sub(r'\s+', ' ', run.text)}) for run in runs]

        return runs

    def extract_text(self) -> str:
        return self.page.extract_text() or ''

    def _combine(self, chars: List[dict]) -> List[GlyphRun]:
        """Merge touching characters that share baseline, font and size into runs."""
        runs: List[GlyphRun] = []
        first = None
        text = ''
        last = None

        for char in chars:
            if last is not None and self._touches(last, char):
                text += char.get('text', '')
            else:
                if first is not None:
                    runs.append(self._char_to_glyph(first, text, last['x1']))
                first = char
                text = char.get('text', '')
            last = char

        if first is not None:
            runs.append(self._char_to_glyph(first, text, last['x1']))

        return runs

    @staticmethod
    def _touches(previous: dict, char: dict) -> bool:
        if not (previous.get('upright', True) and char.get('upright', True)):
            return False
        if previous.get('fontname') != char.get('fontname'):
            return False
        size = char.get('size') or 0
        if abs((previous.get('size') or 0) - size) > 0.01:
            return False
        if abs(_baseline(previous) - _baseline(char)) > 0.01:
            return False
        return abs(char['x0'] - previous['x1']) <= size * COMBINE_GAP_RATIO

    @staticmethod
    def _char_to_glyph(char: dict, text: str, x1: float) -> GlyphRun:
        return GlyphRun(text=text, transform=_char_transform(char), width=x1 - char['x0'])


def _baseline(char: dict) -> float:
    matrix = char.get('matrix')
    return matrix[5] if matrix else char['y0']


def _char_transform(char: dict):
    """Text matrix of a character with its linear part scaled to the rendered size."""
    size = float(char.get('size') or 0)
    matrix = char.get('matrix')
    if not matrix:
        return (size, 0.0, 0.0, size, char['x0'], char['y0'])

    a, b, c, d, e, f = matrix
    norm = math.hypot(c, d)
    k = size / norm if norm else 1.0
    return (a * k, b * k, c * k, d * k, e, f)


class PdfDecoder:
    """Runs pdfplumber over an in-memory document, one hook call per page."""

    def __init__(self):
        self.logger = logging.getLogger(self.__class__.__name__)

    def decode(self, data: bytes, pagerender: Optional[Callable[[PageHandle], str]] = None,
               separator: str = '') -> DecodedDocument:
        """
        Decode a PDF buffer page by page.

        Args:
            data: Validated PDF bytes
            pagerender: Hook called with each PageHandle; plain page text is used when omitted
            separator: Joined between page outputs

        Returns:
            DecodedDocument with the concatenated page output

        Raises:
            DecodeError: If pdfplumber cannot read the document
        """
        self.logger.info(f"Starting PDF decode, buffer size: {len(data)}")
        outputs: List[str] = []

        try:
            with pdfplumber.open(io.BytesIO(data)) as pdf:
                for page in pdf.pages:
                    handle = PageHandle(page)
                    outputs.append(pagerender(handle) if pagerender else handle.extract_text())
                    self.logger.debug(f"Decoded page {handle.page_number}")
                num_pages = len(pdf.pages)

        except StatementProcessingError:
            raise
        except OSError as e:
            # Reading a memory buffer must never hit the filesystem
            self.logger.error(f"PDF decoder attempted filesystem access: {e}")
            raise DecodeError(
                "PDF parsing library is incorrectly trying to access file system. "
                "This might be due to corrupted PDF data or library issue.",
                filesystem_access=True,
                cause=e,
            ) from e
        except Exception as e:
            self.logger.error(f"PDF parsing failed: {e}")
            raise DecodeError(f"PDF parsing failed: {str(e)}", cause=e) from e

        self.logger.info(f"Decoded {num_pages} pages")
        return DecodedDocument(text=separator.join(outputs), num_pages=num_pages)
