"""
Reassembly of per-page serialized rows.

The decoder concatenates each page's JSON array as raw text, so a
multi-page document arrives as ``[...][...][...]``. The arrays are decoded
one after another from their offsets, so brackets inside row text never
count as page boundaries. A page that fails to decode is skipped up to the
next ``][`` boundary.
"""
import json
import logging
import re
from typing import Any, List

from pydantic import ValidationError

from errors import ReconstructionError
from schema import FormattedRow

logger = logging.getLogger(__name__)

# Closing bracket of one page's array directly followed by the next page's opening bracket
PAGE_BOUNDARY = re.compile(r'\]\[')
WHITESPACE = re.compile(r'\s*')


class PageAggregator:
    """Turns concatenated per-page output back into one ordered row sequence."""

    def __init__(self):
        self.logger = logging.getLogger(self.__class__.__name__)
        self.decoder = json.JSONDecoder()

    def reassemble(self, text: str) -> List[Any]:
        """
        Parse concatenated JSON arrays into a single flat list.

        Args:
            text: Raw concatenated page output

        Returns:
            Items of every parseable page, in page order

        Raises:
            ReconstructionError: If no page could be parsed
        """
        text = (text or '').strip()
        if not text:
            raise ReconstructionError("No page output to reassemble")

        items: List[Any] = []
        parsed_count = 0
        fragment_count = 0
        index = 0
        while index < len(text):
            fragment_count += 1
            try:
                page_items, index = self.decoder.raw_decode(text, index)
            except json.JSONDecodeError as e:
                self.logger.warning(f"Skipping malformed page fragment {fragment_count}: {e}")
                index = self._next_boundary(text, index)
            else:
                if isinstance(page_items, list):
                    items.extend(page_items)
                    parsed_count += 1
                else:
                    self.logger.warning(f"Skipping page fragment {fragment_count}: not an array")
            index = WHITESPACE.match(text, index).end()

        self.logger.info(f"Reassembled {parsed_count} of {fragment_count} page fragments")
        if parsed_count == 0:
            self.logger.error("None of the page fragments could be parsed")
            raise ReconstructionError(
                f"Failed to reconstruct rows: none of {fragment_count} page fragments could be parsed"
            )

        return items

    def reassemble_rows(self, text: str) -> List[FormattedRow]:
        """Reassemble page output and validate every item as a FormattedRow."""
        rows = []
        for index, item in enumerate(self.reassemble(text)):
            try:
                rows.append(FormattedRow.model_validate(item))
            except ValidationError as e:
                self.logger.warning(f"Skipping invalid row {index}: {e.error_count()} validation errors")

        self.logger.info(f"Reassembled {len(rows)} rows")
        return rows

    @staticmethod
    def _next_boundary(text: str, index: int) -> int:
        """Offset of the opening bracket of the next page, or the end of the text."""
        match = PAGE_BOUNDARY.search(text, index)
        return match.start() + 1 if match else len(text)
