"""
Table reconstruction from formatted rows.

Columns are inferred from runs of spaces in each row's text. Column bounds
are a placeholder grid, not a geometric fit to glyph positions.
"""
import logging
import re
from typing import List, Optional, Sequence

import pandas as pd

from config import ProcessorConfig
from schema import ColumnBound, FormattedRow, Matrix

logger = logging.getLogger(__name__)


class MatrixBuilder:
    """Splits row text into cells and rectangularizes the result."""

    def __init__(self, config: Optional[ProcessorConfig] = None):
        self.config = config or ProcessorConfig()
        self.logger = logging.getLogger(self.__class__.__name__)
        self.column_separator = re.compile(r' {%d,}' % self.config.column_split_spaces)

    def split_cells(self, text: str) -> List[str]:
        """Split text on long space runs, dropping empty edge cells."""
        return [cell for cell in self.column_separator.split(text) if cell]

    def build(self, rows: Sequence[FormattedRow]) -> Matrix:
        """
        Build a rectangular matrix from formatted rows.

        Args:
            rows: Formatted rows in document order

        Returns:
            Matrix whose rows all have column_count cells
        """
        split_rows = [self.split_cells(row.text) for row in rows]
        column_count = max([len(cells) for cells in split_rows] + [1])

        padded = [cells + [''] * (column_count - len(cells)) for cells in split_rows]
        column_bounds = [
            ColumnBound(x=i * self.config.column_width, width=self.config.column_width)
            for i in range(column_count)
        ]

        self.logger.info(f"Built matrix of {len(padded)} rows x {column_count} columns")
        return Matrix(
            rows=padded,
            column_count=column_count,
            row_count=len(padded),
            column_bounds=column_bounds,
        )

    @staticmethod
    def to_dataframe(matrix: Matrix) -> pd.DataFrame:
        """Matrix as a DataFrame with positional column labels."""
        return pd.DataFrame(matrix.rows, columns=range(matrix.column_count))
