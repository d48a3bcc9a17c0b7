"""
Spreadsheet output for transactions and reconstructed tables.
"""
import io
import logging
from pathlib import Path
from typing import List, Optional, Sequence, Union

import pandas as pd

from matrix_builder import MatrixBuilder
from schema import TRANSACTION_HEADERS, Matrix, Transaction

logger = logging.getLogger(__name__)


class SpreadsheetExporter:
    """Writes extraction results to .xlsx workbooks via pandas/openpyxl."""

    TRANSACTIONS_SHEET = 'Transactions'
    MATRIX_SHEET = 'Text'

    def __init__(self):
        self.logger = logging.getLogger(self.__class__.__name__)

    def transactions_to_excel(self, transactions: Sequence[Transaction],
                              headers: Optional[List[str]] = None,
                              output_path: Optional[Union[str, Path]] = None) -> bytes:
        """
        Convert transactions to an Excel workbook.

        Args:
            transactions: Extracted transactions
            headers: Column order; defaults to the transaction field names
            output_path: Optional file to also write the workbook to

        Returns:
            Workbook bytes
        """
        headers = headers or list(TRANSACTION_HEADERS)
        df = pd.DataFrame([t.to_record() for t in transactions], columns=headers, dtype=str)
        return self._write(df, self.TRANSACTIONS_SHEET, output_path, header=True)

    def matrix_to_excel(self, matrix: Matrix,
                        output_path: Optional[Union[str, Path]] = None) -> bytes:
        """Convert a reconstructed matrix to a headerless Excel sheet."""
        df = MatrixBuilder.to_dataframe(matrix)
        return self._write(df, self.MATRIX_SHEET, output_path, header=False)

    def _write(self, df: pd.DataFrame, sheet_name: str,
               output_path: Optional[Union[str, Path]], header: bool) -> bytes:
        try:
            buffer = io.BytesIO()
            with pd.ExcelWriter(buffer, engine='openpyxl') as writer:
                df.to_excel(writer, sheet_name=sheet_name, index=False, header=header)
            data = buffer.getvalue()

            if output_path:
                Path(output_path).write_bytes(data)
                self.logger.info(f"Workbook written to: {output_path}")

            self.logger.info(f"Wrote {len(df)} rows to sheet {sheet_name}")
            return data

        except Exception as e:
            self.logger.error(f"Excel export failed: {str(e)}")
            raise ValueError(f"Failed to convert to Excel: {str(e)}") from e
