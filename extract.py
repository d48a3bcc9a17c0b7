"""
Statement text extraction pipeline.

Two independent paths share the same PDF decoder:
  layout        glyphs -> rows -> formatted rows (per page) -> reassembled rows -> matrix
  transactions  plain text -> record blocks -> transactions
"""
import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional, Union

import pandas as pd
from pydantic import ValidationError

from aggregator import PageAggregator
from config import ProcessorConfig, configure_logging
from errors import EmptyResultError, StatementProcessingError
from exporter import SpreadsheetExporter
from extractor import TransactionExtractor
from file_loader import FileLoader, PdfDecoder
from layout import render_page
from matrix_builder import MatrixBuilder
from schema import ConversionResult, LayoutResult, TransactionList

logger = logging.getLogger(__name__)

Source = Union[str, Path, bytes, bytearray]


class BankStatementProcessor:
    """Main processor for bank statements."""

    def __init__(self, config: Optional[ProcessorConfig] = None):
        self.config = config or ProcessorConfig()
        self.file_loader = FileLoader()
        self.decoder = PdfDecoder()
        self.aggregator = PageAggregator()
        self.matrix_builder = MatrixBuilder(self.config)
        self.extractor = TransactionExtractor()
        self.exporter = SpreadsheetExporter()

    def extract_text(self, source: Source) -> str:
        """
        Serialized rows of every page, concatenated as the decoder returns them.

        Args:
            source: Path to a PDF or the PDF bytes

        Returns:
            Concatenated per-page JSON arrays
        """
        data = self._load(source)
        document = self.decoder.decode(data, pagerender=self._render_page)
        text = document.text.strip()
        if not text:
            raise EmptyResultError("No text content extracted from PDF")

        logger.info(f"PDF text extraction successful, text length: {len(text)}")
        return text

    def process_layout(self, source: Source) -> LayoutResult:
        """
        Reconstruct rows and a cell matrix from a document.

        Args:
            source: Path to a PDF or the PDF bytes

        Returns:
            LayoutResult with rows and matrix
        """
        logger.info(f"Starting layout reconstruction of: {self._describe(source)}")
        data = self._load(source)
        document = self.decoder.decode(data, pagerender=self._render_page)

        rows = self.aggregator.reassemble_rows(document.text)
        if not rows:
            raise EmptyResultError("No text rows could be reconstructed from the PDF")

        matrix = self.matrix_builder.build(rows)
        logger.info(f"Reconstructed {len(rows)} rows from {document.num_pages} pages")
        return LayoutResult(rows=rows, matrix=matrix, page_count=document.num_pages)

    def process_transactions(self, source: Source) -> TransactionList:
        """
        Extract statement transactions end-to-end.

        Args:
            source: Path to a PDF or the PDF bytes

        Returns:
            TransactionList with headers and processing metadata
        """
        logger.info(f"Starting transaction extraction of: {self._describe(source)}")
        data = self._load(source)
        document = self.decoder.decode(data, separator=self.config.text_page_separator)

        parsed = self.extractor.segment(document.text)
        transactions = self.extractor.collect(parsed)

        period = [t.posted_on for t in transactions if t.posted_on is not None]

        metadata = {
            'source_file': self._describe(source),
            'file_type': 'pdf',
            'page_count': document.num_pages,
            'blocks_found': len(parsed),
            'valid_transactions': len(transactions),
            'period_start': min(period).strftime('%Y-%m-%d') if period else None,
            'period_end': max(period).strftime('%Y-%m-%d') if period else None,
            'processing_date': str(pd.Timestamp.now()),
        }

        result = TransactionList(
            transactions=transactions,
            total_count=len(transactions),
            processing_metadata=metadata,
        )
        logger.info(f"Successfully processed {result.total_count} transactions")
        return result

    def convert_layout(self, source: Source) -> ConversionResult:
        """Like process_layout, but failures are reported in the result."""
        try:
            layout = self.process_layout(source)
        except StatementProcessingError as e:
            logger.error(f"Layout reconstruction failed: {e.message}")
            return ConversionResult(success=False, kind=e.kind, message=e.message)

        return ConversionResult(
            success=True,
            message=f"Successfully reconstructed {len(layout.rows)} rows",
            layout=layout,
        )

    def convert_transactions(self, source: Source) -> ConversionResult:
        """Like process_transactions, but failures are reported in the result."""
        try:
            transactions = self.process_transactions(source)
        except StatementProcessingError as e:
            logger.error(f"Transaction extraction failed: {e.message}")
            return ConversionResult(success=False, kind=e.kind, message=e.message)

        return ConversionResult(
            success=True,
            message=f"Successfully extracted {transactions.total_count} transactions",
            transactions=transactions,
        )

    def _render_page(self, page) -> str:
        return render_page(page, self.config.render_options, self.config)

    def _load(self, source: Source) -> bytes:
        if isinstance(source, (bytes, bytearray)):
            return self.file_loader.validate_buffer(source)
        return self.file_loader.load_file(source)

    @staticmethod
    def _describe(source: Source) -> str:
        if isinstance(source, (bytes, bytearray)):
            return f"<{len(source)} bytes>"
        return str(source)


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(description='Extract text rows and transactions from bank statements')
    parser.add_argument('file_path', help='Path to bank statement PDF')
    parser.add_argument('-m', '--mode', choices=['transactions', 'layout', 'text'], default='transactions',
                        help='What to extract (default: transactions)')
    parser.add_argument('-o', '--output', help='Output file path (.json or .xlsx)')
    parser.add_argument('-v', '--verbose', action='store_true', help='Enable verbose logging')
    parser.add_argument('--tolerance', type=float, help='Row grouping tolerance')
    parser.add_argument('--normalize-whitespace', action='store_true',
                        help='Collapse whitespace inside glyph text')
    parser.add_argument('--disable-combine', action='store_true',
                        help='Do not merge adjacent glyphs into runs')
    parser.add_argument('--log-file', help='Also write logs to this file')

    args = parser.parse_args(argv)

    configure_logging(logging.DEBUG if args.verbose else logging.INFO, args.log_file)

    if not Path(args.file_path).exists():
        print(f"Error: File not found - {args.file_path}")
        sys.exit(1)

    try:
        settings = ProcessorConfig.from_env().model_dump()
        if args.tolerance is not None:
            settings['row_tolerance'] = args.tolerance
        settings['render_options']['normalize_whitespace'] |= args.normalize_whitespace
        settings['render_options']['disable_combine_text_items'] |= args.disable_combine
        config = ProcessorConfig.model_validate(settings)
    except ValidationError as e:
        print(f"Error: Invalid configuration - {e.errors()[0]['loc'][0]}: {e.errors()[0]['msg']}")
        sys.exit(1)

    processor = BankStatementProcessor(config)
    output = Path(args.output) if args.output else None

    try:
        if args.mode == 'text':
            text = processor.extract_text(args.file_path)
            _emit(text, output)

        elif args.mode == 'layout':
            layout = processor.process_layout(args.file_path)
            if output and output.suffix.lower() == '.xlsx':
                processor.exporter.matrix_to_excel(layout.matrix, output)
                print(f"Results written to: {output}")
            else:
                _emit(json.dumps(layout.model_dump(mode='json', by_alias=True), indent=2,
                                 ensure_ascii=False), output)
            print(f"\nSummary:")
            print(f"- Pages: {layout.page_count}")
            print(f"- Rows: {layout.matrix.row_count}")
            print(f"- Columns: {layout.matrix.column_count}")

        else:
            result = processor.process_transactions(args.file_path)
            if output and output.suffix.lower() == '.xlsx':
                processor.exporter.transactions_to_excel(result.transactions, result.headers, output)
                print(f"Results written to: {output}")
            else:
                output_data = {
                    'headers': result.headers,
                    'transactions': [t.to_record() for t in result.transactions],
                    'total_count': result.total_count,
                    'processing_metadata': result.processing_metadata,
                }
                _emit(json.dumps(output_data, indent=2, ensure_ascii=False), output)
            print(f"\nSummary:")
            print(f"- Total transactions processed: {result.total_count}")
            print(f"- Source file: {result.processing_metadata['source_file']}")

    except (StatementProcessingError, ValueError) as e:
        logger.error(f"Processing failed: {str(e)}")
        print(f"Error: {str(e)}")
        sys.exit(1)


def _emit(text: str, output: Optional[Path]) -> None:
    if output:
        output.write_text(text, encoding='utf-8')
        print(f"Results written to: {output}")
    else:
        print(text)


if __name__ == "__main__":
    main()
