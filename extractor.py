import logging
from typing import List, Optional, Sequence

from errors import EmptyResultError
from schema import Transaction
from tokenizer import CAPITEC, StatementTokenizer, TokenizerConfig, TokenKind

logger = logging.getLogger(__name__)


class TransactionExtractor:
    """Extracts transaction records from statement text."""

    def __init__(self, tokenizer_config: TokenizerConfig = CAPITEC):
        self.logger = logging.getLogger(self.__class__.__name__)
        self.tokenizer = StatementTokenizer(tokenizer_config)

    def extract_from_text(self, text: str) -> List[Transaction]:
        """
        Extract transactions from the raw text of a statement.

        Args:
            text: Plain text extracted from the document

        Returns:
            List of transactions in document order

        Raises:
            EmptyResultError: If no block yields a transaction
        """
        return self.collect(self.segment(text))

    def collect(self, parsed: Sequence[Optional[Transaction]]) -> List[Transaction]:
        """Keep the usable results of segment(); raises EmptyResultError when there are none."""
        transactions = [t for t in parsed if t is not None]

        if not transactions:
            raise EmptyResultError("No transaction-like lines found in the PDF.")

        self.logger.info(f"Extracted {len(transactions)} transactions from {len(parsed)} blocks")
        return transactions

    def segment(self, text: str) -> List[Optional[Transaction]]:
        """Split text into record blocks and parse each one; unusable blocks come back as None."""
        blocks = self.tokenizer.split_blocks(text)
        self.logger.info(f"Extracting transactions from {len(blocks)} text blocks")
        return [self.parse_block(block) for block in blocks]

    def parse_block(self, block: str) -> Optional[Transaction]:
        """
        Parse one statement block into a transaction.

        The rightmost amount is the running balance. Of the remaining
        amounts the first is the transaction value and the second, if any,
        the fee. Further amounts are ignored. The description is the text
        between the amounts with whitespace collapsed.

        Args:
            block: Text of one record, starting at its date

        Returns:
            Transaction, or None if the block is not a valid record
        """
        try:
            tokens = self.tokenizer.tokenize(block)
            if not tokens or tokens[0].kind != TokenKind.DATE:
                return None
            date = tokens[0]

            amounts = [token.text for token in tokens if token.kind == TokenKind.AMOUNT]
            if len(amounts) < 2:
                return None

            balance = amounts[-1]
            others = [amount for amount in amounts if amount != balance]

            fees = ''
            if others:
                transaction_amount = others[0]
                if len(others) > 1:
                    fees = others[1]
            else:
                transaction_amount = amounts[0]

            text_runs = [token.text for token in tokens if token.kind == TokenKind.TEXT]

            return Transaction(
                date=date.text,
                description=' '.join(' '.join(text_runs).split()),
                amount=transaction_amount,
                fees=fees,
                balance=balance,
                posted_on=date.value,
            )

        except Exception as e:
            self.logger.warning(f"Error parsing transaction block {block[:40]!r}: {str(e)}")
            return None
