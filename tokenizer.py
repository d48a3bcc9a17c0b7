"""
Statement text tokenizer.

Keeps the statement-format specific patterns (date anchors, amount
literals) in one configurable place. New statement layouts are added as new
TokenizerConfig instances instead of new regular expressions in the parser.
"""
import logging
import re
from datetime import datetime
from enum import Enum
from typing import List, Optional

from dateutil import parser as date_parser
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class TokenKind(str, Enum):
    DATE = "date"
    AMOUNT = "amount"
    TEXT = "text"


class Token(BaseModel):
    kind: TokenKind
    text: str
    start: int
    end: int
    value: Optional[datetime] = None


class TokenizerConfig(BaseModel):
    """Patterns describing one statement format."""
    name: str
    date_patterns: List[str] = Field(
        default_factory=lambda: [r'\d{2}/\d{2}/\d{4}', r'\d{4}-\d{2}-\d{2}'],
        description="Date token forms, tried in order",
    )
    currency_letters: str = Field('R', description="Letters allowed as a currency prefix")
    group_separator: str = Field(' ', description="Separator between digit triples")


CAPITEC = TokenizerConfig(name='capitec')


class StatementTokenizer:
    """Splits statement text into record blocks and typed tokens."""

    def __init__(self, config: TokenizerConfig = CAPITEC):
        self.config = config
        self.logger = logging.getLogger(self.__class__.__name__)

        date_alternatives = '|'.join(f'(?:{pattern})' for pattern in config.date_patterns)
        self.date_pattern = re.compile(rf'^(?:{date_alternatives})')
        # A record starts on a new line with a date glued to a letter; dates inside
        # descriptions are not followed by letters
        self.block_start_pattern = re.compile(rf'(?=\n(?:{date_alternatives})[A-Za-z])')

        currency = ''
        if config.currency_letters:
            currency = rf'(?:(?<![A-Za-z])[{re.escape(config.currency_letters)}] ?)?'
        separator = re.escape(config.group_separator)
        self.amount_pattern = re.compile(rf'-?{currency}\d{{1,3}}(?:{separator}\d{{3}})*\.\d{{2}}')

    def split_blocks(self, text: str) -> List[str]:
        """
        Split raw statement text into per-record blocks.

        Args:
            text: Plain text of the whole statement

        Returns:
            Trimmed, non-empty blocks in document order
        """
        blocks = [block.strip() for block in self.block_start_pattern.split(text or '')]
        return [block for block in blocks if block]

    def leading_date(self, block: str) -> Optional[Token]:
        match = self.date_pattern.match(block)
        if not match:
            return None
        return Token(kind=TokenKind.DATE, text=match.group(), start=match.start(),
                     end=match.end(), value=self.parse_date(match.group()))

    def amounts(self, block: str) -> List[Token]:
        """All amount literals in order of appearance."""
        return [
            Token(kind=TokenKind.AMOUNT, text=match.group(), start=match.start(), end=match.end())
            for match in self.amount_pattern.finditer(block)
        ]

    def tokenize(self, block: str) -> List[Token]:
        """
        Tokenize a block into its leading date, amounts and the text runs between them.

        Args:
            block: One record block

        Returns:
            Tokens ordered by position
        """
        tokens: List[Token] = []
        date = self.leading_date(block)
        offset = 0
        if date:
            tokens.append(date)
            offset = date.end

        for amount in self.amount_pattern.finditer(block, offset):
            self._append_text(tokens, block, offset, amount.start())
            tokens.append(Token(kind=TokenKind.AMOUNT, text=amount.group(),
                                start=amount.start(), end=amount.end()))
            offset = amount.end()

        self._append_text(tokens, block, offset, len(block))
        return tokens

    @staticmethod
    def parse_date(text: str) -> Optional[datetime]:
        """Interpret a date literal; None when it is not a real calendar date."""
        year_first = bool(re.match(r'\d{4}', text))
        try:
            return date_parser.parse(text, dayfirst=not year_first, yearfirst=year_first)
        except (ValueError, OverflowError):
            logger.debug(f"Date token is not a calendar date: {text}")
            return None

    @staticmethod
    def _append_text(tokens: List[Token], block: str, start: int, end: int) -> None:
        text = block[start:end].strip()
        if text:
            tokens.append(Token(kind=TokenKind.TEXT, text=text, start=start, end=end))
