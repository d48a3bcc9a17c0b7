"""
Pydantic schemas for glyphs, reconstructed rows, tables and transactions.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from errors import ErrorKind

IDENTITY_TRANSFORM = (1.0, 0.0, 0.0, 1.0, 0.0, 0.0)
TRANSACTION_HEADERS = ['Date', 'Description', 'Amount', 'Fees', 'Balance']


class GlyphRun(BaseModel):
    """One positioned run of text as supplied by the page decoder."""
    model_config = ConfigDict(frozen=True)

    text: str = ""
    # [scaleX, skewX, skewY, scaleY, translateX, translateY]
    transform: Tuple[float, float, float, float, float, float] = IDENTITY_TRANSFORM
    width: Optional[float] = Field(None, description="Advance width reported by the decoder")

    @field_validator('transform', mode='before')
    @classmethod
    def validate_transform(cls, v):
        """Accept any 6-item sequence; a missing transform means identity."""
        if v is None:
            return IDENTITY_TRANSFORM
        v = tuple(v)
        if len(v) != 6:
            raise ValueError(f'transform must have 6 components, got {len(v)}')
        return v

    @property
    def x(self) -> float:
        return self.transform[4]

    @property
    def y(self) -> float:
        return self.transform[5]

    @property
    def advance(self) -> float:
        """Horizontal extent; the horizontal scale stands in when no width was reported."""
        return self.width if self.width is not None else self.transform[0]

    @property
    def height(self) -> float:
        return self.transform[3]


class TextEffects(BaseModel):
    """Visual effects inferred from a glyph's transform."""
    is_italic: bool
    is_rotated: bool
    is_bold: bool
    is_stretched: bool
    is_flipped: bool
    font_size: float
    rotation_degrees: float
    x: float
    y: float


class FormattedRow(BaseModel):
    """A visual line of text with its aggregate geometry and style tag."""
    model_config = ConfigDict(populate_by_name=True)

    text: str = ""
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0
    font_size: float = Field(0.0, alias="fontSize")
    font_name: str = Field("", alias="fontName")
    items: List[GlyphRun] = Field(default_factory=list)


class ColumnBound(BaseModel):
    x: float
    width: float


class Matrix(BaseModel):
    """Rectangular string-cell reconstruction of a document's rows."""
    model_config = ConfigDict(populate_by_name=True)

    rows: List[List[str]] = Field(default_factory=list)
    column_count: int = Field(1, alias="columnCount")
    row_count: int = Field(0, alias="rowCount")
    column_bounds: List[ColumnBound] = Field(default_factory=list, alias="columnBounds")


class LayoutResult(BaseModel):
    """Rows and table reconstructed from a whole document."""
    rows: List[FormattedRow]
    matrix: Matrix
    page_count: int = 0


class Transaction(BaseModel):
    """Single statement record. Amounts keep their literal text and currency marks."""
    model_config = ConfigDict(populate_by_name=True)

    date: str = Field(..., alias="Date", description="Date token exactly as printed")
    description: str = Field("", alias="Description")
    amount: str = Field("", alias="Amount")
    fees: str = Field("", alias="Fees")
    balance: str = Field(..., alias="Balance", description="Running balance, rightmost amount")
    posted_on: Optional[datetime] = Field(None, exclude=True,
                                          description="Calendar date of the date token, when it is one")

    @field_validator('date', 'balance')
    @classmethod
    def validate_not_blank(cls, v):
        if not v or not v.strip():
            raise ValueError('must not be blank')
        return v

    def to_record(self) -> Dict[str, str]:
        """Return the record keyed by spreadsheet header names."""
        return self.model_dump(by_alias=True)


class TransactionList(BaseModel):
    """Transactions extracted from one statement."""
    transactions: List[Transaction]
    headers: List[str] = Field(default_factory=lambda: list(TRANSACTION_HEADERS))
    total_count: int = Field(..., description="Total number of transactions")
    processing_metadata: Optional[Dict[str, Any]] = Field(None, description="Processing information")

    @field_validator('total_count')
    @classmethod
    def validate_count(cls, v, info):
        """Ensure count matches actual transaction list length."""
        transactions = info.data.get('transactions')
        if transactions is not None and v != len(transactions):
            return len(transactions)
        return v


class ConversionResult(BaseModel):
    """Outcome of a conversion; callers check ``kind`` instead of parsing ``message``."""
    success: bool
    message: str
    kind: Optional[ErrorKind] = None
    layout: Optional[LayoutResult] = None
    transactions: Optional[TransactionList] = None
