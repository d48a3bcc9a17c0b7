"""
Error taxonomy for statement processing.

Callers branch on ``kind`` (or the exception class) instead of inspecting
error messages.
"""
from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    INVALID_INPUT = "invalid_input"
    DECODE = "decode"
    RECONSTRUCTION = "reconstruction"
    EMPTY_RESULT = "empty_result"


class StatementProcessingError(Exception):
    """Base class for terminal processing failures."""
    kind: ErrorKind = ErrorKind.DECODE

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InputValidationError(StatementProcessingError):
    """Input buffer is empty or is not a PDF document."""
    kind = ErrorKind.INVALID_INPUT


class DecodeError(StatementProcessingError):
    """The page decoder failed on the document."""
    kind = ErrorKind.DECODE

    def __init__(self, message: str, filesystem_access: bool = False,
                 cause: Optional[BaseException] = None):
        super().__init__(message)
        # Set when the decoder touched the filesystem while reading an in-memory buffer
        self.filesystem_access = filesystem_access
        self.cause = cause


class ReconstructionError(StatementProcessingError):
    """No per-page fragment could be parsed back into rows."""
    kind = ErrorKind.RECONSTRUCTION


class EmptyResultError(StatementProcessingError):
    """Processing finished without a single usable row or transaction."""
    kind = ErrorKind.EMPTY_RESULT
