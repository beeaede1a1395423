"""
Custom exceptions for record decoding and encoding.
"""
from typing import Any, Dict, Optional


class YPBankError(Exception):
    """Base exception for all record format errors."""
    
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        """
        Initialize exception.
        
        Args:
            message: Error message
            details: Additional error details (line number, offending key, ...)
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}


class SourceExhaustedError(YPBankError):
    """Raised when a source has no further records to give."""
    pass


# Text (key/value block) format

class TextFormatError(YPBankError):
    """Base class for text block format errors."""
    pass


class StructuralError(TextFormatError):
    """Raised when a line has no key/value separator."""
    pass


class SourceIOError(TextFormatError):
    """Raised when reading the underlying source fails."""
    pass


class FieldError(TextFormatError):
    """Raised when a block has a missing, unknown or unparseable field."""
    
    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, details)
        self.field = field


class EmptySourceError(TextFormatError, SourceExhaustedError):
    """Raised when the source never contained a record."""
    pass


class TrailingBlankContentError(TextFormatError, SourceExhaustedError):
    """Raised when only blank or comment lines remain after the last record."""
    pass


# CSV format

class CsvFormatError(YPBankError):
    """Base class for CSV format errors."""
    pass


class MalformedRowError(CsvFormatError):
    """Raised when a CSV row or header cannot be turned into a record."""
    pass


class EndOfInputError(CsvFormatError, SourceExhaustedError):
    """Raised when the CSV source has no more rows."""
    pass


# Services

class ConversionError(YPBankError):
    """Raised when converting between formats fails."""
    pass


class UnsupportedFormatError(YPBankError):
    """Raised when a format name is not known."""
    pass
