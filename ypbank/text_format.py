"""
Key/value block text format.

A record is a block of ``KEY: value`` lines terminated by a blank line or by
end of input. Whole-line ``#`` comments are ignored anywhere. Keys may come in
any order but the block must hold exactly the eight wire keys.

    # Record 1
    TX_ID: 1001
    TX_TYPE: DEPOSIT
    FROM_USER_ID: 0
    TO_USER_ID: 501
    AMOUNT: 50000
    TIMESTAMP: 1672531200000
    STATUS: SUCCESS
    DESCRIPTION: Initial account funding

"""
from typing import BinaryIO, Dict, Optional

from pydantic import ValidationError

from ypbank.config import get_settings
from ypbank.exceptions import (
    EmptySourceError,
    FieldError,
    SourceIOError,
    StructuralError,
    TrailingBlankContentError,
)
from ypbank.logger import setup_logger
from ypbank.models import WIRE_FIELDS, TransactionRecord

logger = setup_logger(__name__)

COMMENT_PREFIX = "#"
SEPARATOR = ":"


class TextRecordReader:
    """
    Line reader over a binary source with per-stream decoding state.

    Owns the key/value mapping for the block being accumulated, the current
    line number, and how many records it has produced so far. Not thread-safe.
    """

    def __init__(self, source: BinaryIO, encoding: Optional[str] = None):
        self.source = source
        self.encoding = encoding or get_settings().encoding
        self.line_number = 0
        self.records_read = 0
        self.fields: Dict[str, str] = {}
        self._block_start = 0

    def read_line(self) -> Optional[str]:
        """
        Read and decode the next line.

        Returns:
            The line without surrounding whitespace, or None at end of input

        Raises:
            SourceIOError: If the source fails
            FieldError: If the line is not valid text in the configured encoding
        """
        try:
            raw = self.source.readline()
        except OSError as e:
            logger.error(f"Read failed after line {self.line_number}: {e}")
            raise SourceIOError(
                "Failed to read from source",
                details={"line": self.line_number, "error": str(e)}
            ) from e

        if not raw:
            return None

        self.line_number += 1
        try:
            return raw.decode(self.encoding).strip()
        except UnicodeDecodeError as e:
            raise FieldError(
                f"Line {self.line_number} is not valid {self.encoding}",
                details={"line": self.line_number, "encoding": self.encoding}
            ) from e

    def read_record(self) -> TransactionRecord:
        """
        Decode the next block into a record.

        Returns:
            The decoded record

        Raises:
            StructuralError: If a line has no ':' separator
            FieldError: If the block has missing, unknown or invalid fields
            SourceIOError: If the source fails
            EmptySourceError: If the source never held a record
            TrailingBlankContentError: If only blank/comment lines were left
        """
        self.fields.clear()

        while True:
            line = self.read_line()

            if line is None:
                if self.fields:
                    return self._finalize()
                if self.records_read == 0:
                    raise EmptySourceError(
                        "Source contains no records",
                        details={"lines": self.line_number}
                    )
                raise TrailingBlankContentError(
                    "No more records in source",
                    details={"records_read": self.records_read, "lines": self.line_number}
                )

            if line.startswith(COMMENT_PREFIX):
                continue

            if not line:
                if self.fields:
                    return self._finalize()
                continue

            key, sep, value = line.partition(SEPARATOR)
            if not sep:
                logger.error(f"Missing '{SEPARATOR}' on line {self.line_number}")
                raise StructuralError(
                    f"Line {self.line_number} has no '{SEPARATOR}' after key",
                    details={"line": self.line_number, "content": line}
                )

            key = key.strip()
            if not self.fields:
                self._block_start = self.line_number
            if key in self.fields:
                logger.warning(f"Duplicate key {key} on line {self.line_number}, keeping last value")
            self.fields[key] = value.strip()

    def _finalize(self) -> TransactionRecord:
        record = build_record(self.fields, line=self._block_start)
        self.fields.clear()
        self.records_read += 1
        logger.debug(f"Decoded record TX_ID={record.id} from block at line {self._block_start}")
        return record


def build_record(fields: Dict[str, str], line: Optional[int] = None) -> TransactionRecord:
    """
    Turn an accumulated key/value mapping into a record.

    Args:
        fields: Wire key to wire text
        line: Line number where the block started, for error details

    Returns:
        The validated record

    Raises:
        FieldError: If a key is unknown or missing or a value does not parse
    """
    keys = set(fields)

    unknown = sorted(keys.difference(WIRE_FIELDS))
    if unknown:
        logger.error(f"Unknown fields {unknown} in block at line {line}")
        raise FieldError(
            f"Unknown field(s): {', '.join(unknown)}",
            field=unknown[0],
            details={"line": line, "unknown": unknown}
        )

    missing = [key for key in WIRE_FIELDS if key not in keys]
    if missing:
        logger.error(f"Missing fields {missing} in block at line {line}")
        raise FieldError(
            f"Missing field(s): {', '.join(missing)}",
            field=missing[0],
            details={"line": line, "missing": missing}
        )

    try:
        return TransactionRecord.model_validate(fields)
    except ValidationError as e:
        errors = e.errors(include_url=False)
        field = str(errors[0]["loc"][0]) if errors and errors[0]["loc"] else None
        logger.error(f"Invalid value for {field} in block at line {line}: {errors[0]['msg']}")
        raise FieldError(
            f"Invalid value for field {field}: {fields.get(field)!r}",
            field=field,
            details={
                "line": line,
                "errors": [
                    {"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]}
                    for err in errors
                ],
            }
        ) from e


def encode_record(record: TransactionRecord) -> str:
    """Render a record as eight canonical lines followed by a blank line."""
    lines = [f"{key}: {value}\n" for key, value in record.to_wire()]
    lines.append("\n")
    return "".join(lines)


class TextFormat:
    """Read/write capabilities for the text block format."""

    name = "text"

    def __init__(self, encoding: Optional[str] = None):
        self.encoding = encoding

    def build_reader(self, source: BinaryIO) -> TextRecordReader:
        return TextRecordReader(source, encoding=self.encoding)

    def read(self, reader: TextRecordReader) -> TransactionRecord:
        return reader.read_record()

    def write_header(self, sink: BinaryIO) -> None:
        """The text format has no header."""
        return None

    def write(self, record: TransactionRecord, sink: BinaryIO) -> None:
        """
        Append one block to the sink and flush it.

        OSError from the sink propagates unchanged.
        """
        encoding = self.encoding or get_settings().encoding
        sink.write(encode_record(record).encode(encoding))
        sink.flush()


TEXT_FORMAT = TextFormat()
