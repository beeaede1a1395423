"""
Format-agnostic streaming reader and writer.

Parser and Serializer only talk to the Readable / Writable protocols, so any
format object providing those methods can be plugged in.
"""
from enum import Enum
from typing import Any, BinaryIO, Generic, Iterable, Iterator, Optional, Protocol, TypeVar

from ypbank.exceptions import SourceExhaustedError, YPBankError
from ypbank.logger import setup_logger

logger = setup_logger(__name__)

RecordT = TypeVar("RecordT")
RecordT_co = TypeVar("RecordT_co", covariant=True)
RecordT_contra = TypeVar("RecordT_contra", contravariant=True)


class Readable(Protocol[RecordT_co]):
    """Builds a per-stream reader and decodes one record from it."""

    def build_reader(self, source: BinaryIO) -> Any: ...

    def read(self, reader: Any) -> RecordT_co: ...


class Writable(Protocol[RecordT_contra]):
    """Writes an optional header once and then one record at a time."""

    def write_header(self, sink: BinaryIO) -> None: ...

    def write(self, record: RecordT_contra, sink: BinaryIO) -> None: ...


class ParserState(str, Enum):
    ACTIVE = "active"
    EXHAUSTED = "exhausted"
    FAILED = "failed"


class Parser(Generic[RecordT]):
    """
    Lazy, forward-only iterator of records from a source.

    The first error raised by the format stops iteration for good and is kept
    in ``error``. End-of-input errors leave the parser EXHAUSTED, anything
    else leaves it FAILED.
    """

    def __init__(self, fmt: Readable[RecordT], source: BinaryIO):
        self.fmt = fmt
        self.reader = fmt.build_reader(source)
        self.state = ParserState.ACTIVE
        self.error: Optional[YPBankError] = None
        self.records_read = 0

    def __iter__(self) -> Iterator[RecordT]:
        return self

    def __next__(self) -> RecordT:
        if self.state is not ParserState.ACTIVE:
            raise StopIteration

        try:
            record = self.fmt.read(self.reader)
        except SourceExhaustedError as e:
            self.error = e
            self.state = ParserState.EXHAUSTED
            logger.debug(f"Source exhausted after {self.records_read} records: {e.message}")
            raise StopIteration
        except YPBankError as e:
            self.error = e
            self.state = ParserState.FAILED
            logger.error(f"Parsing stopped after {self.records_read} records: {e.message}")
            raise StopIteration

        self.records_read += 1
        return record

    @property
    def failed(self) -> bool:
        return self.state is ParserState.FAILED

    def raise_for_error(self) -> None:
        """Re-raise the latched error if parsing failed."""
        if self.state is ParserState.FAILED and self.error is not None:
            raise self.error


class Serializer(Generic[RecordT]):
    """Writes records to a sink, emitting the format header only once."""

    def __init__(self, fmt: Writable[RecordT], sink: BinaryIO):
        self.fmt = fmt
        self.sink = sink
        self.header_written = False
        self.records_written = 0

    def serialize(self, records: Iterable[RecordT]) -> int:
        """
        Write the header (first call only) followed by each record in order.

        Args:
            records: Records to write

        Returns:
            Number of records written by this call

        Raises:
            OSError: First failure from the sink; earlier output is left in place
        """
        if not self.header_written:
            self.fmt.write_header(self.sink)
            self.header_written = True

        count = 0
        for record in records:
            self.fmt.write(record, self.sink)
            count += 1

        self.records_written += count
        logger.debug(f"Serialized {count} records")
        return count

    def into_inner(self) -> BinaryIO:
        """Return the underlying sink."""
        return self.sink
