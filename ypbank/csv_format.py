"""
CSV format backed by pandas.

pandas does the delimiter and quote handling; this module checks the header
and row widths, trims values and hands each row to the record model.
"""
import csv
from typing import Any, BinaryIO, List, Optional

import pandas as pd
from pydantic import ValidationError

from ypbank.config import get_settings
from ypbank.exceptions import EndOfInputError, MalformedRowError
from ypbank.logger import setup_logger
from ypbank.models import WIRE_FIELDS, TransactionRecord

logger = setup_logger(__name__)

HEADER = ",".join(WIRE_FIELDS)

# Errors pandas' python engine raises for unreadable content
PARSE_ERRORS = (pd.errors.ParserError, csv.Error, UnicodeDecodeError, ValueError)


class CsvRecordReader:
    """
    Pulls rows from a pandas reader one record at a time.

    pandas runs its python engine with one row per chunk, so a bad row fails
    only its own read and every row before it has already been returned. The
    header is read as an ordinary row (``header=None``) and checked here, so
    pandas never turns an over-long row into an implicit index.

    pandas is only invoked on the first read, so an empty source surfaces as
    EndOfInputError from read_record() rather than from construction.
    """

    def __init__(self, source: BinaryIO, encoding: Optional[str] = None):
        self.source = source
        self.encoding = encoding or get_settings().encoding
        self.row_number = 0
        self._rows = None
        self._exhausted = False

    def _open(self) -> None:
        try:
            self._rows = pd.read_csv(
                self.source,
                header=None,
                dtype=object,
                na_filter=False,
                skipinitialspace=True,
                engine="python",
                encoding=self.encoding,
                chunksize=1,
            )
        except pd.errors.EmptyDataError:
            self._exhausted = True
            return
        except OSError as e:
            logger.error(f"Failed to read CSV source: {e}")
            raise MalformedRowError(
                "Failed to read CSV source",
                details={"row": 0, "error": str(e)}
            ) from e
        except PARSE_ERRORS as e:
            logger.error(f"Failed to parse CSV input: {e}")
            raise MalformedRowError(
                "Malformed CSV input",
                details={"row": 0, "error": str(e)}
            ) from e

        header = self._next_row(row=0)
        if header is not None:
            self._check_header([str(value).strip() for value in header])

    def _check_header(self, columns: List[str]) -> None:
        if columns != list(WIRE_FIELDS):
            logger.error(f"Unexpected CSV header: {columns}")
            raise MalformedRowError(
                "CSV header does not match expected columns",
                details={
                    "row": 0,
                    "expected": list(WIRE_FIELDS),
                    "found": columns,
                    "missing": sorted(set(WIRE_FIELDS) - set(columns)),
                    "extra": sorted(set(columns) - set(WIRE_FIELDS)),
                }
            )

    def _next_row(self, row: int) -> Optional[List[Any]]:
        try:
            chunk = next(self._rows)
        except StopIteration:
            self._exhausted = True
            return None
        except OSError as e:
            logger.error(f"Failed to read CSV source at row {row}: {e}")
            raise MalformedRowError(
                f"Failed to read CSV row {row}",
                details={"row": row, "error": str(e)}
            ) from e
        except PARSE_ERRORS as e:
            logger.error(f"Failed to parse CSV row {row}: {e}")
            raise MalformedRowError(
                f"Malformed CSV row {row}",
                details={"row": row, "error": str(e)}
            ) from e

        if chunk.empty:
            self._exhausted = True
            return None
        return chunk.iloc[0].tolist()

    def read_record(self) -> TransactionRecord:
        """
        Return the next record.

        Raises:
            MalformedRowError: If the header or a row is invalid, or the source fails
            EndOfInputError: If no rows remain
        """
        if self._rows is None and not self._exhausted:
            self._open()

        values = None if self._exhausted else self._next_row(row=self.row_number + 1)
        if values is None:
            raise EndOfInputError(
                "End of CSV input",
                details={"rows_read": self.row_number}
            )

        self.row_number += 1

        # Short rows come back padded with None
        present = [value for value in values if isinstance(value, str)]
        if len(values) != len(WIRE_FIELDS) or len(present) != len(WIRE_FIELDS):
            logger.error(f"CSV row {self.row_number} has {len(present)} fields, expected {len(WIRE_FIELDS)}")
            raise MalformedRowError(
                f"CSV row {self.row_number} has {len(present)} fields, expected {len(WIRE_FIELDS)}",
                details={"row": self.row_number, "fields": len(present)}
            )

        fields = dict(zip(WIRE_FIELDS, (value.strip() for value in values)))

        try:
            return TransactionRecord.model_validate(fields)
        except ValidationError as e:
            errors = e.errors(include_url=False)
            logger.error(f"Invalid CSV row {self.row_number}: {errors[0]['msg']}")
            raise MalformedRowError(
                f"Invalid CSV row {self.row_number}",
                details={
                    "row": self.row_number,
                    "errors": [
                        {"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]}
                        for err in errors
                    ],
                }
            ) from e


def quote_field(value: str) -> str:
    """Wrap a value in double quotes, doubling any quotes inside it."""
    return '"' + value.replace('"', '""') + '"'


def encode_row(record: TransactionRecord) -> str:
    """Render a record as one CSV line with the description quoted."""
    values = [value for _, value in record.to_wire()]
    values[-1] = quote_field(values[-1])
    return ",".join(values) + "\n"


class CsvFormat:
    """Read/write capabilities for the CSV format."""

    name = "csv"

    def __init__(self, encoding: Optional[str] = None):
        self.encoding = encoding

    def build_reader(self, source: BinaryIO) -> CsvRecordReader:
        return CsvRecordReader(source, encoding=self.encoding)

    def read(self, reader: CsvRecordReader) -> TransactionRecord:
        return reader.read_record()

    def write_header(self, sink: BinaryIO) -> None:
        sink.write((HEADER + "\n").encode(self.encoding or get_settings().encoding))

    def write(self, record: TransactionRecord, sink: BinaryIO) -> None:
        sink.write(encode_row(record).encode(self.encoding or get_settings().encoding))


CSV_FORMAT = CsvFormat()
