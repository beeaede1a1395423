"""
Format conversion service.
Reads every record from a source and re-emits it in another wire format.
"""
from pathlib import Path
from typing import BinaryIO, Dict, List, Literal

from pydantic import BaseModel, Field

from ypbank.csv_format import CSV_FORMAT
from ypbank.exceptions import ConversionError, UnsupportedFormatError
from ypbank.logger import setup_logger
from ypbank.models import TransactionRecord
from ypbank.streaming import Parser, Serializer
from ypbank.text_format import TEXT_FORMAT

logger = setup_logger(__name__)

FormatName = Literal["text", "csv"]

FORMATS: Dict[str, object] = {
    TEXT_FORMAT.name: TEXT_FORMAT,
    CSV_FORMAT.name: CSV_FORMAT,
}


class ConversionResult(BaseModel):
    """Summary of a finished conversion."""
    source_format: FormatName
    target_format: FormatName
    records_converted: int = Field(..., ge=0)


class ConversionService:
    """Converts transaction records between wire formats."""
    
    def get_format(self, name: str):
        """
        Look up a format by name.
        
        Raises:
            UnsupportedFormatError: If the name is not a known format
        """
        fmt = FORMATS.get(name)
        if fmt is None:
            raise UnsupportedFormatError(
                f"Unsupported format: {name}",
                details={"format": name, "supported": sorted(FORMATS)}
            )
        return fmt
    
    def read_records(self, source: BinaryIO, fmt_name: str) -> List[TransactionRecord]:
        """
        Read all records from a source.
        
        Args:
            source: Binary source
            fmt_name: "text" or "csv"
        
        Returns:
            Records in source order
        
        Raises:
            ConversionError: If the source contains an invalid record
        """
        parser = Parser(self.get_format(fmt_name), source)
        records = list(parser)
        
        if parser.failed:
            error = parser.error
            raise ConversionError(
                f"Failed to read {fmt_name} record {parser.records_read + 1}: {error.message}",
                details={
                    "format": fmt_name,
                    "records_read": parser.records_read,
                    "error_type": type(error).__name__,
                    **error.details,
                }
            ) from error
        
        logger.info(f"Read {len(records)} records from {fmt_name} source")
        return records
    
    def convert(
        self,
        source: BinaryIO,
        sink: BinaryIO,
        source_format: str,
        target_format: str
    ) -> ConversionResult:
        """
        Convert every record in source to target_format and write it to sink.
        
        Nothing is written if reading fails.
        
        Returns:
            ConversionResult with the number of converted records
        """
        target = self.get_format(target_format)
        records = self.read_records(source, source_format)
        
        serializer = Serializer(target, sink)
        written = serializer.serialize(records)
        
        logger.info(f"Converted {written} records: {source_format} -> {target_format}")
        
        return ConversionResult(
            source_format=source_format,
            target_format=target_format,
            records_converted=written
        )
    
    def convert_file(
        self,
        input_path: str,
        output_path: str,
        source_format: str,
        target_format: str
    ) -> ConversionResult:
        """
        Convert a file on disk, creating the output directory if needed.
        
        Raises:
            ConversionError: If the input file does not exist or conversion fails
        """
        path = Path(input_path)
        if not path.exists():
            raise ConversionError(
                f"File not found: {input_path}",
                details={"file_path": input_path}
            )
        
        # Validate both names before touching the output file
        self.get_format(source_format)
        self.get_format(target_format)
        
        with open(path, "rb") as source:
            records = self.read_records(source, source_format)
        
        output_file = Path(output_path)
        output_file.parent.mkdir(parents=True, exist_ok=True)
        
        with open(output_file, "wb") as sink:
            written = Serializer(self.get_format(target_format), sink).serialize(records)
        
        logger.info(f"Converted {path.name} -> {output_file.name} ({written} records)")
        
        return ConversionResult(
            source_format=source_format,
            target_format=target_format,
            records_converted=written
        )
