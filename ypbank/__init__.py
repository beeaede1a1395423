"""
Transaction record formats for YPBank.

This package contains:
- config: Library configuration and settings
- exceptions: Custom exception classes
- logger: Logging configuration
- models: Pydantic transaction record and enumerations
- text_format: Key/value block text format reader and writer
- csv_format: CSV format reader and writer (pandas)
- streaming: Format-agnostic Parser and Serializer
"""
