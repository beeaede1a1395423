"""
Service layer.

This package contains service classes that orchestrate reading records in
one wire format and writing them in another.
"""
