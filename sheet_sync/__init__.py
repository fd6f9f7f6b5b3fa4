"""Upsert externally sourced records into a remote Excel workbook."""

__version__ = "0.1.0"
