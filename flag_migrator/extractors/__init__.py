"""Readers for source exports."""

from .export_file import ExportFileExtractor, ExportFileError

__all__ = [
    "ExportFileExtractor",
    "ExportFileError",
]
