"""Reader for Taplytics JSON export files."""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Union

from pydantic import ValidationError

from ..models.source import ImportFile

logger = logging.getLogger(__name__)


class ExportFileError(Exception):
    """The export file is unreadable, malformed, or missing required fields."""


class ExportFileExtractor:
    """
    Loads and validates a Taplytics export.

    Records are accepted in both shapes: flat ``audience`` + ``distribution``
    records and per-environment ``targets`` records.
    """

    def __init__(self, file_path: Union[str, Path], encoding: str = "utf-8"):
        self.file_path = Path(file_path)
        self.encoding = encoding

    def extract(self) -> ImportFile:
        """
        Read and validate the export.

        Raises:
            ExportFileError: on any read, parse or validation failure
        """
        try:
            with open(self.file_path, encoding=self.encoding) as f:
                data = json.load(f)
        except OSError as e:
            raise ExportFileError(f"Error reading file {self.file_path}: {e}") from e
        except json.JSONDecodeError as e:
            raise ExportFileError(f"Error parsing file {self.file_path}: {e}") from e

        export = self.parse(data)

        flat = sum(1 for r in export.records if not r.has_targets)
        logger.info(
            f"Loaded {len(export.records)} records from {self.file_path} "
            f"({flat} flat-audience, {len(export.records) - flat} with targets)"
        )
        return export

    @staticmethod
    def parse(data: Dict[str, Any]) -> ImportFile:
        """Validate an already-decoded export document."""
        if not isinstance(data, dict):
            raise ExportFileError("Export must be a JSON object")
        try:
            return ImportFile.model_validate(data)
        except ValidationError as e:
            raise ExportFileError(f"Invalid export file: {e}") from e
