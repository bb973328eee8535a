"""Export/import boundary: JSON and CSV payloads."""

from .export import CSV_HEADER, EXPORT_VERSION, build_export_payload, export_csv, export_filename, export_json
from .importer import IMPORT_SCHEMA, ImportResult, import_json, import_payload, validate_payload

__all__ = [
    "CSV_HEADER",
    "EXPORT_VERSION",
    "IMPORT_SCHEMA",
    "ImportResult",
    "build_export_payload",
    "export_csv",
    "export_filename",
    "export_json",
    "import_json",
    "import_payload",
    "validate_payload",
]
