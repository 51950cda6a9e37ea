"""Trade importers."""

from tradejournal.importers.csv_import import (
    ColumnMapping,
    ImportResult,
    ImportValidationError,
    detect_column_mappings,
    import_csv,
    parse_csv,
)

__all__ = [
    "ColumnMapping",
    "ImportResult",
    "ImportValidationError",
    "detect_column_mappings",
    "import_csv",
    "parse_csv",
]
