from .document import CsvBackend, CsvDocument, CsvSheet, format_cell_text

__all__ = [
    "CsvBackend",
    "CsvDocument",
    "CsvSheet",
    "format_cell_text",
]
