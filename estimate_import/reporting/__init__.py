"""Row templates and file sinks for reviewed estimates."""
from estimate_import.reporting.sinks import write_csv, write_excel
from estimate_import.reporting.templates import LINE_HEADERS, estimate_to_rows, estimates_to_rows

__all__ = ["LINE_HEADERS", "estimate_to_rows", "estimates_to_rows", "write_csv", "write_excel"]
