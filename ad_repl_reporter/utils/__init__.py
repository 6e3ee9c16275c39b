"""
Utility modules for the AD replication reporter.

Filesystem helpers shared by every report: making sure the report directory
exists and appending rows to CSV files.
"""

from .csv_writer import append_records, append_rows
from .output_path import ensure_path

__all__ = [
    "append_records",
    "append_rows",
    "ensure_path",
]
