"""Task import/export formats."""

from tasktrack.interchange.csv_codec import (
    CSV_HEADERS,
    ImportedTask,
    decode_tasks,
    encode_tasks,
)

__all__ = ["CSV_HEADERS", "ImportedTask", "decode_tasks", "encode_tasks"]
