"""File storage layer: status directories and record files."""

from .filestore import FileStore, location_for, relocate, status_from_path
from .records import (
    RecordFormatError,
    RecordStore,
    generate_record_id,
    parse_record,
    serialize_record,
)

__all__ = [
    "FileStore",
    "RecordFormatError",
    "RecordStore",
    "generate_record_id",
    "location_for",
    "parse_record",
    "relocate",
    "serialize_record",
    "status_from_path",
]
