"""
Multipart Form-Data Writer.

A streaming encoder for HTTP multipart/form-data request bodies: fields are
framed and written onto any byte sink as they are added.
"""

from pathlib import Path

from .boundary import generate, validate_boundary
from .writer import MultipartWriter, Sink, SinkWriteError, WriterFinishedError

__all__ = [
    "MultipartWriter",
    "Sink",
    "SinkWriteError",
    "WriterFinishedError",
    "generate",
    "get_schema_path",
    "validate_boundary",
]


def get_schema_path() -> Path:
    """Return the path to the JSON schema for field manifests."""
    return Path(__file__).parent / "schema" / "fields.schema.json"
