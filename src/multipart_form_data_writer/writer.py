"""
Streaming multipart/form-data writer.

Each field is framed and written straight onto the sink as it is added; the
writer never holds a copy of the body. Wire layout of one part (every line
ends in CRLF)::

    --<boundary>
    Content-Disposition: form-data; name="<name>"[; filename="<filename>"]
    [Content-Type: <content_type>]
    [<key>: <value>]...

    <value bytes>

The stream is closed with ``--<boundary>--`` and no trailing CRLF.
"""

import logging
from typing import Iterable, Optional, Protocol, Tuple, Union

from .boundary import generate


logger = logging.getLogger(__name__)

CRLF = b"\r\n"
DASH_DASH = b"--"

FieldValue = Union[bytes, bytearray, memoryview, str]


class Sink(Protocol):
    """Anything that accepts an ordered sequence of byte writes."""

    def write(self, data: bytes) -> Optional[int]:
        ...


class SinkWriteError(OSError):
    """The sink refused or failed to accept bytes."""


class WriterFinishedError(RuntimeError):
    """The writer was used after ``finish()``."""


class MultipartWriter:
    """
    Write multipart/form-data parts onto a sink.

    Usage::

        writer = MultipartWriter(io.BytesIO())
        writer.write_text_field("username", "john_doe")
        writer.write_field("doc", data, filename="a.pdf", content_type="application/pdf")
        body = writer.finish().getvalue()

    The sink belongs to the writer until ``finish()`` hands it back. A writer
    dropped before ``finish()`` leaves an incomplete body in the sink.
    """

    def __init__(self, sink: Sink, boundary: Optional[str] = None):
        self._sink = sink
        self._boundary = generate() if boundary is None else boundary
        self._delimiter = DASH_DASH + self._boundary.encode("utf-8")
        self._finished = False
        logger.debug("Created multipart writer with boundary %r", self._boundary)

    @classmethod
    def with_boundary(cls, sink: Sink, boundary: str) -> "MultipartWriter":
        """Create a writer that uses ``boundary`` verbatim (no validation)."""
        return cls(sink, boundary)

    @property
    def boundary(self) -> str:
        return self._boundary

    @property
    def content_type(self) -> str:
        """Value for the request's Content-Type header."""
        return f"multipart/form-data; boundary={self._boundary}"

    @property
    def finished(self) -> bool:
        return self._finished

    def write_field(
        self,
        name: str,
        value: FieldValue,
        filename: Optional[str] = None,
        content_type: Optional[str] = None,
        extra_headers: Optional[Iterable[Tuple[str, str]]] = None,
    ) -> None:
        """
        Append one part to the sink.

        ``value`` may be bytes-like or ``str`` (encoded as UTF-8). Names,
        filenames and header values are written as given: a ``"`` or CRLF in
        them corrupts the framing.

        Raises SinkWriteError if the sink fails part way; bytes already
        written stay in the sink.
        """
        self._check_not_finished()

        if isinstance(value, str):
            value = value.encode("utf-8")
        else:
            # Zero-copy view; non-buffers raise TypeError
            value = memoryview(value).cast("B")

        cd = f'Content-Disposition: form-data; name="{name}"'
        if filename is not None:
            cd += f'; filename="{filename}"'

        lines = [cd.encode("utf-8")]

        if content_type is not None:
            lines.append(f"Content-Type: {content_type}".encode("utf-8"))

        if extra_headers is not None:
            for key, header_value in extra_headers:
                lines.append(f"{key}: {header_value}".encode("utf-8"))

        self._write(self._delimiter + CRLF)
        for line in lines:
            self._write(line + CRLF)
        self._write(CRLF)
        self._write(value)
        self._write(CRLF)

        logger.debug("Wrote part %r (%d bytes)", name, len(value))

    def write_text_field(self, name: str, value: str) -> None:
        """Append a plain text part with no filename, type or extra headers."""
        self.write_field(name, value.encode("utf-8"))

    def finish(self) -> Sink:
        """
        Write the closing delimiter and return the sink.

        The writer is unusable afterwards; any further call raises
        WriterFinishedError.
        """
        self._check_not_finished()
        # Terminal even if the sink fails below
        self._finished = True

        self._write(self._delimiter + DASH_DASH)

        flush = getattr(self._sink, "flush", None)
        if flush is not None:
            try:
                flush()
            except (OSError, ValueError) as e:
                logger.warning("Sink flush failed: %s", e)
                raise SinkWriteError(f"Failed to flush sink: {e}") from e

        logger.debug("Finished multipart stream with boundary %r", self._boundary)
        return self._sink

    def _check_not_finished(self):
        if self._finished:
            raise WriterFinishedError("MultipartWriter has already been finished")

    def _write(self, data):
        """Write all of ``data``, retrying short writes."""
        while data:
            try:
                written = self._sink.write(data)
            except (OSError, ValueError) as e:
                logger.warning("Sink write failed: %s", e)
                raise SinkWriteError(f"Failed to write to sink: {e}") from e

            # Buffered streams return None or len(data); raw streams may
            # accept only a prefix.
            if not isinstance(written, int) or written >= len(data):
                return
            if written == 0:
                raise SinkWriteError("Sink accepted no bytes")
            data = data[written:]
