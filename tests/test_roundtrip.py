"""Read writer output back with the reference parser."""

import io

import pytest

from multipart_form_data_writer import MultipartWriter
from reference_parser import MultipartParser


FIELDS = [
    ("username", b"john_doe", None, None, []),
    ("bio", "multi\r\nline\r\n\r\ntext".encode("utf-8"), None, None, []),
    ("avatar", bytes(range(256)) * 4, "avatar.png", "image/png", []),
    ("doc", b"%PDF-1.4 ...", "report.pdf", "application/pdf",
     [("X-Checksum", "abc123"), ("X-Source", "scanner"), ("X-Checksum", "def456")]),
    ("empty", b"", None, None, []),
    ("meta", b'{"a": 1}', None, "application/json", [("X-Trace", "1")]),
    ("upload", b"--not-the-boundary--\r\n", "", "text/plain", []),
]


def encode(fields, boundary=None):
    writer = MultipartWriter(io.BytesIO(), boundary)
    for name, value, filename, content_type, headers in fields:
        writer.write_field(name, value, filename, content_type, headers or None)
    return writer.boundary, writer.finish().getvalue()


@pytest.fixture
def parser():
    return MultipartParser()


def test_round_trip_preserves_fields_in_order(parser):
    boundary, body = encode(FIELDS)
    result = parser.parse(body, boundary)

    assert result.valid, result.error_message
    assert [p.as_field() for p in result.parts] == FIELDS


@pytest.mark.parametrize("boundary", [
    "------------------------afb08437765cfecd",
    "----WebKitFormBoundary7MA4YWxkTrZu0gW",
    "simple",
])
def test_round_trip_with_caller_boundary(parser, boundary):
    encoded_boundary, body = encode(FIELDS, boundary)
    assert encoded_boundary == boundary

    result = parser.parse(body, boundary)
    assert result.valid, result.error_message
    assert [p.as_field() for p in result.parts] == FIELDS


def test_zero_fields(parser):
    boundary, body = encode([])
    assert body == f"--{boundary}--".encode("ascii")

    result = parser.parse(body, boundary)
    assert result.valid
    assert result.parts == []


def test_header_order(parser):
    headers = [("X-3", "c"), ("X-1", "a"), ("X-2", "b")]
    boundary, body = encode([("f", b"v", "f.txt", "text/plain", headers)])

    part = parser.parse(body, boundary).parts[0]
    assert part.headers == [
        ("Content-Disposition", 'form-data; name="f"; filename="f.txt"'),
        ("Content-Type", "text/plain"),
        ("X-3", "c"),
        ("X-1", "a"),
        ("X-2", "b"),
    ]


def test_reparse_is_identical(parser):
    boundary, body = encode(FIELDS)
    first = parser.parse(body, boundary)
    second = parser.parse(body, boundary)
    assert first == second


def test_same_input_same_bytes():
    boundary = "------------------------8cde15cb2484c740"
    assert encode(FIELDS, boundary) == encode(FIELDS, boundary)


def test_generated_boundaries_do_not_collide_with_content(parser):
    for _ in range(50):
        boundary, body = encode(FIELDS)
        result = parser.parse(body, boundary)
        assert len(result.parts) == len(FIELDS)


def test_unterminated_body_is_detected(parser):
    sink = io.BytesIO()
    writer = MultipartWriter(sink)
    writer.write_text_field("a", "1")
    # Dropped without finish()
    result = parser.parse(sink.getvalue(), writer.boundary)
    assert not result.valid
    assert result.error_type == "truncated"
