"""
Encode fields as a multipart/form-data body.

Usage:
    multipart-encode --boundary=----TestBoundary \
        --field name=username value="john_doe" \
        --file name=doc filename="test.pdf" content=@file.pdf \
        --output body.raw

    multipart-encode --manifest fields.json --dump
"""

import argparse
import base64
import binascii
import io
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import jsonschema

from . import get_schema_path
from .boundary import validate_boundary
from .writer import MultipartWriter, SinkWriteError


def hex_dump(data: bytes, width: int = 16) -> str:
    """Generate a hex dump of binary data."""
    lines = []
    for i in range(0, len(data), width):
        chunk = data[i:i + width]
        hex_part = " ".join(f"{b:02x}" for b in chunk)
        ascii_part = "".join(chr(b) if 32 <= b < 127 else "." for b in chunk)
        lines.append(f"{i:08x}  {hex_part:<{width * 3}}  |{ascii_part}|")
    return "\n".join(lines)


def parse_field_args(args: List[str]) -> dict:
    """Parse field arguments like name=value."""
    result = {}
    for arg in args:
        if '=' in arg:
            key, value = arg.split('=', 1)
            result[key] = value
    return result


def load_manifest(path: Path) -> List[Dict[str, Any]]:
    """
    Load a JSON field manifest and validate it against the bundled schema.

    Raises json.JSONDecodeError or jsonschema.ValidationError.
    """
    with open(path, "r", encoding="utf-8") as f:
        manifest = json.load(f)

    with open(get_schema_path(), "r", encoding="utf-8") as f:
        schema = json.load(f)

    jsonschema.validate(manifest, schema)
    return manifest


def manifest_to_fields(manifest: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Convert manifest entries into write_field keyword arguments."""
    fields = []
    for entry in manifest:
        if "value_base64" in entry:
            value = base64.b64decode(entry["value_base64"], validate=True)
        else:
            value = entry.get("value", "").encode("utf-8")

        headers = entry.get("headers")
        fields.append({
            "name": entry["name"],
            "value": value,
            "filename": entry.get("filename"),
            "content_type": entry.get("content_type"),
            "extra_headers": [tuple(h) for h in headers] if headers else None,
        })
    return fields


def _read_file_content(params: Dict[str, str]) -> bytes:
    if "content" in params:
        content_spec = params["content"]
        if content_spec.startswith("@"):
            with open(content_spec[1:], "rb") as f:
                return f.read()
        return content_spec.encode('utf-8')
    if "content-base64" in params:
        return base64.b64decode(params["content-base64"], validate=True)
    return b""


def collect_fields(args: argparse.Namespace) -> List[Dict[str, Any]]:
    """Collect fields in wire order: manifest, then --field, then --file."""
    fields = []

    if args.manifest:
        fields.extend(manifest_to_fields(load_manifest(Path(args.manifest))))

    if args.field:
        for field_args in args.field:
            params = parse_field_args(field_args)
            fields.append({
                "name": params.get("name", ""),
                "value": params.get("value", "").encode('utf-8'),
                "filename": None,
                "content_type": params.get("content-type"),
                "extra_headers": None,
            })

    if args.file:
        for file_args in args.file:
            params = parse_field_args(file_args)
            fields.append({
                "name": params.get("name", ""),
                "value": _read_file_content(params),
                "filename": params.get("filename", ""),
                "content_type": params.get("content-type"),
                "extra_headers": None,
            })

    return fields


def write_body(writer: MultipartWriter, fields: List[Dict[str, Any]]):
    """Write every field then finish; returns the sink."""
    for field in fields:
        writer.write_field(**field)
    return writer.finish()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="multipart-encode",
        description="Encode fields as a multipart/form-data body",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Simple text field
  %(prog)s --boundary=----Test --field name=user value="john" -o body.raw

  # File upload
  %(prog)s --file name=doc filename="test.pdf" content=@test.pdf -o body.raw

  # Multiple fields with dump
  %(prog)s --boundary=----Test --field name=a value=1 --field name=b value=2 --dump

  # Fields from a JSON manifest
  %(prog)s --manifest fields.json --headers-output headers.json -o body.raw
        """,
    )

    parser.add_argument(
        "--boundary", "-b",
        help="Boundary string (default: generated). Use --boundary=VALUE when it starts with a dash",
    )
    parser.add_argument(
        "--field",
        action="append",
        nargs="+",
        metavar="KEY=VALUE",
        help="Add text field (name=X value=Y [content-type=Z])",
    )
    parser.add_argument(
        "--file",
        action="append",
        nargs="+",
        metavar="KEY=VALUE",
        help="Add file field (name=X filename=Y content=@path|content-base64=Z [content-type=W])",
    )
    parser.add_argument(
        "--manifest", "-m",
        metavar="PATH",
        help="JSON file listing fields (see schema/fields.schema.json)",
    )
    parser.add_argument(
        "--output", "-o",
        help="Output file path (default: stdout)",
    )
    parser.add_argument(
        "--dump",
        action="store_true",
        help="Show hex dump instead of writing binary",
    )
    parser.add_argument(
        "--headers-output",
        help="Also write headers.json file",
    )
    parser.add_argument(
        "--validate-boundary",
        action="store_true",
        help="Validate boundary per RFC 2046",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging",
    )
    return parser


def main(argv: Optional[List[str]] = None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, stream=sys.stderr)

    if args.boundary is not None and args.validate_boundary:
        valid, error = validate_boundary(args.boundary)
        if not valid:
            print(f"Invalid boundary: {error}", file=sys.stderr)
            sys.exit(1)

    try:
        fields = collect_fields(args)
    except json.JSONDecodeError as e:
        print(f"Invalid JSON in manifest: {e}", file=sys.stderr)
        sys.exit(1)
    except jsonschema.ValidationError as e:
        print(f"Invalid manifest: {e.message}", file=sys.stderr)
        sys.exit(1)
    except binascii.Error as e:
        print(f"Invalid base64 content: {e}", file=sys.stderr)
        sys.exit(1)
    except OSError as e:
        print(f"Cannot read input: {e}", file=sys.stderr)
        sys.exit(1)

    try:
        if args.dump:
            sink = io.BytesIO()
            writer = MultipartWriter(sink, args.boundary)
            result = write_body(writer, fields).getvalue()
            print(hex_dump(result))
            print(f"\nTotal: {len(result)} bytes")
        elif args.output:
            Path(args.output).parent.mkdir(parents=True, exist_ok=True)
            with open(args.output, "wb") as f:
                writer = MultipartWriter(f, args.boundary)
                total = write_body(writer, fields).tell()
            print(f"Wrote {total} bytes to {args.output}")
        else:
            writer = MultipartWriter(sys.stdout.buffer, args.boundary)
            write_body(writer, fields)
    except SinkWriteError as e:
        print(f"Write failed: {e}", file=sys.stderr)
        sys.exit(1)

    if args.headers_output:
        headers = {"content-type": writer.content_type}
        Path(args.headers_output).parent.mkdir(parents=True, exist_ok=True)
        with open(args.headers_output, "w") as f:
            json.dump(headers, f, indent=2)
            f.write("\n")
        # Keep stdout clean when it carries the body
        status_stream = sys.stdout if args.dump or args.output else sys.stderr
        print(f"Wrote headers to {args.headers_output}", file=status_stream)


if __name__ == "__main__":
    main()
