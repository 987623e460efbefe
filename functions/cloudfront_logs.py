"""
Parsing of CloudFront standard access logs.

CloudFront delivers access logs to S3 as gzip files in the W3C extended format:
https://docs.aws.amazon.com/AmazonCloudFront/latest/DeveloperGuide/AccessLogs.html#LogFileFormat

    #Version: 1.0
    #Fields: date time x-edge-location sc-bytes ...
    2024-03-01<TAB>12:00:00<TAB>HEL50-C1<TAB>1045 ...

Each data row becomes a dict keyed by the declared field names. The separate
date and time columns are merged into a single "timestamp" value so the rows
can be shipped to CloudWatch Logs.
"""
import gzip
import io
import json
import zlib
from typing import NamedTuple

from constants import (
    CELL_SEPARATOR,
    FIELD_SEPARATOR,
    FIELDS_PREFIX,
    TIMESTAMP_FIELD,
    VERSION_PREFIX,
)
from errors import LogParseError

READ_CHUNK_SIZE = 64 * 1024


class DecompressedLog(NamedTuple):
    data: bytes
    error: Exception | None = None


def decompress_log_stream(stream):
    """
    Gunzip a log file into memory.

    A corrupt or non-gzip stream is not fatal: the failure is printed and
    whatever was decompressed before it (possibly nothing) is returned along
    with the error, so callers can decide what to do with partial data.
    """
    if isinstance(stream, (bytes, bytearray)):
        stream = io.BytesIO(stream)

    chunks = []
    error = None
    try:
        with gzip.GzipFile(fileobj=stream, mode="rb") as gz:
            while True:
                chunk = gz.read(READ_CHUNK_SIZE)
                if not chunk:
                    break
                chunks.append(chunk)
    except (OSError, EOFError, zlib.error) as e:
        error = e
        print(f"Failed to unzip stream with message {e}")

    data = b"".join(chunks)
    print(f"Unzipped stream length: {len(data)}")
    return DecompressedLog(data, error)


def parse_log_text(text):
    """Parse decompressed log text into one dict per data row."""
    print("Start parsing log file")
    lines = io.StringIO(text, newline=None)

    version_line = lines.readline()
    version = version_line.rstrip("\n")[len(VERSION_PREFIX):] if version_line else None
    print(f"Log file version is {version}")

    fields_line = lines.readline()
    if not fields_line:
        raise LogParseError("Log file has no fields declaration")
    fields = fields_line.rstrip("\n")[len(FIELDS_PREFIX):].split(FIELD_SEPARATOR)
    if len(set(fields)) != len(fields):
        raise LogParseError(f"Duplicate field names in declaration: {fields}")

    records = []
    for line_number, line in enumerate(lines, start=3):
        cells = line.rstrip("\n").split(CELL_SEPARATOR)
        if len(cells) != len(fields):
            print(f"Line {line_number} has {len(cells)} cells, expected {len(fields)}")
            print(line)
            raise LogParseError("Field counts don't match")
        records.append(dict(zip(fields, cells)))

    print(f"Log file contains {len(records)} lines")
    return records


def merge_date_and_time(records):
    """Replace each record's date and time fields with a combined timestamp."""
    for record in records:
        date = record.pop("date", None) or ""
        time = record.pop("time", None) or ""
        record[TIMESTAMP_FIELD] = f"{date}T{time}"
    return records


def process_log_stream(stream, print_json=False):
    """Decompress, parse and normalize a gzip log stream, e.g. an S3 object body."""
    decompressed = decompress_log_stream(stream)
    text = decompressed.data.decode("utf-8", errors="replace")

    records = merge_date_and_time(parse_log_text(text))

    if print_json:
        print(json.dumps(records))
    return records


def process_log_file(path, print_json=False):
    """Process a gzip log file from local disk."""
    try:
        with gzip.open(path, "rt", encoding="utf-8", errors="replace", newline="") as fh:
            text = fh.read()
    except (OSError, EOFError, zlib.error) as e:
        raise LogParseError(f"Could not decompress {path}: {e}") from e

    records = merge_date_and_time(parse_log_text(text))

    if print_json:
        print(json.dumps(records))
    return records
