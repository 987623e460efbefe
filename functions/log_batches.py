"""
Batching and upload of log records to CloudWatch Logs.

PutLogEvents limits a single call to 1,048,576 bytes (message bytes plus 26
bytes per event) and 10,000 events, and requires the events of one call to be
in chronological order.
PutLogEvents API: https://docs.aws.amazon.com/AmazonCloudWatchLogs/latest/APIReference/API_PutLogEvents.html
"""
import json
from datetime import datetime, timezone

from botocore.exceptions import ClientError

from constants import (
    LOG_EVENT_OVERHEAD,
    MAX_BATCH_BYTES,
    MAX_BATCH_COUNT,
    TIMESTAMP_FIELD,
    TIMESTAMP_FORMAT,
)
from errors import LogParseError


def serialize_record(record):
    """Compact, ASCII-only JSON so that string length equals byte size."""
    return json.dumps(record, separators=(",", ":"))


def parse_timestamp(record):
    """Return the record's timestamp as epoch milliseconds (UTC)."""
    timestamp = record.get(TIMESTAMP_FIELD)
    if timestamp is None:
        raise LogParseError("Could not find timestamp in the record")

    try:
        parsed = datetime.strptime(timestamp, TIMESTAMP_FORMAT)
    except (TypeError, ValueError) as e:
        raise LogParseError(f"Invalid timestamp {timestamp!r}: {e}") from e

    # strptime also accepts unpadded fields such as 2024-3-1T1:2:3
    if parsed.strftime(TIMESTAMP_FORMAT) != timestamp:
        raise LogParseError(f"Invalid timestamp {timestamp!r}: expected {TIMESTAMP_FORMAT}")

    return int(parsed.replace(tzinfo=timezone.utc).timestamp() * 1000)


def plan_batches(records, max_batch_bytes=MAX_BATCH_BYTES, max_batch_count=MAX_BATCH_COUNT,
                 overhead=LOG_EVENT_OVERHEAD):
    """
    Split records into PutLogEvents batches, preserving record order.

    The running size includes the current record before the limits are
    checked, so a batch is sealed as soon as adding the record would reach the
    byte limit, or the batch already holds max_batch_count events. The sealed
    batch can be empty when the very first record alone reaches the limit. The
    final batch is always emitted, even when empty.
    """
    batches = []
    batch = []
    batch_size = 0

    for record in records:
        message = serialize_record(record)
        event_size = len(message) + overhead
        batch_size += event_size

        if batch_size >= max_batch_bytes or len(batch) >= max_batch_count:
            batches.append(batch)
            batch = []
            batch_size = event_size

        batch.append({
            'timestamp': parse_timestamp(record),
            'message': message,
        })

    batches.append(batch)
    print(f"Batch count is: {len(batches)}")
    return batches


def send_batch(logs_client, batch, log_group_name, log_stream_name):
    """Submit one batch; returns True when CloudWatch accepted it."""
    if not batch:
        print("Skipping empty batch")
        return True

    try:
        response = logs_client.put_log_events(
            logGroupName=log_group_name,
            logStreamName=log_stream_name,
            logEvents=sorted(batch, key=lambda event: event['timestamp']),
        )
    except ClientError as e:
        print(f"Failed to save batch to stream {log_stream_name} in group {log_group_name}: {e}")
        return False

    status_code = response.get('ResponseMetadata', {}).get('HTTPStatusCode')
    if status_code != 200:
        print(f"Failed to save batch to stream {log_stream_name} in group {log_group_name} "
              f"(status {status_code})")
        return False

    rejected = response.get('rejectedLogEventsInfo')
    if rejected:
        print(f"Some log events were rejected: {json.dumps(rejected)}")
    return True


def upload_batches(logs_client, batches, log_group_name, log_stream_name):
    """
    Send batches one after another in list order.

    Failed batches are printed and skipped over; there are no retries and
    nothing is raised. The returned summary lists the indexes of failed
    batches.
    """
    sent_batches = 0
    failed = []

    for index, batch in enumerate(batches):
        if not send_batch(logs_client, batch, log_group_name, log_stream_name):
            failed.append(index)
        sent_batches += 1

    if sent_batches == len(batches):
        print("Successfully sent all batches")

    return {
        'batches': len(batches),
        'sent': sent_batches,
        'failed': failed,
    }
