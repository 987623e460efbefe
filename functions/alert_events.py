"""
Decoding of CloudWatch Logs subscription payloads.

Logs sent to a Lambda through a subscription filter are gzip compressed and
base64 encoded under event["awslogs"]["data"]:
https://docs.aws.amazon.com/AmazonCloudWatch/latest/logs/SubscriptionFilters.html#LambdaFunctionExample
"""
import base64
import binascii
import gzip
import json
import zlib
from typing import NamedTuple

from constants import DEFAULT_ALERT_MESSAGE
from errors import MalformedEnvelopeError


class AlertEvent(NamedTuple):
    log_group: str
    log_stream: str
    subscription_filters: list
    message: str
    raw: dict


def _first_message(payload):
    log_events = payload.get('logEvents')
    if isinstance(log_events, list) and log_events:
        first = log_events[0]
        if isinstance(first, dict) and first.get('message') is not None:
            return first['message']
    return DEFAULT_ALERT_MESSAGE


def decode_alert_event(event):
    """
    Decode a subscription delivery into an AlertEvent.

    Accepts either the whole Lambda event or the bare base64 data string.
    Raises MalformedEnvelopeError for anything that cannot be decoded or lacks
    a string logGroup / logStream.
    """
    if isinstance(event, dict):
        awslogs = event.get('awslogs')
        if not isinstance(awslogs, dict):
            raise MalformedEnvelopeError("Event has no awslogs data")
        data = awslogs.get('data')
    else:
        data = event

    if not isinstance(data, (str, bytes)):
        raise MalformedEnvelopeError("Event has no awslogs data")

    try:
        compressed = base64.b64decode(data, validate=True)
        payload = json.loads(gzip.decompress(compressed).decode('utf-8'))
    except (binascii.Error, OSError, EOFError, zlib.error, UnicodeDecodeError, ValueError) as e:
        raise MalformedEnvelopeError(f"Could not decode awslogs data: {e}") from e

    if not isinstance(payload, dict):
        raise MalformedEnvelopeError("Decoded payload is not a JSON object")

    log_group = payload.get('logGroup')
    log_stream = payload.get('logStream')
    if not isinstance(log_group, str) or not isinstance(log_stream, str):
        raise MalformedEnvelopeError("Could not parse log group or log stream.")

    subscription_filters = payload.get('subscriptionFilters')
    if subscription_filters is None:
        subscription_filters = []
    if not isinstance(subscription_filters, list) or \
            not all(isinstance(name, str) for name in subscription_filters):
        raise MalformedEnvelopeError("subscriptionFilters must be a list of strings")

    return AlertEvent(
        log_group=log_group,
        log_stream=log_stream,
        subscription_filters=subscription_filters,
        message=_first_message(payload),
        raw=payload,
    )
