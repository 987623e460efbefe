"""
Ensure-exists helpers for the destination log group and log stream.

Both provisioners always hand back the name they were asked to provide. A
failed lookup or create is reported in the result but never raised, and the
caller carries on with the name; CloudWatch Logs will reject the upload later
if the group or stream really is missing.
"""
import uuid
from datetime import datetime, timezone
from typing import NamedTuple

from botocore.exceptions import ClientError


class ProvisionResult(NamedTuple):
    name: str
    ok: bool = True
    reason: str | None = None


def _status_code(response):
    return response.get('ResponseMetadata', {}).get('HTTPStatusCode')


class LogGroupProvisioner:
    """
    DescribeLogGroups: https://docs.aws.amazon.com/AmazonCloudWatchLogs/latest/APIReference/API_DescribeLogGroups.html
    CreateLogGroup: https://docs.aws.amazon.com/AmazonCloudWatchLogs/latest/APIReference/API_CreateLogGroup.html
    """

    def __init__(self, logs_client, log_group_name):
        if not log_group_name:
            raise ValueError("log_group_name is required")
        self.logs_client = logs_client
        self.log_group_name = log_group_name

    def ensure(self):
        try:
            response = self.logs_client.describe_log_groups(logGroupNamePrefix=self.log_group_name)
        except ClientError as e:
            print(f"Error while describing log group: {e}. Try to create new log group")
            return self.create()

        if _status_code(response) != 200:
            print("Error while describing log group. Try to create new log group")
            return self.create()

        names = [group.get('logGroupName') for group in response.get('logGroups', [])]
        if self.log_group_name not in names:
            print(f"There are no existing log groups. Try to create new log group {self.log_group_name}")
            return self.create()

        print(f"Success while describing log group: {self.log_group_name}")
        return ProvisionResult(self.log_group_name)

    def create(self):
        try:
            response = self.logs_client.create_log_group(logGroupName=self.log_group_name)
        except ClientError as e:
            print(f"Error while creating log group: {self.log_group_name}: {e}")
            return ProvisionResult(self.log_group_name, ok=False, reason=str(e))

        if _status_code(response) != 200:
            print(f"Error while creating log group: {self.log_group_name}")
            return ProvisionResult(self.log_group_name, ok=False,
                                   reason=f"status {_status_code(response)}")

        print(f"Successfully created log group: {self.log_group_name}")
        return ProvisionResult(self.log_group_name)


class LogStreamProvisioner:
    """Creates a fresh, date-partitioned log stream on every call."""

    def __init__(self, logs_client, log_group_name, stream_prefix, clock=None, id_factory=None):
        if not log_group_name:
            raise ValueError("log_group_name is required")
        if not stream_prefix:
            raise ValueError("stream_prefix is required")
        self.logs_client = logs_client
        self.log_group_name = log_group_name
        self.stream_prefix = stream_prefix
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.id_factory = id_factory or uuid.uuid4

    def new_stream_name(self):
        now = self.clock()
        return f"{now.year}/{now.month}/{now.day}/{self.stream_prefix}/{self.id_factory()}"

    def ensure(self):
        stream_name = self.new_stream_name()

        try:
            response = self.logs_client.describe_log_streams(
                logGroupName=self.log_group_name,
                logStreamNamePrefix=stream_name,
            )
        except ClientError as e:
            print(f"Error while describing log stream: {e}")
            return self.create(stream_name)

        if _status_code(response) != 200:
            print("Error while describing log stream")
            return self.create(stream_name)

        if not response.get('logStreams'):
            print("Need to create log stream")
            return self.create(stream_name)

        print(f"Log stream already defined: {stream_name}")
        return ProvisionResult(stream_name)

    def create(self, stream_name):
        try:
            response = self.logs_client.create_log_stream(
                logGroupName=self.log_group_name,
                logStreamName=stream_name,
            )
        except ClientError as e:
            print(f"Error while creating log stream: {e}")
            return ProvisionResult(stream_name, ok=False, reason=str(e))

        if _status_code(response) != 200:
            print("Error while creating log stream")
            return ProvisionResult(stream_name, ok=False,
                                   reason=f"status {_status_code(response)}")

        print(f"Success in creating log stream: {stream_name}")
        return ProvisionResult(stream_name)
