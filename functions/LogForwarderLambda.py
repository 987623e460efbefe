import json
import os
import urllib.parse
import boto3

from cloudfront_logs import process_log_stream
from constants import (
    ENV_LOG_GROUP_NAME,
    ENV_LOG_STREAM_PREFIX,
    ENV_MAX_BATCH_BYTES,
    ENV_MAX_BATCH_COUNT,
    MAX_BATCH_BYTES,
    MAX_BATCH_COUNT,
)
from errors import ConfigurationError
from log_batches import plan_batches, upload_batches
from log_targets import LogGroupProvisioner, LogStreamProvisioner

# S3 Client API: https://boto3.amazonaws.com/v1/documentation/api/latest/reference/services/s3.html
s3 = boto3.client('s3')
# CloudWatch Logs Client API: https://boto3.amazonaws.com/v1/documentation/api/latest/reference/services/logs.html
logs = boto3.client('logs')


def get_settings():
    """Read forwarder configuration from the environment (set by CDK)."""
    log_group_name = os.environ.get(ENV_LOG_GROUP_NAME)
    log_stream_prefix = os.environ.get(ENV_LOG_STREAM_PREFIX)
    if not log_group_name or not log_stream_prefix:
        raise ConfigurationError(
            f"{ENV_LOG_GROUP_NAME} and {ENV_LOG_STREAM_PREFIX} must be set in environment"
        )

    try:
        max_batch_bytes = int(os.environ.get(ENV_MAX_BATCH_BYTES, MAX_BATCH_BYTES))
        max_batch_count = int(os.environ.get(ENV_MAX_BATCH_COUNT, MAX_BATCH_COUNT))
    except ValueError as e:
        raise ConfigurationError(f"Invalid batch limit: {e}") from e

    return {
        'log_group_name': log_group_name,
        'log_stream_prefix': log_stream_prefix,
        'max_batch_bytes': max_batch_bytes,
        'max_batch_count': max_batch_count,
    }


def forward_logs(logs_client, records, settings):
    """Ship parsed records into a brand new stream of the configured log group."""
    group = LogGroupProvisioner(logs_client, settings['log_group_name']).ensure()
    stream = LogStreamProvisioner(
        logs_client, group.name, settings['log_stream_prefix']
    ).ensure()

    batches = plan_batches(
        records,
        max_batch_bytes=settings['max_batch_bytes'],
        max_batch_count=settings['max_batch_count'],
    )
    summary = upload_batches(logs_client, batches, group.name, stream.name)
    summary['logGroupName'] = group.name
    summary['logStreamName'] = stream.name
    return summary


def lambda_handler(event, context):
    """
    Forward CloudFront access logs written to S3 into CloudWatch Logs.

    Triggered by S3 ObjectCreated:Put notifications for *.gz objects in the
    CloudFront standard logs bucket. Each object is gunzipped, parsed and
    uploaded in PutLogEvents-sized batches.
    S3 event format: https://docs.aws.amazon.com/AmazonS3/latest/userguide/notification-content-structure.html
    """
    settings = get_settings()
    print(f"LogGroup is {settings['log_group_name']}, "
          f"LogStream prefix is {settings['log_stream_prefix']}")

    records = event.get('Records') or []
    print(f"EventRecords.Count: {len(records)}")

    results = []
    for record in records:
        bucket = record['s3']['bucket']['name']
        # Object keys arrive URL-encoded in S3 notifications
        key = urllib.parse.unquote_plus(record['s3']['object']['key'])
        print(f"EventRecord: object {key} from bucket {bucket}")

        try:
            metadata = s3.head_object(Bucket=bucket, Key=key)
            print(f"S3 object content type is: {metadata.get('ContentType')}")

            response = s3.get_object(Bucket=bucket, Key=key)
            print(f"Response content length is {response.get('ContentLength')}")

            log_lines = process_log_stream(response['Body'].read())
            print(f"File processing completed. Number of processed log lines is: {len(log_lines)}")

            summary = forward_logs(logs, log_lines, settings)
            results.append({'bucket': bucket, 'key': key, 'lines': len(log_lines), **summary})

        except Exception as e:
            print(f"Error processing logs from object {key} in bucket {bucket}. "
                  f"Make sure they exist and your bucket is in the same region as this function.")
            print(f"Error: {str(e)}")
            raise

    print("Function execution complete")
    return {
        'statusCode': 200,
        'body': json.dumps({
            'message': f'Forwarded logs from {len(results)} objects',
            'results': results,
        })
    }
