"""Shared constants for the log forwarder & error subscriber Lambdas."""

# CloudFront access log framing
VERSION_PREFIX = "#Version: "
FIELDS_PREFIX = "#Fields: "
FIELD_SEPARATOR = " "
CELL_SEPARATOR = "\t"
TIMESTAMP_FIELD = "timestamp"
TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S"

# PutLogEvents quotas
# https://docs.aws.amazon.com/AmazonCloudWatchLogs/latest/APIReference/API_PutLogEvents.html
MAX_BATCH_BYTES = 1048576
MAX_BATCH_COUNT = 10000
LOG_EVENT_OVERHEAD = 26

# Environment variable keys (log forwarder)
ENV_LOG_GROUP_NAME = "LOG_GROUP_NAME"
ENV_LOG_STREAM_PREFIX = "LOG_STREAM_PREFIX"
ENV_MAX_BATCH_BYTES = "MAX_BATCH_BYTES"
ENV_MAX_BATCH_COUNT = "MAX_BATCH_COUNT"

# Environment variable keys (error subscriber)
ENV_ORGANIZATION = "ORGANIZATION"
ENV_STAGE = "STAGE"
ENV_PRIMARY_REGION = "PRIMARY_AWS_REGION"
ENV_SNS_TOPIC_EMAIL_ARN = "SNS_TOPIC_EMAIL_ARN"
ENV_SNS_TOPIC_CHATBOT_ARN = "SNS_TOPIC_CHATBOT_ARN"
ENV_ALERT_COOLDOWN_SECONDS = "ALERT_COOLDOWN_SECONDS"

# Alerting
DEFAULT_ALERT_COOLDOWN_SECONDS = 60
DEFAULT_ALERT_MESSAGE = "Message could not be parsed."
ALERT_KEYWORD_PREFIX = "Virtual Finland"
UNKNOWN_SUBJECT = "Unknown"

# Log group substring -> alert subject, checked in order
SUBJECT_PATTERNS = [
    ("codesets-LambdaAtEdge", "Codesets"),
    ("codesets-CacheUpdaterFunction", "Codesets cache"),
    ("escoApi", "Esco API"),
]

# Subjects that have a CloudWatch dashboard
DASHBOARD_SUBJECTS = ("Codesets", "Esco API")

# Lambda@Edge subscription filters embed the region in their name,
# e.g. codesets-EdgeRegion-CloudWatchLogSubFilter-eu-central-1-dev-c1c1724
SUBSCRIPTION_FILTER_PATTERN = "(.*)-EdgeRegion-CloudWatchLogSubFilter-(.*)-{stage}-(.*)"

# Console links
LOG_EVENTS_URL = (
    "https://console.aws.amazon.com/cloudwatch/home?region={region}"
    "#logEventViewer:group={log_group};stream={log_stream}"
)
DASHBOARD_URL = (
    "https://{region}.console.aws.amazon.com/cloudwatch/home?region={region}"
    "#dashboards/dashboard/codesets-dashboard-{stage}"
)
