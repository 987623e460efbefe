"""Exceptions raised by the monitoring Lambdas."""


class MonitoringError(Exception):
    """Base class for errors raised by the monitoring functions."""


class ConfigurationError(MonitoringError):
    """Required environment variables are missing or invalid."""


class LogParseError(MonitoringError):
    """A CloudFront log file could not be parsed or planned into batches."""


class MalformedEnvelopeError(MonitoringError):
    """A CloudWatch Logs subscription payload could not be decoded."""


class RegionResolutionError(MonitoringError):
    """No AWS region could be resolved for an alert event."""


class NotificationFanoutError(MonitoringError):
    """One or more SNS publishes failed during a fan-out."""

    def __init__(self, failures):
        self.failures = failures
        topics = ", ".join(topic_arn for topic_arn, _ in failures)
        super().__init__(f"Failed to publish to {len(failures)} topic(s): {topics}")
