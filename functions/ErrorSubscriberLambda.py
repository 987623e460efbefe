import json
import os
import boto3

from alert_events import decode_alert_event
from alert_messages import build_alert_messages
from constants import (
    DEFAULT_ALERT_COOLDOWN_SECONDS,
    ENV_ALERT_COOLDOWN_SECONDS,
    ENV_ORGANIZATION,
    ENV_PRIMARY_REGION,
    ENV_SNS_TOPIC_CHATBOT_ARN,
    ENV_SNS_TOPIC_EMAIL_ARN,
    ENV_STAGE,
)
from debounce import SourceDebouncer
from errors import ConfigurationError
from notifications import NotificationFanout

# SNS Client API: https://boto3.amazonaws.com/v1/documentation/api/latest/reference/services/sns.html
sns = boto3.client('sns', region_name=os.environ.get(ENV_PRIMARY_REGION) or None)


def get_cooldown_seconds():
    value = os.environ.get(ENV_ALERT_COOLDOWN_SECONDS, DEFAULT_ALERT_COOLDOWN_SECONDS)
    try:
        cooldown_seconds = float(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid {ENV_ALERT_COOLDOWN_SECONDS}: {value!r}") from e
    if cooldown_seconds < 0:
        raise ConfigurationError(f"Invalid {ENV_ALERT_COOLDOWN_SECONDS}: {value!r}")
    return cooldown_seconds


# Lives as long as the warm execution environment, so one source cannot
# spam alerts while it keeps failing
debouncer = SourceDebouncer(cooldown_seconds=get_cooldown_seconds())


def get_settings():
    """Read alerting configuration from the environment (set by CDK)."""
    settings = {
        'organization': os.environ.get(ENV_ORGANIZATION),
        'stage': os.environ.get(ENV_STAGE),
        'primary_region': os.environ.get(ENV_PRIMARY_REGION),
        'email_topic_arn': os.environ.get(ENV_SNS_TOPIC_EMAIL_ARN),
        'chatbot_topic_arn': os.environ.get(ENV_SNS_TOPIC_CHATBOT_ARN) or None,
    }
    required = ['organization', 'stage', 'primary_region', 'email_topic_arn']
    if not all(settings[name] for name in required):
        raise ConfigurationError("Required environment variables are missing.")
    return settings


def lambda_handler(event, context):
    """
    Publish an error alert for a CloudWatch Logs subscription delivery.

    Triggered by subscription filters on the monitored services' log groups.
    Sends a plain text alert to the email topic and, when configured, an AWS
    Chatbot custom notification to the Slack topic. Repeated errors from the
    same log group within the cool-down are dropped.
    """
    print(f"[Received Event]: {json.dumps(event)}")

    source_key = None
    try:
        settings = get_settings()
        alert = decode_alert_event(event)

        if not debouncer.try_acquire(alert.log_group):
            print(f"Already handling error for log group: {alert.log_group}")
            return {'status': 'skipped', 'logGroup': alert.log_group}
        source_key = alert.log_group

        print(f"[Parsed]: {json.dumps(alert.raw)}")
        messages = build_alert_messages(alert, settings['stage'], settings['primary_region'])

        fanout = NotificationFanout(
            sns,
            settings['email_topic_arn'],
            [settings['chatbot_topic_arn']],
        )
        bodies = {settings['email_topic_arn']: messages.email_message}
        if settings['chatbot_topic_arn']:
            bodies[settings['chatbot_topic_arn']] = json.dumps(messages.chatbot_message)
        fanout.publish(messages.subject, bodies)

        debouncer.release_later(source_key)
        return {'status': 'published', 'logGroup': alert.log_group, 'subject': messages.subject}

    except Exception:
        if source_key is not None:
            debouncer.release(source_key)
        raise
