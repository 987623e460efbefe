"""
Alert subject classification and message bodies for the error subscriber.

Two bodies are produced per alert: a plain text message for the email topic
and an AWS Chatbot custom notification for the Slack topic.
Chatbot custom notifications: https://docs.aws.amazon.com/chatbot/latest/adminguide/custom-notifs.html
"""
import json
import re
from typing import NamedTuple

from constants import (
    ALERT_KEYWORD_PREFIX,
    DASHBOARD_SUBJECTS,
    DASHBOARD_URL,
    LOG_EVENTS_URL,
    SUBJECT_PATTERNS,
    SUBSCRIPTION_FILTER_PATTERN,
    UNKNOWN_SUBJECT,
)
from errors import RegionResolutionError


class AlertMessages(NamedTuple):
    subject: str
    email_message: str
    chatbot_message: dict


def get_subject(log_group):
    for pattern, subject in SUBJECT_PATTERNS:
        if pattern in log_group:
            return subject
    return UNKNOWN_SUBJECT


def get_dashboard_url(subject, primary_region, stage):
    if subject in DASHBOARD_SUBJECTS:
        return DASHBOARD_URL.format(region=primary_region, stage=stage)
    return None


def get_log_events_url(region, log_group, log_stream):
    return LOG_EVENTS_URL.format(region=region, log_group=log_group, log_stream=log_stream)


def resolve_event_region(subscription_filters, stage, primary_region):
    """
    Lambda@Edge events carry no region, so it is read from the subscription
    filter name, whose format we control. Falls back to the primary region.
    """
    region = primary_region

    if subscription_filters:
        pattern = SUBSCRIPTION_FILTER_PATTERN.format(stage=re.escape(stage or ""))
        match = re.search(pattern, subscription_filters[0])
        if match:
            region = match.group(2)

    if not region:
        raise RegionResolutionError("Could not resolve event region.")
    return region


def transform_text_to_markdown(text):
    """Best-effort unescaping of a JSON-encoded log message for display."""
    text = text.replace("\\\n", "\n")
    text = text.replace("\\n", "\n")
    text = text.replace("\\t", "\t")
    text = text.replace('\\"', '"')
    text = re.sub(r'^"', "", text)
    return re.sub(r'"\Z', "", text)


def get_chatbot_custom_format(subject, message, log_events_url, stage, dashboard_url=None):
    # Slack link syntax: https://api.slack.com/reference/surfaces/formatting#links-in-retrieved-messages
    next_steps = [f"<{log_events_url}|View in AWS console>"]
    if dashboard_url:
        next_steps.append(f"<{dashboard_url}|View dashboard>")

    return {
        'version': '1.0',
        'source': 'custom',
        'content': {
            'title': f":boom: {subject} Error! :boom:",
            'description': f"```{transform_text_to_markdown(message)}",
            'keywords': [f"{ALERT_KEYWORD_PREFIX} {stage}", subject],
            'nextSteps': next_steps,
        },
    }


def build_alert_messages(alert, stage, primary_region):
    """Build the email and chatbot bodies for a decoded AlertEvent."""
    message = json.dumps(alert.message, indent=2, ensure_ascii=False)
    print(f"[Message]: {message}")

    subject = get_subject(alert.log_group)
    dashboard_url = get_dashboard_url(subject, primary_region, stage)
    region = resolve_event_region(alert.subscription_filters, stage, primary_region)
    log_events_url = get_log_events_url(region, alert.log_group, alert.log_stream)

    email_message = f"{transform_text_to_markdown(message)}\n\nView in AWS console: {log_events_url}"
    if dashboard_url:
        email_message += f"\n\nView dashboard: {dashboard_url}"

    chatbot_message = get_chatbot_custom_format(
        subject, message, log_events_url, stage, dashboard_url=dashboard_url
    )
    return AlertMessages(subject, email_message, chatbot_message)
