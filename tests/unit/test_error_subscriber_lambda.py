"""
Unit tests for the CloudWatch Logs error subscriber Lambda handler
Tests decoding, debouncing and SNS publishing without AWS resources

Testing Strategy:
- The SNS client is replaced with MagicMock via @patch
- The module-level debouncer is swapped for one with a fake timer per test
"""
import base64
import gzip
import json
import os
import pytest
from unittest.mock import patch

# Set region before importing the handler (boto3 clients are created at import)
os.environ['AWS_DEFAULT_REGION'] = 'eu-north-1'

import ErrorSubscriberLambda
from debounce import SourceDebouncer
from errors import ConfigurationError, MalformedEnvelopeError, NotificationFanoutError

EMAIL_TOPIC = 'arn:aws:sns:eu-north-1:123456789012:cloudwatch-logs-alerts-SnsTopicForEmail-dev'
CHATBOT_TOPIC = 'arn:aws:sns:eu-north-1:123456789012:cloudwatch-logs-alerts-SnsTopicForChatbot-dev'


class FakeTimer:

	def __init__(self, interval, function, args=None):
		self.interval = interval
		self.function = function
		self.args = args or ()
		self.daemon = False
		self.cancelled = False

	def start(self):
		pass

	def cancel(self):
		self.cancelled = True

	def fire(self):
		if not self.cancelled:
			self.function(*self.args)


@pytest.fixture(autouse=True)
def alerts_env(monkeypatch):
	monkeypatch.setenv('ORGANIZATION', 'virtualfinland')
	monkeypatch.setenv('STAGE', 'dev')
	monkeypatch.setenv('PRIMARY_AWS_REGION', 'eu-north-1')
	monkeypatch.setenv('SNS_TOPIC_EMAIL_ARN', EMAIL_TOPIC)
	monkeypatch.delenv('SNS_TOPIC_CHATBOT_ARN', raising=False)


@pytest.fixture
def debouncer(monkeypatch):
	debouncer = SourceDebouncer(cooldown_seconds=60, timer_factory=FakeTimer)
	monkeypatch.setattr(ErrorSubscriberLambda, 'debouncer', debouncer)
	return debouncer


@pytest.fixture
def sns_client():
	with patch('ErrorSubscriberLambda.sns') as sns_client:
		sns_client.publish.return_value = {'MessageId': 'abc'}
		yield sns_client


def subscription_event(log_group='/aws/lambda/us-east-1.codesets-LambdaAtEdge-123', message='ERROR boom'):
	payload = {
		'messageType': 'DATA_MESSAGE',
		'logGroup': log_group,
		'logStream': '2024/03/01/[$LATEST]abcdef',
		'subscriptionFilters': ['codesets-EdgeRegion-CloudWatchLogSubFilter-eu-central-1-dev-abc123'],
		'logEvents': [{'id': '1', 'timestamp': 1709294400000, 'message': message}],
	}
	data = base64.b64encode(gzip.compress(json.dumps(payload).encode('utf-8'))).decode('ascii')
	return {'awslogs': {'data': data}}


def test_publishes_email_alert(debouncer, sns_client):
	response = ErrorSubscriberLambda.lambda_handler(subscription_event(), None)

	assert response == {
		'status': 'published',
		'logGroup': '/aws/lambda/us-east-1.codesets-LambdaAtEdge-123',
		'subject': 'Codesets',
	}
	sns_client.publish.assert_called_once()
	call = sns_client.publish.call_args[1]
	assert call['TopicArn'] == EMAIL_TOPIC
	assert call['Subject'] == 'Codesets Error!'
	assert call['Message'].startswith('ERROR boom\n\nView in AWS console: ')
	assert 'region=eu-central-1' in call['Message']


def test_publishes_chatbot_alert_when_configured(monkeypatch, debouncer, sns_client):
	monkeypatch.setenv('SNS_TOPIC_CHATBOT_ARN', CHATBOT_TOPIC)

	ErrorSubscriberLambda.lambda_handler(subscription_event(), None)

	sent = {call[1]['TopicArn']: call[1]['Message'] for call in sns_client.publish.call_args_list}
	assert set(sent) == {EMAIL_TOPIC, CHATBOT_TOPIC}
	chatbot_message = json.loads(sent[CHATBOT_TOPIC])
	assert chatbot_message['source'] == 'custom'
	assert chatbot_message['content']['keywords'] == ['Virtual Finland dev', 'Codesets']


def test_duplicate_within_cooldown_is_dropped(debouncer, sns_client, capsys):
	"""Second event from the same log group is not published"""
	first = ErrorSubscriberLambda.lambda_handler(subscription_event(), None)
	second = ErrorSubscriberLambda.lambda_handler(subscription_event(message='ERROR again'), None)

	assert first['status'] == 'published'
	assert second['status'] == 'skipped'
	assert sns_client.publish.call_count == 1
	assert 'Already handling error for log group' in capsys.readouterr().out


def test_other_log_group_is_not_debounced(debouncer, sns_client):
	ErrorSubscriberLambda.lambda_handler(subscription_event(), None)
	response = ErrorSubscriberLambda.lambda_handler(subscription_event(log_group='escoApi-handler'), None)

	assert response['subject'] == 'Esco API'
	assert sns_client.publish.call_count == 2


def test_source_released_after_cooldown(debouncer, sns_client):
	ErrorSubscriberLambda.lambda_handler(subscription_event(), None)
	timer = debouncer._timers['/aws/lambda/us-east-1.codesets-LambdaAtEdge-123']

	timer.fire()
	response = ErrorSubscriberLambda.lambda_handler(subscription_event(), None)

	assert response['status'] == 'published'
	assert sns_client.publish.call_count == 2


def test_failed_attempt_does_not_block_retry(debouncer, sns_client):
	"""A publish failure releases the source immediately"""
	sns_client.publish.side_effect = [Exception('SNS down'), {'MessageId': 'abc'}]

	with pytest.raises(NotificationFanoutError):
		ErrorSubscriberLambda.lambda_handler(subscription_event(), None)
	response = ErrorSubscriberLambda.lambda_handler(subscription_event(), None)

	assert response['status'] == 'published'
	assert sns_client.publish.call_count == 2


def test_malformed_envelope_raises(debouncer, sns_client):
	with pytest.raises(MalformedEnvelopeError):
		ErrorSubscriberLambda.lambda_handler({'awslogs': {'data': 'garbage'}}, None)

	sns_client.publish.assert_not_called()


def test_missing_configuration_raises(monkeypatch, debouncer, sns_client):
	monkeypatch.delenv('SNS_TOPIC_EMAIL_ARN')

	with pytest.raises(ConfigurationError):
		ErrorSubscriberLambda.lambda_handler(subscription_event(), None)

	assert not debouncer.is_handling('/aws/lambda/us-east-1.codesets-LambdaAtEdge-123')


def test_get_settings_optional_chatbot():
	settings = ErrorSubscriberLambda.get_settings()

	assert settings['chatbot_topic_arn'] is None
	assert settings['stage'] == 'dev'


def test_cooldown_defaults_to_one_minute(monkeypatch):
	monkeypatch.delenv('ALERT_COOLDOWN_SECONDS', raising=False)

	assert ErrorSubscriberLambda.get_cooldown_seconds() == 60


def test_cooldown_read_from_environment(monkeypatch):
	monkeypatch.setenv('ALERT_COOLDOWN_SECONDS', '2.5')

	assert ErrorSubscriberLambda.get_cooldown_seconds() == 2.5


@pytest.mark.parametrize('value', ['sixty', '', '-1'])
def test_invalid_cooldown_is_configuration_error(monkeypatch, value):
	monkeypatch.setenv('ALERT_COOLDOWN_SECONDS', value)

	with pytest.raises(ConfigurationError, match='ALERT_COOLDOWN_SECONDS'):
		ErrorSubscriberLambda.get_cooldown_seconds()


def test_non_string_subscription_filter_fails_before_debounce(debouncer, sns_client):
	"""A bad envelope never holds the log group, so a corrected redelivery still alerts"""
	payload = {'logGroup': 'escoApi-handler', 'logStream': 's', 'subscriptionFilters': [None]}
	data = base64.b64encode(gzip.compress(json.dumps(payload).encode('utf-8'))).decode('ascii')

	with pytest.raises(MalformedEnvelopeError):
		ErrorSubscriberLambda.lambda_handler({'awslogs': {'data': data}}, None)

	assert not debouncer.is_handling('escoApi-handler')
	sns_client.publish.assert_not_called()
