"""
CloudWatch Logs Error Alerts Stack
Turns error log events from subscribed log groups into SNS alerts

AWS Services Used:
- AWS Lambda: Decodes subscription payloads and publishes alerts
  Documentation: https://docs.aws.amazon.com/AmazonCloudWatch/latest/logs/SubscriptionFilters.html
- Amazon SNS: Email topic and (optional) chatbot topic
  Documentation: https://docs.aws.amazon.com/sns/latest/dg/welcome.html
- AWS Chatbot: Forwards chatbot topic notifications to Slack
  Documentation: https://docs.aws.amazon.com/chatbot/latest/adminguide/what-is.html

Subscription filters are created by the monitored service stacks; they need
the exported function ARN and may name themselves
"<service>-EdgeRegion-CloudWatchLogSubFilter-<region>-<stage>-<suffix>" so the
alert can link to the right region.
"""

from aws_cdk import (
    Stack,
    Duration,
    CfnOutput,
    aws_lambda as lambda_,
    aws_iam as iam,
    aws_sns as sns,
    aws_sns_subscriptions as subscriptions,
    aws_chatbot as chatbot,
)
from constructs import Construct

PROJECT_NAME = "cloudwatch-logs-alerts"


class ErrorAlertsStack(Stack):
    """
    SNS topics, optional Slack integration and the error subscriber Lambda.

    The chatbot topic and Slack channel configuration are only created when
    both Slack identifiers are given.
    """

    def __init__(self, scope: Construct, construct_id: str, stage_name: str = "dev",
                 organization: str = "virtualfinland", alert_email: str = None,
                 slack_channel_id: str = None, slack_workspace_id: str = None, **kwargs) -> None:
        super().__init__(scope, construct_id, **kwargs)

        email_topic = sns.Topic(
            self, "SnsTopicForEmail",
            topic_name=f"{PROJECT_NAME}-SnsTopicForEmail-{stage_name}",
            display_name=f"[{stage_name.upper()}] Error alerts"
        )

        if alert_email:
            email_topic.add_subscription(subscriptions.EmailSubscription(alert_email))

        chatbot_topic = None
        if slack_channel_id and slack_workspace_id:
            chatbot_topic = sns.Topic(
                self, "SnsTopicForChatbot",
                topic_name=f"{PROJECT_NAME}-SnsTopicForChatbot-{stage_name}"
            )
            chatbot.SlackChannelConfiguration(
                self, "SlackChannelConfig",
                slack_channel_configuration_name=f"SlackChannelAlertsConfig-{stage_name}",
                slack_channel_id=slack_channel_id,
                slack_workspace_id=slack_workspace_id,
                notification_topics=[chatbot_topic],
                logging_level=chatbot.LoggingLevel.ERROR
            )
        else:
            print("Skipping Slack configuration as slackChannelId or slackWorkspaceId is not set")

        environment = {
            "ORGANIZATION": organization,
            "STAGE": stage_name,
            "PRIMARY_AWS_REGION": self.region,
            "SNS_TOPIC_EMAIL_ARN": email_topic.topic_arn,
            "ALERT_COOLDOWN_SECONDS": "60"
        }
        if chatbot_topic is not None:
            environment["SNS_TOPIC_CHATBOT_ARN"] = chatbot_topic.topic_arn

        subscriber_lambda = lambda_.Function(
            self, "ErrorSubLambdaFunction",
            runtime=lambda_.Runtime.PYTHON_3_11,
            handler="ErrorSubscriberLambda.lambda_handler",
            code=lambda_.Code.from_asset("./functions"),
            timeout=Duration.seconds(60),
            memory_size=256,
            function_name=f"{PROJECT_NAME}-ErrorSubLambdaFunc-{stage_name}",
            description=f"[{stage_name.upper()}] Publishes CloudWatch Logs errors to SNS",
            environment=environment
        )

        email_topic.grant_publish(subscriber_lambda)
        if chatbot_topic is not None:
            chatbot_topic.grant_publish(subscriber_lambda)

        # Subscription filters in any account region invoke the function
        subscriber_lambda.add_permission(
            "AllowCloudWatchLogsInvoke",
            principal=iam.ServicePrincipal("logs.amazonaws.com"),
            action="lambda:InvokeFunction"
        )

        CfnOutput(
            self, "ErrorSubLambdaFunctionArn",
            value=subscriber_lambda.function_arn,
            description=f"[{stage_name.upper()}] Error subscriber Lambda ARN for subscription filters",
            export_name=f"{PROJECT_NAME}-ErrorSubLambdaFunctionArn-{stage_name}"
        )
