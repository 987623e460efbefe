"""
CloudFront Log Forwarder Stack
Ships CloudFront standard access logs from S3 into CloudWatch Logs

AWS Services Used:
- AWS Lambda: Parses gzip log files and calls PutLogEvents
  Documentation: https://docs.aws.amazon.com/lambda/latest/dg/welcome.html
- Amazon S3: Source bucket the CloudFront distribution writes logs to
  Documentation: https://docs.aws.amazon.com/AmazonCloudFront/latest/DeveloperGuide/AccessLogs.html
- Amazon CloudWatch Logs: Destination log group, one stream per invocation
  Documentation: https://docs.aws.amazon.com/AmazonCloudWatch/latest/logs/WhatIsCloudWatchLogs.html
"""

from aws_cdk import (
    Stack,
    Duration,
    RemovalPolicy,
    CfnOutput,
    aws_lambda as lambda_,
    aws_iam as iam,
    aws_logs as logs,
    aws_s3 as s3,
    aws_s3_notifications as s3n,
)
from constructs import Construct

PROJECT_NAME = "cloudfront-log-forwarder"


class LogForwarderStack(Stack):
    """
    Log group + forwarder Lambda, optionally wired to an existing logs bucket.

    The logs bucket is owned by the CDN stack, so it is imported by name and
    only gets an ObjectCreated:Put notification for *.gz keys.
    """

    def __init__(self, scope: Construct, construct_id: str, stage_name: str = "dev",
                 logs_bucket_name: str = None, **kwargs) -> None:
        super().__init__(scope, construct_id, **kwargs)

        log_group = logs.LogGroup(
            self, "CloudFrontLogGroup",
            log_group_name=f"/aws/cloudfront/{PROJECT_NAME}-{stage_name}",
            retention=logs.RetentionDays.THREE_MONTHS,
            removal_policy=RemovalPolicy.DESTROY
        )

        forwarder_lambda = lambda_.Function(
            self, "LogForwarderLambda",
            runtime=lambda_.Runtime.PYTHON_3_11,
            handler="LogForwarderLambda.lambda_handler",
            code=lambda_.Code.from_asset("./functions"),
            # Large log files need the headroom for gunzip + JSON serialization
            timeout=Duration.seconds(60),
            memory_size=256,
            function_name=f"{PROJECT_NAME}-{stage_name}",
            description=f"[{stage_name.upper()}] Forwards CloudFront access logs from S3 to CloudWatch Logs",
            environment={
                "LOG_GROUP_NAME": log_group.log_group_name,
                "LOG_STREAM_PREFIX": f"{PROJECT_NAME}-log-stream-{stage_name}"
            }
        )

        # CreateLogStream + PutLogEvents on the destination group
        log_group.grant_write(forwarder_lambda)

        # Ensure-exists checks need the describe/create calls as well
        forwarder_lambda.add_to_role_policy(
            iam.PolicyStatement(
                effect=iam.Effect.ALLOW,
                actions=[
                    "logs:DescribeLogGroups",
                    "logs:DescribeLogStreams",
                    "logs:CreateLogGroup"
                ],
                resources=["*"]
            )
        )

        if logs_bucket_name:
            logs_bucket = s3.Bucket.from_bucket_name(self, "StandardLogsBucket", logs_bucket_name)
            logs_bucket.grant_read(forwarder_lambda)
            logs_bucket.add_event_notification(
                s3.EventType.OBJECT_CREATED_PUT,
                s3n.LambdaDestination(forwarder_lambda),
                s3.NotificationKeyFilter(suffix=".gz")
            )

        CfnOutput(
            self, "LogGroupName",
            value=log_group.log_group_name,
            description=f"[{stage_name.upper()}] CloudWatch log group receiving CloudFront logs"
        )

        CfnOutput(
            self, "LogForwarderFunctionName",
            value=forwarder_lambda.function_name,
            description=f"[{stage_name.upper()}] Log forwarder Lambda function name"
        )
