#!/usr/bin/env python3
import os
import aws_cdk as cdk
from virtual_finland_monitoring.monitoring_stage import MonitoringStage

# Initialize CDK application
# Documentation: https://docs.aws.amazon.com/cdk/api/v2/python/aws_cdk/App.html
app = cdk.App()

# Deployment settings come from CDK context, e.g.
#   cdk deploy -c stage=staging -c logsBucketName=codesets-standard-logs-staging
# Context documentation: https://docs.aws.amazon.com/cdk/v2/guide/context.html
stage = app.node.try_get_context("stage") or "dev"

MonitoringStage(
    app,
    stage,
    logs_bucket_name=app.node.try_get_context("logsBucketName"),
    alert_email=app.node.try_get_context("alertEmail"),
    slack_channel_id=app.node.try_get_context("slackChannelId"),
    slack_workspace_id=app.node.try_get_context("slackWorkspaceId"),
    env=cdk.Environment(
        account=os.getenv('CDK_DEFAULT_ACCOUNT'),
        region=os.getenv('CDK_DEFAULT_REGION', 'eu-north-1')
    )
)

# Synthesize CloudFormation templates into cdk.out
app.synth()
