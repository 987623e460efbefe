from aws_cdk import Stage
from constructs import Construct
from .log_forwarder_stack import LogForwarderStack
from .error_alerts_stack import ErrorAlertsStack


class MonitoringStage(Stage):
    """
    Deployment stage for the monitoring functions.

    Each stage (dev, staging, production) gets its own log forwarder and
    error alerting resources, named after the stage.
    """

    def __init__(self, scope: Construct, construct_id: str, logs_bucket_name: str = None,
                 alert_email: str = None, slack_channel_id: str = None,
                 slack_workspace_id: str = None, **kwargs) -> None:
        super().__init__(scope, construct_id, **kwargs)

        self.log_forwarder = LogForwarderStack(
            self,
            "LogForwarderStack",
            stage_name=construct_id,
            logs_bucket_name=logs_bucket_name
        )

        self.error_alerts = ErrorAlertsStack(
            self,
            "ErrorAlertsStack",
            stage_name=construct_id,
            alert_email=alert_email,
            slack_channel_id=slack_channel_id,
            slack_workspace_id=slack_workspace_id
        )
