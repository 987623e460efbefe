"""
SNS fan-out for error alerts.

SNS Publish API: https://boto3.amazonaws.com/v1/documentation/api/latest/reference/services/sns/client/publish.html
"""
from concurrent.futures import ThreadPoolExecutor, as_completed

from errors import NotificationFanoutError


def publish_sns_message(sns_client, topic_arn, subject, message):
    return sns_client.publish(
        TopicArn=topic_arn,
        Subject=f"{subject} Error!",
        Message=message,
    )


class NotificationFanout:
    """
    Publishes one alert to a required topic and any optional topics at once.

    All publishes are started together and awaited as a whole; if any of them
    fails, NotificationFanoutError is raised listing every failed topic.
    """

    def __init__(self, sns_client, required_topic_arn, optional_topic_arns=None):
        if not required_topic_arn:
            raise ValueError("required_topic_arn is required")
        self.sns_client = sns_client
        self.required_topic_arn = required_topic_arn
        self.optional_topic_arns = [arn for arn in (optional_topic_arns or []) if arn]

    @property
    def topic_arns(self):
        return [self.required_topic_arn] + self.optional_topic_arns

    def publish(self, subject, messages):
        """
        messages maps topic ARN to message body; topics missing from the map
        receive the required topic's message.
        """
        default_message = messages[self.required_topic_arn]
        results = {}
        failures = []

        with ThreadPoolExecutor(max_workers=len(self.topic_arns)) as executor:
            futures = {
                executor.submit(
                    publish_sns_message,
                    self.sns_client,
                    topic_arn,
                    subject,
                    messages.get(topic_arn, default_message),
                ): topic_arn
                for topic_arn in self.topic_arns
            }
            for future in as_completed(futures):
                topic_arn = futures[future]
                try:
                    results[topic_arn] = future.result()
                    print(f"Published alert to {topic_arn}")
                except Exception as e:
                    print(f"Failed to publish alert to {topic_arn}: {str(e)}")
                    failures.append((topic_arn, e))

        if failures:
            raise NotificationFanoutError(failures)
        return results
