# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

import logging
from typing import Dict, List, Optional

from botocore.exceptions import ClientError

logger = logging.getLogger(__name__)

LAMBDA_PROTOCOL = "lambda"


def list_topics(sns) -> List[Dict[str, str]]:
    topics = []
    next_token = None
    while True:
        if next_token:
            response = sns.list_topics(NextToken=next_token)
        else:
            response = sns.list_topics()
        topics.extend(response.get("Topics", []))
        next_token = response.get("NextToken", None)
        if not next_token:
            break
    return topics


def find_topic(sns, topic_arn: str) -> Optional[Dict[str, str]]:
    for topic in list_topics(sns):
        if topic.get("TopicArn", None) == topic_arn:
            return topic
    return None


def create_topic(sns, topic_name: str) -> str:
    """Idempotent on the AWS side, returns the ARN of the existing topic if the name is already taken."""
    try:
        response = sns.create_topic(Name=topic_name)
        logger.info("Created topic '%s' with ARN: '%s'.", topic_name, response["TopicArn"])
    except ClientError:
        logger.exception("Couldn't create topic %s.", topic_name)
        raise
    else:
        return response["TopicArn"]


def subscribe_lambda(sns, topic_arn: str, function_arn: str) -> str:
    """Subscribes the function to the topic, AWS returns the same subscription if it already exists.

    :returns the subscription arn
    """
    try:
        response = sns.subscribe(TopicArn=topic_arn, Protocol=LAMBDA_PROTOCOL, Endpoint=function_arn, ReturnSubscriptionArn=True)
        logger.info("Subscribed function '%s' to topic '%s'.", function_arn, topic_arn)
    except ClientError:
        logger.exception("Couldn't subscribe function %s to topic %s.", function_arn, topic_arn)
        raise
    else:
        return response["SubscriptionArn"]
