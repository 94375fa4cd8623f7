# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

import pytest

from cumulus.definitions.aws.sns.client_wrapper import create_topic, find_topic, list_topics, subscribe_lambda
from cumulus.mixins.aws.test import AWSTestBase


class TestSNSClientWrapper(AWSTestBase):
    @pytest.fixture
    def sns(self, aws):
        return aws.client("sns", region_name=self.region)

    def test_create_and_find_topic(self, sns):
        topic_arn = create_topic(sns, "orders")
        assert topic_arn == f"arn:aws:sns:{self.region}:{self.account_id}:orders"
        assert find_topic(sns, topic_arn) == {"TopicArn": topic_arn}
        # idempotent
        assert create_topic(sns, "orders") == topic_arn
        assert len(list_topics(sns)) == 1

    def test_find_topic_matches_full_arn(self, sns):
        create_topic(sns, "orders")
        assert find_topic(sns, f"arn:aws:sns:us-west-2:{self.account_id}:orders") is None

    def test_subscribe_lambda(self, sns):
        topic_arn = create_topic(sns, "orders")
        function_arn = f"arn:aws:lambda:{self.region}:{self.account_id}:function:svc"
        subscription_arn = subscribe_lambda(sns, topic_arn, function_arn)
        assert subscription_arn.startswith(topic_arn)
        subscriptions = sns.list_subscriptions_by_topic(TopicArn=topic_arn)["Subscriptions"]
        assert [(s["Protocol"], s["Endpoint"]) for s in subscriptions] == [("lambda", function_arn)]
