# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

import io
import os
import zipfile
from typing import Dict, List, Optional
from unittest.mock import MagicMock

import boto3
import pytest
from botocore.exceptions import ClientError
from moto import mock_aws


def client_error(code: str, operation_name: str = "op", message: str = "") -> ClientError:
    return ClientError(operation_name=operation_name, error_response={"Error": {"Code": code, "Message": message}})


def create_zip_package(handler_file_name: str = "index.py", source: str = "def handler(event, context):\n    return event\n") -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as zipped:
        zipped.writestr(handler_file_name, source)
    buffer.seek(0)
    return buffer.read()


class MockAWSClients:
    """One MagicMock per service, all attached to a single parent so that the order of calls across services can be
    asserted on 'calls.mock_calls'. Defaults emulate a fresh account (nothing exists)."""

    SERVICES = ("lambda", "iam", "sns", "events", "logs")

    def __init__(self, region: Optional[str] = None, account_id: Optional[str] = None) -> None:
        self.region = region if region else AWSTestBase.region
        self.account_id = account_id if account_id else AWSTestBase.account_id
        self.calls = MagicMock()
        self.clients: Dict[str, MagicMock] = {}
        for service in self.SERVICES:
            client = MagicMock()
            client.waiter_names = []
            self.clients[service] = client
            self.calls.attach_mock(client, service.replace("lambda", "lambda_"))
        self.session = MagicMock()
        self.session.client.side_effect = lambda service_name, **kwargs: self.clients[service_name]
        self.session.region_name = self.region
        self._setup_fresh_account()

    def __getitem__(self, service: str) -> MagicMock:
        return self.clients[service]

    def function_arn(self, function_name: str) -> str:
        return f"arn:aws:lambda:{self.region}:{self.account_id}:function:{function_name}"

    def role_arn(self, role_name: str) -> str:
        return f"arn:aws:iam::{self.account_id}:role/{role_name}"

    def topic_arn(self, topic_name: str) -> str:
        return f"arn:aws:sns:{self.region}:{self.account_id}:{topic_name}"

    def rule_arn(self, rule_name: str) -> str:
        return f"arn:aws:events:{self.region}:{self.account_id}:rule/{rule_name}"

    def _setup_fresh_account(self) -> None:
        lambda_client = self.clients["lambda"]
        lambda_client.get_function.side_effect = client_error("ResourceNotFoundException", "GetFunction")
        lambda_client.create_function.side_effect = lambda **kwargs: {
            "FunctionName": kwargs["FunctionName"],
            "FunctionArn": self.function_arn(kwargs["FunctionName"]),
        }
        lambda_client.update_function_code.side_effect = lambda **kwargs: {
            "FunctionName": kwargs["FunctionName"],
            "FunctionArn": self.function_arn(kwargs["FunctionName"]),
        }
        lambda_client.update_function_configuration.side_effect = lambda **kwargs: {
            "FunctionName": kwargs["FunctionName"],
            "FunctionArn": self.function_arn(kwargs["FunctionName"]),
        }
        lambda_client.publish_version.return_value = {"Version": "1"}
        lambda_client.list_versions_by_function.return_value = {"Versions": [{"Version": "$LATEST"}]}
        lambda_client.list_event_source_mappings.return_value = {"EventSourceMappings": []}
        lambda_client.create_event_source_mapping.return_value = {"UUID": "mapping-1"}
        lambda_client.update_event_source_mapping.return_value = {}
        lambda_client.add_permission.return_value = {"Statement": "{}"}
        lambda_client.remove_permission.side_effect = client_error("ResourceNotFoundException", "RemovePermission")

        iam = self.clients["iam"]
        iam.get_role.side_effect = client_error("NoSuchEntity", "GetRole")
        iam.create_role.side_effect = lambda **kwargs: {"Role": {"RoleName": kwargs["RoleName"], "Arn": self.role_arn(kwargs["RoleName"])}}

        sns = self.clients["sns"]
        sns.list_topics.return_value = {"Topics": []}
        sns.create_topic.side_effect = lambda **kwargs: {"TopicArn": self.topic_arn(kwargs["Name"])}
        sns.subscribe.side_effect = lambda **kwargs: {"SubscriptionArn": f"{kwargs['TopicArn']}:subscription"}

        events = self.clients["events"]
        events.put_rule.side_effect = lambda **kwargs: {"RuleArn": self.rule_arn(kwargs["Name"])}
        events.put_targets.return_value = {"FailedEntryCount": 0, "FailedEntries": []}

        self.clients["logs"].put_subscription_filter.return_value = {}

    def set_function_exists(self, function_name: str, role_arn: str, variables: Optional[Dict[str, str]] = None, **configuration) -> None:
        descriptor = {
            "FunctionName": function_name,
            "FunctionArn": self.function_arn(function_name),
            "Role": role_arn,
            "Environment": {"Variables": dict(variables or {})},
        }
        descriptor.update(configuration)
        self.clients["lambda"].get_function.side_effect = None
        self.clients["lambda"].get_function.return_value = {"Configuration": descriptor}

    def set_role_exists(self, role_name: str) -> None:
        self.clients["iam"].get_role.side_effect = None
        self.clients["iam"].get_role.return_value = {"Role": {"RoleName": role_name, "Arn": self.role_arn(role_name)}}

    def set_topics_exist(self, *topic_arns: str) -> None:
        self.clients["sns"].list_topics.return_value = {"Topics": [{"TopicArn": arn} for arn in topic_arns]}

    def set_versions(self, *versions: str) -> None:
        self.clients["lambda"].list_versions_by_function.return_value = {"Versions": [{"Version": v} for v in versions]}

    def call_names(self) -> List[str]:
        return [name for name, _, _ in self.calls.mock_calls]

    def calls_to(self, name: str):
        return [c for c in self.calls.mock_calls if c[0] == name]


class AWSTestBase:
    testing_keyname = "testing"
    region = "us-east-1"
    # default moto acc id
    account_id = "123456789012"

    @pytest.fixture(scope="class")
    def aws_credentials(self):
        os.environ["AWS_ACCESS_KEY_ID"] = self.testing_keyname
        os.environ["AWS_SECRET_ACCESS_KEY"] = self.testing_keyname
        os.environ["AWS_SECURITY_TOKEN"] = self.testing_keyname
        os.environ["AWS_SESSION_TOKEN"] = self.testing_keyname
        os.environ["AWS_DEFAULT_REGION"] = self.region

    @pytest.fixture()
    def aws(self, aws_credentials):
        with mock_aws():
            yield boto3.Session(region_name=self.region)

    @pytest.fixture()
    def mock_clients(self) -> MockAWSClients:
        return MockAWSClients(self.region, self.account_id)

    @pytest.fixture()
    def zip_package(self, tmp_path) -> str:
        package = tmp_path / "function.zip"
        package.write_bytes(create_zip_package())
        return str(package)
