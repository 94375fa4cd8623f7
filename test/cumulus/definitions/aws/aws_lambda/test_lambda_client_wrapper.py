# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

from unittest.mock import MagicMock, call

import pytest
from botocore.exceptions import ClientError

from cumulus.definitions.aws.aws_lambda.client_wrapper import (
    add_permission,
    create_event_source_mapping,
    create_lambda_function,
    delete_version,
    list_event_source_mappings,
    list_versions,
    update_lambda_function_code,
)
from cumulus.mixins.aws.test import client_error


class TestLambdaClientWrapper:
    @pytest.fixture
    def lambda_client(self):
        client = MagicMock()
        client.waiter_names = []
        return client

    def test_create_function_does_not_publish(self, lambda_client):
        lambda_client.create_function.return_value = {"FunctionArn": "arn:aws:lambda:us-east-1:123456789012:function:svc"}
        response = create_lambda_function(
            lambda_client, "svc", "desc", "index.handler", "role-arn", {"ZipFile": b"zip"}, "python3.12", 128, 3, {"A": "1"}
        )
        assert response["FunctionArn"].endswith(":svc")
        kwargs = lambda_client.create_function.call_args.kwargs
        assert kwargs["Publish"] is False
        assert kwargs["Code"] == {"ZipFile": b"zip"}
        assert kwargs["Environment"] == {"Variables": {"A": "1"}}

    def test_create_function_waits_for_active_state(self, lambda_client):
        lambda_client.waiter_names = ["function_active", "function_updated"]
        lambda_client.create_function.return_value = {"FunctionArn": "arn"}
        create_lambda_function(lambda_client, "svc", "", "index.handler", "role-arn", {"ZipFile": b"zip"}, "python3.12", 128, 3)
        lambda_client.get_waiter.assert_called_once_with("function_active")
        lambda_client.get_waiter.return_value.wait.assert_called_once_with(FunctionName="svc")

    def test_create_function_failure_is_raised(self, lambda_client):
        lambda_client.create_function.side_effect = client_error("InvalidParameterValueException")
        with pytest.raises(ClientError) as error:
            create_lambda_function(lambda_client, "svc", "", "index.handler", "role-arn", {"ZipFile": b"zip"}, "python3.12", 128, 3)
        assert error.value.response["Error"]["Code"] == "InvalidParameterValueException"

    def test_update_code_with_s3_artifact(self, lambda_client, no_sleep):
        lambda_client.update_function_code.return_value = {"FunctionArn": "arn"}
        update_lambda_function_code(lambda_client, "svc", {"S3Bucket": "bucket", "S3Key": "svc.zip"})
        lambda_client.update_function_code.assert_called_once_with(FunctionName="svc", Publish=False, S3Bucket="bucket", S3Key="svc.zip")
        # no waiter, fixed pause before the configuration can be updated
        no_sleep.assert_called_once_with(10)

    def test_list_versions_follows_markers(self, lambda_client):
        lambda_client.list_versions_by_function.side_effect = [
            {"Versions": [{"Version": "$LATEST"}, {"Version": "1"}], "NextMarker": "m1"},
            {"Versions": [{"Version": "2"}]},
        ]
        assert list_versions(lambda_client, "svc") == {"Versions": [{"Version": "$LATEST"}, {"Version": "1"}, {"Version": "2"}]}
        assert lambda_client.list_versions_by_function.call_args_list == [call(FunctionName="svc"), call(FunctionName="svc", Marker="m1")]

    def test_latest_cannot_be_deleted(self, lambda_client):
        with pytest.raises(ValueError):
            delete_version(lambda_client, "svc", "$LATEST")
        lambda_client.delete_function.assert_not_called()

    def test_delete_version(self, lambda_client):
        delete_version(lambda_client, "svc", "3")
        lambda_client.delete_function.assert_called_once_with(FunctionName="svc", Qualifier="3")

    def test_add_permission(self, lambda_client):
        lambda_client.add_permission.return_value = {"Statement": '{"Sid": "sid"}'}
        statement = add_permission(lambda_client, "svc", "sid", "lambda:InvokeFunction", "sns.amazonaws.com", "topic-arn")
        assert statement == '{"Sid": "sid"}'
        lambda_client.add_permission.assert_called_once_with(
            FunctionName="svc", StatementId="sid", Action="lambda:InvokeFunction", Principal="sns.amazonaws.com", SourceArn="topic-arn"
        )

    def test_add_permission_conflict(self, lambda_client):
        lambda_client.add_permission.side_effect = client_error("ResourceConflictException")
        with pytest.raises(Exception) as error:
            add_permission(lambda_client, "svc", "sid", "lambda:InvokeFunction", "sns.amazonaws.com")
        assert error.typename == "ClientError"
        assert error.value.response["Error"]["Code"] == "ResourceConflictException"

    def test_list_event_source_mappings_follows_markers(self, lambda_client):
        lambda_client.list_event_source_mappings.side_effect = [
            {"EventSourceMappings": [{"UUID": "u1"}], "NextMarker": "m1"},
            {"EventSourceMappings": [{"UUID": "u2"}]},
        ]
        assert [m["UUID"] for m in list_event_source_mappings(lambda_client, "svc", "queue-arn")] == ["u1", "u2"]
        assert lambda_client.list_event_source_mappings.call_args_list[1] == call(FunctionName="svc", EventSourceArn="queue-arn", Marker="m1")

    def test_create_event_source_mapping_starting_position(self, lambda_client):
        lambda_client.create_event_source_mapping.return_value = {"UUID": "u1"}
        create_event_source_mapping(lambda_client, "svc", "queue-arn", 10)
        assert "StartingPosition" not in lambda_client.create_event_source_mapping.call_args.kwargs

        create_event_source_mapping(lambda_client, "svc", "stream-arn", 100, "LATEST", enabled=False)
        lambda_client.create_event_source_mapping.assert_called_with(
            FunctionName="svc", EventSourceArn="stream-arn", BatchSize=100, Enabled=False, StartingPosition="LATEST"
        )
