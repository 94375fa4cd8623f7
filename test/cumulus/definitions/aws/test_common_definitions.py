# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

import json
from unittest.mock import MagicMock, call, patch

import pytest
from botocore.exceptions import ClientError

from cumulus.core.errors import NonRetryableError
from cumulus.definitions.aws.common import (
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_REGION,
    AWSAccessPair,
    attach_policy,
    create_role,
    exponential_retry,
    get_role_name_from_arn,
    get_session,
    get_trust_policy,
    normalize_policy_arn,
)
from cumulus.mixins.aws.test import client_error


class TestExponentialRetry:
    def test_returns_on_first_success(self, no_sleep):
        func = MagicMock(return_value="ok")
        assert exponential_retry(func, [], 1, foo="bar") == "ok"
        func.assert_called_once_with(1, foo="bar")
        no_sleep.assert_not_called()

    def test_retries_throttling_then_succeeds(self, no_sleep):
        func = MagicMock(side_effect=[client_error("TooManyRequestsException"), client_error("ThrottlingException"), "ok"])
        assert exponential_retry(func, []) == "ok"
        assert func.call_count == 3
        assert no_sleep.call_args_list == [call(1), call(2)]

    def test_exhaustion_makes_exactly_max_attempts_with_increasing_delays(self, no_sleep):
        func = MagicMock(side_effect=client_error("TooManyRequestsException"))
        with pytest.raises(ClientError) as error:
            exponential_retry(func, [], _max_attempts=4)
        assert error.value.response["Error"]["Code"] == "TooManyRequestsException"
        assert func.call_count == 4
        delays = [c.args[0] for c in no_sleep.call_args_list]
        # sleeps only between attempts
        assert len(delays) == 3
        assert all(earlier < later for earlier, later in zip(delays, delays[1:]))

    def test_default_ceiling(self, no_sleep):
        func = MagicMock(side_effect=client_error("Throttling"))
        with pytest.raises(ClientError):
            exponential_retry(func, [])
        assert func.call_count == DEFAULT_MAX_ATTEMPTS

    def test_initial_sleep_is_configurable(self, no_sleep):
        func = MagicMock(side_effect=[client_error("Throttling"), "ok"])
        exponential_retry(func, [], _initial_sleep_time_in_secs=5)
        no_sleep.assert_called_once_with(5)

    def test_non_matching_error_is_raised_immediately(self, no_sleep):
        func = MagicMock(side_effect=client_error("AccessDeniedException"))
        with pytest.raises(ClientError):
            exponential_retry(func, [])
        func.assert_called_once()
        no_sleep.assert_not_called()

    def test_service_specific_retryables(self, no_sleep):
        func = MagicMock(side_effect=[client_error("ServiceFailureException"), "ok"])
        assert exponential_retry(func, ["ServiceFailureException"]) == "ok"
        assert func.call_count == 2

    def test_non_retryable_error_is_never_retried(self, no_sleep):
        func = MagicMock(side_effect=NonRetryableError("stop", client_error("TooManyRequestsException")))
        with pytest.raises(NonRetryableError):
            exponential_retry(func, ["NonRetryableError"])
        func.assert_called_once()

    def test_control_params_are_not_forwarded(self, no_sleep):
        func = MagicMock(return_value=None)
        exponential_retry(func, [], "a", _max_attempts=2, _initial_sleep_time_in_secs=3, b="c")
        func.assert_called_once_with("a", b="c")


class TestIAMDefinitions:
    def test_trust_policy(self):
        policy = json.loads(get_trust_policy(["lambda.amazonaws.com"]))
        assert policy["Statement"] == [{"Effect": "Allow", "Principal": {"Service": "lambda.amazonaws.com"}, "Action": "sts:AssumeRole"}]

    def test_role_name_from_arn(self):
        assert get_role_name_from_arn("arn:aws:iam::123456789012:role/svc-role") == "svc-role"
        assert get_role_name_from_arn("arn:aws:iam::123456789012:role/service-role/svc-role") == "svc-role"

    def test_normalize_policy_arn(self):
        assert normalize_policy_arn("AWSLambdaExecute") == "arn:aws:iam::aws:policy/AWSLambdaExecute"
        assert normalize_policy_arn("arn:aws:iam::123456789012:policy/mine") == "arn:aws:iam::123456789012:policy/mine"

    def test_create_role_waits_for_propagation(self, no_sleep):
        iam = MagicMock()
        iam.waiter_names = []
        iam.create_role.return_value = {"Role": {"RoleName": "svc-role", "Arn": "arn:aws:iam::123456789012:role/svc-role"}}

        role = create_role(iam, "svc-role", propagation_delay_in_secs=8)

        assert role["Role"]["RoleName"] == "svc-role"
        trust_policy = json.loads(iam.create_role.call_args.kwargs["AssumeRolePolicyDocument"])
        assert trust_policy["Statement"][0]["Principal"] == {"Service": "lambda.amazonaws.com"}
        no_sleep.assert_called_once_with(8)

    def test_create_role_uses_waiter_and_still_pauses(self, no_sleep):
        iam = MagicMock()
        iam.waiter_names = ["role_exists"]
        iam.create_role.return_value = {"Role": {"RoleName": "svc-role", "Arn": "arn"}}

        create_role(iam, "svc-role", propagation_delay_in_secs=8)

        iam.get_waiter.assert_called_once_with("role_exists")
        iam.get_waiter.return_value.wait.assert_called_once_with(RoleName="svc-role")
        no_sleep.assert_called_once_with(8)

    def test_create_role_failure(self, no_sleep):
        iam = MagicMock()
        iam.create_role.side_effect = client_error("AccessDenied")
        with pytest.raises(ClientError):
            create_role(iam, "svc-role")
        no_sleep.assert_not_called()

    def test_attach_managed_policy(self):
        iam = MagicMock()
        attach_policy(iam, "svc-role", "service-role/AWSLambdaBasicExecutionRole")
        iam.attach_role_policy.assert_called_once_with(
            RoleName="svc-role", PolicyArn="arn:aws:iam::aws:policy/service-role/AWSLambdaBasicExecutionRole"
        )
        iam.put_role_policy.assert_not_called()

    def test_attach_inlined_policy(self):
        iam = MagicMock()
        document = {"Version": "2012-10-17", "Statement": [{"Effect": "Allow", "Action": "sqs:*", "Resource": "*"}]}
        attach_policy(iam, "svc-role", {"PolicyName": "queue-access", "PolicyDocument": document})
        iam.put_role_policy.assert_called_once_with(RoleName="svc-role", PolicyName="queue-access", PolicyDocument=json.dumps(document))
        iam.attach_role_policy.assert_not_called()


class TestSession:
    def test_default_region(self, monkeypatch):
        monkeypatch.delenv("CUMULUS_AWS_REGION", raising=False)
        monkeypatch.delenv("CUMULUS_AWS_ACCESS_KEY_ID", raising=False)
        with patch("cumulus.definitions.aws.common.boto3.Session") as session_class:
            get_session()
        session_class.assert_called_once_with(region_name=DEFAULT_REGION)

    def test_access_pair(self):
        with patch("cumulus.definitions.aws.common.boto3.Session") as session_class:
            get_session(AWSAccessPair("acckey", "secret"), "us-west-3")
        session_class.assert_called_once_with("acckey", "secret", None, "us-west-3")

    def test_environment_variables(self, monkeypatch):
        monkeypatch.setenv("CUMULUS_AWS_REGION", "eu-west-1")
        monkeypatch.setenv("CUMULUS_AWS_ACCESS_KEY_ID", "acckey")
        monkeypatch.setenv("CUMULUS_AWS_SECRET_ACCESS_KEY", "secret")
        with patch("cumulus.definitions.aws.common.boto3.Session") as session_class:
            get_session()
        session_class.assert_called_once_with("acckey", "secret", None, "eu-west-1")
