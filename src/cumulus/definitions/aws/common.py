# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

import json
import logging
import os
import time
from enum import Enum, unique
from typing import Any, Dict, Optional, Sequence, Union

import boto3
from botocore.exceptions import ClientError

from cumulus.core.entity import CoreData
from cumulus.core.errors import NonRetryableError, get_code_for_exception, is_throttled

module_logger = logging.getLogger(__name__)

DEFAULT_REGION = "us-west-2"

LAMBDA_SERVICE_PRINCIPAL = "lambda.amazonaws.com"
SNS_SERVICE_PRINCIPAL = "sns.amazonaws.com"
EVENTS_SERVICE_PRINCIPAL = "events.amazonaws.com"

LAMBDA_INVOKE_ACTION = "lambda:InvokeFunction"

# IAM is eventually consistent. A role that has just been created cannot be assumed by Lambda right away.
ROLE_PROPAGATION_DELAY_IN_SECS = 8


@unique
class CommonParams(str, Enum):
    """Environment variables read by :func:`get_session` when the caller provides nothing explicitly."""

    REGION = "CUMULUS_AWS_REGION"
    ACCESS_KEY_ID = "CUMULUS_AWS_ACCESS_KEY_ID"
    SECRET_ACCESS_KEY = "CUMULUS_AWS_SECRET_ACCESS_KEY"


class AWSAccessPair(CoreData):
    def __init__(self, aws_access_key_id: str, aws_secret_access_key: str) -> None:
        self.aws_access_key_id = aws_access_key_id
        self.aws_secret_access_key = aws_secret_access_key

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(aws_access_key_id={self.aws_access_key_id!r})"


MAX_ATTEMPTS_PARAM = "_max_attempts"
DEFAULT_MAX_ATTEMPTS = 5
INITIAL_SLEEP_INTERVAL_PARAM = "_initial_sleep_time_in_secs"
INITIAL_SLEEP_INTERVAL_DEFAULT = 1


def exponential_retry(func, service_retryable_errors, *func_args, **func_kwargs):
    """
    Calls func until it succeeds, backing off exponentially between the attempts that failed with a retryable error.
    :param func: a single client call or a whole deployment step.
    :param service_retryable_errors: AWS service specific retryable error codes. These are added to the throttling
                                    errors that are always retried. Anything else is raised without a retry.
    :param func_args: positional arguments of func.
    :param func_kwargs: The keyword arguments to pass to the function. Two control parameters are consumed here and not
                        passed along; '_max_attempts' (total number of calls, default 5) and
                        '_initial_sleep_time_in_secs' (first backoff interval, doubled after each failed attempt).
    :return: whatever func returns on its first successful attempt.
    """
    retryables = set(service_retryable_errors)
    max_attempts = func_kwargs.pop(MAX_ATTEMPTS_PARAM, DEFAULT_MAX_ATTEMPTS)
    sleepy_time = func_kwargs.pop(INITIAL_SLEEP_INTERVAL_PARAM, INITIAL_SLEEP_INTERVAL_DEFAULT)
    func_name = func.__name__ if hasattr(func, "__name__") else str(func)

    attempt = 0
    while True:
        attempt += 1
        try:
            func_return = func(*func_args, **func_kwargs)
            module_logger.debug("Ran %s, got %s.", func_name, func_return)
            return func_return
        except NonRetryableError:
            raise
        except Exception as error:
            error_code = get_code_for_exception(error)
            if not (is_throttled(error) or error_code in retryables):
                raise
            if attempt >= max_attempts:
                module_logger.error(f"Giving up on {func_name} after {attempt} attempts. Last error_code={error_code!r}")
                raise
            module_logger.warning(
                f"Sleeping for {sleepy_time} secs before retrying {func_name} (attempt {attempt}/{max_attempts}). "
                f"Retryable error_code={error_code!r}"
            )
            time.sleep(sleepy_time)
            sleepy_time = sleepy_time * 2


def get_session(access_pair: Optional[AWSAccessPair] = None, region: Optional[str] = None) -> boto3.Session:
    """
    Creates the boto3.Session that every client of a deployment is created from.

    Parameters
    access_pair : AWSAccessPair, key id and secret key. Falls back to the CUMULUS_AWS_* environment variables and then
                  to the system defaults (~/.aws, instance profile, etc).
    region: string, AWS region, 'us-west-2' if not specified anywhere.

    Returns
    boto3.Session
    """
    region = region or os.getenv(CommonParams.REGION.value) or DEFAULT_REGION
    if not access_pair and os.getenv(CommonParams.ACCESS_KEY_ID.value):
        access_pair = AWSAccessPair(os.getenv(CommonParams.ACCESS_KEY_ID.value), os.getenv(CommonParams.SECRET_ACCESS_KEY.value))

    if not access_pair:
        module_logger.info("Creating boto3.Session with system defaults.")
        return boto3.Session(region_name=region)

    module_logger.info("Creating boto3.Session with access key pair.")
    return boto3.Session(access_pair.aws_access_key_id, access_pair.aws_secret_access_key, None, region)


def get_role_name_from_arn(role_arn: str) -> str:
    """arn:aws:iam::123456789012:role/service-role/my-role -> my-role"""
    return role_arn.split(":")[5].split("/")[-1]


def get_trust_policy(allowed_services: Sequence[str]) -> str:
    """Example allowed_service: 'lambda.amazonaws.com'"""
    trust_policy = {
        "Version": "2012-10-17",
        "Statement": [{"Effect": "Allow", "Principal": {"Service": service}, "Action": "sts:AssumeRole"} for service in allowed_services],
    }
    return json.dumps(trust_policy)


def create_role(
    iam,
    role_name: str,
    allowed_services: Sequence[str] = (LAMBDA_SERVICE_PRINCIPAL,),
    propagation_delay_in_secs: int = ROLE_PROPAGATION_DELAY_IN_SECS,
) -> Dict[str, Any]:
    """
    Creates a role with a trust policy for the given service principals (Lambda by default).

    Returns only after the role is visible to IAM (waiter, if the boto version has it) and then the fixed
    propagation delay has elapsed, regardless of how long the creation took.

    :return: create_role response, {"Role": {"RoleName": ..., "Arn": ...}}.
    """
    try:
        role = exponential_retry(
            iam.create_role,
            ["ServiceFailureException"],
            RoleName=role_name,
            AssumeRolePolicyDocument=get_trust_policy(allowed_services),
        )
        if "role_exists" in iam.waiter_names:
            iam.get_waiter("role_exists").wait(RoleName=role_name)

        module_logger.info(f"Created role {role_name} for services {allowed_services}. Waiting {propagation_delay_in_secs} secs for propagation...")
        time.sleep(propagation_delay_in_secs)
    except ClientError as ex:
        module_logger.exception("Creation of role %s failed! Error: %s", role_name, str(ex))
        raise
    else:
        return role


def normalize_policy_arn(managed_policy_name: str) -> str:
    return managed_policy_name if managed_policy_name.startswith("arn:") else f"arn:aws:iam::aws:policy/{managed_policy_name}"


def attach_policy(iam, role_name: str, policy: Union[str, Dict[str, Any]]) -> None:
    """
    policy: can be a managed policy name / arn (attached) or an inlined policy as
            {"PolicyName": <name>, "PolicyDocument": <str or dict>} (put into the role).
    """
    try:
        if isinstance(policy, dict):
            document = policy["PolicyDocument"]
            exponential_retry(
                iam.put_role_policy,
                [],
                RoleName=role_name,
                PolicyName=policy["PolicyName"],
                PolicyDocument=document if isinstance(document, str) else json.dumps(document),
            )
            module_logger.info(f"Put inlined policy {policy['PolicyName']!r} into the role {role_name!r}")
        else:
            policy_arn = normalize_policy_arn(policy)
            exponential_retry(iam.attach_role_policy, [], RoleName=role_name, PolicyArn=policy_arn)
            module_logger.info(f"Attached policy {policy_arn!r} to the role {role_name!r}")
    except ClientError as ex:
        module_logger.exception("Could not attach policy %r to role %s. Exception: %s", policy, role_name, str(ex))
        raise
