# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

import logging
import time
from typing import Any, Dict, List, Optional

from botocore.exceptions import ClientError

logger = logging.getLogger(__name__)

LATEST_VERSION = "$LATEST"

# resource policy changes conflict with an update still in progress on the function
PERMISSION_RETRYABLE_EXCEPTION_LIST = ["ResourceConflictException"]


def _wait_for(lambda_client, waiter_name: str, function_name: str, fallback_sleep_in_secs: int = 0) -> None:
    # support wide-range of boto versions by checking the existence
    if waiter_name in lambda_client.waiter_names:
        lambda_client.get_waiter(waiter_name).wait(FunctionName=function_name)
    elif fallback_sleep_in_secs:
        time.sleep(fallback_sleep_in_secs)


def _function_conf_args(
    function_name: str,
    description: str,
    handler_name: str,
    iam_role_arn: str,
    runtime: str,
    memory_size: int,
    timeout: int,
    environment_variables: Optional[Dict[str, str]],
) -> Dict[str, Any]:
    # shared by create_function and update_function_configuration, an update replaces every field
    return {
        "FunctionName": function_name,
        "Description": description,
        "Handler": handler_name,
        "Role": iam_role_arn,
        "Runtime": runtime,
        "MemorySize": memory_size,
        "Timeout": timeout,
        "Environment": {"Variables": dict(environment_variables or {})},
    }


def create_lambda_function(
    lambda_client,
    function_name: str,
    description: str,
    handler_name: str,
    iam_role_arn: str,
    code: Dict[str, Any],
    runtime: str,
    memory_size: int,
    timeout: int,
    environment_variables: Optional[Dict[str, str]] = None,
) -> Dict[str, Any]:
    """
    Creates the function with its code inlined. Only $LATEST exists afterwards, no version is published.
    :param handler_name: '<module>.<function>' within the deployment package.
    :param iam_role_arn: execution role, must already be assumable by Lambda.
    :param code: {"ZipFile": <bytes>} or {"S3Bucket": ..., "S3Key": ..., ["S3ObjectVersion": ...]}
    :return: create_function response (function configuration).
    """
    args = _function_conf_args(function_name, description, handler_name, iam_role_arn, runtime, memory_size, timeout, environment_variables)
    args.update({"Code": code, "Publish": False})
    try:
        response = lambda_client.create_function(**args)
        _wait_for(lambda_client, "function_active", function_name)
        logger.info("Function '%s' created: '%s'.", function_name, response["FunctionArn"])
    except ClientError:
        logger.exception("Creation of function %s failed!", function_name)
        raise
    else:
        return response


def update_lambda_function_code(lambda_client, function_name: str, code: Dict[str, Any]) -> Dict[str, Any]:
    """
    Replaces the code of $LATEST. Does not publish a new version.
    :param code: {"ZipFile": <bytes>} or {"S3Bucket": ..., "S3Key": ..., ["S3ObjectVersion": ...]}
    :return: update_function_code response (function configuration).
    """
    try:
        response = lambda_client.update_function_code(FunctionName=function_name, Publish=False, **code)
        # configuration updates are rejected while the code update is in progress
        _wait_for(lambda_client, "function_updated", function_name, fallback_sleep_in_secs=10)
        logger.info("Code of function '%s' replaced: '%s'.", function_name, response["FunctionArn"])
    except ClientError:
        logger.exception("Code update of function %s failed!", function_name)
        raise
    else:
        return response


def update_lambda_function_conf(
    lambda_client,
    function_name: str,
    description: str,
    handler_name: str,
    iam_role_arn: str,
    runtime: str,
    memory_size: int,
    timeout: int,
    environment_variables: Optional[Dict[str, str]] = None,
) -> Dict[str, Any]:
    """Applies the whole configuration to $LATEST (fields are not diffed)."""
    args = _function_conf_args(function_name, description, handler_name, iam_role_arn, runtime, memory_size, timeout, environment_variables)
    try:
        response = lambda_client.update_function_configuration(**args)
        _wait_for(lambda_client, "function_updated", function_name, fallback_sleep_in_secs=10)
        logger.info("Configuration of function '%s' updated: '%s'.", function_name, response["FunctionArn"])
    except ClientError:
        logger.exception("Configuration update of function %s failed!", function_name)
        raise
    else:
        return response


def publish_version(lambda_client, function_name: str, description: Optional[str] = None) -> Dict[str, Any]:
    kwargs = {"FunctionName": function_name}
    if description:
        kwargs.update({"Description": description})
    try:
        response = lambda_client.publish_version(**kwargs)
        logger.info("Published version %s of function '%s'.", response["Version"], function_name)
    except ClientError:
        logger.exception("Couldn't publish a new version of function %s.", function_name)
        raise
    else:
        return response


def list_versions(lambda_client, function_name: str) -> Dict[str, List[Dict[str, Any]]]:
    """Returns all of the versions of the function (all pages) as {"Versions": [...]}, in the order AWS Lambda lists them."""
    versions = []
    marker = None
    while True:
        if marker:
            response = lambda_client.list_versions_by_function(FunctionName=function_name, Marker=marker)
        else:
            response = lambda_client.list_versions_by_function(FunctionName=function_name)
        versions.extend(response.get("Versions", []))
        marker = response.get("NextMarker", None)
        if not marker:
            break
    return {"Versions": versions}


def delete_version(lambda_client, function_name: str, version: str) -> None:
    if version == LATEST_VERSION:
        raise ValueError(f"{LATEST_VERSION!r} cannot be deleted without deleting the function {function_name!r}!")
    lambda_client.delete_function(FunctionName=function_name, Qualifier=version)
    logger.info("Deleted version %s of function '%s'.", version, function_name)


def add_permission(
    lambda_client,
    function_name: str,
    statement_id: str,
    action: str,
    principal: str,
    source_arn: Optional[str] = None,
    source_account: Optional[str] = None,
) -> str:
    """Adds a statement to the resource policy of the function.

    Lambda reports both a statement id that is already taken and an update of the function still in progress as
    'ResourceConflictException', the message tells them apart.

    :return: the new statement (JSON string)
    """
    kwargs = {"FunctionName": function_name, "StatementId": statement_id, "Action": action, "Principal": principal}
    if source_arn:
        kwargs.update({"SourceArn": source_arn})
    if source_account:
        kwargs.update({"SourceAccount": source_account})

    try:
        statement = lambda_client.add_permission(**kwargs)["Statement"]
        logger.info("Granted %s to %s on function '%s' (statement %s).", action, principal, function_name, statement_id)
    except ClientError:
        logger.exception("Couldn't add statement %s to function %s.", statement_id, function_name)
        raise
    else:
        return statement


def remove_permission(lambda_client, function_name: str, statement_id: str) -> None:
    """Raises 'ResourceNotFoundException' if there is no such statement (or no resource policy at all)."""
    lambda_client.remove_permission(FunctionName=function_name, StatementId=statement_id)
    logger.info("Removed statement %s from function '%s'.", statement_id, function_name)


def list_event_source_mappings(lambda_client, function_name: str, event_source_arn: str) -> List[Dict[str, Any]]:
    mappings = []
    marker = None
    while True:
        kwargs = {"FunctionName": function_name, "EventSourceArn": event_source_arn}
        if marker:
            kwargs.update({"Marker": marker})
        response = lambda_client.list_event_source_mappings(**kwargs)
        mappings.extend(response.get("EventSourceMappings", []))
        marker = response.get("NextMarker", None)
        if not marker:
            break
    return mappings


def create_event_source_mapping(
    lambda_client,
    function_name: str,
    event_source_arn: str,
    batch_size: int,
    starting_position: Optional[str] = None,
    enabled: bool = True,
) -> Dict[str, Any]:
    kwargs = {"FunctionName": function_name, "EventSourceArn": event_source_arn, "BatchSize": batch_size, "Enabled": enabled}
    # required for stream sources (Kinesis, DynamoDB), rejected for queues
    if starting_position:
        kwargs.update({"StartingPosition": starting_position})
    try:
        response = lambda_client.create_event_source_mapping(**kwargs)
        logger.info("Created event source mapping %s from '%s' to function '%s'.", response.get("UUID"), event_source_arn, function_name)
    except ClientError:
        logger.exception("Couldn't create event source mapping from %s to function %s.", event_source_arn, function_name)
        raise
    else:
        return response


def update_event_source_mapping(lambda_client, mapping_uuid: str, batch_size: int) -> Dict[str, Any]:
    try:
        response = lambda_client.update_event_source_mapping(UUID=mapping_uuid, BatchSize=batch_size)
        logger.info("Updated batch size of event source mapping %s to %d.", mapping_uuid, batch_size)
    except ClientError:
        logger.exception("Couldn't update event source mapping %s.", mapping_uuid)
        raise
    else:
        return response
