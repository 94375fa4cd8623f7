# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

import logging
from typing import Any, Dict, Optional, Tuple

from cumulus.core.config import FunctionConfig
from cumulus.definitions.aws.aws_lambda.client_wrapper import create_lambda_function, update_lambda_function_code, update_lambda_function_conf

logger = logging.getLogger(__name__)


def create_function(lambda_client, function_name: str, function: FunctionConfig, code: Dict[str, Any], variables: Dict[str, str]) -> Dict[str, Any]:
    return create_lambda_function(
        lambda_client,
        function_name,
        function.description,
        function.handler,
        function.role_arn,
        code,
        function.runtime,
        function.memory_size,
        function.timeout,
        variables,
    )


def replace_code(lambda_client, function_name: str, code: Dict[str, Any]) -> Dict[str, Any]:
    return update_lambda_function_code(lambda_client, function_name, code)


def update_configuration(lambda_client, function_name: str, function: FunctionConfig, variables: Dict[str, str]) -> Dict[str, Any]:
    return update_lambda_function_conf(
        lambda_client,
        function_name,
        function.description,
        function.handler,
        function.role_arn,
        function.runtime,
        function.memory_size,
        function.timeout,
        variables,
    )


def configuration_drift(descriptor: Optional[Dict[str, Any]], function: FunctionConfig, variables: Dict[str, str]) -> Dict[str, Tuple[Any, Any]]:
    """Compares the configuration of a deployed function (get_function response) against the desired one.

    :return: {field: (current, desired)} for every field that differs. Used for reporting only, the configuration is
             always re-applied.
    """
    if not descriptor:
        return {}

    current = descriptor.get("Configuration", {})
    desired = {
        "Handler": function.handler,
        "Runtime": function.runtime,
        "Timeout": function.timeout,
        "MemorySize": function.memory_size,
        "Role": function.role_arn,
        "Environment": variables,
    }
    drift = {}
    for field, desired_value in desired.items():
        current_value = current.get("Environment", {}).get("Variables", {}) if field == "Environment" else current.get(field, None)
        if current_value != desired_value:
            drift[field] = (current_value, desired_value)
    return drift
