# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

import logging
from enum import Enum, unique
from typing import Any, Dict, List

from botocore.exceptions import ClientError

logger = logging.getLogger(__name__)


@unique
class StateType(str, Enum):
    ENABLED = "ENABLED"
    DISABLED = "DISABLED"


def build_target_id(function_name: str) -> str:
    return f"{function_name}-1"


def put_schedule_rule(events, rule_name: str, description: str, schedule_expression: str) -> str:
    """Create-or-replace semantics. Returns the rule ARN."""
    response = events.put_rule(
        Name=rule_name,
        ScheduleExpression=schedule_expression,
        Description=description,
        State=StateType.ENABLED.value,
    )
    logger.info("Put rule '%s' (%s) with ARN: '%s'.", rule_name, schedule_expression, response["RuleArn"])
    return response["RuleArn"]


def put_lambda_target(events, rule_name: str, function_name: str, function_arn: str) -> Dict[str, Any]:
    targets: List[Dict[str, str]] = [{"Id": build_target_id(function_name), "Arn": function_arn}]
    try:
        response = events.put_targets(Rule=rule_name, Targets=targets)
    except ClientError:
        logger.exception("Couldn't attach function %s to rule %s.", function_name, rule_name)
        raise

    if response.get("FailedEntryCount", 0):
        raise RuntimeError(f"Could not attach function {function_name!r} to rule {rule_name!r}! Failed entries: {response.get('FailedEntries')!r}")
    logger.info("Attached function '%s' to rule '%s'.", function_name, rule_name)
    return response
