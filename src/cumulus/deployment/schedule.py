# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

import logging
from typing import Optional

from cumulus.core.config import ScheduleSpec
from cumulus.definitions.aws.common import EVENTS_SERVICE_PRINCIPAL
from cumulus.definitions.aws.event_bridge.client_wrapper import put_lambda_target, put_schedule_rule

from .subscriptions import grant_invoke_permission, revoke_permission_quietly

logger = logging.getLogger(__name__)


def reconcile_schedule(
    lambda_client, events, function_name: str, function_arn: str, environment: Optional[str], schedule: Optional[ScheduleSpec]
) -> Optional[str]:
    """Makes the function the target of a recurring rule.

    Nothing is done unless rule name, description and expression are all set. Only the final target attachment is
    fatal, rule and permission failures are logged and the sequence continues.

    :return: the rule ARN, None if not configured or if the rule could not be put.
    """
    if not schedule or not schedule.is_configured:
        logger.info(f"No schedule configured for function {function_name!r}.")
        return None

    rule_arn = None
    try:
        rule_arn = put_schedule_rule(events, schedule.rule_name, schedule.rule_description, schedule.schedule_expression)
    except Exception as error:
        logger.error(f"Couldn't put rule {schedule.rule_name!r} for function {function_name!r}! Error: {error!s}")

    statement_id = schedule.statement_id(environment)
    revoke_permission_quietly(lambda_client, function_name, statement_id)
    if rule_arn:
        try:
            grant_invoke_permission(lambda_client, function_name, statement_id, EVENTS_SERVICE_PRINCIPAL, rule_arn)
        except Exception as error:
            logger.error(f"Couldn't grant rule {rule_arn!r} permission to invoke {function_name!r}! Error: {error!s}")
    else:
        logger.error(f"Skipping invoke permission {statement_id!r} for function {function_name!r}, rule ARN is not known.")

    put_lambda_target(events, schedule.rule_name, function_name, function_arn)
    return rule_arn
