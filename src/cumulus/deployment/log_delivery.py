# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

import logging
from typing import Optional

from cumulus.core.config import LoggingSpec
from cumulus.core.errors import NonRetryableError, is_not_found, is_throttled
from cumulus.definitions.aws.common import exponential_retry
from cumulus.definitions.aws.logs.client_wrapper import get_log_group_name, put_subscription_filter

from .subscriptions import grant_invoke_permission

logger = logging.getLogger(__name__)

GRANT_MAX_ATTEMPTS = 5


def _grant_logging_permission(lambda_client, logging_spec: LoggingSpec) -> None:
    try:
        grant_invoke_permission(
            lambda_client, logging_spec.function_name, logging_spec.statement_id, logging_spec.principal, max_attempts=GRANT_MAX_ATTEMPTS
        )
    except Exception as error:
        raise NonRetryableError(f"Couldn't grant logging permission on {logging_spec.function_name!r}: {error!s}", error) from error


def attach_log_delivery(lambda_client, logs, function_name: str, logging_spec: Optional[LoggingSpec]) -> bool:
    """Routes every log event of the function to the log processing function.

    A missing log group is not an error, Lambda creates it on the first invocation. Permanent failures are raised as
    NonRetryableError, throttling of the subscription filter call is left to the caller's retry.

    :return: True if the subscription filter is in place.
    """
    if not logging_spec:
        return False

    _grant_logging_permission(lambda_client, logging_spec)

    log_group_name = get_log_group_name(function_name)
    try:
        put_subscription_filter(logs, log_group_name, function_name, logging_spec.destination_arn)
    except Exception as error:
        if is_not_found(error):
            logger.info(f"Log group {log_group_name!r} does not exist yet, skipping the subscription filter. Error: {error!s}")
            return False
        if is_throttled(error):
            raise
        logger.error(f"Couldn't put subscription filter on {log_group_name!r}! Error: {error!s}")
        raise NonRetryableError(f"Couldn't put subscription filter on {log_group_name!r}: {error!s}", error) from error
    return True


def attach_log_delivery_with_retry(lambda_client, logs, function_name: str, logging_spec: Optional[LoggingSpec], max_attempts: int) -> bool:
    """Bounded retry around the whole wiring. Exhausted retries surface as NonRetryableError too."""
    try:
        return exponential_retry(attach_log_delivery, [], lambda_client, logs, function_name, logging_spec, _max_attempts=max_attempts)
    except NonRetryableError:
        raise
    except Exception as error:
        raise NonRetryableError(f"Log delivery wiring of {function_name!r} failed after {max_attempts} attempts: {error!s}", error) from error
