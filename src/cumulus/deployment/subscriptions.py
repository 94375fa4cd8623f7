# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

import logging
from typing import List, Optional, Sequence

from cumulus.core.config import PushSource
from cumulus.core.errors import is_already_exists, is_not_found
from cumulus.definitions.aws.aws_lambda.client_wrapper import PERMISSION_RETRYABLE_EXCEPTION_LIST, add_permission, remove_permission
from cumulus.definitions.aws.common import DEFAULT_MAX_ATTEMPTS, LAMBDA_INVOKE_ACTION, SNS_SERVICE_PRINCIPAL, exponential_retry
from cumulus.definitions.aws.sns.client_wrapper import create_topic, find_topic, subscribe_lambda

logger = logging.getLogger(__name__)


def revoke_permission_quietly(lambda_client, function_name: str, statement_id: str) -> bool:
    """Removes the permission statement if it is there. Never raises, the failure is only logged.

    :return: True if the statement was removed.
    """
    try:
        exponential_retry(remove_permission, PERMISSION_RETRYABLE_EXCEPTION_LIST, lambda_client, function_name, statement_id)
        return True
    except Exception as error:
        if is_not_found(error):
            logger.info(f"No permission {statement_id!r} on function {function_name!r} to remove. Error: {error!s}")
        else:
            logger.warning(f"Couldn't remove permission {statement_id!r} from function {function_name!r}! Error: {error!s}")
        return False


def _add_invoke_permission(lambda_client, function_name: str, statement_id: str, principal: str, source_arn: Optional[str]) -> None:
    try:
        add_permission(lambda_client, function_name, statement_id, LAMBDA_INVOKE_ACTION, principal, source_arn)
    except Exception as error:
        if not is_already_exists(error):
            raise
        logger.info(f"Permission {statement_id!r} already exists on function {function_name!r}. Error: {error!s}")


def grant_invoke_permission(
    lambda_client,
    function_name: str,
    statement_id: str,
    principal: str,
    source_arn: Optional[str] = None,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
) -> None:
    """Adds the permission statement, treating a duplicate statement id as success.

    A conflict with an update still in progress on the function is retried with backoff and raised once the attempts
    run out.
    """
    exponential_retry(
        _add_invoke_permission,
        PERMISSION_RETRYABLE_EXCEPTION_LIST,
        lambda_client,
        function_name,
        statement_id,
        principal,
        source_arn,
        _max_attempts=max_attempts,
    )


def reconcile_push_subscriptions(lambda_client, sns, function_name: str, function_arn: str, push_sources: Sequence[PushSource]) -> List[str]:
    """For each topic, strictly in the given order: make sure the topic exists, subscribe the function to it and swap
    the invoke permission of the topic. Topics are not processed in parallel, statement ids can collide across topics.

    :return: subscription ARNs, in order.
    """
    subscription_arns: List[str] = []
    if not push_sources:
        return subscription_arns

    source_count = len(push_sources)
    for index, source in enumerate(push_sources):
        logger.info(f"Reconciling push source {index + 1}/{source_count}: {source.topic_arn!r}")

        # lookup is by full ARN while creation is by short name, a configured ARN in another account or region
        # will never be found and a topic with the same name gets created in the current one.
        if not find_topic(sns, source.topic_arn):
            created_topic_arn = create_topic(sns, source.short_name)
            if created_topic_arn != source.topic_arn:
                logger.warning(
                    f"Created topic {created_topic_arn!r} does not match the configured topic {source.topic_arn!r}! "
                    f"Subscription will still be made to the configured one."
                )

        subscription_arns.append(subscribe_lambda(sns, source.topic_arn, function_arn))

        revoke_permission_quietly(lambda_client, function_name, source.statement_id)
        grant_invoke_permission(lambda_client, function_name, source.statement_id, SNS_SERVICE_PRINCIPAL, source.topic_arn)

    return subscription_arns
