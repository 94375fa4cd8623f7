# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

import logging

logger = logging.getLogger(__name__)

LAMBDA_LOG_GROUP_FORMAT = "/aws/lambda/{0}"
# empty pattern matches every log event
MATCH_ALL_FILTER_PATTERN = ""


def get_log_group_name(function_name: str) -> str:
    return LAMBDA_LOG_GROUP_FORMAT.format(function_name)


def put_subscription_filter(logs, log_group_name: str, filter_name: str, destination_arn: str, filter_pattern: str = MATCH_ALL_FILTER_PATTERN) -> None:
    """Create-or-replace, a filter with the same name is overwritten."""
    logs.put_subscription_filter(
        logGroupName=log_group_name,
        filterName=filter_name,
        filterPattern=filter_pattern,
        destinationArn=destination_arn,
    )
    logger.info("Put subscription filter '%s' on '%s' routed to '%s'.", filter_name, log_group_name, destination_arn)
