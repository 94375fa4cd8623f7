# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

import logging
from typing import List, Sequence

from cumulus.core.config import PullSource
from cumulus.definitions.aws.aws_lambda.client_wrapper import (
    create_event_source_mapping,
    list_event_source_mappings,
    update_event_source_mapping,
)

logger = logging.getLogger(__name__)


def reconcile_event_sources(lambda_client, function_name: str, pull_sources: Sequence[PullSource]) -> List[str]:
    """Creates the event source mapping of each pull source if there is none, otherwise updates the batch size of
    every existing mapping. Extra mappings are never deleted. The first failure aborts the reconciliation.

    :return: UUIDs of the mappings created or updated, in order.
    """
    mapping_uuids: List[str] = []
    if not pull_sources:
        return mapping_uuids

    for source in pull_sources:
        existing_mappings = list_event_source_mappings(lambda_client, function_name, source.event_source_arn)
        if not existing_mappings:
            logger.info(f"No event source mapping from {source.event_source_arn!r} to {function_name!r}, creating...")
            response = create_event_source_mapping(
                lambda_client, function_name, source.event_source_arn, source.batch_size, source.starting_position, source.enabled
            )
            mapping_uuids.append(response["UUID"])
        else:
            logger.info(f"Found {len(existing_mappings)} event source mapping(s) from {source.event_source_arn!r}, updating batch size...")
            for mapping in existing_mappings:
                update_event_source_mapping(lambda_client, mapping["UUID"], source.batch_size)
                mapping_uuids.append(mapping["UUID"])

    return mapping_uuids
