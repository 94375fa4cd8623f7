# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

import logging
from typing import Any, Dict, List, Optional, Set

from cumulus.core.entity import CoreData
from cumulus.definitions.aws.aws_lambda.client_wrapper import LATEST_VERSION, delete_version, list_versions, publish_version

logger = logging.getLogger(__name__)


class VersionPruningResult(CoreData):
    def __init__(self, published_version: str, kept_versions: Set[str], deleted_versions: List[str], failed_versions: List[str]) -> None:
        self.published_version = published_version
        self.kept_versions = kept_versions
        self.deleted_versions = deleted_versions
        self.failed_versions = failed_versions


def list_versions_or_empty(lambda_client, function_name: str) -> Dict[str, List[Dict[str, Any]]]:
    try:
        return list_versions(lambda_client, function_name)
    except Exception as error:
        logger.error(f"Couldn't list versions of function {function_name!r}, skipping pruning! Error: {error!s}")
        return {"Versions": []}


def _version_key(version: str) -> int:
    return int(version) if version.isdigit() else -1


def compute_keep_set(versions: List[Dict[str, Any]], published_version: Optional[str]) -> Set[str]:
    """{$LATEST, most recent version}.

    The most recent version is the one that has just been published. If it is not known, it is the greatest numeric
    version in the listing rather than the position in it, since the listing order is not guaranteed.
    """
    keep = {LATEST_VERSION}
    if published_version:
        keep.add(published_version)
    else:
        numeric_versions = [v["Version"] for v in versions if v["Version"].isdigit()]
        if numeric_versions:
            keep.add(max(numeric_versions, key=_version_key))
    return keep


def publish_and_prune_versions(lambda_client, function_name: str) -> VersionPruningResult:
    """Publishes a new version and deletes every other version except $LATEST.

    Listing and deletion are best-effort, only the publish failure propagates.
    """
    published_version = publish_version(lambda_client, function_name)["Version"]

    versions = list_versions_or_empty(lambda_client, function_name)["Versions"]
    keep = compute_keep_set(versions, published_version)

    deleted, failed = [], []
    for version in (v["Version"] for v in versions):
        if version in keep:
            continue
        try:
            delete_version(lambda_client, function_name, version)
            deleted.append(version)
        except Exception as error:
            logger.error(f"Couldn't delete version {version!r} of function {function_name!r}! Error: {error!s}")
            failed.append(version)

    return VersionPruningResult(published_version, keep, deleted, failed)
