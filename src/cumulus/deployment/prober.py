# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

import logging
from typing import Any, Callable, Dict, Optional

from cumulus.core.entity import CoreData
from cumulus.core.errors import get_code_for_exception, is_not_found

logger = logging.getLogger(__name__)


class ProbeResult(CoreData):
    def __init__(self, exists: bool, descriptor: Optional[Dict[str, Any]] = None) -> None:
        self.exists = exists
        self.descriptor = descriptor

    def __bool__(self) -> bool:
        return self.exists


def probe(describe_call: Callable[..., Dict[str, Any]], **kwargs) -> ProbeResult:
    """Checks the existence of a resource with its describe/get call.

    'not found' (decided by the error code) is mapped to exists=False, any other error propagates.
    """
    try:
        descriptor = describe_call(**kwargs)
    except Exception as error:
        if is_not_found(error):
            logger.info(f"Resource {kwargs!r} does not exist (error_code={get_code_for_exception(error)!r}).")
            return ProbeResult(False)
        logger.error(f"Couldn't check the existence of resource {kwargs!r}! Error: {error!s}")
        raise
    return ProbeResult(True, descriptor)


def probe_function(lambda_client, function_name: str) -> ProbeResult:
    return probe(lambda_client.get_function, FunctionName=function_name)


def probe_role(iam, role_name: str) -> ProbeResult:
    return probe(iam.get_role, RoleName=role_name)
