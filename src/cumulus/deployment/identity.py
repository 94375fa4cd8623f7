# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

import logging
from typing import Optional

from cumulus.core.config import RoleSpec
from cumulus.core.entity import CoreData
from cumulus.definitions.aws.common import (
    LAMBDA_SERVICE_PRINCIPAL,
    ROLE_PROPAGATION_DELAY_IN_SECS,
    attach_policy,
    create_role,
    get_role_name_from_arn,
)

from .prober import probe_role

logger = logging.getLogger(__name__)


class RoleDescriptor(CoreData):
    def __init__(self, role_name: Optional[str], role_arn: str, created: bool = False) -> None:
        self.role_name = role_name
        self.role_arn = role_arn
        self.created = created


class ExecutionIdentityManager:
    """Makes sure that the execution role of the function exists and has the required policies attached."""

    def __init__(self, iam, propagation_delay_in_secs: int = ROLE_PROPAGATION_DELAY_IN_SECS) -> None:
        self._iam = iam
        self._propagation_delay_in_secs = propagation_delay_in_secs

    def resolve(self, role_spec: RoleSpec, fallback_role_arn: Optional[str] = None) -> RoleDescriptor:
        """
        :param role_spec: role reference, or role name and policies.
        :param fallback_role_arn: the role of the already deployed function, used when neither a role ARN nor a role name is given.
        :return: descriptor of the resolved role, 'created' is True only if the role has just been created (and the
                 propagation delay has already elapsed).
        """
        if role_spec.is_existing_role_reference:
            # bring your own role, no calls
            logger.info(f"Using the existing role {role_spec.role_arn!r} as is.")
            return RoleDescriptor(None, role_spec.role_arn)

        if role_spec.is_empty:
            if fallback_role_arn:
                logger.info(f"No role specified, keeping the current role {fallback_role_arn!r} of the function.")
                return RoleDescriptor(None, fallback_role_arn)
            raise ValueError("An execution role ('role' or 'roleName') is required to create a function!")

        role_name = role_spec.role_name if role_spec.role_name else get_role_name_from_arn(role_spec.role_arn)
        created = False
        probe_result = probe_role(self._iam, role_name)
        if probe_result.exists:
            role = probe_result.descriptor["Role"]
            logger.info(f"Role {role_name!r} already exists, skipping creation.")
        else:
            role = create_role(
                self._iam, role_name, allowed_services=[LAMBDA_SERVICE_PRINCIPAL], propagation_delay_in_secs=self._propagation_delay_in_secs
            )["Role"]
            created = True

        # serial and in the given order, partial attachment is not rolled back
        for policy in role_spec.policies:
            attach_policy(self._iam, role_name, policy)

        return RoleDescriptor(role_name, role["Arn"], created)
