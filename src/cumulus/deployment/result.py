# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

import datetime
from typing import Any, List, Optional, Tuple

from dateutil.tz import tzlocal

from cumulus.core.entity import CoreData


class DeploymentResult(CoreData):
    """Record of a single deploy invocation: what was created or found, and the outcome of every step in order."""

    def __init__(self, function_name: str, environment: Optional[str]) -> None:
        self.function_name = function_name
        self.environment = environment
        self.function_arn: Optional[str] = None
        self.created: bool = False
        self.role_arn: Optional[str] = None
        self.role_created: bool = False
        self.event_source_mapping_uuids: List[str] = []
        self.subscription_arns: List[str] = []
        self.rule_arn: Optional[str] = None
        self.published_version: Optional[str] = None
        self.deleted_versions: List[str] = []
        self.steps: List[Tuple[str, Any]] = []
        self.started_at = datetime.datetime.now(tzlocal())
        self.completed_at: Optional[datetime.datetime] = None

    def record(self, step: str, outcome: Any) -> None:
        self.steps.append((step, outcome))

    @property
    def step_names(self) -> List[str]:
        return [step for step, _ in self.steps]

    def complete(self) -> None:
        self.completed_at = datetime.datetime.now(tzlocal())
