# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

from ._logging_config import init_basic_logging
from .core.config import (
    ALLOWED_ENVIRONMENTS,
    CodeArtifact,
    DeploymentRequest,
    EnvironmentSpec,
    FunctionConfig,
    FunctionDeploymentConfig,
    LoggingSpec,
    PullSource,
    PushSource,
    RoleSpec,
    ScheduleSpec,
)
from .core.errors import DeploymentError, DeploymentStepError, ErrorKind, NonRetryableError, classify_error
from .definitions.aws.common import AWSAccessPair, exponential_retry, get_session
from .deployment.orchestrator import FunctionDeployer, deploy_function, deploy_function_environments
from .deployment.result import DeploymentResult
