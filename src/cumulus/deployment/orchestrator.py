# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

"""Deployment workflow of a function and its dependent resources.

Create path:
    code artifact -> identity -> create function -> event sources -> push subscriptions -> log delivery -> schedule
Update path:
    code artifact -> identity -> code -> configuration -> event sources -> push subscriptions -> publish & prune versions
    -> log delivery -> schedule

Steps run one after the other, the first unrecovered failure aborts the deploy with a DeploymentStepError. There is no
locking, at most one deploy per function is expected to be in flight.
"""

import copy
import logging
from typing import Any, Callable, List, Optional

import boto3

from cumulus.core.config import DeploymentRequest, FunctionDeploymentConfig
from cumulus.core.errors import DeploymentStepError
from cumulus.definitions.aws.common import ROLE_PROPAGATION_DELAY_IN_SECS, exponential_retry, get_session

from .event_sources import reconcile_event_sources
from .function import configuration_drift, create_function, replace_code, update_configuration
from .identity import ExecutionIdentityManager
from .log_delivery import attach_log_delivery_with_retry
from .prober import probe_function
from .result import DeploymentResult
from .schedule import reconcile_schedule
from .subscriptions import reconcile_push_subscriptions
from .versions import publish_and_prune_versions

logger = logging.getLogger(__name__)

# bounded retries of the calls that are known to be throttled
CONFIGURATION_UPDATE_MAX_ATTEMPTS = 5
EVENT_SOURCES_MAX_ATTEMPTS = 5
VERSIONING_MAX_ATTEMPTS = 5
LOG_DELIVERY_MAX_ATTEMPTS = 3


class FunctionDeployer:
    """Deploys a function described by a :class:`FunctionDeploymentConfig` into one environment per request."""

    def __init__(
        self,
        config: FunctionDeploymentConfig,
        session: Optional[boto3.Session] = None,
        region: Optional[str] = None,
        role_propagation_delay_in_secs: int = ROLE_PROPAGATION_DELAY_IN_SECS,
    ) -> None:
        self._config = config
        self._region = region if region else config.region
        self._session = session if session else get_session(region=self._region)
        if not self._region:
            self._region = self._session.region_name
        self._lambda = self._session.client("lambda", region_name=self._region)
        self._iam = self._session.client("iam", region_name=self._region)
        self._sns = self._session.client("sns", region_name=self._region)
        self._events = self._session.client("events", region_name=self._region)
        self._logs = self._session.client("logs", region_name=self._region)
        self._identity_manager = ExecutionIdentityManager(self._iam, role_propagation_delay_in_secs)

    @property
    def config(self) -> FunctionDeploymentConfig:
        return self._config

    def deploy_all(self) -> List[DeploymentResult]:
        """Deploys every allowed environment of the config, one after the other."""
        return [self.deploy(request) for request in self._config.build_requests()]

    def deploy(self, request: DeploymentRequest) -> DeploymentResult:
        # function config is mutated (role arn) within the run only
        function = copy.copy(self._config.function)
        function_name = function.function_name_for(request.environment)
        result = DeploymentResult(function_name, request.environment)

        logger.info(f"Deploying function {function_name!r} (environment: {request.environment!r})...")
        # a missing artifact fails before anything is created
        code = self._run_step(result, "load_code_artifact", request.artifact, request.artifact.as_code)
        variables = request.variables

        probe_result = self._run_step(result, "probe_function", function_name, probe_function, self._lambda, function_name)
        current_role_arn = probe_result.descriptor["Configuration"]["Role"] if probe_result.exists else None

        role = self._run_step(result, "resolve_execution_role", self._config.role, self._identity_manager.resolve, self._config.role, current_role_arn)
        function.role_arn = role.role_arn
        result.role_arn = role.role_arn
        result.role_created = role.created

        if not probe_result.exists:
            self._create(result, function, code, variables)
        else:
            self._update(result, function, code, variables, probe_result.descriptor)

        result.complete()
        logger.info(f"Deployed function {function_name!r} ({'created' if result.created else 'updated'}). Steps: {result.step_names!r}")
        return result

    def _create(self, result: DeploymentResult, function, code, variables) -> None:
        function_name = result.function_name
        response = self._run_step(result, "create_function", function_name, create_function, self._lambda, function_name, function, code, variables)
        result.function_arn = response["FunctionArn"]
        result.created = True

        self._reconcile_dependents(result, retry_event_sources=False)
        self._attach_log_delivery(result)
        self._reconcile_schedule(result)

    def _update(self, result: DeploymentResult, function, code, variables, descriptor) -> None:
        function_name = result.function_name
        drift = configuration_drift(descriptor, function, variables)
        if drift:
            logger.info(f"Configuration of {function_name!r} will change for fields: {sorted(drift.keys())!r}")

        response = self._run_step(result, "update_function_code", function_name, replace_code, self._lambda, function_name, code)
        result.function_arn = response["FunctionArn"]
        # never skipped after a code update
        self._run_step(
            result,
            "update_function_configuration",
            function_name,
            exponential_retry,
            update_configuration,
            [],
            self._lambda,
            function_name,
            function,
            variables,
            _max_attempts=CONFIGURATION_UPDATE_MAX_ATTEMPTS,
        )

        self._reconcile_dependents(result, retry_event_sources=True)

        pruning = self._run_step(
            result,
            "publish_and_prune_versions",
            function_name,
            exponential_retry,
            publish_and_prune_versions,
            [],
            self._lambda,
            function_name,
            _max_attempts=VERSIONING_MAX_ATTEMPTS,
        )
        result.published_version = pruning.published_version
        result.deleted_versions = pruning.deleted_versions

        self._attach_log_delivery(result)
        self._reconcile_schedule(result)

    def _reconcile_dependents(self, result: DeploymentResult, retry_event_sources: bool) -> None:
        function_name = result.function_name
        if retry_event_sources:
            result.event_source_mapping_uuids = self._run_step(
                result,
                "reconcile_event_sources",
                self._config.pull_sources,
                exponential_retry,
                reconcile_event_sources,
                [],
                self._lambda,
                function_name,
                self._config.pull_sources,
                _max_attempts=EVENT_SOURCES_MAX_ATTEMPTS,
            )
        else:
            result.event_source_mapping_uuids = self._run_step(
                result, "reconcile_event_sources", self._config.pull_sources, reconcile_event_sources, self._lambda, function_name, self._config.pull_sources
            )

        result.subscription_arns = self._run_step(
            result,
            "reconcile_push_subscriptions",
            self._config.push_sources,
            reconcile_push_subscriptions,
            self._lambda,
            self._sns,
            function_name,
            result.function_arn,
            self._config.push_sources,
        )

    def _attach_log_delivery(self, result: DeploymentResult) -> None:
        self._run_step(
            result,
            "attach_log_delivery",
            self._config.logging_spec,
            attach_log_delivery_with_retry,
            self._lambda,
            self._logs,
            result.function_name,
            self._config.logging_spec,
            LOG_DELIVERY_MAX_ATTEMPTS,
        )

    def _reconcile_schedule(self, result: DeploymentResult) -> None:
        result.rule_arn = self._run_step(
            result,
            "reconcile_schedule",
            self._config.schedule,
            reconcile_schedule,
            self._lambda,
            self._events,
            result.function_name,
            result.function_arn,
            result.environment,
            self._config.schedule,
        )

    @staticmethod
    def _run_step(result: DeploymentResult, step: str, payload: Any, func: Callable[..., Any], *args, **kwargs) -> Any:
        try:
            outcome = func(*args, **kwargs)
        except Exception as error:
            logger.exception(f"Deployment of {result.function_name!r} failed at step {step!r}! Payload: {payload!r} Error: {error!s}")
            raise DeploymentStepError(step, payload, error) from error
        result.record(step, outcome)
        return outcome


def deploy_function(config: FunctionDeploymentConfig, request: DeploymentRequest, session: Optional[boto3.Session] = None, region: Optional[str] = None) -> DeploymentResult:
    return FunctionDeployer(config, session, region).deploy(request)


def deploy_function_environments(config: FunctionDeploymentConfig, session: Optional[boto3.Session] = None, region: Optional[str] = None) -> List[DeploymentResult]:
    return FunctionDeployer(config, session, region).deploy_all()
