# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

"""Configuration surface of a function deployment.

A deployment is described by a :class:`FunctionDeploymentConfig` which can be built programmatically or from the
camelCase dictionary / JSON format used by the deployment descriptors:

    {
        "functionName": "svc",
        "handler": "index.handler",
        "runtime": "python3.12",
        "timeout": 30,
        "memorySize": 256,
        "zipFileName": "build/svc.zip",
        "roleName": "svc-role",
        "policies": ["service-role/AWSLambdaBasicExecutionRole"],
        "eventSources": [{"eventSourceArn": "arn:aws:sqs:...", "batchSize": 10}],
        "snsSources": [{"topicArn": "arn:aws:sns:...:topic", "statementId": "svc-topic"}],
        "schedule": {"ruleName": "...", "ruleDescription": "...", "ruleScheduleExpression": "rate(5 minutes)"},
        "logging": {"LambdaFunctionName": "log-shipper", "Principal": "logs.us-west-2.amazonaws.com", "Arn": "arn:aws:lambda:..."},
        "environments": [{"name": "dev", "variables": {"STAGE": "dev"}}]
    }
"""

import json
import logging
from typing import Any, Dict, List, Optional, Sequence, Union

from cumulus.core.entity import CoreData

logger = logging.getLogger(__name__)

ALLOWED_ENVIRONMENTS = ("dev", "demo", "prod")

DEFAULT_RUNTIME = "python3.12"
DEFAULT_TIMEOUT_IN_SECS = 3
DEFAULT_MEMORY_SIZE_IN_MB = 128
DEFAULT_BATCH_SIZE = 10


class CodeArtifact(CoreData):
    """Packaged code of the function, either a local zip file or an object in S3."""

    def __init__(
        self,
        zip_file_name: Optional[str] = None,
        s3_bucket: Optional[str] = None,
        s3_key: Optional[str] = None,
        s3_object_version: Optional[str] = None,
    ) -> None:
        if bool(zip_file_name) == bool(s3_bucket and s3_key):
            raise ValueError(
                f"A code artifact should either be a local zip file ('zipFileName') or an S3 object ('s3Bucket' and 's3Key')! "
                f"Got zip_file_name={zip_file_name!r}, s3_bucket={s3_bucket!r}, s3_key={s3_key!r}."
            )
        self.zip_file_name = zip_file_name
        self.s3_bucket = s3_bucket
        self.s3_key = s3_key
        self.s3_object_version = s3_object_version

    def as_code(self) -> Dict[str, Any]:
        """Code parameters as expected by Lambda's create_function (Code=...) and update_function_code (**code)."""
        if self.zip_file_name:
            with open(self.zip_file_name, "rb") as zip_file:
                return {"ZipFile": zip_file.read()}
        code = {"S3Bucket": self.s3_bucket, "S3Key": self.s3_key}
        if self.s3_object_version:
            code.update({"S3ObjectVersion": self.s3_object_version})
        return code


class RoleSpec(CoreData):
    """Execution role of the function.

    Either a reference to an existing role (no mutation unless policies are given), or a name for a role to be
    created if absent (with zero or more policies to attach), or neither (reuse the role of an existing function).
    """

    def __init__(self, role_arn: Optional[str] = None, role_name: Optional[str] = None, policies: Sequence[Union[str, Dict[str, Any]]] = ()) -> None:
        if role_arn and role_name:
            raise ValueError(f"Either an existing role ARN ({role_arn!r}) or a role name ({role_name!r}) should be provided, not both!")
        self.role_arn = role_arn
        self.role_name = role_name
        self.policies = list(policies)

    @property
    def is_existing_role_reference(self) -> bool:
        return bool(self.role_arn) and not self.policies

    @property
    def is_empty(self) -> bool:
        return not self.role_arn and not self.role_name


class PullSource(CoreData):
    def __init__(self, event_source_arn: str, batch_size: int = DEFAULT_BATCH_SIZE, starting_position: Optional[str] = None, enabled: bool = True) -> None:
        self.event_source_arn = event_source_arn
        self.batch_size = batch_size
        self.starting_position = starting_position
        self.enabled = enabled


class PushSource(CoreData):
    def __init__(self, topic_arn: str, statement_id: str) -> None:
        self.topic_arn = topic_arn
        self.statement_id = statement_id

    @property
    def short_name(self) -> str:
        return self.topic_arn.split(":")[-1]


class ScheduleSpec(CoreData):
    def __init__(self, rule_name: Optional[str] = None, rule_description: Optional[str] = None, schedule_expression: Optional[str] = None) -> None:
        self.rule_name = rule_name
        self.rule_description = rule_description
        self.schedule_expression = schedule_expression

    @property
    def is_configured(self) -> bool:
        return bool(self.rule_name and self.rule_description and self.schedule_expression)

    def statement_id(self, environment: Optional[str]) -> str:
        return f"{self.rule_name}-{environment or 'default'}-CronId"


class LoggingSpec(CoreData):
    def __init__(self, function_name: str, principal: str, destination_arn: str) -> None:
        self.function_name = function_name
        self.principal = principal
        self.destination_arn = destination_arn

    @property
    def statement_id(self) -> str:
        return f"{self.function_name}LoggingId"


class EnvironmentSpec(CoreData):
    def __init__(self, name: str, variables: Optional[Dict[str, str]] = None) -> None:
        self.name = name
        self.variables = dict(variables or {})


class FunctionConfig(CoreData):
    """Identity and runtime parameters of the function. 'role_arn' is filled once the execution role is resolved."""

    def __init__(
        self,
        base_name: str,
        handler: str,
        runtime: str = DEFAULT_RUNTIME,
        timeout: int = DEFAULT_TIMEOUT_IN_SECS,
        memory_size: int = DEFAULT_MEMORY_SIZE_IN_MB,
        description: str = "",
        role_arn: Optional[str] = None,
    ) -> None:
        self.base_name = base_name
        self.handler = handler
        self.runtime = runtime
        self.timeout = timeout
        self.memory_size = memory_size
        self.description = description
        self.role_arn = role_arn

    def function_name_for(self, environment: Optional[str]) -> str:
        return f"{self.base_name}-{environment.lower()}" if environment else self.base_name


class DeploymentRequest(CoreData):
    """Immutable input of a single deploy invocation."""

    def __init__(self, environment: Optional[str], variables: Optional[Dict[str, str]], artifact: CodeArtifact) -> None:
        self._environment = environment
        self._variables = dict(variables or {})
        self._artifact = artifact

    @property
    def environment(self) -> Optional[str]:
        return self._environment

    @property
    def variables(self) -> Dict[str, str]:
        return dict(self._variables)

    @property
    def artifact(self) -> CodeArtifact:
        return self._artifact

    def to_dict(self) -> Dict[str, Any]:
        return {"environment": self._environment, "variables": self.variables, "artifact": self._artifact.to_dict()}


class FunctionDeploymentConfig(CoreData):
    def __init__(
        self,
        function: FunctionConfig,
        artifact: CodeArtifact,
        role: Optional[RoleSpec] = None,
        pull_sources: Sequence[PullSource] = (),
        push_sources: Sequence[PushSource] = (),
        schedule: Optional[ScheduleSpec] = None,
        logging_spec: Optional[LoggingSpec] = None,
        environments: Sequence[EnvironmentSpec] = (),
        variables: Optional[Dict[str, str]] = None,
        region: Optional[str] = None,
    ) -> None:
        self.function = function
        self.artifact = artifact
        self.role = role if role else RoleSpec()
        self.pull_sources = list(pull_sources)
        self.push_sources = list(push_sources)
        self.schedule = schedule
        self.logging_spec = logging_spec
        self.environments = list(environments)
        self.variables = dict(variables or {})
        self.region = region

    def build_requests(self) -> List[DeploymentRequest]:
        """One request per allowed environment, or a single environment-less request if no environments are declared."""
        if not self.environments:
            return [DeploymentRequest(None, self.variables, self.artifact)]

        requests = []
        for env in self.environments:
            if env.name not in ALLOWED_ENVIRONMENTS:
                logger.warning(f"Invalid environment {env.name!r}, skipping entry. Allowed environments: {list(ALLOWED_ENVIRONMENTS)!r}")
                continue
            variables = dict(self.variables)
            variables.update(env.variables)
            requests.append(DeploymentRequest(env.name, variables, self.artifact))
        return requests

    @classmethod
    def from_dict(cls, conf: Dict[str, Any]) -> "FunctionDeploymentConfig":
        if not conf.get("functionName"):
            raise ValueError("Function deployment config must have field 'functionName'")
        if not conf.get("handler"):
            raise ValueError("Function deployment config must have field 'handler'")
        if not (conf.get("zipFileName") or (conf.get("s3Bucket") and conf.get("s3Key"))):
            logger.error("Function deployment config must have field 'zipFileName' (or 's3Bucket' and 's3Key')")
            raise ValueError("Function deployment config must have field 'zipFileName' (or 's3Bucket' and 's3Key')")

        function = FunctionConfig(
            base_name=conf["functionName"],
            handler=conf["handler"],
            runtime=conf.get("runtime", DEFAULT_RUNTIME),
            timeout=int(conf.get("timeout", DEFAULT_TIMEOUT_IN_SECS)),
            memory_size=int(conf.get("memorySize", DEFAULT_MEMORY_SIZE_IN_MB)),
            description=conf.get("description", ""),
        )
        artifact = CodeArtifact(
            zip_file_name=conf.get("zipFileName"),
            s3_bucket=conf.get("s3Bucket"),
            s3_key=conf.get("s3Key"),
            s3_object_version=conf.get("s3ObjectVersion"),
        )
        role = RoleSpec(role_arn=conf.get("role"), role_name=conf.get("roleName"), policies=conf.get("policies", []))

        pull_sources = [
            PullSource(
                event_source_arn=source["eventSourceArn"],
                batch_size=int(source.get("batchSize", DEFAULT_BATCH_SIZE)),
                starting_position=source.get("startingPosition"),
                enabled=source.get("enabled", True),
            )
            for source in conf.get("eventSources", [])
        ]
        push_sources = [PushSource(topic_arn=source["topicArn"], statement_id=source["statementId"]) for source in conf.get("snsSources", [])]

        schedule = None
        if conf.get("schedule"):
            schedule_conf = conf["schedule"]
            schedule = ScheduleSpec(
                rule_name=schedule_conf.get("ruleName"),
                rule_description=schedule_conf.get("ruleDescription"),
                schedule_expression=schedule_conf.get("ruleScheduleExpression"),
            )

        logging_spec = None
        if conf.get("logging"):
            logging_conf = conf["logging"]
            logging_spec = LoggingSpec(
                function_name=logging_conf["LambdaFunctionName"], principal=logging_conf["Principal"], destination_arn=logging_conf["Arn"]
            )

        environments = [EnvironmentSpec(env["name"], env.get("variables", {})) for env in conf.get("environments", [])]

        return cls(
            function=function,
            artifact=artifact,
            role=role,
            pull_sources=pull_sources,
            push_sources=push_sources,
            schedule=schedule,
            logging_spec=logging_spec,
            environments=environments,
            variables=conf.get("variables", {}),
            region=conf.get("region"),
        )

    @classmethod
    def from_json_file(cls, path: str) -> "FunctionDeploymentConfig":
        with open(path, "r") as conf_file:
            return cls.from_dict(json.load(conf_file))
