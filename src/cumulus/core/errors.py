# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

"""Error taxonomy of the deployment workflow.

Provider errors are classified by their structured error code (see :func:`get_code_for_exception`) into an
:class:`ErrorKind`. Callers decide whether a kind is fatal, tolerated or retryable at each step.
"""

from enum import Enum, unique
from typing import Any, Optional

from botocore.exceptions import ClientError, WaiterError


@unique
class ErrorKind(str, Enum):
    NOT_FOUND = "NOT_FOUND"
    ALREADY_EXISTS = "ALREADY_EXISTS"
    THROTTLED = "THROTTLED"
    OTHER = "OTHER"


NOT_FOUND_ERROR_CODES = {
    "ResourceNotFoundException",
    "NoSuchEntity",
    "NoSuchEntityException",
    "NotFoundException",
    "NotFound",
    "404",
}

ALREADY_EXISTS_ERROR_CODES = {
    "EntityAlreadyExists",
    "EntityAlreadyExistsException",
    "ResourceAlreadyExistsException",
}

# Lambda returns this code for a duplicate statement id and also for "An update is in progress for resource".
# Only the former is ALREADY_EXISTS, the latter is transient.
RESOURCE_CONFLICT_ERROR_CODE = "ResourceConflictException"
DUPLICATE_RESOURCE_MESSAGE = "already exists"

THROTTLING_ERROR_CODES = {
    "TooManyRequestsException",
    "ThrottlingException",
    "Throttling",
    "ThrottledException",
    "RequestLimitExceeded",
}


def get_code_for_exception(error) -> str:
    if isinstance(error, ClientError) and "Code" in error.response.get("Error", {}):
        return error.response["Error"]["Code"]
    elif isinstance(error, WaiterError) and "Error" in error.last_response:
        return error.last_response["Error"]["Code"]
    elif hasattr(error, "error_code"):
        return error.error_code

    return error.__class__.__name__


def get_message_for_exception(error) -> str:
    if isinstance(error, ClientError):
        return error.response.get("Error", {}).get("Message") or ""
    return str(error)


def classify_error(error) -> ErrorKind:
    if isinstance(error, NonRetryableError):
        return ErrorKind.OTHER

    error_code = get_code_for_exception(error)
    if error_code in NOT_FOUND_ERROR_CODES:
        return ErrorKind.NOT_FOUND
    if error_code in ALREADY_EXISTS_ERROR_CODES:
        return ErrorKind.ALREADY_EXISTS
    if error_code == RESOURCE_CONFLICT_ERROR_CODE:
        if DUPLICATE_RESOURCE_MESSAGE in get_message_for_exception(error).lower():
            return ErrorKind.ALREADY_EXISTS
        return ErrorKind.OTHER
    if error_code in THROTTLING_ERROR_CODES:
        return ErrorKind.THROTTLED
    return ErrorKind.OTHER


def is_not_found(error) -> bool:
    return classify_error(error) == ErrorKind.NOT_FOUND


def is_already_exists(error) -> bool:
    return classify_error(error) == ErrorKind.ALREADY_EXISTS


def is_throttled(error) -> bool:
    return classify_error(error) == ErrorKind.THROTTLED


class DeploymentError(Exception):
    """Base class for the errors raised by the deployment workflow."""


class DeploymentStepError(DeploymentError):
    """Terminal error of a deployment, identifying the step and the payload that could not be recovered."""

    def __init__(self, step: str, payload: Any, cause: Optional[BaseException]) -> None:
        super().__init__(f"Deployment step {step!r} failed! Payload: {payload!r}, error: {cause!s}")
        self.step = step
        self.payload = payload
        self.cause = cause


class NonRetryableError(DeploymentError):
    """Stop signal for a permanent failure. Retry wrappers re-raise it immediately."""

    def __init__(self, message: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.cause = cause
