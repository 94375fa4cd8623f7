# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

import copy
from typing import Any, Dict


class CoreData:
    """Provide basic dunder implementations for core entities and a mechanism to marshal them into plain
    dictionaries (e.g for logging or JSON dumps of a deployment result).
    """

    def __eq__(self, other) -> bool:
        return type(other) is type(self) and self.__dict__ == other.__dict__

    def __hash__(self) -> int:
        return hash(tuple(sorted((name, repr(value)) for name, value in self.__dict__.items())))

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({','.join([f'{name}={repr(value)}' for name, value in self.__dict__.items()])})"

    def __str__(self) -> str:
        return self.__repr__()

    def to_dict(self) -> Dict[str, Any]:
        return {name: _to_plain(value) for name, value in self.__dict__.items() if not name.startswith("_")}


def _to_plain(value: Any) -> Any:
    if isinstance(value, CoreData):
        return value.to_dict()
    if isinstance(value, (list, tuple)):
        return [_to_plain(v) for v in value]
    if isinstance(value, dict):
        return {k: _to_plain(v) for k, v in value.items()}
    return copy.copy(value)
