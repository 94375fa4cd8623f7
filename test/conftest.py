# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

from unittest.mock import patch

import pytest


@pytest.fixture
def no_sleep():
    """Backoff and propagation waits are real-time sleeps, skip them."""
    with patch("time.sleep") as sleep_mocked:
        yield sleep_mocked
