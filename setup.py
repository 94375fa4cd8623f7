# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

from setuptools import find_packages, setup
from src.cumulus import __version__ as version

REQUIRED_PACKAGES = [
    'boto3 >= 1.34.0',
    'python-dateutil >= 2.9.0',
]

TEST_PACKAGES = [
    'moto >= 5.0.0',
    'pytest',
    'mock'
]

setup(
    name="cumulus",
    python_requires=">=3.10",
    version=version,
    description="cumulus deploys serverless functions together with their execution roles, event sources, "
                "subscriptions, schedules and log delivery.",
    keywords="aws cloud lambda serverless deployment iam sns sqs eventbridge cloudwatch logs",
    author="Amazon.com Inc.",
    license="Apache 2.0",

    packages=find_packages(where="src", exclude=("test",)),
    package_dir={"": "src"},
    install_requires=REQUIRED_PACKAGES,
    tests_require=TEST_PACKAGES,
    extras_require={"test": TEST_PACKAGES},
    test_suite='test',
    include_package_data=True,
)
