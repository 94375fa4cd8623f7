# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

"""Default logging setup for deployment runs.

Console output goes to stdout at the root level. With a log directory, every record (DEBUG and up) is also kept in
a size-rotated 'cumulus_core.log', which is where the raw provider errors of failed steps can be found after a run.
"""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Optional, Union

CORE_LOG_FILE = "cumulus_core.log"
CORE_LOG_MAX_BYTES = 5 * 1024 * 1024
CORE_LOG_BACKUP_COUNT = 5

CONSOLE_FORMAT = "%(asctime)s - %(name)-13s: %(levelname)-8s %(message)s"
FILE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%m/%d/%Y %I:%M:%S %p"

# provider SDK loggers, noisy below INFO
SDK_LOGGERS = ("boto3", "botocore", "urllib3")


def init_basic_logging(log_dir: Optional[Union[str, Path]] = None, enable_console_logging: bool = True, root_level=logging.INFO) -> logging.Logger:
    root_logger = logging.getLogger()
    root_logger.setLevel(root_level)

    if enable_console_logging:
        console = logging.StreamHandler(sys.stdout)
        console.setLevel(root_level)
        console.setFormatter(logging.Formatter(CONSOLE_FORMAT, datefmt=DATE_FORMAT))
        root_logger.addHandler(console)

    if log_dir:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            filename=str(log_path / CORE_LOG_FILE), maxBytes=CORE_LOG_MAX_BYTES, backupCount=CORE_LOG_BACKUP_COUNT
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
        root_logger.addHandler(file_handler)

    for sdk_logger in SDK_LOGGERS:
        logging.getLogger(sdk_logger).setLevel(max(root_level, logging.INFO))

    return root_logger
