# Copyright 2022 TIER IV, INC. All rights reserved.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""Configure the logging for mender_update_driver."""


from __future__ import annotations

import logging
from typing import Optional

from mender_update_driver.configs.cfg import cfg


def configure_logging(level: Optional[int] = None) -> None:
    """Configure logging for running as an application.

    Args:
        level (Optional[int], optional): override the level of all the
            first-party loggers. Defaults to None, use LOG_LEVEL_TABLE.
    """
    # ------ suppress logging from non-first-party modules ------ #
    # NOTE: force to reload the basicConfig, this is for overriding setting
    #       when launching subprocess.
    # NOTE: for the root logger, set to CRITICAL to filter away logs from other
    #       external modules unless reached CRITICAL level.
    logging.basicConfig(level=logging.CRITICAL, format=cfg.LOG_FORMAT, force=True)

    # ------ configure each sub loggers ------ #
    for logger_name, loglevel in cfg.LOG_LEVEL_TABLE.items():
        _logger = logging.getLogger(logger_name)
        _logger.setLevel(level if level is not None else loglevel)
