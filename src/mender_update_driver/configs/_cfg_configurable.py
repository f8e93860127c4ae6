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
"""Runtime configurable configs for mender_update_driver."""


from __future__ import annotations

import json
import logging
from typing import Dict, Literal

from pydantic import BaseModel
from pydantic_settings import BaseSettings, SettingsConfigDict

from mender_update_driver.configs._cfg_consts import cfg_consts

logger = logging.getLogger(__name__)

ENV_PREFIX = "MENDER_UPDATE_DRIVER_"
LOG_LEVEL_LITERAL = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class _DriverSettings(BaseModel):
    #
    # ------ agent invoking settings ------ #
    #
    DEFAULT_BINARY_PATH: str = cfg_consts.AGENT_BINARY_PATH

    #
    # ------ logging settings ------ #
    #
    DEFAULT_LOG_LEVEL: LOG_LEVEL_LITERAL = "INFO"
    LOG_LEVEL_TABLE: Dict[str, LOG_LEVEL_LITERAL] = {
        "mender_update_driver": "INFO",
    }

    @property
    def LOG_FORMAT(self) -> str:
        """Generate JSON log format string dynamically."""
        log_fields = {
            "timestamp": "%(asctime)s",
            "level": "%(levelname)s",
            "logger": "%(name)s",
            "function": "%(funcName)s",
            "line": "%(lineno)d",
            "message": "%(message)s",
        }
        return json.dumps(log_fields, separators=(",", ":"))


class _StreamSettings(BaseModel):
    # When progress callback is set, read stderr in tiny chunks so that
    #   a "\rNN%" fragment is delivered as soon as the agent writes it.
    PROGRESS_READ_SIZE: int = 3  # bytes
    OUTPUT_READ_SIZE: int = 64 * 1024  # bytes

    # How long to wait for the agent to exit after SIGTERM before SIGKILL,
    #   when the operation is cancelled.
    TERMINATE_GRACE_PERIOD: float = 6  # seconds


class ConfigurableSettings(_DriverSettings, _StreamSettings):
    """mender_update_driver runtime configuration settings."""


def set_configs() -> ConfigurableSettings:
    try:

        class _SettingParser(ConfigurableSettings, BaseSettings):
            model_config = SettingsConfigDict(
                validate_default=True,
                env_prefix=ENV_PREFIX,
            )

        _parsed_setting = _SettingParser()
        return ConfigurableSettings.model_construct(**_parsed_setting.model_dump())
    except Exception as e:
        logger.error(f"failed to parse mender_update_driver settings: {e!r}")
        logger.warning("use default settings ...")
        return ConfigurableSettings()
