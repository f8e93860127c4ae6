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
"""Global options passed to the agent on every invocation."""


from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field
from typing_extensions import Annotated

from mender_update_driver._types import LogLevel
from mender_update_driver._typing import gen_strenum_validator
from mender_update_driver.configs.cfg import cfg


class Options(BaseModel):
    """Options for the agent, built once and shared by all operations.

    Attributes:
        config: path to the agent's config file, passed as --config.
        fallback_config: path to the fallback config file, passed as --fallback-config.
        data_store: path to the agent's data store, passed as --datastore.
        log_level: verbosity of the agent. Defaults to info.
        trusted_certs: path to the trusted certificates bundle, passed as --trusted-certs.
        skip_verify: skip TLS certificate verification. Defaults to False.
        binary_path: path to the agent binary.
    """

    model_config = ConfigDict(frozen=True)

    config: Optional[str] = None
    fallback_config: Optional[str] = None
    data_store: Optional[str] = None
    log_level: Annotated[
        LogLevel, BeforeValidator(gen_strenum_validator(LogLevel))
    ] = LogLevel.INFO
    trusted_certs: Optional[str] = None
    skip_verify: bool = False
    binary_path: str = Field(default_factory=lambda: cfg.DEFAULT_BINARY_PATH)
