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
"""Load mender_update_driver configs."""

from typing import TYPE_CHECKING, Any

from mender_update_driver.configs._cfg_configurable import (
    ConfigurableSettings,
    set_configs,
)
from mender_update_driver.configs._cfg_consts import Consts, cfg_consts

__all__ = ["cfg", "cfg_configurable", "cfg_consts"]

cfg_configurable = set_configs()

if TYPE_CHECKING:

    class _DriverConfigs(ConfigurableSettings, Consts):
        """mender_update_driver configs."""

else:

    class _DriverConfigs:

        def __getattribute__(self, name: str) -> Any:
            for _cfg in [cfg_consts, cfg_configurable]:
                try:
                    return getattr(_cfg, name)
                except AttributeError:
                    continue
            raise AttributeError(f"no such config field: {name=}")


cfg = _DriverConfigs()
