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
"""Supervising driver for the mender-update agent."""

__version__ = "0.1.0"

from mender_update_driver._types import (
    Checkpoint,
    LogLevel,
    LogRecord,
    Severity,
)
from mender_update_driver.configs import Options
from mender_update_driver.driver import MenderUpdateDriver
from mender_update_driver.errors import (
    AbnormalTermination,
    CouldNotFulfillRequest,
    FailureClass,
    MenderUpdateError,
    NoUpdateInProgress,
    RebootRequired,
    UnknownExitCode,
)

__all__ = [
    "AbnormalTermination",
    "Checkpoint",
    "CouldNotFulfillRequest",
    "FailureClass",
    "LogLevel",
    "LogRecord",
    "MenderUpdateDriver",
    "MenderUpdateError",
    "NoUpdateInProgress",
    "Options",
    "RebootRequired",
    "Severity",
    "UnknownExitCode",
]
