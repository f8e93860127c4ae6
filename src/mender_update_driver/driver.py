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
"""The driver of the mender-update agent.

Example usage:

    driver = MenderUpdateDriver(Options(log_level="debug"))
    try:
        await driver.install(url, on_progress=print)
    except RebootRequired:
        ...  # schedule a reboot, then call driver.commit()

The driver holds no state besides the read-only options, one instance can be
    shared by concurrent operations. Each operation owns exactly one agent process.
"""


from __future__ import annotations

import logging
from typing import Optional

from mender_update_driver import _supervisor
from mender_update_driver._args import build_arguments
from mender_update_driver._supervisor import ProgressCallback
from mender_update_driver._types import (
    AgentCommand,
    Checkpoint,
    Commit,
    ExecutionResult,
    Install,
    Resume,
    Rollback,
    ShowArtifact,
    ShowProvides,
)
from mender_update_driver._typing import StrOrPath
from mender_update_driver.configs import Options
from mender_update_driver.errors import translate_outcome


class MenderUpdateDriver:
    """Run lifecycle operations and queries with the mender-update agent.

    All operations raise MenderUpdateError subclasses on failure, with the
        agent's log records attached. On success, the log records are
        forwarded to <logger>.
    """

    def __init__(
        self,
        options: Optional[Options] = None,
        *,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._options = options or Options()
        self._logger = logger or logging.getLogger(__name__)

    @property
    def options(self) -> Options:
        return self._options

    async def execute(
        self,
        command: AgentCommand,
        *,
        stop_before: Optional[Checkpoint] = None,
        on_progress: Optional[ProgressCallback] = None,
        collect_output: bool = False,
    ) -> ExecutionResult:
        """Run <command> with the agent.

        Raises:
            MenderUpdateError subclass matching the agent's termination status.
        """
        args = build_arguments(self._options, command, stop_before)
        result = await _supervisor.execute(
            self._options.binary_path,
            args,
            on_progress=on_progress,
            collect_output=collect_output,
        )
        translate_outcome(result)

        for _record in result.log_records:
            _record.emit(self._logger)
        return result

    #
    # ------ lifecycle operations ------ #
    #

    async def install(
        self,
        source: StrOrPath,
        *,
        stop_before: Optional[Checkpoint] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> Optional[str]:
        """Install the artifact from <source>, an URL or a local path.

        Raises:
            RebootRequired if the device needs to reboot to the new artifact.
        """
        result = await self.execute(
            Install(source), stop_before=stop_before, on_progress=on_progress
        )
        return result.output

    async def commit(self, *, stop_before: Optional[Checkpoint] = None) -> Optional[str]:
        result = await self.execute(Commit(), stop_before=stop_before)
        return result.output

    async def resume(self, *, stop_before: Optional[Checkpoint] = None) -> Optional[str]:
        result = await self.execute(Resume(), stop_before=stop_before)
        return result.output

    async def rollback(
        self, *, stop_before: Optional[Checkpoint] = None
    ) -> Optional[str]:
        result = await self.execute(Rollback(), stop_before=stop_before)
        return result.output

    #
    # ------ queries ------ #
    #

    async def show_artifact(self) -> str:
        """Get the name of the currently installed artifact."""
        result = await self.execute(ShowArtifact())
        return result.output or ""

    async def show_provides(self) -> list[str]:
        """Get the provides of the currently installed artifact, one per line."""
        result = await self.execute(ShowProvides(), collect_output=True)
        return result.output_lines
