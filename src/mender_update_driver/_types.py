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
"""mender_update_driver types definitions."""


from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import ClassVar, List, Optional

from mender_update_driver._typing import StrEnum, StrOrPath

# agent's trace severity is finer than logging.DEBUG
TRACE = 5
logging.addLevelName(TRACE, "TRACE")

#
# ------ levels definitions ------ #
#


class LogLevel(StrEnum):
    """The verbosity of the driver, passed down to the agent with --log-level."""

    TRACE = "trace"
    DEBUG = "debug"
    INFO = "info"
    NOTICE = "notice"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"

    @property
    def agent_log_level(self) -> str:
        """The level name as accepted by the agent."""
        if self is LogLevel.NOTICE:
            return "info"
        if self is LogLevel.CRITICAL:
            return "fatal"
        return self.value

    @classmethod
    def from_logging_level(cls, level: int) -> LogLevel:
        if level <= TRACE:
            return cls.TRACE
        if level <= logging.DEBUG:
            return cls.DEBUG
        if level <= logging.INFO:
            return cls.INFO
        if level <= logging.WARNING:
            return cls.WARNING
        if level <= logging.ERROR:
            return cls.ERROR
        return cls.CRITICAL


class Severity(StrEnum):
    """Severity of a log record emitted by the agent."""

    TRACE = "trace"
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    FATAL = "fatal"

    @property
    def logging_level(self) -> int:
        return _SEVERITY_LOGGING_LEVEL[self]


_SEVERITY_LOGGING_LEVEL = {
    Severity.TRACE: TRACE,
    Severity.DEBUG: logging.DEBUG,
    Severity.INFO: logging.INFO,
    Severity.WARNING: logging.WARNING,
    Severity.ERROR: logging.ERROR,
    Severity.FATAL: logging.CRITICAL,
}


class Checkpoint(StrEnum):
    """States the agent can be asked to stop before, with --stop-before."""

    ARTIFACT_INSTALL_ENTER = "ArtifactInstall_Enter"
    ARTIFACT_COMMIT_ENTER = "ArtifactCommit_Enter"
    ARTIFACT_COMMIT_LEAVE = "ArtifactCommit_Leave"
    ARTIFACT_ROLLBACK_ENTER = "ArtifactRollback_Enter"
    ARTIFACT_FAILURE_ENTER = "ArtifactFailure_Enter"
    CLEANUP = "Cleanup"


#
# ------ agent commands ------ #
#


class AgentCommand:
    """Base of the commands accepted by the agent.

    <keyword> is the command as it appears on the agent's command line.
    If <reboot_exit_code> is True, the agent is asked to exit with a dedicated
        exit code instead of rebooting the device by itself.
    """

    keyword: ClassVar[str]
    reboot_exit_code: ClassVar[bool] = False


@dataclass(frozen=True)
class Install(AgentCommand):
    keyword: ClassVar[str] = "install"
    reboot_exit_code: ClassVar[bool] = True

    source: StrOrPath
    """URL or local path of the artifact."""


@dataclass(frozen=True)
class Commit(AgentCommand):
    keyword: ClassVar[str] = "commit"


@dataclass(frozen=True)
class Resume(AgentCommand):
    keyword: ClassVar[str] = "resume"
    reboot_exit_code: ClassVar[bool] = True


@dataclass(frozen=True)
class Rollback(AgentCommand):
    keyword: ClassVar[str] = "rollback"


@dataclass(frozen=True)
class ShowArtifact(AgentCommand):
    keyword: ClassVar[str] = "show-artifact"


@dataclass(frozen=True)
class ShowProvides(AgentCommand):
    keyword: ClassVar[str] = "show-provides"


#
# ------ agent output ------ #
#


@dataclass(frozen=True)
class LogRecord:
    """One structured log line emitted by the agent on its stderr."""

    record_id: int
    severity: Severity
    timestamp: datetime
    name: str
    message: str

    def emit(self, logger: logging.Logger) -> None:
        """Forward this record to <logger> at the matching level."""
        logger.log(
            self.severity.logging_level,
            self.message,
            extra={
                "mender_record_id": self.record_id,
                "mender_timestamp": self.timestamp,
                "mender_name": self.name,
            },
        )


@dataclass(frozen=True)
class TerminationStatus:
    exit_code: Optional[int] = None
    signal: Optional[int] = None

    @classmethod
    def from_returncode(cls, returncode: int) -> TerminationStatus:
        # NOTE: asyncio reports a process killed by signal N as returncode -N.
        if returncode < 0:
            return cls(signal=-returncode)
        return cls(exit_code=returncode)

    @property
    def is_success(self) -> bool:
        return self.signal is None and self.exit_code == 0


@dataclass
class ExecutionResult:
    status: TerminationStatus
    output: Optional[str] = None
    """The first non-empty line of the agent's stdout."""
    output_lines: List[str] = field(default_factory=list)
    """All non-empty stdout lines, only collected on request."""
    log_records: List[LogRecord] = field(default_factory=list)
