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
"""Agent failure definitions, and the mapping from agent's termination status."""


from __future__ import annotations

import logging
import traceback
from enum import Enum, unique
from typing import ClassVar, Iterable, Optional

from mender_update_driver._types import ExecutionResult, LogRecord
from mender_update_driver._typing import StrEnum


@unique
class AgentExitCode(int, Enum):
    """Exit codes of the agent that have dedicated meaning."""

    SUCCESS = 0
    COULD_NOT_FULFILL_REQUEST = 1
    NO_UPDATE_IN_PROGRESS = 2
    REBOOT_REQUIRED = 4


class FailureClass(StrEnum):
    COULD_NOT_FULFILL_REQUEST = "could_not_fulfill_request"
    NO_UPDATE_IN_PROGRESS = "no_update_in_progress"
    REBOOT_REQUIRED = "reboot_required"
    UNKNOWN = "unknown"

    @classmethod
    def from_exit_code(cls, exit_code: int) -> FailureClass:
        try:
            return _EXIT_CODE_FAILURE_CLASS[AgentExitCode(exit_code)]
        except (ValueError, KeyError):
            return cls.UNKNOWN


_EXIT_CODE_FAILURE_CLASS = {
    AgentExitCode.COULD_NOT_FULFILL_REQUEST: FailureClass.COULD_NOT_FULFILL_REQUEST,
    AgentExitCode.NO_UPDATE_IN_PROGRESS: FailureClass.NO_UPDATE_IN_PROGRESS,
    AgentExitCode.REBOOT_REQUIRED: FailureClass.REBOOT_REQUIRED,
}


class MenderUpdateError(Exception):
    """Base exception of the agent failures.

    Attributes:
        message: the first line of the agent's stdout, if any.
        log_records: the log records parsed from the agent's stderr, in arrival order.
    """

    failure_class: ClassVar[FailureClass] = FailureClass.UNKNOWN
    failure_description: ClassVar[str] = "no description available for this error"

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        log_records: Optional[Iterable[LogRecord]] = None,
    ) -> None:
        self.message = message
        self.log_records: list[LogRecord] = list(log_records or [])
        super().__init__(message)

    def __str__(self) -> str:
        if self.message:
            return f"{self.failure_description}: {self.message}"
        return self.failure_description

    def log(self, logger: logging.Logger) -> None:
        """Forward the attached log records to <logger>."""
        for _record in self.log_records:
            _record.emit(logger)

    def get_error_report(self, title: str = "") -> str:
        """The detailed failure report for debug use."""
        _records = "\n".join(
            f"[{_r.record_id}] {_r.timestamp} {_r.severity} {_r.name}: {_r.message}"
            for _r in self.log_records
        )
        _traceback = "".join(
            traceback.format_exception(type(self), self, self.__traceback__)
        )
        return (
            f"\n{title}\n"
            f"@failure_class: {self.failure_class}"
            "\n------ exception informaton ------\n"
            f"{self!r}"
            "\n------ end of exception informaton ------\n"
            "\n------ agent log records ------\n"
            f"{_records}"
            "\n------ end of agent log records ------\n"
            "\n------ exception traceback ------\n"
            f"{_traceback}"
            "\n------ end of exception traceback ------\n"
        )


class CouldNotFulfillRequest(MenderUpdateError):
    """Generic failure of the agent, retry is up to the caller."""

    failure_class = FailureClass.COULD_NOT_FULFILL_REQUEST
    failure_description = "agent could not fulfill the request"


class NoUpdateInProgress(MenderUpdateError):
    """commit, resume or rollback is requested without a prior install."""

    failure_class = FailureClass.NO_UPDATE_IN_PROGRESS
    failure_description = "no update in progress"


class RebootRequired(MenderUpdateError):
    """The agent needs the device to reboot before it can proceed."""

    failure_class = FailureClass.REBOOT_REQUIRED
    failure_description = "reboot required to proceed"


class UnknownExitCode(CouldNotFulfillRequest):
    failure_class = FailureClass.UNKNOWN
    failure_description = "agent exited with unknown exit code"

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        exit_code: int,
        log_records: Optional[Iterable[LogRecord]] = None,
    ) -> None:
        self.exit_code = exit_code
        super().__init__(message, log_records=log_records)

    def __str__(self) -> str:
        return f"{super().__str__()} ({self.exit_code=})"


class AbnormalTermination(CouldNotFulfillRequest):
    """The agent is killed by signal.

    The agent's output is not reliable in this case, so no message and
        no log records are attached.
    """

    failure_description = "agent terminated abnormally"

    def __init__(self, *, signal: int) -> None:
        self.signal = signal
        super().__init__()

    def __str__(self) -> str:
        return f"{self.failure_description} ({self.signal=})"


_FAILURE_CLASS_EXCEPTION: dict[FailureClass, type[MenderUpdateError]] = {
    FailureClass.COULD_NOT_FULFILL_REQUEST: CouldNotFulfillRequest,
    FailureClass.NO_UPDATE_IN_PROGRESS: NoUpdateInProgress,
    FailureClass.REBOOT_REQUIRED: RebootRequired,
}


def translate_outcome(result: ExecutionResult) -> Optional[str]:
    """Translate the termination status of the agent into the operation's outcome.

    Returns:
        The first line of the agent's stdout on success.

    Raises:
        MenderUpdateError subclass matching the agent's termination status.
    """
    _status = result.status
    if _status.is_success:
        return result.output

    if _status.signal is not None or _status.exit_code is None:
        raise AbnormalTermination(signal=_status.signal or 0)

    _failure_class = FailureClass.from_exit_code(_status.exit_code)
    if _failure_class == FailureClass.UNKNOWN:
        raise UnknownExitCode(
            result.output,
            exit_code=_status.exit_code,
            log_records=result.log_records,
        )
    raise _FAILURE_CLASS_EXCEPTION[_failure_class](
        result.output, log_records=result.log_records
    )
