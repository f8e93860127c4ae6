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


from __future__ import annotations

import asyncio
import os
import signal
from pathlib import Path

import pytest
from pytest_mock import MockerFixture

from mender_update_driver import _supervisor
from mender_update_driver._supervisor import execute, iter_lines
from mender_update_driver._types import Severity, TerminationStatus
from mender_update_driver.configs.cfg import cfg_configurable
from mender_update_driver.errors import CouldNotFulfillRequest

LOG_LINE = (
    'record_id=1 severity=info time="2024-Jan-15 10:30:45.123456" '
    'name="Global" msg="Installing artifact..."'
)

# Generous upper bound, the tests themselves should finish in a second.
TEST_TIMEOUT = 30  # seconds


class TestIterLines:
    @staticmethod
    async def _collect(data: bytes, read_size: int) -> list[str]:
        reader = asyncio.StreamReader()
        reader.feed_data(data)
        reader.feed_eof()
        return [_line async for _line in iter_lines(reader, read_size=read_size)]

    @pytest.mark.parametrize("read_size", (1, 3, 64 * 1024))
    async def test_line_breaks(self, read_size: int):
        data = b"first\nsecond\r\nthird\r10%\r20%\n\n  \n last  "
        assert await self._collect(data, read_size) == [
            "first",
            "second",
            "third",
            "10%",
            "20%",
            "last",
        ]

    @pytest.mark.parametrize("read_size", (1, 3))
    async def test_multibyte_char_split_across_reads(self, read_size: int):
        data = "アーティファクト\n".encode()
        assert await self._collect(data, read_size) == ["アーティファクト"]

    async def test_invalid_utf8_replaced(self):
        assert await self._collect(b"bad \xff byte\n", 64) == ["bad � byte"]


class TestExecute:
    async def test_first_stdout_line(self, fake_agent):
        agent = fake_agent(
            "echo\n"
            "echo '  my-artifact  '\n"
            "echo 'another line'\n"
        )

        result = await execute(agent, ["show-artifact"])
        assert result.status == TerminationStatus(exit_code=0)
        assert result.status.is_success
        assert result.output == "my-artifact"
        assert result.output_lines == []
        assert result.log_records == []

    async def test_collect_output(self, fake_agent):
        agent = fake_agent(
            "echo 'artifact_name=release-1'\n"
            "echo\n"
            "echo 'rootfs-image.version=release-1'\n"
        )

        result = await execute(agent, ["show-provides"], collect_output=True)
        assert result.output == "artifact_name=release-1"
        assert result.output_lines == [
            "artifact_name=release-1",
            "rootfs-image.version=release-1",
        ]

    async def test_no_output(self, fake_agent):
        result = await execute(fake_agent("exit 0"), [])
        assert result.output is None

    async def test_args_passed_without_shell(self, fake_agent, agent_args):
        args = ["install", "--reboot-exit-code", "/tmp/a b; echo injected"]
        await execute(fake_agent("exit 0"), args)
        assert agent_args() == args

    async def test_progress_and_log_records(self, fake_agent):
        agent = fake_agent(
            "printf '45%%\\n' >&2\n"
            f"echo '{LOG_LINE}' >&2\n"
            "echo 'garbage line' >&2\n"
            "printf '\\r100%%' >&2\n"
        )
        _progress: list[int] = []

        result = await execute(agent, ["install"], on_progress=_progress.append)
        assert _progress == [45, 100]
        assert len(result.log_records) == 1
        _record = result.log_records[0]
        assert _record.record_id == 1
        assert _record.severity == Severity.INFO
        assert _record.name == "Global"
        assert _record.message == "Installing artifact..."

    async def test_progress_ignored_without_callback(self, fake_agent):
        agent = fake_agent("printf '\\r10%%\\r20%%\\r30%%\\n' >&2")

        result = await execute(agent, ["install"])
        assert result.log_records == []

    async def test_progress_read_in_small_chunks(
        self, fake_agent, mocker: MockerFixture
    ):
        _iter_lines_spy = mocker.spy(_supervisor, "iter_lines")
        await execute(fake_agent("exit 0"), [], on_progress=lambda _: None)

        _read_sizes = sorted(
            _call.kwargs["read_size"] for _call in _iter_lines_spy.call_args_list
        )
        assert _read_sizes == [
            _supervisor.cfg.PROGRESS_READ_SIZE,
            _supervisor.cfg.OUTPUT_READ_SIZE,
        ]

    async def test_failed_progress_callback_not_abort(self, fake_agent):
        agent = fake_agent(
            "printf '10%%\\n' >&2\n"
            f"echo '{LOG_LINE}' >&2\n"
            "printf '20%%\\n' >&2\n"
            "echo done\n"
        )
        _progress: list[int] = []

        def _callback(progress: int) -> None:
            _progress.append(progress)
            raise ValueError("callback failed")

        result = await execute(agent, ["install"], on_progress=_callback)
        assert _progress == [10, 20]
        assert len(result.log_records) == 1
        assert result.output == "done"
        assert result.status.is_success

    @pytest.mark.parametrize("exit_code", (1, 2, 4, 3))
    async def test_exit_code(self, fake_agent, exit_code: int):
        agent = fake_agent(f"echo 'failed'\nexit {exit_code}")

        result = await execute(agent, ["commit"])
        assert result.status == TerminationStatus(exit_code=exit_code)
        assert not result.status.is_success
        assert result.output == "failed"

    async def test_killed_by_signal(self, fake_agent):
        result = await execute(fake_agent("kill -9 $$"), ["install"])
        assert result.status == TerminationStatus(signal=signal.SIGKILL)
        assert not result.status.is_success

    async def test_agent_not_found(self, tmp_path: Path):
        with pytest.raises(CouldNotFulfillRequest) as exc_info:
            await execute(tmp_path / "not-exist", ["commit"])
        assert isinstance(exc_info.value.__cause__, FileNotFoundError)

    async def test_large_output_no_deadlock(self, fake_agent):
        # both streams write far more than a pipe buffer can hold
        agent = fake_agent(
            "i=0\n"
            "while [ $i -lt 20000 ]; do\n"
            "  echo \"stdout line $i with some padding to fill up the pipe\"\n"
            "  echo \"stderr line $i with some padding to fill up the pipe\" >&2\n"
            "  i=$((i+1))\n"
            "done\n"
        )

        result = await asyncio.wait_for(
            execute(agent, ["show-provides"]), timeout=TEST_TIMEOUT
        )
        assert result.status.is_success
        assert result.output == "stdout line 0 with some padding to fill up the pipe"

    async def test_cancel_terminates_agent(self, fake_agent, tmp_path: Path):
        pid_file = tmp_path / "agent_pid"
        agent = fake_agent(f"echo $$ > {pid_file}\nexec sleep {TEST_TIMEOUT}")

        task = asyncio.create_task(execute(agent, ["install"]))
        for _ in range(TEST_TIMEOUT * 10):
            if pid_file.is_file() and pid_file.read_text().strip():
                break
            await asyncio.sleep(0.1)
        agent_pid = int(pid_file.read_text())

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        # the agent is terminated and reaped
        with pytest.raises(ProcessLookupError):
            os.kill(agent_pid, 0)

    async def test_kill_agent_ignoring_sigterm(
        self, fake_agent, tmp_path: Path, mocker: MockerFixture
    ):
        mocker.patch.object(cfg_configurable, "TERMINATE_GRACE_PERIOD", 0.5)
        pid_file = tmp_path / "agent_pid"
        agent = fake_agent(
            "trap '' TERM\n"
            f"echo $$ > {pid_file}\n"
            f"while true; do sleep 1; done"
        )

        task = asyncio.create_task(execute(agent, ["install"]))
        for _ in range(TEST_TIMEOUT * 10):
            if pid_file.is_file() and pid_file.read_text().strip():
                break
            await asyncio.sleep(0.1)
        agent_pid = int(pid_file.read_text())

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await asyncio.wait_for(task, timeout=TEST_TIMEOUT)

        with pytest.raises(ProcessLookupError):
            os.kill(agent_pid, 0)
