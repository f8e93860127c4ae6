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
"""Launch the agent and supervise it until it exits.

The agent's stdout and stderr are drained concurrently while it is running,
    and the agent is only waited after both streams reach EOF. Draining
    the streams one after another, or after waiting the agent, will deadlock
    once the agent fills up the pipe buffer of the other stream.
"""


from __future__ import annotations

import asyncio
import codecs
import contextlib
import logging
import re
from typing import AsyncGenerator, Callable, Optional, Sequence

from mender_update_driver._log_parser import parse_log_line, parse_progress
from mender_update_driver._types import ExecutionResult, LogRecord, TerminationStatus
from mender_update_driver._typing import StrOrPath
from mender_update_driver.configs.cfg import cfg
from mender_update_driver.errors import CouldNotFulfillRequest

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int], None]

# NOTE: the agent redraws its progress with "\r", so "\r" is also a line break.
_LINE_BREAK_PA = re.compile(r"\r\n|\r|\n")


async def iter_lines(
    reader: asyncio.StreamReader, *, read_size: int
) -> AsyncGenerator[str, None]:
    """Yield the stripped non-empty lines from <reader> until EOF.

    Read at most <read_size> bytes at a time, a line is yielded as soon as
        its line break is read.
    """
    decoder = codecs.getincrementaldecoder(cfg.OUTPUT_ENCODING)(errors="replace")
    pending = ""
    while data := await reader.read(read_size):
        pending += decoder.decode(data)
        *lines, pending = _LINE_BREAK_PA.split(pending)
        for _line in lines:
            if _line := _line.strip():
                yield _line

    if _line := (pending + decoder.decode(b"", final=True)).strip():
        yield _line


async def _drain_stderr(
    reader: asyncio.StreamReader,
    *,
    log_records: list[LogRecord],
    on_progress: Optional[ProgressCallback],
) -> None:
    read_size = cfg.PROGRESS_READ_SIZE if on_progress else cfg.OUTPUT_READ_SIZE
    async for line in iter_lines(reader, read_size=read_size):
        if (_progress := parse_progress(line)) is not None:
            if on_progress is None:
                continue

            try:
                on_progress(_progress)
            except Exception as e:
                logger.warning(f"progress callback failed on {_progress=}: {e!r}")
        elif _record := parse_log_line(line):
            log_records.append(_record)
        else:
            logger.debug(f"ignore unrecognized line from agent stderr: {line!r}")


async def _drain_stdout(
    reader: asyncio.StreamReader,
    *,
    output_lines: list[str],
    collect_output: bool,
) -> None:
    # NOTE: keep reading till EOF even we only want the first line,
    #       otherwise the agent might be blocked on writing to a full pipe.
    async for line in iter_lines(reader, read_size=cfg.OUTPUT_READ_SIZE):
        if collect_output or not output_lines:
            output_lines.append(line)


async def _discard(reader: asyncio.StreamReader) -> None:
    while await reader.read(cfg.OUTPUT_READ_SIZE):
        pass


async def _reap(proc: asyncio.subprocess.Process) -> None:
    """Discard the remaining output of the agent, and wait for it to exit.

    NOTE: since python 3.12, Process.wait only returns after all pipes are
        closed, the remaining output must be consumed.
    """
    assert proc.stdout and proc.stderr
    await asyncio.gather(_discard(proc.stdout), _discard(proc.stderr), proc.wait())


async def _terminate(proc: asyncio.subprocess.Process) -> None:
    """Terminate the agent, kill it if it doesn't exit in time, and reap it."""
    if proc.returncode is None:
        logger.warning(f"terminate agent process({proc.pid=}) ...")
        with contextlib.suppress(ProcessLookupError):
            proc.terminate()

    try:
        await asyncio.wait_for(_reap(proc), timeout=cfg.TERMINATE_GRACE_PERIOD)
        return
    except asyncio.TimeoutError:
        logger.warning(
            f"agent process({proc.pid=}) doesn't exit after "
            f"{cfg.TERMINATE_GRACE_PERIOD}s, kill it"
        )

    with contextlib.suppress(ProcessLookupError):
        proc.kill()
    await _reap(proc)


async def execute(
    binary_path: StrOrPath,
    args: Sequence[str],
    *,
    on_progress: Optional[ProgressCallback] = None,
    collect_output: bool = False,
) -> ExecutionResult:
    """Run the agent with <args> and wait until it exits.

    The agent's exit code is not interpreted here, see errors.translate_outcome.

    Args:
        binary_path (StrOrPath): path to the agent binary.
        args (Sequence[str]): the argument vector, without the binary itself.
        on_progress (Optional[ProgressCallback], optional): called with the percentage
            on each progress fragment, in stream order. It runs on the stderr
            draining path, so it should not block. Defaults to None.
        collect_output (bool, optional): keep all stdout lines instead of
            only the first one. Defaults to False.

    Raises:
        CouldNotFulfillRequest if the agent cannot be launched.

    Returns:
        ExecutionResult: the agent's output and termination status.
    """
    logger.debug(f"launch agent: {binary_path} {' '.join(args)}")
    try:
        proc = await asyncio.create_subprocess_exec(
            str(binary_path),
            *args,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        _err_msg = f"failed to launch agent {binary_path}: {e!r}"
        logger.error(_err_msg)
        raise CouldNotFulfillRequest(_err_msg) from e

    assert proc.stdout and proc.stderr
    output_lines: list[str] = []
    log_records: list[LogRecord] = []
    drain_tasks = [
        asyncio.create_task(
            _drain_stdout(
                proc.stdout,
                output_lines=output_lines,
                collect_output=collect_output,
            )
        ),
        asyncio.create_task(
            _drain_stderr(
                proc.stderr,
                log_records=log_records,
                on_progress=on_progress,
            )
        ),
    ]
    try:
        await asyncio.gather(*drain_tasks)
        returncode = await proc.wait()
    except (Exception, asyncio.CancelledError):
        # on cancellation or any failure, the agent must not be left behind
        for _task in drain_tasks:
            _task.cancel()
        # NOTE: StreamReader allows only one waiting reader at a time
        await asyncio.gather(*drain_tasks, return_exceptions=True)
        await _terminate(proc)
        raise

    logger.debug(f"agent process({proc.pid=}) exits with {returncode=}")
    return ExecutionResult(
        status=TerminationStatus.from_returncode(returncode),
        output=output_lines[0] if output_lines else None,
        output_lines=output_lines if collect_output else [],
        log_records=log_records,
    )
