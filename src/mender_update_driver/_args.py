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
"""Build the agent's command line.

The agent is called as:
    mender-update [global options] <command> [command options] [arguments...]
"""


from __future__ import annotations

from typing import Optional

from mender_update_driver._types import AgentCommand, Checkpoint, Install
from mender_update_driver.configs import Options
from mender_update_driver.configs.cfg import cfg


def build_global_arguments(options: Options) -> list[str]:
    """Global options, only emitted when set, except --log-level which is always set."""
    args: list[str] = []
    if options.config:
        args.extend([cfg.FLAG_CONFIG, options.config])
    if options.fallback_config:
        args.extend([cfg.FLAG_FALLBACK_CONFIG, options.fallback_config])
    if options.data_store:
        args.extend([cfg.FLAG_DATASTORE, options.data_store])
    args.extend([cfg.FLAG_LOG_LEVEL, options.log_level.agent_log_level])
    if options.trusted_certs:
        args.extend([cfg.FLAG_TRUSTED_CERTS, options.trusted_certs])
    if options.skip_verify:
        args.append(cfg.FLAG_SKIPVERIFY)
    return args


def build_arguments(
    options: Options,
    command: AgentCommand,
    stop_before: Optional[Checkpoint] = None,
) -> list[str]:
    """Build the argument vector(without the binary itself) for <command>.

    Args:
        options (Options): the global options.
        command (AgentCommand): the command to run.
        stop_before (Optional[Checkpoint], optional): ask the agent to stop
            before entering <stop_before> state. Defaults to None.

    Returns:
        list[str]: a new list of arguments, in the order the agent expects.
    """
    args = build_global_arguments(options)
    args.append(command.keyword)

    if command.reboot_exit_code:
        args.append(cfg.FLAG_REBOOT_EXIT_CODE)
    if stop_before is not None:
        args.extend([cfg.FLAG_STOP_BEFORE, Checkpoint(stop_before).value])

    # artifact location is the only positional argument
    if isinstance(command, Install):
        args.append(str(command.source))
    return args
