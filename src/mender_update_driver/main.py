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
"""A thin command line wrapper around MenderUpdateDriver."""


from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import Optional, Sequence

from mender_update_driver import __version__
from mender_update_driver._logging import configure_logging
from mender_update_driver._types import Checkpoint, LogLevel
from mender_update_driver.configs import Options
from mender_update_driver.configs.cfg import cfg
from mender_update_driver.driver import MenderUpdateDriver
from mender_update_driver.errors import (
    AgentExitCode,
    FailureClass,
    MenderUpdateError,
)

logger = logging.getLogger(__name__)

# agent log records are forwarded to this logger
AGENT_LOGGER_NAME = "mender_update_driver.agent"

COMMANDS = (
    "install",
    "commit",
    "resume",
    "rollback",
    "show-artifact",
    "show-provides",
)

_FAILURE_EXIT_CODE = {
    FailureClass.COULD_NOT_FULFILL_REQUEST: AgentExitCode.COULD_NOT_FULFILL_REQUEST,
    FailureClass.NO_UPDATE_IN_PROGRESS: AgentExitCode.NO_UPDATE_IN_PROGRESS,
    FailureClass.REBOOT_REQUIRED: AgentExitCode.REBOOT_REQUIRED,
    FailureClass.UNKNOWN: AgentExitCode.COULD_NOT_FULFILL_REQUEST,
}


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mender-update-driver",
        description="Drive the mender-update agent.",
    )
    parser.add_argument("--version", action="version", version=__version__)
    parser.add_argument(
        "--binary",
        default=cfg.DEFAULT_BINARY_PATH,
        help=f"path to the agent binary, default to {cfg.DEFAULT_BINARY_PATH}",
    )
    parser.add_argument("--config", help="agent config file")
    parser.add_argument("--fallback-config", help="agent fallback config file")
    parser.add_argument("--data-store", help="agent data store directory")
    parser.add_argument("--trusted-certs", help="trusted certificates bundle")
    parser.add_argument(
        "--skip-verify",
        action="store_true",
        help="skip TLS certificate verification",
    )
    parser.add_argument(
        "--stop-before",
        type=Checkpoint,
        choices=list(Checkpoint),
        help="stop the agent before entering this state",
    )
    parser.add_argument("--debug", action="store_true", help="enable debug logging")
    parser.add_argument("command", choices=COMMANDS)
    parser.add_argument(
        "url",
        nargs="?",
        help="URL or path of the artifact, required by install",
    )
    return parser


def _print_progress(_progress: int) -> None:
    sys.stdout.write(".")
    sys.stdout.flush()


async def _run(args: argparse.Namespace, driver: MenderUpdateDriver) -> None:
    if args.command == "install":
        await driver.install(
            args.url, stop_before=args.stop_before, on_progress=_print_progress
        )
        print()  # newline after the progress dots
    elif args.command == "commit":
        await driver.commit(stop_before=args.stop_before)
    elif args.command == "resume":
        await driver.resume(stop_before=args.stop_before)
    elif args.command == "rollback":
        await driver.rollback(stop_before=args.stop_before)
    elif args.command == "show-artifact":
        print(await driver.show_artifact())
    elif args.command == "show-provides":
        for _line in await driver.show_provides():
            print(_line)


def main(argv: Optional[Sequence[str]] = None) -> None:
    parser = _build_parser()
    args = parser.parse_args(argv)
    if args.command == "install" and not args.url:
        parser.error("install requires the artifact URL")

    level = logging.DEBUG if args.debug else None
    configure_logging(level)

    options = Options(
        config=args.config,
        fallback_config=args.fallback_config,
        data_store=args.data_store,
        log_level=LogLevel.from_logging_level(
            level if level is not None else logging.getLevelName(cfg.DEFAULT_LOG_LEVEL)
        ),
        trusted_certs=args.trusted_certs,
        skip_verify=args.skip_verify,
        binary_path=args.binary,
    )
    agent_logger = logging.getLogger(AGENT_LOGGER_NAME)
    driver = MenderUpdateDriver(options, logger=agent_logger)

    try:
        asyncio.run(_run(args, driver))
    except MenderUpdateError as e:
        e.log(agent_logger)
        print(f"error: {e}")
        logger.debug(e.get_error_report(title=f"{args.command} failed"))
        sys.exit(int(_FAILURE_EXIT_CODE[e.failure_class]))
