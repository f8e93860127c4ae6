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

import logging
import stat
from pathlib import Path
from typing import Callable

import pytest

logger = logging.getLogger(__name__)

FakeAgentFactory = Callable[[str], Path]


@pytest.fixture
def fake_agent(tmp_path: Path) -> FakeAgentFactory:
    """Return a factory that creates a shell script standing in for the agent.

    The script records its arguments, one per line, to <tmp_path>/agent_args.
    """
    args_file = tmp_path / "agent_args"

    def _create(script_body: str) -> Path:
        agent = tmp_path / "mender-update"
        agent.write_text(
            "#!/bin/sh\n"
            f'for arg in "$@"; do echo "$arg" >> {args_file}; done\n'
            f"{script_body}\n"
        )
        agent.chmod(agent.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return agent

    return _create


@pytest.fixture
def agent_args(tmp_path: Path) -> Callable[[], list[str]]:
    """Return a callable that reads back the args the fake agent is called with."""

    def _read() -> list[str]:
        return (tmp_path / "agent_args").read_text().splitlines()

    return _read
