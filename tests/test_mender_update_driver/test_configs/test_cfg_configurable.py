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

import pytest
from pydantic import ValidationError
from pytest import MonkeyPatch

from mender_update_driver._types import LogLevel
from mender_update_driver.configs import ENV_PREFIX, Options, set_configs


@pytest.mark.parametrize(
    "setting, env_value, value",
    (
        (
            "DEFAULT_BINARY_PATH",
            "/opt/mender/bin/mender-update",
            "/opt/mender/bin/mender-update",
        ),
        ("DEFAULT_LOG_LEVEL", "CRITICAL", "CRITICAL"),
        (
            "LOG_LEVEL_TABLE",
            r"""{"mender_update_driver": "DEBUG"}""",
            {"mender_update_driver": "DEBUG"},
        ),
        ("PROGRESS_READ_SIZE", "16", 16),
        ("TERMINATE_GRACE_PERIOD", "1.5", 1.5),
    ),
)
def test_load_configs(setting, env_value, value, monkeypatch: MonkeyPatch):
    monkeypatch.setenv(f"{ENV_PREFIX}{setting}", env_value)

    mocked_configs = set_configs()
    assert getattr(mocked_configs, setting) == value


def test_load_default_on_invalid_envs(monkeypatch: MonkeyPatch) -> None:
    # first get a normal configs without any envs
    normal_cfg = set_configs()
    # patch envs
    monkeypatch.setenv(f"{ENV_PREFIX}OUTPUT_READ_SIZE", "not_an_int")
    # check if config is the defualt one
    assert normal_cfg == set_configs()


class TestOptions:
    def test_default(self):
        options = Options()
        assert options.config is None
        assert options.fallback_config is None
        assert options.data_store is None
        assert options.log_level == LogLevel.INFO
        assert options.trusted_certs is None
        assert options.skip_verify is False
        assert options.binary_path == "/usr/bin/mender-update"

    def test_log_level_from_str(self):
        assert Options(log_level="notice").log_level == LogLevel.NOTICE  # type: ignore

    def test_invalid_log_level(self):
        with pytest.raises(ValidationError):
            Options(log_level="verbose")  # type: ignore

    def test_immutable(self):
        options = Options(config="/etc/mender/mender.conf")
        with pytest.raises(ValidationError):
            options.config = "/tmp/mender.conf"  # type: ignore

    def test_hashable_and_comparable(self):
        assert Options(skip_verify=True) == Options(skip_verify=True)
        assert hash(Options(skip_verify=True)) == hash(Options(skip_verify=True))
