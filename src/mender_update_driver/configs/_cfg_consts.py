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
"""mender_update_driver internal uses consts, should not be changed from external."""


from __future__ import annotations


class Consts:
    #
    # ------ agent binary ------ #
    #
    AGENT_BINARY_PATH = "/usr/bin/mender-update"

    #
    # ------ agent global options ------ #
    #
    FLAG_CONFIG = "--config"
    FLAG_FALLBACK_CONFIG = "--fallback-config"
    FLAG_DATASTORE = "--datastore"
    FLAG_LOG_LEVEL = "--log-level"
    FLAG_TRUSTED_CERTS = "--trusted-certs"
    FLAG_SKIPVERIFY = "--skipverify"

    #
    # ------ agent command options ------ #
    #
    FLAG_REBOOT_EXIT_CODE = "--reboot-exit-code"
    FLAG_STOP_BEFORE = "--stop-before"

    #
    # ------ agent output ------ #
    #
    OUTPUT_ENCODING = "utf-8"


cfg_consts = Consts()
