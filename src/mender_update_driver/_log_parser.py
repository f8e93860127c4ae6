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
"""Parsers for the lines the agent writes to its stderr.

The agent's stderr interleaves two kinds of lines:
1. progress fragments, i.e., "45%" (written after a carriage return),
2. structured log records, i.e.,
    record_id=12 severity=info time="2024-Jan-15 10:30:45.123456" name="Global" msg="Installing artifact..."

Both parsers here are pure functions, and never raise on malformed input.
"""


from __future__ import annotations

import re
from datetime import datetime
from typing import Dict, Optional

from mender_update_driver._types import LogRecord, Severity

_PROGRESS_PA = re.compile(r"(?P<percentage>[0-9]+)%")
_UNSIGNED_INT_PA = re.compile(r"[0-9]+")
_LOG_TIME_PA = re.compile(
    r"(?P<year>[0-9]{4})-(?P<month>[A-Z][a-z]{2})-(?P<day>[0-9]{2})"
    r" (?P<hour>[0-9]{2}):(?P<minute>[0-9]{2}):(?P<second>[0-9]{2})"
    r"\.(?P<microsecond>[0-9]{6})"
)

# NOTE: month abbreviations are in POSIX locale, not depending on
#       the locale of the current process.
# fmt: off
_MONTHS = {
    "Jan": 1, "Feb": 2, "Mar": 3, "Apr": 4, "May": 5, "Jun": 6,
    "Jul": 7, "Aug": 8, "Sep": 9, "Oct": 10, "Nov": 11, "Dec": 12,
}
# fmt: on


def parse_progress(line: str) -> Optional[int]:
    """Parse a progress fragment like "45%".

    Returns:
        The percentage, or None if <line> is not a progress fragment.
    """
    if ma := _PROGRESS_PA.fullmatch(line.strip()):
        return int(ma.group("percentage"))


def _parse_key_value_pairs(line: str) -> Optional[Dict[str, str]]:
    """Split <line> into key=value or key="quoted value" pairs.

    Text after the last pair that doesn't contain "=" is ignored.

    Returns:
        A dict of the pairs, or None if a quoted value is not terminated.
    """
    res: Dict[str, str] = {}
    remaining = line
    while remaining:
        key, sep, remaining = remaining.partition("=")
        if not sep:
            break

        if remaining.startswith('"'):
            value, sep, remaining = remaining[1:].partition('"')
            if not sep:
                return
            if remaining.startswith(" "):
                remaining = remaining[1:]
        else:
            value, _, remaining = remaining.partition(" ")
        res[key] = value
    return res


def parse_log_time(_in: str) -> Optional[datetime]:
    """Parse the agent's log timestamp, i.e., 2024-Jan-15 10:30:45.123456."""
    if not (ma := _LOG_TIME_PA.fullmatch(_in)):
        return
    if (month := _MONTHS.get(ma.group("month"))) is None:
        return

    try:
        return datetime(
            year=int(ma.group("year")),
            month=month,
            day=int(ma.group("day")),
            hour=int(ma.group("hour")),
            minute=int(ma.group("minute")),
            second=int(ma.group("second")),
            microsecond=int(ma.group("microsecond")),
        )
    except ValueError:  # i.e., 2024-Feb-30
        return


def parse_log_line(line: str) -> Optional[LogRecord]:
    """Parse one structured log line from the agent's stderr.

    Required keys are record_id, severity, time, name and msg, in any order.

    Returns:
        A LogRecord, or None if <line> is not a well-formed log line.
    """
    if "=" not in line:
        return
    if (pairs := _parse_key_value_pairs(line)) is None:
        return

    try:
        _record_id = pairs["record_id"]
        _severity = pairs["severity"]
        _time = pairs["time"]
        name, message = pairs["name"], pairs["msg"]
    except KeyError:
        return

    if not _UNSIGNED_INT_PA.fullmatch(_record_id):
        return
    try:
        severity = Severity(_severity)
    except ValueError:
        return
    if (timestamp := parse_log_time(_time)) is None:
        return

    return LogRecord(
        record_id=int(_record_id),
        severity=severity,
        timestamp=timestamp,
        name=name,
        message=message,
    )
