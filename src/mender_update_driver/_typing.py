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
"""Typing helpers shared across mender_update_driver."""


from __future__ import annotations

import sys
from enum import Enum
from pathlib import Path
from typing import Any, Callable, TypeVar, Union

EnumT = TypeVar("EnumT", bound=Enum)
StrOrPath = Union[str, Path]

# Starting from 3.11, a (str, Enum) mixin no longer uses str's __format__,
#   so f-string of a member gives "Cls.MEMBER" instead of the value.
#   StrEnum (a ReprEnum subclass) keeps the str behavior. For < 3.11 we
#   define an equivalent one ourselves.
#
# NOTE: the values of the StrEnums below are passed to the agent as argv,
#   so str(<member>) must always be the value.
if sys.version_info >= (3, 11):
    from enum import StrEnum

else:

    class StrEnum(str, Enum):

        def __str__(self) -> str:
            return str.__str__(self)


def gen_strenum_validator(
    enum_type: type[EnumT],
) -> Callable[[EnumT | str | Any], EnumT]:
    """A before validator generator that converts input value into enum
    before passing it to pydantic validator.

    NOTE: field with StrEnum type cannot pass strict validation if input is str.
    """

    def _inner(value: EnumT | str | Any) -> EnumT:
        assert isinstance(
            value, (enum_type, str)
        ), f"{value=} should be {enum_type} or str type"
        return enum_type(value)

    return _inner
