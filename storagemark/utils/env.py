# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
# http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

import os
from typing import TypeVar, Callable, Optional

T = TypeVar('T')

_TRUE_VALUES = ('1', 'true', 'yes', 'on')


class Env:

    def __init__(self):
        raise RuntimeError("Env class should not be instantiated")

    @staticmethod
    def get_long(key: str, default_value: Optional[int]) -> Optional[int]:
        return Env.get(key, int, default_value)

    @staticmethod
    def get_double(key: str, default_value: Optional[float]) -> Optional[float]:
        return Env.get(key, float, default_value)

    @staticmethod
    def get_bool(key: str, default_value: bool) -> bool:
        return Env.get(key, lambda value: value.strip().lower() in _TRUE_VALUES, default_value)

    @staticmethod
    def get_list(key: str, default_value: Optional[list] = None) -> Optional[list]:
        return Env.get(
            key,
            lambda value: [item.strip() for item in value.split(',') if item.strip()],
            default_value
        )

    @staticmethod
    def get(key: str, function: Callable[[str], T], default_value: T) -> T:
        env_value = os.getenv(key)
        if env_value is not None:
            try:
                return function(env_value)
            except (ValueError, TypeError):
                return default_value
        return default_value
