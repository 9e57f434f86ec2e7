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

import time
from typing import Callable, Optional

NANOS_PER_MILLI = 1_000_000
NANOS_PER_SECOND = 1_000_000_000


class Timer:

    def __init__(self, nano_clock: Optional[Callable[[], int]] = None):
        """
        Create a stopped Timer.

        :param nano_clock: Optional nanosecond clock function. Defaults to time.perf_counter_ns
        """
        self.nano_clock = nano_clock if nano_clock is not None else time.perf_counter_ns
        self.start_time: Optional[int] = None
        self.end_time: Optional[int] = None

    def start(self) -> "Timer":
        self.start_time = self.nano_clock()
        self.end_time = None
        return self

    def stop(self) -> int:
        """
        Freeze the timer.

        :return: Elapsed nanoseconds between start and stop
        """
        if self.start_time is None:
            raise RuntimeError("Timer was never started")
        self.end_time = self.nano_clock()
        return self.elapsed_nanos()

    def elapsed_nanos(self) -> int:
        if self.start_time is None:
            raise RuntimeError("Timer was never started")
        end = self.end_time if self.end_time is not None else self.nano_clock()
        return end - self.start_time

    def elapsed_millis(self) -> float:
        """
        Get elapsed time in milliseconds.

        :return: Elapsed time in milliseconds
        """
        return self._elapsed(NANOS_PER_MILLI)

    def elapsed_seconds(self) -> float:
        """
        Get elapsed time in seconds.

        :return: Elapsed time in seconds
        """
        return self._elapsed(NANOS_PER_SECOND)

    def _elapsed(self, nanos_per_unit: int) -> float:
        return self.elapsed_nanos() / float(nanos_per_unit)
