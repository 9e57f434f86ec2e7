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

from typing import List, NamedTuple


class BlockRange(NamedTuple):
    """Half-open range of block indexes [first_block, end_block)."""
    first_block: int
    end_block: int

    @property
    def block_count(self) -> int:
        return self.end_block - self.first_block


def partition_blocks(total_blocks: int, parts: int) -> List[BlockRange]:
    """
    Split total_blocks into at most `parts` contiguous, non-empty ranges.

    Earlier ranges receive the remainder, so sizes differ by at most one.

    :param total_blocks: number of blocks to distribute
    :param parts: requested number of ranges
    :return: the ranges in file order
    """
    if total_blocks <= 0 or parts <= 0:
        return []

    parts = min(parts, total_blocks)
    base, remainder = divmod(total_blocks, parts)

    ranges = []
    start = 0
    for index in range(parts):
        size = base + (1 if index < remainder else 0)
        ranges.append(BlockRange(start, start + size))
        start += size

    return ranges
