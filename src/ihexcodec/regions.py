# Copyright (c) 2013-2025, Andrea Zoppi
# All rights reserved.
#
# Redistribution and use in source and binary forms, with or without
# modification, are permitted provided that the following conditions are met:
#
# 1. Redistributions of source code must retain the above copyright notice,
#    this list of conditions and the following disclaimer.
#
# 2. Redistributions in binary form must reproduce the above copyright
#    notice, this list of conditions and the following disclaimer in the
#    documentation and/or other materials provided with the distribution.
#
# THIS SOFTWARE IS PROVIDED BY THE COPYRIGHT HOLDERS AND CONTRIBUTORS "AS IS"
# AND ANY EXPRESS OR IMPLIED WARRANTIES, INCLUDING, BUT NOT LIMITED TO, THE
# IMPLIED WARRANTIES OF MERCHANTABILITY AND FITNESS FOR A PARTICULAR PURPOSE
# ARE DISCLAIMED. IN NO EVENT SHALL THE COPYRIGHT HOLDER OR CONTRIBUTORS BE
# LIABLE FOR ANY DIRECT, INDIRECT, INCIDENTAL, SPECIAL, EXEMPLARY, OR
# CONSEQUENTIAL DAMAGES (INCLUDING, BUT NOT LIMITED TO, PROCUREMENT OF
# SUBSTITUTE GOODS OR SERVICES; LOSS OF USE, DATA, OR PROFITS; OR BUSINESS
# INTERRUPTION) HOWEVER CAUSED AND ON ANY THEORY OF LIABILITY, WHETHER IN
# CONTRACT, STRICT LIABILITY, OR TORT (INCLUDING NEGLIGENCE OR OTHERWISE)
# ARISING IN ANY WAY OUT OF THE USE OF THIS SOFTWARE, EVEN IF ADVISED OF THE
# POSSIBILITY OF SUCH DAMAGE.

r"""Memory regions and their construction from records.

A *memory region* is a maximal contiguous address range reconstructed from
consecutive data records with no address gap.

Regions are built by folding the record sequence with :func:`step`, a pure
transition function over an immutable :class:`FoldState`.
"""

import functools
import logging
from typing import Any
from typing import Iterable
from typing import List
from typing import NamedTuple
from typing import Optional
from typing import Tuple

from .base import AnyBytes
from .base import RegionLengthMismatch
from .records import IhexRecord
from .records import IhexTag

logger = logging.getLogger(__name__)


class MemoryRegion:
    r"""Contiguous memory region.

    Attributes:
        start (int):
            Inclusive start address.

        end (int):
            Exclusive end address.

        data (bytes):
            Region contents, ``end - start`` bytes long.

    Raises:
        :class:`RegionLengthMismatch`: Data size does not match the address
            range.

    Examples:
        >>> from ihexcodec.regions import MemoryRegion
        >>> region = MemoryRegion(0x100, 0x103, b'abc')
        >>> region.size
        3
        >>> 0x102 in region
        True
        >>> region.to_block()
        [256, b'abc']
    """

    __slots__ = ('start', 'end', 'data')

    def __contains__(self, address: int) -> bool:

        return self.start <= address < self.end

    def __eq__(self, other: Any) -> bool:

        if not isinstance(other, MemoryRegion):
            return NotImplemented

        return self.as_tuple() == other.as_tuple()

    def __hash__(self) -> int:

        return hash(self.as_tuple())

    def __init__(self, start: int, end: int, data: AnyBytes):

        start = start.__index__()
        end = end.__index__()
        data = bytes(data)

        if not 0 <= start <= end:
            raise ValueError('invalid address range')

        if len(data) != end - start:
            raise RegionLengthMismatch(start, end, len(data))

        self.start: int = start
        self.end: int = end
        self.data: bytes = data

    def __len__(self) -> int:

        return self.end - self.start

    def __repr__(self) -> str:

        return f'<{type(self).__name__} [0x{self.start:X}, 0x{self.end:X}) size={self.size}>'

    def as_tuple(self) -> Tuple[int, int, bytes]:

        return self.start, self.end, self.data

    @classmethod
    def from_block(cls, start: int, data: AnyBytes) -> 'MemoryRegion':
        r"""Creates a region from its start address and contents.

        Examples:
            >>> from ihexcodec.regions import MemoryRegion
            >>> MemoryRegion.from_block(0x10, b'xyz')
            <MemoryRegion [0x10, 0x13) size=3>
        """

        return cls(start, start + len(data), data)

    @property
    def size(self) -> int:
        r"""int: Data size, in bytes."""

        return self.end - self.start

    def to_block(self) -> List[Any]:
        r"""Converts into a ``[start, data]`` block, as used by *bytesparse*."""

        return [self.start, self.data]


class FoldState(NamedTuple):
    r"""Region builder accumulator.

    Attributes:
        offset (int):
            Extended address base, added to the address of data records.

        ela_just_set (bool):
            An *Extended Linear Address* record was the last extension record,
            so that a following *Extended Segment Address* record adds to
            :attr:`offset` instead of replacing it.

        regions (tuple):
            Closed regions, as a ``(region, previous)`` linked list with the
            latest region first; see :func:`closed_regions`.

        start (int):
            Start address of the open region; ``None`` if no region is open.

        end (int):
            Running end address of the open region.

        chunks (tuple):
            Data chunks of the open region, as a ``(data, previous)`` linked
            list with the latest chunk first.

        done (bool):
            The *End Of File* record was found.
    """

    offset: int = 0
    ela_just_set: bool = False
    regions: Optional[Tuple[MemoryRegion, Any]] = None
    start: Optional[int] = None
    end: int = 0
    chunks: Optional[Tuple[bytes, Any]] = None
    done: bool = False


def _unwind(node: Optional[Tuple[Any, Any]]) -> List[Any]:

    items = []
    while node is not None:
        item, node = node
        items.append(item)
    items.reverse()
    return items


def close_region(state: FoldState) -> MemoryRegion:
    r"""Finalizes the open region of a fold state.

    Args:
        state (:class:`FoldState`):
            Fold state with an open region.

    Returns:
        :class:`MemoryRegion`: Finalized region.

    Raises:
        :class:`RegionLengthMismatch`: Collected data size does not match the
            tracked address range.
    """

    data = b''.join(_unwind(state.chunks))
    return MemoryRegion(state.start, state.end, data)


def closed_regions(state: FoldState) -> List[MemoryRegion]:
    r"""Lists the closed regions of a fold state, in construction order.

    The open region, if any, is not included.
    """

    return _unwind(state.regions)


def step(state: FoldState, record: IhexRecord) -> FoldState:
    r"""Region builder transition function.

    Args:
        state (:class:`FoldState`):
            Current state.

        record (:class:`IhexRecord`):
            Next record.

    Returns:
        :class:`FoldState`: Next state.

    Examples:
        >>> from ihexcodec.records import IhexRecord
        >>> from ihexcodec.regions import FoldState, step
        >>> ela = IhexRecord.create_extended_linear_address(0x0001)
        >>> state = step(FoldState(), ela)
        >>> hex(state.offset), state.ela_just_set
        ('0x10000', True)
        >>> esa = IhexRecord.create_extended_segment_address(0x0010)
        >>> hex(step(state, esa).offset)
        '0x10100'
        >>> hex(step(FoldState(), esa).offset)
        '0x100'
    """

    if state.done:
        return state

    tag = record.tag

    if tag == IhexTag.DATA:
        address = state.offset + record.address

        if state.start is None:
            state = state._replace(start=address, end=address)

        elif address != state.end:  # gap
            region = close_region(state)
            state = state._replace(regions=(region, state.regions),
                                   start=address, end=address, chunks=None)

        return state._replace(end=(state.end + record.count),
                              chunks=(record.data, state.chunks))

    elif tag == IhexTag.END_OF_FILE:
        return state._replace(done=True)

    elif tag == IhexTag.EXTENDED_SEGMENT_ADDRESS:
        segment_offset = int.from_bytes(record.data[:2], byteorder='big') * 16

        if state.ela_just_set:
            return state._replace(offset=(state.offset + segment_offset),
                                  ela_just_set=False)
        else:
            return state._replace(offset=segment_offset)

    elif tag == IhexTag.EXTENDED_LINEAR_ADDRESS:
        extension = int.from_bytes(record.data[:2], byteorder='big')
        return state._replace(offset=(extension << 16), ela_just_set=True)

    else:  # start address records do not carry memory content
        return state


def build_regions(records: Iterable[IhexRecord]) -> List[MemoryRegion]:
    r"""Builds memory regions from records.

    Records are folded in sequence via :func:`step`; a new region begins
    whenever the absolute address of a data record does not match the running
    end of the current region.
    Records following the *End Of File* record are ignored.

    Args:
        records (list of :class:`IhexRecord`):
            Records, in file order.

    Returns:
        list of :class:`MemoryRegion`: Regions, in construction order.

    Raises:
        :class:`RegionLengthMismatch`: A data record count does not match its
            payload size.

    Examples:
        >>> from ihexcodec.records import IhexRecord
        >>> from ihexcodec.regions import build_regions
        >>> records = [
        ...     IhexRecord.create_data(0x0000, b'abc'),
        ...     IhexRecord.create_data(0x0003, b'def'),
        ...     IhexRecord.create_data(0x0010, b'xyz'),
        ...     IhexRecord.create_end_of_file(),
        ... ]
        >>> [region.to_block() for region in build_regions(records)]
        [[0, b'abcdef'], [16, b'xyz']]
    """

    state = functools.reduce(step, records, FoldState())
    regions = closed_regions(state)

    if state.start is not None:
        regions.append(close_region(state))

    logger.debug('built %d regions, offset 0x%X', len(regions), state.offset)
    return regions
