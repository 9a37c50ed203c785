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

r"""Intel HEX records.

See Also:
    `<https://en.wikipedia.org/wiki/Intel_HEX>`_
"""

import enum
import sys
from typing import IO
from typing import Any
from typing import Mapping
from typing import Optional
from typing import Type
from typing import Union

from .base import AnyBytes
from .base import ChecksumMismatch
from .base import EllipsisType
from .base import InsufficientDataForEndianSwap
from .base import MalformedHex
from .base import MalformedRecord
from .base import colorize_tokens
from .utils import bytes_to_hex
from .utils import checksum
from .utils import hex_to_bytes
from .utils import patch_checksum
from .utils import swap_endian_hex

HEADER_SIZE: int = 9
r"""Characters of the fixed record header, ``:LLAAAATT``."""

EOF_LINE: str = ':00000001FF'
r"""The End Of File record line."""


class IhexTag(enum.IntEnum):
    r"""Intel HEX record type."""

    DATA = 0
    r"""Memory contents at a 16-bit address."""

    END_OF_FILE = 1
    r"""Terminates the record stream."""

    EXTENDED_SEGMENT_ADDRESS = 2
    r"""Segment base, multiplied by 16."""

    START_SEGMENT_ADDRESS = 3
    r"""CS:IP entry point."""

    EXTENDED_LINEAR_ADDRESS = 4
    r"""Upper 16 bits of the 32-bit address."""

    START_LINEAR_ADDRESS = 5
    r"""32-bit entry point."""

    def is_data(self) -> bool:
        r"""Checks for the data record type.

        Returns:
            bool: Data record type.

        Examples:
            >>> from ihexcodec.records import IhexTag
            >>> IhexTag.DATA.is_data()
            True
            >>> IhexTag.END_OF_FILE.is_data()
            False
        """

        return self == self.DATA

    def is_eof(self) -> bool:
        r"""Checks for the *End Of File* record type.

        Returns:
            bool: *End Of File* record type.

        Examples:
            >>> from ihexcodec.records import IhexTag
            >>> IhexTag.END_OF_FILE.is_eof()
            True
            >>> IhexTag.DATA.is_eof()
            False
        """

        return self == self.END_OF_FILE

    def is_extension(self) -> bool:
        r"""Checks for either extended address record type.

        Both *Extended Segment Address* and *Extended Linear Address* change
        the base address of the following data records.

        Returns:
            bool: Extended address record type.

        Examples:
            >>> from ihexcodec.records import IhexTag
            >>> IhexTag.EXTENDED_LINEAR_ADDRESS.is_extension()
            True
            >>> IhexTag.EXTENDED_SEGMENT_ADDRESS.is_extension()
            True
            >>> IhexTag.DATA.is_extension()
            False
        """

        return self in (IhexTag.EXTENDED_SEGMENT_ADDRESS, IhexTag.EXTENDED_LINEAR_ADDRESS)

    def is_start(self) -> bool:
        r"""Checks for either start address record type.

        Returns:
            bool: Start address record type.

        Examples:
            >>> from ihexcodec.records import IhexTag
            >>> IhexTag.START_LINEAR_ADDRESS.is_start()
            True
            >>> IhexTag.START_SEGMENT_ADDRESS.is_start()
            True
            >>> IhexTag.DATA.is_start()
            False
        """

        return self in (IhexTag.START_SEGMENT_ADDRESS, IhexTag.START_LINEAR_ADDRESS)


def format_line(tag: IhexTag, address: int, data: AnyBytes) -> str:
    r"""Generates a record line.

    The line is built with a placeholder checksum, then patched via
    :func:`ihexcodec.utils.patch_checksum`.

    Args:
        tag (:class:`IhexTag`):
            Record type.

        address (int):
            16-bit address field.

        data (bytes):
            Payload, up to 255 bytes.

    Returns:
        str: Record line, without line terminator.

    Examples:
        >>> from ihexcodec.records import IhexTag, format_line
        >>> format_line(IhexTag.DATA, 0x0030, b'\x02\x33\x7A')
        ':0300300002337A1E'
        >>> format_line(IhexTag.EXTENDED_LINEAR_ADDRESS, 0, b'\x00\x01')
        ':020000040001F9'
    """

    line = f':{len(data):02X}{address:04X}{tag:02X}{bytes_to_hex(data)}FF'
    return patch_checksum(line)


class IhexRecord:
    r"""Intel HEX record object.

    A record is the decoded content of a single physical line.

    Attributes:
        tag (:class:`IhexTag`):
            Record type.

        address (int):
            16-bit address field; its meaning depends on :attr:`tag`.

        data (bytes):
            Payload bytes.

        count (int):
            Payload byte count, as stated by the record itself.

        checksum (int):
            Checksum byte, as stated by the record itself.

        line (int):
            1-based line number within the parsed source, if any.

    Args:
        tag (:class:`IhexTag`):
            See :attr:`tag` attribute.

        address (int):
            See :attr:`address` attribute.

        data (bytes):
            See :attr:`data` attribute.

        count (int):
            See :attr:`count` attribute.
            ``Ellipsis`` initializes :attr:`count` via :meth:`compute_count`.

        checksum (int):
            See :attr:`checksum` attribute.
            ``Ellipsis`` initializes :attr:`checksum` via
            :meth:`compute_checksum`.

        line (int):
            See :attr:`line` attribute.

        validate (bool):
            If true, :meth:`validate` is called upon initialization.
    """

    Tag: Type[IhexTag] = IhexTag

    def __eq__(self, other: Any) -> bool:

        if not isinstance(other, IhexRecord):
            return NotImplemented

        return (self.tag == other.tag and
                self.address == other.address and
                self.data == other.data and
                self.count == other.count and
                self.checksum == other.checksum)

    def __init__(
        self,
        tag: IhexTag,
        address: int = 0,
        data: AnyBytes = b'',
        count: Union[int, EllipsisType] = Ellipsis,
        checksum: Union[int, EllipsisType] = Ellipsis,
        line: Optional[int] = None,
        validate: bool = True,
    ):

        self.tag: IhexTag = self.Tag(tag)
        self.address: int = address.__index__()
        self.data: bytes = bytes(data)
        self.line: Optional[int] = line

        if count is Ellipsis:
            self.count: int = self.compute_count()
        else:
            self.count = count.__index__()

        if checksum is Ellipsis:
            self.checksum: int = self.compute_checksum()
        else:
            self.checksum = checksum.__index__()

        if validate:
            self.validate()

    def __repr__(self) -> str:

        return (f'{type(self).__name__}(tag={self.tag.name}, '
                f'address=0x{self.address:04X}, data={self.data!r}, '
                f'count={self.count}, checksum=0x{self.checksum:02X}, '
                f'line={self.line!r})')

    def __str__(self) -> str:

        return self.to_str()

    def compute_checksum(self) -> int:
        r"""Computes the checksum field value.

        Returns:
            int: Two's complement of the sum of the record fields, modulo 256.

        Examples:
            >>> from ihexcodec.records import IhexRecord
            >>> record = IhexRecord.create_data(0x0030, b'\x02\x33\x7A')
            >>> hex(record.compute_checksum())
            '0x1e'
        """

        count = self.count & 0xFF
        address = self.address & 0xFFFF
        sum_address = (address >> 8) + (address & 0xFF)
        sum_data = sum(self.data)
        checksum = (count + sum_address + (self.tag & 0xFF) + sum_data)
        checksum = (0x100 - (checksum & 0xFF)) & 0xFF
        return checksum

    def compute_count(self) -> int:

        return len(self.data)

    @classmethod
    def create_data(cls, address: int, data: AnyBytes) -> 'IhexRecord':
        r"""Creates a data record.

        Args:
            address (int):
                16-bit address field.

            data (bytes):
                Payload, up to 255 bytes.

        Returns:
            :class:`IhexRecord`: Data record object.

        Examples:
            >>> from ihexcodec.records import IhexRecord
            >>> str(IhexRecord.create_data(0x1234, b'abc'))
            ':0312340061626391'
        """

        address = address.__index__()
        if not 0 <= address <= 0xFFFF:
            raise ValueError('address overflow')

        if len(data) > 0xFF:
            raise ValueError('data size overflow')

        return cls(cls.Tag.DATA, address=address, data=data)

    @classmethod
    def create_end_of_file(cls) -> 'IhexRecord':
        r"""Creates an End Of File record.

        Examples:
            >>> from ihexcodec.records import IhexRecord
            >>> str(IhexRecord.create_end_of_file())
            ':00000001FF'
        """

        return cls(cls.Tag.END_OF_FILE)

    @classmethod
    def create_extended_linear_address(cls, extension: int) -> 'IhexRecord':
        r"""Creates an Extended Linear Address record.

        Args:
            extension (int):
                Bits 16-31 of the address offset.

        Returns:
            :class:`IhexRecord`: Extended Linear Address record object.

        Examples:
            >>> from ihexcodec.records import IhexRecord
            >>> str(IhexRecord.create_extended_linear_address(0x1234))
            ':020000041234B4'
        """

        extension = extension.__index__()
        if not 0 <= extension <= 0xFFFF:
            raise ValueError('extension overflow')

        data = extension.to_bytes(2, byteorder='big')
        return cls(cls.Tag.EXTENDED_LINEAR_ADDRESS, data=data)

    @classmethod
    def create_extended_segment_address(cls, segment: int) -> 'IhexRecord':
        r"""Creates an Extended Segment Address record.

        Args:
            segment (int):
                Segment number; the address offset is 16 times its value.

        Returns:
            :class:`IhexRecord`: Extended Segment Address record object.

        Examples:
            >>> from ihexcodec.records import IhexRecord
            >>> str(IhexRecord.create_extended_segment_address(0x1234))
            ':020000021234B6'
        """

        segment = segment.__index__()
        if not 0 <= segment <= 0xFFFF:
            raise ValueError('segment overflow')

        data = segment.to_bytes(2, byteorder='big')
        return cls(cls.Tag.EXTENDED_SEGMENT_ADDRESS, data=data)

    @classmethod
    def create_start_linear_address(cls, address: int) -> 'IhexRecord':
        r"""Creates a Start Linear Address record.

        Examples:
            >>> from ihexcodec.records import IhexRecord
            >>> str(IhexRecord.create_start_linear_address(0x12345678))
            ':0400000512345678E3'
        """

        address = address.__index__()
        if not 0 <= address <= 0xFFFFFFFF:
            raise ValueError('address overflow')

        data = address.to_bytes(4, byteorder='big')
        return cls(cls.Tag.START_LINEAR_ADDRESS, data=data)

    @classmethod
    def create_start_segment_address(cls, address: int) -> 'IhexRecord':
        r"""Creates a Start Segment Address record.

        Examples:
            >>> from ihexcodec.records import IhexRecord
            >>> str(IhexRecord.create_start_segment_address(0x12345678))
            ':0400000312345678E5'
        """

        address = address.__index__()
        if not 0 <= address <= 0xFFFFFFFF:
            raise ValueError('address overflow')

        data = address.to_bytes(4, byteorder='big')
        return cls(cls.Tag.START_SEGMENT_ADDRESS, data=data)

    def data_to_int(self, byteorder: str = 'big', signed: bool = False) -> int:
        r"""Interprets the payload as an integer.

        Examples:
            >>> from ihexcodec.records import IhexRecord
            >>> record = IhexRecord.create_extended_linear_address(0x0800)
            >>> hex(record.data_to_int())
            '0x800'
        """

        return int.from_bytes(self.data, byteorder=byteorder, signed=signed)

    @classmethod
    def parse(
        cls,
        line: str,
        line_number: Optional[int] = None,
        verify_checksum: bool = True,
        swap_endian: bool = False,
    ) -> 'IhexRecord':
        r"""Parses a record line.

        Surrounding whitespace (line terminator included) is ignored, as well
        as any characters following the checksum field.

        Args:
            line (str):
                Record line.

            line_number (int):
                1-based line number, attached to the record and to any
                raised error.

            verify_checksum (bool):
                Compares the stated checksum against the computed one.

            swap_endian (bool):
                Swaps the two bytes of each 16-bit word of the payload.

        Returns:
            :class:`IhexRecord`: Parsed record object.

        Raises:
            :class:`MalformedRecord`: Structural defect.

            :class:`ChecksumMismatch`: Checksum verification failure.

            :class:`InsufficientDataForEndianSwap`: Payload not made of
                16-bit words while swapping.

        Examples:
            >>> from ihexcodec.records import IhexRecord
            >>> record = IhexRecord.parse(':0300300002337A1E')
            >>> record.tag.name, hex(record.address), record.data
            ('DATA', '0x30', b'\x023z')
            >>> IhexRecord.parse(':0300300002337A1F', line_number=7)
            Traceback (most recent call last):
                ...
            ihexcodec.base.ChecksumMismatch: line 7: checksum mismatch: expected 0x1F, computed 0x1E
        """

        line = line.strip()

        if len(line) < HEADER_SIZE:
            raise MalformedRecord('line too short', line_number)

        if line[0] != ':':
            raise MalformedRecord('missing start marker', line_number)

        try:
            count, address_high, address_low, tag_code = hex_to_bytes(line[1:HEADER_SIZE])
        except MalformedHex as exc:
            raise MalformedRecord(str(exc), line_number) from exc

        try:
            tag = cls.Tag(tag_code)
        except ValueError as exc:
            raise MalformedRecord(f'unknown record type: 0x{tag_code:02X}', line_number) from exc

        data_endex = HEADER_SIZE + (count * 2)
        if len(line) < data_endex + 2:
            raise MalformedRecord('line too short for data count', line_number)

        data_hex = line[HEADER_SIZE:data_endex]
        if swap_endian:
            if len(data_hex) % 4:
                raise InsufficientDataForEndianSwap(len(data_hex), line_number)
            data_hex = swap_endian_hex(data_hex)

        try:
            data = hex_to_bytes(data_hex)
            stated = hex_to_bytes(line[data_endex:(data_endex + 2)])[0]
        except MalformedHex as exc:
            raise MalformedRecord(str(exc), line_number) from exc

        if verify_checksum:
            # over the digits as they appear in the line, before any swap
            computed = checksum(line[1:data_endex])
            if computed != stated:
                raise ChecksumMismatch(line_number, stated, computed)

        record = cls(tag,
                     address=((address_high << 8) | address_low),
                     data=data,
                     count=count,
                     checksum=stated,
                     line=line_number,
                     validate=False)
        try:
            record.validate(checksum=False)
        except ValueError as exc:
            raise MalformedRecord(str(exc), line_number) from exc

        return record

    def print(
        self,
        stream: Optional[IO] = None,
        color: bool = False,
        end: str = '\n',
    ) -> 'IhexRecord':
        r"""Prints a record.

        The record is converted into tokens (eventually colorized) then joined
        and written onto a text stream (*stdout* by default).

        Args:
            stream (text IO):
                The stream where the record tokens are printed.
                If ``None``, *stdout* is selected.

            color (bool):
                Tokens are colorized before printing.

            end (str):
                Line terminator.

        Returns:
            :class:`IhexRecord`: *self*.

        Examples:
            >>> from ihexcodec.records import IhexRecord
            >>> _ = IhexRecord.create_data(0x1234, b'abc').print()
            :0312340061626391
        """

        if stream is None:
            stream = sys.stdout
        tokens = self.to_tokens(end=end)
        if color:
            tokens = colorize_tokens(tokens)
        stream.writelines(tokens.values())
        return self

    def to_str(self) -> str:
        r"""Serializes the record.

        Returns:
            str: Record line, without line terminator.
        """

        return ''.join(self.to_tokens(end='').values())

    def to_tokens(self, end: str = '\n') -> Mapping[str, str]:

        return {
            'begin': ':',
            'count': f'{self.count & 0xFF:02X}',
            'address': f'{self.address & 0xFFFF:04X}',
            'tag': f'{self.tag & 0xFF:02X}',
            'data': bytes_to_hex(self.data),
            'checksum': f'{self.checksum & 0xFF:02X}',
            'end': end,
        }

    def update_checksum(self) -> 'IhexRecord':

        self.checksum = self.compute_checksum()
        return self

    def update_count(self) -> 'IhexRecord':

        self.count = self.compute_count()
        return self

    def validate(
        self,
        checksum: bool = True,
        count: bool = True,
    ) -> 'IhexRecord':
        r"""Validates consistency.

        Args:
            checksum (bool):
                Checks the stated checksum against the computed one.

            count (bool):
                Checks the stated count against the payload size.

        Returns:
            :class:`IhexRecord`: *self*.

        Raises:
            ValueError: Invalid attribute.
        """

        if not 0 <= self.count <= 0xFF:
            raise ValueError('count overflow')

        if not 0 <= self.checksum <= 0xFF:
            raise ValueError('checksum overflow')

        if not 0 <= self.address <= 0xFFFF:
            raise ValueError('address overflow')

        data_size = len(self.data)
        if data_size > 0xFF:
            raise ValueError('data size overflow')

        if count and self.count != self.compute_count():
            raise ValueError('wrong count')

        if checksum and self.checksum != self.compute_checksum():
            raise ValueError('wrong checksum')

        tag = self.tag

        if tag.is_data():
            pass

        elif tag.is_start():
            if data_size != 4:
                raise ValueError('start address data size overflow')

        elif tag.is_extension():
            if data_size != 2:
                raise ValueError('extension data size overflow')

        else:  # elif tag.is_eof():
            if data_size:
                raise ValueError('unexpected data')

        return self
