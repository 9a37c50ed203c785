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

r"""Hexadecimal codec and checksum helpers."""

import binascii
import re
from typing import Any
from typing import Iterator
from typing import Mapping
from typing import Optional
from typing import Union

from .base import AnyBytes
from .base import ChecksumPatchError
from .base import InsufficientDataForEndianSwap
from .base import MalformedHex

SUFFIX_SCALE: Mapping[str, int] = {
    'k': 2**10,
    'm': 2**20,
    'g': 2**30,

    'kib': 2**10,
    'mib': 2**20,
    'gib': 2**30,

    'kb': 10**3,
    'mb': 10**6,
    'gb': 10**9,
}
r"""Integer suffix to scale factor."""

INT_REGEX = re.compile(r'^\s*(?P<sign>[+-]?)\s*'
                       r'(?P<prefix>(0x|0b|0o|0)?)'
                       r'(?P<value>[a-f0-9]+)'
                       r'(?P<suffix>h?)'
                       r'\s*(?P<scale>('
                       r'k|m|g|'
                       r'kib|mib|gib|'
                       r'kb|mb|gb'
                       r')?)\s*$')

HEX_DIGITS_REGEX = re.compile(r'[0-9A-Fa-f]*')


def chop(
    vector: AnyBytes,
    window: int,
) -> Iterator[AnyBytes]:
    r"""Chops a vector.

    Iterates through the vector grouping its items into windows.

    Args:
        vector (items):
            Vector to chop.

        window (int):
            Window length.

    Yields:
        items: `vector` slices of up to `window` elements.

    Examples:
        >>> list(chop(b'ABCDEFG', 2))
        [b'AB', b'CD', b'EF', b'G']

        >>> ':'.join(chop('ABCDEFG', 2))
        'AB:CD:EF:G'
    """
    window = int(window)
    if window <= 0:
        raise ValueError('non-positive window')

    for i in range(0, len(vector), window):
        yield vector[i:(i + window)]


def bytes_to_hex(
    bytestr: AnyBytes,
    upper: bool = True,
    sep: Optional[str] = None,
) -> str:
    r"""Converts raw bytes into a hexadecimal string.

    Args:
        bytestr (bytes):
            Source byte string.

        upper (bool):
            Uppercase hexadecimal string.

        sep (str):
            Optional byte separator.

    Returns:
        str: Hexadecimal string.

    Examples:
        >>> bytes_to_hex(b'\xAA\xBB\xCC')
        'AABBCC'
        >>> bytes_to_hex(b'\xAA\xBB\xCC', sep=' ')
        'AA BB CC'
        >>> bytes_to_hex(b'\xAA\xBB\xCC', upper=False)
        'aabbcc'
    """

    if sep:
        hexstr = binascii.hexlify(bytestr, sep).decode('ascii')
    else:
        hexstr = binascii.hexlify(bytestr).decode('ascii')

    if upper:
        hexstr = hexstr.upper()

    return hexstr


def hex_to_bytes(hexstr: str) -> bytes:
    r"""Converts a hexadecimal string into raw bytes.

    Args:
        hexstr (str):
            Source hexadecimal string, with an even number of digits.

    Returns:
        bytes: Raw byte string.

    Raises:
        :class:`MalformedHex`: Odd length, or invalid hexadecimal digits.

    Examples:
        >>> hex_to_bytes('AABBcc')
        b'\xaa\xbb\xcc'
        >>> hex_to_bytes('ABC')
        Traceback (most recent call last):
            ...
        ihexcodec.base.MalformedHex: odd number of hex digits: 3
    """

    if len(hexstr) % 2:
        raise MalformedHex(f'odd number of hex digits: {len(hexstr)}')

    if not HEX_DIGITS_REGEX.fullmatch(hexstr):
        raise MalformedHex(f'invalid hex digits: {hexstr!r}')

    return binascii.unhexlify(hexstr)


def checksum(hex_digits: str) -> int:
    r"""Computes the Intel HEX checksum of a hexadecimal string.

    The checksum is the two's complement of the sum of all the bytes, modulo
    256.

    Args:
        hex_digits (str):
            Record fields as hexadecimal digits, without the leading ``:``
            and without the checksum field.

    Returns:
        int: Checksum byte.

    Examples:
        >>> hex(checksum('0300300002337A'))
        '0x1e'
        >>> hex(checksum('00000001'))
        '0xff'
    """

    total = sum(hex_to_bytes(hex_digits))
    return (0x100 - (total & 0xFF)) & 0xFF


def patch_checksum(line: str) -> str:
    r"""Replaces the checksum of a record line.

    The checksum is computed over all the characters between the leading
    ``:`` and the trailing checksum field, which is replaced.

    Args:
        line (str):
            Record line with a placeholder checksum field.

    Returns:
        str: Record line with the actual checksum field.

    Raises:
        :class:`ChecksumPatchError`: The patched line length differs.

    Examples:
        >>> patch_checksum(':0300300002337AFF')
        ':0300300002337A1E'
    """

    fields = line[1:-2]
    patched = f':{fields}{checksum(fields):02X}'

    if len(patched) != len(line):
        raise ChecksumPatchError(f'checksum patch changed line length: {line!r}')

    return patched


def swap_endian_hex(block: str) -> str:
    r"""Swaps the byte order of each 16-bit word of a hexadecimal string.

    Args:
        block (str):
            Hexadecimal string, as groups of 4 digits.

    Returns:
        str: Hexadecimal string with swapped bytes within each group.

    Raises:
        :class:`InsufficientDataForEndianSwap`: Length is not a multiple of 4.

    Examples:
        >>> swap_endian_hex('11223344')
        '22114433'
        >>> swap_endian_hex('')
        ''
    """

    length = len(block)
    if length % 4:
        raise InsufficientDataForEndianSwap(length)

    return ''.join(group[2:4] + group[0:2] for group in chop(block, 4))


def parse_int(
    value: Union[str, Any],
) -> Optional[int]:
    r"""Parses an integer.

    Args:
        value:
            A generic object to convert to integer.
            In case `value` is a :obj:`str` (case-insensitive), it can be
            either prefixed with ``0x`` or postfixed with ``h`` to convert
            from a hexadecimal representation, or prefixed with ``0b`` from
            binary; a prefix of only ``0`` converts from octal.
            A further suffix applies a scale factor as per
            :data:`SUFFIX_SCALE`.
            A ``None`` value evaluates as ``None``.
            Any other object class will call the standard :func:`int`.

    Returns:
        int: None if `value` is ``None``, its integer conversion otherwise.

    Examples:
        >>> parse_int('0x10')
        16

        >>> parse_int('1k')
        1024

        >>> parse_int(None) is None
        True
    """
    if value is None:
        return None

    elif isinstance(value, str):
        value = value.lower()
        m = INT_REGEX.match(value)
        if not m:
            raise ValueError(f'invalid syntax: {value!r}')
        g = m.groupdict()
        sign = g['sign']
        prefix = g['prefix']
        value = g['value']
        suffix = g['suffix']
        scale = g['scale']
        if prefix in ('0b', '0o') and suffix == 'h':
            raise ValueError(f'invalid syntax: {value!r}')

        if prefix == '0x' or suffix == 'h':
            i = int(value, 16)
        elif prefix == '0b':
            i = int(value, 2)
        elif prefix == '0' or prefix == '0o':
            i = int(value, 8)
        else:
            i = int(value, 10)

        i *= SUFFIX_SCALE.get(scale or '', 1)

        if sign == '-':
            i = -i

        return i

    else:
        return int(value)
