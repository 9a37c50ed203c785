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

r"""Base types, errors, and output format inference."""

import os
from typing import Any
from typing import Mapping
from typing import Optional
from typing import Sequence
from typing import Type
from typing import Union

import colorama

try:
    from typing import TypeAlias
except ImportError:  # pragma: no cover
    TypeAlias = Any  # Python < 3.10

AnyBytes: TypeAlias = Union[bytes, bytearray, memoryview]
AnyPath: TypeAlias = Union[bytes, bytearray, str, os.PathLike]
EllipsisType: TypeAlias = Type['Ellipsis']

FILE_EXT: Mapping[str, Sequence[str]] = {
    'ihex': [
        # https://en.wikipedia.org/wiki/Intel_HEX
        '.hex', '.ihex', '.ihx', '.ihe', '.mcs', '.int',
        # Platform specific:
        '.h86', '.a43', '.a90',
    ],
    'binary': [
        '.bin', '.raw', '.dat', '.img',
    ],
}
r"""Output format inference table.

This is an ordered mapping, where the first format matching a file extension
has top priority."""

TOKEN_COLOR_CODES: Mapping[str, str] = {
    '':         colorama.Style.RESET_ALL,
    '<':        colorama.Style.RESET_ALL,
    '>':        colorama.Style.RESET_ALL,
    'address':  colorama.Fore.RED,
    'begin':    colorama.Fore.YELLOW,
    'checksum': colorama.Fore.MAGENTA,
    'count':    colorama.Fore.BLUE,
    'data':     colorama.Fore.CYAN,
    'dataalt':  colorama.Fore.LIGHTCYAN_EX,
    'end':      colorama.Style.RESET_ALL,
    'tag':      colorama.Fore.GREEN,
}
r"""ANSI color codes for each possible token type."""


class IhexError(ValueError):
    r"""Base class of all the Intel HEX codec errors."""


class MalformedHex(IhexError):
    r"""Invalid hexadecimal digit string."""


class MalformedRecord(IhexError):
    r"""Structural defect of a record line.

    Args:
        message (str):
            Description of the defect.

        line_number (int):
            1-based line number within the source, if known.
    """

    def __init__(self, message: str, line_number: Optional[int] = None):

        self.message: str = message
        self.line_number: Optional[int] = line_number
        if line_number is None:
            text = message
        else:
            text = f'line {line_number}: {message}'
        super().__init__(text)


class ChecksumMismatch(IhexError):
    r"""Record checksum verification failure.

    Args:
        line_number (int):
            1-based line number within the source, if known.

        expected (int):
            Checksum byte found within the record line.

        actual (int):
            Checksum byte computed from the record fields.
    """

    def __init__(self, line_number: Optional[int], expected: int, actual: int):

        self.line_number: Optional[int] = line_number
        self.expected: int = expected
        self.actual: int = actual
        super().__init__(f'line {line_number}: checksum mismatch: '
                         f'expected 0x{expected:02X}, computed 0x{actual:02X}')


class ChecksumPatchError(IhexError):
    r"""Patching the checksum changed the length of a record line."""


class RegionLengthMismatch(IhexError):
    r"""Region data size does not match its address range.

    This is an internal invariant violation of the region builder.
    """

    def __init__(self, start: int, end: int, size: int):

        self.start: int = start
        self.end: int = end
        self.size: int = size
        super().__init__(f'region [0x{start:X}, 0x{end:X}) holds {size} bytes, '
                         f'expected {end - start}')


class InsufficientDataForEndianSwap(IhexError):
    r"""Hex digit string length is not a multiple of 16-bit words."""

    def __init__(self, length: int, line_number: Optional[int] = None):

        self.length: int = length
        self.line_number: Optional[int] = line_number
        text = f'not enough data to swap endianness: {length} hex digits'
        if line_number is not None:
            text = f'line {line_number}: {text}'
        super().__init__(text)


class UnknownOutputExtension(IhexError):
    r"""Output format not found within :data:`FILE_EXT`.

    Args:
        extension (str):
            File extension of the output path.

        format_name (str):
            Explicitly requested format name, if any.
    """

    def __init__(self, extension: str, format_name: Optional[str] = None):

        self.extension: str = extension
        self.format_name: Optional[str] = format_name
        if format_name is None:
            super().__init__(f'extension not found: {extension!r}')
        else:
            super().__init__(f'unknown format: {format_name!r}')


def colorize_tokens(
    tokens: Mapping[str, str],
    altdata: bool = True,
) -> Mapping[str, str]:
    r"""Prepends ANSI color codes to record field tokens.

    For each token within `tokens`, its key is used to look up the ANSI color
    code from :data:`TOKEN_COLOR_CODES`.
    The retrieved code is prepended to the token.
    All the modified tokens are then collected and returned.

    Args:
        tokens (dict):
            A mapping of each token key name to token string.

        altdata (bool):
            If true, it alternates each byte (two hex digits) between the ANSI
            color codes mapped with keys ``data`` (even byte index) and
            ``dataalt`` (odd byte index).
            If false, only the ``data`` code is prepended.

    Returns:
        dict: `tokens` with prepended ANSI color codes.

    Examples:
        >>> from ihexcodec.base import colorize_tokens
        >>> colorized = colorize_tokens({'begin': ':', 'data': 'AABB'})
        >>> colorized['data']
        '\x1b[36mAA\x1b[96mBB'
    """

    codes = TOKEN_COLOR_CODES
    colorized = {}
    colorized.setdefault('<', codes['<'])

    for key, value in tokens.items():
        if key not in codes:
            key = ''
        if value:
            code = codes[key]

            if key == 'data' and altdata:
                altcode = codes['dataalt']
                parts = []

                for i in range(0, len(value), 2):
                    parts.append(altcode if i & 2 else code)
                    parts.append(value[i:(i + 2)])

                colorized[key] = ''.join(parts)
            else:
                colorized[key] = code + value

    colorized.setdefault('>', codes['>'])
    return colorized


def guess_format_name(file_path: Union[str, os.PathLike]) -> str:
    r"""Guesses the output format name.

    It analyzes the file extension by `file_path` against all the formats
    listed within :data:`FILE_EXT`.
    The first format to match the extension is returned.

    Args:
        file_path (str):
            File path to analyze.

    Returns:
        str: Format name within :data:`FILE_EXT`.

    Raises:
        :class:`UnknownOutputExtension`: Cannot guess the output format.

    Examples:
        >>> from ihexcodec.base import guess_format_name
        >>> guess_format_name('firmware.hex')
        'ihex'
        >>> guess_format_name('FIRMWARE.BIN')
        'binary'
        >>> guess_format_name('firmware.elf')
        Traceback (most recent call last):
            ...
        ihexcodec.base.UnknownOutputExtension: extension not found: '.elf'
    """

    file_ext = os.path.splitext(os.fspath(file_path))[1]
    file_ext_lower = file_ext.lower()

    for name, extensions in FILE_EXT.items():
        if file_ext_lower in extensions:
            return name

    raise UnknownOutputExtension(file_ext)
