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

r"""Intel HEX document.

A document owns the records of a single logical image, as parsed from a
source, and the memory regions derived from them.
"""

import io
import logging
import os
import sys
from typing import IO
from typing import Any
from typing import Iterable
from typing import List
from typing import NamedTuple
from typing import Optional
from typing import Sequence
from typing import Tuple
from typing import Union

from bytesparse import Memory

from .base import AnyBytes
from .base import AnyPath
from .base import UnknownOutputExtension
from .base import guess_format_name
from .records import EOF_LINE
from .records import IhexRecord
from .records import IhexTag
from .records import format_line
from .regions import MemoryRegion
from .regions import build_regions
from .utils import chop

logger = logging.getLogger(__name__)

ADDRESS_MAX: int = 0xFFFFFFFF
r"""Highest address reachable via *Extended Linear Address* records."""


class DocumentConfig(NamedTuple):
    r"""Document configuration.

    Attributes:
        swap_endian (bool):
            Swaps the two bytes of each 16-bit word of each record payload
            while parsing.

        bytes_per_record (int):
            Maximum payload size of generated data records.

        verify_checksum (bool):
            Verifies the checksum of each parsed record.

        append_eof (bool):
            Terminates generated records with the *End Of File* record.

        newline (str):
            Line terminator of generated records.

    Examples:
        >>> from ihexcodec.document import DocumentConfig
        >>> config = DocumentConfig()
        >>> config.bytes_per_record
        16
        >>> config.replace(bytes_per_record=32).bytes_per_record
        32
    """

    swap_endian: bool = False
    bytes_per_record: int = 16
    verify_checksum: bool = True
    append_eof: bool = True
    newline: str = '\n'

    def replace(self, **changes: Any) -> 'DocumentConfig':
        r"""Derives a validated configuration with some values changed."""

        return self._replace(**changes).validate()

    def validate(self) -> 'DocumentConfig':
        r"""Validates the configuration values.

        Returns:
            :class:`DocumentConfig`: *self*.

        Raises:
            ValueError: Invalid value.
        """

        if not 1 <= self.bytes_per_record <= 0xFF:
            raise ValueError(f'invalid bytes per record: {self.bytes_per_record!r}')

        return self


class IhexDocument:
    r"""Intel HEX document.

    Args:
        source (str):
            Path of the source file, used by :meth:`load`.

        config (:class:`DocumentConfig`):
            Configuration; ``None`` selects the default one.

    Examples:
        >>> from ihexcodec import IhexDocument
        >>> doc = IhexDocument().parse(':0300300002337A1E\n:00000001FF\n')
        >>> [region.to_block() for region in doc.regions]
        [[48, b'\x023z']]
        >>> doc.to_lines()
        [':0300300002337A1E', ':00000001FF']
    """

    def __init__(
        self,
        source: Optional[AnyPath] = None,
        config: Optional[DocumentConfig] = None,
    ):

        if config is None:
            config = DocumentConfig()

        self.source: Optional[AnyPath] = source
        self.config: DocumentConfig = config.validate()
        self._records: List[IhexRecord] = []
        self._regions: List[MemoryRegion] = []

    def __repr__(self) -> str:

        return (f'<{type(self).__name__} source={self.source!r} '
                f'records={len(self._records)} regions={len(self._regions)}>')

    @property
    def data_length(self) -> int:
        r"""int: Total size of all the regions, in bytes."""

        return sum(region.size for region in self._regions)

    @classmethod
    def from_blocks(
        cls,
        blocks: Iterable[Sequence[Any]],
        config: Optional[DocumentConfig] = None,
    ) -> 'IhexDocument':
        r"""Creates a document from memory blocks.

        Records are generated from the blocks, in the given order; regions
        are then rebuilt from the records, so that adjacent blocks merge into
        a single region.
        Empty blocks are ignored.

        Args:
            blocks (list):
                Sequence of ``[start, data]`` blocks.

            config (:class:`DocumentConfig`):
                Configuration; ``None`` selects the default one.

        Returns:
            :class:`IhexDocument`: Document object.

        Raises:
            ValueError: Address beyond 32 bits, or overlapping blocks.

        Examples:
            >>> from ihexcodec import IhexDocument
            >>> doc = IhexDocument.from_blocks([[0x10000, b'abc']])
            >>> doc.to_lines()
            [':020000040001F9', ':03000000616263D7', ':00000001FF']
        """

        regions = []
        for start, data in blocks:
            region = MemoryRegion.from_block(start, data)
            if region.end > ADDRESS_MAX + 1:
                raise ValueError('address overflow')
            if region.size:
                regions.append(region)

        previous = None
        for region in sorted(regions, key=MemoryRegion.as_tuple):
            if previous is not None and region.start < previous.end:
                raise ValueError('overlapping blocks')
            previous = region

        doc = cls(config=config)
        doc._regions = regions
        doc._records = [IhexRecord.parse(line, line_number)
                        for line_number, line in enumerate(doc.to_lines(), start=1)]
        doc._regions = build_regions(doc._records)
        return doc

    @classmethod
    def from_bytes(
        cls,
        data: AnyBytes,
        offset: int = 0,
        config: Optional[DocumentConfig] = None,
    ) -> 'IhexDocument':
        r"""Creates a document from a single byte string.

        Examples:
            >>> from ihexcodec import IhexDocument
            >>> IhexDocument.from_bytes(b'abc', offset=0x30).to_lines()
            [':03003000616263A7', ':00000001FF']
        """

        return cls.from_blocks([[offset, data]], config=config)

    @classmethod
    def from_file(
        cls,
        path: AnyPath,
        config: Optional[DocumentConfig] = None,
    ) -> 'IhexDocument':
        r"""Loads a document from the filesystem."""

        return cls(path, config=config).load()

    @classmethod
    def from_memory(
        cls,
        memory: Memory,
        config: Optional[DocumentConfig] = None,
    ) -> 'IhexDocument':
        r"""Creates a document from a *bytesparse* memory object."""

        return cls.from_blocks(memory.to_blocks(), config=config)

    def load(self, path: Optional[AnyPath] = None) -> 'IhexDocument':
        r"""Loads records from the filesystem.

        Args:
            path (str):
                Path of the source file.
                If ``None``, the bound :attr:`source` is loaded.
                Otherwise, :attr:`source` is bound to `path`.

        Returns:
            :class:`IhexDocument`: *self*.

        Raises:
            ValueError: No source path.
        """

        if path is None:
            path = self.source
            if path is None:
                raise ValueError('source path required')

        self.source = path
        with open(os.fspath(path), 'rt', encoding='ascii', errors='replace') as stream:
            return self.parse(stream)

    @property
    def memory(self) -> Memory:
        r"""*bytesparse* memory object with the contents of all the regions.

        Overlapping regions are written in order, the latter overwriting the
        former.
        """

        memory = Memory()
        for region in self._regions:
            memory.write(region.start, region.data)
        return memory

    def parse(self, stream: Union[str, Iterable[str], IO]) -> 'IhexDocument':
        r"""Parses records from text.

        Each non-blank line is parsed via :meth:`IhexRecord.parse`, with the
        options of :attr:`config`, until the *End Of File* record.
        Both :attr:`records` and :attr:`regions` are replaced on success.

        Any error aborts the whole parse; the document shall then be
        considered invalid.

        Args:
            stream (str or text IO):
                Text buffer, sequence of lines, or text stream.

        Returns:
            :class:`IhexDocument`: *self*.

        Raises:
            :class:`ihexcodec.base.IhexError`: Parsing error.

        Examples:
            >>> from ihexcodec import IhexDocument
            >>> doc = IhexDocument().parse([':020000040001F9', ':01000000AA55'])
            >>> [region.to_block() for region in doc.regions]
            [[65536, b'\xaa']]
        """

        if isinstance(stream, str):
            stream = io.StringIO(stream)

        config = self.config
        records = []

        for line_number, line in enumerate(stream, start=1):
            if not line or line.isspace():
                continue

            record = IhexRecord.parse(line,
                                      line_number=line_number,
                                      verify_checksum=config.verify_checksum,
                                      swap_endian=config.swap_endian)
            records.append(record)

            if record.tag.is_eof():
                break

        regions = build_regions(records)
        self._records = records
        self._regions = regions
        logger.debug('parsed %d records into %d regions, %d bytes',
                     len(records), len(regions), self.data_length)
        return self

    def print(
        self,
        stream: Optional[IO] = None,
        color: bool = False,
    ) -> 'IhexDocument':
        r"""Prints the records.

        Args:
            stream (text IO):
                Stream to print onto.
                If ``None``, *stdout* is used.

            color (bool):
                Colorize record tokens with ANSI color codes.

        Returns:
            :class:`IhexDocument`: *self*.
        """

        for record in self._records:
            record.print(stream=stream, color=color, end=self.config.newline)
        return self

    @property
    def records(self) -> Tuple[IhexRecord, ...]:
        r"""tuple of :class:`IhexRecord`: Records, in file order."""

        return tuple(self._records)

    @property
    def regions(self) -> Tuple[MemoryRegion, ...]:
        r"""tuple of :class:`MemoryRegion`: Memory regions."""

        return tuple(self._regions)

    def save(
        self,
        path: AnyPath,
        format: Optional[str] = None,
    ) -> 'IhexDocument':
        r"""Saves the document into the filesystem.

        Args:
            path (str):
                Output file path.

            format (str):
                Output format, either ``ihex`` or ``binary``.
                If ``None``, it is guessed from the extension of `path` via
                :func:`ihexcodec.base.guess_format_name`.

        Returns:
            :class:`IhexDocument`: *self*.

        Raises:
            :class:`ihexcodec.base.UnknownOutputExtension`: Unknown extension,
                or unknown `format`.
        """

        if format is None:
            format = guess_format_name(path)

        if format == 'ihex':
            return self.write_hex(path)
        elif format == 'binary':
            return self.write_binary(path)
        else:
            extension = os.path.splitext(os.fspath(path))[1]
            raise UnknownOutputExtension(extension, format_name=format)

    @property
    def start_address(self) -> Optional[int]:
        r"""int: Address stated by the last *start address* record, if any."""

        address = None
        for record in self._records:
            if record.tag.is_start():
                address = record.data_to_int()
        return address

    def to_bytes(self) -> bytes:
        r"""Concatenates the data of all the regions.

        No gaps are filled: address information is lost.

        Examples:
            >>> from ihexcodec import IhexDocument
            >>> doc = IhexDocument.from_blocks([[0, b'abc'], [0x100, b'xyz']])
            >>> doc.to_bytes()
            b'abcxyz'
        """

        return b''.join(region.data for region in self._regions)

    def to_lines(self) -> List[str]:
        r"""Generates record lines from the regions.

        Data records hold up to :attr:`DocumentConfig.bytes_per_record` bytes.
        An *Extended Linear Address* record is emitted before a data record
        beyond 16-bit addressing whenever the upper 16 bits of its address
        differ from the last emitted extension, so that each 64 KiB page is
        announced once.
        Once extended addressing is in use, a region starting back within
        16-bit addressing and not adjacent to the previous one is preceded by
        an *Extended Linear Address* record resetting the extension to zero.

        Returns:
            list of str: Record lines, without line terminators.
        """

        config = self.config
        width = config.bytes_per_record
        ela_tag = IhexTag.EXTENDED_LINEAR_ADDRESS
        data_tag = IhexTag.DATA
        lines = []
        using_extended = False
        extension = None
        previous_end = 0

        for index, region in enumerate(self._regions):
            if region.start > 0xFFFF:
                using_extended = True

            if (index and using_extended and
                    region.start <= 0xFFFF and region.start != previous_end):
                lines.append(format_line(ela_tag, 0, b'\0\0'))
                extension = 0

            address = region.start
            for chunk in chop(region.data, width):
                page = address >> 16
                if page != extension and (page or extension is not None):
                    extension = page
                    lines.append(format_line(ela_tag, 0, page.to_bytes(2, byteorder='big')))
                    using_extended = True

                lines.append(format_line(data_tag, address & 0xFFFF, chunk))
                address += len(chunk)

            previous_end = region.end

        if config.append_eof:
            lines.append(EOF_LINE)

        logger.debug('generated %d lines from %d regions', len(lines), len(self._regions))
        return lines

    def write_binary(self, path_or_stream: Optional[Union[AnyPath, IO]] = None) -> 'IhexDocument':
        r"""Writes the concatenated data of all the regions.

        Args:
            path_or_stream (str or bytes IO):
                Output file path or byte stream.
                If ``None``, ``sys.stdout.buffer`` is used.

        Returns:
            :class:`IhexDocument`: *self*.
        """

        if path_or_stream is None:
            path_or_stream = sys.stdout.buffer

        data = self.to_bytes()

        if hasattr(path_or_stream, 'write'):
            path_or_stream.write(data)
        else:
            with open(os.fspath(path_or_stream), 'wb') as stream:
                stream.write(data)

        logger.debug('wrote %d binary bytes', len(data))
        return self

    def write_hex(self, path_or_stream: Optional[Union[AnyPath, IO]] = None) -> 'IhexDocument':
        r"""Writes the regions as Intel HEX records.

        Args:
            path_or_stream (str or text IO):
                Output file path or text stream.
                If ``None``, ``sys.stdout`` is used.

        Returns:
            :class:`IhexDocument`: *self*.

        See Also:
            :meth:`to_lines`
        """

        if path_or_stream is None:
            path_or_stream = sys.stdout

        newline = self.config.newline
        text = ''.join(line + newline for line in self.to_lines())

        if hasattr(path_or_stream, 'write'):
            path_or_stream.write(text)
        else:
            with open(os.fspath(path_or_stream), 'wt', encoding='ascii', newline='') as stream:
                stream.write(text)

        return self
