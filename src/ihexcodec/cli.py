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

"""
Module that contains the command line app.

Why does this file exist, and why not put this in __main__?

  You might be tempted to import things from __main__ later, but that will cause
  problems: the code will get executed twice:

  - When you run `python -m ihexcodec` python will execute
    ``__main__.py`` as a script. That means there won't be any
    ``ihexcodec.__main__`` in ``sys.modules``.
  - When you import __main__ it will get executed again (as a module) because
    there's no ``ihexcodec.__main__`` in ``sys.modules``.

  Also see (1) from https://click.palletsprojects.com/en/stable/setuptools/#setuptools-integration
"""

import logging
from typing import Optional

import click

from .__init__ import __version__
from .base import FILE_EXT
from .base import IhexError
from .base import guess_format_name
from .document import DocumentConfig
from .document import IhexDocument
from .utils import parse_int


class BasedIntParamType(click.ParamType):
    name = 'integer'

    def convert(self, value, param, ctx):
        try:
            return parse_int(value)
        except ValueError:
            self.fail(f'invalid integer: {value!r}', param, ctx)


BASED_INT = BasedIntParamType()

FILE_PATH_IN = click.Path(dir_okay=False, allow_dash=True, readable=True, exists=True)
FILE_PATH_OUT = click.Path(dir_okay=False, allow_dash=True, writable=True)

FORMAT_CHOICE = click.Choice(list(FILE_EXT.keys()))


# ----------------------------------------------------------------------------

def build_config(
    width: Optional[int] = None,
    swap_endian: bool = False,
    no_verify: bool = False,
    no_eof: bool = False,
) -> DocumentConfig:

    config = DocumentConfig(swap_endian=swap_endian,
                            verify_checksum=not no_verify,
                            append_eof=not no_eof)
    if width is not None:
        try:
            config = config.replace(bytes_per_record=width)
        except ValueError as exc:
            raise click.BadParameter(str(exc), param_hint='--width') from exc
    return config


def load_document(input_path: Optional[str], config: DocumentConfig) -> IhexDocument:

    if input_path is None or input_path == '-':
        return IhexDocument(config=config).parse(click.get_text_stream('stdin'))
    else:
        return IhexDocument.from_file(input_path, config=config)


def guess_output_format(
    output_path: Optional[str],
    output_format: Optional[str] = None,
) -> str:

    if output_format:
        return output_format
    elif output_path is None or output_path == '-':
        return 'ihex'
    else:
        return guess_format_name(output_path)


def print_version(ctx, _, value):

    if not value or ctx.resilient_parsing:
        return

    click.echo(str(__version__))
    ctx.exit()


# ----------------------------------------------------------------------------

class InOutCtxMgr:

    def __init__(
        self,
        input_path: str,
        output_path: Optional[str],
        output_format: Optional[str],
        config: DocumentConfig,
    ):

        if input_path == '-':
            input_path = None

        if output_path == '-':
            output_path = None

        self.input_path: Optional[str] = input_path
        self.output_path: Optional[str] = output_path
        self.output_format: Optional[str] = output_format
        self.config: DocumentConfig = config
        self.document: Optional[IhexDocument] = None

    def __enter__(self) -> 'InOutCtxMgr':

        try:
            self.output_format = guess_output_format(self.output_path, self.output_format)
            self.document = load_document(self.input_path, self.config)
        except IhexError as exc:
            raise click.ClickException(str(exc)) from exc
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:

        if exc_type is not None:
            if issubclass(exc_type, IhexError):
                raise click.ClickException(str(exc_val)) from exc_val
            return

        output_path = self.output_path
        try:
            if self.output_format == 'binary':
                if output_path is None:
                    self.document.write_binary(click.get_binary_stream('stdout'))
                else:
                    self.document.write_binary(output_path)
            else:
                if output_path is None:
                    self.document.write_hex(click.get_text_stream('stdout'))
                else:
                    self.document.write_hex(output_path)
        except IhexError as exc:
            raise click.ClickException(str(exc)) from exc


# ============================================================================

@click.group()
@click.option('-V', '--version', is_flag=True, is_eager=True,
              expose_value=False, callback=print_version, help="""
    Prints the package version number.
""")
@click.option('-v', '--verbose', is_flag=True, help="""
    Logs debug messages onto the standard error.
""")
def main(verbose: bool) -> None:
    """
    A set of command line utilities for Intel HEX files.

    Being built with `Click <https://click.palletsprojects.com/en/stable/>`_, all the
    commands follow POSIX-like syntax rules, as well as reserving the virtual
    file path ``-`` for command chaining via standard output/input buffering.
    """

    if verbose:
        logging.basicConfig(level=logging.DEBUG)


# ----------------------------------------------------------------------------

@main.command()
@click.option('-o', '--output-format', type=FORMAT_CHOICE, help="""
    Forces the output file format.
    By default it is guessed from the output file extension.
""")
@click.option('-w', '--width', type=BASED_INT, help="""
    Sets the length of the record data field, in bytes.
    By default it is 16.
""")
@click.option('--swap-endian', is_flag=True, help="""
    Swaps the two bytes of each 16-bit word of the input data.
""")
@click.option('--no-verify', is_flag=True, help="""
    Skips checksum verification of the input records.
""")
@click.option('--no-eof', is_flag=True, help="""
    Does not terminate the output with the End Of File record.
""")
@click.argument('infile', type=FILE_PATH_IN)
@click.argument('outfile', type=FILE_PATH_OUT)
def convert(
    output_format: Optional[str],
    width: Optional[int],
    swap_endian: bool,
    no_verify: bool,
    no_eof: bool,
    infile: str,
    outfile: str,
) -> None:
    r"""Converts an Intel HEX file.

    ``INFILE`` is the path of the input file.
    Set to ``-`` to read from standard input.

    ``OUTFILE`` is the path of the output file.
    Set to ``-`` to write to standard output.
    """

    config = build_config(width, swap_endian, no_verify, no_eof)

    with InOutCtxMgr(infile, outfile, output_format, config):
        pass


# ----------------------------------------------------------------------------

@main.command()
@click.option('--swap-endian', is_flag=True, help="""
    Swaps the two bytes of each 16-bit word of the input data.
""")
@click.option('--no-verify', is_flag=True, help="""
    Skips checksum verification of the input records.
""")
@click.argument('infile', type=FILE_PATH_IN)
def info(
    swap_endian: bool,
    no_verify: bool,
    infile: str,
) -> None:
    r"""Lists the memory regions.

    Each region is printed as its start address, end address, and size.

    ``INFILE`` is the path of the input file.
    Set to ``-`` to read from standard input.
    """

    config = build_config(swap_endian=swap_endian, no_verify=no_verify)
    try:
        document = load_document(infile, config)
    except IhexError as exc:
        raise click.ClickException(str(exc)) from exc

    for region in document.regions:
        click.echo(f'{region.start:08X} {region.end:08X} {region.size:08X}')

    click.echo(f'records: {len(document.records)}')
    click.echo(f'regions: {len(document.regions)}')
    click.echo(f'bytes: {document.data_length}')

    start_address = document.start_address
    if start_address is not None:
        click.echo(f'start: {start_address:08X}')


# ----------------------------------------------------------------------------

@main.command()
@click.argument('infile', type=FILE_PATH_IN)
def validate(
    infile: str,
) -> None:
    r"""Validates an Intel HEX file.

    Records are parsed with checksum verification.

    ``INFILE`` is the path of the input file.
    Set to ``-`` to read from standard input.
    """

    try:
        load_document(infile, DocumentConfig())
    except IhexError as exc:
        raise click.ClickException(str(exc)) from exc

    click.echo('OK')


# ----------------------------------------------------------------------------

@main.command()
@click.option('-c', '--color', is_flag=True, help="""
    Colorizes record fields with ANSI codes.
""")
@click.option('--no-verify', is_flag=True, help="""
    Skips checksum verification of the input records.
""")
@click.argument('infile', type=FILE_PATH_IN)
def view(
    color: bool,
    no_verify: bool,
    infile: str,
) -> None:
    r"""Prints the records of an Intel HEX file.

    ``INFILE`` is the path of the input file.
    Set to ``-`` to read from standard input.
    """

    config = build_config(no_verify=no_verify)
    try:
        document = load_document(infile, config)
    except IhexError as exc:
        raise click.ClickException(str(exc)) from exc

    document.print(stream=click.get_text_stream('stdout'), color=color)
