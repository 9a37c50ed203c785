from pathlib import Path
from typing import cast as _cast

import click
import pytest
from click.core import Command
from click.testing import CliRunner

from ihexcodec import __version__ as _version
from ihexcodec.__main__ import main as _main
from ihexcodec.base import UnknownOutputExtension
from ihexcodec.cli import *

main = _cast(Command, main)  # suppress warnings

WIKIPEDIA_LINES = [
    ':10010000214601360121470136007EFE09D2190140',
    ':100110002146017E17C20001FF5F16002148011928',
    ':10012000194E79234623965778239EDA3F01B2CAA7',
    ':100130003F0156702B5E712B722B732146013421C7',
    ':00000001FF',
]
WIKIPEDIA_TEXT = '\n'.join(WIKIPEDIA_LINES) + '\n'


@pytest.fixture
def tmppath(tmpdir):
    return Path(str(tmpdir))


@pytest.fixture
def hexpath(tmppath):
    path = tmppath / 'wikipedia.hex'
    path.write_text(WIKIPEDIA_TEXT)
    return path


def read_text(path):
    path = str(path)
    with open(path, 'rt') as file:
        data = file.read()
    data = data.replace('\r\n', '\n').replace('\r', '\n')  # normalize
    return data


class TestInOutCtxMgr:

    def test___init__(self):
        config = DocumentConfig()
        ctx = InOutCtxMgr('in.hex', 'out.bin', 'binary', config)
        assert ctx.input_path == 'in.hex'
        assert ctx.output_path == 'out.bin'
        assert ctx.output_format == 'binary'
        assert ctx.config is config
        assert ctx.document is None

    def test___init___dash(self):
        ctx = InOutCtxMgr('-', '-', None, DocumentConfig())
        assert ctx.input_path is None
        assert ctx.output_path is None
        assert ctx.output_format is None

    def test_roundtrip(self, hexpath, tmppath):
        out_path = tmppath / 'out.hex'
        with InOutCtxMgr(str(hexpath), str(out_path), None, DocumentConfig()) as ctx:
            assert ctx.output_format == 'ihex'
            assert ctx.document.data_length == 64
        assert read_text(out_path) == WIKIPEDIA_TEXT

    def test___enter___raises(self, hexpath):
        with pytest.raises(click.ClickException, match='extension not found'):
            with InOutCtxMgr(str(hexpath), 'out.elf', None, DocumentConfig()):
                pass


def test_main():
    try:
        _main('__main__')
    except SystemExit:
        pass


def test_build_config():
    config = build_config()
    assert config == DocumentConfig()

    config = build_config(width=32, swap_endian=True, no_verify=True, no_eof=True)
    assert config.bytes_per_record == 32
    assert config.swap_endian is True
    assert config.verify_checksum is False
    assert config.append_eof is False

    with pytest.raises(click.BadParameter, match='invalid bytes per record'):
        build_config(width=0)


def test_guess_output_format():
    assert guess_output_format('y.hex') == 'ihex'
    assert guess_output_format('y.BIN') == 'binary'
    assert guess_output_format('-') == 'ihex'
    assert guess_output_format(None) == 'ihex'
    assert guess_output_format('y.hex', 'binary') == 'binary'

    with pytest.raises(UnknownOutputExtension):
        guess_output_format('y.elf')


def test_help():
    commands = ('convert', 'info', 'validate', 'view')
    runner = CliRunner()

    result = runner.invoke(main, ['--help'])
    assert result.exit_code == 0
    assert result.output.strip().startswith('Usage:')

    for command in commands:
        result = runner.invoke(main, [command, '--help'])
        assert result.exit_code == 0
        assert result.output.strip().startswith('Usage:')


def test_version():
    runner = CliRunner()
    result = runner.invoke(main, ['--version'])
    assert result.exit_code == 0
    assert result.output.strip() == str(_version)


def test_convert_hex(hexpath, tmppath):
    out_path = tmppath / 'out.hex'
    runner = CliRunner()
    args = ['convert', str(hexpath), str(out_path)]
    result = runner.invoke(main, args, catch_exceptions=False)
    assert result.exit_code == 0
    assert read_text(out_path) == WIKIPEDIA_TEXT


def test_convert_binary(hexpath, tmppath):
    out_path = tmppath / 'out.bin'
    runner = CliRunner()
    args = ['convert', str(hexpath), str(out_path)]
    result = runner.invoke(main, args, catch_exceptions=False)
    assert result.exit_code == 0
    data = out_path.read_bytes()
    assert len(data) == 64
    assert data[:4] == b'\x21\x46\x01\x36'


def test_convert_output_format(hexpath, tmppath):
    out_path = tmppath / 'out.txt'
    runner = CliRunner()
    args = ['convert', '-o', 'binary', str(hexpath), str(out_path)]
    result = runner.invoke(main, args, catch_exceptions=False)
    assert result.exit_code == 0
    assert len(out_path.read_bytes()) == 64


def test_convert_width(hexpath):
    runner = CliRunner()
    result = runner.invoke(main, ['convert', '-w', '0x20', str(hexpath), '-'])
    assert result.exit_code == 0
    lines = result.output.splitlines()
    assert len(lines) == 3
    assert lines[0].startswith(':20010000')
    assert lines[-1] == ':00000001FF'


def test_convert_width_invalid(hexpath):
    runner = CliRunner()
    result = runner.invoke(main, ['convert', '-w', '256', str(hexpath), '-'])
    assert result.exit_code != 0
    assert 'invalid bytes per record' in result.output


def test_convert_no_eof(hexpath):
    runner = CliRunner()
    result = runner.invoke(main, ['convert', '--no-eof', str(hexpath), '-'])
    assert result.exit_code == 0
    assert result.output.splitlines() == WIKIPEDIA_LINES[:-1]


def test_convert_stdin_stdout():
    runner = CliRunner()
    result = runner.invoke(main, ['convert', '-', '-'], input=WIKIPEDIA_TEXT)
    assert result.exit_code == 0
    assert result.output == WIKIPEDIA_TEXT


def test_convert_stdout_binary():
    text = ':0300300002337A1E\n:00000001FF\n'
    runner = CliRunner()
    result = runner.invoke(main, ['convert', '-o', 'binary', '-', '-'], input=text)
    assert result.exit_code == 0
    assert result.stdout_bytes == b'\x02\x33\x7A'


def test_convert_unknown_extension(hexpath, tmppath):
    runner = CliRunner()
    result = runner.invoke(main, ['convert', str(hexpath), str(tmppath / 'out.elf')])
    assert result.exit_code == 1
    assert "extension not found: '.elf'" in result.output


def test_convert_malformed(tmppath):
    in_path = tmppath / 'bad.hex'
    in_path.write_text(':0300300002337A1F\n:00000001FF\n')
    runner = CliRunner()

    result = runner.invoke(main, ['convert', str(in_path), '-'])
    assert result.exit_code == 1
    assert 'line 1: checksum mismatch' in result.output

    result = runner.invoke(main, ['convert', '--no-verify', str(in_path), '-'])
    assert result.exit_code == 0
    assert result.output.splitlines()[0] == ':0300300002337A1E'


def test_convert_swap_endian(tmppath):
    in_path = tmppath / 'words.hex'
    in_path.write_text(':040000001122334452\n:00000001FF\n')
    out_path = tmppath / 'words.bin'
    runner = CliRunner()
    args = ['convert', '--swap-endian', str(in_path), str(out_path)]
    result = runner.invoke(main, args, catch_exceptions=False)
    assert result.exit_code == 0
    assert out_path.read_bytes() == b'\x22\x11\x44\x33'


def test_convert_verbose(hexpath, tmppath):
    out_path = tmppath / 'out.hex'
    runner = CliRunner()
    result = runner.invoke(main, ['-v', 'convert', str(hexpath), str(out_path)])
    assert result.exit_code == 0
    assert read_text(out_path) == WIKIPEDIA_TEXT


def test_info(hexpath):
    runner = CliRunner()
    result = runner.invoke(main, ['info', str(hexpath)])
    assert result.exit_code == 0
    assert result.output.splitlines() == [
        '00000100 00000140 00000040',
        'records: 5',
        'regions: 1',
        'bytes: 64',
    ]


def test_info_start_address():
    text = '\n'.join([
        ':020000040001F9',
        ':01000000AA55',
        ':020000040000FA',
        ':01000000AA55',
        ':04000005000000CD2A',
        ':00000001FF',
    ])
    runner = CliRunner()
    result = runner.invoke(main, ['info', '-'], input=text)
    assert result.exit_code == 0
    assert result.output.splitlines() == [
        '00010000 00010001 00000001',
        '00000000 00000001 00000001',
        'records: 6',
        'regions: 2',
        'bytes: 2',
        'start: 000000CD',
    ]


def test_validate(hexpath):
    runner = CliRunner()
    result = runner.invoke(main, ['validate', str(hexpath)])
    assert result.exit_code == 0
    assert result.output.strip() == 'OK'


def test_validate_fail(tmppath):
    in_path = tmppath / 'bad.hex'
    in_path.write_text(WIKIPEDIA_LINES[0] + '\n0300300002337A1E\n')
    runner = CliRunner()
    result = runner.invoke(main, ['validate', str(in_path)])
    assert result.exit_code == 1
    assert 'line 2: missing start marker' in result.output


def test_validate_missing_file(tmppath):
    runner = CliRunner()
    result = runner.invoke(main, ['validate', str(tmppath / 'missing.hex')])
    assert result.exit_code == 2


def test_view(hexpath):
    runner = CliRunner()
    result = runner.invoke(main, ['view', str(hexpath)])
    assert result.exit_code == 0
    assert result.output == WIKIPEDIA_TEXT


def test_view_color(hexpath):
    runner = CliRunner()
    result = runner.invoke(main, ['view', '--color', str(hexpath)])
    assert result.exit_code == 0
    assert '\x1b[' in result.output
    assert result.output.count('\n') == len(WIKIPEDIA_LINES)
