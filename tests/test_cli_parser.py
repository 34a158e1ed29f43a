"""Tests for CLI command parsing."""

import pytest

from cli.models import (
    DeleteCommand,
    DiscoverCommand,
    DownloadAllCommand,
    DownloadCommand,
    ListCommand,
    ServerCommand,
    UploadCommand,
)
from cli.parser import ParseError, parse_command


def test_parse_list():
    assert parse_command('list') == ListCommand()


def test_parse_discover():
    assert parse_command('discover') == DiscoverCommand()


def test_parse_upload_with_quoted_name():
    cmd = parse_command('upload report.pdf "my photo.jpg"')

    assert cmd == UploadCommand(file_list=('report.pdf', 'my photo.jpg'))


def test_parse_download():
    assert parse_command('download 1~a.txt') == DownloadCommand(storage_name='1~a.txt')
    assert parse_command('download 1~a.txt out/') == DownloadCommand(storage_name='1~a.txt', output_path='out/')


def test_parse_delete():
    assert parse_command('delete 1~a.txt') == DeleteCommand(storage_name='1~a.txt')


def test_parse_download_all():
    assert parse_command('download-all') == DownloadAllCommand()
    assert parse_command('download-all backup.zip') == DownloadAllCommand(output_path='backup.zip')


def test_parse_server():
    assert parse_command('server') == ServerCommand()
    assert parse_command('server http://10.0.0.2:3000') == ServerCommand(server_url='http://10.0.0.2:3000')


def test_parse_argv_list():
    assert parse_command(['upload', 'a.txt']) == UploadCommand(file_list=('a.txt',))


@pytest.mark.parametrize('line', [
    '',
    '   ',
    'unknown',
    'upload',
    'download',
    'download a b c',
    'delete',
    'delete a b',
    'list extra',
    'download-all a b',
    'upload "unterminated',
])
def test_parse_errors(line):
    with pytest.raises(ParseError):
        parse_command(line)
