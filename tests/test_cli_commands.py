"""Tests for CLI command handlers."""

import errno
from unittest.mock import Mock, patch

import pytest

from cli import commands
from cli.commands import (
    dispatch_command,
    handle_delete,
    handle_discover,
    handle_download,
    handle_download_all,
    handle_list,
    handle_server,
    handle_upload,
)
from cli.models import (
    DeleteCommand,
    DiscoverCommand,
    DownloadAllCommand,
    DownloadCommand,
    ListCommand,
    ServerCommand,
    UploadCommand,
)
from cli.share_client import ShareClient
from common.types import DiscoveryAnnouncement


@pytest.fixture(autouse=True)
def reset_client():
    commands.set_server_url(None)
    yield
    commands.set_server_url(None)


def test_handle_list():
    mock_client = Mock(spec=ShareClient)
    mock_client.list_files.return_value = "Found 1 file(s)"

    assert handle_list(ListCommand(), client=mock_client) == "Found 1 file(s)"
    mock_client.list_files.assert_called_once_with()


def test_handle_upload():
    mock_client = Mock(spec=ShareClient)
    mock_client.upload_files.return_value = "Uploaded 2 file(s)"

    result = handle_upload(UploadCommand(file_list=('a.txt', 'b.pdf')), client=mock_client)

    assert 'Uploaded' in result
    mock_client.upload_files.assert_called_once_with(['a.txt', 'b.pdf'])


def test_handle_download():
    mock_client = Mock(spec=ShareClient)
    mock_client.download.return_value = "Downloaded: a.txt"

    handle_download(DownloadCommand(storage_name='1~a.txt', output_path='out'), client=mock_client)

    mock_client.download.assert_called_once_with('1~a.txt', 'out')


def test_handle_delete():
    mock_client = Mock(spec=ShareClient)
    mock_client.delete_file.return_value = "Deleted: 1~a.txt"

    assert handle_delete(DeleteCommand(storage_name='1~a.txt'), client=mock_client) == "Deleted: 1~a.txt"


def test_handle_download_all():
    mock_client = Mock(spec=ShareClient)
    mock_client.download_all.return_value = "Downloaded: shared-files.zip"

    handle_download_all(DownloadAllCommand(), client=mock_client)

    mock_client.download_all.assert_called_once_with(None)


@patch('cli.commands.discover_servers')
def test_handle_discover(mock_discover):
    mock_discover.return_value = [
        DiscoveryAnnouncement(service='file-share', name='Office', address='192.168.1.20', port=3000),
    ]

    result = handle_discover(DiscoverCommand())

    assert 'Office: http://192.168.1.20:3000' in result


@patch('cli.commands.discover_servers', return_value=[])
def test_handle_discover_nothing_found(mock_discover):
    assert 'No file share servers found' in handle_discover(DiscoverCommand())


def test_handle_server_switch():
    assert handle_server(ServerCommand(server_url='http://10.0.0.2:3000/')) == "Using server: http://10.0.0.2:3000"
    assert handle_server(ServerCommand()) == "Using server: http://10.0.0.2:3000"


@patch('cli.commands.discover_servers', return_value=[])
def test_dispatch_without_server_reports_error(mock_discover):
    result = dispatch_command(ListCommand())

    assert result.startswith('Error: No file share server found')


@patch('cli.commands.discover_servers')
def test_get_client_uses_first_discovered_server(mock_discover):
    mock_discover.return_value = [
        DiscoveryAnnouncement(service='file-share', name='A', address='192.168.1.20', port=3000),
        DiscoveryAnnouncement(service='file-share', name='B', address='192.168.1.30', port=3000),
    ]

    client = commands.get_client()

    assert client.base_url == 'http://192.168.1.20:3000'
    assert commands.get_client() is client
    mock_discover.assert_called_once()


@patch('common.discovery_client.socket.socket')
def test_discover_with_network_down_reports_error(mock_socket_cls):
    mock_socket_cls.return_value.sendto.side_effect = OSError(errno.ENETUNREACH, 'Network is unreachable')

    assert dispatch_command(DiscoverCommand()) == "Error: Network unavailable (Network is unreachable)"
    assert dispatch_command(ListCommand()) == "Error: Network unavailable (Network is unreachable)"


@patch('cli.commands.discover_servers')
def test_connect_reports_discovered_server(mock_discover):
    mock_discover.return_value = [
        DiscoveryAnnouncement(service='file-share', name='A', address='192.168.1.20', port=3000),
    ]

    assert commands.connect() == "Using discovered server: http://192.168.1.20:3000"
    assert commands.current_server_url() == 'http://192.168.1.20:3000'


def test_connect_with_configured_server_skips_discovery():
    commands.set_server_url('http://10.0.0.2:3000')

    with patch('cli.commands.discover_servers') as mock_discover:
        assert commands.connect() == "Using server: http://10.0.0.2:3000"
    mock_discover.assert_not_called()


@patch('cli.commands.discover_servers', side_effect=OSError(errno.ENETUNREACH, 'Network is unreachable'))
def test_connect_with_network_down(mock_discover):
    result = commands.connect()

    assert result.startswith('Error: Network discovery failed (Network is unreachable)')
    assert commands.current_server_url() is None
