"""Tests for the CLI HTTP client."""

from unittest.mock import patch

import httpx
import pytest

from cli.share_client import ShareClient
from cli.utils import filename_from_disposition, format_file_size


def _client(handler, **kwargs):
    return ShareClient(
        'http://share.test:3000',
        transport=httpx.MockTransport(handler),
        show_progress=False,
        **kwargs
    )


FILE_JSON = {
    'storageName': '1700000000000~report.pdf',
    'displayName': 'report.pdf',
    'size': 2048,
    'modifiedAt': '2024-05-01T12:30:00Z',
    'contentType': 'application/pdf',
    'isImage': False,
    'isPDF': True,
}


class TestListFiles:
    """Tests for ShareClient.list_files."""

    def test_formats_listing(self):
        def handler(request):
            assert request.url.path == '/api/files'
            assert 'X-Request-ID' in request.headers
            return httpx.Response(200, json={'files': [FILE_JSON]})

        result = _client(handler).list_files()

        assert 'Found 1 file(s)' in result
        assert 'report.pdf' in result
        assert '1700000000000~report.pdf' in result
        assert '2.00 KiB' in result
        assert '2024-05-01' in result

    def test_empty(self):
        result = _client(lambda request: httpx.Response(200, json={'files': []})).list_files()

        assert result == "No files shared yet."

    @patch('cli.share_client.time.sleep')
    def test_retries_server_errors(self, mock_sleep):
        responses = iter([
            httpx.Response(503, json={'detail': 'busy', 'code': 'INTERNAL_ERROR'}),
            httpx.Response(200, json={'files': []}),
        ])

        result = _client(lambda request: next(responses)).list_files()

        assert result == "No files shared yet."
        mock_sleep.assert_called_once_with(1)

    @patch('cli.share_client.time.sleep')
    def test_connection_failure(self, mock_sleep):
        def handler(request):
            raise httpx.ConnectError('connection refused', request=request)

        result = _client(handler, max_retries=2).list_files()

        assert result == "Error: Cannot connect to file share server. Is it running?"
        assert mock_sleep.call_count == 2


class TestUpload:
    """Tests for ShareClient.upload_files."""

    def test_sends_multipart_batch(self, tmp_path):
        first = tmp_path / 'report.pdf'
        first.write_bytes(b'%PDF-1.4')
        second = tmp_path / 'notes.txt'
        second.write_text('hello')
        seen = {}

        def handler(request):
            seen['body'] = request.read()
            seen['content_type'] = request.headers['content-type']
            return httpx.Response(200, json={'message': 'ok', 'files': [
                dict(FILE_JSON, size=8),
                dict(FILE_JSON, storageName='1700000000001~notes.txt', displayName='notes.txt', size=5),
            ]})

        result = _client(handler).upload_files([str(first), str(second)])

        assert seen['content_type'].startswith('multipart/form-data')
        assert seen['body'].count(b'name="files"') == 2
        assert b'filename="report.pdf"' in seen['body']
        assert b'Content-Type: application/pdf' in seen['body']
        assert 'Uploaded 2 file(s)' in result
        assert '1700000000001~notes.txt' in result

    def test_missing_local_file(self, tmp_path):
        def handler(request):
            raise AssertionError('no request expected')

        result = _client(handler).upload_files([str(tmp_path / 'absent.txt')])

        assert result.startswith('Error: File not found')

    def test_rejected_type_shows_server_detail(self, tmp_path):
        path = tmp_path / 'tool.exe'
        path.write_bytes(b'MZ')
        detail = 'File type not allowed: application/x-msdownload for file: tool.exe'

        def handler(request):
            return httpx.Response(400, json={'detail': detail, 'code': 'UNSUPPORTED_TYPE'})

        result = _client(handler).upload_files([str(path)])

        assert result == f"Upload failed: {detail}"


class TestDownload:
    """Tests for ShareClient.download and download_all."""

    def test_saves_under_display_name(self, tmp_path):
        def handler(request):
            assert request.url.path == '/api/download/1~report.pdf'
            return httpx.Response(
                200,
                content=b'%PDF-1.4 data',
                headers={'Content-Disposition': 'attachment; filename="report.pdf"'}
            )

        result = _client(handler).download('1~report.pdf', str(tmp_path))

        assert (tmp_path / 'report.pdf').read_bytes() == b'%PDF-1.4 data'
        assert 'Downloaded: report.pdf' in result

    def test_explicit_output_file(self, tmp_path):
        target = tmp_path / 'nested' / 'renamed.pdf'

        def handler(request):
            return httpx.Response(200, content=b'data', headers={'Content-Disposition': 'attachment; filename="report.pdf"'})

        _client(handler).download('1~report.pdf', str(target))

        assert target.read_bytes() == b'data'

    def test_not_found(self, tmp_path):
        def handler(request):
            return httpx.Response(404, json={'detail': 'File not found: 1~x', 'code': 'FILE_NOT_FOUND'})

        result = _client(handler).download('1~x', str(tmp_path))

        assert result == "Error: File not found on server."
        assert list(tmp_path.iterdir()) == []

    def test_download_all(self, tmp_path):
        def handler(request):
            assert request.url.path == '/api/download-all'
            return httpx.Response(
                200,
                content=b'PK\x05\x06' + b'\x00' * 18,
                headers={'Content-Disposition': 'attachment; filename="shared-files.zip"'}
            )

        result = _client(handler).download_all(str(tmp_path))

        assert (tmp_path / 'shared-files.zip').exists()
        assert 'shared-files.zip' in result


def test_delete():
    def handler(request):
        assert request.method == 'DELETE'
        assert request.url.path == '/api/delete/1~a.txt'
        return httpx.Response(200, json={'message': 'File deleted successfully', 'storageName': '1~a.txt'})

    assert _client(handler).delete_file('1~a.txt') == "Deleted: 1~a.txt"


@patch('cli.share_client.time.sleep')
def test_delete_is_not_retried(mock_sleep):
    attempts = []

    def handler(request):
        attempts.append(request)
        return httpx.Response(500, json={'detail': 'Disk error', 'code': 'IO_FAILURE'})

    result = _client(handler).delete_file('1~a.txt')

    assert len(attempts) == 1
    assert result == "Error: The server could not read or write its shared directory."
    mock_sleep.assert_not_called()


def test_delete_escapes_storage_name():
    def handler(request):
        assert request.url.raw_path == b'/api/delete/1700000000000~notes%20%231%2050%25.txt'
        assert request.url.path == '/api/delete/1700000000000~notes #1 50%.txt'
        return httpx.Response(200, json={'message': 'File deleted successfully', 'storageName': 'x'})

    assert _client(handler).delete_file('1700000000000~notes #1 50%.txt').startswith('Deleted:')


def test_download_escapes_storage_name(tmp_path):
    def handler(request):
        assert request.url.raw_path == b'/api/download/1~notes%20%231.txt'
        return httpx.Response(200, content=b'n', headers={'Content-Disposition': 'attachment; filename="notes #1.txt"'})

    _client(handler).download('1~notes #1.txt', str(tmp_path))

    assert (tmp_path / 'notes #1.txt').read_bytes() == b'n'


@pytest.mark.parametrize('header, expected', [
    ('attachment; filename="report.pdf"', 'report.pdf'),
    ("attachment; filename=\"r?sum?.pdf\"; filename*=utf-8''r%C3%A9sum%C3%A9.pdf", 'résumé.pdf'),
    ('attachment; filename="../../etc/passwd"', 'passwd'),
    (None, 'fallback.bin'),
    ('attachment', 'fallback.bin'),
])
def test_filename_from_disposition(header, expected):
    assert filename_from_disposition(header, 'fallback.bin') == expected


@pytest.mark.parametrize('size, expected', [
    (0, '0 B'),
    (512, '512 B'),
    (1536, '1.50 KiB'),
    (5 * 1024 * 1024, '5.00 MiB'),
])
def test_format_file_size(size, expected):
    assert format_file_size(size) == expected
