"""Tests for the upload content-type allow-list."""

import pytest

from fileshare.content_types import (
    guess_content_type,
    is_allowed_content_type,
    normalize_content_type,
)


@pytest.mark.parametrize('content_type', [
    'image/png',
    'image/svg+xml',
    'application/pdf',
    'text/plain',
    'text/csv; charset=utf-8',
    'application/vnd.openxmlformats-officedocument.wordprocessingml.document',
    'video/mp4',
    'audio/mpeg',
    'application/zip',
    'application/json',
    'APPLICATION/PDF',
    None,
])
def test_allowed(content_type):
    assert is_allowed_content_type(content_type)


@pytest.mark.parametrize('content_type', [
    'application/x-msdownload',
    'application/x-sh',
    'application/javascript',
    'font/woff2',
])
def test_rejected(content_type):
    assert not is_allowed_content_type(content_type)


def test_normalize_strips_parameters_and_case():
    assert normalize_content_type('Text/HTML; charset=UTF-8') == 'text/html'


def test_normalize_missing_is_octet_stream():
    assert normalize_content_type(None) == 'application/octet-stream'
    assert normalize_content_type('') == 'application/octet-stream'


@pytest.mark.parametrize('file_name, expected', [
    ('photo.jpg', 'image/jpeg'),
    ('report.pdf', 'application/pdf'),
    ('notes.txt', 'text/plain'),
    ('mystery', 'application/octet-stream'),
])
def test_guess_content_type(file_name, expected):
    assert guess_content_type(file_name) == expected
