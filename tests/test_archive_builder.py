"""Tests for the streaming ZIP archive builder."""

import io
import os
import zipfile
from datetime import datetime, timezone

from common.types import StoredFile
from fileshare.archive_builder import ArchiveBuilder, unique_entry_names
from fileshare.exceptions import NotFoundError


def _stored(display_name, storage_name=None):
    return StoredFile(
        storage_name=storage_name or f'1~{display_name}',
        display_name=display_name,
        size_bytes=0,
        modified_at=datetime(2024, 5, 1, tzinfo=timezone.utc),
        content_type='text/plain',
    )


def _archive(builder):
    return zipfile.ZipFile(io.BytesIO(b''.join(builder.stream())))


def test_archive_contains_every_file(store):
    store.add('a.txt', io.BytesIO(b'alpha'), 'text/plain')
    store.add('b.pdf', io.BytesIO(b'%PDF beta'), 'application/pdf')

    with _archive(ArchiveBuilder(store)) as archive:
        assert sorted(archive.namelist()) == ['a.txt', 'b.pdf']
        assert archive.read('a.txt') == b'alpha'
        assert archive.read('b.pdf') == b'%PDF beta'
        assert archive.testzip() is None


def test_empty_store_gives_valid_empty_archive(store):
    with _archive(ArchiveBuilder(store)) as archive:
        assert archive.namelist() == []


def test_duplicate_display_names_are_suffixed(store):
    store.add('same.txt', io.BytesIO(b'one'), 'text/plain')
    store.add('same.txt', io.BytesIO(b'two'), 'text/plain')

    with _archive(ArchiveBuilder(store)) as archive:
        names = sorted(archive.namelist())
        assert names == ['same (1).txt', 'same.txt']
        assert sorted(archive.read(n) for n in names) == [b'one', b'two']


def test_large_file_is_streamed_in_pieces(store):
    store.max_upload_bytes = 1024 * 1024
    data = bytes(range(256)) * 2048
    store.add('big.bin', io.BytesIO(data), 'application/octet-stream')

    chunks = list(ArchiveBuilder(store, chunk_size=4096).stream())

    assert len(chunks) > 1
    with zipfile.ZipFile(io.BytesIO(b''.join(chunks))) as archive:
        assert archive.read('big.bin') == data


def test_file_deleted_before_its_turn_is_skipped(store, monkeypatch):
    kept = store.add('kept.txt', io.BytesIO(b'kept'), 'text/plain')
    gone = store.add('gone.txt', io.BytesIO(b'gone'), 'text/plain')
    original = store.resolve_for_download

    def resolve(storage_name):
        if storage_name == gone.storage_name:
            raise NotFoundError(storage_name)
        return original(storage_name)

    monkeypatch.setattr(store, 'resolve_for_download', resolve)

    with _archive(ArchiveBuilder(store)) as archive:
        assert archive.namelist() == [kept.display_name]


def test_abandoned_stream_releases_file(store, share_dir):
    store.max_upload_bytes = 1024 * 1024
    stored = store.add('big.bin', io.BytesIO(b'x' * 200000), 'application/octet-stream')
    stream = ArchiveBuilder(store, chunk_size=1024).stream()

    next(stream)
    stream.close()

    store.remove(stored.storage_name)
    assert not (share_dir / stored.storage_name).exists()


def test_abandoned_stream_closes_archive(store, monkeypatch):
    store.max_upload_bytes = 1024 * 1024
    store.add('big.bin', io.BytesIO(os.urandom(200000)), 'application/octet-stream')
    opened = []
    real_zipfile = zipfile.ZipFile

    def tracking_zipfile(*args, **kwargs):
        archive = real_zipfile(*args, **kwargs)
        opened.append(archive)
        return archive

    monkeypatch.setattr('fileshare.archive_builder.zipfile.ZipFile', tracking_zipfile)
    stream = ArchiveBuilder(store, chunk_size=1024).stream()

    next(stream)
    stream.close()

    [archive] = opened
    assert archive.fp is None


def test_unique_entry_names_case_insensitive():
    files = [_stored('Photo.JPG', '1~Photo.JPG'), _stored('photo.jpg', '2~photo.jpg'), _stored('photo.jpg', '3~photo.jpg')]

    assert unique_entry_names(files) == ['Photo.JPG', 'photo (1).jpg', 'photo (2).jpg']
