"""Streams the whole store as one ZIP archive."""

import logging
import os
import time
import zipfile
from datetime import datetime
from typing import Iterator, List, Set

from common.constants import COPY_CHUNK_SIZE
from common.types import StoredFile
from fileshare.exceptions import IOFailureError, NotFoundError
from fileshare.file_store import FileStore

logger = logging.getLogger(__name__)

_EARLIEST_ZIP_TIME = (1980, 1, 1, 0, 0, 0)


class _DrainableBuffer:
    """
    Write-only sink for ZipFile that hands written bytes back on drain().

    It has no tell()/seek(), so ZipFile writes in streaming mode with data
    descriptors and never needs to rewind.
    """

    def __init__(self):
        self._buffer = bytearray()

    def write(self, data) -> int:
        self._buffer += data
        return len(data)

    def flush(self) -> None:
        pass

    def drain(self) -> bytes:
        data = bytes(self._buffer)
        self._buffer.clear()
        return data


def unique_entry_names(files: List[StoredFile]) -> List[str]:
    """
    Archive entry names for files, by display name.

    Repeated display names get " (1)", " (2)" ... before the extension so
    extracting the archive keeps every file.
    """
    used: Set[str] = set()
    names = []
    for stored in files:
        candidate = stored.display_name
        stem, ext = os.path.splitext(candidate)
        counter = 1
        while candidate.lower() in used:
            candidate = f"{stem} ({counter}){ext}"
            counter += 1
        used.add(candidate.lower())
        names.append(candidate)
    return names


def _zip_time(stored: StoredFile) -> tuple:
    local = datetime.fromtimestamp(stored.modified_at.timestamp()).timetuple()[:6]
    return max(local, _EARLIEST_ZIP_TIME)


class ArchiveBuilder:
    """
    Builds a deflate ZIP of every file in the store, incrementally.
    """

    def __init__(self, store: FileStore, chunk_size: int = COPY_CHUNK_SIZE):
        self.store = store
        self.chunk_size = chunk_size

    def stream(self) -> Iterator[bytes]:
        """
        Yield the archive piece by piece.

        The file set is the listing taken when iteration starts. Files removed
        before their turn are skipped. Closing the generator early (client
        went away) stops reading and releases the open file.
        """
        files = self.store.list_files()
        names = unique_entry_names(files)
        logger.info(f"Building archive of {len(files)} file(s)")

        started = time.time()
        sink = _DrainableBuffer()
        included = 0
        skipped = 0
        completed = False

        archive = zipfile.ZipFile(sink, mode="w", compression=zipfile.ZIP_DEFLATED)
        try:
            for stored, entry_name in zip(files, names):
                try:
                    handle = self.store.resolve_for_download(stored.storage_name)
                except (NotFoundError, IOFailureError) as e:
                    skipped += 1
                    logger.warning(f"Skipping {stored.storage_name} in archive: {e}")
                    continue

                info = zipfile.ZipInfo(entry_name, date_time=_zip_time(stored))
                info.compress_type = zipfile.ZIP_DEFLATED
                info.file_size = handle.size_bytes
                info.external_attr = 0o644 << 16
                try:
                    with archive.open(info, mode="w") as entry:
                        for data in handle.iter_chunks(self.chunk_size):
                            entry.write(data)
                            pending = sink.drain()
                            if pending:
                                yield pending
                finally:
                    handle.close()

                included += 1
                pending = sink.drain()
                if pending:
                    yield pending

            archive.close()
            completed = True
            pending = sink.drain()
            if pending:
                yield pending
        finally:
            if not completed:
                try:
                    archive.close()
                except (ValueError, OSError) as e:
                    logger.debug(f"Closing aborted archive failed: {e}")
                logger.info(f"Archive stream aborted after {included} file(s)")
            else:
                logger.info(
                    f"Archive complete: {included} file(s) included, {skipped} skipped, "
                    f"duration={time.time() - started:.3f}s"
                )
