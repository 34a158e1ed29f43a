"""Directory-backed store of shared files.

The directory is the only state. Uploads are written to a hidden staging
directory on the same filesystem and published with an atomic rename, so a
listing never observes a partially written file. No store-wide lock exists:
concurrent uploads cannot collide because the naming policy never issues the
same storage name twice.
"""

import errno
import logging
import os
import tempfile
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from stat import S_ISREG
from typing import BinaryIO, Iterator, List, Optional, Sequence, Tuple

from common.constants import (
    COPY_CHUNK_SIZE,
    INCOMING_DIR_NAME,
    MAX_FILES_PER_UPLOAD,
    MAX_UPLOAD_BYTES,
)
from common.types import ChangeAction, ChangeEvent, StoredFile
from fileshare.content_types import guess_content_type, is_allowed_content_type, normalize_content_type
from fileshare.exceptions import (
    IOFailureError,
    NotFoundError,
    PayloadTooLargeError,
    TooManyFilesError,
    UnsupportedTypeError,
)
from fileshare.naming import NamingPolicy, display_name_from_storage_name
from fileshare.notifier import ChangeNotifier

logger = logging.getLogger(__name__)

_OPEN_FLAGS = os.O_RDONLY | getattr(os, "O_NOFOLLOW", 0) | getattr(os, "O_BINARY", 0)

_PUBLISH_ATTEMPTS = 5


@dataclass(frozen=True)
class UploadEntry:
    """One file of an upload request."""
    display_name: str
    stream: BinaryIO
    content_type: Optional[str] = None
    declared_size: Optional[int] = None


@dataclass
class DownloadHandle:
    """
    An open stored file plus the metadata needed to transfer it.

    The caller owns the stream and must close it (iter_chunks does so).
    """
    stream: BinaryIO
    storage_name: str
    display_name: str
    content_type: str
    size_bytes: int

    def iter_chunks(self, chunk_size: int = COPY_CHUNK_SIZE) -> Iterator[bytes]:
        """Yield the content and close the handle when done or abandoned."""
        try:
            while True:
                data = self.stream.read(chunk_size)
                if not data:
                    break
                yield data
        finally:
            self.close()

    def close(self) -> None:
        self.stream.close()


def _discard(path: Path) -> None:
    """Remove a file left behind by a failed operation."""
    try:
        path.unlink()
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.error(f"Failed to remove {path}: {e}")


class FileStore:
    """
    Owns the shared directory: list, add, remove and open stored files.
    """

    def __init__(
        self,
        root: Path,
        notifier: Optional[ChangeNotifier] = None,
        naming: Optional[NamingPolicy] = None,
        max_upload_bytes: int = MAX_UPLOAD_BYTES,
        max_files_per_upload: int = MAX_FILES_PER_UPLOAD,
        chunk_size: int = COPY_CHUNK_SIZE,
    ):
        """
        Args:
            root: Shared directory
            notifier: Receives a ChangeEvent after every committed mutation
            naming: Storage naming policy (one per store lifetime)
            max_upload_bytes: Size ceiling for a single file
            max_files_per_upload: Maximum number of files in one batch
            chunk_size: Copy buffer size
        """
        self.root = Path(root)
        self.incoming_dir = self.root / INCOMING_DIR_NAME
        self.notifier = notifier
        self.naming = naming or NamingPolicy()
        self.max_upload_bytes = max_upload_bytes
        self.max_files_per_upload = max_files_per_upload
        self.chunk_size = chunk_size

    def ensure_directories(self) -> None:
        """Create the shared and staging directories."""
        self.root.mkdir(parents=True, exist_ok=True)
        self.incoming_dir.mkdir(exist_ok=True)

    def purge_incoming(self) -> int:
        """
        Remove staging files left by an interrupted run.

        Returns:
            Number of files removed
        """
        if not self.incoming_dir.exists():
            return 0

        removed = 0
        for path in self.incoming_dir.iterdir():
            if path.is_file():
                _discard(path)
                removed += 1
        if removed:
            logger.info(f"Removed {removed} stale staging file(s) from {self.incoming_dir}")
        return removed

    def list_files(self) -> List[StoredFile]:
        """
        Enumerate the files currently in the store.

        Reads the directory at call time. Order is unspecified.

        Raises:
            IOFailureError: If the directory cannot be read
        """
        try:
            entries = list(os.scandir(self.root))
        except FileNotFoundError:
            return []
        except OSError as e:
            raise IOFailureError(f"Failed to read shared directory: {e}") from e

        files = []
        for entry in entries:
            if entry.name.startswith("."):
                continue
            try:
                if not entry.is_file(follow_symlinks=False):
                    continue
                stat = entry.stat(follow_symlinks=False)
            except FileNotFoundError:
                # removed between scandir and stat
                continue
            except OSError as e:
                logger.warning(f"Skipping unreadable entry {entry.name}: {e}")
                continue
            files.append(self._record(entry.name, stat.st_size, stat.st_mtime))
        return files

    def describe(self, storage_name: str) -> StoredFile:
        """
        Metadata for one stored file.

        Raises:
            NotFoundError: If no such file exists
        """
        stat = self._regular_file_stat(storage_name)
        return self._record(storage_name, stat.st_size, stat.st_mtime)

    def add(
        self,
        display_name: str,
        stream: BinaryIO,
        content_type: Optional[str] = None,
        declared_size: Optional[int] = None,
    ) -> StoredFile:
        """
        Store one file.

        Raises:
            UnsupportedTypeError: Content type not allow-listed (nothing written)
            PayloadTooLargeError: Content exceeds the size ceiling (nothing kept)
            IOFailureError: Filesystem failure (partial file removed)
        """
        entry = UploadEntry(
            display_name=display_name,
            stream=stream,
            content_type=content_type,
            declared_size=declared_size,
        )
        return self.add_batch([entry])[0]

    def add_batch(self, entries: Sequence[UploadEntry]) -> List[StoredFile]:
        """
        Store several files, all or nothing.

        Every entry is validated before anything is written. Entries are then
        staged, and only when all staged successfully are they published. A
        failure at any point removes every file of the batch and publishes no
        event.

        Raises:
            TooManyFilesError: More entries than max_files_per_upload
            UnsupportedTypeError, PayloadTooLargeError, IOFailureError: As for add()
        """
        if not entries:
            return []
        if len(entries) > self.max_files_per_upload:
            raise TooManyFilesError(len(entries), self.max_files_per_upload)

        for entry in entries:
            self._validate(entry)

        staged: List[Tuple[UploadEntry, Path, int]] = []
        try:
            for entry in entries:
                path, size = self._stage(entry)
                staged.append((entry, path, size))
        except Exception:
            for _, path, _ in staged:
                _discard(path)
            raise

        published: List[Tuple[str, int]] = []
        try:
            for entry, path, size in staged:
                storage_name = self._publish(path, entry.display_name)
                published.append((storage_name, size))
        except Exception:
            logger.error(f"Publishing batch failed, rolling back {len(published)} file(s)")
            for storage_name, _ in published:
                _discard(self.root / storage_name)
            for _, path, _ in staged:
                _discard(path)
            raise

        stored = [self._committed_record(name, size) for name, size in published]
        logger.info(f"Stored {len(stored)} file(s): {[f.storage_name for f in stored]}")
        self._emit(ChangeAction.UPLOAD, [f.storage_name for f in stored])
        return stored

    def remove(self, storage_name: str) -> None:
        """
        Delete a stored file.

        Raises:
            NotFoundError: If no such file exists (including a repeated remove)
            IOFailureError: If the file cannot be deleted
        """
        self._regular_file_stat(storage_name)
        path = self._path_for(storage_name)
        try:
            path.unlink()
        except FileNotFoundError:
            raise NotFoundError(storage_name)
        except OSError as e:
            raise IOFailureError(f"Failed to delete {storage_name}: {e}") from e

        logger.info(f"Deleted {storage_name}")
        self._emit(ChangeAction.DELETE, [storage_name])

    def resolve_for_download(self, storage_name: str) -> DownloadHandle:
        """
        Open a stored file for transfer.

        No lock is held; a concurrent delete of the same file lets an already
        open handle finish reading.

        Raises:
            NotFoundError: If no such file exists
            IOFailureError: If the file cannot be opened
        """
        self._regular_file_stat(storage_name)
        path = self._path_for(storage_name)
        try:
            fd = os.open(path, _OPEN_FLAGS)
        except (FileNotFoundError, IsADirectoryError):
            raise NotFoundError(storage_name)
        except OSError as e:
            if e.errno == errno.ELOOP:
                # swapped for a symlink after the check
                raise NotFoundError(storage_name)
            raise IOFailureError(f"Failed to open {storage_name}: {e}") from e
        stream = os.fdopen(fd, "rb")

        try:
            stat = os.fstat(stream.fileno())
        except OSError as e:
            stream.close()
            raise IOFailureError(f"Failed to read {storage_name}: {e}") from e
        if not S_ISREG(stat.st_mode):
            stream.close()
            raise NotFoundError(storage_name)
        size = stat.st_size

        display_name = display_name_from_storage_name(storage_name)
        return DownloadHandle(
            stream=stream,
            storage_name=storage_name,
            display_name=display_name,
            content_type=guess_content_type(display_name),
            size_bytes=size,
        )

    def _validate(self, entry: UploadEntry) -> None:
        if not is_allowed_content_type(entry.content_type):
            logger.warning(
                f"Rejected upload {entry.display_name!r}: type {normalize_content_type(entry.content_type)} not allowed"
            )
            raise UnsupportedTypeError(normalize_content_type(entry.content_type), entry.display_name)
        if entry.declared_size is not None and entry.declared_size > self.max_upload_bytes:
            logger.warning(f"Rejected upload {entry.display_name!r}: declared size {entry.declared_size} over limit")
            raise PayloadTooLargeError(self.max_upload_bytes, entry.display_name)

    def _stage(self, entry: UploadEntry) -> Tuple[Path, int]:
        """Copy an upload into the staging directory; returns (path, size)."""
        try:
            self.ensure_directories()
            fd, name = tempfile.mkstemp(prefix="upload-", suffix=".part", dir=self.incoming_dir)
        except OSError as e:
            raise IOFailureError(f"Failed to create staging file: {e}") from e

        path = Path(name)
        total = 0
        try:
            with os.fdopen(fd, "wb") as out:
                while True:
                    data = entry.stream.read(self.chunk_size)
                    if not data:
                        break
                    total += len(data)
                    if total > self.max_upload_bytes:
                        raise PayloadTooLargeError(self.max_upload_bytes, entry.display_name)
                    out.write(data)
        except OSError as e:
            _discard(path)
            raise IOFailureError(f"Failed to write {entry.display_name}: {e}") from e
        except BaseException:
            _discard(path)
            raise
        return path, total

    def _publish(self, staged: Path, display_name: str) -> str:
        """Move a staged file to a fresh storage name."""
        for _ in range(_PUBLISH_ATTEMPTS):
            storage_name = self.naming.new_storage_name(display_name)
            target = self.root / storage_name
            if target.exists():
                # left by an earlier run whose clock was ahead
                continue
            try:
                os.replace(staged, target)
            except OSError as e:
                raise IOFailureError(f"Failed to publish {display_name}: {e}") from e
            return storage_name
        raise IOFailureError(f"Could not allocate a storage name for {display_name}")

    def _regular_file_stat(self, storage_name: str) -> os.stat_result:
        """lstat a stored file; symlinks and non-regular entries are not found."""
        path = self._path_for(storage_name)
        try:
            stat = os.lstat(path)
        except FileNotFoundError:
            raise NotFoundError(storage_name)
        except OSError as e:
            raise IOFailureError(f"Failed to read {storage_name}: {e}") from e
        if not S_ISREG(stat.st_mode):
            raise NotFoundError(storage_name)
        return stat

    def _path_for(self, storage_name: str) -> Path:
        if (
            not storage_name
            or storage_name.startswith(".")
            or "/" in storage_name
            or "\\" in storage_name
            or "\x00" in storage_name
        ):
            raise NotFoundError(storage_name)
        return self.root / storage_name

    def _committed_record(self, storage_name: str, size: int) -> StoredFile:
        try:
            mtime = (self.root / storage_name).stat().st_mtime
        except OSError:
            mtime = datetime.now(timezone.utc).timestamp()
        return self._record(storage_name, size, mtime)

    @staticmethod
    def _record(storage_name: str, size: int, mtime: float) -> StoredFile:
        display_name = display_name_from_storage_name(storage_name)
        return StoredFile(
            storage_name=storage_name,
            display_name=display_name,
            size_bytes=size,
            modified_at=datetime.fromtimestamp(mtime, tz=timezone.utc),
            content_type=guess_content_type(display_name),
        )

    def _emit(self, action: ChangeAction, storage_names: List[str]) -> None:
        if self.notifier is None:
            return
        self.notifier.publish(ChangeEvent(action=action, affected=tuple(storage_names)))
