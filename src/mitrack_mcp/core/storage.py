"""
Directory-backed record storage shared by the account and transaction stores.

A store directory holds:
    .dbinfo        marker file with the format tag, written once
    .lock          advisory writer lock (created on first write)
    <64 hex chars> one file per record, named by its identifier
"""

import fcntl
import logging
import os
import tempfile
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional

from mitrack_mcp.core.encoding import FORMAT_TAG, SUPPORTED_FORMAT_TAGS
from mitrack_mcp.core.exceptions import (
    NotFoundError,
    StorageError,
    StoreLockedError,
    UnsupportedFormatError,
)
from mitrack_mcp.core.identity import is_id_string

logger = logging.getLogger(__name__)

MARKER_FILE_NAME = ".dbinfo"
LOCK_FILE_NAME = ".lock"
_TEMP_PREFIX = ".tmp-"


def _current_umask() -> int:
    umask = os.umask(0)
    os.umask(umask)
    return umask


# read once: os.umask can only be queried by setting it
RECORD_FILE_MODE = 0o666 & ~_current_umask()


class RecordDirectory:
    """
    A directory of content-addressed record files.

    Access from several threads is serialized by a per-instance lock;
    writes also hold an exclusive flock on the directory's lock file so a
    second process cannot write at the same time.
    """

    def __init__(self, path: Path, kind: str):
        """
        Open (and initialize if needed) a record directory.

        Args:
            path: Directory holding the records
            kind: Record kind used in messages ("account", "transaction")

        Raises:
            UnsupportedFormatError: If the marker holds an unknown tag
            StorageError: If the directory or marker cannot be created or read
        """
        self.path = Path(path)
        self.kind = kind
        self._lock = threading.RLock()
        self._write_depth = 0
        self._lock_file: Optional[int] = None
        self._init_directory()

    def _init_directory(self) -> None:
        try:
            self.path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Could not create {self.kind} store at {self.path}: {e}") from e

        marker = self.path / MARKER_FILE_NAME
        try:
            with open(marker, "x", encoding="ascii") as f:
                f.write(FORMAT_TAG)
            logger.debug("Initialized %s store at %s", self.kind, self.path)
            return
        except FileExistsError:
            pass
        except OSError as e:
            raise StorageError(f"Could not create {marker}: {e}") from e

        try:
            tag = marker.read_bytes().decode("ascii")
        except UnicodeDecodeError:
            raise UnsupportedFormatError("<non-ascii>", str(self.path)) from None
        except OSError as e:
            raise StorageError(f"Could not read {marker}: {e}") from e

        if tag not in SUPPORTED_FORMAT_TAGS:
            raise UnsupportedFormatError(tag, str(self.path))

    @property
    def lock(self) -> threading.RLock:
        """In-process lock guarding the directory."""
        return self._lock

    @contextmanager
    def writer(self) -> Iterator[None]:
        """
        Hold the exclusive writer lock for the duration of the block.

        Re-entrant within the owning thread.

        Raises:
            StoreLockedError: If another process is writing to the store
        """
        with self._lock:
            if self._write_depth == 0:
                self._acquire_file_lock()
            self._write_depth += 1
            try:
                yield
            finally:
                self._write_depth -= 1
                if self._write_depth == 0:
                    self._release_file_lock()

    def _acquire_file_lock(self) -> None:
        lock_path = self.path / LOCK_FILE_NAME
        try:
            fd = os.open(lock_path, os.O_RDWR | os.O_CREAT, 0o644)
        except OSError as e:
            raise StorageError(f"Could not open {lock_path}: {e}") from e
        try:
            fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
        except BlockingIOError:
            os.close(fd)
            raise StoreLockedError(
                f"The {self.kind} store at {self.path} is locked by another writer"
            ) from None
        except OSError as e:
            os.close(fd)
            raise StorageError(f"Could not lock {lock_path}: {e}") from e
        self._lock_file = fd

    def _release_file_lock(self) -> None:
        if self._lock_file is None:
            return
        try:
            fcntl.flock(self._lock_file, fcntl.LOCK_UN)
        finally:
            os.close(self._lock_file)
            self._lock_file = None

    def record_names(self) -> List[str]:
        """Return the hex names of all regular record files, sorted."""
        with self._lock:
            try:
                with os.scandir(self.path) as entries:
                    names = [
                        entry.name
                        for entry in entries
                        if is_id_string(entry.name) and entry.is_file()
                    ]
            except OSError as e:
                raise StorageError(f"Could not list {self.path}: {e}") from e
        return sorted(names)

    def record_path(self, hex_id: str) -> Path:
        return self.path / hex_id

    def exists(self, hex_id: str) -> bool:
        return self.record_path(hex_id).is_file()

    def read(self, hex_id: str) -> bytes:
        """
        Read a record file.

        Raises:
            NotFoundError: If no record has this name
            StorageError: On any other I/O failure
        """
        path = self.record_path(hex_id)
        with self._lock:
            try:
                return path.read_bytes()
            except FileNotFoundError:
                raise NotFoundError(f"{self.kind.capitalize()} not found: {hex_id}") from None
            except OSError as e:
                raise StorageError(f"Could not read {self.kind} file {path}: {e}") from e

    def write(self, hex_id: str, data: bytes) -> None:
        """
        Atomically write a record file.

        The bytes land in a temporary file in the same directory which is
        then renamed over the final name, so readers never see a partial
        record.
        """
        path = self.record_path(hex_id)
        with self.writer():
            try:
                fd, tmp_name = tempfile.mkstemp(dir=self.path, prefix=_TEMP_PREFIX)
            except OSError as e:
                raise StorageError(f"Could not create {self.kind} file: {e}") from e
            try:
                with os.fdopen(fd, "wb") as f:
                    f.write(data)
                    f.flush()
                    os.fsync(f.fileno())
                # mkstemp creates 0600; records get the usual umask-derived mode
                os.chmod(tmp_name, RECORD_FILE_MODE)
                os.replace(tmp_name, path)
            except OSError as e:
                try:
                    os.unlink(tmp_name)
                except FileNotFoundError:
                    pass
                raise StorageError(f"Could not write {self.kind} file {path}: {e}") from e
        logger.debug("Wrote %s record %s (%d bytes)", self.kind, hex_id, len(data))

    def remove(self, hex_id: str) -> None:
        """
        Remove a record file.

        Raises:
            NotFoundError: If no record has this name
        """
        path = self.record_path(hex_id)
        with self.writer():
            try:
                path.unlink()
            except FileNotFoundError:
                raise NotFoundError(f"{self.kind.capitalize()} not found: {hex_id}") from None
            except OSError as e:
                raise StorageError(f"Could not remove {self.kind} file {path}: {e}") from e
        logger.debug("Removed %s record %s", self.kind, hex_id)
