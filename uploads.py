# uploads.py
import logging
import uuid
from pathlib import Path

from flask import Request

from config import COPY_BUFFER_SIZE
from errors import NoFiles, PayloadTooLarge, StorageFault
from store import current_store
from utils import PARTIAL_SUFFIX, validate_filename

logger = logging.getLogger(__name__)


class StagedFile:
    """Write-once staging file that refuses to grow past `max_bytes`.

    Used as werkzeug's multipart stream sink, so an oversized part is cut off
    while it is still arriving instead of after it has been spooled.
    """

    def __init__(self, staging_dir: Path, max_bytes: int, filename: str = ""):
        self.path = Path(staging_dir) / f"{uuid.uuid4().hex}{PARTIAL_SUFFIX}"
        self.max_bytes = max_bytes
        self.filename = filename
        self.size = 0
        try:
            Path(staging_dir).mkdir(parents=True, exist_ok=True)
            self._fh = open(self.path, "w+b")
        except OSError as e:
            raise StorageFault(f"cannot stage {filename}: {e.strerror or e}") from e

    def write(self, data) -> int:
        if self.size + len(data) > self.max_bytes:
            self.discard()
            raise PayloadTooLarge(f"{self.filename} exceeds the size limit", max_bytes=self.max_bytes)
        try:
            written = self._fh.write(data)
        except OSError as e:
            self.discard()
            raise StorageFault(f"write failed for {self.filename}: {e.strerror or e}") from e
        self.size += len(data)
        return written

    def read(self, size: int = -1) -> bytes:
        return self._fh.read(size)

    def seek(self, offset: int, whence: int = 0) -> int:
        return self._fh.seek(offset, whence)

    def tell(self) -> int:
        return self._fh.tell()

    def flush(self) -> None:
        self._fh.flush()

    @property
    def closed(self) -> bool:
        return self._fh.closed

    def close(self) -> None:
        self._fh.close()

    def discard(self) -> None:
        self._fh.close()
        self.path.unlink(missing_ok=True)


class StagingRequest(Request):
    """Request whose multipart file parts are written straight into the staging area."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.staged_files = []

    def _get_file_stream(self, total_content_length, content_type, filename=None, content_length=None):
        store = current_store()
        if filename:
            validate_filename(filename)
        if content_length is not None and content_length > store.max_file_size:
            raise PayloadTooLarge(f"{filename} exceeds the size limit", max_bytes=store.max_file_size)
        staged = StagedFile(store.staging_dir, store.max_file_size, filename or "")
        self.staged_files.append(staged)
        return staged

    def discard_staged(self) -> None:
        for staged in self.staged_files:
            staged.discard()
        self.staged_files = []


def stage_part(part, staging_dir: Path, max_bytes: int):
    """Copy a part that was not staged during parsing, enforcing the per-file cap.

    Returns (staged_path, size). Nothing is left behind on failure.
    """
    staged = StagedFile(staging_dir, max_bytes, part.filename)
    try:
        while True:
            buf = part.stream.read(COPY_BUFFER_SIZE)
            if not buf:
                break
            staged.write(buf)
    except OSError as e:
        staged.discard()
        raise StorageFault(f"read failed for {part.filename}: {e.strerror or e}") from e
    staged.close()
    return staged.path, staged.size


def receive_files(store, token: str, parts) -> list:
    """Accept a batch of werkzeug FileStorage parts into a session.

    Every name is validated up front. Files become visible only after the
    whole batch is staged; a failure on any part discards the entire batch.
    Parts parsed by StagingRequest are already on disk and are only renamed.
    """
    parts = [p for p in parts if p is not None and p.filename]
    if not parts:
        raise NoFiles("no file parts in request")
    for part in parts:
        validate_filename(part.filename)

    staged = []
    try:
        for part in parts:
            if isinstance(part.stream, StagedFile):
                part.stream.close()
                staged.append((part.filename, part.stream.path, part.stream.size))
            else:
                tmp_path, size = stage_part(part, store.staging_dir, store.max_file_size)
                staged.append((part.filename, tmp_path, size))
        entries = store.publish(token, staged)
    finally:
        for _, tmp_path, _ in staged:
            tmp_path.unlink(missing_ok=True)

    logger.info(
        "Stored %d file(s), %d bytes in session %s",
        len(entries), sum(e.size for e in entries), token,
    )
    return entries
