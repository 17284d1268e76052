# storage.py
"""On-disk side of a session.

One directory per token directly under the storage root. The directory's
mtime is the session's activity clock; there is no other timestamp store.
"""
import logging
import os
import shutil
import time
import uuid
from pathlib import Path

from errors import StorageFault
from utils import is_partial_name

logger = logging.getLogger(__name__)


def resolve(root: Path, token: str) -> Path:
    """Directory for `token`. Pure: no I/O, callers validate the token first."""
    return Path(root) / token


def create_dir(path: Path) -> None:
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise StorageFault(f"cannot create session directory: {e.strerror or e}") from e


def touch(path: Path) -> bool:
    """Move the activity clock to now. Never moves it backwards; failures are logged, not raised."""
    try:
        now = time.time()
        current = path.stat().st_mtime
        if current > now:
            now = current
        os.utime(path, (now, now))
        return True
    except OSError as e:
        logger.warning("touch failed for %s: %s", path, e)
        return False


def age(path: Path, now: float = None) -> float:
    """Seconds since the last activity. Raises OSError if the directory is unreadable or gone."""
    if now is None:
        now = time.time()
    return now - path.stat().st_mtime


def exists(path: Path) -> bool:
    return path.is_dir()


def remove(path: Path) -> None:
    """Recursive forced delete; removing an absent directory is a no-op."""
    try:
        shutil.rmtree(path)
    except FileNotFoundError:
        pass
    except OSError as e:
        raise StorageFault(f"cannot remove {path.name}: {e.strerror or e}") from e


def detach(path: Path, trash_dir: Path) -> Path:
    """Atomically move a session directory out of the storage root.

    Returns the new location, or `path` itself when the rename is not possible
    (trash on another filesystem); the caller deletes whatever is returned.
    Raises FileNotFoundError if the directory is already gone.
    """
    try:
        trash_dir.mkdir(parents=True, exist_ok=True)
    except OSError:
        return path
    target = trash_dir / f"{path.name}-{uuid.uuid4().hex[:8]}"
    try:
        os.replace(str(path), str(target))
    except FileNotFoundError:
        raise
    except OSError as e:
        logger.debug("rename into trash failed for %s (%s); deleting in place", path.name, e)
        return path
    return target


def scan(path: Path):
    """List regular files in a session directory as (name, size) pairs, oldest first.

    Files still being copied in under a hidden partial name are skipped.
    """
    entries = []
    try:
        with os.scandir(path) as it:
            for entry in it:
                if is_partial_name(entry.name):
                    continue
                try:
                    if not entry.is_file(follow_symlinks=False):
                        continue
                    st = entry.stat(follow_symlinks=False)
                except OSError:
                    continue
                entries.append((st.st_mtime, entry.name, st.st_size))
    except FileNotFoundError:
        return []
    entries.sort()
    return [(name, size) for _, name, size in entries]
