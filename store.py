# store.py
"""Session store: one registry, one storage root, one TTL.

The directory's presence and mtime decide liveness for every access path.
The registry only holds file metadata for sessions created by this process.
"""
import logging
import os
import shutil
import time
from pathlib import Path

from flask import current_app

import storage
from errors import Expired, NotFound, StorageFault, UnknownToken
from registry import FileEntry, SessionRegistry
from utils import iso_from_timestamp, new_token, partial_name, validate_filename, validate_token

logger = logging.getLogger(__name__)

EXTENSION_KEY = "tempshare.store"


def current_store() -> "SessionStore":
    return current_app.extensions[EXTENSION_KEY]


class SessionStore:
    def __init__(self, root, staging_dir, ttl: float, max_file_size: int, registry: SessionRegistry = None):
        self.root = Path(root)
        self.staging_dir = Path(staging_dir)
        self.trash_dir = self.staging_dir / "_trash"
        self.ttl = float(ttl)
        self.max_file_size = int(max_file_size)
        self.registry = registry if registry is not None else SessionRegistry()

    # ---- lifecycle -------------------------------------------------------

    def create_session(self) -> str:
        """Issue a fresh token and create its directory. The token is dropped if mkdir fails."""
        token = new_token()
        path = storage.resolve(self.root, token)
        storage.create_dir(path)
        storage.touch(path)
        if not self.registry.add(token):
            # lost a race for the same token; leave the directory to its owner
            return self.create_session()
        logger.info("Created session %s", token)
        return token

    def check_live(self, token: str) -> Path:
        """Return the session directory or raise NotFound / Expired."""
        path = storage.resolve(self.root, validate_token(token))
        try:
            idle = storage.age(path)
        except FileNotFoundError:
            raise NotFound("session not found") from None
        except OSError as e:
            raise StorageFault(f"cannot stat session: {e.strerror or e}") from e
        if not storage.exists(path):
            raise NotFound("session not found")
        if idle > self.ttl:
            raise Expired("session expired")
        return path

    def require_registered(self, token: str) -> Path:
        """Like check_live(), but the token must also be known to this process (upload path)."""
        validate_token(token)
        if token not in self.registry:
            raise UnknownToken()
        return self.check_live(token)

    def info(self, token: str) -> dict:
        path = self.check_live(token)
        try:
            mtime = path.stat().st_mtime
        except OSError:
            raise NotFound("session not found") from None
        idle = time.time() - mtime
        return dict(
            token=token,
            last_activity=iso_from_timestamp(mtime),
            age_seconds=round(idle, 3),
            expires_in=max(0, int(self.ttl - idle)),
            file_count=len(self.list_files(token)),
        )

    # ---- uploads ---------------------------------------------------------

    def publish(self, token: str, staged) -> list:
        """Move staged files into the session directory, then record them and touch the clock.

        `staged` is a list of (name, staged_path, size). The registry append and
        the touch happen under the registry lock, so the sweeper either sees
        the fresh mtime or has already taken the directory away, in which case
        this raises instead of reporting success.
        """
        path = self.require_registered(token)
        entries = []
        for name, tmp_path, size in staged:
            dest = path / name
            try:
                try:
                    os.replace(str(tmp_path), str(dest))
                except OSError:
                    if not storage.exists(path):
                        raise
                    # staging is on another filesystem: copy under a hidden name, then rename
                    partial = path / partial_name()
                    try:
                        shutil.copyfile(str(tmp_path), str(partial))
                        os.replace(str(partial), str(dest))
                    except OSError:
                        partial.unlink(missing_ok=True)
                        raise
            except OSError as e:
                raise StorageFault(f"cannot store {name}: {e.strerror or e}") from e
            entries.append(FileEntry(name, size))

        with self.registry.lock:
            if not storage.exists(path):
                self.registry.remove(token)
                raise NotFound("session was reclaimed during upload")
            self.registry.append_files(token, entries)
            storage.touch(path)
        return entries

    # ---- reads -----------------------------------------------------------

    def list_files(self, token: str) -> list:
        """Registry view for sessions created by this process, directory scan otherwise."""
        path = self.check_live(token)
        try:
            return self.registry.list_files(token)
        except UnknownToken:
            pass
        try:
            return [FileEntry(name, size) for name, size in storage.scan(path)]
        except OSError as e:
            raise StorageFault(f"cannot list session: {e.strerror or e}") from e

    def file_path(self, token: str, name: str) -> Path:
        """Resolve a downloadable file, refusing names that could leave the session directory."""
        validate_filename(name)
        path = self.check_live(token)
        target = path / name
        try:
            if target.resolve().parent != path.resolve():
                raise NotFound("file not found")
        except OSError:
            raise NotFound("file not found") from None
        if not target.is_file():
            raise NotFound("file not found")
        return target

    # ---- reclamation -----------------------------------------------------

    def remove_session(self, token: str) -> None:
        """Delete directory and registry entry. Idempotent."""
        path = storage.resolve(self.root, token)
        with self.registry.lock:
            try:
                detached = storage.detach(path, self.trash_dir)
            except FileNotFoundError:
                detached = None
            self.registry.remove(token)
        if detached is not None:
            storage.remove(detached)

    def reclaim_if_expired(self, token: str) -> bool:
        """Re-read the mtime at deletion time and reclaim the session only if it is still expired."""
        path = storage.resolve(self.root, token)
        with self.registry.lock:
            try:
                if storage.age(path) <= self.ttl:
                    return False
                detached = storage.detach(path, self.trash_dir)
            except FileNotFoundError:
                self.registry.remove(token)
                return False
            self.registry.remove(token)
        storage.remove(detached)
        logger.info("Deleted expired session %s", token)
        return True

    def sweep(self) -> list:
        """Reclaim every expired session under the root. Per-entry failures are logged and skipped."""
        reclaimed = []
        try:
            with os.scandir(self.root) as it:
                entries = list(it)
        except FileNotFoundError:
            entries = []
        except OSError as e:
            logger.error("Cleanup could not read %s: %s", self.root, e)
            return reclaimed

        staging = self.staging_dir.resolve()
        for entry in entries:
            name = entry.name
            try:
                if not entry.is_dir(follow_symlinks=False):
                    continue
                if (self.root / name).resolve() == staging:
                    continue
                if self.reclaim_if_expired(name):
                    reclaimed.append(name)
            except Exception:
                logger.exception("Cleanup error for entry %s", name)

        for token in self.registry.tokens():
            if not storage.exists(storage.resolve(self.root, token)):
                logger.info("Dropping orphaned registry entry %s", token)
                self.registry.remove(token)
        return reclaimed

    def purge_trash(self) -> None:
        """Delete leftovers in the trash area (e.g. after a crash mid-reclaim)."""
        if not self.trash_dir.is_dir():
            return
        for leftover in self.trash_dir.iterdir():
            try:
                storage.remove(leftover)
            except StorageFault as e:
                logger.warning("Could not purge %s: %s", leftover, e)
