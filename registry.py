# registry.py
import threading
from dataclasses import dataclass

from errors import UnknownToken


@dataclass(frozen=True)
class FileEntry:
    name: str
    size: int

    def to_dict(self) -> dict:
        return {"name": self.name, "size": self.size}


class SessionRegistry:
    """In-memory token -> file list mapping, guarded by one lock.

    Nothing here survives a restart. The lock is exposed as `lock` so the
    store can pair a registry mutation with a directory operation in one
    critical section.
    """

    def __init__(self):
        self.lock = threading.RLock()
        self._sessions = {}

    def __contains__(self, token) -> bool:
        with self.lock:
            return token in self._sessions

    def __len__(self) -> int:
        with self.lock:
            return len(self._sessions)

    def tokens(self) -> list:
        with self.lock:
            return list(self._sessions)

    def add(self, token: str) -> bool:
        """Register an empty session; False if the token is already taken."""
        with self.lock:
            if token in self._sessions:
                return False
            self._sessions[token] = []
            return True

    def append_files(self, token: str, files) -> None:
        """Append entries in arrival order. A name already listed is replaced and moves to the end."""
        with self.lock:
            entries = self._sessions.get(token)
            if entries is None:
                raise UnknownToken()
            for f in files:
                entries[:] = [e for e in entries if e.name != f.name]
                entries.append(f)

    def list_files(self, token: str) -> list:
        with self.lock:
            entries = self._sessions.get(token)
            if entries is None:
                raise UnknownToken()
            return list(entries)

    def remove(self, token: str) -> None:
        with self.lock:
            self._sessions.pop(token, None)
