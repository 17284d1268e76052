# utils.py
import re
import uuid
from datetime import datetime, timezone

from errors import InvalidName, UnknownToken

MAX_FILENAME_LENGTH = 255
PARTIAL_SUFFIX = ".uploading"

_TOKEN_RE = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$")
_CONTROL_RE = re.compile(r"[\x00-\x1f\x7f]")


def partial_name() -> str:
    """Hidden name for a file still being copied into a session directory."""
    return f".{uuid.uuid4().hex}{PARTIAL_SUFFIX}"


def is_partial_name(name: str) -> bool:
    return name.startswith(".") and name.endswith(PARTIAL_SUFFIX)


def new_token() -> str:
    return str(uuid.uuid4())


def validate_token(token: str) -> str:
    """Reject anything that is not a canonical lowercase uuid string."""
    if not isinstance(token, str) or not _TOKEN_RE.match(token):
        raise UnknownToken("malformed token")
    return token


def validate_filename(name: str) -> str:
    """Return `name` unchanged if it is safe to use as a file name, else raise InvalidName.

    Client names are used verbatim on disk, so anything that could address a
    path outside the session directory is refused rather than rewritten.
    """
    if not name:
        raise InvalidName("empty filename")
    if len(name) > MAX_FILENAME_LENGTH:
        raise InvalidName("filename too long")
    if name == "." or is_partial_name(name):
        raise InvalidName("reserved filename")
    if "/" in name or "\\" in name or _CONTROL_RE.search(name):
        raise InvalidName("path separators or control characters in filename")
    if ".." in name:
        raise InvalidName("parent directory segment in filename")
    if re.match(r"^[A-Za-z]:", name):
        raise InvalidName("drive-qualified filename")
    return name


def iso_from_timestamp(ts: float) -> str:
    """UTC ISO timestamp with millisecond precision and trailing Z."""
    return datetime.fromtimestamp(ts, timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
