# errors.py
"""Error taxonomy for the session store.

Every error carries the HTTP status and short code the routes render, so the
store and upload code can raise without knowing about Flask.
"""


class SessionError(Exception):
    status = 400
    code = "bad-request"

    def __init__(self, detail: str = ""):
        super().__init__(detail or self.code)
        self.detail = detail

    def to_dict(self) -> dict:
        body = {"error": self.code}
        if self.detail:
            body["detail"] = self.detail
        return body


class UnknownToken(SessionError):
    status = 404
    code = "unknown-token"


class NotFound(SessionError):
    status = 404
    code = "not-found"


class Expired(SessionError):
    """Directory still on disk but older than the TTL; the sweeper has not run yet."""
    status = 410
    code = "expired"


class InvalidName(SessionError):
    status = 400
    code = "invalid-name"


class NoFiles(SessionError):
    status = 400
    code = "no-files"


class PayloadTooLarge(SessionError):
    status = 413
    code = "payload-too-large"

    def __init__(self, detail: str = "", max_bytes: int = 0):
        super().__init__(detail)
        self.max_bytes = max_bytes

    def to_dict(self) -> dict:
        body = super().to_dict()
        if self.max_bytes:
            body["max_bytes"] = self.max_bytes
        return body


class StorageFault(SessionError):
    status = 500
    code = "storage-fault"
