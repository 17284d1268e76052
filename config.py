# config.py
import os
from pathlib import Path

APP_TITLE = "TempShare"

HOST = os.environ.get("HOST", "0.0.0.0")
PORT = int(os.environ.get("PORT", "3000"))

STORAGE_ROOT = Path(os.environ.get("STORAGE_ROOT", "tmp_uploads"))
STAGING_DIR = Path(os.environ.get("STAGING_DIR", "staging"))

SESSION_TTL = float(os.environ.get("SESSION_TTL", str(30 * 60)))    # seconds of inactivity
SWEEP_INTERVAL = float(os.environ.get("SWEEP_INTERVAL", str(2 * 60)))
MAX_FILE_SIZE = int(os.environ.get("MAX_FILE_SIZE", str(2 * 1024 * 1024 * 1024)))  # 2 GiB
MAX_REQUEST_SIZE = int(os.environ.get("MAX_REQUEST_SIZE", "0"))     # 0 = no limit
COPY_BUFFER_SIZE = 1024 * 1024

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()


def defaults() -> dict:
    """Settings copied into app.config by create_app()."""
    return dict(
        STORAGE_ROOT=STORAGE_ROOT,
        STAGING_DIR=STAGING_DIR,
        SESSION_TTL=SESSION_TTL,
        SWEEP_INTERVAL=SWEEP_INTERVAL,
        MAX_FILE_SIZE=MAX_FILE_SIZE,
        MAX_REQUEST_SIZE=MAX_REQUEST_SIZE,
        START_SWEEPER=True,
    )
