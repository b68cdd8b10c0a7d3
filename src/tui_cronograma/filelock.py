"""Single-editor lock for a schedule project.

The lock file holds ``pid|timestamp``. A lock is stale once its process is
gone or it is older than :data:`MAX_LOCK_AGE` seconds.
"""

from __future__ import annotations

import logging
import os
import time
from pathlib import Path

from tui_cronograma.config import CONFIG_DIR

logger = logging.getLogger(__name__)

MAX_LOCK_AGE = 3600  # 1 hour


def _lock_path(project_dir: Path) -> Path:
    return project_dir / CONFIG_DIR / ".lock"


def _read_lock(lock_file: Path) -> tuple[int, float] | None:
    """Owner pid and timestamp, or None when the file is unreadable."""
    try:
        pid_text, stamp_text = lock_file.read_text(encoding="utf-8").strip().split("|")
        return int(pid_text), float(stamp_text)
    except (ValueError, OSError):
        return None


def _process_alive(pid: int) -> bool:
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        return True  # exists, owned by someone else
    except OSError:
        return False
    return True


def _held_by_other(lock_file: Path) -> bool:
    owner = _read_lock(lock_file)
    if owner is None:
        return False
    pid, timestamp = owner
    if pid == os.getpid():
        return False
    if time.time() - timestamp > MAX_LOCK_AGE:
        return False
    return _process_alive(pid)


def acquire_lock(project_dir: Path) -> bool:
    """Take the lock. False if another live editor holds it."""
    lock_file = _lock_path(project_dir)
    lock_file.parent.mkdir(parents=True, exist_ok=True)

    if lock_file.exists():
        if _held_by_other(lock_file):
            logger.warning("Schedule at %s is being edited elsewhere", project_dir)
            return False
        logger.info("Replacing stale lock %s", lock_file)

    lock_file.write_text(f"{os.getpid()}|{time.time()}", encoding="utf-8")
    return True


def release_lock(project_dir: Path) -> None:
    """Remove the lock if this process owns it."""
    lock_file = _lock_path(project_dir)
    owner = _read_lock(lock_file)
    if owner is None or owner[0] != os.getpid():
        return
    try:
        lock_file.unlink()
    except OSError as e:
        logger.warning("Could not remove lock %s: %s", lock_file, e)


def is_locked(project_dir: Path) -> bool:
    """True if another live process holds a fresh lock."""
    lock_file = _lock_path(project_dir)
    if not lock_file.exists():
        return False
    return _held_by_other(lock_file)
