import contextlib
import json
import logging
import os
import time
from pathlib import Path
from typing import Any, Iterator, Optional

import psutil

from .config import LOCK_TIMEOUT
from .exceptions import FileOutsidePackDirectory, LauncherLocked


def empty(_: Any) -> None:
    """Placeholder callback."""
    pass


def atomic_write_json(path: str | os.PathLike, data: Any) -> None:
    """Write JSON to a temp file next to path, then rename it over path."""
    path = Path(path)
    tmp = path.with_name(path.name + ".tmp")
    try:
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
            f.write("\n")
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp, path)
    except BaseException:
        tmp.unlink(missing_ok=True)
        raise


def check_path_inside_directory(directory: str | os.PathLike, path: str | os.PathLike) -> None:
    """Raise FileOutsidePackDirectory if path is not inside directory."""
    abs_dir = os.path.abspath(str(directory))
    abs_path = os.path.abspath(str(path))
    if os.path.commonpath([abs_dir, abs_path]) != abs_dir:
        raise FileOutsidePackDirectory(abs_path, abs_dir)


def _lock_owner(lock_path: str) -> Optional[int]:
    try:
        with open(lock_path, "r") as f:
            return int(f.read().strip())
    except (OSError, ValueError):
        return None


def _remove_stale_lock(lock_path: str) -> bool:
    """Delete lock_path if the process that wrote it is gone."""
    pid = _lock_owner(lock_path)
    # no pid yet means the owner is between creating and writing the file
    if pid is None or psutil.pid_exists(pid):
        return False
    logging.warning(f"Removing stale lock {lock_path} left by process {pid}")
    with contextlib.suppress(FileNotFoundError):
        os.remove(lock_path)
    return True


@contextlib.contextmanager
def file_lock(lock_path: str | os.PathLike, timeout: float = LOCK_TIMEOUT) -> Iterator[None]:
    """
    Advisory lock held by exclusively creating lock_path, which records the
    owner's pid. A lock whose owner no longer runs is taken over.
    Raises LauncherLocked if the file still exists after timeout seconds.
    """
    lock_path = str(lock_path)
    deadline = time.monotonic() + timeout
    while True:
        try:
            fd = os.open(lock_path, os.O_CREAT | os.O_EXCL | os.O_WRONLY)
            break
        except FileExistsError:
            if _remove_stale_lock(lock_path):
                continue
            if time.monotonic() >= deadline:
                raise LauncherLocked(lock_path)
            time.sleep(0.1)
    try:
        os.write(fd, str(os.getpid()).encode())
        os.close(fd)
        logging.debug(f"Acquired lock {lock_path}")
        yield
    finally:
        with contextlib.suppress(FileNotFoundError):
            os.remove(lock_path)
        logging.debug(f"Released lock {lock_path}")
