"""File copying and network address helpers."""

from __future__ import annotations

import os
import shutil
import socket
import stat

__all__ = ["copy_file", "copy_dir", "get_outbound_ip"]


def copy_file(source: str | os.PathLike, dest: str | os.PathLike) -> None:
    """Copy the contents of ``source`` to ``dest``, replacing it."""
    shutil.copyfile(source, dest)


def copy_dir(source: str | os.PathLike, dest: str | os.PathLike) -> None:
    """Copy a directory tree.

    Failures on single entries are printed and the copy goes on; the last such
    failure is raised once the walk is finished.
    """
    info = os.stat(source)
    os.makedirs(dest, mode=stat.S_IMODE(info.st_mode), exist_ok=True)

    last_error: OSError | None = None
    with os.scandir(source) as it:
        entries = sorted(it, key=lambda e: e.name)
    for entry in entries:
        target = os.path.join(dest, entry.name)
        try:
            if entry.is_dir():
                copy_dir(entry.path, target)
            else:
                copy_file(entry.path, target)
        except OSError as err:
            print(err)
            last_error = err
    if last_error is not None:
        raise last_error


def get_outbound_ip() -> str:
    """Return the local address used for outgoing traffic."""
    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as conn:
        conn.connect(("8.8.8.8", 80))
        return conn.getsockname()[0]