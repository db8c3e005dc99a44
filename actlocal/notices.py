"""Version notices fetched from a remote service."""

from __future__ import annotations

import json
import logging
import os
import platform
import queue
import sys
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, TextIO
from urllib.error import HTTPError, URLError
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit
from urllib.request import Request, urlopen

__all__ = [
    "NOTICE_URL",
    "Notice",
    "NoticeLoader",
    "get_version_notices",
    "load_notices_etag",
    "save_notices_etag",
    "etag_path",
]

NOTICE_URL = "https://notices.example.com/notices"

_log = logging.getLogger(__name__)

_LEVELS = {
    "panic": 0,
    "fatal": 1,
    "error": 2,
    "warn": 3,
    "warning": 3,
    "info": 4,
    "debug": 5,
    "trace": 6,
}
_LEVEL_NAMES = {0: "panic", 1: "fatal", 2: "error", 3: "warning", 4: "info", 5: "debug", 6: "trace"}
_INFO = 4

_ARCHES = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "aarch64": "arm64",
    "arm64": "arm64",
    "i386": "386",
    "i686": "386",
    "armv7l": "arm",
}


@dataclass(frozen=True)
class Notice:
    """A message to show the user, with a log level."""

    level: str
    message: str


def _os_name() -> str:
    if sys.platform.startswith("linux"):
        return "linux"
    if sys.platform == "win32":
        return "windows"
    return sys.platform


def _arch_name() -> str:
    machine = platform.machine().lower()
    return _ARCHES.get(machine, machine)


def _notice_url(version: str) -> str:
    parts = urlsplit(NOTICE_URL)
    query = parse_qsl(parts.query)
    query += [("os", _os_name()), ("arch", _arch_name()), ("version", version)]
    query.sort(key=lambda item: item[0])
    return urlunsplit(parts._replace(query=urlencode(query)))


def get_version_notices(version: str) -> list[Notice]:
    """Fetch the notices for ``version``; any failure gives an empty list."""
    if os.environ.get("ACT_DISABLE_VERSION_CHECK") == "1":
        return []

    request = Request(_notice_url(version), method="GET")
    etag = load_notices_etag()
    if etag:
        _log.debug("Conditional GET for notices etag=%s", etag)
        request.add_header("If-None-Match", etag)

    try:
        response = urlopen(request, timeout=10)
    except HTTPError as err:
        response = err
    except (URLError, OSError, ValueError) as err:
        _log.debug("%s", err)
        return []

    with response:
        new_etag = response.headers.get("Etag")
        if new_etag:
            _log.debug("Saving notices etag=%s", new_etag)
            save_notices_etag(new_etag)
        if response.getcode() == 304:
            _log.debug("No new notices")
            return []
        try:
            data = json.loads(response.read())
        except (ValueError, OSError) as err:
            _log.debug("%s", err)
            return []

    if not isinstance(data, list):
        _log.debug("Unexpected notices payload")
        return []
    return [
        Notice(level=str(item.get("level", "")), message=str(item.get("message", "")))
        for item in data
        if isinstance(item, dict)
    ]


def load_notices_etag() -> str:
    """Return the saved notices ETag, or an empty string."""
    path = etag_path()
    try:
        content = Path(path).read_text()
    except OSError as err:
        _log.debug("Unable to load etag from %s: %s", path, err)
        return ""
    return content.removesuffix("\n")


def save_notices_etag(etag: str) -> None:
    """Store the notices ETag for the next conditional request."""
    path = etag_path()
    try:
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w") as handle:
            handle.write(etag.removesuffix("\n"))
    except OSError as err:
        _log.debug("Unable to save etag to %s: %s", path, err)


def etag_path() -> str:
    """Return the ETag file path inside the user cache directory, creating the directory."""
    cache = os.environ.get("XDG_CACHE_HOME")
    if not cache:
        try:
            cache = str(Path.home() / ".cache")
        except RuntimeError:
            cache = os.path.abspath(".")
    directory = os.path.join(cache, "act")
    os.makedirs(directory, exist_ok=True)
    return os.path.join(directory, ".notices.etag")


class NoticeLoader:
    """Fetches notices in the background and shows them once available."""

    def __init__(
        self,
        fetch: Callable[[str], list[Notice]] = get_version_notices,
        stream: TextIO | None = None,
    ) -> None:
        self._fetch = fetch
        self._stream = stream
        self._queue: queue.Queue[list[Notice]] = queue.Queue(maxsize=1)

    def start(self, version: str) -> None:
        """Begin fetching notices for ``version`` in a background thread."""

        def run() -> None:
            try:
                notices = self._fetch(version)
            except Exception as err:  # a failed fetch only means nothing to show
                _log.debug("%s", err)
                notices = []
            self._queue.put(notices)

        threading.Thread(target=run, daemon=True).start()

    def display(self, json_logger: bool = False, timeout: float = 1.0) -> None:
        """Show the fetched notices, waiting at most ``timeout`` seconds for them."""
        try:
            notices = self._queue.get(timeout=timeout)
        except queue.Empty:
            _log.debug("Timeout waiting for notices")
            return
        if not notices:
            return

        stream = self._stream if self._stream is not None else sys.stderr
        print()
        for notice in notices:
            level = _LEVELS.get(notice.level.lower(), _INFO)
            if level > _INFO:
                continue
            stream.write(self._format(_LEVEL_NAMES[level], notice.message, json_logger))
        stream.flush()

    @staticmethod
    def _format(level: str, message: str, json_logger: bool) -> str:
        if json_logger:
            record = {
                "level": level,
                "msg": message,
                "time": datetime.now(timezone.utc).astimezone().isoformat(timespec="seconds"),
            }
            return json.dumps(record) + "\n"
        return f"level={level} msg={message}\n"