"""A small artifact server for uploading and downloading workflow artifacts."""

from __future__ import annotations

import json
import logging
import os
import posixpath
import re
import shutil
import threading
from dataclasses import dataclass, field
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import IO, Any, Callable, Iterator, Mapping
from urllib.parse import parse_qs, unquote, urlsplit

from .context import Context
from .context import logger as context_logger

__all__ = [
    "GZIP_EXTENSION",
    "Response",
    "LocalFS",
    "ArtifactRouter",
    "safe_resolve",
    "serve",
]

GZIP_EXTENSION = ".gz__"

_log = logging.getLogger(__name__)


def safe_resolve(base_dir: str, rel_path: str) -> str:
    """Join ``rel_path`` onto ``base_dir`` without letting it escape the base."""
    cleaned = posixpath.normpath(posixpath.join("/", rel_path)).lstrip("/")
    return posixpath.normpath(posixpath.join(base_dir, cleaned))


@dataclass
class Response:
    """An HTTP response produced by the router."""

    status: int = 200
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes = b""

    def json(self) -> Any:
        """Decode the body as JSON."""
        return json.loads(self.body)


class LocalFS:
    """Artifact storage on the local file system."""

    def open_writable(self, name: str) -> IO[bytes]:
        """Open ``name`` for writing from scratch, creating parent directories."""
        os.makedirs(os.path.dirname(name) or ".", exist_ok=True)
        return open(name, "wb")

    def open_appendable(self, name: str) -> IO[bytes]:
        """Open ``name`` for writing at its end, creating parent directories."""
        os.makedirs(os.path.dirname(name) or ".", exist_ok=True)
        return open(name, "ab")

    def open(self, name: str) -> IO[bytes]:
        """Open ``name`` for reading."""
        return open(name, "rb")

    def list_dir(self, name: str) -> list[str]:
        """Return the entry names of a directory, sorted."""
        return sorted(os.listdir(name))

    def walk_files(self, name: str) -> Iterator[str]:
        """Yield every file under ``name`` in lexical order; a file yields itself."""
        if not os.path.lexists(name):
            raise FileNotFoundError(f"no such file or directory: {name}")
        if not os.path.isdir(name) or os.path.islink(name):
            yield name
            return
        yield from self._walk(name)

    def _walk(self, directory: str) -> Iterator[str]:
        with os.scandir(directory) as it:
            entries = sorted(it, key=lambda e: e.name)
        for entry in entries:
            if entry.is_dir(follow_symlinks=False):
                yield from self._walk(entry.path)
            else:
                yield entry.path


@dataclass
class _Request:
    method: str
    host: str
    headers: dict[str, str]
    query: dict[str, list[str]]
    body: Any

    def param(self, name: str) -> str:
        values = self.query.get(name)
        return values[0] if values else ""


def _json_response(payload: Any) -> Response:
    body = json.dumps(payload, separators=(",", ":")).encode()
    return Response(200, {"Content-Type": "application/json"}, body)


def _success() -> Response:
    return _json_response({"message": "success"})


def _clean_join(first: str, second: str) -> str:
    joined = posixpath.join(first, second)
    return posixpath.normpath(joined) if joined else ""


class ArtifactRouter:
    """Routes artifact API requests to handlers backed by a storage object."""

    def __init__(self, base_dir: str | os.PathLike, fs: Any = None) -> None:
        self.base_dir = os.fspath(base_dir)
        self.fs = fs if fs is not None else LocalFS()
        handlers: list[tuple[str, dict[str, Callable[[_Request, str], Response]]]] = [
            (
                r"/_apis/pipelines/workflows/([^/]+)/artifacts",
                {
                    "POST": self._prepare_upload,
                    "PATCH": self._finalize_upload,
                    "GET": self._list_artifacts,
                },
            ),
            (r"/upload/([^/]+)", {"PUT": self._upload}),
            (r"/download/([^/]+)", {"GET": self._list_container}),
            (r"/artifact/(.*)", {"GET": self._download}),
        ]
        self._routes = [(re.compile(pattern), table) for pattern, table in handlers]

    def handle(
        self,
        method: str,
        url: str,
        host: str | None = None,
        headers: Mapping[str, str] | None = None,
        body: Any = None,
    ) -> Response:
        """Serve one request and return its response."""
        parts = urlsplit(url)
        request = _Request(
            method=method.upper(),
            host=host if host is not None else parts.netloc,
            headers={k.lower(): v for k, v in (headers or {}).items()},
            query=parse_qs(parts.query),
            body=body,
        )
        path = unquote(parts.path)
        for pattern, table in self._routes:
            match = pattern.fullmatch(path)
            if match is None:
                continue
            handler = table.get(request.method)
            if handler is None:
                return Response(405, {"Content-Type": "text/plain; charset=utf-8"}, b"Method Not Allowed\n")
            try:
                return handler(request, match.group(1))
            except (OSError, ValueError) as err:
                _log.error("Failed to handle %s %s: %s", request.method, path, err)
                return Response(500, {"Content-Type": "text/plain; charset=utf-8"}, str(err).encode())
        return Response(404, {"Content-Type": "text/plain; charset=utf-8"}, b"404 page not found\n")

    def _prepare_upload(self, req: _Request, run_id: str) -> Response:
        return _json_response({"fileContainerResourceUrl": f"http://{req.host}/upload/{run_id}"})

    def _finalize_upload(self, req: _Request, run_id: str) -> Response:
        return _success()

    def _upload(self, req: _Request, run_id: str) -> Response:
        item_path = req.param("itemPath")
        if req.headers.get("content-encoding") == "gzip":
            item_path += GZIP_EXTENSION
        safe_path = safe_resolve(safe_resolve(self.base_dir, run_id), item_path)

        content_range = req.headers.get("content-range", "")
        if content_range and not content_range.startswith("bytes 0-"):
            opener = self.fs.open_appendable
        else:
            opener = self.fs.open_writable

        with opener(safe_path) as file:
            if req.body is None:
                raise ValueError("No body given")
            if hasattr(req.body, "read"):
                shutil.copyfileobj(req.body, file)
            else:
                file.write(req.body)
        return _success()

    def _list_artifacts(self, req: _Request, run_id: str) -> Response:
        names = self.fs.list_dir(safe_resolve(self.base_dir, run_id))
        value = [
            {"name": name, "fileContainerResourceUrl": f"http://{req.host}/download/{run_id}"}
            for name in names
        ]
        return _json_response({"count": len(value), "value": value or None})

    def _list_container(self, req: _Request, container: str) -> Response:
        item_path = req.param("itemPath")
        safe_path = safe_resolve(self.base_dir, posixpath.join(container, item_path))
        files = []
        for path in self.fs.walk_files(safe_path):
            rel = posixpath.relpath(path.replace(os.sep, "/"), safe_path)
            rel = rel.removesuffix(GZIP_EXTENSION)
            files.append(
                {
                    "path": _clean_join(item_path, rel),
                    "itemType": "file",
                    "contentLocation": f"http://{req.host}/artifact/{container}/{item_path}/{rel}",
                }
            )
        return _json_response({"value": files or None})

    def _download(self, req: _Request, path: str) -> Response:
        safe_path = safe_resolve(self.base_dir, path)
        headers: dict[str, str] = {}
        try:
            file = self.fs.open(safe_path)
        except OSError:
            file = self.fs.open(safe_path + GZIP_EXTENSION)
            headers["Content-Encoding"] = "gzip"
        with file:
            data = file.read()
        return Response(200, headers, data)


def _make_handler(router: ArtifactRouter, log: Any) -> type[BaseHTTPRequestHandler]:
    class _Handler(BaseHTTPRequestHandler):
        def _dispatch(self) -> None:
            length = int(self.headers.get("Content-Length") or 0)
            body = self.rfile.read(length) if length else b""
            host = self.headers.get("Host") or "%s:%s" % self.server.server_address[:2]
            response = router.handle(self.command, self.path, host, dict(self.headers.items()), body)
            self.send_response(response.status)
            for key, value in response.headers.items():
                self.send_header(key, value)
            self.send_header("Content-Length", str(len(response.body)))
            self.end_headers()
            self.wfile.write(response.body)

        do_GET = do_PUT = do_POST = do_PATCH = _dispatch

        def log_message(self, format: str, *args: Any) -> None:  # noqa: A002
            log.debug(format, *args)

    return _Handler


def serve(ctx: Context, artifact_path: str, addr: str, port: str | int) -> Callable[[], None]:
    """Start the artifact server in the background and return a function that stops it.

    Nothing is started when ``artifact_path`` is empty.
    """
    server_ctx = ctx.with_cancel()
    log = context_logger(server_ctx)
    if not artifact_path:
        return server_ctx.cancel

    log.debug("Artifacts base path '%s'", artifact_path)
    router = ArtifactRouter(artifact_path)
    server = ThreadingHTTPServer((addr, int(port)), _make_handler(router, log))
    server.daemon_threads = True

    def run() -> None:
        log.info("Start server on http://%s:%s", addr, port)
        server.serve_forever()

    def stop() -> None:
        server_ctx.wait()
        server.shutdown()
        server.server_close()

    threading.Thread(target=run, daemon=True).start()
    threading.Thread(target=stop, daemon=True).start()
    return server_ctx.cancel