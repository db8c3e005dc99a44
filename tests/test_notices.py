import io
import json
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

import pytest

from actlocal import notices
from actlocal.notices import (
    Notice,
    NoticeLoader,
    etag_path,
    get_version_notices,
    load_notices_etag,
    save_notices_etag,
)


@pytest.fixture
def cache_dir(tmp_path, monkeypatch):
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path))
    return tmp_path


def test_disabled_version_check(monkeypatch):
    monkeypatch.setenv("ACT_DISABLE_VERSION_CHECK", "1")
    assert get_version_notices("1.0.0") == []


def test_etag_path_in_cache(cache_dir):
    path = etag_path()
    assert path == str(cache_dir / "act" / ".notices.etag")
    assert (cache_dir / "act").is_dir()


def test_etag_round_trip(cache_dir):
    save_notices_etag('"abc"\n')
    assert load_notices_etag() == '"abc"'


def test_missing_etag_is_empty(cache_dir):
    assert load_notices_etag() == ""


@pytest.fixture
def notice_server(monkeypatch, cache_dir):
    seen = []

    class Handler(BaseHTTPRequestHandler):
        def do_GET(self):
            seen.append((self.path, self.headers.get("If-None-Match")))
            if self.headers.get("If-None-Match") == '"v1"':
                self.send_response(304)
                self.send_header("ETag", '"v1"')
                self.end_headers()
                return
            body = json.dumps([{"level": "info", "message": "hello"}]).encode()
            self.send_response(200)
            self.send_header("ETag", '"v1"')
            self.send_header("Content-Length", str(len(body)))
            self.end_headers()
            self.wfile.write(body)

        def log_message(self, format, *args):
            pass

    server = ThreadingHTTPServer(("127.0.0.1", 0), Handler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    monkeypatch.delenv("ACT_DISABLE_VERSION_CHECK", raising=False)
    monkeypatch.setenv("no_proxy", "*")
    monkeypatch.setattr(notices, "NOTICE_URL", f"http://127.0.0.1:{server.server_address[1]}/notices")
    yield seen
    server.shutdown()
    server.server_close()


def test_fetch_then_conditional_request(notice_server, cache_dir):
    first = get_version_notices("1.2.3")
    assert first == [Notice("info", "hello")]
    assert load_notices_etag() == '"v1"'
    path, etag_header = notice_server[0]
    assert "version=1.2.3" in path
    assert etag_header is None

    assert get_version_notices("1.2.3") == []
    assert notice_server[1][1] == '"v1"'


def test_display_text_filters_debug():
    stream = io.StringIO()
    loader = NoticeLoader(
        fetch=lambda version: [
            Notice("info", "first"),
            Notice("debug", "hidden"),
            Notice("bogus", "unknown level"),
        ],
        stream=stream,
    )
    loader.start("1.0.0")
    loader.display(False, 5)
    output = stream.getvalue()
    assert "first" in output
    assert "unknown level" in output
    assert "hidden" not in output
    assert len(output.splitlines()) == 2


def test_display_json():
    stream = io.StringIO()
    loader = NoticeLoader(fetch=lambda version: [Notice("WARN", "upgrade")], stream=stream)
    loader.start("1.0.0")
    loader.display(True, 5)
    records = [json.loads(line) for line in stream.getvalue().splitlines()]
    assert [(r["level"], r["msg"]) for r in records] == [("warning", "upgrade")]


def test_display_times_out():
    release = threading.Event()
    stream = io.StringIO()

    def slow(version):
        release.wait(5)
        return [Notice("info", "late")]

    loader = NoticeLoader(fetch=slow, stream=stream)
    loader.start("1.0.0")
    loader.display(False, 0.05)
    release.set()
    assert stream.getvalue() == ""


def test_fetch_failure_shows_nothing():
    stream = io.StringIO()

    def broken(version):
        raise RuntimeError("boom")

    loader = NoticeLoader(fetch=broken, stream=stream)
    loader.start("1.0.0")
    loader.display(False, 5)
    assert stream.getvalue() == ""