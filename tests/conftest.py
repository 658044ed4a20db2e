"""共享 fixture — 本地 CDN 服务 + 依赖包 tar 构造

  FakeCdn: 基于 http.server 的本地 CDN，按路径返回固定内容，
           对 If-None-Match 命中的请求返回 304，并记录每个请求。
  RawReplyServer: 原始 socket 服务，回写固定字节，用于畸形状态行 / 截断响应。
"""

from __future__ import annotations

import hashlib
import socket
import io
import tarfile
import threading
import time
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path

import pytest

from depfetch.core.models import LockEntry, Named, PackageIdentity

_PROXY_VARS = (
    "http_proxy", "HTTP_PROXY", "https_proxy", "HTTPS_PROXY", "all_proxy", "ALL_PROXY",
)


class _CdnHandler(BaseHTTPRequestHandler):
    server: FakeCdnServer

    def do_GET(self) -> None:  # noqa: N802
        srv = self.server
        if srv.delay:
            time.sleep(srv.delay)
        status, body = srv.routes.get(self.path, (404, b""))
        tag = f'"{hashlib.md5(body).hexdigest()}"'
        if status == 200 and self.headers.get("If-None-Match") == tag:
            status, body = 304, b""
        srv.record(self.path, dict(self.headers), status)

        self.send_response(status)
        if status == 200:
            self.send_header("ETag", tag)
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        if body:
            self.wfile.write(body)

    def log_message(self, format: str, *args: object) -> None:  # noqa: A002
        pass


class FakeCdnServer(ThreadingHTTPServer):
    daemon_threads = True

    def __init__(self) -> None:
        super().__init__(("127.0.0.1", 0), _CdnHandler)
        self.routes: dict[str, tuple[int, bytes]] = {}
        self.requests: list[dict] = []
        self.delay = 0.0
        self._lock = threading.Lock()

    def record(self, path: str, headers: dict[str, str], status: int) -> None:
        with self._lock:
            self.requests.append({"path": path, "headers": headers, "status": status})


class FakeCdn:
    """测试用 CDN 句柄"""

    def __init__(self, server: FakeCdnServer) -> None:
        self._server = server
        host, port = server.server_address[:2]
        self.url = f"http://{host}:{port}"

    def publish(self, identity: PackageIdentity, body: bytes) -> str:
        path = f"/tarballs/{identity.filename}"
        self._server.routes[path] = (200, body)
        return path

    def fail(self, identity: PackageIdentity, status: int = 500) -> str:
        path = f"/tarballs/{identity.filename}"
        self._server.routes[path] = (status, b"")
        return path

    def set_delay(self, seconds: float) -> None:
        self._server.delay = seconds

    @property
    def requests(self) -> list[dict]:
        return list(self._server.requests)

    def hits(self, path: str) -> int:
        return sum(1 for r in self._server.requests if r["path"] == path)


@pytest.fixture()
def cdn(monkeypatch: pytest.MonkeyPatch):
    """启动本地 CDN，测试结束后关闭"""
    for var in _PROXY_VARS:
        monkeypatch.delenv(var, raising=False)
    server = FakeCdnServer()
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield FakeCdn(server)
    finally:
        server.shutdown()
        server.server_close()
        thread.join(timeout=5)


def make_package_tar(files: dict[str, bytes], *, version: str = "3") -> bytes:
    """构造依赖包 tar：外层含 VERSION 与 contents.tar.gz"""
    inner_buf = io.BytesIO()
    with tarfile.open(fileobj=inner_buf, mode="w:gz") as inner:
        for name, data in sorted(files.items()):
            info = tarfile.TarInfo(name)
            info.size = len(data)
            info.mtime = 0
            inner.addfile(info, io.BytesIO(data))

    outer_buf = io.BytesIO()
    with tarfile.open(fileobj=outer_buf, mode="w") as outer:
        for name, data in (("VERSION", version.encode()), ("contents.tar.gz", inner_buf.getvalue())):
            info = tarfile.TarInfo(name)
            info.size = len(data)
            info.mtime = 0
            outer.addfile(info, io.BytesIO(data))
    return outer_buf.getvalue()


@pytest.fixture()
def package_tar():
    """tar 构造器 fixture"""
    return make_package_tar


@pytest.fixture()
def make_entry(tmp_path: Path):
    """LockEntry 工厂，检出目录位于 tmp_path/deps/<app>"""

    def _make(app: str, version: str, *, name: str | None = None, dest: Path | None = None) -> LockEntry:
        return LockEntry(
            app=app,
            lock=Named(name=name or app, version=version),
            dest=dest or tmp_path / "deps" / app,
        )

    return _make


class RawReplyServer:
    """原始 socket 服务：读完请求头后回写固定字节并断开，用于构造畸形响应"""

    def __init__(self, reply: bytes) -> None:
        self.reply = reply
        self.connections = 0
        self._sock = socket.create_server(("127.0.0.1", 0))
        self._sock.settimeout(0.2)
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._serve, daemon=True)
        host, port = self._sock.getsockname()[:2]
        self.url = f"http://{host}:{port}"

    def _serve(self) -> None:
        while not self._stop.is_set():
            try:
                conn, _ = self._sock.accept()
            except socket.timeout:
                continue
            except OSError:
                return
            with conn:
                self.connections += 1
                conn.settimeout(5)
                data = b""
                while b"\r\n\r\n" not in data:
                    chunk = conn.recv(4096)
                    if not chunk:
                        break
                    data += chunk
                conn.sendall(self.reply)

    def start(self) -> None:
        self._thread.start()

    def stop(self) -> None:
        self._stop.set()
        self._thread.join(timeout=5)
        self._sock.close()


@pytest.fixture()
def raw_server(monkeypatch: pytest.MonkeyPatch):
    """工厂 fixture：raw_server(reply) 启动一个回写固定字节的服务"""
    for var in _PROXY_VARS:
        monkeypatch.delenv(var, raising=False)
    servers: list[RawReplyServer] = []

    def _start(reply: bytes) -> RawReplyServer:
        server = RawReplyServer(reply)
        server.start()
        servers.append(server)
        return server

    yield _start
    for server in servers:
        server.stop()
