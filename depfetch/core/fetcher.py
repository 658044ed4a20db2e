"""条件 HTTP 拉取器

对缓存键对应的制品发起单次条件 GET:
  - 本地已有缓存文件时附带 If-None-Match
  - 200 -> Fresh(body)
  - 304 -> NotModified
  - 其他状态码 / 传输错误（含协议错误、响应截断） -> Failed(reason)

不重试、不退避，也不写磁盘（写缓存由调用方负责）。
"""

from __future__ import annotations

import hashlib
import http.client
import logging
import ssl
import urllib.error
import urllib.request
from pathlib import Path

from depfetch.core.models import Failed, FetchOutcome, Fresh, NotModified

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 64 * 1024


def etag(path: Path) -> str | None:
    """计算缓存文件的 ETag：带引号的小写 MD5（与 CDN 返回格式一致）

    文件不存在时返回 None。
    """
    if not path.is_file():
        return None
    md5 = hashlib.md5()  # noqa: S324 - 仅用于 ETag 比对
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(_CHUNK_SIZE), b""):
            md5.update(chunk)
    return f'"{md5.hexdigest()}"'


class HttpFetcher:
    """单次条件 GET 拉取器"""

    def __init__(
        self,
        user_agent: str,
        *,
        headers: dict[str, str] | None = None,
        ssl_context: ssl.SSLContext | None = None,
    ) -> None:
        self.user_agent = user_agent
        self.headers = dict(headers or {})
        self.ssl_context = ssl_context or ssl.create_default_context()

    def build_request(self, url: str, cached_path: Path) -> urllib.request.Request:
        req = urllib.request.Request(url, method="GET")
        req.add_header("User-Agent", self.user_agent)
        for key, value in self.headers.items():
            req.add_header(key, value)
        tag = etag(cached_path)
        if tag:
            req.add_header("If-None-Match", tag)
        return req

    def fetch(self, url: str, cached_path: Path) -> FetchOutcome:
        """发起一次条件请求并映射为 FetchOutcome

        传输层错误（含 http.client 协议错误与响应体截断）
        一律映射为 Failed，不向调用方抛出。
        """
        try:
            req = self.build_request(url, cached_path)
            logger.debug("GET %s (If-None-Match=%s)", url, req.get_header("If-none-match"))
            with urllib.request.urlopen(req, context=self.ssl_context) as resp:  # nosec B310
                status = resp.status
                body = resp.read()
        except urllib.error.HTTPError as e:
            # urllib 把 304 也当作 HTTPError 抛出
            e.close()
            if e.code == 304:
                return NotModified()
            return Failed(f"Request failed ({e.code})")
        except urllib.error.URLError as e:
            return Failed(f"Request failed: {e.reason}")
        except http.client.HTTPException as e:
            return Failed(f"Request failed: {e!r}")
        except OSError as e:
            return Failed(f"Request failed: {e}")

        if status == 200:
            return Fresh(body)
        if status == 304:
            return NotModified()
        return Failed(f"Request failed ({status})")
