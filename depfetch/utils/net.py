"""网络工具 — URL 安全校验、TLS 上下文、User-Agent"""

from __future__ import annotations

import platform
import ssl
from urllib.parse import urlparse

from depfetch.core.exceptions import ValidationError

_ALLOWED_SCHEMES = frozenset(("http", "https"))


def validate_url_scheme(url: str, *, context: str = "") -> None:
    """校验 URL 仅使用 http/https，防止 file:// 等非预期协议访问

    Raises:
        ValidationError: URL scheme 不在白名单内
    """
    parsed = urlparse(url)
    if parsed.scheme not in _ALLOWED_SCHEMES:
        label = f" ({context})" if context else ""
        raise ValidationError(
            f"不允许的 URL 协议 '{parsed.scheme}'{label}，"
            f"仅支持 http/https: {url}"
        )


def build_ssl_context(*, verify: bool = True, ca_file: str = "") -> ssl.SSLContext:
    """按配置构造 TLS 上下文"""
    ctx = ssl.create_default_context(cafile=ca_file or None)
    if not verify:
        ctx.check_hostname = False
        ctx.verify_mode = ssl.CERT_NONE
    return ctx


def default_user_agent() -> str:
    from depfetch import __version__
    return f"depfetch/{__version__} (Python/{platform.python_version()})"
