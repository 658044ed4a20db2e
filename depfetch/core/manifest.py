"""检出目录 .manifest 编解码

格式:
  - 当前: "<name>,<version>"
  - 旧版: "<version>"（解码为未知包名）
"""

from __future__ import annotations

import logging
from pathlib import Path

from depfetch.core.exceptions import ManifestDecodeError
from depfetch.core.models import UNKNOWN_NAME, PackageIdentity

logger = logging.getLogger(__name__)

MANIFEST_FILE = ".manifest"
SEPARATOR = ","


def encode(identity: PackageIdentity) -> bytes:
    """序列化为 "<name>,<version>"，未知包名时写旧版单字段形式"""
    if identity.is_legacy:
        return identity.version.encode("utf-8")
    return f"{identity.name}{SEPARATOR}{identity.version}".encode("utf-8")


def decode(raw: bytes) -> PackageIdentity:
    """解析 manifest 内容，格式错误抛 ManifestDecodeError"""
    try:
        text = raw.decode("utf-8").strip()
    except UnicodeDecodeError as e:
        raise ManifestDecodeError(f"manifest 不是合法 UTF-8: {e}") from e

    fields = text.split(SEPARATOR) if text else []
    if any(not f for f in fields):
        raise ManifestDecodeError(f"manifest 含空字段: {text!r}")
    if len(fields) == 2:
        return PackageIdentity(name=fields[0], version=fields[1])
    if len(fields) == 1:
        return PackageIdentity(name=UNKNOWN_NAME, version=fields[0])
    raise ManifestDecodeError(f"manifest 字段数非法 ({len(fields)}): {text!r}")


def manifest_path(dest: Path) -> Path:
    return dest / MANIFEST_FILE


def read_manifest(dest: Path) -> PackageIdentity | None:
    """读取检出目录的 manifest，不存在或无法解析时返回 None"""
    path = manifest_path(dest)
    try:
        raw = path.read_bytes()
    except OSError:
        return None
    try:
        return decode(raw)
    except ManifestDecodeError as e:
        logger.debug("忽略无效 manifest %s: %s", path, e)
        return None


def write_manifest(dest: Path, identity: PackageIdentity) -> Path:
    """写入检出目录的 manifest"""
    path = manifest_path(dest)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(encode(identity))
    return path
