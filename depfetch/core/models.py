"""核心数据模型

所有核心数据类集中定义：包标识、锁条目、拉取结果。
其他模块统一从此处导入，避免 fetcher ↔ checkout 的循环依赖。
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Union

# 旧版锁条目不含包名，以 None 作为"未知包名"哨兵
UNKNOWN_NAME = None


@dataclass(frozen=True)
class PackageIdentity:
    """可拉取制品的唯一标识 (name, version)"""

    name: str | None
    version: str

    @property
    def is_legacy(self) -> bool:
        return self.name is UNKNOWN_NAME

    @property
    def filename(self) -> str:
        """缓存 / CDN 上的 tar 文件名"""
        return f"{self.name}-{self.version}.tar"

    def matches(self, other: PackageIdentity) -> bool:
        """兼容旧版的比较：本方无包名时只比较版本"""
        if self.is_legacy:
            return self.version == other.version
        return self == other

    def __str__(self) -> str:
        if self.is_legacy:
            return self.version
        return f"{self.name}@{self.version}"


# =========================================================================
# 锁条目（两种形态的标签变体）
# =========================================================================


@dataclass(frozen=True)
class LegacyVersion:
    """旧版锁条目，仅记录版本"""

    version: str


@dataclass(frozen=True)
class Named:
    """带包名的锁条目"""

    name: str
    version: str


LockVariant = Union[LegacyVersion, Named]


def normalize(lock: LockVariant) -> PackageIdentity:
    """将锁条目规范化为 PackageIdentity（唯一按形态分支的地方）"""
    if isinstance(lock, LegacyVersion):
        return PackageIdentity(name=UNKNOWN_NAME, version=lock.version)
    return PackageIdentity(name=lock.name, version=lock.version)


@dataclass(frozen=True)
class LockEntry:
    """单个依赖的锁定描述：应用名 + 锁条目 + 检出目录"""

    app: str
    lock: LockVariant
    dest: Path

    @property
    def identity(self) -> PackageIdentity:
        return normalize(self.lock)

    @property
    def package(self) -> PackageIdentity:
        """拉取用标识：旧版条目以应用名作为包名"""
        ident = self.identity
        return PackageIdentity(name=ident.name or self.app, version=ident.version)


# =========================================================================
# 条件请求结果
# =========================================================================


@dataclass(frozen=True)
class Fresh:
    """HTTP 200，返回新内容"""

    body: bytes


@dataclass(frozen=True)
class NotModified:
    """HTTP 304，本地缓存仍有效"""


@dataclass(frozen=True)
class Failed:
    """请求失败"""

    reason: str


FetchOutcome = Union[Fresh, NotModified, Failed]


# =========================================================================
# 去重拉取任务的最终结果
# =========================================================================

SOURCE_NEW = "new"
SOURCE_CACHED = "cached"


@dataclass(frozen=True)
class FetchResult:
    """单个拉取任务的终态：(ok, new) / (ok, cached) / (error, reason)"""

    ok: bool
    source: str = ""
    reason: str = ""

    @classmethod
    def new(cls) -> FetchResult:
        return cls(ok=True, source=SOURCE_NEW)

    @classmethod
    def cached(cls) -> FetchResult:
        return cls(ok=True, source=SOURCE_CACHED)

    @classmethod
    def error(cls, reason: str) -> FetchResult:
        return cls(ok=False, reason=reason)
