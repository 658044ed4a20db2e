"""检出状态判定

对比锁条目与检出目录中的 manifest，决定是否需要拉取。
manifest 缺失或损坏一律视为不匹配，不向调用方报错。
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from depfetch.core.manifest import read_manifest
from depfetch.core.models import LegacyVersion, LockEntry, Named, normalize


class LockStatus(str, Enum):
    OK = "ok"
    MISMATCH = "mismatch"
    OUTDATED = "outdated"


def needs_fetch(entry: LockEntry, destination: Path | None = None) -> bool:
    """检出目录记录的版本与锁条目不一致时返回 True"""
    dest = destination if destination is not None else entry.dest
    current = read_manifest(dest)
    if current is None:
        return True
    return not entry.identity.matches(current)


def lock_status(destination: Path, lock: object) -> LockStatus:
    """返回检出目录相对锁条目的状态

    lock 为 None 视为 mismatch；无法识别的锁形态视为 outdated。
    """
    if lock is None:
        return LockStatus.MISMATCH
    if not isinstance(lock, (LegacyVersion, Named)):
        return LockStatus.OUTDATED
    current = read_manifest(destination)
    if current is not None and normalize(lock).matches(current):
        return LockStatus.OK
    return LockStatus.MISMATCH


def checked_out(destination: Path) -> bool:
    return destination.is_dir()
