"""锁文件加载

锁文件为 YAML 映射，键为应用名:

    plug:
      hex: plug
      version: 1.4.3
    cowboy:            # 旧版格式，仅记录版本，以应用名作为包名
      package: 1.0.0

无法识别的条目直接跳过（不报错，也不参与拉取）。
包名 / 版本 / 应用名不得包含 manifest 分隔符 ','，否则抛 LockfileError。
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

from depfetch.core.exceptions import LockfileError
from depfetch.core.manifest import SEPARATOR
from depfetch.core.models import LegacyVersion, LockEntry, LockVariant, Named
from depfetch.utils.yaml_io import load_yaml, save_yaml

logger = logging.getLogger(__name__)


def _checked(value: Any, label: str) -> str:
    text = str(value)
    if SEPARATOR in text:
        raise LockfileError(f"锁条目的 {label} 不能包含 '{SEPARATOR}': {text!r}")
    return text


def parse_lock_variant(raw: Any) -> LockVariant | None:
    """解析单个锁条目，形态无法识别时返回 None

    Raises:
        LockfileError: 包名或版本包含 ','
    """
    if not isinstance(raw, dict):
        return None
    version = raw.get("version")
    name = raw.get("hex")
    if name and version:
        return Named(name=_checked(name, "hex"), version=_checked(version, "version"))
    legacy = raw.get("package")
    if legacy and not name:
        return LegacyVersion(version=_checked(legacy, "package"))
    return None


def parse_lock(data: dict[str, Any], deps_dir: str | Path) -> list[LockEntry]:
    """将锁文件内容转换为 LockEntry 列表（保持原有顺序）"""
    base = Path(deps_dir)
    entries: list[LockEntry] = []
    for app, raw in data.items():
        lock = parse_lock_variant(raw)
        if lock is None:
            logger.debug("跳过无法识别的锁条目: %s -> %r", app, raw)
            continue
        # 旧版条目以应用名作为包名写入 manifest
        entries.append(LockEntry(app=_checked(app, "应用名"), lock=lock, dest=base / str(app)))
    return entries


def read_lock_data(path: str | Path) -> dict[str, Any]:
    """读取锁文件原始映射，不存在时返回空字典

    Raises:
        LockfileError: 文件不可读或 YAML 格式错误
    """
    p = Path(path)
    try:
        return load_yaml(p)
    except (ValueError, OSError) as e:
        raise LockfileError(f"无法读取锁文件 {p}: {e}") from e
    except yaml.YAMLError as e:
        raise LockfileError(f"锁文件格式错误 {p}: {e}") from e


def load_lock(path: str | Path, deps_dir: str | Path) -> list[LockEntry]:
    """读取锁文件，不存在时返回空列表"""
    p = Path(path)
    if not p.exists():
        logger.warning("锁文件不存在: %s", p)
        return []
    return parse_lock(read_lock_data(p), deps_dir)


def format_lock(lock: object) -> str | None:
    """锁条目的展示形式：旧版为 "<version>"，带名为 "<version> (<name>)" """
    if isinstance(lock, LegacyVersion):
        return lock.version
    if isinstance(lock, Named):
        return f"{lock.version} ({lock.name})"
    return None


def dump_lock(path: str | Path, entries: list[LockEntry]) -> Path:
    """将锁条目写回 YAML（原子写入）"""
    data: dict[str, dict[str, str]] = {}
    for entry in entries:
        if isinstance(entry.lock, Named):
            data[entry.app] = {"hex": entry.lock.name, "version": entry.lock.version}
        else:
            data[entry.app] = {"package": entry.lock.version}
    p = Path(path)
    save_yaml(p, data)
    logger.info("锁文件已写入: %s (%d 个依赖)", p, len(entries))
    return p
