"""依赖包本地缓存

缓存布局（单层平铺目录，无过期元数据）:
  <cache_root>/<name>-<version>.tar

缓存只增不删，新内容由条件请求覆盖。
"""

from __future__ import annotations

import logging
from pathlib import Path

from depfetch.core.models import PackageIdentity
from depfetch.utils.yaml_io import atomic_write

logger = logging.getLogger(__name__)


class CacheStore:
    """包标识 -> 缓存文件路径"""

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    def path_for(self, identity: PackageIdentity) -> Path:
        return self.root / identity.filename

    @staticmethod
    def exists(path: Path) -> bool:
        return path.is_file()

    def write(self, path: Path, payload: bytes) -> None:
        """写入缓存文件（临时文件 + rename）"""
        atomic_write(path, payload)
        logger.info("  已缓存: %s (%d 字节)", path, len(payload))

    def list_entries(self) -> list[Path]:
        """列出缓存目录下的全部 tar 文件"""
        if not self.root.is_dir():
            return []
        return sorted(p for p in self.root.glob("*.tar") if p.is_file())
