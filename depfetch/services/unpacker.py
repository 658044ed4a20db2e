"""依赖包 tar 解压

默认解压实现，满足 Unpacker 协议:
  unpack(archive_path, dest, identity) -> None，失败抛 ExtractionError

包格式: 外层 tar 内含 contents.tar.gz 时解压内层，否则直接解压外层。
"""

from __future__ import annotations

import logging
import tarfile
from pathlib import Path
from typing import Protocol

from depfetch.core.exceptions import ExtractionError
from depfetch.core.models import PackageIdentity

logger = logging.getLogger(__name__)

CONTENTS_MEMBER = "contents.tar.gz"


class Unpacker(Protocol):
    """解压协议 — 测试时可注入 mock 实现"""

    def __call__(self, archive: Path, dest: Path, identity: PackageIdentity) -> None:
        ...


class TarUnpacker:
    """基于 tarfile 的默认解压器"""

    def __call__(self, archive: Path, dest: Path, identity: PackageIdentity) -> None:
        dest.mkdir(parents=True, exist_ok=True)
        try:
            with tarfile.open(archive) as outer:
                names = outer.getnames()
                if CONTENTS_MEMBER in names:
                    inner = outer.extractfile(CONTENTS_MEMBER)
                    if inner is None:
                        raise ExtractionError(f"{identity} 的 {CONTENTS_MEMBER} 不是普通文件")
                    with tarfile.open(fileobj=inner, mode="r:gz") as contents:
                        contents.extractall(path=str(dest), filter="data")  # noqa: S202
                else:
                    outer.extractall(path=str(dest), filter="data")  # noqa: S202
        except (OSError, tarfile.TarError) as e:
            raise ExtractionError(f"解压 {identity} 失败 ({archive}): {e}") from e
        logger.debug("已解压 %s -> %s", archive, dest)
