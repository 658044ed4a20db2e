"""集中配置管理

提供统一的配置入口：home 目录、CDN 地址、请求头、TLS、并行度等。
支持从 YAML 文件加载 + 编程式覆盖。
"""

from __future__ import annotations

import logging
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path

import yaml

from depfetch.core.exceptions import ConfigError
from depfetch.utils.net import default_user_agent
from depfetch.utils.yaml_io import load_yaml

logger = logging.getLogger(__name__)

HOME_ENV = "DEPFETCH_HOME"
PACKAGES_DIR = "packages"


def default_home() -> str:
    """home 目录：优先 DEPFETCH_HOME，否则 ~/.depfetch"""
    return os.getenv(HOME_ENV) or str(Path.home() / ".depfetch")


@dataclass
class Config:
    """全局配置"""

    # 目录
    home: str = field(default_factory=default_home)
    deps_dir: str = "deps"
    lock_file: str = "deps.lock"

    # 网络
    cdn_url: str = "https://repo.hex.pm"
    user_agent: str = field(default_factory=default_user_agent)
    headers: dict[str, str] = field(default_factory=dict)  # 静态认证头等
    verify_tls: bool = True
    ca_file: str = ""

    # 执行
    max_workers: int = 8

    # 自定义扩展 (放不到字段里的配置项)
    extra: dict = field(default_factory=dict)

    @property
    def cache_dir(self) -> Path:
        """依赖包缓存目录 <home>/packages"""
        return Path(self.home).expanduser() / PACKAGES_DIR

    @classmethod
    def from_file(cls, path: str = "depfetch.yml") -> Config:
        """从 YAML 文件加载配置，不存在则返回默认"""
        try:
            data = load_yaml(path)
        except (ValueError, OSError, yaml.YAMLError) as e:
            raise ConfigError(f"无法读取配置文件 {path}: {e}") from e
        if not data:
            return cls()
        known = {f for f in cls.__dataclass_fields__}
        matched = {k: v for k, v in data.items() if k in known and k != "extra"}
        extra = {k: v for k, v in data.items() if k not in known}
        headers = matched.get("headers", {})
        if not isinstance(headers, dict):
            raise ConfigError(f"headers 必须是映射: {path}")
        matched["headers"] = {str(k): str(v) for k, v in headers.items()}
        cfg = cls(**matched)
        cfg.extra = extra
        return cfg

    def to_dict(self) -> dict:
        return asdict(self)


# 全局单例，首次 import 时不加载文件；由 CLI 入口显式初始化
_current: Config | None = None


def get_config() -> Config:
    """获取当前配置（未初始化则返回默认值）"""
    global _current  # noqa: PLW0603
    if _current is None:
        _current = Config()
    return _current


def init_config(path: str = "depfetch.yml") -> Config:
    """从文件初始化全局配置"""
    global _current  # noqa: PLW0603
    _current = Config.from_file(path)
    logger.info("配置已加载: %s", path)
    return _current
