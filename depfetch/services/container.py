"""服务容器 — 统一依赖注入

同一容器内的实例共享状态：去重调度器是进程内唯一的共享可变状态，
因此它属于容器，而不是模块级单例。测试可为每个用例构造独立容器。

依赖关系图（→ 表示依赖）:
  checkout → cache, fetcher, dedup, unpacker

用法:
    container = ServiceContainer()
    orchestrator = container.checkout   # 懒加载

    cfg = Config.from_file("depfetch.yml")
    container = ServiceContainer(config=cfg)
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from depfetch.core.cache import CacheStore
    from depfetch.core.config import Config
    from depfetch.core.dedup import FetchDeduplicator
    from depfetch.core.fetcher import HttpFetcher
    from depfetch.core.models import FetchResult, PackageIdentity
    from depfetch.services.checkout import CheckoutOrchestrator
    from depfetch.services.unpacker import Unpacker

logger = logging.getLogger(__name__)


class ServiceContainer:
    """懒加载服务容器"""

    def __init__(self, config: Config | None = None) -> None:
        self._instances: dict[str, object] = {}
        if config is None:
            from depfetch.core.config import get_config
            config = get_config()
        self._config = config

    @property
    def config(self) -> Config:
        return self._config

    @property
    def cache(self) -> CacheStore:
        if "cache" not in self._instances:
            from depfetch.core.cache import CacheStore
            self._instances["cache"] = CacheStore(self._config.cache_dir)
        return self._instances["cache"]  # type: ignore[return-value]

    @property
    def fetcher(self) -> HttpFetcher:
        if "fetcher" not in self._instances:
            from depfetch.core.fetcher import HttpFetcher
            from depfetch.utils.net import build_ssl_context
            self._instances["fetcher"] = HttpFetcher(
                self._config.user_agent,
                headers=self._config.headers,
                ssl_context=build_ssl_context(
                    verify=self._config.verify_tls,
                    ca_file=self._config.ca_file,
                ),
            )
        return self._instances["fetcher"]  # type: ignore[return-value]

    @property
    def dedup(self) -> FetchDeduplicator[PackageIdentity, FetchResult]:
        if "dedup" not in self._instances:
            from depfetch.core.dedup import FetchDeduplicator
            self._instances["dedup"] = FetchDeduplicator(
                max_workers=self._config.max_workers,
            )
        return self._instances["dedup"]  # type: ignore[return-value]

    @property
    def unpacker(self) -> Unpacker:
        if "unpacker" not in self._instances:
            from depfetch.services.unpacker import TarUnpacker
            self._instances["unpacker"] = TarUnpacker()
        return self._instances["unpacker"]  # type: ignore[return-value]

    @property
    def checkout(self) -> CheckoutOrchestrator:
        if "checkout" not in self._instances:
            from depfetch.services.checkout import CheckoutOrchestrator
            self._instances["checkout"] = CheckoutOrchestrator(
                cdn_url=self._config.cdn_url,
                cache=self.cache,
                fetcher=self.fetcher,
                dedup=self.dedup,
                unpacker=self.unpacker,
                max_workers=self._config.max_workers,
            )
        return self._instances["checkout"]  # type: ignore[return-value]

    def close(self) -> None:
        """等待进行中的拉取任务结束并释放线程池"""
        dedup = self._instances.pop("dedup", None)
        if dedup is not None:
            pending = dedup.pending()  # type: ignore[attr-defined]
            if pending:
                logger.info("等待 %d 个进行中的拉取任务: %s", len(pending), ", ".join(map(str, pending)))
            dedup.shutdown(wait=True)  # type: ignore[attr-defined]
        self._instances.pop("checkout", None)


# ---- 全局单例（CLI 使用） ----

_global: ServiceContainer | None = None
_global_lock = threading.Lock()


def get_container() -> ServiceContainer:
    """获取全局 ServiceContainer 单例（线程安全）"""
    global _global  # noqa: PLW0603
    if _global is not None:
        return _global
    with _global_lock:
        if _global is None:
            _global = ServiceContainer()
        return _global


def reset_container() -> None:
    """重置全局容器（仅用于测试）"""
    global _global  # noqa: PLW0603
    with _global_lock:
        if _global is not None:
            _global.close()
        _global = None
