"""依赖包检出协调器

职责：
- prefetch: 对需要拉取的锁条目提交去重拉取任务（不等待），预热缓存
- checkout / update: 等待去重拉取结果，失败时回退本地缓存，
  清空检出目录、解压、写入 manifest
- sync: 批量检出，单个依赖失败不影响其他依赖

拉取任务按 (name, version) 去重，同一包同一时刻最多一个网络请求。
"""

from __future__ import annotations

import logging
import shutil
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from functools import partial
from typing import TYPE_CHECKING, Iterable

from depfetch.core.cache import CacheStore
from depfetch.core.dedup import FetchDeduplicator
from depfetch.core.exceptions import (
    DepFetchError,
    ExtractionError,
    FetchFailed,
    PackageUnavailable,
)
from depfetch.core.fetcher import HttpFetcher
from depfetch.core.manifest import write_manifest
from depfetch.core.models import (
    SOURCE_NEW,
    Fresh,
    FetchResult,
    LockEntry,
    NotModified,
    PackageIdentity,
)
from depfetch.core.staleness import needs_fetch
from depfetch.services.unpacker import Unpacker
from depfetch.utils.net import validate_url_scheme

if TYPE_CHECKING:
    from concurrent.futures import Future

logger = logging.getLogger(__name__)


@dataclass
class SyncReport:
    """批量检出结果"""

    checked_out: dict[str, PackageIdentity] = field(default_factory=dict)
    up_to_date: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return not self.failed


class CheckoutOrchestrator:
    """依赖包检出协调器"""

    def __init__(
        self,
        *,
        cdn_url: str,
        cache: CacheStore,
        fetcher: HttpFetcher,
        dedup: FetchDeduplicator[PackageIdentity, FetchResult],
        unpacker: Unpacker,
        max_workers: int = 8,
    ) -> None:
        validate_url_scheme(cdn_url, context="cdn_url")
        self.cdn_url = cdn_url.rstrip("/")
        self.cache = cache
        self.fetcher = fetcher
        self.dedup = dedup
        self.unpacker = unpacker
        self.max_workers = max(1, max_workers)

    def tarball_url(self, package: PackageIdentity) -> str:
        return f"{self.cdn_url}/tarballs/{package.filename}"

    # ------------------------------------------------------------------
    # 拉取任务（在去重调度器的 worker 线程中执行）
    # ------------------------------------------------------------------

    def _fetch(self, package: PackageIdentity) -> FetchResult:
        path = self.cache.path_for(package)
        outcome = self.fetcher.fetch(self.tarball_url(package), path)
        if isinstance(outcome, Fresh):
            try:
                self.cache.write(path, outcome.body)
            except OSError as e:
                return FetchResult.error(f"写入缓存失败: {path}: {e}")
            return FetchResult.new()
        if isinstance(outcome, NotModified):
            return FetchResult.cached()
        return FetchResult.error(outcome.reason)

    def _submit(self, package: PackageIdentity) -> Future[FetchResult]:
        return self.dedup.submit(package, partial(self._fetch, package))

    # ------------------------------------------------------------------
    # 对外接口
    # ------------------------------------------------------------------

    def prefetch(self, entries: Iterable[LockEntry]) -> list[PackageIdentity]:
        """为需要拉取的条目提交任务后立即返回（不等待完成）"""
        submitted: list[PackageIdentity] = []
        for entry in entries:
            if not needs_fetch(entry):
                continue
            self._submit(entry.package)
            submitted.append(entry.package)
        if submitted:
            logger.info("已提交 %d 个预拉取任务", len(submitted))
        return submitted

    def checkout(self, entry: LockEntry) -> PackageIdentity:
        """检出单个依赖，返回已检出的标识

        拉取失败且无缓存时抛 PackageUnavailable，检出目录保持原样。
        """
        package = entry.package
        path = self.cache.path_for(package)
        logger.info("检查依赖包 (%s)", self.tarball_url(package))

        result = self.dedup.wait(self._submit(package))
        if result.ok:
            if result.source == SOURCE_NEW:
                logger.info("已拉取依赖包 %s", package)
            else:
                logger.info("使用本地缓存的依赖包 %s", package)
        else:
            logger.error("%s: %s", package, result.reason)
            if not self.cache.exists(path):
                raise PackageUnavailable(
                    package.name or entry.app, package.version, result.reason,
                ) from FetchFailed(result.reason)
            logger.warning("检查失败，使用本地缓存的依赖包 %s", package)

        if entry.dest.exists():
            shutil.rmtree(entry.dest)
        try:
            self.unpacker(path, entry.dest, package)
        except (OSError, ValueError) as e:
            raise ExtractionError(f"解压 {package} 失败 ({path}): {e}") from e
        write_manifest(entry.dest, package)

        logger.info("已解压依赖包 (%s) -> %s", path, entry.dest)
        return entry.identity

    def update(self, entry: LockEntry) -> PackageIdentity:
        """更新即完整重新检出"""
        return self.checkout(entry)

    def sync(self, entries: Iterable[LockEntry]) -> SyncReport:
        """批量检出：预拉取后并发检出所有过期依赖，逐个记录失败"""
        items = list(entries)
        report = SyncReport()
        stale = [e for e in items if needs_fetch(e)]
        report.up_to_date = [e.app for e in items if e not in stale]
        self.prefetch(stale)

        if not stale:
            logger.info("全部 %d 个依赖已是最新", len(items))
            return report

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures = [executor.submit(self.checkout, e) for e in stale]
            for entry, future in zip(stale, futures):
                try:
                    report.checked_out[entry.app] = future.result()
                except DepFetchError as e:
                    logger.error("检出失败: %s - %s", entry.app, e)
                    report.failed[entry.app] = str(e)
                except Exception as e:  # noqa: BLE001
                    logger.exception("检出异常: %s", entry.app)
                    report.failed[entry.app] = f"{type(e).__name__}: {e}"

        if report.failed:
            logger.warning(
                "检出汇总: %d 成功, %d 失败 (%s)",
                len(report.checked_out), len(report.failed), ", ".join(report.failed),
            )
        return report
