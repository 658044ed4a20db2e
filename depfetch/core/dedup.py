"""拉取去重调度器

保证同一键（包标识）全进程最多只有一个拉取任务在执行，
任意多个并发调用方等待同一个 Future，观察到相同的终态。

状态机（按键）:
  不存在 --submit--> 运行中 --完成--> 已完成
  运行中 / 已完成状态下再次 submit 直接返回同一个 Future，不再执行 work。

已完成的结果在调度器生命周期内保留，迟到的等待方可重放。
不同键之间并行执行，互不影响；不支持取消。
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Generic, Hashable, TypeVar

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)
R = TypeVar("R")


class FetchDeduplicator(Generic[K, R]):
    """按键去重的并行任务调度器

    由顶层进程上下文（ServiceContainer）持有，测试可为每个用例注入独立实例。
    """

    def __init__(self, max_workers: int = 8) -> None:
        self.max_workers = max(1, max_workers)
        self._executor = ThreadPoolExecutor(
            max_workers=self.max_workers, thread_name_prefix="depfetch",
        )
        self._lock = threading.Lock()
        self._tasks: dict[K, Future[R]] = {}

    def submit(self, key: K, work: Callable[[], R]) -> Future[R]:
        """提交任务；同键已有任务时挂到已有 Future 上"""
        with self._lock:
            existing = self._tasks.get(key)
            if existing is not None:
                logger.debug("复用拉取任务: %s", key)
                return existing
            future = self._executor.submit(work)
            self._tasks[key] = future
        logger.debug("启动拉取任务: %s", key)
        return future

    @staticmethod
    def wait(handle: Future[R]) -> R:
        """阻塞当前调用方直到任务完成，返回终态结果"""
        return handle.result()

    def run(self, key: K, work: Callable[[], R]) -> R:
        """submit + wait"""
        return self.wait(self.submit(key, work))

    def is_known(self, key: K) -> bool:
        with self._lock:
            return key in self._tasks

    def pending(self) -> list[K]:
        """仍在执行中的键"""
        with self._lock:
            return [k for k, f in self._tasks.items() if not f.done()]

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    def __enter__(self) -> FetchDeduplicator[K, R]:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.shutdown(wait=True)
