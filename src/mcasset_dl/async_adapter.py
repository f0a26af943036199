"""异步适配器模块

让同步调用方（脚本、已有事件循环的环境如 Jupyter）也能调用异步入口
"""

from __future__ import annotations

import asyncio
import concurrent.futures
from typing import Awaitable, Optional, TypeVar

T = TypeVar("T")


def is_loop_running() -> bool:
    """检测当前线程是否在运行中的事件循环内"""
    try:
        asyncio.get_running_loop()
        return True
    except RuntimeError:
        return False


class AsyncAdapter:
    """根据当前环境选择执行策略

    - 无事件循环：asyncio.run
    - 已有事件循环：在单独线程里新建事件循环运行
    """

    def __init__(self):
        self._thread_pool: Optional[concurrent.futures.ThreadPoolExecutor] = None

    def run_sync(self, coro: Awaitable[T]) -> T:
        """运行协程并返回结果，协程中的异常原样抛出"""
        if is_loop_running():
            return self._run_in_thread_pool(coro)
        return asyncio.run(coro)

    def _run_in_thread_pool(self, coro: Awaitable[T]) -> T:
        if self._thread_pool is None:
            self._thread_pool = concurrent.futures.ThreadPoolExecutor(
                max_workers=1, thread_name_prefix="mcasset-dl-async"
            )
        return self._thread_pool.submit(asyncio.run, coro).result()

    def shutdown(self) -> None:
        if self._thread_pool:
            self._thread_pool.shutdown(wait=False)
            self._thread_pool = None


_default_adapter = AsyncAdapter()


def smart_run(coro: Awaitable[T]) -> T:
    """自动检测环境并运行协程"""
    return _default_adapter.run_sync(coro)
