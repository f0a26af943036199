"""进度管理器模块

负责同步进度的显示和回调，提供 Rich 进度条（字节进度与对象计数两种）。
"""

from typing import Any, Callable, Optional

from rich.console import Console
from rich.progress import (
    BarColumn,
    DownloadColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
    TimeRemainingColumn,
    TransferSpeedColumn,
)

from ..models import SyncProgress


class ProgressManager:
    """进度管理器

    enabled 为 False 时 Rich 进度条被禁用，但回调照常触发。
    """

    def __init__(
        self,
        progress_callback: Optional[Callable[[SyncProgress], None]] = None,
        enabled: bool = True,
        console: Optional[Console] = None,
    ):
        """初始化进度管理器

        Args:
            progress_callback: 可选的进度回调函数
            enabled: 是否显示 Rich 进度条
            console: 输出用的 Console，默认新建
        """
        self.progress_callback = progress_callback
        self.enabled = enabled
        self.console = console

    def create_transfer_bar(self) -> Progress:
        """单个大文件下载用的字节进度条"""
        return Progress(
            SpinnerColumn(),
            TextColumn("[bold blue]{task.description}"),
            BarColumn(bar_width=40),
            "[progress.percentage]{task.percentage:>3.1f}%",
            "•",
            DownloadColumn(),
            "•",
            TransferSpeedColumn(),
            "•",
            TimeRemainingColumn(),
            console=self.console,
            disable=not self.enabled,
            refresh_per_second=4,
        )

    def create_count_bar(self) -> Progress:
        """批量对象用的计数进度条"""
        return Progress(
            SpinnerColumn(),
            TextColumn("[bold blue]{task.description}"),
            BarColumn(bar_width=40),
            MofNCompleteColumn(),
            "•",
            TimeElapsedColumn(),
            console=self.console,
            disable=not self.enabled,
            refresh_per_second=4,
        )

    def _notify(self, phase: str, completed: int, total: int, name: str) -> None:
        if self.progress_callback:
            self.progress_callback(
                SyncProgress(phase=phase, completed=completed, total=total, name=name)
            )

    class TrackedTask:
        """进度条任务上下文管理器"""

        def __init__(
            self,
            manager: "ProgressManager",
            progress: Progress,
            phase: str,
            description: str,
            total: int,
        ):
            self.manager = manager
            self.progress = progress
            self.phase = phase
            self.description = description
            self.total = total
            self.completed = 0
            self.task_id: Optional[Any] = None

        def __enter__(self) -> "ProgressManager.TrackedTask":
            self.progress.__enter__()
            self.task_id = self.progress.add_task(self.description, total=self.total or None)
            return self

        def __exit__(self, exc_type, exc_val, exc_tb):
            self.progress.__exit__(exc_type, exc_val, exc_tb)

        def update(self, completed: int, total: Optional[int] = None, name: str = "") -> None:
            """设置绝对进度"""
            self.completed = completed
            if total:
                self.total = total
            if self.task_id is not None:
                self.progress.update(self.task_id, completed=completed, total=self.total or None)
            self.manager._notify(self.phase, completed, self.total, name)

        def advance(self, name: str = "") -> None:
            """完成一项"""
            self.update(self.completed + 1, name=name)

    def track_transfer(self, phase: str, description: str, total: int = 0) -> TrackedTask:
        return self.TrackedTask(self, self.create_transfer_bar(), phase, description, total)

    def track_count(self, phase: str, description: str, total: int) -> TrackedTask:
        return self.TrackedTask(self, self.create_count_bar(), phase, description, total)
