"""资源同步模块

按资源索引从 CDN 批量下载内容寻址的资源对象。

对象之间没有依赖，用固定数量的 worker 消费同一个队列：
- 每个 worker 取下一个对象、下载、记录结果，直到队列为空
- 计数器只在事件循环线程中修改，不需要额外加锁
- 单个对象失败只记录，不影响其余对象
"""

import asyncio
import logging
from pathlib import Path
from typing import Optional, Tuple, Union

from ..exceptions import (
    DownloadWriteError,
    IntegrityError,
    McAssetDlException,
    PathSecurityError,
)
from ..models import AssetIndex, AssetObject, Config, SyncResult
from ..retry import RetryableError, RetryConfig, call_with_retry
from .file_manager import FileManager
from .manifest_resolver import parse_document
from .network_client import HTTPClient
from .progress_manager import ProgressManager

log = logging.getLogger(__name__)

WorkItem = Tuple[str, AssetObject]


class ResourceSynchronizer:
    """资源同步器"""

    def __init__(
        self,
        http_client: HTTPClient,
        config: Config,
        file_manager: Optional[FileManager] = None,
        progress_manager: Optional[ProgressManager] = None,
    ):
        self.http_client = http_client
        self.config = config
        self.file_manager = file_manager or FileManager()
        self.progress_manager = progress_manager or ProgressManager(enabled=False)
        self.retry_config = RetryConfig.from_config(config)
        self._stop = asyncio.Event()

    def request_stop(self) -> None:
        """停止领取新对象，正在进行的传输会继续完成"""
        self._stop.set()

    async def fetch_index(self, asset_index_url: str) -> AssetIndex:
        """获取并校验资源索引

        Raises:
            TransportError: 网络错误
            UpstreamFormatError: 索引格式错误
        """
        payload = await self.http_client.fetch_bytes(asset_index_url)
        return parse_document(payload, AssetIndex, asset_index_url, "asset index")

    async def sync(
        self,
        asset_index_url: str,
        dest_root: Union[str, Path],
        concurrency: Optional[int] = None,
    ) -> SyncResult:
        """获取资源索引并同步全部对象

        Args:
            asset_index_url: 资源索引URL
            dest_root: 目标目录，对象写入 dest_root/<name>
            concurrency: 并发数，默认取配置

        Returns:
            SyncResult
        """
        index = await self.fetch_index(asset_index_url)
        log.info(
            "Asset index lists %d object(s), %.1f MiB",
            len(index.objects),
            index.total_size / (1024 * 1024),
        )
        return await self.sync_index(index, dest_root, concurrency)

    async def sync_index(
        self,
        index: AssetIndex,
        dest_root: Union[str, Path],
        concurrency: Optional[int] = None,
    ) -> SyncResult:
        """按已获取的索引同步全部对象"""
        dest_root = Path(dest_root)
        workers = max(1, min(concurrency or self.config.max_concurrent_downloads, 64))
        result = SyncResult()

        queue: "asyncio.Queue[WorkItem]" = asyncio.Queue()
        for item in index.objects.items():
            queue.put_nowait(item)

        self.file_manager.ensure_directory(dest_root)

        with self.progress_manager.track_count(
            "resources", "Downloading resources", len(index.objects)
        ) as tracker:

            async def worker() -> None:
                while not self._stop.is_set():
                    try:
                        name, obj = queue.get_nowait()
                    except asyncio.QueueEmpty:
                        return
                    try:
                        outcome = await self._process(name, obj, dest_root)
                    except McAssetDlException as e:
                        log.warning("Failed to fetch %s: %s", name, e)
                        result.failed += 1
                        result.failures.append(name)
                    except Exception as e:
                        log.warning(
                            "Unexpected error fetching %r: %s: %s", name, type(e).__name__, e
                        )
                        result.failed += 1
                        result.failures.append(name)
                    else:
                        if outcome == "skipped":
                            result.skipped += 1
                        else:
                            result.downloaded += 1
                    finally:
                        queue.task_done()
                        tracker.advance(name)

            await asyncio.gather(*(worker() for _ in range(min(workers, max(1, queue.qsize())))))

        log.info(
            "Resources: %d downloaded, %d skipped, %d failed",
            result.downloaded,
            result.skipped,
            result.failed,
        )
        return result

    async def _process(self, name: str, obj: AssetObject, dest_root: Path) -> str:
        """处理单个对象，返回 "downloaded" 或 "skipped"

        Raises:
            McAssetDlException: 对象最终失败
        """
        try:
            dest_path = self.file_manager.resolve_under(dest_root, name)
        except PathSecurityError as e:
            raise DownloadWriteError(f"Unsafe resource name: {e.message}", file_path=name) from e

        expected_hash = obj.hash if self.config.verify_hashes else None
        if self.file_manager.matches(dest_path, expected_hash, obj.size):
            log.debug("Already present: %s", name)
            return "skipped"

        try:
            self.file_manager.ensure_parent(dest_path)
        except OSError as e:
            raise DownloadWriteError(
                f"Directory creation failed: {e}", file_path=str(dest_path.parent)
            ) from e

        source_url = obj.url(self.config.resources_url)
        await call_with_retry(self.retry_config, self._fetch_object, source_url, dest_path, obj)
        return "downloaded"

    async def _fetch_object(self, source_url: str, dest_path: Path, obj: AssetObject) -> None:
        """下载单个对象并校验"""
        downloaded = await self.http_client.download_to_file(source_url, dest_path)

        if downloaded.size == 0 and obj.size > 0:
            self.file_manager.remove_file(dest_path)
            raise RetryableError("Empty response body", context={"url": source_url})

        if self.config.verify_hashes and downloaded.sha1 != obj.hash:
            self.file_manager.remove_file(dest_path)
            raise IntegrityError(
                f"Content hash mismatch for {dest_path.name}",
                expected=obj.hash,
                actual=downloaded.sha1,
            )
