"""资源同步器主模块

实现 AssetSyncer 主类，编排 版本解析 -> client.jar 下载 -> 解压，
以及 版本解析 -> 资源索引 -> 批量下载 两条互相独立的流程
"""

import asyncio
import logging
import os
import tempfile
import traceback
from pathlib import Path
from typing import Any, Callable, Optional, Union

from .async_adapter import smart_run
from .config import get_config
from .core.archive_extractor import ArchiveExtractor
from .core.file_manager import FileManager
from .core.manifest_resolver import ManifestResolver
from .core.network_client import HTTPClient
from .core.progress_manager import ProgressManager
from .core.resource_sync import ResourceSynchronizer
from .exceptions import McAssetDlException
from .models import (
    AssetsResult,
    Config,
    ExtractResult,
    ResourcesResult,
    SyncProgress,
    VersionMeta,
)
from .retry import RetryConfig, call_with_retry

log = logging.getLogger(__name__)

DEFAULT_BASE_PATH = "assets/"
ARCHIVE_PREFIX = "assets/minecraft"
ASSETS_DIR_NAME = "minecraft"
RESOURCES_DIR_NAME = "resources"


class AssetSyncer:
    """资源同步器 - 异步版本

    两个入口 sync_assets / sync_resources 互不依赖，均可重复执行；
    领域错误不会抛出，而是体现在返回结果的 success/error 字段中
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        progress_callback: Optional[Callable[[SyncProgress], None]] = None,
        http_client: Optional[HTTPClient] = None,
        file_manager: Optional[FileManager] = None,
    ):
        """初始化同步器

        Args:
            config: 配置对象，如果为None则使用默认配置
            progress_callback: 进度回调函数
            http_client: HTTP客户端（可选，默认按配置创建）
            file_manager: 文件管理器（可选）
        """
        self.config = config or get_config()
        self.progress_callback = progress_callback
        self.http_client = http_client or HTTPClient(self.config)
        self.file_manager = file_manager or FileManager()
        self.progress_manager = ProgressManager(
            progress_callback=progress_callback, enabled=self.config.show_progress
        )
        self.resolver = ManifestResolver(self.http_client, self.config)
        self._resource_sync: Optional[ResourceSynchronizer] = None

    async def __aenter__(self) -> "AssetSyncer":
        await self.http_client.__aenter__()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.http_client.__aexit__(exc_type, exc_val, exc_tb)

    def request_stop(self) -> None:
        """中止正在进行的资源同步（已开始的传输会完成）"""
        if self._resource_sync is not None:
            self._resource_sync.request_stop()

    def _describe_error(self, error: Exception) -> str:
        if isinstance(error, McAssetDlException):
            return f"{type(error).__name__}: {error}"
        details = f"Unexpected error ({type(error).__name__}): {error}"
        if self.config.debug_mode:
            details += f"\nTraceback: {traceback.format_exc()}"
        return details

    async def sync_assets(
        self, version: str = "latest", base_path: Union[str, Path] = DEFAULT_BASE_PATH
    ) -> AssetsResult:
        """下载 client.jar 并解压 assets/minecraft 到 base_path/minecraft

        Args:
            version: 版本ID或 "latest"
            base_path: 输出根目录

        Returns:
            AssetsResult
        """
        dest_dir = Path(base_path) / ASSETS_DIR_NAME
        meta: Optional[VersionMeta] = None

        try:
            self.file_manager.remove_tree(dest_dir)

            meta = await self.resolver.resolve(version)
            extract = await self._fetch_and_extract(meta, dest_dir)

            return AssetsResult(
                success=True,
                version_id=meta.id,
                dest_dir=str(dest_dir),
                extract=extract,
            )

        except Exception as e:
            if isinstance(e, (McAssetDlException, OSError)):
                log.error("Asset sync failed: %s", e)
            else:
                log.exception("Unexpected error during asset sync")
            return AssetsResult(
                success=False,
                version_id=meta.id if meta else None,
                dest_dir=str(dest_dir),
                error=self._describe_error(e),
            )

    async def _fetch_and_extract(self, meta: VersionMeta, dest_dir: Path) -> ExtractResult:
        """下载 client.jar 到临时文件并解压，临时文件在任何情况下都会被删除"""
        fd, tmp_name = tempfile.mkstemp(prefix="mcasset-dl-", suffix=".jar")
        os.close(fd)
        archive_path = Path(tmp_name)

        try:
            log.info("Downloading client archive for %s", meta.id)
            with self.progress_manager.track_transfer("client", "client.jar") as tracker:
                await call_with_retry(
                    RetryConfig.from_config(self.config),
                    self.http_client.download_to_file,
                    meta.client_url,
                    archive_path,
                    progress_callback=lambda done, total: tracker.update(done, total, "client.jar"),
                )

            log.info("Extracting %s into %s", ARCHIVE_PREFIX, dest_dir)
            loop = asyncio.get_running_loop()
            with self.progress_manager.track_count("extract", "Extracting assets", 0) as extract_tracker:
                # 解压在工作线程中进行，进度更新交回事件循环线程
                extractor = ArchiveExtractor(
                    self.file_manager,
                    progress_callback=lambda index, total, name: loop.call_soon_threadsafe(
                        extract_tracker.update, index, total, name
                    ),
                )
                return await asyncio.to_thread(
                    extractor.extract, archive_path, ARCHIVE_PREFIX, dest_dir
                )
        finally:
            archive_path.unlink(missing_ok=True)

    async def sync_resources(
        self,
        version: str = "latest",
        base_path: Union[str, Path] = DEFAULT_BASE_PATH,
        concurrency: Optional[int] = None,
    ) -> ResourcesResult:
        """按资源索引下载全部资源对象到 base_path/resources

        Args:
            version: 版本ID或 "latest"
            base_path: 输出根目录
            concurrency: 并发数，默认取配置

        Returns:
            ResourcesResult，任一对象失败时 success 为 False
        """
        dest_dir = Path(base_path) / RESOURCES_DIR_NAME
        meta: Optional[VersionMeta] = None

        try:
            if not self.config.incremental:
                self.file_manager.remove_tree(dest_dir)

            meta = await self.resolver.resolve(version)

            self._resource_sync = ResourceSynchronizer(
                self.http_client,
                self.config,
                file_manager=self.file_manager,
                progress_manager=self.progress_manager,
            )
            sync = await self._resource_sync.sync(meta.asset_index_url, dest_dir, concurrency)

            error = None
            if sync.failed:
                error = f"{sync.failed} resource object(s) failed"
            return ResourcesResult(
                success=sync.failed == 0,
                version_id=meta.id,
                dest_dir=str(dest_dir),
                sync=sync,
                error=error,
            )

        except Exception as e:
            if isinstance(e, (McAssetDlException, OSError)):
                log.error("Resource sync failed: %s", e)
            else:
                log.exception("Unexpected error during resource sync")
            return ResourcesResult(
                success=False,
                version_id=meta.id if meta else None,
                dest_dir=str(dest_dir),
                error=self._describe_error(e),
            )
        finally:
            self._resource_sync = None


# 便捷函数
async def get_assets(
    version: str = "latest",
    base_path: Union[str, Path] = DEFAULT_BASE_PATH,
    config: Optional[Config] = None,
    progress_callback: Optional[Callable[[SyncProgress], None]] = None,
) -> AssetsResult:
    """下载并解压指定版本的 assets/minecraft"""
    async with AssetSyncer(config=config, progress_callback=progress_callback) as syncer:
        return await syncer.sync_assets(version, base_path)


async def get_resources(
    version: str = "latest",
    base_path: Union[str, Path] = DEFAULT_BASE_PATH,
    config: Optional[Config] = None,
    progress_callback: Optional[Callable[[SyncProgress], None]] = None,
) -> ResourcesResult:
    """下载指定版本资源索引中的全部对象"""
    async with AssetSyncer(config=config, progress_callback=progress_callback) as syncer:
        return await syncer.sync_resources(version, base_path)


def get_assets_sync(
    version: str = "latest",
    base_path: Union[str, Path] = DEFAULT_BASE_PATH,
    config: Optional[Config] = None,
) -> AssetsResult:
    """get_assets 的同步版本"""
    return smart_run(get_assets(version, base_path, config))


def get_resources_sync(
    version: str = "latest",
    base_path: Union[str, Path] = DEFAULT_BASE_PATH,
    config: Optional[Config] = None,
) -> ResourcesResult:
    """get_resources 的同步版本"""
    return smart_run(get_resources(version, base_path, config))
