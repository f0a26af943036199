"""核心模块

这个包包含资源同步的各个组件：
- network_client: 网络请求客户端
- file_manager: 文件操作管理器
- manifest_resolver: 版本清单解析
- archive_extractor: client.jar 解压
- resource_sync: 资源对象批量下载
- progress_manager: 进度跟踪管理器
"""

from .archive_extractor import ArchiveExtractor
from .file_manager import FileManager
from .manifest_resolver import ManifestResolver
from .network_client import HTTPClient
from .progress_manager import ProgressManager
from .resource_sync import ResourceSynchronizer

__all__ = [
    "ArchiveExtractor",
    "FileManager",
    "HTTPClient",
    "ManifestResolver",
    "ProgressManager",
    "ResourceSynchronizer",
]
