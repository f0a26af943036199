"""MCASSET-DL - Minecraft 资源同步工具

异步 Python 包，按版本同步 client.jar 中的 assets/minecraft 以及资源索引中的全部对象
"""

# 版本信息
__version__ = "1.0.0"
__title__ = "mcasset-dl"
__description__ = "Minecraft 资源同步工具 - 异步版本"
__license__ = "MIT"

from .syncer import (
    AssetSyncer,
    get_assets,
    get_assets_sync,
    get_resources,
    get_resources_sync,
)
from .models import (
    AssetIndex,
    AssetObject,
    AssetsResult,
    Config,
    ExtractResult,
    ResourcesResult,
    SyncProgress,
    SyncResult,
    VersionManifest,
    VersionMeta,
)
from .config import get_config, override_config
from .exceptions import (
    McAssetDlException,
    TransportError,
    UpstreamFormatError,
    NotFoundError,
    ArchiveOpenError,
    ArchiveReadError,
    ExtractWriteError,
    DownloadWriteError,
    IntegrityError,
    PathSecurityError,
    ConfigurationError,
)

# 公共API
__all__ = [
    # 核心类
    "AssetSyncer",
    # 数据模型
    "AssetIndex",
    "AssetObject",
    "AssetsResult",
    "Config",
    "ExtractResult",
    "ResourcesResult",
    "SyncProgress",
    "SyncResult",
    "VersionManifest",
    "VersionMeta",
    # 便捷函数
    "get_assets",
    "get_assets_sync",
    "get_resources",
    "get_resources_sync",
    # 配置管理
    "get_config",
    "override_config",
    # 异常类
    "McAssetDlException",
    "TransportError",
    "UpstreamFormatError",
    "NotFoundError",
    "ArchiveOpenError",
    "ArchiveReadError",
    "ExtractWriteError",
    "DownloadWriteError",
    "IntegrityError",
    "PathSecurityError",
    "ConfigurationError",
    # 元数据
    "__version__",
]
