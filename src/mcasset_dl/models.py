"""数据模型定义

使用 Pydantic 对上游文档（清单、版本元数据、资源索引）做显式的结构校验，
缺失字段在解析边界直接转化为校验错误
"""

import re
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_MANIFEST_URL = "https://piston-meta.mojang.com/mc/game/version_manifest_v2.json"
DEFAULT_RESOURCES_URL = "https://resources.download.minecraft.net/"

_HEX_HASH = re.compile(r"^[0-9a-f]{2,}$")


class VersionEntry(BaseModel):
    """版本清单中的单个条目"""

    id: str = Field(..., description="版本ID")
    url: str = Field(..., description="版本元数据URL")
    type: Optional[str] = Field(default=None, description="版本类型: release, snapshot 等")
    release_time: Optional[str] = Field(default=None, alias="releaseTime")

    model_config = ConfigDict(extra="allow", populate_by_name=True)


class VersionManifest(BaseModel):
    """版本清单

    versions 保持上游顺序（最新在前），这是上游服务的约定，本地不做重新排序
    """

    versions: List[VersionEntry] = Field(..., description="版本列表")

    model_config = ConfigDict(extra="allow")


class ClientDownload(BaseModel):
    url: str = Field(..., description="client.jar 下载地址")
    sha1: Optional[str] = Field(default=None)
    size: Optional[int] = Field(default=None)

    model_config = ConfigDict(extra="allow")


class Downloads(BaseModel):
    client: ClientDownload

    model_config = ConfigDict(extra="allow")


class AssetIndexRef(BaseModel):
    """版本元数据中指向资源索引的引用"""

    url: str = Field(..., description="资源索引URL")
    id: Optional[str] = Field(default=None)

    model_config = ConfigDict(extra="allow")


class VersionMeta(BaseModel):
    """版本元数据，downloads.client.url 与 assetIndex.url 均为必填"""

    id: Optional[str] = Field(default=None, description="版本ID")
    downloads: Downloads
    asset_index: AssetIndexRef = Field(..., alias="assetIndex")

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    @property
    def client_url(self) -> str:
        return self.downloads.client.url

    @property
    def asset_index_url(self) -> str:
        return self.asset_index.url


class AssetObject(BaseModel):
    """资源索引中的单个对象"""

    hash: str = Field(..., description="内容哈希（小写十六进制）")
    size: int = Field(..., description="字节数")

    @field_validator("hash")
    @classmethod
    def validate_hash(cls, v: str) -> str:
        """哈希必须为小写十六进制"""
        if not _HEX_HASH.match(v):
            raise ValueError("hash must be lowercase hex")
        return v

    @field_validator("size")
    @classmethod
    def validate_size(cls, v: int) -> int:
        if v < 0:
            raise ValueError("size must be non-negative")
        return v

    @property
    def block(self) -> str:
        """CDN 上的两字符分桶前缀"""
        return self.hash[0:2]

    def url(self, base_url: str) -> str:
        """计算对象在 CDN 上的地址: BASE_URL + hash[0:2] + "/" + hash"""
        return f"{base_url}{self.block}/{self.hash}"

    model_config = ConfigDict(extra="allow")


class AssetIndex(BaseModel):
    """资源索引: 逻辑路径 -> 对象"""

    objects: Dict[str, AssetObject] = Field(..., description="资源对象映射")

    model_config = ConfigDict(extra="allow")

    @property
    def total_size(self) -> int:
        return sum(obj.size for obj in self.objects.values())


class ExtractResult(BaseModel):
    """归档解压结果"""

    files_written: int = Field(default=0, description="成功写入的文件数")
    files_failed: int = Field(default=0, description="写入失败的文件数")
    entries_skipped: int = Field(default=0, description="前缀不匹配或目录条目数")


class SyncResult(BaseModel):
    """资源同步结果"""

    downloaded: int = Field(default=0, description="成功下载数")
    failed: int = Field(default=0, description="失败数")
    skipped: int = Field(default=0, description="已存在且校验通过而跳过的数目")
    failures: List[str] = Field(default_factory=list, description="失败的资源名")

    @property
    def total(self) -> int:
        return self.downloaded + self.failed + self.skipped


class AssetsResult(BaseModel):
    """getAssets 入口的终态"""

    success: bool = Field(..., description="是否成功")
    version_id: Optional[str] = Field(None, description="实际解析到的版本ID")
    dest_dir: Optional[str] = Field(None, description="解压目标目录")
    extract: Optional[ExtractResult] = Field(None, description="解压统计")
    error: Optional[str] = Field(None, description="错误信息")


class ResourcesResult(BaseModel):
    """getResources 入口的终态"""

    success: bool = Field(..., description="是否成功")
    version_id: Optional[str] = Field(None, description="实际解析到的版本ID")
    dest_dir: Optional[str] = Field(None, description="资源目标目录")
    sync: Optional[SyncResult] = Field(None, description="同步统计")
    error: Optional[str] = Field(None, description="错误信息")


class SyncProgress(BaseModel):
    """进度回调模型"""

    phase: str = Field(..., description="阶段: client, extract, resources")
    completed: int = Field(default=0, description="已完成数量")
    total: int = Field(default=0, description="总量")
    name: str = Field(default="", description="当前处理对象")

    @property
    def percentage(self) -> float:
        if self.total > 0:
            return (self.completed / self.total) * 100
        return 0.0

    model_config = ConfigDict(extra="forbid")


class Config(BaseModel):
    """应用配置模型"""

    # 上游地址
    manifest_url: str = Field(default=DEFAULT_MANIFEST_URL, description="版本清单URL")
    resources_url: str = Field(default=DEFAULT_RESOURCES_URL, description="资源CDN根地址")

    # 网络配置
    timeout: int = Field(default=60, description="清单等小文档请求的总超时(秒)")
    connection_timeout: int = Field(default=15, description="连接超时时间(秒)")
    read_timeout: int = Field(default=30, description="流式下载时两次读取之间的最长等待(秒)")
    max_retries: int = Field(default=3, description="单个对象的最大尝试次数")
    retry_base_delay: float = Field(default=1.0, description="重试基础延迟(秒)")
    chunk_size: int = Field(default=65536, description="下载块大小")
    user_agent: str = Field(default="mcasset-dl/1.0", description="HTTP用户代理")

    # 并发设置
    max_concurrent_downloads: int = Field(default=16, description="资源下载并发数")

    # 同步行为
    verify_hashes: bool = Field(default=True, description="校验下载内容与已存在文件的哈希")
    incremental: bool = Field(default=False, description="增量同步，不清空 resources 目录")
    show_progress: bool = Field(default=False, description="显示 Rich 进度条")
    debug_mode: bool = Field(default=False, description="调试模式，错误信息包含堆栈")

    @field_validator("timeout", "connection_timeout", "read_timeout", "max_retries", "chunk_size")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        """验证必须为正数"""
        if v <= 0:
            raise ValueError("Value must be positive")
        return v

    @field_validator("max_concurrent_downloads")
    @classmethod
    def validate_concurrency(cls, v: int) -> int:
        if not 1 <= v <= 64:
            raise ValueError("max_concurrent_downloads must be between 1 and 64")
        return v

    @field_validator("retry_base_delay")
    @classmethod
    def validate_delay(cls, v: float) -> float:
        if v < 0:
            raise ValueError("retry_base_delay cannot be negative")
        return v

    @field_validator("resources_url")
    @classmethod
    def validate_resources_url(cls, v: str) -> str:
        """CDN 根地址统一以 / 结尾"""
        return v if v.endswith("/") else v + "/"

    model_config = ConfigDict(extra="allow")
