"""异常定义模块

定义资源同步流水线专用的异常类，区分致命错误（清单/元数据）与可恢复的单项错误
"""

from typing import Any, Dict, Optional


class McAssetDlException(Exception):
    """MCASSET-DL 基础异常类"""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def _format(self, *fields: tuple) -> str:
        parts = [self.message]
        for label, value in fields:
            if value is not None and value != "":
                parts.append(f"{label}: {value}")
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            parts.append(f"Context: {context_str}")
        return " | ".join(parts)

    def __str__(self) -> str:
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} (Context: {context_str})"
        return self.message


class TransportError(McAssetDlException):
    """网络传输异常（连接、DNS、超时、非200状态码）"""

    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
        status_code: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, context)
        self.url = url
        self.status_code = status_code

    def __str__(self) -> str:
        return self._format(("URL", self.url), ("Status", self.status_code))


class UpstreamFormatError(McAssetDlException):
    """上游文档格式异常 - 清单、版本元数据或资源索引无法解析"""

    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
        document: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, context)
        self.url = url
        self.document = document

    def __str__(self) -> str:
        return self._format(("Document", self.document), ("URL", self.url))


class NotFoundError(McAssetDlException):
    """资源未找到异常"""

    def __init__(
        self,
        message: str,
        resource_type: Optional[str] = None,
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, context)
        self.resource_type = resource_type
        self.resource_id = resource_id

    def __str__(self) -> str:
        return self._format(("Type", self.resource_type), ("ID", self.resource_id))


class ArchiveOpenError(McAssetDlException):
    """归档打开异常 - 文件不存在或不是有效的zip"""

    def __init__(
        self,
        message: str,
        archive_path: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, context)
        self.archive_path = archive_path

    def __str__(self) -> str:
        return self._format(("Archive", self.archive_path))


class ArchiveReadError(McAssetDlException):
    """归档读取异常 - 归档内容损坏（致命）"""

    def __init__(
        self,
        message: str,
        archive_path: Optional[str] = None,
        entry: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, context)
        self.archive_path = archive_path
        self.entry = entry

    def __str__(self) -> str:
        return self._format(("Archive", self.archive_path), ("Entry", self.entry))


class ExtractWriteError(McAssetDlException):
    """解压写入异常 - 单个文件写入失败（非致命）"""

    def __init__(
        self,
        message: str,
        file_path: Optional[str] = None,
        entry: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, context)
        self.file_path = file_path
        self.entry = entry

    def __str__(self) -> str:
        return self._format(("Entry", self.entry), ("File", self.file_path))


class DownloadWriteError(McAssetDlException):
    """下载写入异常 - 资源对象落盘失败（非致命）"""

    def __init__(
        self,
        message: str,
        file_path: Optional[str] = None,
        url: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, context)
        self.file_path = file_path
        self.url = url

    def __str__(self) -> str:
        return self._format(("URL", self.url), ("File", self.file_path))


class IntegrityError(McAssetDlException):
    """内容校验异常 - 下载内容的哈希与索引不一致"""

    def __init__(
        self,
        message: str,
        expected: Optional[str] = None,
        actual: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, context)
        self.expected = expected
        self.actual = actual

    def __str__(self) -> str:
        return self._format(("Expected", self.expected), ("Actual", self.actual))


class PathSecurityError(McAssetDlException):
    """路径安全异常 - 条目名试图逃逸目标目录"""

    def __init__(
        self,
        message: str,
        path: Optional[str] = None,
        attack_type: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, context)
        self.path = path
        self.attack_type = attack_type

    def __str__(self) -> str:
        return self._format(("Attack Type", self.attack_type), ("Path", self.path))


class ConfigurationError(McAssetDlException):
    """配置异常"""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        config_value: Optional[Any] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, context)
        self.config_key = config_key
        self.config_value = config_value

    def __str__(self) -> str:
        return self._format(("Key", self.config_key), ("Value", self.config_value))


# HTTP状态码映射，未列出的状态码一律视为传输错误
EXCEPTION_MAPPING = {
    404: NotFoundError,
    410: NotFoundError,
}


def map_http_status(status_code: int, message: str, url: Optional[str] = None) -> McAssetDlException:
    """根据HTTP状态码映射异常"""
    exception_class = EXCEPTION_MAPPING.get(status_code)
    if exception_class is NotFoundError:
        return NotFoundError(
            message, resource_type="url", resource_id=url, context={"status": status_code}
        )
    return TransportError(message, url=url, status_code=status_code)
