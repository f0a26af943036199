"""版本解析模块

把用户给出的版本字符串解析成完整的版本元数据。
"""

import logging
from typing import Type, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from ..exceptions import NotFoundError, UpstreamFormatError
from ..models import Config, VersionEntry, VersionManifest, VersionMeta
from .network_client import HTTPClient

log = logging.getLogger(__name__)

LATEST = "latest"

M = TypeVar("M", bound=BaseModel)


def parse_document(payload: bytes, model: Type[M], url: str, document: str) -> M:
    """把上游 JSON 文档校验为模型

    Raises:
        UpstreamFormatError: JSON 无效或缺少必填字段
    """
    try:
        return model.model_validate_json(payload)
    except PydanticValidationError as e:
        raise UpstreamFormatError(
            f"Invalid {document}: {e.error_count()} validation error(s), "
            f"first: {_first_error(e)}",
            url=url,
            document=document,
        ) from e


def _first_error(error: PydanticValidationError) -> str:
    first = error.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ())) or "<root>"
    return f"{location}: {first.get('msg', '')}"


class ManifestResolver:
    """版本清单解析器

    只请求一次清单，不做重试：清单或元数据拿不到时后续步骤没有意义。
    """

    def __init__(self, http_client: HTTPClient, config: Config):
        self.http_client = http_client
        self.config = config

    async def fetch_manifest(self) -> VersionManifest:
        """获取并校验版本清单"""
        payload = await self.http_client.fetch_bytes(self.config.manifest_url)
        return parse_document(payload, VersionManifest, self.config.manifest_url, "version manifest")

    @staticmethod
    def select_entry(manifest: VersionManifest, version: str) -> VersionEntry:
        """在清单中选出版本条目

        "latest" 取第一项。清单按最新在前排列是上游服务的约定，这里直接沿用。
        其他值按清单顺序线性查找，第一个 id 相同的条目胜出。

        Raises:
            NotFoundError: 找不到对应版本，或清单为空
        """
        if version == LATEST:
            if not manifest.versions:
                raise NotFoundError(
                    "Version manifest is empty", resource_type="version", resource_id=version
                )
            return manifest.versions[0]

        for entry in manifest.versions:
            if entry.id == version:
                return entry

        raise NotFoundError(
            "Version not found in manifest", resource_type="version", resource_id=version
        )

    async def resolve(self, version: str) -> VersionMeta:
        """把版本字符串解析为版本元数据

        Args:
            version: 版本ID，或 "latest"

        Returns:
            VersionMeta

        Raises:
            TransportError: 网络错误
            NotFoundError: 版本不存在
            UpstreamFormatError: 清单或元数据格式错误
        """
        manifest = await self.fetch_manifest()
        entry = self.select_entry(manifest, version)
        log.info("Resolved version %r to %s", version, entry.id)

        payload = await self.http_client.fetch_bytes(entry.url)
        meta = parse_document(payload, VersionMeta, entry.url, "version metadata")
        if meta.id is None:
            meta.id = entry.id
        return meta
