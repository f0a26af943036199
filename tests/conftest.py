"""pytest配置文件"""

import hashlib
import io
import json
import os
import zipfile
from typing import Dict, Iterable, Optional

import pytest

from mcasset_dl.config import config_manager
from mcasset_dl.models import Config

MANIFEST_URL = "https://meta.test/mc/game/version_manifest_v2.json"
RESOURCES_URL = "https://cdn.test/"

# client.jar 中的条目，以 / 结尾的是目录条目
DEFAULT_CLIENT_ENTRIES: Dict[str, bytes] = {
    "assets/minecraft/": b"",
    "assets/minecraft/textures/block/stone.png": b"stone pixels",
    "assets/minecraft/lang/en_us.json": b'{"block.minecraft.stone": "Stone"}',
    "assets/minecraft/a.txt": b"A",
    "assets/minecraftx/b.txt": b"should not be extracted",
    "assets/realms/lang/en_us.json": b"{}",
    "net/minecraft/client/Main.class": b"\xca\xfe\xba\xbe",
}

DEFAULT_OBJECTS: Dict[str, bytes] = {
    "minecraft/sounds/ambient/cave/cave1.ogg": b"cave sound bytes",
    "minecraft/lang/de_de.json": b'{"block.minecraft.stone": "Stein"}',
    "icons/icon_16x16.png": b"\x89PNG fake icon",
}


def sha1(data: bytes) -> str:
    return hashlib.sha1(data).hexdigest()


def build_zip(entries: Dict[str, bytes], compression: int = zipfile.ZIP_DEFLATED) -> bytes:
    """在内存中构造 zip 归档"""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=compression) as archive:
        for name, content in entries.items():
            archive.writestr(name, content)
    return buffer.getvalue()


class FakeUpstream:
    """一组互相引用的上游文档：清单 -> 版本元数据 -> client.jar / 资源索引 -> 对象"""

    def __init__(
        self,
        versions: Iterable[str] = ("1.20.4", "23w51b", "1.20.3"),
        client_entries: Optional[Dict[str, bytes]] = None,
        objects: Optional[Dict[str, bytes]] = None,
    ):
        self.manifest_url = MANIFEST_URL
        self.resources_url = RESOURCES_URL
        self.versions = list(versions)
        self.client_entries = dict(DEFAULT_CLIENT_ENTRIES if client_entries is None else client_entries)
        self.objects = dict(DEFAULT_OBJECTS if objects is None else objects)

    def meta_url(self, version: str) -> str:
        return f"https://meta.test/v1/packages/{version}.json"

    def client_url(self, version: str) -> str:
        return f"https://meta.test/v1/objects/{version}/client.jar"

    def index_url(self, version: str) -> str:
        return f"https://meta.test/v1/indexes/{version}.json"

    def object_url(self, content: bytes) -> str:
        digest = sha1(content)
        return f"{self.resources_url}{digest[:2]}/{digest}"

    def manifest(self) -> dict:
        return {
            "latest": {"release": self.versions[0], "snapshot": self.versions[0]},
            "versions": [
                {
                    "id": version,
                    "type": "release",
                    "url": self.meta_url(version),
                    "releaseTime": "2023-12-07T12:56:20+00:00",
                }
                for version in self.versions
            ],
        }

    def meta(self, version: str) -> dict:
        return {
            "id": version,
            "assetIndex": {"id": "12", "url": self.index_url(version)},
            "downloads": {"client": {"url": self.client_url(version), "size": 1}},
        }

    def index(self) -> dict:
        return {
            "objects": {
                name: {"hash": sha1(content), "size": len(content)}
                for name, content in self.objects.items()
            }
        }

    def client_jar(self) -> bytes:
        return build_zip(self.client_entries)

    def register_manifest(self, m) -> None:
        m.get(self.manifest_url, body=json.dumps(self.manifest()))

    def register_version(self, m, version: str) -> None:
        self.register_manifest(m)
        m.get(self.meta_url(version), body=json.dumps(self.meta(version)))

    def register_assets(self, m, version: str) -> None:
        self.register_version(m, version)
        m.get(self.client_url(version), body=self.client_jar())

    def register_resources(self, m, version: str) -> None:
        self.register_version(m, version)
        m.get(self.index_url(version), body=json.dumps(self.index()))
        for content in self.objects.values():
            m.get(self.object_url(content), body=content)


@pytest.fixture
def upstream():
    """模拟的上游服务数据"""
    return FakeUpstream()


@pytest.fixture
def upstream_factory():
    """自定义版本、条目或对象的上游数据"""
    return FakeUpstream


@pytest.fixture
def config():
    """指向模拟上游的配置，重试不等待"""
    return Config(
        manifest_url=MANIFEST_URL,
        resources_url=RESOURCES_URL,
        max_retries=2,
        retry_base_delay=0,
        max_concurrent_downloads=4,
    )


@pytest.fixture
def zip_factory(tmp_path):
    """把条目写成磁盘上的 zip 文件"""

    def factory(entries: Dict[str, bytes], name: str = "client.jar", **kwargs) -> str:
        path = tmp_path / name
        path.write_bytes(build_zip(entries, **kwargs))
        return str(path)

    return factory


@pytest.fixture(autouse=True)
def reset_global_config(monkeypatch):
    """每个测试使用干净的全局配置和环境变量"""
    for key in list(os.environ):
        if key.startswith("MCASSET_DL_"):
            monkeypatch.delenv(key)
    config_manager.reset()
    yield
    config_manager.reset()
