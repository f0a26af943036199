"""测试数据模型"""

import json

import pytest
from pydantic import ValidationError

from mcasset_dl.models import (
    DEFAULT_MANIFEST_URL,
    DEFAULT_RESOURCES_URL,
    AssetIndex,
    AssetObject,
    Config,
    SyncProgress,
    SyncResult,
    VersionManifest,
    VersionMeta,
)


class TestVersionManifest:
    """测试版本清单模型"""

    def test_upstream_order_is_kept(self, upstream):
        manifest = VersionManifest.model_validate(upstream.manifest())
        assert [v.id for v in manifest.versions] == ["1.20.4", "23w51b", "1.20.3"]
        assert manifest.versions[0].release_time == "2023-12-07T12:56:20+00:00"

    def test_missing_versions_key(self):
        """测试缺少 versions 字段"""
        with pytest.raises(ValidationError):
            VersionManifest.model_validate({"latest": {}})

    def test_entry_requires_url(self):
        with pytest.raises(ValidationError):
            VersionManifest.model_validate({"versions": [{"id": "1.20.4"}]})


class TestVersionMeta:
    """测试版本元数据模型"""

    def test_urls(self, upstream):
        meta = VersionMeta.model_validate(upstream.meta("1.20.4"))
        assert meta.id == "1.20.4"
        assert meta.client_url == upstream.client_url("1.20.4")
        assert meta.asset_index_url == upstream.index_url("1.20.4")

    def test_missing_client_download(self, upstream):
        data = upstream.meta("1.20.4")
        del data["downloads"]["client"]
        with pytest.raises(ValidationError):
            VersionMeta.model_validate(data)

    def test_missing_asset_index(self, upstream):
        data = upstream.meta("1.20.4")
        del data["assetIndex"]
        with pytest.raises(ValidationError):
            VersionMeta.model_validate(data)


class TestAssetObject:
    """测试资源对象模型"""

    def test_url_layout(self):
        """CDN 地址为 根地址 + 前两位 + / + 完整哈希"""
        obj = AssetObject(hash="ab12cd", size=3)
        assert obj.block == "ab"
        assert obj.url("https://cdn.test/") == "https://cdn.test/ab/ab12cd"

    @pytest.mark.parametrize("bad_hash", ["", "a", "AB12", "zz12", "ab/12"])
    def test_invalid_hash(self, bad_hash):
        with pytest.raises(ValidationError):
            AssetObject(hash=bad_hash, size=1)

    def test_negative_size(self):
        with pytest.raises(ValidationError):
            AssetObject(hash="ab12", size=-1)

    def test_index_total_size(self, upstream):
        index = AssetIndex.model_validate_json(json.dumps(upstream.index()))
        assert len(index.objects) == 3
        assert index.total_size == sum(len(c) for c in upstream.objects.values())


class TestResults:
    def test_sync_result_total(self):
        result = SyncResult(downloaded=2, failed=1, skipped=4)
        assert result.total == 7
        assert result.failures == []

    def test_progress_percentage(self):
        assert SyncProgress(phase="resources", completed=1, total=4).percentage == 25.0
        assert SyncProgress(phase="client").percentage == 0.0


class TestConfig:
    """测试配置模型"""

    def test_defaults(self):
        config = Config()
        assert config.manifest_url == DEFAULT_MANIFEST_URL
        assert config.resources_url == DEFAULT_RESOURCES_URL
        assert config.max_concurrent_downloads == 16
        assert config.verify_hashes is True
        assert config.incremental is False

    def test_resources_url_gets_trailing_slash(self):
        assert Config(resources_url="https://cdn.test").resources_url == "https://cdn.test/"

    @pytest.mark.parametrize("value", [0, 65])
    def test_concurrency_range(self, value):
        with pytest.raises(ValidationError):
            Config(max_concurrent_downloads=value)

    @pytest.mark.parametrize("field", ["timeout", "read_timeout"])
    def test_positive_timeout(self, field):
        with pytest.raises(ValidationError):
            Config(**{field: 0})

    def test_negative_retry_delay(self):
        with pytest.raises(ValidationError):
            Config(retry_base_delay=-1)
