"""命令行界面测试"""

import io
import json

import pytest
from aioresponses import aioresponses
from rich.console import Console

from mcasset_dl.cli import CLIApplication, main


@pytest.fixture
def app():
    return CLIApplication(console=Console(file=io.StringIO(), width=160, color_system=None))


def output_of(app: CLIApplication) -> str:
    return app.console.file.getvalue()


@pytest.fixture
def upstream_env(monkeypatch, upstream):
    """让全局配置指向模拟上游"""
    monkeypatch.setenv("MCASSET_DL_MANIFEST_URL", upstream.manifest_url)
    monkeypatch.setenv("MCASSET_DL_RESOURCES_URL", upstream.resources_url)
    monkeypatch.setenv("MCASSET_DL_RETRY_BASE_DELAY", "0")
    return upstream


class TestArgumentParsing:
    """测试参数解析"""

    def test_defaults(self, app):
        args = app.create_parser().parse_args(["assets"])
        assert args.command == "assets"
        assert args.version == "latest"
        assert args.dir == "assets/"
        assert args.concurrency is None
        assert args.incremental is False

    def test_options(self, app):
        args = app.create_parser().parse_args(
            [
                "resources", "1.20.4", "-d", "out", "-j", "32", "--incremental", "--no-verify",
                "--max-retries", "5", "--timeout", "20", "--read-timeout", "9",
            ]
        )
        config = app.build_config(args)

        assert args.version == "1.20.4"
        assert config.max_concurrent_downloads == 32
        assert config.incremental is True
        assert config.verify_hashes is False
        assert config.max_retries == 5
        assert config.timeout == 20
        assert config.read_timeout == 9
        assert config.show_progress is True

    def test_no_progress(self, app):
        config = app.build_config(app.create_parser().parse_args(["all", "--no-progress"]))
        assert config.show_progress is False

    def test_unknown_command(self, app):
        with pytest.raises(SystemExit):
            app.create_parser().parse_args(["explode"])


class TestCommands:
    """测试命令执行"""

    @pytest.mark.asyncio
    async def test_versions(self, app, upstream_env):
        with aioresponses() as m:
            upstream_env.register_manifest(m)
            exit_code = await app.main(["versions", "--limit", "2"])

        text = output_of(app)
        assert exit_code == 0
        assert "1.20.4" in text
        assert "23w51b" in text
        assert "1.20.3" not in text

    @pytest.mark.asyncio
    async def test_all(self, app, upstream_env, tmp_path):
        with aioresponses() as m:
            upstream_env.register_assets(m, "1.20.4")
            upstream_env.register_resources(m, "1.20.4")
            exit_code = await app.main(["all", "1.20.4", "-d", str(tmp_path), "--no-progress"])

        assert exit_code == 0
        assert (tmp_path / "minecraft" / "a.txt").exists()
        assert len(list((tmp_path / "resources").rglob("*.*"))) == 3
        assert "Resources" in output_of(app)

    @pytest.mark.asyncio
    async def test_resource_failure_sets_exit_code(self, app, upstream_env, tmp_path):
        missing = next(iter(upstream_env.objects.values()))
        with aioresponses() as m:
            upstream_env.register_version(m, "1.20.4")
            m.get(upstream_env.index_url("1.20.4"), body=json.dumps(upstream_env.index()))
            for content in upstream_env.objects.values():
                if content == missing:
                    m.get(upstream_env.object_url(content), status=404)
                else:
                    m.get(upstream_env.object_url(content), body=content)
            exit_code = await app.main(["resources", "1.20.4", "-d", str(tmp_path), "--no-progress"])

        assert exit_code == 1
        assert "1 resource object(s) failed" in output_of(app)

    @pytest.mark.asyncio
    async def test_unknown_version(self, app, upstream_env, tmp_path):
        with aioresponses() as m:
            upstream_env.register_manifest(m)
            exit_code = await app.main(["assets", "9.9.9", "-d", str(tmp_path), "--no-progress"])

        assert exit_code == 1
        assert "Version not found" in output_of(app)

    @pytest.mark.asyncio
    async def test_invalid_option_value(self, app, tmp_path):
        exit_code = await app.main(["resources", "-j", "0", "-d", str(tmp_path)])
        assert exit_code == 1
        assert "Invalid configuration" in output_of(app)


def test_main_returns_exit_code(upstream_env, tmp_path):
    with aioresponses() as m:
        upstream_env.register_manifest(m)
        assert main(["versions"]) == 0
