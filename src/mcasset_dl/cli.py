"""命令行界面模块

使用 Rich 库提供美化的命令行体验
"""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from . import __version__
from .config import check_environment, get_config, override_config
from .core.manifest_resolver import ManifestResolver
from .core.network_client import HTTPClient
from .exceptions import McAssetDlException
from .models import AssetsResult, Config, ResourcesResult
from .syncer import DEFAULT_BASE_PATH, AssetSyncer

log = logging.getLogger("mcasset_dl")

COMMANDS = ("assets", "resources", "all", "versions")


def setup_logging(console: Console, verbose: bool = False) -> None:
    """把根日志输出交给 RichHandler"""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[
            RichHandler(
                console=console,
                rich_tracebacks=True,
                show_path=False,
                markup=False,
            )
        ],
        force=True,
    )
    # aiohttp 的调试日志太吵
    logging.getLogger("aiohttp").setLevel(logging.WARNING)


class CLIApplication:
    """命令行应用程序"""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def create_parser(self) -> argparse.ArgumentParser:
        """创建命令行参数解析器"""
        parser = argparse.ArgumentParser(
            prog="mcasset-dl",
            description="Minecraft 资源同步工具",
            formatter_class=argparse.RawDescriptionHelpFormatter,
            epilog="""
使用示例:
  mcasset-dl assets                     # 解压最新版本的 assets/minecraft
  mcasset-dl resources 1.20.4 -d out/   # 下载 1.20.4 的全部资源对象
  mcasset-dl all latest -j 32           # 两者都做，32 并发
  mcasset-dl versions --limit 20        # 列出最近 20 个版本
            """,
        )

        parser.add_argument("command", choices=COMMANDS, help="要执行的操作")
        parser.add_argument(
            "version", nargs="?", default="latest", help="版本ID (默认: latest)"
        )
        parser.add_argument(
            "-d", "--dir", default=DEFAULT_BASE_PATH, help=f"输出根目录 (默认: {DEFAULT_BASE_PATH})"
        )
        parser.add_argument("-j", "--concurrency", type=int, help="资源下载并发数，默认16")
        parser.add_argument("--timeout", type=int, help="清单等小文档请求的超时(秒)，默认60")
        parser.add_argument("--read-timeout", type=int, help="下载时读取停顿超时(秒)，默认30")
        parser.add_argument("--max-retries", type=int, help="单个对象最大尝试次数，默认3")
        parser.add_argument(
            "--incremental",
            action="store_true",
            help="不清空 resources 目录，跳过哈希一致的已有文件",
        )
        parser.add_argument(
            "--no-verify", action="store_true", help="不校验下载内容的哈希"
        )
        parser.add_argument("--no-progress", action="store_true", help="不显示进度条")
        parser.add_argument("--limit", type=int, default=10, help="versions 命令显示的条数")
        parser.add_argument("-v", "--verbose", action="store_true", help="显示详细输出")
        parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

        return parser

    def build_config(self, args: argparse.Namespace) -> Config:
        """从命令行参数覆盖配置"""
        return override_config(
            get_config(),
            max_concurrent_downloads=args.concurrency,
            timeout=args.timeout,
            read_timeout=args.read_timeout,
            max_retries=args.max_retries,
            incremental=True if args.incremental else None,
            verify_hashes=False if args.no_verify else None,
            show_progress=not args.no_progress,
            debug_mode=True if args.verbose else None,
        )

    def print_error(self, error: str):
        """打印错误信息"""
        error_text = Text(f"❌ 错误: {error}", style="bold red")
        self.console.print(Panel(error_text, border_style="red"))

    def print_assets_result(self, result: AssetsResult):
        if not result.success:
            self.print_error(result.error or "Asset sync failed")
            return

        table = Table(title="📦 Assets", show_header=False, border_style="dim")
        table.add_column("属性", style="bold cyan", width=14)
        table.add_column("值", style="white")
        table.add_row("版本", result.version_id or "-")
        table.add_row("目录", result.dest_dir or "-")
        if result.extract:
            table.add_row("写入文件", str(result.extract.files_written))
            table.add_row("写入失败", str(result.extract.files_failed))
        self.console.print(table)
        self.console.print(Panel(Text("✅ Assets 同步完成", style="bold green"), border_style="green"))

    def print_resources_result(self, result: ResourcesResult):
        if result.sync is None:
            self.print_error(result.error or "Resource sync failed")
            return

        table = Table(title="🎵 Resources", show_header=False, border_style="dim")
        table.add_column("属性", style="bold cyan", width=14)
        table.add_column("值", style="white")
        table.add_row("版本", result.version_id or "-")
        table.add_row("目录", result.dest_dir or "-")
        table.add_row("已下载", str(result.sync.downloaded))
        table.add_row("已跳过", str(result.sync.skipped))
        table.add_row("失败", str(result.sync.failed))
        self.console.print(table)

        if result.success:
            self.console.print(
                Panel(Text("✅ Resources 同步完成", style="bold green"), border_style="green")
            )
        else:
            for name in result.sync.failures[:20]:
                self.console.print(f"  [red]✗[/red] {name}")
            if len(result.sync.failures) > 20:
                self.console.print(f"  [dim]... 另有 {len(result.sync.failures) - 20} 项[/dim]")
            self.print_error(result.error or "Some resources failed")

    async def list_versions(self, config: Config, limit: int) -> int:
        async with HTTPClient(config) as client:
            manifest = await ManifestResolver(client, config).fetch_manifest()

        table = Table(title="🗂️ Versions (newest first)", border_style="dim")
        table.add_column("ID", style="bold cyan")
        table.add_column("Type")
        table.add_column("Released", style="dim")
        for entry in manifest.versions[: max(limit, 0)]:
            table.add_row(entry.id, entry.type or "-", entry.release_time or "-")
        self.console.print(table)
        return 0

    async def run(self, args: argparse.Namespace) -> int:
        """执行命令"""
        try:
            config = self.build_config(args)

            if args.command == "versions":
                return await self.list_versions(config, args.limit)

            exit_code = 0
            async with AssetSyncer(config=config) as syncer:
                if args.command in ("assets", "all"):
                    self.console.print(f"🔍 Assets: [bold]{args.version}[/bold] -> {args.dir}")
                    assets = await syncer.sync_assets(args.version, args.dir)
                    self.print_assets_result(assets)
                    if not assets.success:
                        exit_code = 1

                if args.command in ("resources", "all"):
                    self.console.print(f"🔍 Resources: [bold]{args.version}[/bold] -> {args.dir}")
                    resources = await syncer.sync_resources(
                        args.version, args.dir, args.concurrency
                    )
                    self.print_resources_result(resources)
                    if not resources.success:
                        exit_code = 1

            return exit_code

        except McAssetDlException as e:
            self.print_error(str(e))
            return 1

    async def main(self, argv: Optional[List[str]] = None) -> int:
        """主入口函数"""
        parser = self.create_parser()
        args = parser.parse_args(argv)

        setup_logging(self.console, args.verbose)
        if args.verbose:
            log.debug("Environment overrides: %s", check_environment())

        return await self.run(args)


def main(argv: Optional[List[str]] = None) -> int:
    """CLI入口点 - 同步包装器"""
    app = CLIApplication()

    try:
        return asyncio.run(app.main(argv))
    except KeyboardInterrupt:
        app.console.print("\n🛑 用户取消同步")
        return 1


if __name__ == "__main__":
    sys.exit(main())
