"""网络客户端模块

对 aiohttp 会话的薄封装，提供两个原语：
- fetch_bytes: GET 请求，返回完整响应体
- download_to_file: GET 请求，把响应体流式写入磁盘（原子替换）
"""

import asyncio
import hashlib
import logging
import os
import ssl
import urllib.parse
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Optional

import aiofiles
import aiohttp

from ..exceptions import DownloadWriteError, TransportError, map_http_status
from ..models import Config

log = logging.getLogger(__name__)


def _sanitize_url_for_logging(url: str) -> str:
    """清理URL中的查询参数用于日志记录"""
    try:
        parsed = urllib.parse.urlparse(url)
        return f"{parsed.scheme}://{parsed.hostname}{parsed.path}"
    except Exception:
        return "[URL]"


@dataclass
class DownloadedFile:
    """download_to_file 的返回值: 写入字节数与内容 SHA-1"""

    path: Path
    size: int
    sha1: str


class HTTPClient:
    """HTTP客户端

    负责创建和管理HTTP会话，包括:
    - SSL证书校验
    - 连接池大小与并发数保持一致
    - 单次传输超时
    """

    def __init__(self, config: Config):
        """初始化HTTP客户端

        Args:
            config: 配置对象
        """
        self.config = config
        self._session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self) -> "HTTPClient":
        await self._create_session()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    @property
    def is_open(self) -> bool:
        return self._session is not None and not self._session.closed

    async def _create_session(self) -> None:
        """创建HTTP会话"""
        if self._session is not None:
            return

        self._session = aiohttp.ClientSession(
            connector=self._create_connector(),
            timeout=self._create_timeout_config(),
            headers={"User-Agent": self.config.user_agent},
            raise_for_status=False,
        )

    def _create_connector(self) -> aiohttp.TCPConnector:
        """创建TCP连接器，连接上限与下载并发数一致"""
        ssl_context = ssl.create_default_context()
        ssl_context.minimum_version = ssl.TLSVersion.TLSv1_2

        return aiohttp.TCPConnector(
            ssl=ssl_context,
            limit=self.config.max_concurrent_downloads,
            use_dns_cache=True,
            ttl_dns_cache=300,
        )

    def _create_timeout_config(self) -> aiohttp.ClientTimeout:
        """小文档请求的超时上限"""
        return aiohttp.ClientTimeout(
            total=self.config.timeout,
            connect=self.config.connection_timeout,
            sock_connect=self.config.connection_timeout,
        )

    def _create_download_timeout(self) -> aiohttp.ClientTimeout:
        """流式下载不限总时长，只限制连接和读取停顿"""
        return aiohttp.ClientTimeout(
            total=None,
            connect=self.config.connection_timeout,
            sock_connect=self.config.connection_timeout,
            sock_read=self.config.read_timeout,
        )

    async def close(self) -> None:
        """关闭HTTP会话"""
        if self._session:
            await self._session.close()
            self._session = None

    def _check_status(self, response: aiohttp.ClientResponse, url: str) -> None:
        if response.status != 200:
            raise map_http_status(
                response.status,
                f"HTTP {response.status}: {response.reason}",
                url=_sanitize_url_for_logging(url),
            )

    async def fetch_bytes(self, url: str) -> bytes:
        """GET 请求并返回完整响应体

        Args:
            url: 请求URL

        Returns:
            响应体字节

        Raises:
            TransportError: 网络错误、超时或非200状态码
            NotFoundError: 404/410
        """
        await self._create_session()
        log.debug("GET %s", _sanitize_url_for_logging(url))

        try:
            async with self._session.get(url) as response:
                self._check_status(response, url)
                return await response.read()
        except aiohttp.ClientError as e:
            raise TransportError(
                f"Request failed: {e}", url=_sanitize_url_for_logging(url)
            ) from e
        except (asyncio.TimeoutError, TimeoutError) as e:
            raise TransportError(
                "Request timed out", url=_sanitize_url_for_logging(url)
            ) from e

    async def download_to_file(
        self,
        url: str,
        file_path: Path,
        progress_callback: Optional[Callable[[int, int], None]] = None,
    ) -> DownloadedFile:
        """把响应体流式写入文件

        内容先写到同目录下的临时文件，完成后用 os.replace 替换目标，
        失败时删除临时文件，不会在目标位置留下半截文件。

        Args:
            url: 请求URL
            file_path: 目标文件路径（父目录需已存在）
            progress_callback: 进度回调 (downloaded, total)

        Returns:
            DownloadedFile，包含字节数和 SHA-1

        Raises:
            TransportError: 网络错误、超时或非200状态码
            DownloadWriteError: 本地写入失败
        """
        await self._create_session()
        file_path = Path(file_path)
        tmp_path = file_path.with_name(f".{file_path.name}.{uuid.uuid4().hex[:8]}.part")
        digest = hashlib.sha1()
        downloaded = 0

        try:
            async with self._session.get(url, timeout=self._create_download_timeout()) as response:
                self._check_status(response, url)
                total = int(response.headers.get("content-length", 0) or 0)

                async with aiofiles.open(tmp_path, "wb") as f:
                    async for chunk in response.content.iter_chunked(self.config.chunk_size):
                        await f.write(chunk)
                        digest.update(chunk)
                        downloaded += len(chunk)
                        if progress_callback:
                            progress_callback(downloaded, total)

            os.replace(tmp_path, file_path)
            return DownloadedFile(file_path, downloaded, digest.hexdigest())

        except aiohttp.ClientError as e:
            raise TransportError(
                f"Download failed: {e}", url=_sanitize_url_for_logging(url)
            ) from e
        except (asyncio.TimeoutError, TimeoutError) as e:
            raise TransportError(
                "Download timed out", url=_sanitize_url_for_logging(url)
            ) from e
        except OSError as e:
            raise DownloadWriteError(
                f"File write failed: {e}",
                file_path=str(file_path),
                url=_sanitize_url_for_logging(url),
            ) from e
        finally:
            if tmp_path.exists():
                tmp_path.unlink(missing_ok=True)
