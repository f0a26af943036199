"""归档解压模块

从 client.jar 中取出以某个前缀开头的子树，并在目标目录下重建。
"""

import logging
import zipfile
import zlib
from pathlib import Path
from typing import Callable, Optional, Union

from ..exceptions import ArchiveOpenError, ArchiveReadError, ExtractWriteError, PathSecurityError
from ..models import ExtractResult
from .file_manager import FileManager

log = logging.getLogger(__name__)

SEPARATOR = "/"


def match_prefix(name: str, prefix: str) -> Optional[str]:
    """按路径段匹配前缀，返回去掉前缀后的剩余部分

    只有当条目名等于前缀，或者前缀后紧跟分隔符时才算匹配，
    所以 assets/minecraftx/b.txt 不匹配 assets/minecraft。

    Returns:
        剩余的相对路径；不匹配或剩余为空时返回 None
    """
    prefix = prefix.rstrip(SEPARATOR)
    if name == prefix:
        return None
    if not name.startswith(prefix + SEPARATOR):
        return None
    remainder = name[len(prefix) + 1 :]
    return remainder or None


class ArchiveExtractor:
    """按前缀解压 zip 归档

    单个文件写入失败只记录并继续；归档本身损坏则整体失败。
    """

    def __init__(
        self,
        file_manager: Optional[FileManager] = None,
        progress_callback: Optional[Callable[[int, int, str], None]] = None,
    ):
        self.file_manager = file_manager or FileManager()
        self.progress_callback = progress_callback

    def extract(
        self,
        archive_path: Union[str, Path],
        prefix: str,
        dest_root: Union[str, Path],
    ) -> ExtractResult:
        """解压归档中 prefix 子树到 dest_root

        Args:
            archive_path: zip 文件路径
            prefix: 条目前缀，例如 assets/minecraft
            dest_root: 目标根目录

        Returns:
            ExtractResult

        Raises:
            ArchiveOpenError: 文件不存在或不是有效的 zip
            ArchiveReadError: 归档内容损坏
        """
        archive_path = str(archive_path)
        dest_root = Path(dest_root)
        result = ExtractResult()

        try:
            archive = zipfile.ZipFile(archive_path, "r")
        except (FileNotFoundError, IsADirectoryError) as e:
            raise ArchiveOpenError(f"Archive not found: {e}", archive_path=archive_path) from e
        except (zipfile.BadZipFile, OSError) as e:
            raise ArchiveOpenError(f"Not a valid archive: {e}", archive_path=archive_path) from e

        with archive:
            entries = archive.infolist()
            total = len(entries)

            for index, info in enumerate(entries, start=1):
                remainder = None if info.is_dir() else match_prefix(info.filename, prefix)
                if remainder is None:
                    result.entries_skipped += 1
                    continue

                payload = self._read_entry(archive, info, archive_path)

                try:
                    self._write_entry(info.filename, remainder, dest_root, payload)
                    result.files_written += 1
                except ExtractWriteError as e:
                    log.warning("Skipping entry: %s", e)
                    result.files_failed += 1

                if self.progress_callback:
                    self.progress_callback(index, total, remainder)

        log.info(
            "Extracted %d file(s) from %s (%d failed)",
            result.files_written,
            archive_path,
            result.files_failed,
        )
        return result

    def _read_entry(self, archive: zipfile.ZipFile, info: zipfile.ZipInfo, archive_path: str) -> bytes:
        """读取条目的完整解压内容，内容损坏时抛出 ArchiveReadError"""
        try:
            return archive.read(info)
        except (zipfile.BadZipFile, zlib.error, EOFError, NotImplementedError, RuntimeError) as e:
            raise ArchiveReadError(
                f"Corrupt archive entry: {e}",
                archive_path=archive_path,
                entry=info.filename,
            ) from e

    def _write_entry(self, name: str, remainder: str, dest_root: Path, payload: bytes) -> None:
        try:
            dest_path = self.file_manager.resolve_under(dest_root, remainder)
            self.file_manager.ensure_parent(dest_path)
            self.file_manager.write_atomic(dest_path, payload)
        except PathSecurityError as e:
            raise ExtractWriteError(f"Unsafe entry path: {e.message}", entry=name) from e
        except OSError as e:
            raise ExtractWriteError(
                f"File write failed: {e}",
                file_path=str(dest_root / remainder),
                entry=name,
            ) from e
