"""文件管理器模块

负责落盘相关操作：目标路径计算与安全检查、幂等的目录创建、原子写入、子树清理。
"""

import hashlib
import logging
import os
import shutil
import uuid
from pathlib import Path, PurePosixPath
from typing import Optional, Union

from ..exceptions import PathSecurityError

log = logging.getLogger(__name__)

HASH_BLOCK_SIZE = 1024 * 1024


class FileManager:
    """文件管理器

    负责所有文件操作，包括:
    - 把上游给出的虚拟路径（以 / 分隔）映射到目标目录之下
    - 阻止条目名逃逸目标目录
    - 目录创建（已存在不报错，可被并发调用）
    - 先写临时文件再替换的原子写入
    """

    def resolve_under(self, root: Union[str, Path], relative: str) -> Path:
        """把以 / 分隔的相对路径放到 root 之下

        Args:
            root: 目标根目录
            relative: 上游给出的相对路径，例如 minecraft/sounds/foo.ogg

        Returns:
            目标文件路径

        Raises:
            PathSecurityError: 路径为空、为绝对路径或包含 ..
        """
        pure = PurePosixPath(relative.replace("\\", "/"))

        if not relative or not pure.parts:
            raise PathSecurityError(
                "Empty entry path", path=relative, attack_type="invalid_path"
            )
        if any(ord(ch) < 0x20 or ord(ch) == 0x7F for ch in relative):
            raise PathSecurityError(
                "Control character in entry path", path=repr(relative), attack_type="invalid_path"
            )
        if pure.is_absolute() or ":" in pure.parts[0]:
            raise PathSecurityError(
                "Absolute path not allowed", path=relative, attack_type="path_traversal"
            )
        if ".." in pure.parts:
            raise PathSecurityError(
                "Path traversal detected: contains '..'",
                path=relative,
                attack_type="path_traversal",
            )

        return Path(root).joinpath(*pure.parts)

    def ensure_directory(self, dir_path: Union[str, Path]) -> Path:
        """创建目录及其所有父目录，已存在时直接返回"""
        path = Path(dir_path)
        path.mkdir(parents=True, exist_ok=True)
        return path

    def ensure_parent(self, file_path: Union[str, Path]) -> Path:
        return self.ensure_directory(Path(file_path).parent)

    def write_atomic(self, file_path: Union[str, Path], content: bytes) -> int:
        """原子写入文件

        内容先写到同目录的临时文件，再用 os.replace 覆盖目标，
        读者不会看到写了一半的文件。

        Args:
            file_path: 目标路径（父目录需已存在）
            content: 文件内容

        Returns:
            写入的字节数

        Raises:
            OSError: 写入或替换失败（临时文件会被清理）
        """
        path = Path(file_path)
        tmp_path = path.with_name(f".{path.name}.{uuid.uuid4().hex[:8]}.part")
        try:
            with open(tmp_path, "wb") as f:
                f.write(content)
            os.replace(tmp_path, path)
        finally:
            if tmp_path.exists():
                tmp_path.unlink(missing_ok=True)
        return len(content)

    def remove_tree(self, dir_path: Union[str, Path]) -> bool:
        """删除整个子树

        Returns:
            True 表示确实删除了内容
        """
        path = Path(dir_path)
        if path.is_dir() and not path.is_symlink():
            log.info("Removing existing tree %s", path)
            shutil.rmtree(path)
            return True
        if path.exists() or path.is_symlink():
            path.unlink()
            return True
        return False

    def remove_file(self, file_path: Union[str, Path]) -> None:
        Path(file_path).unlink(missing_ok=True)

    def file_sha1(self, file_path: Union[str, Path]) -> str:
        """计算文件的 SHA-1"""
        digest = hashlib.sha1()
        with open(file_path, "rb") as f:
            for block in iter(lambda: f.read(HASH_BLOCK_SIZE), b""):
                digest.update(block)
        return digest.hexdigest()

    def matches(
        self, file_path: Union[str, Path], expected_hash: Optional[str], size: int
    ) -> bool:
        """已存在的文件是否与期望的大小和哈希一致

        先比较大小，大小不一致时不读取文件内容；expected_hash 为 None 时只比较大小
        """
        path = Path(file_path)
        try:
            if not path.is_file() or path.stat().st_size != size:
                return False
            return expected_hash is None or self.file_sha1(path) == expected_hash
        except OSError:
            return False
