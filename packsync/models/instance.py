"""
实例模型

一个实例就是磁盘上的一个游戏目录，同步器只会在其根目录下读写文件。
"""

import os
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Union

from packsync.exceptions import UnsafePathError


STATE_DIR_NAME = ".packsync"
MANIFEST_FILE = "manifest.json"


@dataclass(frozen=True)
class Instance:
    """游戏实例"""

    root: Path

    def __init__(self, root: Union[str, os.PathLike]):
        object.__setattr__(self, "root", Path(root).resolve())

    @property
    def state_dir(self) -> Path:
        return self.root / STATE_DIR_NAME

    @property
    def manifest_path(self) -> Path:
        return self.state_dir / MANIFEST_FILE

    @property
    def staging_dir(self) -> Path:
        return self.state_dir / "staging"

    def resolve(self, rel_path: str) -> Path:
        """
        将清单中的相对路径转换为绝对路径

        Raises:
            UnsafePathError: 路径为空、为绝对路径、逃逸出实例根目录或指向状态目录
        """
        normalized = rel_path.replace("\\", "/")
        parts = PurePosixPath(normalized).parts
        if (
            not normalized
            or normalized.startswith("/")
            or (parts and parts[0].endswith(":"))
            or ".." in parts
            or not parts
            or parts[0] == STATE_DIR_NAME
        ):
            raise UnsafePathError(
                f"不安全的路径: {rel_path!r}",
                context={"instance": str(self.root), "path": rel_path},
            )
        return self.root.joinpath(*parts)

    def __str__(self) -> str:
        return str(self.root)
