"""
清单数据模型

定义文件类别、获取引用、文件条目、实例清单和整合包版本描述。
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class FileCategory(Enum):
    """文件逻辑类别"""

    MOD = "mod"
    RESOURCE_PACK = "resourcepack"
    SHADER_PACK = "shaderpack"
    CONFIG = "config"
    OTHER = "other"

    @classmethod
    def from_path(cls, path: str) -> "FileCategory":
        """根据相对路径的第一级目录推断类别"""
        head = normalize_path(path).lstrip("/").split("/", 1)[0].lower()
        return _DIR_CATEGORIES.get(head, cls.OTHER)


_DIR_CATEGORIES = {
    "mods": FileCategory.MOD,
    "resourcepacks": FileCategory.RESOURCE_PACK,
    "shaderpacks": FileCategory.SHADER_PACK,
    "config": FileCategory.CONFIG,
    "configs": FileCategory.CONFIG,
}


def normalize_path(path: str) -> str:
    """
    规范化实例内的相对路径

    统一使用 / 分隔，去掉空段与 "." 段，使 ./mods/x.jar、mods\\x.jar、
    mods//x.jar 都写成 mods/x.jar。".." 与开头的 / 原样保留，由
    Instance.resolve 负责拒绝。
    """
    unified = path.replace("\\", "/")
    parts = [part for part in unified.split("/") if part not in ("", ".")]
    prefix = "/" if unified.startswith("/") else ""
    return prefix + "/".join(parts)


@dataclass(frozen=True)
class FetchReference:
    """
    远程获取引用

    url 与 sha1 共同决定内容是否发生变化，size 仅用于展示。
    """

    url: str
    sha1: Optional[str] = None
    size: Optional[int] = field(default=None, compare=False)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"url": self.url}
        if self.sha1:
            data["sha1"] = self.sha1
        if self.size is not None:
            data["size"] = self.size
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FetchReference":
        return cls(url=data["url"], sha1=data.get("sha1"), size=data.get("size"))


@dataclass(frozen=True)
class FileEntry:
    """清单或描述中的单个文件"""

    path: str
    category: FileCategory
    reference: FetchReference

    def __post_init__(self):
        # 路径是清单与差异计算的键，同一文件只能有一种写法
        object.__setattr__(self, "path", normalize_path(self.path))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": self.path,
            "category": self.category.value,
            "reference": self.reference.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FileEntry":
        path = normalize_path(data["path"])
        category = data.get("category")
        return cls(
            path=path,
            category=(
                FileCategory(category) if category else FileCategory.from_path(path)
            ),
            reference=FetchReference.from_dict(data["reference"]),
        )


@dataclass
class Manifest:
    """
    实例清单

    记录由同步器写入的文件以及当前安装的整合包版本。
    用户手动添加的文件不会出现在这里。
    """

    FORMAT_VERSION = 1

    version_id: Optional[str] = None
    pack_id: Optional[str] = None
    mc_version: Optional[str] = None
    mod_loader: Optional[str] = None
    entries: List[FileEntry] = field(default_factory=list)

    @classmethod
    def empty(cls) -> "Manifest":
        """全新实例的空清单"""
        return cls()

    def paths(self) -> List[str]:
        return [entry.path for entry in self.entries]

    def without(self, paths) -> "Manifest":
        """返回去掉指定路径后的新清单"""
        dropped = set(paths)
        return Manifest(
            version_id=self.version_id,
            pack_id=self.pack_id,
            mc_version=self.mc_version,
            mod_loader=self.mod_loader,
            entries=[e for e in self.entries if e.path not in dropped],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "format_version": self.FORMAT_VERSION,
            "version_id": self.version_id,
            "pack_id": self.pack_id,
            "mc_version": self.mc_version,
            "mod_loader": self.mod_loader,
            "files": [entry.to_dict() for entry in self.entries],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Manifest":
        """
        从字典构建清单

        Raises:
            ValueError: 格式版本未知或路径重复
            KeyError / TypeError: 缺少必需字段或类型错误
        """
        if data.get("format_version") != cls.FORMAT_VERSION:
            raise ValueError(f"未知的清单格式版本: {data.get('format_version')}")

        entries = [FileEntry.from_dict(item) for item in data["files"]]
        seen = set()
        for entry in entries:
            if entry.path in seen:
                raise ValueError(f"清单中存在重复路径: {entry.path}")
            seen.add(entry.path)

        return cls(
            version_id=data.get("version_id"),
            pack_id=data.get("pack_id"),
            mc_version=data.get("mc_version"),
            mod_loader=data.get("mod_loader"),
            entries=entries,
        )


@dataclass(frozen=True)
class PackVersionDescriptor:
    """
    整合包版本描述

    外部提供，获取后不可变；列出目标版本所需的全部文件。
    """

    version_id: str
    files: tuple = ()
    pack_id: Optional[str] = None
    name: Optional[str] = None
    mc_version: Optional[str] = None
    mod_loader: Optional[str] = None

    def __post_init__(self):
        # 列表也接受，统一存为元组
        object.__setattr__(self, "files", tuple(self.files))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version_id": self.version_id,
            "pack_id": self.pack_id,
            "name": self.name,
            "mc_version": self.mc_version,
            "mod_loader": self.mod_loader,
            "files": [entry.to_dict() for entry in self.files],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PackVersionDescriptor":
        pack_id = data.get("pack_id")
        return cls(
            version_id=str(data["version_id"]),
            files=[FileEntry.from_dict(item) for item in data.get("files", [])],
            pack_id=str(pack_id) if pack_id is not None else None,
            name=data.get("name"),
            mc_version=data.get("mc_version"),
            mod_loader=data.get("mod_loader"),
        )
