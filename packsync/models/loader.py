"""
模组加载器数据模型
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Union

from packsync.exceptions import UnknownLoaderError


PROMPT = "prompt"


class LoaderName(Enum):
    """支持的模组加载器"""

    FORGE = "forge"
    NEOFORGE = "neoforge"

    @classmethod
    def parse(cls, name: Union[str, "LoaderName"]) -> "LoaderName":
        if isinstance(name, cls):
            return name
        try:
            return cls(name.strip().lower())
        except ValueError:
            raise UnknownLoaderError(
                f"无效的模组加载器名称: '{name}'", context={"loader": name}
            )


@dataclass(frozen=True)
class LoaderVersion:
    """加载器版本目录中的一项"""

    version: str
    game_versions: tuple = ()
    recommended: bool = False
    release_time: str = ""
    sha256: Optional[str] = None

    def is_for_game_version(self, game_version: str) -> bool:
        return game_version in self.game_versions

    def __str__(self) -> str:
        return f"{self.version}{' *' if self.recommended else ''}"


@dataclass(frozen=True)
class LoaderArtifact:
    """已解析的安装器制品引用"""

    loader: LoaderName
    version: str
    game_version: str
    installer_url: str
    sha256: Optional[str] = None

    @property
    def loader_id(self) -> str:
        """形如 forge-47.2.0 的标识"""
        return f"{self.loader.value}-{self.version}"


@dataclass(frozen=True)
class Resolved:
    """加载器版本已确定"""

    artifact: LoaderArtifact


@dataclass(frozen=True)
class NeedsSelection:
    """存在多个候选版本，需要调用方选择（新版本在前）"""

    game_version: str
    loader: LoaderName
    candidates: List[LoaderVersion] = field(default_factory=list)


@dataclass(frozen=True)
class LoaderSelection:
    """(游戏版本, 加载器, 加载器版本或 prompt)"""

    game_version: str
    loader: LoaderName
    version: Optional[str] = None

    @property
    def needs_prompt(self) -> bool:
        return self.version is None or self.version == PROMPT

    @classmethod
    def parse(cls, game_version: str, loader_id: str) -> "LoaderSelection":
        """
        解析 [name]-[version] 或 [name]

        例如 "forge-47.2.0"、"neoforge-20.4.80-beta"、"forge"。
        """
        name, sep, version = loader_id.partition("-")
        return cls(
            game_version=game_version,
            loader=LoaderName.parse(name),
            version=version if sep and version else None,
        )
