"""
加载器版本解析服务

将 (游戏版本, 加载器, 可选加载器版本) 映射为具体的安装器制品引用。
存在多个候选时只返回有序候选列表，由调用方选择。
"""

from typing import List, Optional, Union

from loguru import logger

from packsync.models import (
    LoaderArtifact,
    LoaderName,
    LoaderVersion,
    NeedsSelection,
    Resolved,
)
from packsync.models.config import LoaderConfig
from packsync.models.loader import PROMPT
from packsync.utils import version_key
from packsync.exceptions import IncompatibleVersionError, NoCompatibleVersionError


class LoaderVersionResolver:
    """
    加载器版本解析器

    catalog 需要提供 ``async list_versions(loader) -> List[LoaderVersion]``。
    """

    def __init__(self, catalog, config: Optional[LoaderConfig] = None):
        self.catalog = catalog
        self.config = config or LoaderConfig()

    async def resolve(
        self,
        game_version: str,
        loader_name: Union[str, LoaderName],
        requested_version: Optional[str] = None,
    ) -> Union[Resolved, NeedsSelection]:
        """
        解析加载器版本

        Raises:
            UnknownLoaderError: 加载器名称无效
            IncompatibleVersionError: 指定版本不存在或不兼容该游戏版本
            NoCompatibleVersionError: 没有任何兼容版本
        """
        loader = LoaderName.parse(loader_name)
        versions = await self.catalog.list_versions(loader)
        context = {"game_version": game_version, "loader": loader.value}

        if requested_version and requested_version != PROMPT:
            for candidate in versions:
                if candidate.version == requested_version:
                    if candidate.is_for_game_version(game_version):
                        return Resolved(self.select(game_version, loader, candidate))
                    break
            raise IncompatibleVersionError(
                f"{loader.value} {requested_version} 与 Minecraft {game_version} 不兼容",
                context={**context, "version": requested_version},
            )

        candidates = self.compatible_versions(versions, game_version)
        if not candidates:
            raise NoCompatibleVersionError(
                f"没有与 Minecraft {game_version} 兼容的 {loader.value} 版本",
                context=context,
            )

        if len(candidates) == 1:
            logger.info(f"[加载器] 唯一兼容版本: {loader.value} {candidates[0].version}")
            return Resolved(self.select(game_version, loader, candidates[0]))

        logger.debug(f"[加载器] {len(candidates)} 个兼容版本，需要选择")
        return NeedsSelection(
            game_version=game_version, loader=loader, candidates=candidates
        )

    @staticmethod
    def compatible_versions(
        versions: List[LoaderVersion], game_version: str
    ) -> List[LoaderVersion]:
        """筛选兼容版本，新版本在前"""
        compatible = [v for v in versions if v.is_for_game_version(game_version)]
        return sorted(
            compatible,
            key=lambda v: (version_key(v.version), v.release_time),
            reverse=True,
        )

    def select(
        self,
        game_version: str,
        loader: Union[str, LoaderName],
        version: LoaderVersion,
    ) -> LoaderArtifact:
        """根据调用方选定的版本构建安装器制品"""
        loader = LoaderName.parse(loader)
        return LoaderArtifact(
            loader=loader,
            version=version.version,
            game_version=game_version,
            installer_url=self.installer_url(loader, game_version, version.version),
            sha256=version.sha256,
        )

    def installer_url(self, loader: LoaderName, game_version: str, version: str) -> str:
        if loader == LoaderName.NEOFORGE:
            base = self.config.neoforge_maven_url.rstrip("/")
            return (
                f"{base}/net/neoforged/neoforge/{version}/"
                f"neoforge-{version}-installer.jar"
            )

        base = self.config.forge_maven_url.rstrip("/")
        full = version if version.startswith(f"{game_version}-") else f"{game_version}-{version}"
        return f"{base}/net/minecraftforge/forge/{full}/forge-{full}-installer.jar"
