"""
API 客户端

整合包目录 (modpacks.ch) 与加载器版本目录 (PrismLauncher meta) 的客户端。
"""

from typing import Any, Dict, List, Optional

import aiohttp
from loguru import logger

from packsync.models import (
    FetchReference,
    FileCategory,
    FileEntry,
    LoaderName,
    LoaderVersion,
    PackVersionDescriptor,
)
from packsync.models.config import CatalogConfig, LoaderConfig
from packsync.exceptions import APIError, APINotFoundError


class _JSONClient:
    """共享 session 的 JSON 请求基类"""

    def __init__(self, session: Optional[aiohttp.ClientSession] = None):
        self._session = session
        self._owned_session = session is None

    @property
    def session(self) -> aiohttp.ClientSession:
        """获取或创建 aiohttp session"""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
        return self._session

    async def _request(self, url: str, params: Optional[dict] = None) -> Any:
        """发送 API 请求"""
        try:
            async with self.session.get(url, params=params) as response:
                if response.status == 200:
                    return await response.json(content_type=None)
                if response.status == 404:
                    raise APINotFoundError(
                        f"资源不存在: {url}", response=response
                    )
                raise APIError(
                    f"API 请求失败 (状态码: {response.status})",
                    response=response,
                )
        except aiohttp.ClientError as e:
            raise APIError(f"API 请求失败: {e!r}", context={"url": url}) from e
        except ValueError as e:
            raise APIError(f"API 响应不是有效的 JSON: {e}", context={"url": url}) from e

    async def close(self):
        """关闭客户端"""
        if self._owned_session and self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self):
        """异步上下文管理器入口"""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """异步上下文管理器出口"""
        await self.close()


class ModpacksClient(_JSONClient):
    """modpacks.ch 整合包目录客户端"""

    def __init__(
        self,
        config: Optional[CatalogConfig] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        super().__init__(session)
        self.config = config or CatalogConfig()

    async def get_pack_version(
        self, pack_id: int, version_id: int, curseforge: bool = False
    ) -> Dict[str, Any]:
        """获取整合包某个版本的原始清单"""
        base = self.config.base_url.rstrip("/")
        section = "curseforge" if curseforge else "modpack"
        return await self._request(f"{base}/{section}/{pack_id}/{version_id}")

    async def get_descriptor(
        self,
        pack_id: int,
        version_id: int,
        server: bool = False,
        curseforge: bool = False,
    ) -> PackVersionDescriptor:
        """获取并转换为整合包版本描述"""
        raw = await self.get_pack_version(pack_id, version_id, curseforge=curseforge)
        return self.to_descriptor(raw, server=server)

    @staticmethod
    def to_descriptor(
        raw: Dict[str, Any], server: bool = False
    ) -> PackVersionDescriptor:
        """
        将 modpacks.ch 版本清单转换为整合包版本描述

        服务器模式下跳过 clientonly 文件；没有下载地址的文件与需要解压的
        覆盖包会被记录并跳过。
        """
        files: List[FileEntry] = []
        for item in raw.get("files", []):
            if server and item.get("clientonly"):
                continue
            if not server and item.get("serveronly"):
                continue

            path = _join_pack_path(item.get("path", ""), item["name"])
            url = item.get("url") or ""
            if item.get("type") == "cf-extract":
                logger.warning(f"[目录] 跳过需要解压的覆盖包: {item['name']}")
                continue
            if not url:
                logger.warning(f"[目录] '{path}' 没有下载地址，跳过")
                continue

            size = item.get("size")
            files.append(
                FileEntry(
                    path=path,
                    category=FileCategory.from_path(path),
                    reference=FetchReference(
                        url=url,
                        sha1=item.get("sha1") or None,
                        size=size if isinstance(size, int) and size >= 0 else None,
                    ),
                )
            )

        mc_version = None
        mod_loader = None
        for target in raw.get("targets", []):
            if target.get("name") == "minecraft":
                mc_version = target.get("version")
            elif target.get("type") == "modloader":
                mod_loader = f"{target['name']}-{target['version']}"

        pack_id = raw.get("parent")
        return PackVersionDescriptor(
            version_id=str(raw["id"]),
            files=files,
            pack_id=str(pack_id) if pack_id is not None else None,
            name=raw.get("name"),
            mc_version=mc_version,
            mod_loader=mod_loader,
        )


class LoaderMetaClient(_JSONClient):
    """PrismLauncher meta 加载器版本目录客户端"""

    def __init__(
        self,
        config: Optional[LoaderConfig] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        super().__init__(session)
        self.config = config or LoaderConfig()

    def index_url(self, loader: LoaderName) -> str:
        if loader == LoaderName.NEOFORGE:
            return self.config.neoforge_index_url
        return self.config.forge_index_url

    async def list_versions(self, loader: LoaderName) -> List[LoaderVersion]:
        """获取加载器的全部已发布版本"""
        index = await self._request(self.index_url(loader))
        return self.parse_index(index)

    @staticmethod
    def parse_index(index: Dict[str, Any]) -> List[LoaderVersion]:
        versions = []
        for item in index.get("versions", []):
            game_versions = tuple(
                req["equals"]
                for req in item.get("requires", [])
                if req.get("uid") == "net.minecraft" and req.get("equals")
            )
            versions.append(
                LoaderVersion(
                    version=item["version"],
                    game_versions=game_versions,
                    recommended=bool(item.get("recommended", False)),
                    release_time=item.get("releaseTime", ""),
                    sha256=item.get("sha256"),
                )
            )
        return versions


def _join_pack_path(directory: str, name: str) -> str:
    directory = directory.replace("\\", "/").strip()
    while directory.startswith("./"):
        directory = directory[2:]
    directory = directory.strip("/")
    return f"{directory}/{name}" if directory else name
