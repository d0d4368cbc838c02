"""
主协调器

整合所有服务层组件，实现 加载清单 -> 计算差异 -> 同步 -> 保存 -> 重复检测 的流程编排。
"""

import json
from typing import List, Optional, Tuple, Union

import aiofiles
from loguru import logger

from packsync.models import (
    DuplicateGroup,
    Instance,
    Manifest,
    NeedsSelection,
    PackSyncConfig,
    PackVersionDescriptor,
    RemovalWarning,
    Resolved,
    SyncResult,
)
from packsync.services import (
    CredentialProvider,
    DuplicateDetector,
    EnvCredentialProvider,
    LoaderMetaClient,
    LoaderVersionResolver,
    ManifestStore,
    ModpacksClient,
    Synchronizer,
    resolve_group,
)
from packsync.download import DownloadManager
from packsync.exceptions import SyncError


class PackSyncOrchestrator:
    """PackSync 主协调器"""

    def __init__(
        self,
        config: Optional[PackSyncConfig] = None,
        credentials: Optional[CredentialProvider] = None,
        fetcher=None,
    ):
        self.config = config or PackSyncConfig()
        self.store = ManifestStore()
        self.download_manager = fetcher or DownloadManager(
            max_retries=self.config.sync.max_retries,
            retry_delay=self.config.sync.retry_delay,
            timeout=self.config.sync.timeout,
            progress_callback=self._on_download_progress,
        )
        self.credentials = credentials or EnvCredentialProvider(
            self.config.auth.token_env
        )
        self.synchronizer = Synchronizer(
            self.store,
            self.download_manager,
            credentials=self.credentials,
            max_concurrent=self.config.sync.max_concurrent,
        )
        self.detector = DuplicateDetector(
            version_pattern=self.config.duplicates.version_pattern,
            categories=self.config.duplicates.categories,
        )
        self.catalog = ModpacksClient(self.config.catalog)
        self.loader_catalog = LoaderMetaClient(self.config.loader)
        self.loader_resolver = LoaderVersionResolver(
            self.loader_catalog, self.config.loader
        )

    def _on_download_progress(self, filename: str, percent: float):
        """下载进度回调"""
        logger.debug(f"[进度] {filename}: {percent:.0f}%")

    async def load_descriptor(
        self,
        descriptor_path: Optional[str] = None,
        pack_id: Optional[int] = None,
        version_id: Optional[int] = None,
        server: bool = False,
    ) -> PackVersionDescriptor:
        """
        获取整合包版本描述

        可以来自本地 JSON 文件（本项目格式或 modpacks.ch 版本清单），
        也可以按 pack_id / version_id 从整合包目录获取。
        """
        if descriptor_path:
            return await self._read_descriptor_file(descriptor_path, server)

        if pack_id is None or version_id is None:
            raise SyncError("需要提供描述文件，或同时提供 pack_id 与 version_id")

        logger.info(f"[目录] 获取整合包 {pack_id} 版本 {version_id}...")
        return await self.catalog.get_descriptor(pack_id, version_id, server=server)

    async def _read_descriptor_file(
        self, path: str, server: bool
    ) -> PackVersionDescriptor:
        context = {"path": path, "step": "descriptor"}
        try:
            async with aiofiles.open(path, "r", encoding="utf-8") as f:
                raw = json.loads(await f.read())
        except OSError as e:
            raise SyncError(f"无法读取描述文件: {e}", context=context) from e
        except ValueError as e:
            raise SyncError(f"描述文件不是有效的 JSON: {e}", context=context) from e

        try:
            # modpacks.ch 版本清单带有 targets 字段
            if "targets" in raw:
                return ModpacksClient.to_descriptor(raw, server=server)
            return PackVersionDescriptor.from_dict(raw)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise SyncError(f"描述文件格式无效: {e!r}", context=context) from e

    async def sync(
        self, instance: Instance, descriptor: PackVersionDescriptor
    ) -> Tuple[SyncResult, List[DuplicateGroup]]:
        """完整同步流程：同步到目标版本后扫描重复制品"""
        logger.info(f"开始同步实例 {instance}...")
        old_manifest = await self.store.load_or_empty(instance)
        result = await self.synchronizer.apply(instance, old_manifest, descriptor)
        groups = self.detector.scan(instance, result.manifest)
        self.report(result, groups)
        return result, groups

    async def status(self, instance: Instance) -> Manifest:
        """读取实例清单，不存在时抛出 ManifestNotFoundError"""
        return await self.store.load(instance)

    async def verify(self, instance: Instance) -> List[str]:
        manifest = await self.store.load_or_empty(instance)
        return await self.synchronizer.verify(instance, manifest)

    async def repair(
        self, instance: Instance, descriptor: PackVersionDescriptor
    ) -> SyncResult:
        manifest = await self.store.load_or_empty(instance)
        result = await self.synchronizer.repair(instance, manifest, descriptor)
        self.report(result, [])
        return result

    async def find_duplicates(self, instance: Instance) -> List[DuplicateGroup]:
        manifest = await self.store.load_or_empty(instance)
        return self.detector.scan(instance, manifest)

    async def resolve_duplicate(
        self, instance: Instance, group: DuplicateGroup, keep: str
    ) -> Tuple[List[str], List[RemovalWarning]]:
        return await resolve_group(instance, group, keep, self.store)

    async def resolve_loader(
        self,
        game_version: str,
        loader,
        version: Optional[str] = None,
    ) -> Union[Resolved, NeedsSelection]:
        return await self.loader_resolver.resolve(game_version, loader, version)

    def report(self, result: SyncResult, groups: List[DuplicateGroup]):
        """输出同步结果摘要"""
        changes = result.changes
        logger.success(
            f"同步完成: {len(changes.to_add)} 新增, {len(changes.to_update)} 更新, "
            f"{len(changes.to_remove)} 删除, {len(result.skipped)} 跳过"
        )

        for warning in result.warnings:
            logger.warning(f"未能删除 {warning.path}: {warning.reason}")

        for group in groups:
            logger.warning(
                f"可能重复的{group.category}: {group.identity} -> "
                f"{', '.join(group.members)}"
            )

    async def close(self):
        """关闭所有网络会话"""
        await self.catalog.close()
        await self.loader_catalog.close()
        if isinstance(self.download_manager, DownloadManager):
            await self.download_manager.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
