"""
同步器

将变更集应用到实例目录：先暂存并提交全部新增与更新，成功后才删除旧文件，
最后一次性保存新清单。
"""

import asyncio
import os
import shutil
import uuid
from pathlib import Path
from typing import List, Optional, Tuple

from loguru import logger

from packsync.download.verifier import FileVerifier
from packsync.models import (
    FileEntry,
    Instance,
    Manifest,
    PackVersionDescriptor,
    RemovalWarning,
    SyncResult,
)
from packsync.services.credentials import CredentialProvider
from packsync.services.diff_engine import compute_changes, unique_files
from packsync.services.manifest_store import ManifestStore
from packsync.exceptions import (
    DownloadError,
    DownloadUnauthorizedError,
    FetchFailedError,
    PersistFailedError,
    UnauthorizedError,
    UnsafePathError,
)


class Synchronizer:
    """
    整合包同步器

    fetcher 需要提供 ``async fetch(reference, dest_path, token=None)``，
    失败时抛出 DownloadError 子类（例如 DownloadManager）。
    """

    def __init__(
        self,
        store: ManifestStore,
        fetcher,
        credentials: Optional[CredentialProvider] = None,
        max_concurrent: int = 5,
    ):
        self.store = store
        self.fetcher = fetcher
        self.credentials = credentials
        self.max_concurrent = max_concurrent
        self.verifier = FileVerifier()

    async def apply(
        self,
        instance: Instance,
        old_manifest: Manifest,
        descriptor: PackVersionDescriptor,
    ) -> SyncResult:
        """
        将实例从 old_manifest 同步到 descriptor 描述的版本

        提交阶段某个文件移动失败时，本次已移动到位的文件会被撤销，被覆盖的
        旧文件从备份恢复。调用方取消时同样不删除任何文件，清单不变。

        Raises:
            UnsafePathError: 描述或清单中存在超出实例根目录的路径（无任何副作用）
            FetchFailedError: 获取或写入新内容失败（未删除任何文件，清单不变）
            UnauthorizedError: 传输层拒绝凭据（不重试）
            PersistFailedError: 文件已同步但清单保存失败，需要重新同步修复
        """
        changes = compute_changes(old_manifest, descriptor)
        new_files, _ = unique_files(descriptor)

        self._validate_paths(instance, new_files + changes.to_remove)

        logger.info(
            f"[同步] {instance}: {old_manifest.version_id or '无'} -> "
            f"{descriptor.version_id} ({changes})"
        )

        skipped = await self._stage_and_commit(instance, changes.fetch_entries)
        warnings = self._remove_files(instance, changes.to_remove)

        manifest = Manifest(
            version_id=descriptor.version_id,
            pack_id=descriptor.pack_id,
            mc_version=descriptor.mc_version,
            mod_loader=descriptor.mod_loader,
            entries=new_files,
        )

        try:
            await self.store.save(instance, manifest)
        except Exception as e:
            logger.error(f"[清单] 保存失败，实例需要重新同步修复: {e}")
            raise PersistFailedError(
                f"清单保存失败: {e}",
                context={
                    "instance": str(instance),
                    "step": "persist",
                    "path": str(instance.manifest_path),
                },
            ) from e

        logger.success(
            f"[同步] 完成: {instance} 已更新到 {descriptor.version_id} "
            f"({len(warnings)} 个删除警告)"
        )
        return SyncResult(
            manifest=manifest, changes=changes, warnings=warnings, skipped=skipped
        )

    async def verify(self, instance: Instance, manifest: Manifest) -> List[str]:
        """返回清单中缺失或内容不符的路径"""
        broken = []
        for entry in manifest.entries:
            target = instance.resolve(entry.path)
            if not target.is_file():
                broken.append(entry.path)
            elif entry.reference.sha1 and not await self.verifier.verify_sha1(
                target, entry.reference.sha1
            ):
                broken.append(entry.path)
        return broken

    async def repair(
        self,
        instance: Instance,
        manifest: Manifest,
        descriptor: PackVersionDescriptor,
    ) -> SyncResult:
        """把损坏的路径从旧清单中去掉后重新应用描述，使其被重新获取"""
        broken = await self.verify(instance, manifest)
        if broken:
            logger.warning(f"[修复] 发现 {len(broken)} 个缺失或损坏的文件")
            for path in broken:
                logger.warning(f"  - {path}")
        return await self.apply(instance, manifest.without(broken), descriptor)

    def _validate_paths(self, instance: Instance, entries: List[FileEntry]) -> None:
        for entry in entries:
            try:
                instance.resolve(entry.path)
            except UnsafePathError as e:
                e.context["step"] = "validate"
                raise

    async def _stage_and_commit(
        self, instance: Instance, entries: List[FileEntry]
    ) -> List[str]:
        """暂存全部条目，全部成功后再依次移动到位；返回被跳过的路径"""
        if not entries:
            return []

        run_dir = instance.staging_dir / uuid.uuid4().hex
        os.makedirs(run_dir, exist_ok=True)
        try:
            staged = await self._stage(instance, entries, run_dir)
            return self._commit(instance, staged, run_dir / "backup")
        finally:
            shutil.rmtree(run_dir, ignore_errors=True)
            try:
                instance.staging_dir.rmdir()
            except OSError:
                pass

    async def _stage(
        self, instance: Instance, entries: List[FileEntry], run_dir: Path
    ) -> List[Tuple[FileEntry, Optional[Path]]]:
        semaphore = asyncio.Semaphore(self.max_concurrent)

        async def stage_one(index: int, entry: FileEntry) -> Optional[Path]:
            target = instance.resolve(entry.path)
            if await self.verifier.matches(target, entry.reference.sha1):
                logger.info(f"[跳过] '{entry.path}' 已存在且校验通过")
                return None

            staged_path = run_dir / f"{index:05d}-{target.name}"
            context = {"instance": str(instance), "step": "fetch", "path": entry.path}

            async with semaphore:
                token = await self.credentials.get_token() if self.credentials else None
                logger.info(f"[暂存] 获取: {entry.path}")
                try:
                    await self.fetcher.fetch(entry.reference, staged_path, token=token)
                except DownloadUnauthorizedError as e:
                    raise UnauthorizedError(
                        f"获取 '{entry.path}' 被拒绝: {e}", context=context
                    ) from e
                except DownloadError as e:
                    raise FetchFailedError(
                        f"获取 '{entry.path}' 失败: {e}",
                        context=context,
                        transient=e.transient,
                    ) from e
                except OSError as e:
                    raise FetchFailedError(
                        f"暂存 '{entry.path}' 失败: {e}", context=context
                    ) from e
            return staged_path

        tasks = [
            asyncio.create_task(stage_one(index, entry))
            for index, entry in enumerate(entries)
        ]
        try:
            results = await asyncio.gather(*tasks)
        except asyncio.CancelledError:
            await _cancel_all(tasks)
            logger.warning("[暂存] 同步被取消，实例保持原状")
            raise
        except Exception:
            await _cancel_all(tasks)
            logger.error("[暂存] 获取失败，已中止，实例保持原状")
            raise

        return list(zip(entries, results))

    def _commit(
        self,
        instance: Instance,
        staged: List[Tuple[FileEntry, Optional[Path]]],
        backup_dir: Path,
    ) -> List[str]:
        """
        把暂存文件移动到位

        被覆盖的旧文件先移入 backup_dir；任一移动失败时撤销本次已提交的
        全部条目，恢复旧文件并删除新写入的文件。
        """
        skipped = []
        committed: List[Tuple[Path, Optional[Path]]] = []
        for index, (entry, staged_path) in enumerate(staged):
            if staged_path is None:
                skipped.append(entry.path)
                continue
            target = instance.resolve(entry.path)
            backup = None
            try:
                os.makedirs(target.parent, exist_ok=True)
                if target.exists():
                    os.makedirs(backup_dir, exist_ok=True)
                    backup = backup_dir / f"{index:05d}-{target.name}"
                    os.replace(target, backup)
                os.replace(staged_path, target)
                committed.append((target, backup))
            except OSError as e:
                logger.error(f"[提交] 移动 '{entry.path}' 失败: {e}")
                if backup is not None and not target.exists():
                    committed.append((target, backup))
                self._rollback(instance, committed)
                raise FetchFailedError(
                    f"写入 '{entry.path}' 失败: {e}",
                    context={
                        "instance": str(instance),
                        "step": "commit",
                        "path": entry.path,
                    },
                ) from e
            logger.debug(f"[提交] {entry.path}")
        return skipped

    def _rollback(
        self, instance: Instance, committed: List[Tuple[Path, Optional[Path]]]
    ) -> None:
        for target, backup in reversed(committed):
            try:
                if backup is not None:
                    os.replace(backup, target)
                elif target.exists():
                    os.remove(target)
                    _prune_empty_dirs(target.parent, instance.root)
            except OSError as e:
                logger.error(f"[提交] 无法撤销 '{target}': {e}")
        if committed:
            logger.warning(f"[提交] 已撤销 {len(committed)} 个已提交的文件")

    def _remove_files(
        self, instance: Instance, entries: List[FileEntry]
    ) -> List[RemovalWarning]:
        warnings = []
        for entry in entries:
            target = instance.resolve(entry.path)
            try:
                os.remove(target)
            except FileNotFoundError:
                warnings.append(RemovalWarning(entry.path, "文件不存在"))
                logger.warning(f"[删除] '{entry.path}' 不存在，跳过")
                continue
            except OSError as e:
                warnings.append(RemovalWarning(entry.path, str(e)))
                logger.warning(f"[删除] 删除 '{entry.path}' 失败: {e}")
                continue
            logger.info(f"[删除] {entry.path}")
            _prune_empty_dirs(target.parent, instance.root)
        return warnings


def _prune_empty_dirs(directory: Path, root: Path) -> None:
    """删除因移除文件而变空的目录，直到实例根目录为止"""
    while directory != root and root in directory.parents:
        try:
            directory.rmdir()
        except OSError:
            return
        directory = directory.parent


async def _cancel_all(tasks: List["asyncio.Task"]) -> None:
    for task in tasks:
        task.cancel()
    await asyncio.gather(*tasks, return_exceptions=True)
