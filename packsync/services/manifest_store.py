"""
清单存储

每个实例一份清单，保存在实例目录内；保存操作以临时文件 + 重命名的方式原子完成。
"""

import json
import os
import uuid

import aiofiles
from loguru import logger

from packsync.models import Instance, Manifest
from packsync.exceptions import ManifestNotFoundError, ManifestCorruptError


class ManifestStore:
    """清单存储"""

    async def load(self, instance: Instance) -> Manifest:
        """
        读取实例清单

        Raises:
            ManifestNotFoundError: 清单不存在（调用方应视为全新实例）
            ManifestCorruptError: 清单无法解析
        """
        path = instance.manifest_path
        context = {"instance": str(instance), "path": str(path)}

        try:
            async with aiofiles.open(path, "r", encoding="utf-8") as f:
                raw = await f.read()
        except FileNotFoundError:
            raise ManifestNotFoundError(f"实例清单不存在: {path}", context=context)

        try:
            data = json.loads(raw)
            if not isinstance(data, dict):
                raise ValueError("清单顶层必须是对象")
            return Manifest.from_dict(data)
        except (ValueError, KeyError, TypeError) as e:
            raise ManifestCorruptError(
                f"实例清单已损坏: {e}", context=context
            ) from e

    async def load_or_empty(self, instance: Instance) -> Manifest:
        """读取清单，不存在时返回空清单"""
        try:
            return await self.load(instance)
        except ManifestNotFoundError:
            logger.info(f"[清单] {instance} 尚无清单，视为全新实例")
            return Manifest.empty()

    async def save(self, instance: Instance, manifest: Manifest) -> None:
        """
        原子保存清单

        先写入同目录下的临时文件并落盘，最后一步用 os.replace 覆盖正式文件。
        任何失败都会清理临时文件并抛出原始异常。
        """
        path = instance.manifest_path
        os.makedirs(path.parent, exist_ok=True)
        tmp_path = path.with_name(f"{path.name}.{uuid.uuid4().hex}.tmp")
        payload = json.dumps(manifest.to_dict(), indent=2, ensure_ascii=False)

        try:
            async with aiofiles.open(tmp_path, "w", encoding="utf-8") as f:
                await f.write(payload)
                await f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, path)
        except BaseException:
            if tmp_path.exists():
                try:
                    os.remove(tmp_path)
                except OSError as cleanup_error:
                    logger.warning(f"[清单] 清理临时文件失败: {cleanup_error}")
            raise

        logger.debug(
            f"[清单] 已保存 {path} (版本: {manifest.version_id}, 文件数: {len(manifest.entries)})"
        )
