"""
重复制品检测

按文件名推断逻辑标识，找出同一模组/资源包/光影包的多个版本。
检测只生成报告；删除由调用方通过 resolve_group 显式执行。
"""

import os
import re
from collections import defaultdict
from typing import Dict, List, Optional, Sequence, Tuple

from loguru import logger

from packsync.models import DuplicateGroup, Instance, Manifest, RemovalWarning
from packsync.models.config import (
    DEFAULT_DUPLICATE_CATEGORIES,
    DEFAULT_VERSION_PATTERN,
)
from packsync.services.manifest_store import ManifestStore


class DuplicateDetector:
    """
    重复制品检测器

    逻辑标识 = 去掉扩展名后，第一个“分隔符 + 版本号样式”之前的前缀（忽略大小写）。
    例如 ``mod-a-1.2.jar`` -> ``mod-a``，``BSL_v8.2.04.zip`` -> ``bsl``。
    """

    def __init__(
        self,
        version_pattern: str = DEFAULT_VERSION_PATTERN,
        categories: Sequence[str] = DEFAULT_DUPLICATE_CATEGORIES,
    ):
        self.version_pattern = re.compile(version_pattern)
        self.categories = list(categories)

    def identity_of(self, filename: str) -> str:
        """根据文件名推断逻辑标识"""
        stem, ext = os.path.splitext(filename)
        if not ext[1:].isalpha():
            stem = filename

        match = self.version_pattern.search(stem)
        if match and match.start() > 0:
            stem = stem[: match.start()]
        return stem.lower()

    def scan(
        self, instance: Instance, manifest: Optional[Manifest] = None
    ) -> List[DuplicateGroup]:
        """
        扫描实例中的重复制品

        Args:
            instance: 目标实例
            manifest: 可选，用于标记哪些成员由同步器管理

        Returns:
            按 (类别, 标识) 排序的重复组，组内成员按路径排序
        """
        tracked = set(manifest.paths()) if manifest else set()
        groups = []

        for category in self.categories:
            directory = instance.root / category
            if not directory.is_dir():
                continue

            buckets: Dict[str, List[str]] = defaultdict(list)
            for child in directory.iterdir():
                name = child.name
                if name.startswith(".") or name.lower().endswith(".disabled"):
                    continue
                if not child.is_file():
                    continue
                buckets[self.identity_of(name)].append(f"{category}/{name}")

            for identity, paths in buckets.items():
                if len(paths) < 2:
                    continue
                members = tuple(sorted(paths))
                groups.append(
                    DuplicateGroup(
                        category=category,
                        identity=identity,
                        members=members,
                        tracked=tuple(m for m in members if m in tracked),
                    )
                )

        groups.sort(key=lambda g: (g.category, g.identity))
        if groups:
            logger.warning(f"[重复] {instance} 中发现 {len(groups)} 组重复制品")
        return groups


async def resolve_group(
    instance: Instance,
    group: DuplicateGroup,
    keep: str,
    store: ManifestStore,
) -> Tuple[List[str], List[RemovalWarning]]:
    """
    保留 keep，删除组内其他成员

    被删除的受管文件会从清单中移除，下次同步时如果整合包仍需要它会被重新获取。

    Returns:
        (已删除的路径, 删除失败的警告)
    """
    if keep not in group.members:
        raise ValueError(f"'{keep}' 不属于重复组 {group.identity}")

    removed: List[str] = []
    warnings: List[RemovalWarning] = []
    for member in group.members:
        if member == keep:
            continue
        try:
            os.remove(instance.resolve(member))
        except OSError as e:
            warnings.append(RemovalWarning(member, str(e)))
            logger.warning(f"[重复] 删除 '{member}' 失败: {e}")
            continue
        removed.append(member)
        logger.info(f"[重复] 已删除 {member}，保留 {keep}")

    removed_tracked = [m for m in removed if m in group.tracked]
    if removed_tracked:
        manifest = await store.load_or_empty(instance)
        await store.save(instance, manifest.without(removed_tracked))

    return removed, warnings
