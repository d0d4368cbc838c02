"""
差异计算

纯函数：根据旧清单与新的整合包版本描述计算变更集。
"""

from typing import Dict, List, Tuple

from loguru import logger

from packsync.models import ChangeSet, FileEntry, Manifest, PackVersionDescriptor


def unique_files(
    descriptor: PackVersionDescriptor,
) -> Tuple[List[FileEntry], List[str]]:
    """
    按路径去重描述中的文件

    同一路径出现多次时后出现的条目生效，但保留第一次出现的位置。

    Returns:
        (去重后的文件列表, 异常说明列表)
    """
    by_path: Dict[str, FileEntry] = {}
    anomalies: List[str] = []

    for entry in descriptor.files:
        if entry.path in by_path:
            anomalies.append(f"描述 {descriptor.version_id} 中路径重复: {entry.path}")
        by_path[entry.path] = entry

    return list(by_path.values()), anomalies


def compute_changes(old: Manifest, descriptor: PackVersionDescriptor) -> ChangeSet:
    """
    计算从旧清单到新描述的变更集

    新增与更新按描述顺序排列，删除按旧清单顺序排列。
    """
    new_files, anomalies = unique_files(descriptor)
    for anomaly in anomalies:
        logger.warning(f"[差异] {anomaly}，以后出现的条目为准")

    old_by_path = {entry.path: entry for entry in old.entries}
    new_paths = {entry.path for entry in new_files}

    changes = ChangeSet(anomalies=anomalies)

    for entry in new_files:
        previous = old_by_path.get(entry.path)
        if previous is None:
            changes.to_add.append(entry)
        elif previous.reference != entry.reference:
            changes.to_update.append(entry)

    changes.to_remove = [e for e in old.entries if e.path not in new_paths]

    logger.debug(f"[差异] {old.version_id} -> {descriptor.version_id}: {changes}")
    return changes
