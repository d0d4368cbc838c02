"""
同步数据模型

定义变更集、删除警告、同步结果与重复组。
"""

from dataclasses import dataclass, field
from typing import List

from packsync.models.manifest import FileEntry, Manifest


@dataclass
class ChangeSet:
    """
    两份文件列表之间的变更计划

    三个列表互不相交；anomalies 记录描述中出现的重复路径等可恢复异常。
    """

    to_add: List[FileEntry] = field(default_factory=list)
    to_update: List[FileEntry] = field(default_factory=list)
    to_remove: List[FileEntry] = field(default_factory=list)
    anomalies: List[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.to_add or self.to_update or self.to_remove)

    @property
    def fetch_entries(self) -> List[FileEntry]:
        """需要获取的条目：先新增，后更新"""
        return self.to_add + self.to_update

    def __str__(self) -> str:
        parts = []
        if self.to_add:
            parts.append(f"{len(self.to_add)} 新增")
        if self.to_update:
            parts.append(f"{len(self.to_update)} 更新")
        if self.to_remove:
            parts.append(f"{len(self.to_remove)} 删除")
        return "ChangeSet: " + ", ".join(parts) if parts else "ChangeSet: 无变化"


@dataclass(frozen=True)
class RemovalWarning:
    """删除旧文件失败（非致命）"""

    path: str
    reason: str


@dataclass
class SyncResult:
    """一次成功同步的结果"""

    manifest: Manifest
    changes: ChangeSet
    warnings: List[RemovalWarning] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class DuplicateGroup:
    """被判定为同一逻辑制品不同版本的一组文件"""

    category: str
    identity: str
    members: tuple
    tracked: tuple = ()

    @property
    def untracked(self) -> tuple:
        return tuple(m for m in self.members if m not in self.tracked)
