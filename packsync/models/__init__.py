"""
PackSync 数据模型包

包含配置、实例、清单、同步结果与加载器模型定义。
"""

from packsync.models.config import (
    SyncConfig,
    DuplicateConfig,
    LoaderConfig,
    CatalogConfig,
    AuthConfig,
    LogConfig,
    PackSyncConfig,
)
from packsync.models.instance import Instance
from packsync.models.manifest import (
    FileCategory,
    FetchReference,
    FileEntry,
    Manifest,
    PackVersionDescriptor,
    normalize_path,
)
from packsync.models.sync import (
    ChangeSet,
    RemovalWarning,
    SyncResult,
    DuplicateGroup,
)
from packsync.models.loader import (
    LoaderName,
    LoaderVersion,
    LoaderArtifact,
    LoaderSelection,
    Resolved,
    NeedsSelection,
)

__all__ = [
    # 配置模型
    "SyncConfig",
    "DuplicateConfig",
    "LoaderConfig",
    "CatalogConfig",
    "AuthConfig",
    "LogConfig",
    "PackSyncConfig",
    # 实例与清单
    "Instance",
    "FileCategory",
    "FetchReference",
    "FileEntry",
    "Manifest",
    "PackVersionDescriptor",
    "normalize_path",
    # 同步
    "ChangeSet",
    "RemovalWarning",
    "SyncResult",
    "DuplicateGroup",
    # 加载器
    "LoaderName",
    "LoaderVersion",
    "LoaderArtifact",
    "LoaderSelection",
    "Resolved",
    "NeedsSelection",
]
