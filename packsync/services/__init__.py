"""
PackSync 服务层

包含清单存储、差异计算、同步器、加载器解析、重复检测与 API 客户端。
"""

from packsync.services.manifest_store import ManifestStore
from packsync.services.diff_engine import compute_changes, unique_files
from packsync.services.credentials import (
    CredentialProvider,
    StaticCredentialProvider,
    EnvCredentialProvider,
)
from packsync.services.synchronizer import Synchronizer
from packsync.services.loader_resolver import LoaderVersionResolver
from packsync.services.duplicate_detector import DuplicateDetector, resolve_group
from packsync.services.api_client import ModpacksClient, LoaderMetaClient

__all__ = [
    "ManifestStore",
    "compute_changes",
    "unique_files",
    "CredentialProvider",
    "StaticCredentialProvider",
    "EnvCredentialProvider",
    "Synchronizer",
    "LoaderVersionResolver",
    "DuplicateDetector",
    "resolve_group",
    "ModpacksClient",
    "LoaderMetaClient",
]
