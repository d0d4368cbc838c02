"""
PackSync - Minecraft 整合包实例同步工具

维护实例清单，计算整合包版本之间的差异并安全地应用到游戏目录。
"""

__version__ = "0.1.0"

from packsync.models import Instance, Manifest, PackSyncConfig, PackVersionDescriptor
from packsync.orchestrator import PackSyncOrchestrator
from packsync.exceptions import PackSyncError

__all__ = [
    "__version__",
    "Instance",
    "Manifest",
    "PackSyncConfig",
    "PackVersionDescriptor",
    "PackSyncOrchestrator",
    "PackSyncError",
]
