"""
配置数据模型

将配置文件字典解析为带默认值的配置对象并进行验证。
"""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from packsync.exceptions import ConfigValidationError


DEFAULT_VERSION_PATTERN = r"[-_ +](?:v|mc)?\d"
DEFAULT_DUPLICATE_CATEGORIES = ["mods", "resourcepacks", "shaderpacks"]
LOG_LEVELS = ("TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL")


@dataclass
class SyncConfig:
    """同步与下载配置"""

    max_concurrent: int = 5
    max_retries: int = 3
    retry_delay: float = 1.0
    timeout: float = 60.0

    def validate(self):
        if not isinstance(self.max_concurrent, int) or self.max_concurrent <= 0:
            raise ConfigValidationError("sync.max_concurrent 必须为正整数")
        if not isinstance(self.max_retries, int) or self.max_retries < 0:
            raise ConfigValidationError("sync.max_retries 必须为非负整数")
        if self.retry_delay < 0:
            raise ConfigValidationError("sync.retry_delay 不能为负数")
        if self.timeout <= 0:
            raise ConfigValidationError("sync.timeout 必须大于 0")


@dataclass
class DuplicateConfig:
    """重复制品检测配置"""

    categories: List[str] = field(
        default_factory=lambda: list(DEFAULT_DUPLICATE_CATEGORIES)
    )
    version_pattern: str = DEFAULT_VERSION_PATTERN

    def validate(self):
        if not self.categories:
            raise ConfigValidationError("duplicates.categories 不能为空")
        try:
            re.compile(self.version_pattern)
        except re.error as e:
            raise ConfigValidationError(
                f"duplicates.version_pattern 不是有效的正则表达式: {e}"
            )


@dataclass
class LoaderConfig:
    """加载器版本目录与安装器地址"""

    forge_index_url: str = (
        "https://meta.prismlauncher.org/v1/net.minecraftforge/index.json"
    )
    neoforge_index_url: str = (
        "https://meta.prismlauncher.org/v1/net.neoforged/index.json"
    )
    forge_maven_url: str = "https://maven.minecraftforge.net"
    neoforge_maven_url: str = "https://maven.neoforged.net/releases"


@dataclass
class CatalogConfig:
    """整合包目录配置"""

    base_url: str = "https://api.modpacks.ch/public"


@dataclass
class AuthConfig:
    """凭据配置"""

    token_env: str = "PACKSYNC_TOKEN"


@dataclass
class LogConfig:
    """日志配置"""

    level: Optional[str] = None
    file: Optional[str] = None
    rotation: str = "10 MB"
    retention: int = 3

    def validate(self):
        if self.level is not None and str(self.level).upper() not in LOG_LEVELS:
            raise ConfigValidationError(
                f"log.level 必须是 {', '.join(LOG_LEVELS)} 之一"
            )
        if not isinstance(self.retention, int) or self.retention < 0:
            raise ConfigValidationError("log.retention 必须为非负整数")


@dataclass
class PackSyncConfig:
    """PackSync 完整配置"""

    sync: SyncConfig = field(default_factory=SyncConfig)
    duplicates: DuplicateConfig = field(default_factory=DuplicateConfig)
    loader: LoaderConfig = field(default_factory=LoaderConfig)
    catalog: CatalogConfig = field(default_factory=CatalogConfig)
    auth: AuthConfig = field(default_factory=AuthConfig)
    log: LogConfig = field(default_factory=LogConfig)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PackSyncConfig":
        """
        从配置字典构建配置对象

        Raises:
            ConfigValidationError: 存在未知字段或字段值无效
        """
        config = cls(
            sync=_build_section(SyncConfig, data, "sync"),
            duplicates=_build_section(DuplicateConfig, data, "duplicates"),
            loader=_build_section(LoaderConfig, data, "loader"),
            catalog=_build_section(CatalogConfig, data, "catalog"),
            auth=_build_section(AuthConfig, data, "auth"),
            log=_build_section(LogConfig, data, "log"),
        )
        config.validate()
        return config

    def validate(self):
        self.sync.validate()
        self.duplicates.validate()
        self.log.validate()


def _build_section(section_cls, data: Dict[str, Any], name: str):
    section = data.get(name) or {}
    if not isinstance(section, dict):
        raise ConfigValidationError(f"配置节 [{name}] 必须是表/字典")
    known = set(section_cls.__dataclass_fields__)
    unknown = set(section) - known
    if unknown:
        raise ConfigValidationError(
            f"配置节 [{name}] 包含未知字段: {', '.join(sorted(unknown))}",
            context={"section": name},
        )
    return section_cls(**section)
