"""
PackSync 统一异常体系

提供分层的异常结构，支持错误代码、上下文信息和 JSON 序列化。
"""

from typing import Any, Dict, Optional
import aiohttp


class PackSyncError(Exception):
    """PackSync 基础异常类"""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self._get_default_code()
        self.context = context or {}

    def _get_default_code(self) -> str:
        """获取默认错误代码"""
        return "E000"

    def to_dict(self) -> Dict[str, Any]:
        """将异常转换为字典格式"""
        return {
            "error": True,
            "code": self.code,
            "message": self.message,
            "context": self.context,
            "type": self.__class__.__name__,
        }

    def __str__(self) -> str:
        if self.code:
            return f"[{self.code}] {self.message}"
        return self.message


class ConfigError(PackSyncError):
    """配置相关错误"""

    def _get_default_code(self) -> str:
        return "E100"


class ConfigParseError(ConfigError):
    """配置解析错误"""

    def _get_default_code(self) -> str:
        return "E101"


class ConfigValidationError(ConfigError):
    """配置验证错误"""

    def _get_default_code(self) -> str:
        return "E102"


class APIError(PackSyncError):
    """API 相关错误"""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        response: Optional[aiohttp.ClientResponse] = None,
    ):
        super().__init__(message, code, context)
        self.response = response
        if response is not None:
            self.context["status_code"] = response.status
            self.context["url"] = str(response.url)

    def _get_default_code(self) -> str:
        return "E200"


class APINotFoundError(APIError):
    """API 资源不存在"""

    def _get_default_code(self) -> str:
        return "E204"


class DownloadError(PackSyncError):
    """
    下载相关错误

    transient 表示错误是否为临时性的：临时错误可以安全地重试整个同步调用，
    永久错误则不应重试。
    """

    transient: bool = False

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        transient: Optional[bool] = None,
    ):
        super().__init__(message, code, context)
        if transient is not None:
            self.transient = transient

    def _get_default_code(self) -> str:
        return "E300"


class DownloadNetworkError(DownloadError):
    """下载网络错误（临时）"""

    transient = True

    def _get_default_code(self) -> str:
        return "E301"


class DownloadChecksumError(DownloadError):
    """下载校验错误"""

    def _get_default_code(self) -> str:
        return "E302"


class DownloadFileError(DownloadError):
    """下载文件操作错误"""

    def _get_default_code(self) -> str:
        return "E303"


class DownloadNotFoundError(DownloadError):
    """远程文件不存在"""

    def _get_default_code(self) -> str:
        return "E304"


class DownloadUnauthorizedError(DownloadError):
    """远程拒绝访问（凭据无效或已过期）"""

    def _get_default_code(self) -> str:
        return "E305"


class ManifestError(PackSyncError):
    """清单相关错误"""

    def _get_default_code(self) -> str:
        return "E600"


class ManifestNotFoundError(ManifestError):
    """实例尚无清单，调用方应视为空清单"""

    def _get_default_code(self) -> str:
        return "E601"


class ManifestCorruptError(ManifestError):
    """清单文件无法解析，需要人工处理"""

    def _get_default_code(self) -> str:
        return "E602"


class SyncError(PackSyncError):
    """同步相关错误"""

    def _get_default_code(self) -> str:
        return "E700"


class FetchFailedError(SyncError):
    """
    获取新内容失败

    发生在任何删除之前，实例与清单保持调用前的状态。
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        transient: bool = False,
    ):
        super().__init__(message, code, context)
        self.transient = transient
        self.context["transient"] = transient

    def _get_default_code(self) -> str:
        return "E701"


class UnauthorizedError(SyncError):
    """凭据被拒绝，刷新凭据后由调用方重试"""

    def _get_default_code(self) -> str:
        return "E702"


class UnsafePathError(SyncError):
    """路径超出实例根目录"""

    def _get_default_code(self) -> str:
        return "E703"


class PersistFailedError(SyncError):
    """
    文件已写入但清单保存失败

    磁盘文件与清单可能不一致，需要之后重新同步修复。
    """

    needs_repair = True

    def _get_default_code(self) -> str:
        return "E704"


class LoaderError(PackSyncError):
    """模组加载器解析错误"""

    def _get_default_code(self) -> str:
        return "E800"


class UnknownLoaderError(LoaderError):
    """未知的模组加载器名称"""

    def _get_default_code(self) -> str:
        return "E801"


class IncompatibleVersionError(LoaderError):
    """指定的加载器版本与游戏版本不兼容"""

    def _get_default_code(self) -> str:
        return "E802"


class NoCompatibleVersionError(LoaderError):
    """没有与游戏版本兼容的加载器版本"""

    def _get_default_code(self) -> str:
        return "E803"


__all__ = [
    # 基础异常
    "PackSyncError",
    # 配置异常
    "ConfigError",
    "ConfigParseError",
    "ConfigValidationError",
    # API 异常
    "APIError",
    "APINotFoundError",
    # 下载异常
    "DownloadError",
    "DownloadNetworkError",
    "DownloadChecksumError",
    "DownloadFileError",
    "DownloadNotFoundError",
    "DownloadUnauthorizedError",
    # 清单异常
    "ManifestError",
    "ManifestNotFoundError",
    "ManifestCorruptError",
    # 同步异常
    "SyncError",
    "FetchFailedError",
    "UnauthorizedError",
    "UnsafePathError",
    "PersistFailedError",
    # 加载器异常
    "LoaderError",
    "UnknownLoaderError",
    "IncompatibleVersionError",
    "NoCompatibleVersionError",
]
