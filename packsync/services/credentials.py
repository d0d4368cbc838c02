"""
凭据提供者

同步器通过该接口按需获取 Bearer 凭据；刷新与存储不在同步器职责之内。
"""

import os
from abc import ABC, abstractmethod
from typing import Optional


class CredentialProvider(ABC):
    """凭据提供者接口"""

    @abstractmethod
    async def get_token(self) -> Optional[str]:
        """返回当前有效的 Bearer 凭据，没有时返回 None"""


class StaticCredentialProvider(CredentialProvider):
    """固定凭据"""

    def __init__(self, token: Optional[str] = None):
        self._token = token

    async def get_token(self) -> Optional[str]:
        return self._token


class EnvCredentialProvider(CredentialProvider):
    """从环境变量读取凭据"""

    def __init__(self, var: str = "PACKSYNC_TOKEN"):
        self.var = var

    async def get_token(self) -> Optional[str]:
        return os.environ.get(self.var) or None
