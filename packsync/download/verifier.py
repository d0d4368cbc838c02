"""
文件校验器

实现 SHA1 校验、文件存在性检查。
"""

import hashlib
import os
from typing import Optional

import aiofiles


class FileVerifier:
    """文件校验器"""

    @staticmethod
    async def calc_sha1(file_path) -> Optional[str]:
        """
        计算文件的 SHA1 值

        Returns:
            SHA1 哈希值或 None（如果文件不存在或无法读取）
        """
        if not os.path.isfile(file_path):
            return None

        sha1 = hashlib.sha1()
        try:
            async with aiofiles.open(file_path, "rb") as f:
                while True:
                    data = await f.read(65536)
                    if not data:
                        break
                    sha1.update(data)
            return sha1.hexdigest()
        except (IOError, OSError):
            return None

    @staticmethod
    async def verify_sha1(file_path, expected_sha1: Optional[str]) -> bool:
        """
        校验文件的 SHA1 是否匹配

        Returns:
            是否匹配（如果没有预期值则返回 True）
        """
        if not expected_sha1:
            return True

        current_sha1 = await FileVerifier.calc_sha1(file_path)
        if current_sha1 is None:
            return False

        return current_sha1.lower() == expected_sha1.lower()

    @staticmethod
    async def matches(file_path, expected_sha1: Optional[str]) -> bool:
        """文件存在且内容与已知 SHA1 一致；没有 SHA1 时无法确认，返回 False"""
        if not expected_sha1 or not os.path.isfile(file_path):
            return False
        return await FileVerifier.verify_sha1(file_path, expected_sha1)
