"""
PackSync 下载层

包含传输管理与文件校验功能。
"""

from packsync.download.manager import DownloadManager, DownloadStats
from packsync.download.verifier import FileVerifier

__all__ = [
    "DownloadManager",
    "DownloadStats",
    "FileVerifier",
]
