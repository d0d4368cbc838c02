"""
下载管理器

同步器使用的传输层：获取单个引用到指定路径，区分临时与永久错误，
仅对临时错误做指数退避重试。
"""

import asyncio
import os
import shutil
from dataclasses import dataclass
from typing import Callable, Optional

import aiohttp
import aiofiles
from loguru import logger

from packsync.download.verifier import FileVerifier
from packsync.models import FetchReference
from packsync.exceptions import (
    DownloadError,
    DownloadNetworkError,
    DownloadChecksumError,
    DownloadFileError,
    DownloadNotFoundError,
    DownloadUnauthorizedError,
)


TRANSIENT_STATUSES = {408, 425, 429}


@dataclass
class DownloadStats:
    """下载统计"""

    total: int = 0
    completed: int = 0
    failed: int = 0
    retried: int = 0
    bytes_downloaded: int = 0


class DownloadManager:
    """下载管理器"""

    def __init__(
        self,
        max_retries: int = 3,
        retry_delay: float = 1.0,
        timeout: float = 60.0,
        session: Optional[aiohttp.ClientSession] = None,
        progress_callback: Optional[Callable[[str, float], None]] = None,
    ):
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.timeout = timeout
        self.verifier = FileVerifier()
        self.stats = DownloadStats()
        self._session = session
        self._owned_session = session is None
        self._progress_callback = progress_callback

    @property
    def session(self) -> aiohttp.ClientSession:
        """获取或创建 aiohttp session"""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            )
        return self._session

    async def fetch(
        self,
        reference: FetchReference,
        dest_path,
        token: Optional[str] = None,
    ) -> None:
        """
        获取引用内容并写入 dest_path

        Raises:
            DownloadError: 最终失败；transient 标明是否为临时错误
        """
        dest_path = str(dest_path)
        os.makedirs(os.path.dirname(dest_path) or ".", exist_ok=True)
        self.stats.total += 1

        if reference.url.startswith("file://"):
            await self._copy_local_file(reference, dest_path)
            return

        for attempt in range(self.max_retries + 1):
            try:
                await self._download_remote_file(reference, dest_path, token)
                self.stats.completed += 1
                return
            except DownloadError as e:
                _remove_partial(dest_path)
                if e.transient and attempt < self.max_retries:
                    delay = self.retry_delay * (2**attempt)
                    self.stats.retried += 1
                    logger.warning(
                        f"[重试] 获取 '{reference.url}' 失败 (第 {attempt + 1} 次): {e}. "
                        f"{delay:.1f}s 后重试..."
                    )
                    await asyncio.sleep(delay)
                    continue
                self.stats.failed += 1
                logger.error(f"[错误] 获取 '{reference.url}' 最终失败: {e}")
                raise
            except asyncio.CancelledError:
                _remove_partial(dest_path)
                raise

    async def _download_remote_file(
        self,
        reference: FetchReference,
        dest_path: str,
        token: Optional[str],
    ) -> None:
        """下载远程文件（单次尝试）"""
        url = reference.url
        headers = {"Authorization": f"Bearer {token}"} if token else None
        context = {"url": url, "path": dest_path}

        try:
            async with self.session.get(url, headers=headers) as response:
                status = response.status
                context["status"] = status
                if status in (401, 403):
                    raise DownloadUnauthorizedError(f"HTTP {status}", context=context)
                if status in (404, 410):
                    raise DownloadNotFoundError(f"HTTP {status}", context=context)
                if status in TRANSIENT_STATUSES or status >= 500:
                    raise DownloadNetworkError(f"HTTP {status}", context=context)
                if status != 200:
                    raise DownloadError(f"HTTP {status}", context=context)

                total_size = int(response.headers.get("Content-Length", 0))
                filename = os.path.basename(url.split("?", 1)[0])

                async with aiofiles.open(dest_path, "wb") as f:
                    downloaded = 0
                    last_percent = 0.0

                    async for chunk in response.content.iter_chunked(8192):
                        await f.write(chunk)
                        downloaded += len(chunk)
                        self.stats.bytes_downloaded += len(chunk)

                        if total_size > 0 and self._progress_callback:
                            percent = (downloaded / total_size) * 100
                            if percent - last_percent >= 5:
                                self._progress_callback(filename, percent)
                                last_percent = percent
        except DownloadError:
            raise
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise DownloadNetworkError(f"网络错误: {e!r}", context=context) from e
        except OSError as e:
            raise DownloadFileError(f"写入文件失败: {e}", context=context) from e

        if reference.sha1 and not await self.verifier.verify_sha1(
            dest_path, reference.sha1
        ):
            raise DownloadChecksumError(
                f"SHA1 校验失败: {url}",
                context={**context, "expected": reference.sha1},
            )

        logger.debug(f"[完成] '{url}' 下载完成")

    async def _copy_local_file(self, reference: FetchReference, dest_path: str) -> None:
        """复制本地文件"""
        src_path = reference.url[7:]
        context = {"url": reference.url, "path": dest_path}

        if not os.path.isfile(src_path):
            self.stats.failed += 1
            raise DownloadNotFoundError(f"本地文件不存在: {src_path}", context=context)

        try:
            shutil.copyfile(src_path, dest_path)
        except OSError as e:
            self.stats.failed += 1
            _remove_partial(dest_path)
            raise DownloadFileError(f"复制文件失败: {e}", context=context) from e

        if reference.sha1 and not await self.verifier.verify_sha1(
            dest_path, reference.sha1
        ):
            self.stats.failed += 1
            _remove_partial(dest_path)
            raise DownloadChecksumError(
                f"SHA1 校验失败: {src_path}",
                context={**context, "expected": reference.sha1},
            )

        self.stats.completed += 1
        logger.debug(f"[复制] 本地文件 {os.path.basename(src_path)} 复制完成")

    def get_stats(self) -> DownloadStats:
        """获取下载统计"""
        return self.stats

    async def close(self):
        """关闭 session"""
        if self._owned_session and self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self):
        """异步上下文管理器入口"""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """异步上下文管理器出口"""
        await self.close()


def _remove_partial(path: str) -> None:
    """清理不完整的文件"""
    if os.path.exists(path):
        try:
            os.remove(path)
        except OSError as e:
            logger.warning(f"[清理] 删除不完整文件 '{path}' 失败: {e}")
