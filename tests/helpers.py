"""测试辅助：伪造传输层与条目构造"""

import hashlib
from pathlib import Path
from typing import Dict, List, Optional

from packsync.models import FetchReference, FileCategory, FileEntry


def sha1_of(data: bytes) -> str:
    return hashlib.sha1(data).hexdigest()


def make_entry(path: str, url: Optional[str] = None, sha1: Optional[str] = None) -> FileEntry:
    return FileEntry(
        path=path,
        category=FileCategory.from_path(path),
        reference=FetchReference(url=url or f"https://cdn.example/{path}", sha1=sha1),
    )


class FakeFetcher:
    """按 url 返回预设内容；failures 中的 url 抛出对应异常"""

    def __init__(
        self,
        contents: Optional[Dict[str, bytes]] = None,
        failures: Optional[Dict[str, Exception]] = None,
    ):
        self.contents = dict(contents or {})
        self.failures = dict(failures or {})
        self.calls: List[str] = []
        self.tokens: List[Optional[str]] = []

    async def fetch(self, reference, dest_path, token=None):
        self.calls.append(reference.url)
        self.tokens.append(token)
        if reference.url in self.failures:
            raise self.failures[reference.url]
        dest = Path(dest_path)
        dest.parent.mkdir(parents=True, exist_ok=True)
        dest.write_bytes(self.contents.get(reference.url, reference.url.encode()))
