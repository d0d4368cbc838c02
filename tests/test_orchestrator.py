import json

import pytest

from packsync import PackSyncOrchestrator
from packsync.models import PackVersionDescriptor
from packsync.services import StaticCredentialProvider
from packsync.exceptions import SyncError

from helpers import FakeFetcher, make_entry


@pytest.mark.asyncio
async def test_sync_reports_duplicates_next_to_managed_files(instance):
    (instance.root / "mods").mkdir()
    (instance.root / "mods/x-0.9.jar").write_bytes(b"dropped in by hand")
    descriptor = PackVersionDescriptor(version_id="v1", files=[make_entry("mods/x-1.1.jar")])
    fetcher = FakeFetcher()

    async with PackSyncOrchestrator(
        fetcher=fetcher, credentials=StaticCredentialProvider("t")
    ) as orchestrator:
        result, groups = await orchestrator.sync(instance, descriptor)
        manifest = await orchestrator.status(instance)

    assert result.manifest == manifest
    assert fetcher.tokens == ["t"]
    assert len(groups) == 1
    assert groups[0].tracked == ("mods/x-1.1.jar",)
    assert groups[0].untracked == ("mods/x-0.9.jar",)
    assert (instance.root / "mods/x-0.9.jar").exists()


@pytest.mark.asyncio
async def test_load_descriptor_from_file(tmp_path):
    descriptor = PackVersionDescriptor(
        version_id="v3", pack_id="1", files=[make_entry("mods/a.jar")]
    )
    path = tmp_path / "v3.json"
    path.write_text(json.dumps(descriptor.to_dict()), encoding="utf-8")

    async with PackSyncOrchestrator(fetcher=FakeFetcher()) as orchestrator:
        loaded = await orchestrator.load_descriptor(str(path))

    assert loaded == descriptor


@pytest.mark.asyncio
async def test_load_descriptor_requires_a_source(tmp_path):
    async with PackSyncOrchestrator(fetcher=FakeFetcher()) as orchestrator:
        with pytest.raises(SyncError):
            await orchestrator.load_descriptor(pack_id=1)

        with pytest.raises(SyncError):
            await orchestrator.load_descriptor(str(tmp_path / "missing.json"))
