import asyncio

import pytest
from aiohttp import web
from aiohttp import test_utils

from packsync.download import DownloadManager, FileVerifier
from packsync.models import FetchReference
from packsync.exceptions import (
    DownloadChecksumError,
    DownloadError,
    DownloadNetworkError,
    DownloadNotFoundError,
    DownloadUnauthorizedError,
)

from helpers import sha1_of


PAYLOAD = b"jar bytes" * 1000


@pytest.fixture
def no_sleep(monkeypatch):
    delays = []
    real_sleep = asyncio.sleep

    async def fake_sleep(delay, *args, **kwargs):
        if delay:
            delays.append(delay)
        await real_sleep(0)

    monkeypatch.setattr(asyncio, "sleep", fake_sleep)
    return delays


def make_app(hits):
    async def ok(request):
        hits.append(("ok", request.headers.get("Authorization")))
        return web.Response(body=PAYLOAD)

    async def flaky(request):
        hits.append(("flaky", None))
        if len([h for h in hits if h[0] == "flaky"]) < 3:
            return web.Response(status=503)
        return web.Response(body=PAYLOAD)

    async def status(request):
        code = int(request.match_info["code"])
        hits.append((code, None))
        return web.Response(status=code)

    app = web.Application()
    app.router.add_get("/ok", ok)
    app.router.add_get("/flaky", flaky)
    app.router.add_get("/status/{code}", status)
    return app


@pytest.fixture
def hits():
    return []


async def start_server(hits):
    server = test_utils.TestServer(make_app(hits))
    await server.start_server()
    return server


@pytest.mark.asyncio
async def test_http_download_with_checksum_and_token(tmp_path, hits):
    server = await start_server(hits)
    dest = tmp_path / "out" / "a.jar"
    try:
        async with DownloadManager() as manager:
            await manager.fetch(
                FetchReference(url=str(server.make_url("/ok")), sha1=sha1_of(PAYLOAD).upper()),
                dest,
                token="secret",
            )
            assert manager.get_stats().completed == 1
    finally:
        await server.close()

    assert dest.read_bytes() == PAYLOAD
    assert hits == [("ok", "Bearer secret")]


@pytest.mark.asyncio
async def test_checksum_mismatch_is_permanent(tmp_path, hits):
    server = await start_server(hits)
    dest = tmp_path / "a.jar"
    try:
        async with DownloadManager(retry_delay=0) as manager:
            with pytest.raises(DownloadChecksumError) as exc_info:
                await manager.fetch(
                    FetchReference(url=str(server.make_url("/ok")), sha1="0" * 40), dest
                )
    finally:
        await server.close()

    assert exc_info.value.transient is False
    assert len(hits) == 1
    assert not dest.exists()


@pytest.mark.asyncio
async def test_transient_status_is_retried(tmp_path, hits, no_sleep):
    server = await start_server(hits)
    dest = tmp_path / "a.jar"
    try:
        async with DownloadManager(max_retries=3, retry_delay=0.5) as manager:
            await manager.fetch(FetchReference(url=str(server.make_url("/flaky"))), dest)
            assert manager.get_stats().retried == 2
    finally:
        await server.close()

    assert dest.read_bytes() == PAYLOAD
    assert no_sleep == [0.5, 1.0]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "code, error_cls, transient",
    [
        (404, DownloadNotFoundError, False),
        (410, DownloadNotFoundError, False),
        (401, DownloadUnauthorizedError, False),
        (403, DownloadUnauthorizedError, False),
        (400, DownloadError, False),
        (429, DownloadNetworkError, True),
        (500, DownloadNetworkError, True),
    ],
)
async def test_status_classification(tmp_path, hits, no_sleep, code, error_cls, transient):
    server = await start_server(hits)
    try:
        async with DownloadManager(max_retries=2) as manager:
            with pytest.raises(error_cls) as exc_info:
                await manager.fetch(
                    FetchReference(url=str(server.make_url(f"/status/{code}"))),
                    tmp_path / "a.jar",
                )
    finally:
        await server.close()

    assert exc_info.value.transient is transient
    assert exc_info.value.context["status"] == code
    assert len(hits) == (3 if transient else 1)
    assert not (tmp_path / "a.jar").exists()


@pytest.mark.asyncio
async def test_connection_error_is_transient(tmp_path, no_sleep):
    async with DownloadManager(max_retries=1) as manager:
        with pytest.raises(DownloadNetworkError) as exc_info:
            await manager.fetch(
                FetchReference(url="http://127.0.0.1:1/unreachable.jar"),
                tmp_path / "a.jar",
            )

    assert exc_info.value.transient is True
    assert len(no_sleep) == 1


@pytest.mark.asyncio
async def test_file_url_is_copied(tmp_path):
    source = tmp_path / "source.jar"
    source.write_bytes(PAYLOAD)
    dest = tmp_path / "nested" / "dest.jar"

    await DownloadManager().fetch(
        FetchReference(url=source.as_uri(), sha1=sha1_of(PAYLOAD)), dest
    )

    assert dest.read_bytes() == PAYLOAD


@pytest.mark.asyncio
async def test_file_url_checksum_and_missing_source(tmp_path):
    source = tmp_path / "source.jar"
    source.write_bytes(PAYLOAD)
    manager = DownloadManager()

    with pytest.raises(DownloadChecksumError):
        await manager.fetch(
            FetchReference(url=source.as_uri(), sha1="f" * 40), tmp_path / "dest.jar"
        )
    assert not (tmp_path / "dest.jar").exists()

    with pytest.raises(DownloadNotFoundError):
        await manager.fetch(
            FetchReference(url=(tmp_path / "missing.jar").as_uri()), tmp_path / "dest.jar"
        )
    assert manager.get_stats().failed == 2


@pytest.mark.asyncio
async def test_verifier(tmp_path):
    path = tmp_path / "a.bin"
    path.write_bytes(b"abc")
    digest = sha1_of(b"abc")

    assert await FileVerifier.calc_sha1(path) == digest
    assert await FileVerifier.verify_sha1(path, digest.upper())
    assert await FileVerifier.verify_sha1(path, None)
    assert not await FileVerifier.verify_sha1(tmp_path / "missing", digest)
    assert await FileVerifier.matches(path, digest)
    assert not await FileVerifier.matches(path, None)
