# ============================================================================
# STAGING TESTS
# ============================================================================
# EPOCH: 1 - LIVE RELAY
# STATUS: Tests - Scratch space management
# PURPOSE: Verify downloads, limits and cleanup
# CREATED: 19 OCT 2026
# ============================================================================
"""
Staging Tests

Run with:
    pytest tests/test_staging.py -v
"""

import asyncio
import os
from unittest.mock import patch

import pytest

from core.config import StagingDefaults
from core.errors import (
    ScratchUnavailableError,
    StagingFailedError,
    StagingTimeoutError,
    StagingTooLargeError,
)
from services.staging import HttpSourceFetcher, StagingManager

from fakes import FakeFetcher


A = "https://cdn.example/a.mp4"


@pytest.fixture
def scratch(tmp_path):
    return str(tmp_path / "scratch")


def _manager(scratch, fetcher, **overrides):
    params = dict(scratch_root=scratch, download_timeout_seconds=1.0, max_bytes=1024, chunk_size=16)
    params.update(overrides)
    return StagingManager(fetcher=fetcher, defaults=StagingDefaults(**params))


class TestStage:

    def test_stage_writes_into_job_dir(self, scratch):
        manager = _manager(scratch, FakeFetcher({A: b"hello"}))
        path = asyncio.run(manager.stage("job-1", 0, A))

        assert os.path.dirname(path) == os.path.join(scratch, "job-1")
        assert os.path.basename(path).startswith("source-000-")
        with open(path, "rb") as fh:
            assert fh.read() == b"hello"
        assert manager.staged_path("job-1", 0) == path

    def test_restage_gets_fresh_name(self, scratch):
        manager = _manager(scratch, FakeFetcher())

        async def scenario():
            first = await manager.stage("job-1", 0, A)
            await manager.unstage("job-1", 0)
            second = await manager.stage("job-1", 0, A)
            return first, second

        first, second = asyncio.run(scenario())
        assert first != second
        assert not os.path.exists(first)
        assert os.path.exists(second)

    def test_transport_failure_leaves_no_file(self, scratch):
        manager = _manager(scratch, FakeFetcher({A: StagingFailedError("HTTP 500")}))
        with pytest.raises(StagingFailedError):
            asyncio.run(manager.stage("job-1", 0, A))
        assert os.listdir(os.path.join(scratch, "job-1")) == []
        assert manager.staged_path("job-1", 0) is None

    def test_too_large(self, scratch):
        manager = _manager(scratch, FakeFetcher({A: b"x" * 2048}))
        with pytest.raises(StagingTooLargeError) as exc_info:
            asyncio.run(manager.stage("job-1", 0, A))
        assert exc_info.value.limit_bytes == 1024
        assert os.listdir(os.path.join(scratch, "job-1")) == []

    def test_timeout(self, scratch):
        manager = _manager(scratch, FakeFetcher(delay=5.0), download_timeout_seconds=0.05)
        with pytest.raises(StagingTimeoutError):
            asyncio.run(manager.stage("job-1", 0, A))
        assert os.listdir(os.path.join(scratch, "job-1")) == []

    def test_write_error_is_scratch_unavailable(self, scratch):
        manager = _manager(scratch, FakeFetcher({A: OSError(28, "No space left on device")}))
        with pytest.raises(ScratchUnavailableError):
            asyncio.run(manager.stage("job-1", 0, A))

    def test_unusable_scratch_root(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("not a directory")
        manager = _manager(str(blocker), FakeFetcher())
        with pytest.raises(ScratchUnavailableError):
            asyncio.run(manager.stage("job-1", 0, A))


class TestCleanup:

    def test_cleanup_job_is_idempotent(self, scratch):
        manager = _manager(scratch, FakeFetcher())

        async def scenario():
            await manager.stage("job-1", 0, A)
            await manager.stage("job-1", 1, A)
            await manager.cleanup_job("job-1")
            await manager.cleanup_job("job-1")

        asyncio.run(scenario())
        assert not os.path.exists(os.path.join(scratch, "job-1"))
        assert manager.staged_path("job-1", 0) is None

    def test_cleanup_job_leaves_other_jobs(self, scratch):
        manager = _manager(scratch, FakeFetcher())

        async def scenario():
            await manager.stage("job-1", 0, A)
            keep = await manager.stage("job-2", 0, A)
            await manager.cleanup_job("job-1")
            return keep

        keep = asyncio.run(scenario())
        assert os.path.exists(keep)
        assert manager.staged_path("job-2", 0) == keep

    def test_unstage_missing_is_noop(self, scratch):
        manager = _manager(scratch, FakeFetcher())
        asyncio.run(manager.unstage("job-1", 7))

    def test_cleanup_all(self, scratch):
        manager = _manager(scratch, FakeFetcher())

        async def scenario():
            await manager.stage("job-1", 0, A)
            await manager.stage("job-2", 0, A)

        asyncio.run(scenario())
        manager.cleanup_all()
        assert os.listdir(scratch) == []

    def test_cleanup_all_without_root(self, scratch):
        _manager(scratch, FakeFetcher()).cleanup_all()
        assert not os.path.exists(scratch)


# ============================================================================
# HTTP FETCHER
# ============================================================================

class _Content:
    def __init__(self, chunks):
        self._chunks = chunks

    async def iter_chunked(self, size):
        for chunk in self._chunks:
            yield chunk


class _Response:
    status = 200

    def __init__(self, chunks, content_length=None):
        self.content = _Content(chunks)
        self.content_length = content_length

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False


class _Session:
    """Stands in for aiohttp.ClientSession.get()."""

    closed = False

    def __init__(self, chunks):
        self.chunks = chunks

    def get(self, uri):
        return _Response(self.chunks)


class TestHttpSourceFetcher:

    def test_chunks_written_in_worker_thread(self, tmp_path):
        fetcher = HttpSourceFetcher()
        fetcher._session = _Session([b"abc", b"def"])
        dest = str(tmp_path / "source.media")
        offloaded = []
        real_to_thread = asyncio.to_thread

        async def recording_to_thread(func, *args):
            offloaded.append(args)
            return await real_to_thread(func, *args)

        with patch("services.staging.asyncio.to_thread", new=recording_to_thread):
            written = asyncio.run(fetcher.fetch(A, dest, 0, 3))

        assert written == 6
        assert offloaded == [(b"abc",), (b"def",)]
        with open(dest, "rb") as fh:
            assert fh.read() == b"abcdef"

    def test_streamed_size_limit(self, tmp_path):
        fetcher = HttpSourceFetcher()
        fetcher._session = _Session([b"abcd", b"efgh"])
        with pytest.raises(StagingTooLargeError):
            asyncio.run(fetcher.fetch(A, str(tmp_path / "source.media"), 6, 4))
