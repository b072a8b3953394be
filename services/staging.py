# ============================================================================
# STAGING MANAGER
# ============================================================================
# EPOCH: 1 - LIVE RELAY
# STATUS: Service - Local working copies of remote sources
# PURPOSE: Download one source at a time into a per-job scratch directory
# CREATED: 19 OCT 2026
# ============================================================================
"""
Staging Manager

The relay engine never reads a remote URI directly. Each source is first
downloaded into scratch space:

    <scratch_root>/<job_id>/source-<index>-<token>.media

Rules:
- Downloads are bounded by a timeout and a byte limit
- A failed download leaves no partial file behind
- cleanup_job() removes the job directory and is safe to call repeatedly
- cleanup_all() removes every job directory (shutdown path)

Transport lives behind the SourceFetcher protocol. HttpSourceFetcher
streams with aiohttp; tests inject an in-memory fetcher.
"""

import asyncio
import logging
import os
import secrets
import shutil
from typing import Dict, Optional, Protocol, Tuple

import aiohttp

from core.config import StagingDefaults
from core.errors import (
    ScratchUnavailableError,
    StagingError,
    StagingFailedError,
    StagingTimeoutError,
    StagingTooLargeError,
)

logger = logging.getLogger(__name__)


class SourceFetcher(Protocol):
    """Copies the bytes behind a URI into a local file."""

    async def fetch(self, uri: str, dest_path: str, max_bytes: int, chunk_size: int) -> int:
        """
        Returns:
            Bytes written

        Raises:
            StagingTooLargeError: Size limit exceeded
            StagingFailedError: Transport error or non-2xx response
        """
        ...


# ============================================================================
# HTTP FETCHER
# ============================================================================

class HttpSourceFetcher:
    """
    Stream a source to disk with aiohttp.

    Chunk writes run in a worker thread, off the event loop.
    """

    def __init__(self, connect_timeout_seconds: float = 10.0):
        # Overall timeout is enforced by StagingManager
        self._timeout = aiohttp.ClientTimeout(total=None, sock_connect=connect_timeout_seconds)
        self._session: Optional[aiohttp.ClientSession] = None

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create HTTP session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
        return self._session

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    async def fetch(self, uri: str, dest_path: str, max_bytes: int, chunk_size: int) -> int:
        session = await self._get_session()
        written = 0

        try:
            async with session.get(uri) as response:
                if response.status >= 400:
                    raise StagingFailedError(f"HTTP {response.status} fetching {uri}")

                declared = response.content_length
                if max_bytes and declared is not None and declared > max_bytes:
                    raise StagingTooLargeError(uri, max_bytes, declared)

                with open(dest_path, "wb") as fh:
                    async for chunk in response.content.iter_chunked(chunk_size):
                        written += len(chunk)
                        if max_bytes and written > max_bytes:
                            raise StagingTooLargeError(uri, max_bytes, written)
                        await asyncio.to_thread(fh.write, chunk)

        except aiohttp.ClientError as e:
            raise StagingFailedError(f"{type(e).__name__} fetching {uri}: {e}") from e

        return written


# ============================================================================
# STAGING MANAGER
# ============================================================================

class StagingManager:
    """Owns the scratch directory tree for all jobs."""

    def __init__(
        self,
        fetcher: Optional[SourceFetcher] = None,
        defaults: Optional[StagingDefaults] = None,
    ):
        self.defaults = defaults or StagingDefaults()
        self.fetcher = fetcher or HttpSourceFetcher()
        # (job_id, index) -> staged file
        self._staged: Dict[Tuple[str, int], str] = {}

    @property
    def scratch_root(self) -> str:
        return self.defaults.scratch_root

    def job_dir(self, job_id: str) -> str:
        return os.path.join(self.scratch_root, job_id)

    def _ensure_job_dir(self, job_id: str) -> str:
        path = self.job_dir(job_id)
        try:
            os.makedirs(path, exist_ok=True)
        except OSError as e:
            raise ScratchUnavailableError(f"Cannot create scratch dir {path}: {e}") from e
        return path

    async def stage(self, job_id: str, index: int, source_uri: str) -> str:
        """
        Download one source into the job's scratch directory.

        Args:
            job_id: Owning job
            index: Position of the source in the job's list
            source_uri: Remote URI to download

        Returns:
            Local path of the staged copy

        Raises:
            StagingError subclasses for per-source failures
            ScratchUnavailableError if scratch space cannot be used
        """
        directory = self._ensure_job_dir(job_id)
        path = os.path.join(
            directory,
            f"source-{index:03d}-{secrets.token_hex(4)}.media",
        )

        logger.info(f"Staging source {index} for job {job_id}: {source_uri}")

        try:
            written = await asyncio.wait_for(
                self.fetcher.fetch(
                    source_uri,
                    path,
                    self.defaults.max_bytes,
                    self.defaults.chunk_size,
                ),
                timeout=self.defaults.download_timeout_seconds,
            )
        except asyncio.TimeoutError:
            self._discard(path)
            raise StagingTimeoutError(
                f"Staging exceeded {self.defaults.download_timeout_seconds}s: {source_uri}"
            )
        except StagingError:
            self._discard(path)
            raise
        except OSError as e:
            self._discard(path)
            raise ScratchUnavailableError(f"Cannot write {path}: {e}") from e
        except asyncio.CancelledError:
            self._discard(path)
            raise

        self._staged[(job_id, index)] = path
        logger.info(f"Staged {written} bytes for source {index} -> {path}")
        return path

    def staged_path(self, job_id: str, index: int) -> Optional[str]:
        return self._staged.get((job_id, index))

    async def unstage(self, job_id: str, index: int) -> None:
        """Remove the staged file for one source. Missing files are ignored."""
        path = self._staged.pop((job_id, index), None)
        if path:
            self._discard(path)

    async def cleanup_job(self, job_id: str) -> None:
        """Remove the job's scratch directory. Idempotent."""
        for key in [k for k in self._staged if k[0] == job_id]:
            del self._staged[key]
        path = self.job_dir(job_id)
        if os.path.isdir(path):
            shutil.rmtree(path, ignore_errors=True)
            logger.debug(f"Removed scratch dir {path}")

    def cleanup_all(self) -> None:
        """Remove every job directory under the scratch root."""
        root = self.scratch_root
        if not os.path.isdir(root):
            return
        for name in os.listdir(root):
            full = os.path.join(root, name)
            if os.path.isdir(full):
                shutil.rmtree(full, ignore_errors=True)
            else:
                self._discard(full)
        self._staged.clear()
        logger.info(f"Cleaned scratch root {root}")

    async def close(self) -> None:
        close = getattr(self.fetcher, "close", None)
        if close is not None:
            await close()

    @staticmethod
    def _discard(path: str) -> None:
        try:
            os.remove(path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Could not remove {path}: {e}")


__all__ = [
    "SourceFetcher",
    "HttpSourceFetcher",
    "StagingManager",
]
