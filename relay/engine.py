# ============================================================================
# FFMPEG RELAY ENGINE
# ============================================================================
# EPOCH: 1 - LIVE RELAY
# STATUS: Adapter - Media relay subprocess
# PURPOSE: Start ffmpeg for one attempt and expose its lifecycle
# CREATED: 19 OCT 2026
# ============================================================================
"""
FFmpeg Relay Engine

Black-box wrapper around one ffmpeg process pushing a staged file to a
destination URI.

ffmpeg is started with `-progress pipe:1 -nostats`, so stdout carries
key=value progress blocks terminated by `progress=continue|end`, and
stderr carries diagnostics only. Both pipes are drained concurrently so a
chatty stderr can never block the process.

Handles:
    events()    - async iterator of progress RelayEvents (until stdout EOF)
    interrupt() - SIGINT, lets ffmpeg flush and close the output
    kill()      - SIGKILL
    wait()      - reap, returns the exit code
"""

import asyncio
import logging
import shlex
import signal
from collections import deque
from typing import AsyncIterator, Deque, Dict, List, Optional, Protocol

from core.errors import EngineUnavailableError
from core.models import RelayEvent, RelayProfile

logger = logging.getLogger(__name__)


# Stderr lines retained before truncation to the character limit
STDERR_TAIL_LINES = 200


class RelayProcess(Protocol):
    """Contract the Relay Attempt Runner consumes."""

    command: str

    def events(self) -> AsyncIterator[RelayEvent]:
        ...

    def interrupt(self) -> None:
        ...

    def kill(self) -> None:
        ...

    async def wait(self) -> int:
        ...

    @property
    def returncode(self) -> Optional[int]:
        ...

    @property
    def diagnostics(self) -> str:
        ...


class RelayEngine(Protocol):
    async def start(self, input_path: str, destination_uri: str, profile: RelayProfile) -> RelayProcess:
        ...


# ============================================================================
# PROCESS HANDLE
# ============================================================================

class FFmpegProcess:
    """Handle on one running ffmpeg subprocess."""

    def __init__(
        self,
        process: asyncio.subprocess.Process,
        command: List[str],
        diagnostics_limit: int = 4000,
    ):
        self._process = process
        self.command = shlex.join(command)
        self._diagnostics_limit = diagnostics_limit
        self._stderr_tail: Deque[str] = deque(maxlen=STDERR_TAIL_LINES)
        self._stderr_task = asyncio.create_task(self._drain_stderr())

    @property
    def pid(self) -> int:
        return self._process.pid

    @property
    def returncode(self) -> Optional[int]:
        return self._process.returncode

    @property
    def diagnostics(self) -> str:
        text = "\n".join(self._stderr_tail)
        if len(text) > self._diagnostics_limit:
            text = text[-self._diagnostics_limit:]
        return text

    async def _drain_stderr(self) -> None:
        stream = self._process.stderr
        if stream is None:
            return
        while True:
            line = await stream.readline()
            if not line:
                break
            text = line.decode("utf-8", errors="replace").rstrip()
            if text:
                self._stderr_tail.append(text)

    async def events(self) -> AsyncIterator[RelayEvent]:
        """Yield one progress event per completed progress block."""
        stream = self._process.stdout
        if stream is None:
            return

        block: Dict[str, str] = {}
        while True:
            line = await stream.readline()
            if not line:
                break
            text = line.decode("utf-8", errors="replace").strip()
            key, sep, value = text.partition("=")
            if not sep:
                continue
            block[key.strip()] = value.strip()
            if key == "progress":
                event = progress_event(block)
                block = {}
                if event is not None:
                    yield event

    def interrupt(self) -> None:
        if self._process.returncode is None:
            try:
                self._process.send_signal(signal.SIGINT)
            except ProcessLookupError:
                pass

    def kill(self) -> None:
        if self._process.returncode is None:
            try:
                self._process.kill()
            except ProcessLookupError:
                pass

    async def wait(self) -> int:
        rc = await self._process.wait()
        # stderr EOF follows process exit; make the tail complete
        await self._stderr_task
        return rc


def format_timemark(out_time: str) -> str:
    """00:01:23.400000 -> 00:01:23.40"""
    head, dot, frac = out_time.partition(".")
    if not dot:
        return out_time
    return f"{head}.{frac[:2]}"


def progress_event(block: Dict[str, str]) -> Optional[RelayEvent]:
    """Build a progress event from one ffmpeg progress block."""
    out_time = block.get("out_time")
    if not out_time or out_time.startswith("-") or out_time == "N/A":
        return None
    data = {
        k: block[k]
        for k in ("frame", "fps", "bitrate", "speed", "total_size", "progress")
        if k in block
    }
    return RelayEvent.progress(format_timemark(out_time), data)


# ============================================================================
# ENGINE
# ============================================================================

class FFmpegRelayEngine:
    """Builds ffmpeg commands from profiles and starts them."""

    def __init__(self, ffmpeg_bin: str = "ffmpeg", diagnostics_limit: int = 4000):
        self.ffmpeg_bin = ffmpeg_bin
        self.diagnostics_limit = diagnostics_limit

    def build_command(self, input_path: str, destination_uri: str, profile: RelayProfile) -> List[str]:
        cmd = [
            self.ffmpeg_bin,
            "-hide_banner",
            "-nostdin",
            "-nostats",
            "-progress", "pipe:1",
        ]
        if profile.realtime:
            cmd.append("-re")
        cmd += ["-i", input_path]

        cmd += ["-c:v", profile.video_codec]
        if profile.reencodes:
            if profile.preset:
                cmd += ["-preset", profile.preset]
            if profile.video_bitrate:
                cmd += ["-b:v", profile.video_bitrate]
            if profile.max_height:
                cmd += ["-vf", f"scale=-2:'min({profile.max_height},ih)'"]
            if profile.keyframe_interval:
                cmd += ["-g", str(profile.keyframe_interval)]
            if profile.threads:
                cmd += ["-threads", str(profile.threads)]

        cmd += ["-c:a", profile.audio_codec]
        if profile.audio_bitrate and profile.audio_codec != "copy":
            cmd += ["-b:a", profile.audio_bitrate]

        cmd += list(profile.extra_output_args)
        cmd += ["-f", profile.output_format, destination_uri]
        return cmd

    async def start(self, input_path: str, destination_uri: str, profile: RelayProfile) -> FFmpegProcess:
        """
        Start one relay process.

        Raises:
            EngineUnavailableError: binary missing or not executable
        """
        cmd = self.build_command(input_path, destination_uri, profile)
        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except (FileNotFoundError, PermissionError) as e:
            raise EngineUnavailableError(f"Cannot start {cmd[0]}: {e}") from e

        logger.info(f"Started relay process pid={process.pid} profile={profile.name}")
        # Destination carries the stream key; never expose it
        display = [arg if arg != destination_uri else "<destination>" for arg in cmd]
        return FFmpegProcess(process, display, self.diagnostics_limit)


__all__ = [
    "RelayProcess",
    "RelayEngine",
    "FFmpegProcess",
    "FFmpegRelayEngine",
    "progress_event",
    "format_timemark",
]
