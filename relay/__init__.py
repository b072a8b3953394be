# ============================================================================
# RELAY MODULE
# ============================================================================
# EPOCH: 1 - LIVE RELAY
# STATUS: Core - Relay engine adapter and attempt supervision
# PURPOSE: Start, observe, interrupt and reap relay subprocesses
# CREATED: 19 OCT 2026
# ============================================================================
"""
Relay Module

    engine  - FFmpegRelayEngine builds and starts ffmpeg processes
    runner  - RelayAttemptRunner supervises one attempt at a time

Usage:
    from relay import FFmpegRelayEngine, RelayAttemptRunner

    runner = RelayAttemptRunner(FFmpegRelayEngine("ffmpeg"))
    attempt = await runner.run(path, destination, profile, timeout=3600)
"""

from .engine import FFmpegRelayEngine, FFmpegProcess, RelayEngine, RelayProcess
from .runner import RelayAttemptRunner

__all__ = [
    "FFmpegRelayEngine",
    "FFmpegProcess",
    "RelayEngine",
    "RelayProcess",
    "RelayAttemptRunner",
]
