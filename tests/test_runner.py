# ============================================================================
# RELAY RUNNER TESTS
# ============================================================================
# EPOCH: 1 - LIVE RELAY
# STATUS: Tests - Engine command building and attempt supervision
# PURPOSE: Verify outcomes, events, timeouts, cancellation and reaping
# CREATED: 19 OCT 2026
# ============================================================================
"""
Relay Runner Tests

Covers:
1. ffmpeg command construction per profile
2. Progress block parsing
3. Runner outcomes with scripted processes
4. Interrupt -> kill escalation
5. Real subprocesses (python -c scripts standing in for ffmpeg)

Run with:
    pytest tests/test_runner.py -v
"""

import asyncio
import sys
import time

import pytest

from core.config import RelayDefaults
from core.contracts import AttemptOutcome, FailureKind, RelayEventType
from core.models import ProfileLadder, RelayAttempt, RelayProfile
from relay.engine import FFmpegRelayEngine, format_timemark, progress_event
from relay.runner import RelayAttemptRunner

from fakes import FakeEngine


PRIMARY, DEGRADED = ProfileLadder.default().profiles
DEST = "rtmp://live.example/app/secret-key"


def _defaults(**overrides):
    params = dict(grace_period_seconds=0.2, progress_interval_seconds=0.0)
    params.update(overrides)
    return RelayDefaults(**params)


def _run(runner, profile=PRIMARY, **kwargs):
    events = []
    attempt = asyncio.run(runner.run("/scratch/a.media", DEST, profile, on_event=events.append, **kwargs))
    return attempt, events


# ============================================================================
# ENGINE
# ============================================================================

class TestBuildCommand:

    def test_stream_copy(self):
        cmd = FFmpegRelayEngine("ffmpeg").build_command("/in.media", DEST, PRIMARY)
        assert cmd[0] == "ffmpeg"
        assert cmd[cmd.index("-progress") + 1] == "pipe:1"
        assert "-nostdin" in cmd
        assert "-re" in cmd
        assert cmd[cmd.index("-i") + 1] == "/in.media"
        assert cmd[cmd.index("-c:v") + 1] == "copy"
        assert "-vf" not in cmd
        assert cmd[-3:] == ["-f", "flv", DEST]

    def test_degraded_reencode(self):
        cmd = FFmpegRelayEngine("ffmpeg").build_command("/in.media", DEST, DEGRADED)
        assert cmd[cmd.index("-c:v") + 1] == "libx264"
        assert cmd[cmd.index("-b:v") + 1] == "2500k"
        assert cmd[cmd.index("-vf") + 1] == "scale=-2:'min(720,ih)'"
        assert cmd[cmd.index("-threads") + 1] == "2"
        assert cmd[cmd.index("-g") + 1] == "60"

    def test_extra_args_before_output(self):
        profile = RelayProfile(name="x", realtime=False, extra_output_args=["-flvflags", "no_duration_filesize"])
        cmd = FFmpegRelayEngine("ffmpeg").build_command("/in.media", DEST, profile)
        assert "-re" not in cmd
        assert cmd[-5:-3] == ["-flvflags", "no_duration_filesize"]


class TestProgressParsing:

    def test_format_timemark(self):
        assert format_timemark("00:01:23.400000") == "00:01:23.40"
        assert format_timemark("00:00:05") == "00:00:05"

    def test_progress_event(self):
        event = progress_event({"out_time": "00:00:10.250000", "fps": "29.97", "progress": "continue", "junk": "1"})
        assert event.event_type == RelayEventType.PROGRESS
        assert event.timemark == "00:00:10.25"
        assert event.data == {"fps": "29.97", "progress": "continue"}

    @pytest.mark.parametrize("out_time", [None, "N/A", "-577014:32:22.77"])
    def test_no_position_no_event(self, out_time):
        block = {"progress": "continue"}
        if out_time:
            block["out_time"] = out_time
        assert progress_event(block) is None


# ============================================================================
# RUNNER (SCRIPTED PROCESSES)
# ============================================================================

class TestRunnerOutcomes:

    def test_success(self):
        engine = FakeEngine([{"exit_code": 0, "timemarks": ["00:00:01.00", "00:00:02.00"]}])
        attempt, events = _run(RelayAttemptRunner(engine, _defaults()))

        assert attempt.outcome == AttemptOutcome.SUCCEEDED
        assert attempt.exit_code == 0
        assert attempt.last_timemark == "00:00:02.00"
        assert attempt.diagnostics is None
        types = [e.event_type for e in events]
        assert types[0] == RelayEventType.STARTED
        assert types[-1] == RelayEventType.ENDED
        assert types.count(RelayEventType.PROGRESS) == 2

    def test_nonzero_exit_is_engine_error(self):
        engine = FakeEngine([{"exit_code": 1, "diagnostics": "Connection refused"}])
        attempt, events = _run(RelayAttemptRunner(engine, _defaults()))

        assert attempt.outcome == AttemptOutcome.FAILED
        assert attempt.failure_kind == FailureKind.ENGINE_ERROR
        assert attempt.exit_code == 1
        assert attempt.diagnostics == "Connection refused"
        assert events[-1].event_type == RelayEventType.FAILED
        assert events[-1].message == "Connection refused"

    def test_progress_throttled(self):
        engine = FakeEngine([{"timemarks": ["00:00:01.00", "00:00:02.00", "00:00:03.00"]}])
        attempt, events = _run(RelayAttemptRunner(engine, _defaults(progress_interval_seconds=60.0)))

        progress = [e for e in events if e.event_type == RelayEventType.PROGRESS]
        assert [e.timemark for e in progress] == ["00:00:01.00"]
        assert attempt.last_timemark == "00:00:03.00"

    def test_events_carry_attempt_identity(self):
        engine = FakeEngine()
        runner = RelayAttemptRunner(engine, _defaults())
        identity = RelayAttempt(job_id="job-9", source_index=3, attempt_number=2, profile_name=DEGRADED.name)
        attempt, events = _run(runner, DEGRADED, attempt=identity)

        assert attempt is identity
        for event in events:
            assert event.job_id == "job-9"
            assert event.source_index == 3
            assert event.attempt == 2
            assert event.profile == "degraded-1"

    def test_timeout(self):
        engine = FakeEngine([{"hang": True}])
        attempt, events = _run(RelayAttemptRunner(engine, _defaults()), timeout=0.05)

        assert attempt.outcome == AttemptOutcome.TIMED_OUT
        assert attempt.failure_kind == FailureKind.TIMEOUT
        assert attempt.timeout_seconds == 0.05
        assert engine.processes[0].interrupted
        assert not engine.processes[0].killed

    def test_ignored_interrupt_escalates_to_kill(self):
        engine = FakeEngine([{"hang": True, "ignore_interrupt": True}])
        runner = RelayAttemptRunner(engine, _defaults(grace_period_seconds=0.05))
        attempt, _ = _run(runner, timeout=0.05)

        process = engine.processes[0]
        assert attempt.outcome == AttemptOutcome.TIMED_OUT
        assert process.interrupted and process.killed
        assert attempt.exit_code == -9
        assert runner.live_processes == 0

    def test_cancel_event_interrupts(self):
        engine = FakeEngine([{"hang": True}])
        runner = RelayAttemptRunner(engine, _defaults())

        async def scenario():
            cancel = asyncio.Event()
            task = asyncio.create_task(runner.run("/a", DEST, PRIMARY, cancel_event=cancel))
            await engine.started.wait()
            cancel.set()
            return await task

        attempt = asyncio.run(scenario())
        assert attempt.outcome == AttemptOutcome.CANCELLED
        assert attempt.failure_kind is None
        assert engine.processes[0].interrupted
        assert runner.live_processes == 0

    def test_already_cancelled_never_starts(self):
        engine = FakeEngine()
        runner = RelayAttemptRunner(engine, _defaults())

        async def scenario():
            cancel = asyncio.Event()
            cancel.set()
            return await runner.run("/a", DEST, PRIMARY, cancel_event=cancel)

        attempt = asyncio.run(scenario())
        assert attempt.outcome == AttemptOutcome.CANCELLED
        assert engine.starts == []

    def test_engine_unavailable(self):
        engine = FakeEngine(unavailable=True)
        attempt, events = _run(RelayAttemptRunner(engine, _defaults()))

        assert attempt.outcome == AttemptOutcome.FAILED
        assert attempt.failure_kind == FailureKind.ENGINE_UNAVAILABLE
        assert [e.event_type for e in events] == [RelayEventType.FAILED]

    def test_callback_errors_do_not_break_attempt(self):
        engine = FakeEngine()
        runner = RelayAttemptRunner(engine, _defaults())

        async def broken(event):
            raise RuntimeError("observer down")

        attempt = asyncio.run(runner.run("/a", DEST, PRIMARY, on_event=broken))
        assert attempt.outcome == AttemptOutcome.SUCCEEDED

    def test_outer_cancellation_still_reaps(self):
        engine = FakeEngine([{"hang": True}])
        runner = RelayAttemptRunner(engine, _defaults())

        async def scenario():
            task = asyncio.create_task(runner.run("/a", DEST, PRIMARY))
            await engine.started.wait()
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        asyncio.run(scenario())
        assert engine.processes[0].returncode is not None
        assert runner.live_processes == 0


# ============================================================================
# RUNNER (REAL SUBPROCESSES)
# ============================================================================

class ScriptEngine(FFmpegRelayEngine):
    """Runs a python script instead of ffmpeg; same pipes and signals."""

    def __init__(self, script: str):
        super().__init__(ffmpeg_bin=sys.executable)
        self.script = script

    def build_command(self, input_path, destination_uri, profile):
        return [sys.executable, "-c", self.script, destination_uri]


PROGRESS_SCRIPT = """
import sys
for i in range(3):
    print(f"frame={i * 30}")
    print(f"out_time=00:00:0{i}.500000")
    print("progress=continue")
    sys.stdout.flush()
print("progress=end")
sys.stderr.write("muxing overhead: 0.1%\\n")
"""

FAILING_SCRIPT = """
import sys
sys.stderr.write("rtmp://x: Connection refused\\n")
sys.exit(3)
"""

SLEEPING_SCRIPT = """
import time
print("out_time=00:00:00.000000", flush=True)
print("progress=continue", flush=True)
time.sleep(30)
"""

STUBBORN_SCRIPT = """
import signal, time
signal.signal(signal.SIGINT, signal.SIG_IGN)
print("progress=continue", flush=True)
time.sleep(30)
"""


class TestRealSubprocess:

    def test_progress_and_success(self):
        runner = RelayAttemptRunner(ScriptEngine(PROGRESS_SCRIPT), _defaults())
        attempt, events = _run(runner)

        assert attempt.outcome == AttemptOutcome.SUCCEEDED
        assert attempt.last_timemark == "00:00:02.50"
        progress = [e for e in events if e.event_type == RelayEventType.PROGRESS]
        assert [e.timemark for e in progress] == ["00:00:00.50", "00:00:01.50", "00:00:02.50"]
        assert progress[0].data["frame"] == "0"

    def test_destination_hidden_from_started_event(self):
        runner = RelayAttemptRunner(ScriptEngine(PROGRESS_SCRIPT), _defaults())
        _, events = _run(runner)
        started = events[0]
        assert started.event_type == RelayEventType.STARTED
        assert "secret-key" not in started.message
        assert "<destination>" in started.message

    def test_failure_diagnostics(self):
        runner = RelayAttemptRunner(ScriptEngine(FAILING_SCRIPT), _defaults())
        attempt, _ = _run(runner)

        assert attempt.outcome == AttemptOutcome.FAILED
        assert attempt.exit_code == 3
        assert "Connection refused" in attempt.diagnostics

    def test_cancel_interrupts_process(self):
        runner = RelayAttemptRunner(ScriptEngine(SLEEPING_SCRIPT), _defaults(grace_period_seconds=5.0))

        async def scenario():
            cancel = asyncio.Event()
            asyncio.get_running_loop().call_later(0.5, cancel.set)
            return await runner.run("/a", DEST, PRIMARY, cancel_event=cancel)

        started = time.monotonic()
        attempt = asyncio.run(scenario())
        assert attempt.outcome == AttemptOutcome.CANCELLED
        assert runner.live_processes == 0
        assert time.monotonic() - started < 10

    def test_timeout_kills_stubborn_process(self):
        runner = RelayAttemptRunner(ScriptEngine(STUBBORN_SCRIPT), _defaults(grace_period_seconds=0.3))

        started = time.monotonic()
        attempt, _ = _run(runner, timeout=0.5)
        assert attempt.outcome == AttemptOutcome.TIMED_OUT
        assert attempt.failure_kind == FailureKind.TIMEOUT
        assert attempt.exit_code is not None
        assert time.monotonic() - started < 10

    def test_missing_binary(self):
        engine = FFmpegRelayEngine(ffmpeg_bin="/nonexistent/bin/ffmpeg")
        attempt, _ = _run(RelayAttemptRunner(engine, _defaults()))
        assert attempt.failure_kind == FailureKind.ENGINE_UNAVAILABLE
