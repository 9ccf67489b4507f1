"""Unit tests for the debounced persistence writer.

Usage
-----
Run ``pytest tests/test_debounce.py -v``.
"""

from __future__ import annotations

import asyncio
import logging

import pytest

from sitepatch.editor import DebouncedSaver

DELAY = 0.02


class _Recorder:
    def __init__(self, *, fail: bool = False) -> None:
        self.calls = 0
        self.fail = fail

    async def __call__(self) -> None:
        self.calls += 1
        if self.fail:
            msg = "store unavailable"
            raise RuntimeError(msg)


@pytest.mark.asyncio
async def test_schedule_coalesces_bursts() -> None:
    """Several schedules inside the window produce one write."""
    recorder = _Recorder()
    saver = DebouncedSaver(recorder, DELAY)
    for _ in range(5):
        saver.schedule()
        await asyncio.sleep(DELAY / 4)
    assert saver.pending is True
    await asyncio.sleep(DELAY * 4)
    assert recorder.calls == 1, f"Expected a single write, got {recorder.calls}"
    assert saver.pending is False


@pytest.mark.asyncio
async def test_cancel_drops_pending_write() -> None:
    """A cancelled timer never fires."""
    recorder = _Recorder()
    saver = DebouncedSaver(recorder, DELAY)
    saver.schedule()
    saver.cancel()
    await asyncio.sleep(DELAY * 3)
    assert recorder.calls == 0
    assert saver.pending is False


@pytest.mark.asyncio
async def test_flush_writes_immediately_once() -> None:
    """Flushing runs the pending write now and the timer no longer fires."""
    recorder = _Recorder()
    saver = DebouncedSaver(recorder, DELAY)
    saver.schedule()
    await saver.flush()
    assert recorder.calls == 1
    await asyncio.sleep(DELAY * 3)
    assert recorder.calls == 1, "Timer should not fire after a flush"


@pytest.mark.asyncio
async def test_flush_without_pending_write_is_a_no_op() -> None:
    """Nothing is written when no timer is pending."""
    recorder = _Recorder()
    saver = DebouncedSaver(recorder, DELAY)
    await saver.flush()
    assert recorder.calls == 0


@pytest.mark.asyncio
async def test_timer_failure_is_logged(caplog: pytest.LogCaptureFixture) -> None:
    """A failed timer-driven write is logged rather than lost silently."""
    saver = DebouncedSaver(_Recorder(fail=True), DELAY)
    with caplog.at_level(logging.ERROR, logger="sitepatch.editor"):
        saver.schedule()
        await asyncio.sleep(DELAY * 4)
    assert any("Debounced save failed" in r.getMessage() for r in caplog.records)


@pytest.mark.asyncio
async def test_flush_failure_propagates() -> None:
    """Failures during a flush reach the caller."""
    saver = DebouncedSaver(_Recorder(fail=True), DELAY)
    saver.schedule()
    with pytest.raises(RuntimeError, match="store unavailable"):
        await saver.flush()
