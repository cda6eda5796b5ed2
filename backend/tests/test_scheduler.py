import asyncio
import logging

from core.scheduler import IntervalJob


async def test_job_keeps_running_after_a_failure(caplog):
    calls = []

    async def tick():
        calls.append(len(calls))
        if len(calls) == 1:
            raise RuntimeError("boom")

    job = IntervalJob(name="tick", func=tick, interval_seconds=0.01)
    with caplog.at_level(logging.ERROR, logger="core.scheduler"):
        job.start()
        for _ in range(100):
            if len(calls) >= 3:
                break
            await asyncio.sleep(0.01)
        await job.stop()

    assert len(calls) >= 3
    assert job.running is False
    assert "Scheduled job failed: tick" in caplog.text


async def test_delayed_start_waits_one_interval():
    calls = []

    async def tick():
        calls.append(1)

    job = IntervalJob(name="slow", func=tick, interval_seconds=60, run_immediately=False)
    job.start()
    job.start()
    await asyncio.sleep(0.05)
    assert calls == []
    assert job.running is True
    await job.stop()
    await job.stop()
