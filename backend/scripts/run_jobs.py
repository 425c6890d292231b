#!/usr/bin/env python3
"""Run one dispatcher batch against the configured database, without the HTTP trigger."""
import asyncio
import logging

from pensive.logging_config import configure_logging
from pensive.services.jobs.dispatcher import JobDispatcher


async def run() -> int:
    result = await JobDispatcher().run_batch()

    print(f"\nAttempted: {result.attempted}")
    print(f"Succeeded: {result.processed}")
    print(f"Failed:    {result.failed} ({result.exhausted} out of attempts)")
    print(f"Recovered: {result.recovered} stale, cleaned up {result.cleaned_up}")
    for error in result.errors:
        marker = "x" if error.terminal else "~"
        print(f"  {marker} {error.kind} job {error.job_id}: {error.error[:120]}")

    stats = result.queue_stats
    print(f"\nQueue: {stats.pending} pending, {stats.running} running, "
          f"{stats.completed} completed, {stats.failed} failed")
    return 1 if result.failed else 0


if __name__ == "__main__":
    configure_logging(logging.INFO)
    raise SystemExit(asyncio.run(run()))
