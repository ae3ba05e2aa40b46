"""Standalone job worker.

Run with: python -m coinbox.worker [--concurrency N] [--job-types "provision default wallet,send funds"]
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal

from coinbox.core.config import get_settings
from coinbox.core.container import ApplicationContainer
from coinbox.core.logging import configure_logging
from coinbox.infrastructure.database import init_db
from coinbox.workflows.scheduler import JobScheduler
from coinbox.workflows.triggers import register_jobs

logger = logging.getLogger(__name__)


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run coinbox background job workers")
    parser.add_argument("--concurrency", type=int, default=None, help="number of worker tasks")
    parser.add_argument(
        "--job-types",
        default=None,
        help="comma separated job names this process handles (default: all)",
    )
    return parser.parse_args(argv)


async def run_worker(concurrency: int | None = None, job_types: list[str] | None = None) -> None:
    settings = get_settings()
    configure_logging(settings)
    await init_db()

    container = ApplicationContainer(settings=settings)
    container.init_infrastructure()
    scheduler = register_jobs(
        JobScheduler.from_settings(
            settings.scheduler,
            container.session_factory,
            context=container.workflow_context(),
        ),
        job_types,
    )
    container.scheduler = scheduler

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except NotImplementedError:
            pass

    scheduler.start(concurrency)
    logger.info("Worker handling jobs: %s", ", ".join(scheduler.job_names))
    await stop.wait()
    await container.shutdown()


def main(argv: list[str] | None = None) -> None:
    args = _parse_args(argv)
    job_types = [name.strip() for name in args.job_types.split(",")] if args.job_types else None
    asyncio.run(run_worker(args.concurrency, job_types))


if __name__ == "__main__":
    main()
