#!/usr/bin/env python3
from __future__ import annotations

from argparse import ArgumentParser
import logging
import os

from rq import SimpleWorker, Worker

from common.logging import setup_logging
from db.session import engine, init_db
from pipeline.queue import get_queue, get_redis

logger = logging.getLogger("autotube.worker")


def main() -> None:
    parser = ArgumentParser(description="Run automation jobs (news analysis, video creation, cleanup, tts test)")
    parser.add_argument("--queue", default=None, help="Queue name (defaults to RQ_QUEUE)")
    parser.add_argument("--name", default=None, help="Worker name shown in RQ")
    parser.add_argument("--burst", action="store_true", help="Process queued jobs and exit")
    args = parser.parse_args()

    setup_logging()
    init_db()
    # Forked work horses must not reuse the parent's pooled connections.
    if hasattr(os, "register_at_fork"):
        os.register_at_fork(after_in_child=lambda: engine.dispose())

    queue = get_queue(args.queue)
    simple = os.getenv("RQ_SIMPLE_WORKER", "1") == "1"
    worker_cls = SimpleWorker if simple else Worker
    worker = worker_cls([queue], connection=get_redis(), name=args.name)
    logger.info("Worker %s listening on '%s' (%s)", worker.name, queue.name, worker_cls.__name__)
    worker.work(with_scheduler=False, burst=args.burst)


if __name__ == "__main__":
    main()
