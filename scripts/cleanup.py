#!/usr/bin/env python3
from __future__ import annotations

from argparse import ArgumentParser
from datetime import UTC, datetime, timedelta

from common.logging import setup_logging
from db.storage import Storage
from pipeline.tasks import fail_job, load_retention_config, run_cleanup


def main() -> None:
    parser = ArgumentParser(description="Run the retention sweep once")
    parser.add_argument(
        "--stale-min",
        type=int,
        default=None,
        help="Also mark jobs running longer than this many minutes as failed",
    )
    args = parser.parse_args()

    setup_logging()
    storage = Storage()
    if args.stale_min is not None:
        cutoff = datetime.now(UTC) - timedelta(minutes=args.stale_min)
        stale = [
            job
            for job in storage.get_running_automation_jobs()
            if job.started_at is not None and job.started_at.replace(tzinfo=job.started_at.tzinfo or UTC) < cutoff
        ]
        for job in stale:
            fail_job(storage, job.id, f"auto-cleanup: running > {args.stale_min} min")
        print(f"[cleanup] marked {len(stale)} stale job(s) as failed")

    result = run_cleanup(None, storage, retention=load_retention_config())
    print(f"[cleanup] topics deleted: {result['topicsDeleted']}")
    print(f"[cleanup] jobs deleted: {result['jobsDeleted']}")
    print(f"[cleanup] temp files deleted: {result['tempFilesDeleted']}")


if __name__ == "__main__":
    main()
