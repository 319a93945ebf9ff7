#!/usr/bin/env python3
from __future__ import annotations

from argparse import ArgumentParser
from collections import Counter

from db.models import JOB_TYPES
from db.storage import Storage


def main() -> None:
    parser = ArgumentParser(description="Show recent automation job statuses")
    parser.add_argument("--limit", type=int, default=10)
    parser.add_argument("--type", dest="job_type", choices=JOB_TYPES, default=None)
    parser.add_argument("--summary", action="store_true")
    parser.add_argument("--failed", action="store_true", help="Show failed jobs with their error")
    args = parser.parse_args()

    storage = Storage()
    if args.summary:
        counts = Counter(job.status for job in storage.get_automation_jobs(job_type=args.job_type))
        for status, count in sorted(counts.items()):
            print(f"[summary] {status}: {count}")
        return

    jobs = storage.get_automation_jobs(
        status="failed" if args.failed else None,
        job_type=args.job_type,
        limit=args.limit,
    )
    for job in jobs:
        print(
            f"[job] id={job.id} type={job.type} status={job.status} "
            f"video_id={job.video_id} created_at={job.created_at:%Y-%m-%d %H:%M}"
        )
        if args.failed and job.error:
            print(f"[job] error={job.error}")


if __name__ == "__main__":
    main()
