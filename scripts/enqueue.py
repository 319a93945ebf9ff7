#!/usr/bin/env python3
from __future__ import annotations

from argparse import ArgumentParser
import json

from db.models import JOB_TYPES
from pipeline.queue import submit_job


def main() -> None:
    parser = ArgumentParser(description="Submit an automation job to the worker queue")
    parser.add_argument("job_type", choices=JOB_TYPES)
    parser.add_argument("--video-id", type=int, default=None)
    parser.add_argument(
        "--payload",
        default="{}",
        help='Job payload as JSON, e.g. \'{"publish": false}\'',
    )
    args = parser.parse_args()

    payload = json.loads(args.payload)
    if not isinstance(payload, dict):
        parser.error("--payload must be a JSON object")
    payload.setdefault("manual", True)

    job = submit_job(args.job_type, payload, video_id=args.video_id)
    print("[enqueue] job_id:", job.id)
    print("[enqueue] type:", job.type)


if __name__ == "__main__":
    main()
