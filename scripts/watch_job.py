#!/usr/bin/env python
from __future__ import annotations

import argparse
import asyncio
import json
import os
import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1]))

from jobwatch.application.tracker import JobTracker
from jobwatch.core.config import load_settings
from jobwatch.core.features import get_feature, load_features
from jobwatch.core.logging import configure_logging
from jobwatch.core.schema import JobView
from jobwatch.infrastructure import JobApiClient, StaticSessionProvider


def _print_view(view: JobView) -> None:
    line = f"[{view.state}] {view.percent:3d}%"
    if view.stage:
        line += f" {view.stage}"
    if view.artifact_url:
        line += f" -> {view.artifact_url}"
    if view.message:
        line += f" ({view.message})"
    print(line, flush=True)


async def _run(args: argparse.Namespace) -> int:
    settings = load_settings()
    configure_logging(settings.log_level, json_logs=False)
    feature = get_feature(load_features(settings.features_file), args.feature)
    if args.interval is not None:
        feature = feature.model_copy(update={"poll_interval": args.interval})

    api = JobApiClient(settings.api_base, timeout=settings.api_timeout)
    session = StaticSessionProvider(args.token or os.getenv("JOBWATCH_TOKEN"))
    tracker = JobTracker(feature, api, session, upgrade_url=settings.upgrade_url, listener=_print_view)
    try:
        if args.job_id:
            view = tracker.attach(args.job_id)
        else:
            view = await tracker.submit(json.loads(args.params))
        _print_view(view)
        view = await tracker.watch()
    finally:
        tracker.close()
        await api.aclose()

    _print_view(view)
    return 0 if view.state == "completed" else 1


def main() -> None:
    parser = argparse.ArgumentParser(description="Submit or attach to a media job and follow it until it finishes")
    parser.add_argument("feature", help="feature name from config/features.yaml, e.g. pyq_video")
    parser.add_argument("--params", default="{}", help="job parameters as a JSON object")
    parser.add_argument("--job-id", help="watch an existing job instead of submitting")
    parser.add_argument("--token", help="bearer token (defaults to $JOBWATCH_TOKEN)")
    parser.add_argument("--interval", type=float, help="override the feature's poll interval in seconds")
    args = parser.parse_args()

    raise SystemExit(asyncio.run(_run(args)))


if __name__ == "__main__":
    main()
