# materials_core/tasks.py
from __future__ import annotations

from datetime import timedelta

from celery import shared_task

from materials_core.workflows.divergence import detect_stale_stages


@shared_task
def scan_stale_stages(grace_minutes: int | None = None) -> int:
    grace = timedelta(minutes=int(grace_minutes)) if grace_minutes is not None else None
    return detect_stale_stages(grace=grace)
