"""Prometheus exporter helpers."""

from __future__ import annotations

from prometheus_client import Counter


videos_created_total = Counter(
    "wardrobe_videos_created_total",
    "Total number of wardrobe video records created.",
)

process_dispatch_total = Counter(
    "wardrobe_process_dispatch_total",
    "Processing job dispatches by mode.",
    ["mode"],
)

queue_publish_failures_total = Counter(
    "wardrobe_queue_publish_failures_total",
    "Queue publish attempts that did not enqueue a job.",
)

signed_url_failures_total = Counter(
    "wardrobe_signed_url_failures_total",
    "Candidate signed URL resolutions that failed.",
)

background_task_failures_total = Counter(
    "wardrobe_background_task_failures_total",
    "Detached background tasks that raised.",
)
