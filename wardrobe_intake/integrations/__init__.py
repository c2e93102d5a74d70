"""Integration check helpers."""

from .checks import (
    IntegrationCheckResult,
    check_blob_store,
    check_job_queue,
    check_label_provider,
    run_all_checks,
)

__all__ = [
    "IntegrationCheckResult",
    "check_blob_store",
    "check_job_queue",
    "check_label_provider",
    "run_all_checks",
]
