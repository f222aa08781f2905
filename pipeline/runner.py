"""Shared matching pipeline runner module.

This module contains the batch matching logic invoked by the scheduling
layer (cron or HTTP, owned elsewhere) and by main.py.
"""

import json
import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

from core.app_context import AppContext
from core.models import Job, UserPreferences, SessionSummary


logger = logging.getLogger(__name__)

UserInput = Union[UserPreferences, Dict[str, Any]]
JobInput = Union[Job, Dict[str, Any]]


@dataclass
class MatchingPipelineResult:
    """Result of running the matching pipeline."""
    success: bool
    users_count: int
    matches_count: int
    summary: Optional[SessionSummary] = None
    error: Optional[str] = None
    execution_time: float = 0.0
    confident_count: int = 0


def load_records(file_path: str) -> List[Dict[str, Any]]:
    """Load a JSON array of user or job records from a file."""
    logger.info(f"Loading records from {file_path}")
    try:
        with open(file_path, 'r') as f:
            data = json.load(f)
    except FileNotFoundError:
        logger.error(f"Records file not found: {file_path}")
        return []
    except json.JSONDecodeError as e:
        logger.error(f"Invalid JSON in records file: {e}")
        return []

    if not isinstance(data, list):
        logger.error(f"Expected a JSON array in {file_path}")
        return []
    return [r for r in data if isinstance(r, dict)]


def _to_users(users: Sequence[UserInput]) -> List[UserPreferences]:
    return [u if isinstance(u, UserPreferences) else UserPreferences.from_dict(u) for u in users]


def _to_jobs(jobs: Sequence[JobInput]) -> List[Job]:
    return [j if isinstance(j, Job) else Job.from_dict(j) for j in jobs]


def run_matching_pipeline(
    ctx: AppContext,
    users: Sequence[UserInput],
    jobs: Sequence[JobInput],
    stop_event: Optional[threading.Event] = None,
    status_callback: Optional[Callable[[str], None]] = None
) -> MatchingPipelineResult:
    """Run one matching session over all users.

    Args:
        ctx: Application context with config, orchestrator and cache
        users: UserPreferences or signup records
        jobs: Job or collected job records
        stop_event: Optional threading event to stop starting new users

    Returns:
        MatchingPipelineResult with success status, counts and the session summary
    """
    if stop_event is None:
        stop_event = threading.Event()

    pipeline_start = time.time()

    logger.info("=" * 60)
    logger.info("STARTING MATCHING PIPELINE")
    logger.info("=" * 60)

    try:
        if status_callback:
            status_callback("preparing")

        user_records = _to_users(users)
        job_records = _to_jobs(jobs)
        logger.info(f"Prepared {len(user_records)} users and {len(job_records)} jobs")

        if not user_records:
            logger.info("=== MATCHING PIPELINE: Skipped (no users) ===")
            return MatchingPipelineResult(
                success=True,
                users_count=0,
                matches_count=0,
                error="No users to match",
                execution_time=time.time() - pipeline_start
            )

        if status_callback:
            status_callback("matching")

        batch = ctx.orchestrator.run_batch(user_records, job_records, stop_event=stop_event)
        summary = batch.summary
        matches_count = sum(len(m) for m in batch.matches.values())
        categorized = ctx.scoring_service.categorize(
            match for user_matches in batch.matches.values() for match in user_matches
        )

        execution_time = time.time() - pipeline_start
        error = None
        if summary is not None and summary.cancelled:
            error = f"Stopped early: {summary.cancelled} users not matched"

        logger.info("=" * 60)
        logger.info(f"MATCHING PIPELINE COMPLETED in {execution_time:.2f}s")
        if summary is not None:
            logger.info(
                f"  users={summary.users_processed} ai={summary.ai_successes} "
                f"fallback={summary.fallback_count} emergency={summary.emergency_count} "
                f"failed={summary.failures} matches={matches_count} "
                f"confident={len(categorized.confident)}"
            )
        logger.info("=" * 60)

        if status_callback:
            status_callback("completed")

        return MatchingPipelineResult(
            success=True,
            users_count=len(batch.matches),
            matches_count=matches_count,
            summary=summary,
            error=error,
            execution_time=execution_time,
            confident_count=len(categorized.confident)
        )

    except Exception as e:
        logger.exception("Error in matching pipeline")
        return MatchingPipelineResult(
            success=False,
            users_count=0,
            matches_count=0,
            error=str(e),
            execution_time=time.time() - pipeline_start
        )
