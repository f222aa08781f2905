#!/usr/bin/env python3
"""
AI Matching Service - cached, fail-fast AI ranking.

1. Fingerprint the candidate job set + user cluster and check the result cache
2. On miss, call the ranking provider under a hard timeout
3. Validate and normalise the answer, cache it, return MatchResults

Any failure raises an AIMatchingError subclass. There is no internal retry:
the orchestrator degrades to the fallback tiers immediately.
"""
import logging
import threading
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from typing import Any, Dict, List, Optional, Sequence

from core.ai.fingerprint import ranking_fingerprint
from core.cache import ResultCache
from core.config_loader import AIConfig
from core.errors import (
    AIMatchingError,
    AIMalformedResponseError,
    AIQuotaExceededError,
    AITimeoutError,
    AITransportError,
)
from core.llm.interfaces import RankingProvider
from core.models import Job, UserPreferences, MatchResult, Provenance
from core.scorer import ScoringService

logger = logging.getLogger(__name__)

MAX_REASON_CHARS = 500
DEFAULT_AI_REASON = "AI match"


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class AIMatchingService:
    """
    Wraps a RankingProvider with the shared result cache, a call budget
    and response validation.
    """

    def __init__(
        self,
        provider: RankingProvider,
        scoring: ScoringService,
        config: Optional[AIConfig] = None,
        cache: Optional[ResultCache] = None,
        max_workers: int = 10
    ):
        self.provider = provider
        self.scoring = scoring
        self.config = config or AIConfig()
        self.cache = cache
        self._executor = ThreadPoolExecutor(max_workers=max(1, max_workers), thread_name_prefix="ai-rank")
        self._lock = threading.Lock()
        self._calls = 0
        self._user_calls: Dict[str, int] = {}
        self._cache_hits = 0
        self._failures = 0

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def rank(
        self,
        jobs: Sequence[Job],
        user: UserPreferences,
        session_id: Optional[str] = None,
        batch_id: Optional[str] = None
    ) -> List[MatchResult]:
        """Rank jobs for a user with the AI backend (or the cache).

        Raises:
            AIMatchingError: on disabled AI, budget exhaustion, timeout,
                transport failure or malformed response
        """
        if not self.config.enabled:
            raise AIMatchingError("AI matching disabled in config")
        if not jobs:
            raise AIMalformedResponseError("No jobs supplied for AI ranking")

        jobs_by_id = {job.id: job for job in jobs}
        fingerprint = ranking_fingerprint(jobs, user)

        if self.cache is not None:
            cached = self.cache.get(fingerprint)
            if cached is not None:
                try:
                    results = self._to_results(cached, jobs_by_id, user, session_id, batch_id, cache_hit=True)
                    with self._lock:
                        self._cache_hits += 1
                    logger.debug(f"AI cache hit for {user.email} ({fingerprint[:12]})")
                    return results
                except AIMalformedResponseError as e:
                    logger.warning(f"Discarding unusable cached ranking {fingerprint[:12]}: {e}")
                    self.cache.delete(fingerprint)

        self._reserve_call(user)
        try:
            raw = self._call_provider(jobs, user)
            ranking = self.normalize_response(raw, jobs)
        except AIMatchingError:
            with self._lock:
                self._failures += 1
            raise

        if self.cache is not None:
            self.cache.set(fingerprint, ranking)

        logger.info(f"AI ranked {len(ranking)} of {len(jobs)} jobs for {user.email}")
        return self._to_results(ranking, jobs_by_id, user, session_id, batch_id, cache_hit=False)

    def normalize_response(self, raw: Any, jobs: Sequence[Job]) -> List[Dict[str, Any]]:
        """Validate a raw provider answer and normalise it into cacheable records.

        Every item must reference a supplied job (1-based `job_index` or
        `job_id`) and carry a numeric score. Scores are coerced into
        [minimum acceptable, 100]; duplicates keep their first occurrence.
        """
        if not isinstance(raw, list) or not raw:
            raise AIMalformedResponseError("Ranking response must be a non-empty list")

        ids = [job.id for job in jobs]
        id_set = set(ids)
        minimum = self.scoring.config.minimum_score

        ranking: List[Dict[str, Any]] = []
        seen = set()
        for item in raw:
            if not isinstance(item, dict):
                raise AIMalformedResponseError(f"Ranking item is not an object: {item!r}")

            job_id = self._resolve_job_id(item, ids, id_set)
            if job_id is None:
                raise AIMalformedResponseError(f"Ranking item has no valid job reference: {item!r}")

            score = item.get("match_score")
            if not _is_number(score):
                raise AIMalformedResponseError(f"Ranking item has non-numeric score: {score!r}")

            if job_id in seen:
                continue
            seen.add(job_id)

            coerced = int(round(min(100.0, max(minimum, float(score)))))
            reason = item.get("match_reason")
            reason = str(reason).strip()[:MAX_REASON_CHARS] if reason else DEFAULT_AI_REASON
            tags = item.get("match_tags") or []
            if isinstance(tags, str):
                tags = [t.strip() for t in tags.split(",")]
            ranking.append({
                "job_id": job_id,
                "match_score": coerced,
                "match_reason": reason,
                "match_tags": [str(t) for t in tags if str(t).strip()],
            })

        ranking.sort(key=lambda r: r["match_score"], reverse=True)
        return ranking[:self.config.max_matches]

    def test_connection(self) -> bool:
        return self.provider.test_connection()

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "model": self.provider.model_name,
                "calls": self._calls,
                "cache_hits": self._cache_hits,
                "failures": self._failures,
                "call_budget": self.config.max_calls_per_run,
                "per_user_budget": self.config.max_calls_per_user,
            }

    def reset_budget(self) -> None:
        """Start a fresh call budget and per-user caps (once per batch run)."""
        with self._lock:
            self._calls = 0
            self._user_calls.clear()

    def close(self) -> None:
        self._executor.shutdown(wait=False)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _reserve_call(self, user: UserPreferences) -> None:
        with self._lock:
            budget = self.config.max_calls_per_run
            if budget is not None and self._calls >= budget:
                self._failures += 1
                raise AIQuotaExceededError(f"AI call budget of {budget} calls exhausted")
            per_user = self.config.max_calls_per_user
            used = self._user_calls.get(user.email, 0)
            if per_user is not None and used >= per_user:
                self._failures += 1
                raise AIQuotaExceededError(f"AI call cap of {per_user} reached for {user.email}")
            self._calls += 1
            self._user_calls[user.email] = used + 1

    def _call_provider(self, jobs: Sequence[Job], user: UserPreferences) -> Any:
        timeout = self.config.timeout_seconds
        future = self._executor.submit(self.provider.rank_jobs, list(jobs), user, timeout)
        try:
            return future.result(timeout=timeout)
        except FutureTimeoutError as e:
            future.cancel()
            raise AITimeoutError(f"AI ranking exceeded {timeout}s") from e
        except AIMatchingError:
            raise
        except Exception as e:
            raise AITransportError(f"AI ranking failed: {e}") from e

    @staticmethod
    def _resolve_job_id(item: Dict[str, Any], ids: List[str], id_set: set) -> Optional[str]:
        job_id = item.get("job_id") or item.get("job_hash")
        if job_id is not None:
            return str(job_id) if str(job_id) in id_set else None

        index = item.get("job_index")
        if isinstance(index, str) and index.strip().isdigit():
            index = int(index.strip())
        if isinstance(index, int) and not isinstance(index, bool) and 1 <= index <= len(ids):
            return ids[index - 1]
        return None

    def _to_results(
        self,
        ranking: List[Dict[str, Any]],
        jobs_by_id: Dict[str, Job],
        user: UserPreferences,
        session_id: Optional[str],
        batch_id: Optional[str],
        cache_hit: bool
    ) -> List[MatchResult]:
        if not isinstance(ranking, list) or not ranking:
            raise AIMalformedResponseError("Cached ranking is empty")

        results = []
        for record in ranking:
            job = jobs_by_id.get(record.get("job_id")) if isinstance(record, dict) else None
            if job is None:
                raise AIMalformedResponseError(f"Ranking references unknown job: {record!r}")
            if not _is_number(record.get("match_score")):
                raise AIMalformedResponseError(f"Ranking record has no score: {record!r}")
            results.append(self.scoring.build_result(
                job, user, Provenance.AI,
                match_score=record["match_score"],
                reason=record.get("match_reason") or DEFAULT_AI_REASON,
                tags=record.get("match_tags", []),
                session_id=session_id,
                batch_id=batch_id,
                cache_hit=cache_hit
            ))
        return results
