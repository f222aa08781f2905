#!/usr/bin/env python3
"""
Matcher Orchestrator - per-user tier state machine and batch fan-out.

States per user:
    AI_ATTEMPT -> DONE
    AI_ATTEMPT -> ROBUST_FALLBACK -> DONE
    ROBUST_FALLBACK -> EMERGENCY_FALLBACK -> DONE
    EMERGENCY_FALLBACK -> SYNTHETIC_SINGLE_MATCH -> DONE

Every tier exception is converted into the next transition, so a user with
at least one candidate job always gets at least one match. In a batch, each
user is isolated: an unexpected failure empties that user's list only.
"""
import logging
import threading
import time
import uuid
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from core.ai import AIMatchingService
from core.audit import MatchAuditSink, LoggingAuditSink
from core.cache import ResultCache
from core.config_loader import MatchingConfig
from core.errors import AIMatchingError, InputValidationError
from core.fallback import FallbackMatchingService
from core.models import (
    Job, UserPreferences, MatchScore, MatchResult, QualityTier, Provenance,
    UserMatchResult, SessionSummary, BatchMatchResult
)
from core.scorer import ScoringService

logger = logging.getLogger(__name__)

NO_JOBS_ERROR = "No jobs available for matching"
SYNTHETIC_REASON = "Fallback match"
SYNTHETIC_TAGS = ("fallback-match",)


class MatchState(Enum):
    AI_ATTEMPT = "ai_attempt"
    ROBUST_FALLBACK = "robust_fallback"
    EMERGENCY_FALLBACK = "emergency_fallback"
    SYNTHETIC_SINGLE_MATCH = "synthetic_single_match"
    DONE = "done"


class MatchStrategy(Enum):
    AI_ONLY = "ai_only"
    FALLBACK_ONLY = "fallback_only"
    HYBRID = "hybrid"


class _Outcome(Enum):
    DONE = "done"
    FAILED = "failed"
    INVALID = "invalid"
    CANCELLED = "cancelled"


class MatcherOrchestrator:
    """
    Runs the AI tier and the rule-based fallback tiers for each user.

    The AI tier is optional: without one (or with `ai.enabled=False`) every
    user starts at the robust fallback tier.
    """

    def __init__(
        self,
        scoring: ScoringService,
        fallback: FallbackMatchingService,
        ai: Optional[AIMatchingService] = None,
        cache: Optional[ResultCache] = None,
        config: Optional[MatchingConfig] = None,
        audit_sink: Optional[MatchAuditSink] = None
    ):
        self.scoring = scoring
        self.fallback = fallback
        self.ai = ai
        self.cache = cache
        self.config = config or MatchingConfig()
        self.audit_sink = audit_sink or LoggingAuditSink()

        self._stats_lock = threading.Lock()
        self._stats = {
            'users': 0,
            'ai_successes': 0,
            'ai_failures': 0,
            'robust_fallbacks': 0,
            'emergency_fallbacks': 0,
            'synthetic_matches': 0,
            'failures': 0,
            'cancelled': 0,
        }

    # ------------------------------------------------------------------
    # Single user
    # ------------------------------------------------------------------

    def match_one_user(
        self,
        user: UserPreferences,
        jobs: Sequence[Job],
        session_id: Optional[str] = None,
        batch_id: Optional[str] = None
    ) -> UserMatchResult:
        """Match one user through the full tier state machine.

        Raises:
            InputValidationError: if the user has no email. Nothing else
                escapes; tier failures become errors on the result.
        """
        self._validate_user(user)
        initial = MatchState.AI_ATTEMPT if self._ai_enabled() else MatchState.ROBUST_FALLBACK
        return self._run(user, jobs, initial, session_id, batch_id)

    def match_with_strategy(
        self,
        user: UserPreferences,
        jobs: Sequence[Job],
        strategy: Union[MatchStrategy, str] = MatchStrategy.HYBRID
    ) -> UserMatchResult:
        """Operational override of the state machine.

        - ai_only: AI tier only; AI failures propagate to the caller
        - fallback_only: skip AI (robust -> emergency -> synthetic)
        - hybrid: same as match_one_user
        """
        try:
            strategy = MatchStrategy(strategy)
        except ValueError as e:
            raise InputValidationError(f"Unknown matching strategy: {strategy}") from e

        if strategy is MatchStrategy.HYBRID:
            return self.match_one_user(user, jobs)

        self._validate_user(user)
        if strategy is MatchStrategy.FALLBACK_ONLY:
            return self._run(user, jobs, MatchState.ROBUST_FALLBACK, None, None)

        session_id = uuid.uuid4().hex
        result = UserMatchResult(user=user.email, session_id=session_id)
        if not jobs:
            result.errors.append(NO_JOBS_ERROR)
            return result
        if self.ai is None:
            raise AIMatchingError("No AI ranking service configured")

        start = time.perf_counter()
        result.matches = self.ai.rank(jobs, user, session_id=session_id)
        result.ai_success = True
        result.provenance = Provenance.AI
        result.cache_hit = any(m.cache_hit for m in result.matches)
        result.processing_time_ms = (time.perf_counter() - start) * 1000
        self._record_outcome(result)
        return result

    # ------------------------------------------------------------------
    # Batches
    # ------------------------------------------------------------------

    def run_batch(
        self,
        users: Sequence[UserPreferences],
        jobs: Sequence[Job],
        stop_event: Optional[threading.Event] = None
    ) -> BatchMatchResult:
        """Match every user with per-user isolation.

        Users are processed in chunks of `performance.batch_size`, each chunk
        on a pool of at most `performance.max_concurrent` threads. Once
        `stop_event` is set, users already running finish and no new user
        starts; those users are counted as cancelled and left out of the map.
        """
        session_id = uuid.uuid4().hex
        summary = SessionSummary(session_id=session_id)
        batch = BatchMatchResult(summary=summary)
        perf = self.config.performance
        start = time.perf_counter()

        if self.cache is not None:
            self.cache.begin_run()
        if self.ai is not None:
            self.ai.reset_budget()

        users = list(users)
        batch_size = max(1, perf.batch_size)
        logger.info(f"Matching session {session_id}: {len(users)} users against {len(jobs)} jobs")

        for offset in range(0, len(users), batch_size):
            chunk = users[offset:offset + batch_size]
            batch_id = f"{session_id}-{offset // batch_size + 1}"
            outcomes = self._run_chunk(chunk, jobs, session_id, batch_id, stop_event)

            for user, (outcome, result) in zip(chunk, outcomes):
                self._tally(summary, outcome, result)
                if outcome in (_Outcome.DONE, _Outcome.FAILED):
                    batch.matches[result.user] = result.matches
                    batch.results[result.user] = result

            logger.info(
                f"Batch {batch_id} done: {min(offset + batch_size, len(users))}/{len(users)} users"
            )

        summary.processing_time_ms = (time.perf_counter() - start) * 1000
        if summary.cancelled:
            logger.warning(f"Session {session_id} cancelled: {summary.cancelled} users not started")
        self._record_session(summary)
        return batch

    def match_users(
        self,
        users: Sequence[UserPreferences],
        jobs: Sequence[Job],
        stop_event: Optional[threading.Event] = None
    ) -> Dict[str, List[MatchResult]]:
        """Email -> matches for every processed user."""
        return self.run_batch(users, jobs, stop_event=stop_event).matches

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    def test_matching_components(self) -> Dict[str, bool]:
        """Health flags for each tier and the cache."""
        now = datetime.now(timezone.utc)
        probe_job = Job(
            id="component-probe",
            title="Graduate Analyst",
            company="Probe Ltd",
            location="London",
            tags=frozenset({"early-career", "career:finance", "loc:london"}),
            posted_at=now
        )
        probe_user = UserPreferences(
            email="probe@localhost",
            target_cities=("London",),
            career_path="finance"
        )

        health = {'scoring': False, 'fallback': False, 'ai': False, 'cache': False}

        try:
            health['scoring'] = self.scoring.score(probe_job, probe_user).overall > 0
        except Exception as e:
            logger.warning(f"Scoring component check failed: {e}")

        try:
            health['fallback'] = bool(self.fallback.robust([probe_job], probe_user))
        except Exception as e:
            logger.warning(f"Fallback component check failed: {e}")

        if self.ai is not None:
            try:
                health['ai'] = bool(self.ai.test_connection())
            except Exception as e:
                logger.warning(f"AI component check failed: {e}")

        if self.cache is not None:
            try:
                self.cache.get_stats()
                health['cache'] = True
            except Exception as e:
                logger.warning(f"Cache component check failed: {e}")

        return health

    def get_stats(self) -> Dict[str, Any]:
        with self._stats_lock:
            counters = dict(self._stats)
        return {
            'orchestrator': counters,
            'ai': self.ai.get_stats() if self.ai is not None else None,
            'cache': self.cache.get_stats() if self.cache is not None else None,
            'config': self.config.model_dump(
                exclude={'ai': {'api_key'}, 'cache': {'redis_password'}}
            ),
        }

    # ------------------------------------------------------------------
    # State machine
    # ------------------------------------------------------------------

    def _run(
        self,
        user: UserPreferences,
        jobs: Sequence[Job],
        state: MatchState,
        session_id: Optional[str],
        batch_id: Optional[str]
    ) -> UserMatchResult:
        session_id = session_id or uuid.uuid4().hex
        result = UserMatchResult(user=user.email, session_id=session_id)
        start = time.perf_counter()

        if not jobs:
            result.errors.append(NO_JOBS_ERROR)
            result.processing_time_ms = (time.perf_counter() - start) * 1000
            self._record_outcome(result)
            return result

        while state is not MatchState.DONE:
            if state is MatchState.AI_ATTEMPT:
                state = self._ai_attempt(user, jobs, result, session_id, batch_id)
            elif state is MatchState.ROBUST_FALLBACK:
                state = self._robust_fallback(user, jobs, result, session_id, batch_id)
            elif state is MatchState.EMERGENCY_FALLBACK:
                state = self._emergency_fallback(user, jobs, result, session_id, batch_id)
            else:
                result.matches = [self._synthetic_match(jobs[0], user, session_id, batch_id)]
                result.provenance = Provenance.EMERGENCY
                self._bump('synthetic_matches')
                logger.warning(f"All tiers empty for {user.email}; using synthetic single match")
                state = MatchState.DONE

        result.processing_time_ms = (time.perf_counter() - start) * 1000
        self._record_outcome(result)
        return result

    def _ai_attempt(self, user, jobs, result, session_id, batch_id) -> MatchState:
        try:
            matches = self.ai.rank(jobs, user, session_id=session_id, batch_id=batch_id)
        except AIMatchingError as e:
            logger.warning(f"AI matching failed for {user.email} ({type(e).__name__}): {e}")
            result.errors.append(f"AI matching failed: {e}")
            self._bump('ai_failures')
            return MatchState.ROBUST_FALLBACK
        except Exception as e:
            logger.exception(f"Unexpected AI tier error for {user.email}")
            result.errors.append(f"AI matching failed: {e}")
            self._bump('ai_failures')
            return MatchState.ROBUST_FALLBACK

        if not matches:
            result.errors.append("AI matching returned no matches")
            return MatchState.ROBUST_FALLBACK

        result.matches = matches
        result.ai_success = True
        result.provenance = Provenance.AI
        result.cache_hit = any(m.cache_hit for m in matches)
        self._bump('ai_successes')
        return MatchState.DONE

    def _robust_fallback(self, user, jobs, result, session_id, batch_id) -> MatchState:
        result.fallback_used = True
        self._bump('robust_fallbacks')
        try:
            matches = self.fallback.robust(jobs, user, session_id=session_id, batch_id=batch_id)
        except Exception as e:
            logger.warning(f"Robust fallback failed for {user.email}: {e}")
            result.errors.append(f"Robust fallback failed: {e}")
            return MatchState.EMERGENCY_FALLBACK

        if not matches:
            logger.warning(f"Robust fallback empty for {user.email}; escalating to emergency tier")
            return MatchState.EMERGENCY_FALLBACK

        result.matches = matches
        result.provenance = Provenance.FALLBACK
        return MatchState.DONE

    def _emergency_fallback(self, user, jobs, result, session_id, batch_id) -> MatchState:
        self._bump('emergency_fallbacks')
        try:
            matches = self.fallback.emergency(jobs, user, session_id=session_id, batch_id=batch_id)
        except Exception as e:
            logger.warning(f"Emergency fallback failed for {user.email}: {e}")
            result.errors.append(f"Emergency fallback failed: {e}")
            return MatchState.SYNTHETIC_SINGLE_MATCH

        if not matches:
            return MatchState.SYNTHETIC_SINGLE_MATCH

        result.matches = matches
        result.provenance = Provenance.EMERGENCY
        return MatchState.DONE

    def _synthetic_match(
        self,
        job: Job,
        user: UserPreferences,
        session_id: Optional[str],
        batch_id: Optional[str]
    ) -> MatchResult:
        floor = self.config.scoring.confidence_floor
        try:
            return self.scoring.build_result(
                job, user, Provenance.EMERGENCY,
                reason=SYNTHETIC_REASON,
                tags=SYNTHETIC_TAGS,
                confidence=floor,
                session_id=session_id,
                batch_id=batch_id
            )
        except Exception as e:
            # scoring itself is broken for this pair; emit an unscored match
            logger.warning(f"Could not score synthetic match for {user.email}: {e}")
            return MatchResult(
                job=job,
                score=MatchScore(eligibility=0.0, career_path=0.0, location=0.0, freshness=0.0, overall=0),
                match_score=0,
                confidence=floor,
                reason=SYNTHETIC_REASON,
                quality=QualityTier.POOR,
                provenance=Provenance.EMERGENCY,
                tags=SYNTHETIC_TAGS,
                session_id=session_id,
                batch_id=batch_id
            )

    # ------------------------------------------------------------------
    # Batch helpers
    # ------------------------------------------------------------------

    def _run_chunk(
        self,
        chunk: List[UserPreferences],
        jobs: Sequence[Job],
        session_id: str,
        batch_id: str,
        stop_event: Optional[threading.Event]
    ) -> List[Tuple[_Outcome, Optional[UserMatchResult]]]:
        def work(user):
            return self._isolated_match(user, jobs, session_id, batch_id, stop_event)

        workers = min(max(1, self.config.performance.max_concurrent), len(chunk))
        if workers <= 1:
            return [work(user) for user in chunk]
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="match-user") as pool:
            return list(pool.map(work, chunk))

    def _isolated_match(
        self,
        user: UserPreferences,
        jobs: Sequence[Job],
        session_id: str,
        batch_id: str,
        stop_event: Optional[threading.Event]
    ) -> Tuple[_Outcome, Optional[UserMatchResult]]:
        if stop_event is not None and stop_event.is_set():
            return _Outcome.CANCELLED, None

        try:
            return _Outcome.DONE, self.match_one_user(user, jobs, session_id=session_id, batch_id=batch_id)
        except InputValidationError as e:
            logger.warning(f"Skipping user: {e}")
            return _Outcome.INVALID, None
        except Exception as e:
            email = getattr(user, 'email', '')
            logger.exception(f"Unexpected error matching {email}")
            failed = UserMatchResult(user=email, errors=[f"Unexpected error: {e}"], session_id=session_id)
            self._record_outcome(failed)
            return _Outcome.FAILED, failed

    def _tally(self, summary: SessionSummary, outcome: _Outcome, result: Optional[UserMatchResult]) -> None:
        if outcome is _Outcome.CANCELLED:
            summary.cancelled += 1
            self._bump('cancelled')
            return
        if outcome is not _Outcome.DONE:
            summary.failures += 1
            self._bump('failures')
            if result is not None:
                summary.users_processed += 1
            return

        summary.users_processed += 1
        summary.total_matches += result.match_count
        if result.cache_hit:
            summary.cache_hits += 1
        if result.provenance is Provenance.AI:
            summary.ai_successes += 1
        elif result.provenance is Provenance.FALLBACK:
            summary.fallback_count += 1
        elif result.provenance is Provenance.EMERGENCY:
            summary.emergency_count += 1

    # ------------------------------------------------------------------
    # Misc
    # ------------------------------------------------------------------

    def _ai_enabled(self) -> bool:
        return self.ai is not None and self.ai.config.enabled

    @staticmethod
    def _validate_user(user: UserPreferences) -> None:
        email = getattr(user, 'email', None)
        if not email or not str(email).strip():
            raise InputValidationError("User email is required")

    def _bump(self, counter: str) -> None:
        with self._stats_lock:
            self._stats[counter] += 1

    def _record_outcome(self, result: UserMatchResult) -> None:
        with self._stats_lock:
            self._stats['users'] += 1
        try:
            self.audit_sink.record_user_outcome(result)
        except Exception as e:
            logger.warning(f"Audit sink failed for {result.user}: {e}")

    def _record_session(self, summary: SessionSummary) -> None:
        try:
            self.audit_sink.record_session(summary)
        except Exception as e:
            logger.warning(f"Audit sink failed for session {summary.session_id}: {e}")
