from dataclasses import dataclass
import logging
from typing import Optional

from core.ai import AIMatchingService
from core.audit import MatchAuditSink, LoggingAuditSink
from core.cache import ResultCache, RedisResultStore
from core.config_loader import AppConfig
from core.fallback import FallbackMatchingService
from core.llm import OpenAIRankingService, RankingProvider
from core.orchestrator import MatcherOrchestrator
from core.scorer import ScoringService

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    """Application context container that holds all wired dependencies.

    This eliminates duplicate wiring code and provides a single source
    of truth for service instantiation. The result cache is owned here and
    shared by every batch run built from this context.
    """
    config: AppConfig
    scoring_service: ScoringService
    fallback_service: FallbackMatchingService
    result_cache: ResultCache
    orchestrator: MatcherOrchestrator
    ai_service: Optional[AIMatchingService] = None

    @classmethod
    def build(
        cls,
        config: AppConfig,
        provider: Optional[RankingProvider] = None,
        audit_sink: Optional[MatchAuditSink] = None
    ) -> "AppContext":
        """Build an AppContext from config.

        Args:
            config: Loaded application configuration
            provider: Ranking backend override (defaults to OpenAI when AI is enabled)
            audit_sink: Audit sink override (defaults to SQL when a database
                URL is configured, logging otherwise)

        Returns:
            Fully wired AppContext instance
        """
        matching = config.matching

        scoring_service = ScoringService(matching.scoring)
        fallback_service = FallbackMatchingService(scoring_service, matching.fallback)
        result_cache = cls._build_result_cache(config)

        ai_service = None
        if matching.ai.enabled:
            ai_service = AIMatchingService(
                provider or OpenAIRankingService(matching.ai),
                scoring_service,
                config=matching.ai,
                cache=result_cache,
                max_workers=matching.performance.max_concurrent
            )
        else:
            logger.info("AI matching disabled in config; rule-based tiers only")

        if audit_sink is None:
            audit_sink = cls._build_audit_sink(config)

        orchestrator = MatcherOrchestrator(
            scoring_service,
            fallback_service,
            ai=ai_service,
            cache=result_cache,
            config=matching,
            audit_sink=audit_sink
        )

        return cls(
            config=config,
            scoring_service=scoring_service,
            fallback_service=fallback_service,
            result_cache=result_cache,
            orchestrator=orchestrator,
            ai_service=ai_service
        )

    @staticmethod
    def _build_result_cache(config: AppConfig) -> ResultCache:
        """Build the result cache, with the Redis tier when a URL is configured."""
        cache_config = config.matching.cache
        store = None
        if cache_config.redis_url:
            store = RedisResultStore(
                redis_url=cache_config.redis_url,
                password=cache_config.redis_password
            )
        return ResultCache(cache_config, store=store)

    @staticmethod
    def _build_audit_sink(config: AppConfig) -> MatchAuditSink:
        """Build the SQL audit sink if a database is configured."""
        if not config.database.url:
            return LoggingAuditSink()

        from database.audit_sink import SqlAuditSink
        from database.database import build_engine, build_session_factory, create_tables

        engine = build_engine(config.database.url)
        create_tables(engine)
        return SqlAuditSink(
            build_session_factory(engine),
            retry_attempts=config.matching.performance.retry_attempts
        )

    def close(self) -> None:
        """Release the AI worker pool."""
        if self.ai_service is not None:
            self.ai_service.close()
