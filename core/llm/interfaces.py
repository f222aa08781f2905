"""
LLM Provider Interface - Abstract base for AI ranking backends.

This module defines the interface for ranking services (OpenAI, Ollama, etc.).
"""
from abc import ABC, abstractmethod
from typing import Dict, List, Any, Sequence

from core.models import Job, UserPreferences


class RankingProvider(ABC):
    """
    Abstract Interface for AI ranking backends.
    """

    @abstractmethod
    def rank_jobs(
        self,
        jobs: Sequence[Job],
        user: UserPreferences,
        timeout: float
    ) -> List[Dict[str, Any]]:
        """
        Ask the backend to pick and score the best jobs for a user.

        Returns raw items, each referencing a supplied job by 1-based
        `job_index` (or by `job_id`) with:
        - match_score: number on the 0-100 scale
        - match_reason: short explanation
        - match_tags: list of matching factors

        Raises AIMatchingError subclasses on timeout, quota, transport or
        parse failures.
        """
        pass

    @abstractmethod
    def test_connection(self) -> bool:
        """
        Cheap reachability probe for health checks.
        """
        pass

    @property
    def model_name(self) -> str:
        return self.__class__.__name__
