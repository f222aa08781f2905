"""LLM Module - ranking providers and interfaces."""
from core.llm.interfaces import RankingProvider
from core.llm.openai_service import OpenAIRankingService, parse_ranking_content

__all__ = ['RankingProvider', 'OpenAIRankingService', 'parse_ranking_content']
