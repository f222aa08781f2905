"""AI Module - cached AI ranking tier."""
from core.ai.service import AIMatchingService
from core.ai.fingerprint import ranking_fingerprint, user_cluster_key

__all__ = ['AIMatchingService', 'ranking_fingerprint', 'user_cluster_key']
