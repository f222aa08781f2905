"""Fallback Module - deterministic rule-based matching tiers."""
from core.fallback.service import FallbackMatchingService, EMERGENCY_REASON

__all__ = ['FallbackMatchingService', 'EMERGENCY_REASON']
