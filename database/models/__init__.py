from .base import Base
from .match import MatchSession, MatchLog

__all__ = [
    'Base',
    'MatchSession',
    'MatchLog',
]
