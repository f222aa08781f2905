from database.repositories.base import BaseRepository
from database.repositories.match import MatchLogRepository

__all__ = [
    'BaseRepository',
    'MatchLogRepository',
]
