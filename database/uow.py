import contextlib

from sqlalchemy.orm import sessionmaker

from database.database import db_session_scope
from database.repositories import MatchLogRepository


@contextlib.contextmanager
def match_log_uow(session_factory: sessionmaker):
    """Per-unit-of-work transaction scope.

    Yields a MatchLogRepository bound to a fresh Session. Commits on success,
    rolls back on exception, always closes.

    Usage:
        with match_log_uow(SessionLocal) as repo:
            repo.add_user_outcome(result)
        # commit happens automatically on successful exit
    """
    with db_session_scope(session_factory) as session:
        yield MatchLogRepository(session)
