import logging
from typing import Iterable, List, Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, col, select

from ..errors import RepositoryFailure
from ..models.user import User
from ..schemas.task import UserSummary

logger = logging.getLogger(__name__)


class UserDirectory(Protocol):
    def resolve(self, ids: Iterable[str]) -> List[UserSummary]: ...


class SqlUserDirectory:
    """Looks up assignee display fields; unknown ids are skipped."""

    def __init__(self, session: Session):
        self.session = session

    def resolve(self, ids: Iterable[str]) -> List[UserSummary]:
        wanted = list(dict.fromkeys(ids))
        if not wanted:
            return []
        try:
            users = self.session.exec(select(User).where(col(User.id).in_(wanted))).all()
        except SQLAlchemyError as exc:
            logger.exception("User lookup failed ids=%s", wanted)
            self.session.rollback()
            raise RepositoryFailure("User lookup failed") from exc
        by_id = {user.id: user for user in users}
        return [UserSummary.model_validate(by_id[user_id]) for user_id in wanted if user_id in by_id]
