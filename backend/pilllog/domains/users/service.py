import logging

from sqlalchemy.orm import Session

from pilllog.domains.users.models import User

logger = logging.getLogger(__name__)


class UsersService:
    def __init__(self, db: Session):
        self.db = db

    def get_user(self, user_id: str) -> User | None:
        return self.db.query(User).filter(User.id == user_id).first()

    def get_user_by_username(self, username: str) -> User | None:
        return self.db.query(User).filter(User.username == username).first()

    def create_user(self, username: str, user_id: str | None = None) -> User:
        user = User(username=username)
        if user_id:
            user.id = user_id
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        return user

    def ensure_user(self, user_id: str, username: str) -> User:
        """Return the user with this id, creating it on first use."""
        user = self.get_user(user_id)
        if user:
            return user

        logger.info(f"Creating user {username} ({user_id})")
        return self.create_user(username=username, user_id=user_id)
