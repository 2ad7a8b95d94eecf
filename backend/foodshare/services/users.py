from __future__ import annotations

import logging
from typing import Any, Dict

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from werkzeug.security import check_password_hash, generate_password_hash

from ..errors import Conflict, Forbidden, InvalidInput, NotFound, Unauthenticated
from ..models.user import User
from .unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)

PROFILE_FIELDS = ("first_name", "last_name", "zip_code", "bio")


class UserService:
    def __init__(self, session):
        self.session = session

    def get(self, user_id: int) -> User:
        user = self.session.get(User, user_id)
        if user is None:
            raise NotFound("User not found")
        return user

    def _by_username(self, username: str) -> User | None:
        return self.session.query(User).filter(func.lower(User.username) == username.strip().lower()).first()

    def register(self, data: Dict[str, Any]) -> User:
        username = data["username"].strip()
        if self._by_username(username) is not None:
            raise Conflict("Username already taken")
        try:
            with UnitOfWork(self.session):
                user = User(
                    username=username,
                    password_hash=generate_password_hash(data["password"]),
                    **{f: data.get(f) for f in PROFILE_FIELDS},
                )
                self.session.add(user)
        except IntegrityError as e:
            # Lost a race with a concurrent registration
            raise Conflict("Username already taken") from e
        logger.info("Registered user %s (%s)", user.id, username)
        return user

    def authenticate(self, username: str, password: str) -> User:
        user = self._by_username(username)
        if user is None or not check_password_hash(user.password_hash, password):
            raise Unauthenticated("Invalid username or password")
        return user

    def update_profile(self, user_id: int, actor_id: int, changes: Dict[str, Any]) -> User:
        if int(user_id) != int(actor_id):
            raise Forbidden("You can only update your own profile")
        with UnitOfWork(self.session):
            user = self.get(user_id)
            for field in PROFILE_FIELDS:
                if field in changes:
                    setattr(user, field, changes[field])
            new_password = changes.get("new_password")
            if new_password:
                current = changes.get("current_password") or ""
                if not check_password_hash(user.password_hash, current):
                    raise InvalidInput("Current password is incorrect")
                user.password_hash = generate_password_hash(new_password)
        return user
