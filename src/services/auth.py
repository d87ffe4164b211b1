from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from uuid import UUID

import jwt
from sqlalchemy.orm import Session

from db.repositories import UserRepository
from domain.errors import InvalidCredentials, InvalidToken, NotFoundError, UserNotFound
from domain.passwords import verify_password
from domain.sources import Clock, utc_now
from domain.user import User

JWT_ALGORITHM = "HS256"


@dataclass(frozen=True)
class IssuedToken:
    token: str
    expires_at: datetime


class AuthService:
    """Issues and verifies bearer tokens; the only place passwords are compared."""

    def __init__(self, session: Session, *, secret: str, ttl_seconds: int, clock: Clock = utc_now) -> None:
        self._users = UserRepository(session)
        self._secret = secret
        self._ttl = timedelta(seconds=ttl_seconds)
        self._clock = clock

    def issue_token(self, email: str, password: str) -> IssuedToken:
        try:
            user = self._users.find_by_email(email)
        except NotFoundError as exc:
            raise UserNotFound() from exc

        if not verify_password(password, user.password):
            raise InvalidCredentials()

        expires_at = self._clock() + self._ttl
        claims = {"jti": str(user.id), "exp": int(expires_at.timestamp())}
        token = jwt.encode(claims, self._secret, algorithm=JWT_ALGORITHM)
        return IssuedToken(token=token, expires_at=expires_at)

    def authenticate(self, token: str) -> User:
        try:
            claims = jwt.decode(token, self._secret, algorithms=[JWT_ALGORITHM])
            user_id = UUID(claims["jti"])
        except (jwt.PyJWTError, KeyError, TypeError, ValueError) as exc:
            raise InvalidToken() from exc

        try:
            return self._users.find_by_id(user_id)
        except NotFoundError as exc:
            raise InvalidToken() from exc
