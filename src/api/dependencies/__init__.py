from typing import Annotated, Generator

from fastapi import Depends, Header, Request
from sqlalchemy.orm import Session

from config import AppSettings
from domain.errors import InvalidToken
from domain.user import User
from services.auth import AuthService
from services.registration import RegistrationService

BEARER_PREFIX = "Bearer "


class Unauthorized(Exception):
    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


def get_session(request: Request) -> Generator[Session, None, None]:
    with request.app.state.sessionmaker() as session:
        yield session


def get_settings(request: Request) -> AppSettings:
    return request.app.state.settings


def get_registration_service(request: Request) -> RegistrationService:
    return request.app.state.registration


def get_auth_service(
    session: Annotated[Session, Depends(get_session)],
    settings: Annotated[AppSettings, Depends(get_settings)],
) -> AuthService:
    return AuthService(session, secret=settings.jwt_secret, ttl_seconds=settings.token_ttl_seconds)


def get_current_user(
    auth: Annotated[AuthService, Depends(get_auth_service)],
    authorization: Annotated[str | None, Header()] = None,
) -> User:
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        raise Unauthorized("invalid authorization header")

    try:
        return auth.authenticate(authorization[len(BEARER_PREFIX) :])
    except InvalidToken as exc:
        raise Unauthorized(exc.message) from exc
