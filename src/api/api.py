import logging
from contextlib import asynccontextmanager
from functools import partial
from time import perf_counter
from typing import Annotated, AsyncGenerator, Awaitable, Callable

from fastapi import Depends, FastAPI, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from api.dependencies import (
    Unauthorized,
    get_auth_service,
    get_current_user,
    get_registration_service,
    get_session,
)
from api.schemas import IAmResponse, SignupRequest, SignupResponse, TokenRequest, TokenResponse, WalletResponse
from config import AppSettings
from db.db import init_db
from domain.errors import ErrorKind, InvalidCredentials, LedgerError, UserNotFound
from domain.passwords import PasswordHasher, hash_password
from domain.sources import DEFAULT_ADDRESS_GENERATOR, AddressGenerator
from domain.user import DomainResolver, User, resolves_domain
from services.auth import AuthService
from services.faucet import FaucetWallets
from services.registration import RegistrationService
from services.wallets import load_user_wallets

logger = logging.getLogger(__name__)

_STATUS_BY_KIND = {
    ErrorKind.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
}


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def create_app(
    settings: AppSettings,
    *,
    session_factory: sessionmaker[Session] | None = None,
    resolver: DomainResolver = resolves_domain,
    hasher: PasswordHasher | None = None,
    addresses: AddressGenerator = DEFAULT_ADDRESS_GENERATOR,
) -> FastAPI:
    if session_factory is None:
        session_factory = init_db(settings.database_url, echo=settings.db_echo)
    if hasher is None:
        hasher = partial(hash_password, rounds=settings.password_hash_rounds)

    @asynccontextmanager
    async def lifespan(fastapi_app: FastAPI) -> AsyncGenerator[None, None]:
        yield
        bind = fastapi_app.state.sessionmaker.kw.get("bind")
        if bind is not None:
            bind.dispose()

    app = FastAPI(lifespan=lifespan)
    app.state.settings = settings
    app.state.sessionmaker = session_factory
    app.state.registration = RegistrationService(
        session_factory,
        FaucetWallets(),
        resolver=resolver,
        hasher=hasher,
        addresses=addresses,
    )

    @app.middleware("http")
    async def log_process_time(request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
        start_time = perf_counter()
        response = await call_next(request)
        process_time = perf_counter() - start_time
        logger.debug("Request time: %s %s: %.4fs", request.method, request.url, process_time)
        return response

    @app.exception_handler(RequestValidationError)
    async def invalid_body(request: Request, exc: RequestValidationError) -> JSONResponse:
        return _error(status.HTTP_400_BAD_REQUEST, "invalid request body")

    @app.exception_handler(Unauthorized)
    async def unauthorized(request: Request, exc: Unauthorized) -> JSONResponse:
        return _error(status.HTTP_401_UNAUTHORIZED, exc.message)

    @app.exception_handler(LedgerError)
    async def ledger_error(request: Request, exc: LedgerError) -> JSONResponse:
        status_code = _STATUS_BY_KIND.get(exc.kind)
        if status_code is None:
            logger.error("Request %s %s failed: %s", request.method, request.url.path, exc, exc_info=exc)
            return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "internal server error")
        return _error(status_code, exc.message)

    @app.exception_handler(SQLAlchemyError)
    async def storage_error(request: Request, exc: SQLAlchemyError) -> JSONResponse:
        logger.error("Storage failure on %s %s: %s", request.method, request.url.path, exc, exc_info=exc)
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "internal server error")

    @app.post("/signup", status_code=status.HTTP_201_CREATED)
    def signup(
        body: SignupRequest,
        registration: Annotated[RegistrationService, Depends(get_registration_service)],
    ) -> SignupResponse:
        user = registration.register(body.email, body.password, body.first_name, body.last_name)
        return SignupResponse.from_user(user)

    @app.post("/token")
    def token(body: TokenRequest, auth: Annotated[AuthService, Depends(get_auth_service)]) -> TokenResponse:
        try:
            issued = auth.issue_token(body.email, body.password)
        except (UserNotFound, InvalidCredentials) as exc:
            raise Unauthorized(exc.message) from exc
        return TokenResponse(token=issued.token, expires_at=int(issued.expires_at.timestamp()))

    @app.get("/iam")
    def iam(user: Annotated[User, Depends(get_current_user)]) -> IAmResponse:
        return IAmResponse.from_user(user)

    @app.get("/wallets")
    def wallets(
        user: Annotated[User, Depends(get_current_user)],
        session: Annotated[Session, Depends(get_session)],
    ) -> list[WalletResponse]:
        return [WalletResponse.from_wallet(wallet) for wallet in load_user_wallets(session, user)]

    return app
