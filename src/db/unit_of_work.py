"""All-or-nothing persistence of users, wallets and ledger entries."""

from __future__ import annotations

import logging
from types import TracebackType
from typing import Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from db.repositories import TransactionRepository, UserRepository, WalletRepository
from domain.errors import RollbackFailed, TransactionBeginFailed, TransactionCommitFailed
from domain.ledger import Transaction, TransactionId
from domain.sources import DEFAULT_ADDRESS_GENERATOR, AddressGenerator, Clock, utc_now
from domain.user import User
from domain.wallet import Wallet

logger = logging.getLogger(__name__)

Entity = Union[User, Wallet, Transaction]


class UnitOfWork:
    """Owns one storage transaction and writes staged entities inside it.

    Usage::

        with UnitOfWork(session_factory) as uow:
            uow.stage(user)
            uow.commit()

    Leaving the block without a commit, or with an exception, rolls back.
    Begin, commit and rollback failures are raised as fatal errors.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        *,
        addresses: AddressGenerator = DEFAULT_ADDRESS_GENERATOR,
        clock: Clock = utc_now,
    ) -> None:
        self._session_factory = session_factory
        self._addresses = addresses
        self._clock = clock
        self._session: Session | None = None
        self._staged: list[Entity] = []
        self._written: set[TransactionId] = set()
        self._finished = False

    @property
    def session(self) -> Session:
        if self._session is None:
            raise RuntimeError("UnitOfWork has not been started")
        return self._session

    @property
    def users(self) -> UserRepository:
        return UserRepository(self.session, addresses=self._addresses, clock=self._clock, written=self._written)

    @property
    def wallets(self) -> WalletRepository:
        return WalletRepository(self.session, clock=self._clock, written=self._written)

    @property
    def transactions(self) -> TransactionRepository:
        return TransactionRepository(self.session, written=self._written)

    def begin(self) -> None:
        try:
            self._session = self._session_factory()
            self._session.begin()
            # Acquire the connection now so pool or driver failures surface here.
            self._session.connection()
        except SQLAlchemyError as exc:
            logger.critical("CRITICAL: could not begin transaction: %s", exc)
            if self._session is not None:
                self._session.close()
                self._session = None
            raise TransactionBeginFailed() from exc
        self._staged = []
        self._written = set()
        self._finished = False

    def stage(self, entity: Entity) -> None:
        if any(staged is entity for staged in self._staged):
            return
        self._staged.append(entity)

    def commit(self) -> None:
        """Write staged entities in order, then make them durable together."""
        session = self.session
        try:
            for entity in self._staged:
                self._write(entity)
        except Exception as exc:
            self._rollback_after(exc)
            raise

        try:
            session.commit()
        except SQLAlchemyError as exc:
            logger.critical("CRITICAL: could not commit transaction: %s", exc)
            self._rollback_after(exc)
            raise TransactionCommitFailed() from exc

        self._mark_saved()
        self._staged = []
        self._finished = True

    def rollback(self) -> None:
        self._rollback_after(None)

    def __enter__(self) -> UnitOfWork:
        self.begin()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        try:
            if self._session is not None and not self._finished and self._session.in_transaction():
                self._rollback_after(exc)
        finally:
            if self._session is not None:
                self._session.close()
                self._session = None

    def _write(self, entity: Entity) -> None:
        if isinstance(entity, User):
            self.users.save(entity)
        elif isinstance(entity, Wallet):
            self.wallets.save(entity)
        elif isinstance(entity, Transaction):
            self.transactions.save(entity)
        else:
            raise TypeError(f"Cannot stage {type(entity).__name__}")

    def _rollback_after(self, original: BaseException | None) -> None:
        self._finished = True
        self._written.clear()
        try:
            self.session.rollback()
        except SQLAlchemyError as exc:
            logger.critical("CRITICAL: could not rollback transaction after %r: %s", original, exc)
            raise RollbackFailed(original) from exc

    def _mark_saved(self) -> None:
        for entity in self._staged:
            wallets: list[Wallet] = []
            if isinstance(entity, User):
                wallets = entity.wallets
            elif isinstance(entity, Wallet):
                wallets = [entity]
            for wallet in wallets:
                wallet.mark_saved(wallet.pending_transactions())
