from __future__ import annotations

from datetime import timezone
from uuid import UUID

from sqlalchemy import Table, or_
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from db import models
from domain.errors import EmailConflict, NotFoundError
from domain.ledger import Currency, Transaction, TransactionId, WalletAddress
from domain.sources import DEFAULT_ADDRESS_GENERATOR, AddressGenerator, Clock, utc_now
from domain.user import User
from domain.wallet import Wallet


class TransactionRepository:
    def __init__(self, session: Session, *, written: set[TransactionId] | None = None) -> None:
        self._session = session
        # Ids already inserted in the current storage transaction.
        self._written: set[TransactionId] = set() if written is None else written

    def save(self, tx: Transaction) -> Transaction:
        if tx.id in self._written:
            return tx
        self._session.add(
            models.TransactionOrm(
                id=tx.id,
                currency=tx.currency,
                from_wallet=tx.from_address,
                to_wallet=tx.to_address,
                amount=tx.amount,
                fee=tx.fee,
                timestamp=tx.timestamp,
            )
        )
        self._session.flush()
        self._written.add(tx.id)
        return tx

    def find_all_with_wallet(self, address: str) -> list[Transaction]:
        orm_txs = (
            self._session.query(models.TransactionOrm)
            .filter(or_(models.TransactionOrm.from_wallet == address, models.TransactionOrm.to_wallet == address))
            .order_by(models.TransactionOrm.timestamp.asc(), models.TransactionOrm.id.asc())
            .all()
        )
        return [self._to_domain(orm_tx) for orm_tx in orm_txs]

    @staticmethod
    def _to_domain(orm_tx: models.TransactionOrm) -> Transaction:
        timestamp = orm_tx.timestamp
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=timezone.utc)

        return Transaction.model_construct(
            id=TransactionId(orm_tx.id),
            currency=Currency(orm_tx.currency),
            from_address=WalletAddress(orm_tx.from_wallet),
            to_address=WalletAddress(orm_tx.to_wallet),
            amount=orm_tx.amount,
            fee=orm_tx.fee,
            timestamp=timestamp,
        )


class WalletRepository:
    def __init__(
        self,
        session: Session,
        *,
        clock: Clock = utc_now,
        written: set[TransactionId] | None = None,
    ) -> None:
        self._session = session
        self._clock = clock
        self._transactions = TransactionRepository(session, written=written)

    def save(self, wallet: Wallet) -> Wallet:
        """Insert the wallet row (no-op when it already exists) and its unsaved transactions, in order."""
        _insert_ignoring_conflicts(
            self._session,
            models.UserWalletOrm.__table__,
            {"wallet": wallet.address, "user_id": wallet.user_id, "currency": wallet.currency},
        )
        for tx in wallet.pending_transactions():
            self._transactions.save(tx)
        return wallet

    def find_by_user_id(self, user_id: UUID) -> list[Wallet]:
        orm_wallets = (
            self._session.query(models.UserWalletOrm)
            .filter(models.UserWalletOrm.user_id == user_id)
            .order_by(models.UserWalletOrm.currency.asc(), models.UserWalletOrm.wallet.asc())
            .all()
        )
        return [
            Wallet(user_id=user_id, currency=orm_wallet.currency, address=orm_wallet.wallet, clock=self._clock)
            for orm_wallet in orm_wallets
        ]

    def load_transactions(self, wallet: Wallet) -> list[Transaction]:
        transactions = self._transactions.find_all_with_wallet(wallet.address)
        wallet.replace_transactions(transactions)
        return transactions


class UserRepository:
    def __init__(
        self,
        session: Session,
        *,
        addresses: AddressGenerator = DEFAULT_ADDRESS_GENERATOR,
        clock: Clock = utc_now,
        written: set[TransactionId] | None = None,
    ) -> None:
        self._session = session
        self._addresses = addresses
        self._clock = clock
        self._wallets = WalletRepository(session, clock=clock, written=written)

    def save(self, user: User) -> User:
        self._session.add(
            models.UserOrm(
                id=user.id,
                email=user.email,
                password=user.password,
                first_name=user.first_name,
                last_name=user.last_name,
            )
        )
        try:
            self._session.flush()
        except IntegrityError as exc:
            if _violates_email_uniqueness(exc):
                raise EmailConflict() from exc
            raise

        for wallet in user.wallets:
            self._wallets.save(wallet)
        return user

    def find_by_email(self, email: str) -> User:
        orm_user = self._session.query(models.UserOrm).filter(models.UserOrm.email == email).one_or_none()
        if orm_user is None:
            raise NotFoundError()
        return self._to_domain(orm_user)

    def find_by_id(self, user_id: UUID) -> User:
        orm_user = self._session.get(models.UserOrm, user_id)
        if orm_user is None:
            raise NotFoundError()
        return self._to_domain(orm_user)

    def load_wallets(self, user: User) -> list[Wallet]:
        wallets = self._wallets.find_by_user_id(user.id)
        user.replace_wallets(wallets)
        return wallets

    def _to_domain(self, orm_user: models.UserOrm) -> User:
        return User(
            id=orm_user.id,
            email=orm_user.email,
            password_hash=orm_user.password,
            first_name=orm_user.first_name,
            last_name=orm_user.last_name,
            addresses=self._addresses,
            clock=self._clock,
        )


def _insert_ignoring_conflicts(session: Session, table: Table, values: dict[str, object]) -> None:
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        stmt = postgresql.insert(table).values(**values).on_conflict_do_nothing()
    elif dialect == "sqlite":
        stmt = sqlite.insert(table).values(**values).on_conflict_do_nothing()
    else:
        raise NotImplementedError(f"Unsupported dialect for conflict-free insert: {dialect}")
    session.execute(stmt)


def _violates_email_uniqueness(exc: IntegrityError) -> bool:
    # psycopg exposes the constraint name; sqlite only reports the column.
    constraint = getattr(getattr(exc.orig, "diag", None), "constraint_name", None)
    if constraint is not None:
        return constraint == models.USERS_EMAIL_CONSTRAINT
    return "users.email" in str(exc.orig)
