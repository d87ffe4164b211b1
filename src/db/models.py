from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import DateTime, Index, String, UniqueConstraint, Uuid
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator

USERS_EMAIL_CONSTRAINT = "uq_users_email"


class DecimalAsString(TypeDecorator):
    impl = String
    cache_ok = True

    def process_bind_param(self, value: Decimal | None, dialect: object) -> str | None:
        if value is None:
            return None
        return str(value)

    def process_result_value(self, value: str | None, dialect: object) -> Decimal | None:
        if value is None:
            return None
        return Decimal(value)


class Base(DeclarativeBase):
    pass


class UserOrm(Base):
    __tablename__ = "users"
    __table_args__ = (UniqueConstraint("email", name=USERS_EMAIL_CONSTRAINT),)

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True)
    email: Mapped[str] = mapped_column(String, nullable=False)
    password: Mapped[str] = mapped_column(String, nullable=False)
    first_name: Mapped[str] = mapped_column(String, nullable=False)
    last_name: Mapped[str] = mapped_column(String, nullable=False)


class UserWalletOrm(Base):
    __tablename__ = "user_wallets"

    wallet: Mapped[str] = mapped_column(String, primary_key=True)
    user_id: Mapped[UUID] = mapped_column(Uuid, nullable=False, index=True)
    currency: Mapped[str] = mapped_column(String, nullable=False)


class TransactionOrm(Base):
    __tablename__ = "transactions"
    __table_args__ = (
        Index("ix_transactions_from_wallet", "from_wallet"),
        Index("ix_transactions_to_wallet", "to_wallet"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True)
    currency: Mapped[str] = mapped_column(String, nullable=False)
    from_wallet: Mapped[str] = mapped_column(String, nullable=False)
    to_wallet: Mapped[str] = mapped_column(String, nullable=False)
    amount: Mapped[Decimal] = mapped_column(DecimalAsString, nullable=False)
    fee: Mapped[Decimal] = mapped_column(DecimalAsString, nullable=False)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
