from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import NewType
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict

from domain.errors import InvalidAddress, InvalidAmount, InvalidCurrency
from domain.sources import Clock, utc_now

TransactionId = NewType("TransactionId", UUID)
WalletAddress = NewType("WalletAddress", str)
Currency = NewType("Currency", str)

# Charged to the sender on top of the principal.
FEE_RATE = Decimal("0.2")


class Transaction(BaseModel):
    """An immutable ledger entry moving ``amount`` from one address to another.

    The sender is debited ``full_amount`` (principal plus fee); the receiver is
    credited the principal only. Entries are appended, never updated.
    """

    model_config = ConfigDict(frozen=True)

    id: TransactionId
    currency: Currency
    from_address: WalletAddress
    to_address: WalletAddress
    amount: Decimal
    fee: Decimal
    timestamp: datetime

    @classmethod
    def create(
        cls,
        currency: str,
        from_address: str,
        to_address: str,
        amount: Decimal | int | str,
        *,
        clock: Clock = utc_now,
    ) -> Transaction:
        if not currency:
            raise InvalidCurrency()
        if not from_address or not to_address:
            raise InvalidAddress()

        amount = Decimal(amount)
        if not amount.is_finite() or amount <= 0:
            raise InvalidAmount()

        return cls(
            id=TransactionId(uuid4()),
            currency=Currency(currency),
            from_address=WalletAddress(from_address),
            to_address=WalletAddress(to_address),
            amount=amount,
            fee=amount * FEE_RATE,
            timestamp=clock(),
        )

    def calculate_fee(self) -> Decimal:
        return self.amount * FEE_RATE

    @property
    def full_amount(self) -> Decimal:
        return self.amount + self.calculate_fee()
