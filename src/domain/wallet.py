from __future__ import annotations

from decimal import Decimal
from typing import Iterable
from uuid import UUID

from domain.errors import InvalidAddress, InvalidCurrency, WalletCurrencyMismatch
from domain.ledger import Currency, Transaction, TransactionId, WalletAddress
from domain.sources import DEFAULT_ADDRESS_GENERATOR, AddressGenerator, Clock, utc_now


class Wallet:
    """A currency-scoped address owned by a user.

    The wallet keeps no balance of its own. ``balance()`` folds whatever
    transactions are currently held in memory, so callers wanting the stored
    state must load the transactions first.
    """

    def __init__(
        self,
        *,
        user_id: UUID,
        currency: str,
        address: str,
        transactions: Iterable[Transaction] = (),
        clock: Clock = utc_now,
    ) -> None:
        self._user_id = user_id
        self._currency = Currency(currency)
        self._address = WalletAddress(address)
        self._clock = clock
        self._transactions: list[Transaction] = list(transactions)
        # Anything handed in at construction came from storage.
        self._saved: set[TransactionId] = {tx.id for tx in self._transactions}
        self._version = 0
        self._balance_cache: tuple[int, Decimal] | None = None

    @classmethod
    def new(cls, user_id: UUID, currency: str, address: str, *, clock: Clock = utc_now) -> Wallet:
        if not currency:
            raise InvalidCurrency()
        if not address:
            raise InvalidAddress()
        return cls(user_id=user_id, currency=currency, address=address, clock=clock)

    @classmethod
    def with_generated_address(
        cls,
        user_id: UUID,
        currency: str,
        *,
        addresses: AddressGenerator = DEFAULT_ADDRESS_GENERATOR,
        clock: Clock = utc_now,
    ) -> Wallet:
        return cls.new(user_id, currency, addresses(), clock=clock)

    @property
    def user_id(self) -> UUID:
        return self._user_id

    @property
    def currency(self) -> Currency:
        return self._currency

    @property
    def address(self) -> WalletAddress:
        return self._address

    @property
    def transactions(self) -> list[Transaction]:
        return list(self._transactions)

    def accept_transaction(self, from_wallet: Wallet, amount: Decimal | int | str) -> Transaction:
        """Record a transfer of ``amount`` from ``from_wallet`` into this wallet (in memory only)."""
        if self._currency != from_wallet.currency:
            raise WalletCurrencyMismatch()

        tx = Transaction.create(self._currency, from_wallet.address, self._address, amount, clock=self._clock)
        self._transactions.append(tx)
        self._version += 1
        return tx

    def balance(self) -> Decimal:
        if self._balance_cache is not None and self._balance_cache[0] == self._version:
            return self._balance_cache[1]

        total = Decimal(0)
        for tx in self._transactions:
            if tx.to_address == self._address:
                total += tx.amount
            elif tx.from_address == self._address:
                total -= tx.full_amount

        self._balance_cache = (self._version, total)
        return total

    def pending_transactions(self) -> list[Transaction]:
        return [tx for tx in self._transactions if tx.id not in self._saved]

    def mark_saved(self, transactions: Iterable[Transaction]) -> None:
        self._saved.update(tx.id for tx in transactions)

    def replace_transactions(self, transactions: Iterable[Transaction]) -> None:
        """Swap the in-memory history for a snapshot loaded from storage."""
        self._transactions = list(transactions)
        self._saved = {tx.id for tx in self._transactions}
        self._version += 1

    def __repr__(self) -> str:
        return f"Wallet(address={self._address!r}, currency={self._currency!r}, user_id={self._user_id})"
