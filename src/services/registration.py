from __future__ import annotations

import logging
from decimal import Decimal
from typing import Sequence

from sqlalchemy.orm import Session, sessionmaker

from db.unit_of_work import UnitOfWork
from domain.errors import FatalError
from domain.passwords import PasswordHasher, hash_password
from domain.sources import DEFAULT_ADDRESS_GENERATOR, AddressGenerator, Clock, utc_now
from domain.user import DomainResolver, User, resolves_domain
from services.faucet import FAKE_BTC, FAKE_ETH, FaucetWallets

logger = logging.getLogger(__name__)

SEED_AMOUNT = Decimal(100)
DEFAULT_CURRENCIES: tuple[str, ...] = (FAKE_BTC, FAKE_ETH)


class RegistrationService:
    """Admits a new user together with seeded wallets in a single storage transaction."""

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        faucet: FaucetWallets,
        *,
        currencies: Sequence[str] = DEFAULT_CURRENCIES,
        seed_amount: Decimal = SEED_AMOUNT,
        resolver: DomainResolver = resolves_domain,
        hasher: PasswordHasher = hash_password,
        addresses: AddressGenerator = DEFAULT_ADDRESS_GENERATOR,
        clock: Clock = utc_now,
    ) -> None:
        self._session_factory = session_factory
        self._faucet = faucet
        self._currencies = tuple(currencies)
        self._seed_amount = seed_amount
        self._resolver = resolver
        self._hasher = hasher
        self._addresses = addresses
        self._clock = clock

    def register(self, email: str, password: str, first_name: str, last_name: str) -> User:
        user = User.new(
            email,
            password,
            first_name,
            last_name,
            resolver=self._resolver,
            hasher=self._hasher,
            addresses=self._addresses,
            clock=self._clock,
        )

        for wallet in user.create_wallets(*self._currencies):
            faucet_wallet = self._faucet.get(wallet.currency)
            if faucet_wallet is None:
                logger.error("No faucet wallet for currency %s", wallet.currency)
                raise FatalError(f"no faucet wallet for currency {wallet.currency}")
            wallet.accept_transaction(faucet_wallet, self._seed_amount)

        with UnitOfWork(self._session_factory, addresses=self._addresses, clock=self._clock) as uow:
            uow.stage(user)
            uow.commit()

        logger.info("Registered user %s with %d wallets", user.id, len(user.wallets))
        return user
