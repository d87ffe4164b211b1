from __future__ import annotations

import re
import socket
from typing import Callable, Iterable
from uuid import UUID, uuid4

from email_validator import EmailNotValidError, validate_email

from domain.errors import InvalidEmail, InvalidFirstName, InvalidLastName, InvalidPassword
from domain.passwords import PasswordHasher, hash_password
from domain.sources import DEFAULT_ADDRESS_GENERATOR, AddressGenerator, Clock, utc_now
from domain.wallet import Wallet

DomainResolver = Callable[[str], bool]

PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_LENGTH = 50

# Starts and ends with a letter; apostrophes, spaces and hyphens allowed in between.
_NAME_PATTERN = re.compile(r"^[^\W\d_](?:[^\W\d_]|[' -])*[^\W\d_]$")
_FORBIDDEN_EMAIL_CHARS = frozenset(" <>")


def resolves_domain(domain: str) -> bool:
    try:
        return bool(socket.getaddrinfo(domain, None))
    except (socket.gaierror, UnicodeError):
        return False


def is_valid_password(password: str) -> bool:
    return PASSWORD_MIN_LENGTH <= len(password) <= PASSWORD_MAX_LENGTH


def is_valid_name(name: str) -> bool:
    return _NAME_PATTERN.match(name) is not None


def is_valid_email(email: str, resolver: DomainResolver = resolves_domain) -> bool:
    if any(char in _FORBIDDEN_EMAIL_CHARS for char in email):
        return False

    try:
        parsed = validate_email(email, check_deliverability=False)
    except EmailNotValidError:
        return False

    return resolver(parsed.ascii_domain)


class User:
    """An identity owning zero or more wallets.

    Only the bcrypt hash of the password is kept. ``wallets`` is filled either
    by ``create_wallets`` (new users) or by loading them from storage.
    """

    def __init__(
        self,
        *,
        id: UUID,
        email: str,
        password_hash: str,
        first_name: str,
        last_name: str,
        wallets: Iterable[Wallet] = (),
        addresses: AddressGenerator = DEFAULT_ADDRESS_GENERATOR,
        clock: Clock = utc_now,
    ) -> None:
        self._id = id
        self._email = email
        self._password_hash = password_hash
        self._first_name = first_name
        self._last_name = last_name
        self._wallets: list[Wallet] = list(wallets)
        self._addresses = addresses
        self._clock = clock

    @classmethod
    def new(
        cls,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
        *,
        resolver: DomainResolver = resolves_domain,
        hasher: PasswordHasher = hash_password,
        addresses: AddressGenerator = DEFAULT_ADDRESS_GENERATOR,
        clock: Clock = utc_now,
    ) -> User:
        if not is_valid_password(password):
            raise InvalidPassword()
        if not is_valid_name(first_name):
            raise InvalidFirstName()
        if not is_valid_name(last_name):
            raise InvalidLastName()
        if not is_valid_email(email, resolver):
            raise InvalidEmail()

        return cls(
            id=uuid4(),
            email=email,
            password_hash=hasher(password),
            first_name=first_name,
            last_name=last_name,
            addresses=addresses,
            clock=clock,
        )

    @property
    def id(self) -> UUID:
        return self._id

    @property
    def email(self) -> str:
        return self._email

    @property
    def password(self) -> str:
        return self._password_hash

    @property
    def first_name(self) -> str:
        return self._first_name

    @property
    def last_name(self) -> str:
        return self._last_name

    @property
    def wallets(self) -> list[Wallet]:
        return list(self._wallets)

    def create_wallets(self, *currencies: str) -> list[Wallet]:
        wallets = [
            Wallet.with_generated_address(self._id, currency, addresses=self._addresses, clock=self._clock)
            for currency in _unique(currencies)
        ]
        self._wallets = wallets
        return list(wallets)

    def replace_wallets(self, wallets: Iterable[Wallet]) -> None:
        self._wallets = list(wallets)

    def __repr__(self) -> str:
        return f"User(id={self._id}, email={self._email!r})"


def _unique(values: Iterable[str]) -> list[str]:
    return list(dict.fromkeys(value for value in values if value))
