from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from domain.user import User
from domain.wallet import Wallet


def format_amount(amount: Decimal) -> str:
    """Plain decimal notation without trailing zeros, e.g. ``40.0`` becomes ``"40"``."""
    return format(amount.normalize(), "f")


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SignupRequest(ApiModel):
    email: str
    password: str
    first_name: str
    last_name: str


class TokenRequest(ApiModel):
    email: str
    password: str


class TokenResponse(ApiModel):
    token: str
    expires_at: int


class WalletResponse(ApiModel):
    user_id: str
    address: str
    currency: str
    balance: str

    @classmethod
    def from_wallet(cls, wallet: Wallet) -> WalletResponse:
        return cls(
            user_id=str(wallet.user_id),
            address=wallet.address,
            currency=wallet.currency,
            balance=format_amount(wallet.balance()),
        )


class IAmResponse(ApiModel):
    id: str
    email: str
    first_name: str
    last_name: str

    @classmethod
    def from_user(cls, user: User) -> IAmResponse:
        return cls(id=str(user.id), email=user.email, first_name=user.first_name, last_name=user.last_name)


class SignupResponse(IAmResponse):
    wallets: list[WalletResponse]

    @classmethod
    def from_user(cls, user: User) -> SignupResponse:
        return cls(
            id=str(user.id),
            email=user.email,
            first_name=user.first_name,
            last_name=user.last_name,
            wallets=[WalletResponse.from_wallet(wallet) for wallet in user.wallets],
        )
