from __future__ import annotations

from typing import Mapping
from uuid import UUID

from domain.ledger import Currency
from domain.wallet import Wallet

FAKE_BTC = Currency("fBTC")
FAKE_ETH = Currency("fETH")

FAUCET_OWNER = UUID(int=0)
DEFAULT_FAUCET_ADDRESSES: dict[Currency, str] = {
    FAKE_BTC: "0" * 64,
    FAKE_ETH: "1" * 64,
}


class FaucetWallets:
    """Well-known wallets that seed transactions are drawn from, one per currency.

    They only live in memory; their address shows up in storage solely as the
    source of the transactions they issued.
    """

    def __init__(self, addresses: Mapping[str, str] | None = None) -> None:
        addresses = DEFAULT_FAUCET_ADDRESSES if addresses is None else addresses
        self._wallets: dict[str, Wallet] = {
            currency: Wallet.new(FAUCET_OWNER, currency, address) for currency, address in addresses.items()
        }

    def get(self, currency: str) -> Wallet | None:
        return self._wallets.get(currency)
