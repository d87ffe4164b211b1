from decimal import Decimal
from itertools import permutations
from random import Random
from uuid import uuid4

import pytest

from domain.errors import ErrorKind, InvalidAddress, InvalidAmount, InvalidCurrency, WalletCurrencyMismatch
from domain.sources import AddressGenerator
from domain.wallet import Wallet
from tests.constants import ALICE_ADDRESS, BOB_ADDRESS, FAUCET_BTC_ADDRESS, FBTC, FETH
from tests.helpers.time_utils import DEFAULT_TIME_GEN, make_transaction


def _wallet(address: str, currency: str = FBTC) -> Wallet:
    return Wallet.new(uuid4(), currency, address, clock=DEFAULT_TIME_GEN)


def test_new_rejects_empty_currency_and_address() -> None:
    with pytest.raises(InvalidCurrency):
        Wallet.new(uuid4(), "", ALICE_ADDRESS)
    with pytest.raises(InvalidAddress):
        Wallet.new(uuid4(), FBTC, "")


def test_generated_addresses_are_sha256_hex_and_deterministic_for_a_seed() -> None:
    owner = uuid4()
    first = Wallet.with_generated_address(owner, FBTC, addresses=AddressGenerator(Random(1)))
    again = Wallet.with_generated_address(owner, FBTC, addresses=AddressGenerator(Random(1)))

    assert len(first.address) == 64
    assert all(char in "0123456789abcdef" for char in first.address)
    assert first.address == again.address

    generator = AddressGenerator(Random(1))
    assert generator() != generator()


def test_accept_transaction_appends_unsaved_entry() -> None:
    faucet = _wallet(FAUCET_BTC_ADDRESS)
    wallet = _wallet(ALICE_ADDRESS)

    tx = wallet.accept_transaction(faucet, Decimal(100))

    assert tx.from_address == FAUCET_BTC_ADDRESS
    assert tx.to_address == ALICE_ADDRESS
    assert tx.currency == FBTC
    assert wallet.transactions == [tx]
    assert wallet.pending_transactions() == [tx]
    # The source wallet's snapshot is untouched.
    assert faucet.transactions == []


def test_currency_mismatch_leaves_both_wallets_unchanged() -> None:
    eth_wallet = _wallet(BOB_ADDRESS, FETH)
    btc_wallet = _wallet(ALICE_ADDRESS)
    btc_wallet.accept_transaction(_wallet(FAUCET_BTC_ADDRESS), 100)

    with pytest.raises(WalletCurrencyMismatch) as exc_info:
        btc_wallet.accept_transaction(eth_wallet, 10)

    assert exc_info.value.kind == ErrorKind.CONFLICT
    assert len(btc_wallet.transactions) == 1
    assert eth_wallet.transactions == []


def test_invalid_amount_does_not_touch_the_list() -> None:
    wallet = _wallet(ALICE_ADDRESS)

    with pytest.raises(InvalidAmount):
        wallet.accept_transaction(_wallet(FAUCET_BTC_ADDRESS), 0)

    assert wallet.transactions == []


def test_received_seed_gives_exact_balance() -> None:
    wallet = _wallet(ALICE_ADDRESS)
    wallet.accept_transaction(_wallet(FAUCET_BTC_ADDRESS), Decimal(100))

    assert wallet.balance() == Decimal(100)
    assert str(wallet.balance()) == "100"


def test_balance_subtracts_full_amount_for_outgoing_entries() -> None:
    transactions = [
        make_transaction(from_address=FAUCET_BTC_ADDRESS, to_address=ALICE_ADDRESS, amount=100),
        make_transaction(from_address=ALICE_ADDRESS, to_address=BOB_ADDRESS, amount=50),
        make_transaction(from_address=BOB_ADDRESS, to_address=ALICE_ADDRESS, amount=Decimal("2.5")),
    ]
    alice = Wallet(user_id=uuid4(), currency=FBTC, address=ALICE_ADDRESS, transactions=transactions)
    bob = Wallet(user_id=uuid4(), currency=FBTC, address=BOB_ADDRESS, transactions=transactions[1:])

    # 100 - (50 + 10) + 2.5
    assert alice.balance() == Decimal("42.5")
    # 50 - (2.5 + 0.5)
    assert bob.balance() == Decimal("47.0")


def test_balance_is_order_independent() -> None:
    transactions = [
        make_transaction(from_address=FAUCET_BTC_ADDRESS, to_address=ALICE_ADDRESS, amount=100),
        make_transaction(from_address=ALICE_ADDRESS, to_address=BOB_ADDRESS, amount=Decimal("12.34")),
        make_transaction(from_address=BOB_ADDRESS, to_address=ALICE_ADDRESS, amount=7),
        make_transaction(from_address=ALICE_ADDRESS, to_address=BOB_ADDRESS, amount=Decimal("0.01")),
    ]
    expected = sum((tx.amount for tx in transactions if tx.to_address == ALICE_ADDRESS), start=Decimal(0)) - sum(
        (tx.full_amount for tx in transactions if tx.from_address == ALICE_ADDRESS), start=Decimal(0)
    )

    balances = {
        Wallet(user_id=uuid4(), currency=FBTC, address=ALICE_ADDRESS, transactions=ordering).balance()
        for ordering in permutations(transactions)
    }

    assert balances == {expected}


def test_balance_ignores_entries_touching_neither_address() -> None:
    unrelated = make_transaction(from_address=FAUCET_BTC_ADDRESS, to_address=BOB_ADDRESS, amount=100)
    wallet = Wallet(user_id=uuid4(), currency=FBTC, address=ALICE_ADDRESS, transactions=[unrelated])

    assert wallet.balance() == Decimal(0)


def test_balance_follows_new_entries_and_reloads() -> None:
    wallet = _wallet(ALICE_ADDRESS)
    faucet = _wallet(FAUCET_BTC_ADDRESS)

    assert wallet.balance() == Decimal(0)
    wallet.accept_transaction(faucet, 10)
    assert wallet.balance() == Decimal(10)
    wallet.accept_transaction(faucet, 5)
    assert wallet.balance() == Decimal(15)

    wallet.replace_transactions([])
    assert wallet.balance() == Decimal(0)


def test_loaded_transactions_are_not_pending() -> None:
    loaded = make_transaction(from_address=FAUCET_BTC_ADDRESS, to_address=ALICE_ADDRESS, amount=1)
    wallet = Wallet(user_id=uuid4(), currency=FBTC, address=ALICE_ADDRESS, transactions=[loaded])

    new_tx = wallet.accept_transaction(_wallet(FAUCET_BTC_ADDRESS), 1)
    assert wallet.pending_transactions() == [new_tx]

    wallet.mark_saved([new_tx])
    assert wallet.pending_transactions() == []
