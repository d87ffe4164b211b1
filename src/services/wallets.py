from __future__ import annotations

from sqlalchemy.orm import Session

from db.repositories import UserRepository, WalletRepository
from domain.user import User
from domain.wallet import Wallet


def load_user_wallets(session: Session, user: User) -> list[Wallet]:
    """Reload a user's wallets together with their full transaction history."""
    wallets = UserRepository(session).load_wallets(user)
    wallet_repository = WalletRepository(session)
    for wallet in wallets:
        wallet_repository.load_transactions(wallet)
    return wallets
