"""Domain models and types for the fake-coin ledger.

This package holds the in-memory ledger entry, wallet and user models along
with their validation rules. They are independent from persistence models so
that business logic and testing can evolve without DB coupling.
"""

__all__ = [
    "errors",
    "ledger",
    "passwords",
    "sources",
    "user",
    "wallet",
]
