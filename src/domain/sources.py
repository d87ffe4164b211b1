from __future__ import annotations

import hashlib
from datetime import datetime, timezone
from random import Random
from typing import Callable

Clock = Callable[[], datetime]

_MAX_INT63 = (1 << 63) - 1


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class AddressGenerator:
    """Produces wallet addresses as the sha256 hex digest of a random 63-bit integer."""

    def __init__(self, rng: Random | None = None) -> None:
        self._rng = rng if rng is not None else Random()

    def __call__(self) -> str:
        return self.next()

    def next(self) -> str:
        number = self._rng.randint(0, _MAX_INT63)
        return hashlib.sha256(str(number).encode("ascii")).hexdigest()


DEFAULT_ADDRESS_GENERATOR = AddressGenerator()
