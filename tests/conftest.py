from pathlib import Path
from random import Random
from typing import Generator

import pytest
from sqlalchemy import Engine
from sqlalchemy.orm import Session, sessionmaker

from db.db import create_db_engine
from db.models import Base
from domain.sources import AddressGenerator
from services.faucet import FaucetWallets
from services.registration import RegistrationService
from tests.helpers.fakes import accept_all_domains, fast_hasher
from tests.helpers.time_utils import DEFAULT_TIME_GEN


@pytest.fixture(scope="function")
def engine(tmp_path: Path) -> Generator[Engine, None, None]:
    # A file-backed DB so separate sessions really use separate connections.
    engine = create_db_engine(f"sqlite:///{tmp_path / 'ledger.db'}")
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(engine)


@pytest.fixture(scope="function")
def test_session(session_factory: sessionmaker[Session]) -> Generator[Session, None, None]:
    with session_factory() as session:
        yield session


@pytest.fixture(autouse=True)
def _reset_default_time_gen() -> None:
    DEFAULT_TIME_GEN.reset()


@pytest.fixture(scope="function")
def addresses() -> AddressGenerator:
    return AddressGenerator(Random(7))


@pytest.fixture(scope="function")
def faucet() -> FaucetWallets:
    return FaucetWallets()


@pytest.fixture(scope="function")
def registration(
    session_factory: sessionmaker[Session], faucet: FaucetWallets, addresses: AddressGenerator
) -> RegistrationService:
    return RegistrationService(
        session_factory,
        faucet,
        resolver=accept_all_domains,
        hasher=fast_hasher,
        addresses=addresses,
        clock=DEFAULT_TIME_GEN,
    )
