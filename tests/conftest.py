"""Shared fixtures: in-memory store, manual clock, fixed entropy, funded principals."""
import pytest

from app import build_engines
from chain import ManualClock, FixedEntropy
from db import Store
from registry import MINT_PRICE

OWNER = "GOWNER"
ALICE = "GALICE"
BOB = "GBOB"
CAROL = "GCAROL"

START_ORDINAL = 1000
ENTROPY = bytes(range(32))


@pytest.fixture
def store():
    s = Store(":memory:")
    yield s
    s.close()


@pytest.fixture
def clock():
    return ManualClock(START_ORDINAL)


@pytest.fixture
def eng(store, clock):
    e = build_engines(store, clock, FixedEntropy(ENTROPY), OWNER)
    for who in (ALICE, BOB, CAROL):
        e["ledger"].credit(who, 10 * MINT_PRICE)
    return e


@pytest.fixture
def registry(eng):
    return eng["registry"]


@pytest.fixture
def ledger(eng):
    return eng["ledger"]


@pytest.fixture
def breeding(eng):
    return eng["breeding"]


@pytest.fixture
def evolution(eng):
    return eng["evolution"]


@pytest.fixture
def market(eng):
    return eng["marketplace"]
