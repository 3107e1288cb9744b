"""Shared fixtures: well-known accounts, a fresh engine, a catalog, a temp DuckDB."""

import shutil
import tempfile
from pathlib import Path

import pytest

from ctfmarket import ids
from ctfmarket.engine import PositionEngine
from ctfmarket.market import MarketCatalog
from ctfmarket.storage.db import get_connection, init_schema

OWNER = ids.to_address("0x" + "11" * 20)
USER = ids.to_address("0x" + "22" * 20)
ORACLE = ids.to_address("0x" + "33" * 20)
OTHER = ids.to_address("0x" + "44" * 20)

QUESTION = ids.question_id("Will India Win?")


@pytest.fixture
def engine():
    return PositionEngine.create(custody="ctf-custody")


@pytest.fixture
def condition_id(engine):
    return engine.prepare_condition(ORACLE, QUESTION).condition_id


@pytest.fixture
def funded(engine):
    """Give an account collateral and approve custody for all of it."""

    def _fund(account: str, amount: int) -> None:
        engine.collateral.mint(account, amount)
        engine.collateral.approve(account, engine.collateral.custody, amount)

    return _fund


@pytest.fixture
def catalog(engine):
    return MarketCatalog(engine, owner=OWNER, oracle=ORACLE)


@pytest.fixture
def temp_db():
    tmp = tempfile.mkdtemp()
    path = Path(tmp) / "test.duckdb"
    conn = get_connection(path)
    init_schema(conn)
    yield conn
    conn.close()
    shutil.rmtree(tmp, ignore_errors=True)
