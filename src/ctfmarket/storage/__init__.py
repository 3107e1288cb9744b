"""DuckDB persistence for ledger state and the event log."""

from ctfmarket.storage.db import get_connection, init_schema
from ctfmarket.storage.state import load_state, save_state

__all__ = ["get_connection", "init_schema", "load_state", "save_state"]
