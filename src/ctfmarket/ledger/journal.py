"""Undo journal shared by all ledgers. A failed transaction restores every key it touched."""

from __future__ import annotations

from collections.abc import Hashable, Iterator, MutableMapping
from contextlib import contextmanager
from typing import Any

import structlog

log = structlog.get_logger(__name__)

_MISSING = object()


class Journal:
    """Records the prior value of each write while a transaction is open."""

    def __init__(self) -> None:
        self._entries: list[tuple[Any, Hashable, Any]] | None = None

    @property
    def active(self) -> bool:
        return self._entries is not None

    def write(self, table: MutableMapping, key: Hashable, value: Any) -> None:
        """Set table[key] = value; a value of 0 or None deletes the key."""
        if self._entries is not None:
            self._entries.append((table, key, table.get(key, _MISSING)))
        if value is None or value == 0:
            table.pop(key, None)
        else:
            table[key] = value

    def append(self, items: list, item: Any) -> None:
        if self._entries is not None:
            self._entries.append((items, None, len(items)))
        items.append(item)

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """All-or-nothing block. Nested use joins the outer transaction."""
        if self._entries is not None:
            yield
            return
        self._entries = []
        try:
            yield
        except BaseException:
            undone = self._rollback()
            log.debug("journal_rollback", writes_undone=undone)
            raise
        finally:
            self._entries = None

    def _rollback(self) -> int:
        entries = self._entries or []
        for table, key, prev in reversed(entries):
            if isinstance(table, list):
                del table[prev:]
            elif prev is _MISSING:
                table.pop(key, None)
            else:
                table[key] = prev
        return len(entries)
