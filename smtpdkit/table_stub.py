"""A lookup table backend that fails every request."""

from __future__ import annotations

from typing import Any, NoReturn

__all__ = ["StubTable"]


class StubTable:
    """A table whose every operation fails with :class:`RuntimeError`.

    It serves as a skeleton for new backends and as a table that never
    answers.
    """

    @staticmethod
    def _fail(operation: str) -> NoReturn:
        raise RuntimeError(f"stub table: {operation} failed")

    def update(self) -> NoReturn:
        """Reload the table configuration; always fails."""
        self._fail("update")

    def check(self, service: Any, key: str) -> NoReturn:
        """Test whether ``key`` exists for ``service``; always fails."""
        self._fail("check")

    def lookup(self, service: Any, key: str) -> NoReturn:
        """Look up the value of ``key`` for ``service``; always fails."""
        self._fail("lookup")

    def fetch(self, service: Any) -> NoReturn:
        """Fetch the next value for ``service``; always fails."""
        self._fail("fetch")