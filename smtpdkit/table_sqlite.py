"""A lookup table backend that answers from an SQLite database."""

from __future__ import annotations

import enum
import logging
import os
import re
import sqlite3
import time
from dataclasses import dataclass, field
from typing import Iterable

from smtpdkit.strutil import StrtonumError, strsep, strtonum

__all__ = [
    "DEFAULT_EXPIRE",
    "DEFAULT_REFRESH",
    "SQLiteTable",
    "Service",
    "TableConfig",
    "TableError",
    "parse_config",
]

log = logging.getLogger(__name__)

DEFAULT_EXPIRE = 60
DEFAULT_REFRESH = 1000

_INT_MAX = 2**31 - 1
_WHITESPACE = " \t\n\v\f\r"
_LEADING_INT = re.compile(r"[ \t\n\v\f\r]*([+-]?[0-9]+)")


class Service(enum.IntEnum):
    """The kinds of lookups a table can serve."""

    ALIAS = 1 << 0
    DOMAIN = 1 << 1
    CREDENTIALS = 1 << 2
    NETADDR = 1 << 3
    USERINFO = 1 << 4
    SOURCE = 1 << 5
    MAILADDR = 1 << 6
    ADDRNAME = 1 << 7
    MAILADDRMAP = 1 << 8


_COLUMNS = {
    Service.ALIAS: 1,
    Service.DOMAIN: 1,
    Service.CREDENTIALS: 2,
    Service.NETADDR: 1,
    Service.USERINFO: 3,
    Service.SOURCE: 1,
    Service.MAILADDR: 1,
    Service.ADDRNAME: 1,
    Service.MAILADDRMAP: 1,
}

_QUERY_KEYS = {f"query_{service.name.lower()}": service for service in Service}


class TableError(Exception):
    """Raised when the table cannot be configured or a request fails."""


@dataclass
class TableConfig:
    """Settings read from a table configuration file."""

    dbpath: str | None = None
    queries: dict[Service, str] = field(default_factory=dict)
    fetch_source: str | None = None
    fetch_source_expire: int = DEFAULT_EXPIRE
    fetch_source_refresh: int = DEFAULT_REFRESH


def _skip_separators(value: str) -> str:
    index = 0
    while index < len(value):
        ch = value[index]
        colon_then_space = (
            ch == ":" and index + 1 < len(value) and value[index + 1] in _WHITESPACE
        )
        if ch not in _WHITESPACE and not colon_then_space:
            break
        index += 1
    return value[index:]


def _parse_number(key: str, value: str) -> int:
    try:
        return strtonum(value, 0, _INT_MAX)
    except StrtonumError as exc:
        raise TableError(f"bad value for {key}: {exc.errstr}") from exc


def parse_config(lines: Iterable[str]) -> TableConfig:
    """Parse configuration lines of the form ``key value`` or ``key: value``.

    Blank lines and ``#`` comments are ignored, as are keys without a value,
    unknown keys and repeated query keys (the first one wins). A repeated
    ``dbpath`` or ``fetch_source`` replaces the earlier one. A bad number
    raises :class:`TableError`.
    """
    config = TableConfig()
    for raw in lines:
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        key, value = strsep(line, " \t:")
        if value is not None:
            value = _skip_separators(value)
        if not value:
            log.warning("missing value for key %s", key)
            continue

        if key == "dbpath":
            if config.dbpath is not None:
                log.warning("duplicate %s %s", key, value)
            config.dbpath = value
        elif key == "fetch_source":
            if config.fetch_source is not None:
                log.warning("duplicate %s %s", key, value)
            config.fetch_source = value
        elif key == "fetch_source_expire":
            config.fetch_source_expire = _parse_number(key, value)
        elif key == "fetch_source_refresh":
            config.fetch_source_refresh = _parse_number(key, value)
        elif key in _QUERY_KEYS:
            service = _QUERY_KEYS[key]
            if service in config.queries:
                log.warning("duplicate key %s", key)
                continue
            config.queries[service] = value
        else:
            log.warning("bogus key %s", key)
    return config


def _text(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", "replace")
    return str(value)


def _int(value: object) -> int:
    if value is None:
        return 0
    if isinstance(value, (int, float)):
        return int(value)
    match = _LEADING_INT.match(_text(value))
    return int(match.group(1)) if match else 0


def _check_columns(conn: sqlite3.Connection, query: str, params: tuple, ncols: int) -> None:
    try:
        cursor = conn.execute(query, params)
        found = len(cursor.description or ())
        cursor.close()
    except sqlite3.Error as exc:
        raise TableError(f"prepare: {exc}") from exc
    if found != ncols:
        raise TableError(f"invalid columns count for query: {query}")


class SQLiteTable:
    """Answers table requests with queries configured in a file.

    The configuration is loaded on construction; :class:`TableError` is
    raised if it cannot be.
    """

    def __init__(self, config_path: str | os.PathLike[str]) -> None:
        self.config_path = os.fspath(config_path)
        self._db: sqlite3.Connection | None = None
        self._queries: dict[Service, str] = {}
        self._fetch_source: str | None = None
        self._sources: list[str] = []
        self._source_index = 0
        self._source_refresh = DEFAULT_REFRESH
        self._source_expire = DEFAULT_EXPIRE
        self._source_ncall = 0
        self._source_update = 0
        self.update()

    def __enter__(self) -> "SQLiteTable":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def update(self) -> bool:
        """Reload the configuration and reopen the database.

        On failure :class:`TableError` is raised and the previous setup is
        kept.
        """
        try:
            with open(self.config_path, encoding="utf-8") as fp:
                config = parse_config(fp)
        except OSError as exc:
            raise TableError(f"{self.config_path}: {exc}") from exc

        if config.dbpath is None:
            raise TableError("missing dbpath")
        log.debug("opening %s", config.dbpath)
        try:
            conn = sqlite3.connect(config.dbpath)
        except sqlite3.Error as exc:
            raise TableError(f"open: {exc}") from exc

        try:
            for service, query in config.queries.items():
                _check_columns(conn, query, (None,), _COLUMNS[service])
            if config.fetch_source is not None:
                _check_columns(conn, config.fetch_source, (), 1)
        except TableError:
            conn.close()
            raise

        old, self._db = self._db, conn
        if old is not None:
            old.close()
        self._queries = dict(config.queries)
        self._fetch_source = config.fetch_source
        self._source_update = 0
        self._source_expire = config.fetch_source_expire
        self._source_refresh = config.fetch_source_refresh
        log.debug("config successfully updated")
        return True

    def _connection(self) -> sqlite3.Connection:
        if self._db is None:
            raise TableError("table is closed")
        return self._db

    def _query_for(self, service: int) -> tuple[Service, str]:
        try:
            service = Service(service)
        except ValueError as exc:
            raise TableError(f"unknown service {service}") from exc
        query = self._queries.get(service)
        if query is None:
            raise TableError(f"no query configured for {service.name.lower()}")
        return service, query

    def check(self, service: int, key: str) -> bool:
        """Return whether ``key`` matches any row for ``service``."""
        _, query = self._query_for(service)
        try:
            cursor = self._connection().execute(query, (key,))
            row = cursor.fetchone()
            cursor.close()
        except sqlite3.Error as exc:
            raise TableError(f"step: {exc}") from exc
        return row is not None

    def lookup(self, service: int, key: str) -> str | None:
        """Return the value of ``key`` for ``service``, or None if there is none.

        Aliases and address maps join every matching row with ``", "``;
        credentials are ``user:password`` and user info ``uid:gid:home``.
        """
        service, query = self._query_for(service)
        try:
            cursor = self._connection().execute(query, (key,))
            row = cursor.fetchone()
            if row is None:
                cursor.close()
                return None
            if service in (Service.ALIAS, Service.MAILADDRMAP):
                result = ""
                while row is not None:
                    if result:
                        result += ", "
                    result += _text(row[0])
                    row = cursor.fetchone()
            elif service is Service.CREDENTIALS:
                result = f"{_text(row[0])}:{_text(row[1])}"
            elif service is Service.USERINFO:
                result = f"{_int(row[0])}:{_int(row[1])}:{_text(row[2])}"
            else:
                result = _text(row[0])
            cursor.close()
        except sqlite3.Error as exc:
            raise TableError(f"step: {exc}") from exc
        return result

    def _refresh_sources(self) -> None:
        values: set[str] = set()
        try:
            for row in self._connection().execute(self._fetch_source, ()):
                values.add(_text(row[0]))
        except sqlite3.Error as exc:
            log.warning("step: %s", exc)
        self._sources = sorted(values)
        self._source_index = 0
        self._source_update = int(time.time())
        self._source_ncall = 0

    def fetch(self, service: int) -> str | None:
        """Return the next source address in turn, or None when there are none.

        The list is re-read after ``fetch_source_refresh`` calls or once
        ``fetch_source_expire`` seconds have passed.
        """
        if service != Service.SOURCE:
            raise TableError("fetch is only supported for the source service")
        if self._fetch_source is None:
            raise TableError("no fetch_source query configured")

        fresh = (
            self._source_ncall < self._source_refresh
            and int(time.time()) - self._source_update < self._source_expire
        )
        if not fresh:
            self._refresh_sources()
        self._source_ncall += 1

        if not self._sources:
            return None
        if self._source_index >= len(self._sources):
            self._source_index = 0
        value = self._sources[self._source_index]
        self._source_index += 1
        return value

    def close(self) -> None:
        """Close the database connection."""
        if self._db is not None:
            self._db.close()
            self._db = None