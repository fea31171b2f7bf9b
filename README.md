# smtpdkit

A small toolkit of pieces that mail server add-ons are built from. It needs
nothing outside the standard library.

## What is inside

| Module | Provides |
| --- | --- |
| `smtpdkit.base64` | `b64_ntop` and `b64_pton`: base64 encoding and strict decoding. Bad input raises `Base64Error`. |
| `smtpdkit.strutil` | `strlcpy`, `strlcat`, `strsep` and `strtonum`. Malformed or out-of-range numbers raise `StrtonumError`. |
| `smtpdkit.chacha` | `ChaCha`: the ChaCha20 stream, with `keystream()` and `encrypt()`. |
| `smtpdkit.arc4random` | `Arc4Random`: a ChaCha-based random generator, plus the module-level `arc4random()` and `arc4random_uniform()`. |
| `smtpdkit.tempname` | `mkstemp`: creates a unique file from a template containing a run of `X` characters. |
| `smtpdkit.imsg` | `ImsgBuf`, `MsgBuf`, `Ibuf`, `ImsgHeader` and `Imsg`: framed messages over a Unix socket, with file-descriptor passing. |
| `smtpdkit.rbtree` | `RBTree`: an ordered red-black tree keyed by a function. |
| `smtpdkit.splaytree` | `SplayTree`: a self-adjusting ordered tree keyed by a function. |
| `smtpdkit.table_sqlite` | `SQLiteTable`, `Service`, `parse_config`: a lookup table whose queries come from a configuration file and run against an SQLite database. |
| `smtpdkit.table_stub` | `StubTable`: a table whose every operation raises `RuntimeError`; a skeleton for new backends. |

## Examples

### Base64

```python
from smtpdkit.base64 import b64_ntop, b64_pton, Base64Error

encoded = b64_ntop(b"hello")        # "aGVsbG8="
assert b64_pton(encoded) == b"hello"

try:
    b64_pton("not*base64")
except Base64Error:
    ...
```

`b64_pton` skips whitespace anywhere, and rejects incomplete padding, data
after the padding and non-zero bits before it.

### String helpers

```python
from smtpdkit.strutil import strlcpy, strsep, strtonum, StrtonumError

text, length = strlcpy("mailbox", 5)    # ("mail", 7): truncated since 7 >= 5
token, rest = strsep("a:b:c", ":")      # ("a", "b:c")

port = strtonum("25", 1, 65535)
try:
    strtonum("70000", 1, 65535)
except StrtonumError as exc:
    print(exc.errstr)                   # "too large"
```

### Random numbers

```python
from smtpdkit.arc4random import Arc4Random, arc4random, arc4random_uniform

word = arc4random()                 # 32-bit unsigned integer
die = arc4random_uniform(6) + 1     # 1..6, with no modulo bias

rng = Arc4Random()
nonce = rng.random_bytes(16)
```

The generator is seeded from `os.urandom`, rekeys itself after each buffer of
output, and reseeds after a fixed amount of output or when the process id
changes. `addrandom()` mixes in bytes of your own.

`ChaCha(key, iv)` takes a 32- or 16-byte key and an 8-byte IV. Each call to
`keystream()` or `encrypt()` uses whole 64-byte blocks; the unused tail of a
partial block is dropped.

### Temporary files

```python
import os
from smtpdkit.tempname import mkstemp

fd, name = mkstemp("/tmp/spool.XXXXXX")
os.close(fd)
```

The file is created exclusively with mode 0600. `suffix_len` leaves that
many characters at the end of the template untouched.

### Ordered trees

```python
from smtpdkit.rbtree import RBTree

tree = RBTree(key=lambda entry: entry[0])
for entry in [(3, "c"), (1, "a"), (2, "b")]:
    tree.insert(entry)

assert [k for k, _ in tree] == [1, 2, 3]
assert tree.min() == (1, "a")
assert tree.nfind((2, None)) == (2, "b")
```

`insert` returns the item already stored under the same key, or `None`.
`RBTree` also has `remove`, `find`, `max`, `next`, `prev`, `reversed()` and
`len()`. `SplayTree` from `smtpdkit.splaytree` has `insert`, `remove`,
`find`, `next`, `min`, `max`, in-order iteration and `len()`.

### Message framing over a socket pair

```python
import socket
from smtpdkit.imsg import ImsgBuf

left, right = socket.socketpair()
sender, receiver = ImsgBuf(left), ImsgBuf(right)

sender.compose(1, 0, 0, None, b"ping")   # type, peerid, pid (0: own), fd, data
sender.flush()

receiver.read()
message = receiver.get()
assert message.type == 1 and message.data == b"ping"
```

Pass an open descriptor instead of `None` to send it along with the
message; it is closed on the sending side once sent and appears as
`message.fd` on the receiving side. `get()` returns `None` until a whole
message has arrived, and raises `ImsgError` on a bad length. Messages are
limited to `MAX_IMSGSIZE` bytes.

### SQLite lookup table

The configuration file holds `key value` (or `key: value`) lines; blank
lines and `#` comments are ignored. `dbpath` names the database, and each
`query_*` key holds an SQL statement with one `?` parameter:

```
dbpath              /var/db/aliases.sqlite
query_alias         SELECT value FROM aliases WHERE key = ?
query_domain        SELECT domain FROM domains WHERE domain = ?
query_credentials   SELECT user, secret FROM users WHERE user = ?
fetch_source        SELECT address FROM sources
```

The query keys are `query_alias`, `query_domain`, `query_credentials`,
`query_netaddr`, `query_userinfo`, `query_source`, `query_mailaddr`,
`query_addrname` and `query_mailaddrmap`. `fetch_source_expire` (seconds,
default 60) and `fetch_source_refresh` (calls, default 1000) control how
often the `fetch_source` list is re-read.

```python
from smtpdkit.table_sqlite import SQLiteTable, Service

with SQLiteTable("/etc/mail/sqlite.conf") as table:
    if table.check(Service.DOMAIN, "example.com"):
        targets = table.lookup(Service.ALIAS, "postmaster@example.com")
```

The configuration is loaded when the table is created and again on
`update()`; each query's column count is checked then. `lookup` joins every
alias or address-map row with `", "`, gives credentials as `user:password`
and user info as `uid:gid:home`, and returns `None` when nothing matches.
`fetch(Service.SOURCE)` hands out the source addresses in turn. Failures
raise `TableError`.

## What it does not do

The table classes are plain Python objects. The package has no command-line
program and no protocol loop that would run a table as a separate process
answering a mail daemon's requests; connecting `SQLiteTable` or `StubTable`
to a server is left to the caller.