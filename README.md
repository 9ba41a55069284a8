# metricserver

A small metric collection server. Clients POST batches of metrics as JSON;
the server keeps the latest value of every metric in memory, and a background
flusher writes them to an SQLite database at a fixed interval, with one final
flush on shutdown.

## Installation

```
pip install .
```

For running the test suite:

```
pip install ".[test]"
pytest
```

## Running

```
metricserver --config config/config.yaml --env .env
```

The same entry point is available as `python -m metricserver.app`. Both flags
are optional and may also be written with a single dash (`-config`, `-env`):

- `--env` — path to a `.env` file whose variables are loaded into the
  environment before the configuration is read (default `.env`). Variables
  already set in the environment are not overridden. A missing file is
  reported and ignored.
- `--config` — path to the YAML configuration file (default
  `./config/config.yaml`).

The command exits with status 1 if the configuration cannot be loaded, the
application cannot be set up (for example the database cannot be opened or
the flush interval is not positive), or the server or flusher fails while
running. Otherwise it exits with status 0.

On `SIGINT` or `SIGTERM` the application shuts down in order: the HTTP server
stops accepting requests (waiting up to 30 seconds for it to finish), the
flusher runs one last flush, and the database is closed.

## Configuration

The configuration file is YAML. `$NAME` and `${NAME}` references are replaced
with environment variables before parsing; unknown names become empty
strings. This lets values come from the `.env` file.

```yaml
http-server:
  host: 0.0.0.0
  port: "8080"
  timeout: 5s
  idle_timeout: 60s
pg-dsn: ${PG_DSN}
flush-interval: 10s
```

with, for example, a `.env` file containing:

```
PG_DSN=metrics.db
```

- `http-server.host` and `http-server.port` — the address to listen on. The
  port may be a number or a service name; an empty port lets the system pick
  one.
- `http-server.timeout` — socket timeout applied to each request connection.
- `http-server.idle_timeout` — read into the configuration
  (`HTTPServerConfig.idle_timeout`) but not applied by the server.
- `pg-dsn` — where metrics are stored: a filesystem path to an SQLite
  database, `:memory:`, or a `file:` URI. The `metrics` table is created if
  it does not exist.
- `flush-interval` — how often the in-memory metrics are written to the
  database. It must be positive.

Durations are strings such as `300ms`, `10s`, `1m30s` or `2h`, using the units
`ns`, `us` (or `µs`), `ms`, `s`, `m` and `h`; a bare `0` is also accepted.
Durations are turned into seconds. A plain YAML number is rejected for a
duration field.

## API

`POST /update` accepts a JSON array of metrics:

```json
[
  {"name": "cpu", "type": "gauge", "value": 42.5},
  {"name": "memory", "type": "gauge", "value": 75.0}
]
```

Each metric overwrites the stored value of the same name; the `type` field is
accepted but not stored. A body that is not a JSON array of metric objects is
answered with `400 Bad Request` and the text `invalid payload`. A successful
request gets `200 OK` with an empty body.

Other paths are answered with `404`, and other methods on `/update` with `405`
and an `Allow` header.

Request bodies sent with `Content-Encoding: gzip` are decompressed; a body
that is not gzip data gets `400` with `Failed to decompress request`.
Responses are gzip-compressed for clients that send `Accept-Encoding: gzip`.

## Using the pieces from Python

```python
import threading

from metricserver.storage.memory import MemStorage
from metricserver.storage.database import DatabaseStorage
from metricserver.flusher import Flusher

mem = MemStorage()
mem.set("cpu", 42.5)

with DatabaseStorage("metrics.db") as db:
    flusher = Flusher(10.0, mem, db)
    print(flusher.flush())   # number of metrics saved
    print(db.load())         # {'cpu': 42.5}
```

- `MemStorage` — thread-safe store with `set(name, value)` and `snapshot()`.
- `DatabaseStorage` — `save(data)` upserts a mapping in one transaction,
  `load()` returns every stored metric, `close()` closes the connection.
  Failures raise `StorageError`.
- `Flusher` — `flush()` saves the current snapshot (raising `FlushError` on
  failure); `run(stop_event)` flushes every interval until the given
  `threading.Event` is set, logging errors, then flushes once more and lets
  an error in that last flush propagate.
- `metricserver.config` — `load_config(argv)`, `Config.from_mapping(data)`,
  `parse_duration(text)` and `expand_env(text, environ)`; problems raise
  `ConfigError`.
- `metricserver.web` — `Handler`, `gzip_middleware`, `Router`,
  `create_router(handler)` (a WSGI application) and `Server`, with `run()`
  and `shutdown(timeout)`.
- `metricserver.app.App` — ties the server, the flusher and the database
  together; `App.run(stop_event)` runs until the event is set or, when no
  event is given, until `SIGINT`/`SIGTERM`.

## What it does not do

- Storage is SQLite only. The `pg-dsn` setting names an SQLite database; no
  other database server is supported.
- Stored metrics cannot be read back over HTTP; the only endpoint is
  `POST /update`. Use `DatabaseStorage.load()` or query the database directly.
- There is no schema migration tool beyond creating the `metrics` table.