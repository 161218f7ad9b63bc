# zaplog

Leveled, structured logging with dynamic levels, pluggable sinks and a
looser "sugared" front end.

zaplog has no runtime dependencies beyond the standard library. The test
suite needs the `test` extra:

```
pip install "zaplog[test]"
```

## The pieces

- `zaplog.level` – levels and level enablers.
- `zaplog.core` – `Entry`, `Field`, `CheckedEntry` and the cores that decide
  whether an entry is written and write it (`Core`, `NopCore`, `IOCore`).
- `zaplog.logger` – the structured `Logger` and the functions that build
  its options.
- `zaplog.sugar` – `SugaredLogger`, with print-style, format-style and
  key/value methods.
- `zaplog.sink` and `zaplog.writer` – destinations opened from paths or URLs,
  and ways of combining writers.
- `zaplog.http_handler` – a small HTTP endpoint that reads or changes a level.
- `zaplog.ztest`, `zaplog.exit` – helpers for testing code that logs.
- `zaplog.color`, `zaplog.timeutil`, `zaplog.stacktrace` – small utilities.

## Levels

From least to most severe: `Level.DEBUG`, `Level.INFO`, `Level.WARN`,
`Level.ERROR`, `Level.DPANIC`, `Level.PANIC`, `Level.FATAL`. A `Level` is an
`int`; `level.enabled(other)` is true when `other` is at or above it, and
`Level.FATAL + 1` is a level that enables nothing named.

- `parse_level(text)` accepts `"debug"`, `"info"`, `"warn"`, `"error"`,
  `"dpanic"`, `"panic"`, `"fatal"` in all lower or all upper case; the empty
  string means info. Anything else raises `ValueError`.
- `LevelEnablerFunc(func)` turns a callable into an enabler.
- `AtomicLevel` is a thread-safe level that can be changed while the program
  runs (`set_level`, `level`, `unmarshal_text`, `marshal_text`). Every logger
  built on it, including children, follows a change at once.
  `new_atomic_level_at(lvl)` builds one set to `lvl`.

## Logging

`IOCore(encoder, output, enabler)` writes entries through an encoder you
supply to any object with `write(data)` and `sync()`. The encoder needs
`clone()`, `add(key, value)` and `encode_entry(entry, fields)` returning
bytes or text:

```python
import json

from zaplog.core import Field, IOCore
from zaplog.level import Level
from zaplog.logger import add_caller, new
from zaplog.ztest import Buffer


class JSONLines:
    def __init__(self, context=None):
        self.context = dict(context or {})

    def clone(self):
        return JSONLines(self.context)

    def add(self, key, value):
        self.context[key] = value

    def encode_entry(self, entry, fields):
        record = {"level": str(entry.level), "msg": entry.message, **self.context}
        record.update((f.key, f.value) for f in fields)
        return json.dumps(record) + "\n"


out = Buffer()
log = new(IOCore(JSONLines(), out, Level.INFO), add_caller())
log.info("hello", Field("user", "alice"))
log.debug("not written")
print(out.getvalue())  # {"level": "info", "msg": "hello", "user": "alice"}
```

`zaplog.logger.new(core, *options)` builds a `Logger` (a `None` core gives a
no-op logger); `new_nop()` builds one that writes nothing. Internal errors,
such as a failing write, go to standard error unless `error_output` says
otherwise.

`Logger` methods: `debug`, `info`, `warn`, `error`, `dpanic`, `panic`,
`fatal`, each taking a message and `Field`s; `check(lvl, msg)` returns a
`CheckedEntry` (or `None`) to write later; `named(s)` appends a
dot-separated name segment; `with_fields(*fields)` makes a child with extra
context without touching the parent; `with_options(*options)`; `sync()`;
`core()`; `sugar()`.

`panic` always raises `zaplog.core.PanicError` after writing, and `fatal`
always ends the process (through `zaplog.exit.exit_process`, which raises
`SystemExit(1)`), even when output at those levels is switched off.
`dpanic` raises `PanicError` only in development mode.

### Options

| Function                  | Effect                                                         |
| ------------------------- | -------------------------------------------------------------- |
| `wrap_core(f)`            | wrap or replace the core                                       |
| `hooks(*funcs)`           | call each function with every written `Entry`; additive        |
| `fields(*fs)`             | add context fields to every entry                              |
| `error_output(w)`         | where internal errors are written                              |
| `development()`           | make dpanic-level calls raise                                  |
| `add_caller()`            | record the calling file, line and function on each entry       |
| `with_caller(enabled)`    | switch caller recording on or off                              |
| `add_caller_skip(skip)`   | skip extra frames when finding the caller                      |
| `add_stacktrace(lvl)`     | record a stack trace for entries `lvl` enables                 |
| `increase_level(lvl)`     | raise the minimum level; an attempt to lower it is reported to the error output and ignored |
| `on_fatal(action)`        | `CheckWriteAction` taken after a fatal entry: `WRITE_THEN_PANIC` raises `PanicError`, `WRITE_THEN_GOEXIT` raises `SystemExit(0)`; the default ends the process |
| `with_clock(clock)`       | object with `now()` used to stamp entries                      |

### The sugared logger

`Logger.sugar()` returns a `SugaredLogger`; `desugar()` goes back. For each
level there are three methods, e.g. `info(*args)` (arguments joined into
the message), `infof(template, *args)` (`%`-style formatting) and
`infow(msg, *keys_and_values)`. Key/value arguments mix `Field` objects with
alternating string keys and values; a dangling key or a non-string key is
logged at dpanic level and skipped. `with_fields(*args)` accepts the same
mix. `zaplog.sugar.get_message` is the message-building rule on its own.

## Sinks and writers

`zaplog.writer.open_sinks(*paths)` opens each path or URL and returns a
single locked writer and a function that closes what was opened. If any
path fails, everything is closed and `ValueError` describes every failure.
Paths without a scheme are local files, opened for appending and created
if missing; `stdout` and `stderr` name the standard streams. `file://` URLs
must have an empty host or `localhost` and no user, port, query or fragment.

`zaplog.sink.register_sink(scheme, factory)` adds a scheme; the factory is
called with the `urllib.parse.SplitResult` of the URL and returns a `Sink`
(`write`, `sync`, `close`). Schemes are lower-cased and must start with a
letter and contain only letters, digits, `.`, `+` and `-`; an empty,
invalid or already registered scheme raises `ValueError`. An unknown scheme
raises `SinkNotFoundError`. `reset_sink_registry()` forgets all but `file`.

`combine_write_syncers(*writers)` joins existing writers into one locked
writer (`LockedWriteSyncer` over `MultiWriteSyncer`); with none it returns a
`DiscardWriteSyncer`.

## Changing the level over HTTP

`zaplog.http_handler.wsgi_app(level)` returns a WSGI application for an
`AtomicLevel`:

- `GET` answers `{"level":"info"}`.
- `PUT` sets the level. With `Content-Type: application/x-www-form-urlencoded`
  it reads `level=...` from the body, then the query string; otherwise it
  expects a JSON body such as `{"level":"debug"}`.
- A bad request gets 400 and other methods 405, each with `{"error": ...}`.

`handle_request(level, method, query, content_type, body)` does the same
without a server and returns the `HTTPStatus` and the payload as a dict.

## Benchmark tables

```
zaplog-readme < README.tmpl > README.out
```

reads a template from standard input, runs
`go test -bench=<name> -benchmem` in a `benchmarks` directory for
`BenchmarkAddingFields`, `BenchmarkAccumulatedContext` and
`BenchmarkWithoutFields`, and writes the template to standard output with
each `{{.Name}}` replaced by a Markdown table of the results. That tool
chain and directory must be present; failures are printed to standard error
with exit status 1.

## Testing helpers

- `zaplog.ztest`: `Buffer` (collects writes; `getvalue`, `lines`,
  `stripped`), `Discarder`, `FailWriter` (every write raises `OSError`),
  `ShortWriter` (reports one byte short). Each records whether `sync` was
  called (`called`) and can be told to fail it (`set_error`). `timeout`,
  `sleep` and `initialize` scale durations, initially from the
  `TEST_TIMEOUT_SCALE` environment variable.
- `zaplog.exit`: `with_stub(f)` runs `f` with process exit replaced by a
  recorder and returns the `StubbedExit`, whose `exited` says whether exit
  was called; `stub()` and `unstub()` do the same by hand.

## What zaplog does not include

- No encoders: there is no built-in JSON or console format. `IOCore` needs
  an encoder object you provide, as in the example above.
- No ready-made configurations: there are no production or development
  presets and no loading of logger settings from files.
- No in-memory observer core for capturing entries in tests; `ztest.Buffer`
  captures encoded output instead.