import pytest

from zaplog import exit as zexit
from zaplog.core import CheckedEntry, Core, Field, PanicError
from zaplog.level import Level
from zaplog.logger import add_caller, add_caller_skip, development, error_output, new
from zaplog.sugar import (
    NON_STRING_KEY_ERR_MSG,
    ODD_NUMBER_ERR_MSG,
    InvalidPair,
    SugaredLogger,
    get_message,
)
from zaplog.ztest import Buffer


class _ObserverCore(Core):
    def __init__(self, enab, logs, context=()):
        self._enab = enab
        self._logs = logs
        self._context = tuple(context)

    def enabled(self, lvl):
        return self._enab.enabled(lvl)

    def with_fields(self, fields):
        return _ObserverCore(self._enab, self._logs, (*self._context, *fields))

    def check(self, ent, ce):
        if not self.enabled(ent.level):
            return ce
        if ce is None:
            ce = CheckedEntry(entry=ent)
        return ce.add_core(ent, self)

    def write(self, ent, fields):
        self._logs.append((ent, [*self._context, *fields]))

    def sync(self):
        return None


def make_sugar(level, *opts):
    logs = []
    logger = new(_ObserverCore(Level(level), logs), *opts)
    return logger.sugar(), logs


def untimed(logs):
    return [(ent.level, ent.message, ctx) for ent, ctx in logs]


def ignored(msg):
    return (Level.DPANIC, ODD_NUMBER_ERR_MSG, [Field("ignored", msg)])


def non_string(*pairs):
    return (Level.DPANIC, NON_STRING_KEY_ERR_MSG, [Field("invalid", list(pairs))])


@pytest.mark.parametrize(
    "args,expected,err_logs",
    [
        ((), [], []),
        (("should ignore",), [], [ignored("should ignore")]),
        (("foo", 42, "true", "bar"), [Field("foo", 42), Field("true", "bar")], []),
        ((Field("foo", 42),), [Field("foo", 42)], []),
        ((Field("foo", 42), "dangling"), [Field("foo", 42)], [ignored("dangling")]),
        ((Field("foo", 42), 13), [Field("foo", 42)], [ignored(13)]),
        (("foo", 42, "dangling"), [Field("foo", 42)], [ignored("dangling")]),
        (
            ("first", "field", Field("foo", 42), "baz", "quux", "dangling"),
            [Field("first", "field"), Field("foo", 42), Field("baz", "quux")],
            [ignored("dangling")],
        ),
        (
            ("foo", 42, True, "bar"),
            [Field("foo", 42)],
            [non_string(InvalidPair(2, True, "bar"))],
        ),
        (
            ("foo", 42, True, "bar", Field("structure", 11), 42, "reversed",
             "baz", "quux", "dangling"),
            [Field("foo", 42), Field("structure", 11), Field("baz", "quux")],
            [
                ignored("dangling"),
                non_string(InvalidPair(2, True, "bar"), InvalidPair(5, 42, "reversed")),
            ],
        ),
    ],
)
def test_sugar_with(args, expected, err_logs):
    sugar, logs = make_sugar(Level.DEBUG)
    sugar.with_fields(*args).info("")
    output = untimed(logs)
    assert output[: len(err_logs)] == err_logs
    assert len(output) == len(err_logs) + 1
    assert output[len(err_logs)][2] == expected


def test_sugar_fields_invalid_pairs():
    sugar, logs = make_sugar(Level.DEBUG)
    sugar.with_fields(42, "foo", ["bar"], "baz").info("")
    output = untimed(logs)
    assert len(output) == 2
    assert output[1] == (Level.INFO, "", [])
    assert len(output[0][2]) == 1
    invalid = output[0][2][0]
    assert invalid.key == "invalid"
    assert [p.to_dict() for p in invalid.value] == [
        {"position": 0, "key": 42, "value": "foo"},
        {"position": 2, "key": ["bar"], "value": "baz"},
    ]


def test_sugar_non_string_key_panics_in_development():
    sugar, logs = make_sugar(Level.DEBUG, development())
    with pytest.raises(PanicError):
        sugar.with_fields(1, "x")
    assert untimed(logs) == [non_string(InvalidPair(0, 1, "x"))]


ALL_LEVELS = [Level.DEBUG, Level.INFO, Level.WARN, Level.ERROR, Level.DPANIC]


@pytest.mark.parametrize("msg", ["foo", ""])
def test_sugar_structured_logging(msg):
    sugar, logs = make_sugar(Level.DEBUG)
    context = ("foo", "bar")
    extra = ("baz", False)
    sugar.with_fields(*context).debugw(msg, *extra)
    sugar.with_fields(*context).infow(msg, *extra)
    sugar.with_fields(*context).warnw(msg, *extra)
    sugar.with_fields(*context).errorw(msg, *extra)
    sugar.with_fields(*context).dpanicw(msg, *extra)
    expected_fields = [Field("foo", "bar"), Field("baz", False)]
    assert untimed(logs) == [(lvl, msg, expected_fields) for lvl in ALL_LEVELS]


def test_sugar_concatenating_logging():
    sugar, logs = make_sugar(Level.DEBUG)
    child = sugar.with_fields("foo", "bar")
    child.debug(None)
    child.info(None)
    child.warn(None)
    child.error(None)
    child.dpanic(None)
    assert untimed(logs) == [
        (lvl, "<nil>", [Field("foo", "bar")]) for lvl in ALL_LEVELS
    ]


@pytest.mark.parametrize(
    "template,args,expect",
    [("", (), ""), ("foo", (), "foo"), ("", ("foo",), "foo")],
)
def test_sugar_templated_logging(template, args, expect):
    sugar, logs = make_sugar(Level.DEBUG)
    child = sugar.with_fields("foo", "bar")
    child.debugf(template, *args)
    child.infof(template, *args)
    child.warnf(template, *args)
    child.errorf(template, *args)
    child.dpanicf(template, *args)
    assert untimed(logs) == [(lvl, expect, [Field("foo", "bar")]) for lvl in ALL_LEVELS]


_PANIC_CALLS = [
    lambda s: s.panic("foo"),
    lambda s: s.panicf("%s", "foo"),
    lambda s: s.panicw("foo"),
]


@pytest.mark.parametrize("call", _PANIC_CALLS)
@pytest.mark.parametrize(
    "level,expected_msg",
    [(Level.FATAL, ""), (Level.PANIC, "foo"), (Level.DEBUG, "foo")],
)
def test_sugar_panic_logging(call, level, expected_msg):
    sugar, logs = make_sugar(level)
    with pytest.raises(PanicError):
        call(sugar)
    if expected_msg:
        assert untimed(logs) == [(Level.PANIC, expected_msg, [])]
    else:
        assert logs == []


_FATAL_CALLS = [
    lambda s: s.fatal("foo"),
    lambda s: s.fatalf("%s", "foo"),
    lambda s: s.fatalw("foo"),
]


@pytest.mark.parametrize("call", _FATAL_CALLS)
@pytest.mark.parametrize(
    "level,expected_msg",
    [(Level.FATAL + 1, ""), (Level.FATAL, "foo"), (Level.DEBUG, "foo")],
)
def test_sugar_fatal_logging(call, level, expected_msg):
    sugar, logs = make_sugar(level)
    stub = zexit.with_stub(lambda: call(sugar))
    assert stub.exited is True
    if expected_msg:
        assert untimed(logs) == [(Level.FATAL, expected_msg, [])]
    else:
        assert logs == []


def test_sugar_add_caller():
    sugar, logs = make_sugar(Level.DEBUG, add_caller())
    sugar.info("")
    assert len(logs) == 1
    caller = logs[0][0].caller
    assert caller.defined is True
    assert caller.file.endswith("test_sugar.py")
    assert caller.function.endswith("test_sugar_add_caller")


def test_sugar_add_caller_skip_round_trip():
    sugar, logs = make_sugar(
        Level.DEBUG, add_caller(), add_caller_skip(1), add_caller_skip(-1)
    )
    sugar.info("")
    assert logs[0][0].caller.file.endswith("test_sugar.py")


def test_desugar_resets_caller_skip():
    sugar, logs = make_sugar(Level.DEBUG, add_caller())
    sugar.desugar().info("")
    assert logs[0][0].caller.function.endswith("test_desugar_resets_caller_skip")


def test_sugar_add_caller_fail():
    err_buf = Buffer()
    sugar, logs = make_sugar(
        Level.DEBUG, add_caller(), add_caller_skip(1000), error_output(err_buf)
    )
    sugar.info("Failure.")
    assert "Logger.check error: failed to get caller" in err_buf.getvalue()
    assert logs[0][0].message == "Failure."
    assert logs[0][0].caller.function == ""


@pytest.mark.parametrize(
    "names,expected",
    [
        ([], ""),
        ([""], ""),
        (["foo"], "foo"),
        (["foo", ""], "foo"),
        (["foo", "bar"], "foo.bar"),
        (["foo.bar", "baz"], "foo.bar.baz"),
        (["foo.", "bar"], "foo..bar"),
        (["foo", ".bar"], "foo..bar"),
        (["foo.", ".bar"], "foo...bar"),
    ],
)
def test_sugar_names(names, expected):
    sugar, logs = make_sugar(Level.DEBUG)
    for n in names:
        sugar = sugar.named(n)
    assert isinstance(sugar, SugaredLogger)
    sugar.infow("")
    assert len(logs) == 1
    assert logs[0][0].logger_name == expected


def test_sugar_disabled_level_writes_nothing():
    sugar, logs = make_sugar(Level.WARN)
    sugar.info("silence")
    sugar.debugw("silence", "k", "v")
    sugar.warnf("%d", 7)
    assert untimed(logs) == [(Level.WARN, "7", [])]


def test_sugar_sync_propagates_errors():
    out = Buffer()
    err = OSError("fail")
    out.set_error(err)

    class _SyncCore(_ObserverCore):
        def sync(self):
            out.sync()

    sugar = new(_SyncCore(Level.DEBUG, [])).sugar()
    with pytest.raises(OSError) as info:
        sugar.sync()
    assert info.value is err
    assert out.called is True


@pytest.mark.parametrize(
    "template,args,expected",
    [
        ("", None, ""),
        ("", (), ""),
        ("foo", (), "foo"),
        ("", ("foo",), "foo"),
        ("%s-%d", ("a", 3), "a-3"),
        ("", (None,), "<nil>"),
        ("", (1, 2), "1 2"),
        ("", ("a", 1, "b"), "a1b"),
        ("", (True, False), "true false"),
    ],
)
def test_get_message(template, args, expected):
    assert get_message(template, args) == expected


def test_get_message_bad_template_keeps_template():
    message = get_message("no verbs", ("x",))
    assert message.startswith("no verbs%!(")
    assert "x" in message