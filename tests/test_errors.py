import threading

import pytest

from kindkit.errors import (
    AggregateError,
    StackError,
    WrappedError,
    aggregate_concurrent,
    cause,
    errorf,
    errors,
    new,
    new_aggregate,
    new_without_stack,
    stack_trace,
    until_error_concurrent,
    with_stack,
    wrap,
    wrapf,
)


def test_errors_wrapped_aggregate():
    errs = [new("foo"), errorf("bar")]
    err = wrapf(new_aggregate(errs), "baz: %s", "quux")
    assert errors(err) == errs


def test_errors_nil():
    assert errors(None) == []


def test_wrapped_aggregate_message():
    err = wrapf(new_aggregate([new("foo"), errorf("bar")]), "baz: %s", "quux")
    assert str(err) == "baz: quux: [foo, bar]"


def test_aggregate_dedupes_messages():
    assert str(AggregateError([new("foo"), new("foo")])) == "foo"


def test_new_aggregate_flattens_nested():
    a, b, c = new("a"), new("b"), new("c")
    err = new_aggregate([AggregateError([a, b]), None, c])
    assert errors(err) == [a, b, c]


def test_new_aggregate_reduces():
    assert new_aggregate([]) is None
    assert new_aggregate([None]) is None
    single = new("only")
    result = new_aggregate([single])
    assert isinstance(result, WrappedError)
    assert cause(result) is single
    assert errors(result) == []


def test_stack_trace_wrapped_chain():
    err = new("foo")
    expected = err.stack
    assert stack_trace(wrap(wrap(err, "bar"), "baz")) is expected


def test_stack_trace_nil():
    assert stack_trace(None) is None


def test_stack_trace_without_stack():
    assert stack_trace(new_without_stack("plain")) is None


def test_wrap_none_is_none():
    assert wrap(None, "x") is None
    assert wrapf(None, "x %s", "y") is None
    assert with_stack(None) is None


def test_wrap_message_and_cause():
    inner = new("inner")
    err = wrap(inner, "outer")
    assert str(err) == "outer: inner"
    assert err.cause() is inner
    assert cause(err) is inner
    assert str(with_stack(inner)) == "inner"


def test_errorf_formats():
    assert str(errorf("invalid port number: %d", -2)) == "invalid port number: -2"
    assert str(errorf("100%")) == "100%"


def test_until_error_concurrent_first_to_raise():
    expected = new("first")
    release = threading.Event()

    def slow():
        release.wait(5)
        raise new("second")

    def fast():
        raise expected

    try:
        with pytest.raises(StackError) as info:
            until_error_concurrent([slow, fast])
    finally:
        release.set()
    assert info.value is expected


def test_until_error_concurrent_nil():
    assert until_error_concurrent([lambda: None]) is None


def test_aggregate_concurrent_all_errors():
    first = new("first")
    second = new("second")

    def raise_second():
        raise second

    def raise_first():
        raise first

    with pytest.raises(WrappedError) as info:
        aggregate_concurrent([raise_second, raise_first])
    result = sorted(errors(info.value), key=str)
    assert result == [first, second]


def test_aggregate_concurrent_one_error():
    expected = new("foo")

    def fail():
        raise expected

    with pytest.raises(StackError) as info:
        aggregate_concurrent([fail])
    assert info.value is expected


def test_aggregate_concurrent_nil():
    assert aggregate_concurrent([lambda: None]) is None