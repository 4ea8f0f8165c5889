"""Error helpers: stack-carrying errors, wrapping, aggregates and concurrency."""

from __future__ import annotations

import queue
import threading
import traceback
from typing import Callable, Iterable, Optional, Sequence


def _capture_stack() -> traceback.StackSummary:
    # drop this helper and the constructor that called it
    return traceback.StackSummary.from_list(traceback.extract_stack()[:-3])


class StackError(Exception):
    """An error with a message and the stack where it was created."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message
        self.stack = _capture_stack()

    def __str__(self) -> str:
        return self.message


class WrappedError(Exception):
    """An error annotating another error with an optional message and a stack."""

    def __init__(self, inner: BaseException, message: Optional[str] = None) -> None:
        super().__init__(message if message is not None else str(inner))
        self.inner = inner
        self.message = message
        self.stack = _capture_stack()
        self.__cause__ = inner

    def __str__(self) -> str:
        if self.message is None:
            return str(self.inner)
        return f"{self.message}: {self.inner}"

    def cause(self) -> BaseException:
        """Return the wrapped error."""
        return self.inner


class AggregateError(Exception):
    """Several errors reported together."""

    def __init__(self, errors: Iterable[BaseException]) -> None:
        self.errors = [err for err in errors if err is not None]
        super().__init__(str(self))

    def __str__(self) -> str:
        if not self.errors:
            return ""
        if len(self.errors) == 1:
            return str(self.errors[0])
        seen: list[str] = []
        for msg in self._messages(self.errors):
            if msg not in seen:
                seen.append(msg)
        joined = ", ".join(seen)
        return joined if len(seen) == 1 else f"[{joined}]"

    @classmethod
    def _messages(cls, errs: Sequence[BaseException]):
        for err in errs:
            if isinstance(err, AggregateError):
                yield from cls._messages(err.errors)
            else:
                yield str(err)


def _next_cause(err: BaseException) -> Optional[BaseException]:
    causer = getattr(err, "cause", None)
    if not callable(causer):
        return None
    nxt = causer()
    if nxt is None or nxt is err:
        return None
    return nxt


def _format(format: str, args: tuple) -> str:
    return format % args if args else format


def new(message: str) -> StackError:
    """Return an error with the message, recording the current stack."""
    return StackError(message)


def new_without_stack(message: str) -> Exception:
    """Return a plain error with the message and no stack."""
    return Exception(message)


def errorf(format: str, *args) -> StackError:
    """Return a stack-carrying error with a %-formatted message."""
    return StackError(_format(format, args))


def wrap(err: Optional[BaseException], message: str) -> Optional[WrappedError]:
    """Annotate err with a message and stack; None stays None."""
    if err is None:
        return None
    return WrappedError(err, message)


def wrapf(err: Optional[BaseException], format: str, *args) -> Optional[WrappedError]:
    """Annotate err with a %-formatted message and stack; None stays None."""
    if err is None:
        return None
    return WrappedError(err, _format(format, args))


def with_stack(err: Optional[BaseException]) -> Optional[WrappedError]:
    """Annotate err with a stack only; None stays None."""
    if err is None:
        return None
    return WrappedError(err)


def cause(err: Optional[BaseException]) -> Optional[BaseException]:
    """Return the innermost error of a cause chain."""
    while err is not None:
        nxt = _next_cause(err)
        if nxt is None:
            break
        err = nxt
    return err


def stack_trace(err: Optional[BaseException]) -> Optional[traceback.StackSummary]:
    """Return the deepest stack recorded in err's cause chain, or None."""
    found = None
    while err is not None:
        stack = getattr(err, "stack", None)
        if isinstance(stack, traceback.StackSummary):
            found = stack
        err = _next_cause(err)
    return found


def _flatten(errs: Iterable[BaseException]) -> list[BaseException]:
    out: list[BaseException] = []
    for err in errs:
        if err is None:
            continue
        if isinstance(err, AggregateError):
            out.extend(_flatten(err.errors))
        else:
            out.append(err)
    return out


def new_aggregate(errlist: Iterable[Optional[BaseException]]) -> Optional[WrappedError]:
    """Flatten and reduce errlist into one stack-carrying error, or None."""
    flat = _flatten(errlist)
    if not flat:
        return None
    if len(flat) == 1:
        return with_stack(flat[0])
    return with_stack(AggregateError(flat))


def errors(err: Optional[BaseException]) -> list[BaseException]:
    """Return the errors of the deepest aggregate in err's cause chain."""
    found: Optional[AggregateError] = None
    while err is not None:
        if isinstance(err, AggregateError):
            found = err
        err = _next_cause(err)
    return list(found.errors) if found is not None else []


def _run_into(func: Callable[[], object], results: "queue.Queue") -> None:
    try:
        func()
    except Exception as exc:  # noqa: BLE001 - reported to the caller
        results.put(exc)
    else:
        results.put(None)


def until_error_concurrent(funcs: Iterable[Callable[[], object]]) -> None:
    """Run funcs in threads; raise the first error raised, if any."""
    funcs = list(funcs)
    results: "queue.Queue[Optional[Exception]]" = queue.Queue()
    for func in funcs:
        threading.Thread(target=_run_into, args=(func, results), daemon=True).start()
    for _ in funcs:
        err = results.get()
        if err is not None:
            raise err


def aggregate_concurrent(funcs: Iterable[Callable[[], object]]) -> None:
    """Run funcs in threads and wait for all; raise the error or an aggregate."""
    results: "queue.Queue[Optional[Exception]]" = queue.Queue()
    threads = [
        threading.Thread(target=_run_into, args=(func, results), daemon=True)
        for func in funcs
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    errs = []
    while not results.empty():
        err = results.get()
        if err is not None:
            errs.append(err)
    if len(errs) > 1:
        raise new_aggregate(errs)
    if errs:
        raise errs[0]