"""Small assertion helpers that report through a test object's errorf."""

from __future__ import annotations

from typing import Any, Optional, Protocol


class _Reporter(Protocol):
    def errorf(self, format: str, *args) -> None: ...


def expect_error(t: _Reporter, expect_error: bool, err: Optional[BaseException]) -> None:
    """Report if the presence of err does not match expect_error."""
    if err is not None and not expect_error:
        t.errorf("Did not expect error: %s", err)
    if err is None and expect_error:
        t.errorf("Expected error but got none")


def bool_equal(t: _Reporter, expected: bool, result: bool) -> None:
    """Report if two booleans differ."""
    if expected != result:
        t.errorf("Result did not match!")
        t.errorf("Expected: %s", expected)
        t.errorf("But got: %s", result)


def string_equal(t: _Reporter, expected: str, result: str) -> None:
    """Report if two strings differ."""
    if expected != result:
        t.errorf("Strings did not match!")
        t.errorf("Expected: %r", expected)
        t.errorf("But got: %r", result)


def deep_equal(t: _Reporter, expected: Any, result: Any) -> None:
    """Report if two values are not equal."""
    if expected != result:
        t.errorf("Result did not DeepEqual Expected!")
        t.errorf("Expected: %r", expected)
        t.errorf("But got: %r", result)