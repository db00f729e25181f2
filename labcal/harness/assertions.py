"""
Harness Assertions

Small assertion helpers for API smoke tests. Each raises
HarnessAssertionError with a readable message on failure.
"""
import re
from typing import Any, Awaitable, Callable, Optional, Type


class HarnessAssertionError(AssertionError):
    """Raised when a harness assertion fails."""


def is_true(value: Any, message: str = "Expected value to be truthy") -> None:
    if not value:
        raise HarnessAssertionError(message)


def is_false(value: Any, message: str = "Expected value to be falsy") -> None:
    if value:
        raise HarnessAssertionError(message)


def equals(actual: Any, expected: Any, message: Optional[str] = None) -> None:
    if actual != expected:
        raise HarnessAssertionError(message or f"Expected {expected!r}, got {actual!r}")


def is_defined(value: Any, message: str = "Expected value to be defined") -> None:
    if value is None:
        raise HarnessAssertionError(message)


def has_property(obj: Any, name: str, message: Optional[str] = None) -> None:
    present = name in obj if isinstance(obj, dict) else hasattr(obj, name)
    if not present:
        raise HarnessAssertionError(message or f"Expected object to have property {name!r}")


def contains(container: Any, item: Any, message: Optional[str] = None) -> None:
    if item not in container:
        raise HarnessAssertionError(message or f"Expected {container!r} to contain {item!r}")


def matches(value: str, pattern: str, message: Optional[str] = None) -> None:
    if not isinstance(value, str) or not re.search(pattern, value):
        raise HarnessAssertionError(message or f"Expected {value!r} to match /{pattern}/")


async def raises(
    call: Callable[[], Awaitable[Any]],
    expected: Type[BaseException] = Exception,
    message: Optional[str] = None,
) -> BaseException:
    """Await call() and require it to raise `expected`; returns the exception."""
    try:
        await call()
    except expected as e:
        return e
    raise HarnessAssertionError(message or f"Expected {expected.__name__} to be raised")
