"""Result helpers for assertions."""

from typing import Any

from kungfu import Ok, Error

from graphtxn import ErrorKind


def ok(result: Any) -> Any:
    """Assert Ok and return the value."""
    assert isinstance(result, Ok), f"expected Ok, got {result!r}"
    return result.value


def err(result: Any, kind: ErrorKind | None = None) -> Any:
    """Assert Error (optionally of a kind) and return the error."""
    assert isinstance(result, Error), f"expected Error, got {result!r}"
    if kind is not None:
        assert result.value.kind is kind, f"expected {kind.name}, got {result.value}"
    return result.value
