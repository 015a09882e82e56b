"""
Error taxonomy — every store-facing failure as a value.

Errors are never raised across the store boundary: gateways and transactions
return ``Error(StoreError(...))`` and the process entry point decides what to do.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto


class ErrorKind(Enum):
    """Kinds of store errors."""

    CONNECTION = auto()  # Store unreachable
    SCHEMA = auto()  # Schema text rejected
    QUERY = auto()  # Malformed or unsupported query
    TRANSPORT = auto()  # RPC failed mid-call
    MUTATION = auto()  # Write rejected (conflict, type mismatch)
    DECODE = auto()  # Response does not have the expected shape
    READ_ONLY = auto()  # Write attempted on a read-only handle
    FINISHED = auto()  # Handle already committed or discarded
    STATE = auto()  # Workflow step called out of order


@dataclass(frozen=True, slots=True)
class StoreError:
    """
    Store operation error.

    Note: cause holds the library exception when there was one.
    """

    kind: ErrorKind
    message: str
    cause: Exception | None = None

    def __str__(self) -> str:
        return f"{self.kind.name}: {self.message}"


class StoreErrors:
    @staticmethod
    def connection(msg: str, cause: Exception | None = None) -> StoreError:
        return StoreError(ErrorKind.CONNECTION, msg, cause)

    @staticmethod
    def schema(msg: str, cause: Exception | None = None) -> StoreError:
        return StoreError(ErrorKind.SCHEMA, msg, cause)

    @staticmethod
    def query(msg: str, cause: Exception | None = None) -> StoreError:
        return StoreError(ErrorKind.QUERY, msg, cause)

    @staticmethod
    def transport(msg: str, cause: Exception | None = None) -> StoreError:
        return StoreError(ErrorKind.TRANSPORT, msg, cause)

    @staticmethod
    def mutation(msg: str, cause: Exception | None = None) -> StoreError:
        return StoreError(ErrorKind.MUTATION, msg, cause)

    @staticmethod
    def decode(msg: str, cause: Exception | None = None) -> StoreError:
        return StoreError(ErrorKind.DECODE, msg, cause)

    @staticmethod
    def read_only(msg: str = "Readonly transaction cannot run mutations or be committed") -> StoreError:
        return StoreError(ErrorKind.READ_ONLY, msg)

    @staticmethod
    def state(msg: str) -> StoreError:
        return StoreError(ErrorKind.STATE, msg)

    @staticmethod
    def finished(msg: str = "Transaction has already been committed or discarded") -> StoreError:
        return StoreError(ErrorKind.FINISHED, msg)


__all__ = (
    "ErrorKind",
    "StoreError",
    "StoreErrors",
)
