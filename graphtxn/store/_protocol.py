"""
Store protocols — what the workflow needs from a graph store.

Gateway — the process-wide handle (schema, transactions).
StoreTxn — one unit of work.
All fallible methods return Result for explicit error handling.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Protocol

from kungfu import Result

from graphtxn._errors import StoreError
from graphtxn.entity import MutationPayload, MutationReceipt


@dataclass(frozen=True, slots=True)
class QueryResponse:
    """Raw query response: JSON body + per-predicate uid counts."""

    json: bytes
    num_uids: Mapping[str, int] = field(default_factory=dict[str, int])

    @property
    def total(self) -> int:
        return self.num_uids.get("_total", 0)


class StoreTxn(Protocol):
    """
    One transaction against the store.

    Note: discard() never fails and is safe after commit() or another discard().
    """

    @property
    def read_only(self) -> bool: ...

    async def query(self, text: str) -> Result[QueryResponse, StoreError]:
        """Run a query inside the transaction's snapshot."""
        ...

    async def mutate(self, payload: MutationPayload) -> Result[MutationReceipt, StoreError]:
        """Stage a set or delete mutation."""
        ...

    async def commit(self) -> Result[None, StoreError]:
        """Make staged mutations durable. Aborts on conflict."""
        ...

    async def discard(self) -> None:
        """Release the transaction without persisting anything."""
        ...


class Gateway(Protocol):
    """
    Handle to a graph store.

    Example — custom backend:

        class MyGateway:
            async def install_schema(self, schema: str) -> Result[None, StoreError]:
                try:
                    await self.client.alter(schema)
                    return Ok(None)
                except MyTransportError as e:
                    return Error(StoreErrors.connection(str(e), e))

            # ... other methods
    """

    async def install_schema(self, schema: str) -> Result[None, StoreError]:
        """Idempotently declare predicates and types."""
        ...

    async def drop_all(self) -> Result[None, StoreError]:
        """Drop all data and schema."""
        ...

    def begin_transaction(self) -> StoreTxn:
        """New read-write transaction. No side effects until used."""
        ...

    def begin_read_only_transaction(self) -> StoreTxn:
        """New transaction that rejects mutations."""
        ...

    async def close(self) -> None:
        ...


__all__ = (
    "QueryResponse",
    "StoreTxn",
    "Gateway",
)
