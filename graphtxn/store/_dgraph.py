"""
Dgraph backend — Gateway over pydgraph.

pydgraph is blocking, so every RPC runs in a worker thread and is wrapped
with catching_async: library exceptions become StoreError values.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Callable
from typing import Any

import grpc
import pydgraph
import structlog
from pydgraph import errors as dgraph_errors
from combinators import lift as L
from kungfu import Result, Ok, Error

from graphtxn._errors import StoreError, StoreErrors
from graphtxn.entity import MutationOp, MutationPayload, MutationReceipt
from graphtxn.store._protocol import QueryResponse

logger = structlog.get_logger(__name__)

DEFAULT_ADDRESS = "localhost:9080"

TRANSPORT_CODES = frozenset({
    grpc.StatusCode.UNAVAILABLE,
    grpc.StatusCode.DEADLINE_EXCEEDED,
    grpc.StatusCode.CANCELLED,
    grpc.StatusCode.RESOURCE_EXHAUSTED,
})


# ═══════════════════════════════════════════════════════════════════════════════
# Error classification
# ═══════════════════════════════════════════════════════════════════════════════


def _status(e: Exception) -> grpc.StatusCode | None:
    code = getattr(e, "code", None)
    if isinstance(e, grpc.RpcError) and callable(code):
        return code()
    return None


def _is_transport(e: Exception) -> bool:
    return (
        isinstance(e, (dgraph_errors.ConnectionError, dgraph_errors.RetriableError))
        or _status(e) in TRANSPORT_CODES
    )


def _alter_error(e: Exception) -> StoreError:
    if _is_transport(e):
        return StoreErrors.connection(f"Cannot reach store: {e}", e)
    return StoreErrors.schema(f"Schema rejected: {e}", e)


def _query_error(e: Exception) -> StoreError:
    if isinstance(e, dgraph_errors.TransactionError):
        return StoreErrors.finished(str(e))
    if _is_transport(e):
        return StoreErrors.transport(f"Query RPC failed: {e}", e)
    return StoreErrors.query(f"Query rejected: {e}", e)


def _write_error(e: Exception) -> StoreError:
    if isinstance(e, dgraph_errors.TransactionError):
        return StoreErrors.finished(str(e))
    if isinstance(e, dgraph_errors.AbortedError):
        return StoreErrors.mutation("Transaction has been aborted. Please retry", e)
    if _is_transport(e):
        return StoreErrors.transport(f"Mutation RPC failed: {e}", e)
    return StoreErrors.mutation(f"Mutation rejected: {e}", e)


async def _call[T](
    fn: Callable[[], T],
    on_error: Callable[[Exception], StoreError],
) -> Result[T, StoreError]:
    return await L.catching_async(lambda: asyncio.to_thread(fn), on_error=on_error)


# ═══════════════════════════════════════════════════════════════════════════════
# Gateway
# ═══════════════════════════════════════════════════════════════════════════════


class DgraphGateway:
    """
    Gateway to a Dgraph alpha over gRPC.

    Example:
        gateway = DgraphGateway.connect("localhost:9080")
        try:
            await gateway.install_schema(DEFAULT_SCHEMA)
            ...
        finally:
            await gateway.close()
    """

    def __init__(
        self,
        client: Any,
        stub: Any | None = None,
    ) -> None:
        self._client = client
        self._stub = stub

    @classmethod
    def connect(cls, address: str = DEFAULT_ADDRESS) -> DgraphGateway:
        """Dial an insecure channel. Nothing is sent until the first call."""
        stub = pydgraph.DgraphClientStub(address)
        logger.debug("dgraph.dial", address=address)
        return cls(pydgraph.DgraphClient(stub), stub)

    async def install_schema(self, schema: str) -> Result[None, StoreError]:
        op = pydgraph.Operation(schema=schema)
        match await _call(lambda: self._client.alter(op), _alter_error):
            case Ok(_):
                return Ok(None)
            case Error(e):
                return Error(e)

    async def drop_all(self) -> Result[None, StoreError]:
        op = pydgraph.Operation(drop_all=True)
        match await _call(lambda: self._client.alter(op), _alter_error):
            case Ok(_):
                return Ok(None)
            case Error(e):
                return Error(e)

    def begin_transaction(self) -> DgraphTxn:
        return DgraphTxn(self._client.txn(), read_only=False)

    def begin_read_only_transaction(self) -> DgraphTxn:
        return DgraphTxn(self._client.txn(read_only=True), read_only=True)

    async def close(self) -> None:
        if self._stub is not None:
            await asyncio.to_thread(self._stub.close)


# ═══════════════════════════════════════════════════════════════════════════════
# Transaction
# ═══════════════════════════════════════════════════════════════════════════════


class DgraphTxn:
    """pydgraph.Txn adapted to the StoreTxn protocol."""

    def __init__(self, txn: Any, *, read_only: bool) -> None:
        self._txn = txn
        self._read_only = read_only

    @property
    def read_only(self) -> bool:
        return self._read_only

    async def query(self, text: str) -> Result[QueryResponse, StoreError]:
        match await _call(lambda: self._txn.query(text), _query_error):
            case Ok(resp):
                return Ok(QueryResponse(
                    json=bytes(resp.json),
                    num_uids=dict(resp.metrics.num_uids),
                ))
            case Error(e):
                return Error(e)

    async def mutate(self, payload: MutationPayload) -> Result[MutationReceipt, StoreError]:
        if self._read_only:
            return Error(StoreErrors.read_only())

        try:
            doc = json.loads(payload.body)
        except ValueError as e:
            return Error(StoreErrors.mutation(f"Invalid mutation JSON: {e}", e))

        key = "set_obj" if payload.op is MutationOp.SET else "del_obj"
        match await _call(lambda: self._txn.mutate(**{key: doc}), _write_error):
            case Ok(resp):
                return Ok(MutationReceipt(uids=dict(resp.uids)))
            case Error(e):
                return Error(e)

    async def commit(self) -> Result[None, StoreError]:
        if self._read_only:
            return Error(StoreErrors.read_only())
        match await _call(self._txn.commit, _write_error):
            case Ok(_):
                return Ok(None)
            case Error(e):
                return Error(e)

    async def discard(self) -> None:
        # pydgraph makes this a no-op once committed or discarded
        match await _call(self._txn.discard, _write_error):
            case Error(e):
                logger.warning("dgraph.discard_failed", error=str(e))
            case _:
                pass


__all__ = (
    "DEFAULT_ADDRESS",
    "DgraphGateway",
    "DgraphTxn",
)
