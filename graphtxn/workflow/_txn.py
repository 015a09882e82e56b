"""
Transaction — a StoreTxn with tracked state and guaranteed release.

    async with Transaction(gateway.begin_transaction()) as txn:
        result = await txn.query(text)
        ...
    # discard() has run here, whatever happened inside
"""

from __future__ import annotations

from types import TracebackType

import structlog
from kungfu import Result, Ok, Error

from graphtxn._errors import StoreError, StoreErrors
from graphtxn.entity import MutationPayload, MutationReceipt, QueryResult, decode_query
from graphtxn.store import StoreTxn
from graphtxn.workflow._decide import decide
from graphtxn.workflow._types import Decision, ToggleRequest, TxnState

logger = structlog.get_logger(__name__)


class Transaction:
    """
    Workflow handle over one store transaction.

    Steps run in order: query, decide, mutate (any number of times), commit.
    Every failed or out-of-order step discards the store transaction and
    ends in FAILED.
    Calls after a terminal state return a FINISHED error without touching
    the store.
    """

    def __init__(self, txn: StoreTxn) -> None:
        self._txn = txn
        self._state = TxnState.OPEN

    @property
    def state(self) -> TxnState:
        return self._state

    @property
    def read_only(self) -> bool:
        return self._txn.read_only

    async def __aenter__(self) -> Transaction:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.discard()

    # ── steps ─────────────────────────────────────────────────────────────────

    async def query(self, text: str, *, block: str = "all") -> Result[QueryResult, StoreError]:
        """OPEN → QUERIED. Decodes the named block of the response."""
        if self._state.is_terminal:
            return Error(StoreErrors.finished())
        if (e := self._out_of_order("query", TxnState.OPEN)) is not None:
            return await self._fail(e)

        response = await self._txn.query(text)
        if isinstance(response, Error):
            return await self._fail(response.value)

        match decode_query(response.value.json, block=block, total=response.value.total):
            case Ok(result):
                self._state = TxnState.QUERIED
                logger.info("txn.queried", total=result.total, matches=len(result.records))
                return Ok(result)
            case Error(e):
                return await self._fail(e)

    async def decide(self, result: QueryResult, request: ToggleRequest) -> Result[Decision, StoreError]:
        """QUERIED → DECIDED."""
        if self._state.is_terminal:
            return Error(StoreErrors.finished())
        if (e := self._out_of_order("decide", TxnState.QUERIED)) is not None:
            return await self._fail(e)

        match decide(result, request):
            case Ok(decision):
                self._state = TxnState.DECIDED
                logger.info(
                    "txn.decided",
                    action=decision.action.name,
                    target=decision.target,
                )
                return Ok(decision)
            case Error(e):
                return await self._fail(e)

    async def mutate(self, payload: MutationPayload) -> Result[MutationReceipt, StoreError]:
        """Send a mutation. Rejection discards and ends in FAILED (no retry)."""
        if self._state.is_terminal:
            return Error(StoreErrors.finished())
        if (e := self._out_of_order("mutate", TxnState.DECIDED)) is not None:
            return await self._fail(e)

        match await self._txn.mutate(payload):
            case Ok(receipt):
                logger.info("txn.mutated", op=payload.op.name, uids=dict(receipt.uids))
                return Ok(receipt)
            case Error(e):
                return await self._fail(e)

    async def commit(self) -> Result[None, StoreError]:
        """→ COMMITTED, or FAILED when the store aborts the commit."""
        if self._state.is_terminal:
            return Error(StoreErrors.finished())
        if (e := self._out_of_order("commit", TxnState.DECIDED)) is not None:
            return await self._fail(e)

        match await self._txn.commit():
            case Ok(_):
                self._state = TxnState.COMMITTED
                logger.info("txn.committed")
                return Ok(None)
            case Error(e):
                return await self._fail(e)

    async def discard(self) -> None:
        """
        Release the store transaction without persisting staged writes.

        Idempotent. After commit it is a no-op at the store and the state
        stays COMMITTED.
        """
        if not self._state.is_terminal:
            self._state = TxnState.DISCARDED
            logger.debug("txn.discarded")
        await self._txn.discard()

    def _out_of_order(self, step: str, required: TxnState) -> StoreError | None:
        if self._state is required:
            return None
        return StoreErrors.state(
            f"{step}() needs state {required.name}, transaction is {self._state.name}"
        )

    async def _fail[T](self, error: StoreError) -> Result[T, StoreError]:
        logger.warning(
            "txn.failed",
            kind=error.kind.name,
            error=error.message,
            state=self._state.name,
        )
        self._state = TxnState.FAILED
        await self._txn.discard()
        return Error(error)


__all__ = ("Transaction",)
