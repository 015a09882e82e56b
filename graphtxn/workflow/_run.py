"""
toggle() — query, decide, mutate, commit, then verify.

Note: the verification read runs in a fresh read-only transaction, so it
only sees what has been durably committed.
"""

from __future__ import annotations

import structlog
from kungfu import Result, Ok, Error

from graphtxn._errors import StoreError
from graphtxn.entity import QueryResult
from graphtxn.store import Gateway
from graphtxn.workflow._txn import Transaction
from graphtxn.workflow._types import (
    ToggleOutcome,
    ToggleRequest,
    TxnState,
    WorkflowError,
)

logger = structlog.get_logger(__name__)


async def toggle(
    gateway: Gateway,
    request: ToggleRequest,
) -> Result[ToggleOutcome, WorkflowError]:
    """
    Run one toggle cycle.

    No match for ``request.query`` → create the record; a match → delete
    the first one. No retries: the first error is returned with the state
    the transaction reached.

    Example:
        result = await toggle(gateway, ToggleRequest(terms="Vikram Mali", balance=26))

        match result:
            case Ok(outcome):
                print(outcome.action, outcome.confirmation.total)
            case Error(e):
                print(f"Failed: {e}")
    """
    log = logger.bind(terms=request.terms)

    async with Transaction(gateway.begin_transaction()) as txn:
        observed = await txn.query(request.query, block=request.block)
        if isinstance(observed, Error):
            return Error(WorkflowError(observed.value, txn.state))

        decided = await txn.decide(observed.value, request)
        if isinstance(decided, Error):
            return Error(WorkflowError(decided.value, txn.state))
        decision = decided.value

        receipt = await txn.mutate(decision.payload)
        if isinstance(receipt, Error):
            return Error(WorkflowError(receipt.value, txn.state, decision))

        committed = await txn.commit()
        if isinstance(committed, Error):
            return Error(WorkflowError(committed.value, txn.state, decision))

    log.info("toggle.committed", action=decision.action.name, target=decision.target)

    match await verify(gateway, request):
        case Ok(confirmation):
            log.info("toggle.verified", total=confirmation.total)
            return Ok(ToggleOutcome(
                decision=decision,
                observed=observed.value,
                receipt=receipt.value,
                confirmation=confirmation,
            ))
        case Error(e):
            return Error(WorkflowError(e, TxnState.COMMITTED, decision))


async def verify(gateway: Gateway, request: ToggleRequest) -> Result[QueryResult, StoreError]:
    """Re-run the request's query in a read-only transaction."""
    async with Transaction(gateway.begin_read_only_transaction()) as txn:
        return await txn.query(request.query, block=request.block)


__all__ = ("toggle", "verify")
