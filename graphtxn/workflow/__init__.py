"""
Workflow — one transactional read-decide-write cycle.

    from graphtxn import workflow as W

    result = await W.toggle(gateway, W.ToggleRequest(terms="Vikram Mali", balance=26))

Step by step:

    async with W.Transaction(gateway.begin_transaction()) as txn:
        found = await txn.query(request.query)
        ...
"""

from graphtxn.workflow._types import (
    TxnState,
    Action,
    Decision,
    ToggleRequest,
    ToggleOutcome,
    WorkflowError,
)
from graphtxn.workflow._decide import decide
from graphtxn.workflow._txn import Transaction
from graphtxn.workflow._run import toggle, verify

__all__ = (
    "TxnState",
    "Action",
    "Decision",
    "ToggleRequest",
    "ToggleOutcome",
    "WorkflowError",
    "decide",
    "Transaction",
    "toggle",
    "verify",
)
