"""
Workflow types — states, decisions, requests and outcomes.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto

from graphtxn._errors import ErrorKind, StoreError
from graphtxn._types import Uid
from graphtxn.entity import MutationPayload, MutationReceipt, QueryResult, Record
from graphtxn.store import term_match_query

# ═══════════════════════════════════════════════════════════════════════════════
# Transaction State
# ═══════════════════════════════════════════════════════════════════════════════


class TxnState(Enum):
    """
    State of a workflow transaction.

    Lifecycle:
        OPEN → QUERIED → DECIDED → COMMITTED (success)
                                 → FAILED (store rejected a step)
        any non-terminal → DISCARDED (released without commit)
    """

    OPEN = auto()
    QUERIED = auto()
    DECIDED = auto()
    COMMITTED = auto()
    DISCARDED = auto()
    FAILED = auto()

    @property
    def is_terminal(self) -> bool:
        return self in (TxnState.COMMITTED, TxnState.DISCARDED, TxnState.FAILED)


# ═══════════════════════════════════════════════════════════════════════════════
# Decision
# ═══════════════════════════════════════════════════════════════════════════════


class Action(Enum):
    CREATE = auto()  # No match: create the record
    DELETE = auto()  # Match found: delete the first one


@dataclass(frozen=True, slots=True)
class Decision:
    """
    What the workflow will write.

    record is the record to create (placeholder uid) or, for DELETE,
    the matched record whose uid is targeted.
    """

    action: Action
    record: Record
    payload: MutationPayload

    @property
    def target(self) -> Uid:
        return self.record.uid


# ═══════════════════════════════════════════════════════════════════════════════
# Request / Outcome
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class ToggleRequest:
    """
    Input of one toggle run.

    Note: name defaults to terms, so the created record matches its own query.
    """

    terms: str
    name: str | None = None
    balance: int = 0
    type_tag: str = "user"
    placeholder: str = "_:alice"
    predicate: str = "name"
    block: str = "all"

    @property
    def record_name(self) -> str:
        return self.name if self.name is not None else self.terms

    @property
    def query(self) -> str:
        return term_match_query(self.terms, predicate=self.predicate, block=self.block)


@dataclass(frozen=True, slots=True)
class ToggleOutcome:
    """Successful toggle with everything observed along the way."""

    decision: Decision
    observed: QueryResult
    receipt: MutationReceipt
    confirmation: QueryResult

    @property
    def action(self) -> Action:
        return self.decision.action

    @property
    def created_uid(self) -> Uid | None:
        if self.decision.action is not Action.CREATE:
            return None
        return self.receipt.resolve(self.decision.record.uid)


@dataclass(frozen=True, slots=True)
class WorkflowError:
    """
    Toggle failure with the state the transaction reached.

    Note: state is COMMITTED when only the verification read failed.
    """

    error: StoreError
    state: TxnState
    decision: Decision | None = None

    @property
    def kind(self) -> ErrorKind:
        return self.error.kind

    def __str__(self) -> str:
        return f"{self.error} (transaction {self.state.name.lower()})"


__all__ = (
    "TxnState",
    "Action",
    "Decision",
    "ToggleRequest",
    "ToggleOutcome",
    "WorkflowError",
)
