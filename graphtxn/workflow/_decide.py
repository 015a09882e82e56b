"""
decide() — the only branch in the system.

No match → create; any match → delete the first one. Running it repeatedly
against a stable predicate alternates between the two.
"""

from __future__ import annotations

from kungfu import Result, Ok, Error

from graphtxn._errors import StoreError, StoreErrors
from graphtxn.entity import QueryResult, Record, create_payload, delete_payload
from graphtxn.workflow._types import Action, Decision, ToggleRequest


def decide(result: QueryResult, request: ToggleRequest) -> Result[Decision, StoreError]:
    """
    Pick the mutation for a query result.

    Only existence and identity of the first match matter; its other fields
    are dropped.
    """
    if result.is_empty:
        record = Record(
            uid=request.placeholder,
            name=request.record_name,
            balance=request.balance,
            type_tags=frozenset({request.type_tag}),
        )
        return Ok(Decision(Action.CREATE, record, create_payload(record)))

    match_ = result.first
    if match_ is None or not match_.uid or match_.is_placeholder:
        return Error(StoreErrors.decode(
            f"Store reported {result.total} matches but no record with a uid"
        ))

    target = Record(uid=match_.uid)
    return Ok(Decision(Action.DELETE, target, delete_payload(target.uid)))


__all__ = ("decide",)
