"""
Wire codec — Record ⇄ JSON.

Sparse encoding: empty string, zero and empty set are left out on the way
out, and missing keys come back as those zero values. Only structural shape
is checked here; types and ranges are the store's business.
"""

from __future__ import annotations

import json
from typing import Any

from kungfu import Result, Ok, Error

from graphtxn._errors import StoreError, StoreErrors
from graphtxn._types import Uid, is_placeholder
from graphtxn.entity._record import (
    Record,
    QueryResult,
    MutationOp,
    MutationPayload,
)

UID = "uid"
NAME = "name"
BALANCE = "balance"
DGRAPH_TYPE = "dgraph.type"


# ═══════════════════════════════════════════════════════════════════════════════
# Record ⇄ dict
# ═══════════════════════════════════════════════════════════════════════════════


def to_wire(record: Record) -> dict[str, Any]:
    """Record → JSON object with empty fields omitted."""
    out: dict[str, Any] = {}
    if record.uid:
        out[UID] = record.uid
    if record.name:
        out[NAME] = record.name
    if record.balance:
        out[BALANCE] = record.balance
    if record.type_tags:
        out[DGRAPH_TYPE] = sorted(record.type_tags)
    return out


def from_wire(obj: object) -> Result[Record, StoreError]:
    """JSON object → Record. Unknown keys are ignored."""
    if not isinstance(obj, dict):
        return Error(StoreErrors.decode(f"Expected object, got {type(obj).__name__}"))

    uid = obj.get(UID, "")
    name = obj.get(NAME, "")
    balance = obj.get(BALANCE, 0)
    tags = obj.get(DGRAPH_TYPE, [])

    if not isinstance(uid, str):
        return Error(StoreErrors.decode(f"{UID}: expected string, got {uid!r}"))
    if not isinstance(name, str):
        return Error(StoreErrors.decode(f"{NAME}: expected string, got {name!r}"))
    # bool is an int subclass; the store never sends one for an int predicate
    if not isinstance(balance, int) or isinstance(balance, bool):
        return Error(StoreErrors.decode(f"{BALANCE}: expected int, got {balance!r}"))
    if not isinstance(tags, list) or not all(isinstance(t, str) for t in tags):
        return Error(StoreErrors.decode(f"{DGRAPH_TYPE}: expected list of strings, got {tags!r}"))

    return Ok(Record(uid=uid, name=name, balance=balance, type_tags=frozenset(tags)))


# ═══════════════════════════════════════════════════════════════════════════════
# Record ⇄ bytes
# ═══════════════════════════════════════════════════════════════════════════════


def encode_record(record: Record) -> bytes:
    return json.dumps(to_wire(record)).encode()


def decode_record(body: bytes) -> Result[Record, StoreError]:
    match _load(body):
        case Ok(obj):
            return from_wire(obj)
        case Error(e):
            return Error(e)


def _load(body: bytes) -> Result[Any, StoreError]:
    try:
        return Ok(json.loads(body or b"{}"))
    except (ValueError, UnicodeDecodeError) as e:
        return Error(StoreErrors.decode(f"Invalid JSON: {e}", e))


# ═══════════════════════════════════════════════════════════════════════════════
# Query response → QueryResult
# ═══════════════════════════════════════════════════════════════════════════════


def decode_query(
    body: bytes,
    *,
    block: str,
    total: int,
) -> Result[QueryResult, StoreError]:
    """
    Decode the named result block of a query response.

    Example:
        decode_query(b'{"all": [{"uid": "0x1", "name": "Ann"}]}', block="all", total=1)
    """
    loaded = _load(body)
    if isinstance(loaded, Error):
        return Error(loaded.value)

    obj = loaded.value
    if not isinstance(obj, dict):
        return Error(StoreErrors.decode("Query response is not a JSON object"))

    # Store omits blocks with no matches
    items = obj.get(block, [])
    if not isinstance(items, list):
        return Error(StoreErrors.decode(f"Block {block!r} is not a list"))

    records: list[Record] = []
    for item in items:
        match from_wire(item):
            case Ok(record):
                records.append(record)
            case Error(e):
                return Error(e)

    return Ok(QueryResult(records=tuple(records), total=total, raw=body))


# ═══════════════════════════════════════════════════════════════════════════════
# Mutation payloads
# ═══════════════════════════════════════════════════════════════════════════════


def create_payload(record: Record) -> MutationPayload:
    """Set mutation creating ``record`` (uid is normally a placeholder)."""
    return MutationPayload(op=MutationOp.SET, body=encode_record(record))


def delete_payload(uid: Uid) -> MutationPayload:
    """Delete mutation referencing only the target uid."""
    if not uid:
        raise ValueError("delete_payload() needs a uid")
    if is_placeholder(uid):
        raise ValueError(f"Cannot delete placeholder {uid!r}: it has no durable identity")
    return MutationPayload(op=MutationOp.DELETE, body=json.dumps({UID: uid}).encode())


__all__ = (
    "to_wire",
    "from_wire",
    "encode_record",
    "decode_record",
    "decode_query",
    "create_payload",
    "delete_payload",
)
