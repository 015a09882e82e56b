"""
Memory store — in-process graph store with snapshot reads and optimistic commits.

Note: Только для single-process / тестов.
Behaves like the remote store where the workflow can observe it:
schema enforcement, term-index queries, placeholder resolution,
read-only handles, conflict aborts on commit.
"""

from __future__ import annotations

import asyncio
import json
import re
from collections import Counter
from dataclasses import dataclass
from typing import Any

from kungfu import Result, Ok, Error

from graphtxn._errors import StoreError, StoreErrors
from graphtxn._types import Uid, is_placeholder, placeholder_name
from graphtxn.entity import MutationOp, MutationPayload, MutationReceipt
from graphtxn.store._protocol import QueryResponse
from graphtxn.store._query import parse_query, evaluate
from graphtxn.store._schema import Schema, PredicateSpec, parse_schema, tokenize_terms

type ConflictKey = tuple[str, str]
type NodeData = dict[str, Any]

_UID = re.compile(r"0x[0-9a-fA-F]+")

BASE_SCHEMA = Schema(predicates={
    "dgraph.type": PredicateSpec(
        name="dgraph.type",
        type="string",
        is_list=True,
        tokenizers=frozenset({"exact"}),
    ),
})


@dataclass(frozen=True, slots=True)
class _Commit:
    ts: int
    keys: frozenset[ConflictKey]


# ═══════════════════════════════════════════════════════════════════════════════
# Gateway
# ═══════════════════════════════════════════════════════════════════════════════


class MemoryGateway:
    """
    In-memory Gateway.

    Example:
        gateway = MemoryGateway()
        await gateway.install_schema(DEFAULT_SCHEMA)
        result = await toggle(gateway, ToggleRequest(terms="Ann"))

    Set ``reachable = False`` to simulate a dead store.
    """

    def __init__(self) -> None:
        self.reachable = True
        self._schema = BASE_SCHEMA
        self._nodes: dict[Uid, NodeData] = {}
        self._next_uid = 1
        self._ts = 0
        self._commits: list[_Commit] = []
        # start_ts → number of open writable transactions that began there
        self._open: Counter[int] = Counter()
        self._lock = asyncio.Lock()

    @property
    def schema(self) -> Schema:
        return self._schema

    @property
    def nodes(self) -> dict[Uid, NodeData]:
        """Copy of committed state."""
        return {uid: dict(data) for uid, data in self._nodes.items()}

    async def install_schema(self, schema: str) -> Result[None, StoreError]:
        if not self.reachable:
            return Error(StoreErrors.connection("Store is unreachable"))
        match parse_schema(schema):
            case Ok(parsed):
                async with self._lock:
                    self._schema = self._schema.merge(parsed)
                return Ok(None)
            case Error(e):
                return Error(e)

    async def drop_all(self) -> Result[None, StoreError]:
        if not self.reachable:
            return Error(StoreErrors.connection("Store is unreachable"))
        async with self._lock:
            self._schema = BASE_SCHEMA
            self._nodes.clear()
        return Ok(None)

    def begin_transaction(self) -> MemoryTxn:
        return MemoryTxn(self, read_only=False)

    def begin_read_only_transaction(self) -> MemoryTxn:
        return MemoryTxn(self, read_only=True)

    async def close(self) -> None:
        pass

    # ── internals used by MemoryTxn ───────────────────────────────────────────

    def _allocate_uid(self) -> Uid:
        uid = hex(self._next_uid)
        self._next_uid += 1
        return uid

    def _check_uid(self, uid: Uid) -> StoreError | None:
        """Explicit uids must be hex and already handed out by this store."""
        if not _UID.fullmatch(uid):
            return StoreErrors.mutation(f"Invalid uid {uid!r}: expected 0x-prefixed hex")
        if not 0 < int(uid, 16) < self._next_uid:
            return StoreErrors.mutation(f"Uid {uid} has not been allocated")
        return None

    async def _commit(
        self,
        start_ts: int,
        keys: frozenset[ConflictKey],
        sets: dict[Uid, NodeData],
        deletes: dict[Uid, frozenset[str] | None],
    ) -> Result[None, StoreError]:
        async with self._lock:
            for c in self._commits:
                if c.ts > start_ts and c.keys & keys:
                    return Error(StoreErrors.mutation("Transaction has been aborted. Please retry"))

            for uid, preds in deletes.items():
                if preds is None:
                    self._nodes.pop(uid, None)
                elif uid in self._nodes:
                    for p in preds:
                        self._nodes[uid].pop(p, None)
            for uid, data in sets.items():
                self._nodes.setdefault(uid, {}).update(data)

            self._ts += 1
            self._commits.append(_Commit(self._ts, keys))
            # Only commits after the oldest open start_ts can still conflict
            horizon = min(self._open) if self._open else self._ts
            self._commits = [c for c in self._commits if c.ts > horizon]
            return Ok(None)


# ═══════════════════════════════════════════════════════════════════════════════
# Transaction
# ═══════════════════════════════════════════════════════════════════════════════


class MemoryTxn:
    """
    One transaction over a MemoryGateway.

    Reads see the committed state at the first operation plus this
    transaction's own staged writes.
    """

    def __init__(self, gateway: MemoryGateway, *, read_only: bool) -> None:
        self._gw = gateway
        self._read_only = read_only
        self._start_ts: int | None = None
        self._snapshot: dict[Uid, NodeData] = {}
        self._sets: dict[Uid, NodeData] = {}
        # uid → predicates to drop, None for the whole node
        self._deletes: dict[Uid, frozenset[str] | None] = {}
        self._placeholders: dict[str, Uid] = {}
        self._keys: set[ConflictKey] = set()
        self._finished = False
        self._registered = False

    @property
    def read_only(self) -> bool:
        return self._read_only

    def _begin(self) -> None:
        if self._start_ts is None:
            self._start_ts = self._gw._ts
            self._snapshot = self._gw.nodes
            if not self._read_only:
                self._gw._open[self._start_ts] += 1
                self._registered = True

    def _release(self) -> None:
        if self._registered:
            self._registered = False
            self._gw._open[self._start_ts] -= 1
            if self._gw._open[self._start_ts] <= 0:
                del self._gw._open[self._start_ts]

    def _view(self) -> dict[Uid, NodeData]:
        view = {uid: dict(data) for uid, data in self._snapshot.items()}
        for uid, preds in self._deletes.items():
            if preds is None:
                view.pop(uid, None)
            elif uid in view:
                for p in preds:
                    view[uid].pop(p, None)
        for uid, data in self._sets.items():
            view.setdefault(uid, {}).update(data)
        return view

    def _check_usable(self) -> StoreError | None:
        if self._finished:
            return StoreErrors.finished()
        if not self._gw.reachable:
            return StoreErrors.transport("Store is unreachable")
        return None

    async def query(self, text: str) -> Result[QueryResponse, StoreError]:
        if (err := self._check_usable()) is not None:
            return Error(err)
        self._begin()

        parsed = parse_query(text)
        if isinstance(parsed, Error):
            return Error(parsed.value)
        query = parsed.value

        match evaluate(query, self._view(), self._gw.schema):
            case Ok(hits):
                body = json.dumps({query.block: list(hits)}).encode()
                return Ok(QueryResponse(json=body, num_uids={"_total": len(hits)}))
            case Error(e):
                return Error(e)

    async def mutate(self, payload: MutationPayload) -> Result[MutationReceipt, StoreError]:
        if self._finished:
            return Error(StoreErrors.finished())
        if self._read_only:
            return Error(StoreErrors.read_only())
        if not self._gw.reachable:
            return Error(StoreErrors.transport("Store is unreachable"))
        self._begin()

        try:
            doc = json.loads(payload.body)
        except ValueError as e:
            return Error(StoreErrors.mutation(f"Invalid mutation JSON: {e}", e))
        objects = doc if isinstance(doc, list) else [doc]
        if not objects or not all(isinstance(o, dict) for o in objects):
            return Error(StoreErrors.mutation("Mutation must be a JSON object or a list of objects"))

        match payload.op:
            case MutationOp.SET:
                return self._stage_sets(objects)
            case MutationOp.DELETE:
                return self._stage_deletes(objects)

    def _stage_sets(self, objects: list[dict[str, Any]]) -> Result[MutationReceipt, StoreError]:
        assigned: dict[str, Uid] = {}
        staged: list[tuple[Uid, NodeData]] = []
        keys: set[ConflictKey] = set()

        for obj in objects:
            data = {k: v for k, v in obj.items() if k != "uid"}
            for pred, value in data.items():
                if (err := _check_value(self._gw.schema.predicate(pred), pred, value)) is not None:
                    return Error(err)
            data = {k: _normalize(self._gw.schema.predicate(k), v) for k, v in data.items()}

            raw_uid = obj.get("uid", "")
            if not isinstance(raw_uid, str):
                return Error(StoreErrors.mutation(f"uid must be a string, got {raw_uid!r}"))
            if not raw_uid or is_placeholder(raw_uid):
                name = placeholder_name(raw_uid) if raw_uid else ""
                uid = self._placeholders.get(name) if name else None
                if uid is None:
                    uid = self._gw._allocate_uid()
                    if name:
                        self._placeholders[name] = uid
                        assigned[name] = uid
            else:
                if (err := self._gw._check_uid(raw_uid)) is not None:
                    return Error(err)
                uid = raw_uid

            keys.add(("uid", uid))
            keys |= _index_keys(self._gw.schema, data)
            staged.append((uid, data))

        for uid, data in staged:
            self._sets.setdefault(uid, {}).update(data)
        self._keys |= keys
        return Ok(MutationReceipt(uids=assigned))

    def _stage_deletes(self, objects: list[dict[str, Any]]) -> Result[MutationReceipt, StoreError]:
        view = self._view()
        for obj in objects:
            uid = obj.get("uid")
            if not isinstance(uid, str) or not uid or is_placeholder(uid):
                return Error(StoreErrors.mutation(f"Delete needs a durable uid, got {uid!r}"))
            if (err := self._gw._check_uid(uid)) is not None:
                return Error(err)

            preds = frozenset(k for k in obj if k != "uid")
            existing = view.get(uid, {})
            touched = existing if not preds else {p: existing[p] for p in preds if p in existing}

            self._deletes[uid] = None if not preds else preds | (self._deletes.get(uid) or frozenset())
            self._sets.pop(uid, None)
            self._keys.add(("uid", uid))
            self._keys |= _index_keys(self._gw.schema, touched)
        return Ok(MutationReceipt())

    async def commit(self) -> Result[None, StoreError]:
        if self._finished:
            return Error(StoreErrors.finished())
        if self._read_only:
            return Error(StoreErrors.read_only())
        if not self._gw.reachable:
            return Error(StoreErrors.transport("Store is unreachable"))

        self._finished = True
        if not self._keys:
            self._release()
            return Ok(None)
        result = await self._gw._commit(
            self._start_ts or 0,
            frozenset(self._keys),
            self._sets,
            self._deletes,
        )
        self._release()
        return result

    async def discard(self) -> None:
        self._finished = True
        self._release()


# ═══════════════════════════════════════════════════════════════════════════════
# Helpers
# ═══════════════════════════════════════════════════════════════════════════════


def _index_keys(schema: Schema, data: NodeData) -> set[ConflictKey]:
    """Index tokens of @upsert predicates: two writers of the same token conflict."""
    keys: set[ConflictKey] = set()
    for pred, value in data.items():
        spec = schema.predicate(pred)
        if spec is None or not spec.upsert:
            continue
        values = value if isinstance(value, (list, tuple)) else (value,)
        for v in values:
            tokens = tokenize_terms(v) if isinstance(v, str) and spec.indexed_with("term") else {str(v)}
            keys |= {(pred, t) for t in tokens}
    return keys


def _normalize(spec: PredicateSpec | None, value: Any) -> Any:
    """Lists are stored as tuples; a scalar sent to a list predicate becomes a one-tuple."""
    if isinstance(value, list):
        return tuple(value)
    if spec is not None and spec.is_list:
        return (value,)
    return value


_PY_TYPES: dict[str, tuple[type, ...]] = {
    "string": (str,),
    "default": (str, int, float, bool),
    "password": (str,),
    "datetime": (str,),
    "int": (int,),
    "float": (int, float),
    "bool": (bool,),
    "uid": (dict,),
    "geo": (dict,),
}


def _check_value(spec: PredicateSpec | None, pred: str, value: Any) -> StoreError | None:
    # Predicates missing from the schema are accepted as-is
    if spec is None:
        return None
    values = value if isinstance(value, list) else [value]
    if isinstance(value, list) and not spec.is_list and spec.type != "uid":
        return StoreErrors.mutation(f"Input for predicate {pred} of type scalar is list")
    expected = _PY_TYPES.get(spec.type, (object,))
    for v in values:
        bad_bool = isinstance(v, bool) and spec.type in ("int", "float")
        if bad_bool or not isinstance(v, expected):
            return StoreErrors.mutation(
                f"Input for predicate {pred} of type {spec.type} is {type(v).__name__}"
            )
    return None


__all__ = (
    "MemoryGateway",
    "MemoryTxn",
)
