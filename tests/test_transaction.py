"""Tests: Transaction state machine and decide().

Invariants:
    - OPEN → QUERIED → DECIDED → COMMITTED on the happy path
    - Any failed step ends in FAILED and releases the store transaction
    - Terminal handles return FINISHED without touching the store
    - Leaving the context always discards
"""

import pytest
from kungfu import Result, Ok

from graphtxn import ErrorKind
from graphtxn.entity import MutationPayload, MutationReceipt, QueryResult, Record
from graphtxn.store import MemoryGateway, QueryResponse, StoreTxn
from graphtxn.workflow import Action, ToggleRequest, Transaction, TxnState, decide

from tests.helpers import ok, err


class SpyTxn:
    """Counts calls that reach the store."""

    def __init__(self, inner: StoreTxn) -> None:
        self.inner = inner
        self.calls: list[str] = []

    @property
    def read_only(self) -> bool:
        return self.inner.read_only

    async def query(self, text: str) -> Result[QueryResponse, object]:
        self.calls.append("query")
        return await self.inner.query(text)

    async def mutate(self, payload: MutationPayload) -> Result[MutationReceipt, object]:
        self.calls.append("mutate")
        return await self.inner.mutate(payload)

    async def commit(self) -> Result[None, object]:
        self.calls.append("commit")
        return await self.inner.commit()

    async def discard(self) -> None:
        self.calls.append("discard")
        await self.inner.discard()


class BadBodyTxn:
    """Answers every query with a body that is not an object."""

    read_only = False

    async def query(self, text: str) -> Result[QueryResponse, object]:
        return Ok(QueryResponse(json=b"[]", num_uids={"_total": 1}))

    async def mutate(self, payload: MutationPayload) -> Result[MutationReceipt, object]:
        return Ok(MutationReceipt())

    async def commit(self) -> Result[None, object]:
        return Ok(None)

    async def discard(self) -> None:
        pass


# ==============================================================================
# decide()
# ==============================================================================


def test_decide_creates_when_nothing_matches(vikram):
    decision = ok(decide(QueryResult(records=(), total=0), vikram))

    assert decision.action is Action.CREATE
    assert decision.record == Record(
        uid="_:alice",
        name="Vikram Mali",
        balance=26,
        type_tags=frozenset({"user"}),
    )
    assert decision.target == "_:alice"


def test_decide_uses_explicit_name():
    request = ToggleRequest(terms="Mali", name="Vikram Mali", placeholder="_:v")

    decision = ok(decide(QueryResult(records=(), total=0), request))

    assert decision.record.name == "Vikram Mali"
    assert decision.record.uid == "_:v"


def test_decide_deletes_first_match_by_uid_only(vikram):
    found = QueryResult(
        records=(Record(uid="0x2", name="Vikram Mali", balance=26), Record(uid="0x5")),
        total=2,
    )

    decision = ok(decide(found, vikram))

    assert decision.action is Action.DELETE
    assert decision.record == Record(uid="0x2")
    assert decision.payload.body == b'{"uid": "0x2"}'


def test_decide_rejects_match_without_uid(vikram):
    found = QueryResult(records=(Record(name="Vikram Mali"),), total=1)

    err(decide(found, vikram), ErrorKind.DECODE)


# ==============================================================================
# States
# ==============================================================================


async def test_happy_path_states(gateway, vikram):
    spy = SpyTxn(gateway.begin_transaction())

    async with Transaction(spy) as txn:
        assert txn.state is TxnState.OPEN
        found = ok(await txn.query(vikram.query))
        assert txn.state is TxnState.QUERIED
        decision = ok(await txn.decide(found, vikram))
        assert txn.state is TxnState.DECIDED
        ok(await txn.mutate(decision.payload))
        assert txn.state is TxnState.DECIDED
        ok(await txn.commit())
        assert txn.state is TxnState.COMMITTED

    # Discard after commit is a store-level no-op and keeps the state
    assert txn.state is TxnState.COMMITTED
    assert spy.calls == ["query", "mutate", "commit", "discard"]
    assert len(gateway.nodes) == 1


async def test_leaving_context_discards(gateway, vikram):
    async with Transaction(gateway.begin_transaction()) as txn:
        found = ok(await txn.query(vikram.query))
        decision = ok(await txn.decide(found, vikram))
        ok(await txn.mutate(decision.payload))

    assert txn.state is TxnState.DISCARDED
    assert gateway.nodes == {}


async def test_leaving_context_on_exception_discards(gateway, vikram):
    spy = SpyTxn(gateway.begin_transaction())

    with pytest.raises(RuntimeError):
        async with Transaction(spy) as txn:
            ok(await txn.query(vikram.query))
            raise RuntimeError("boom")

    assert txn.state is TxnState.DISCARDED
    assert spy.calls[-1] == "discard"


async def test_failed_query_discards_and_fails(gateway, vikram):
    spy = SpyTxn(gateway.begin_transaction())
    txn = Transaction(spy)

    err(await txn.query("{ broken"), ErrorKind.QUERY)

    assert txn.state is TxnState.FAILED
    assert spy.calls == ["query", "discard"]


async def test_failed_decode_discards_and_fails(vikram):
    spy = SpyTxn(BadBodyTxn())
    txn = Transaction(spy)

    err(await txn.query(vikram.query), ErrorKind.DECODE)

    assert txn.state is TxnState.FAILED
    assert spy.calls == ["query", "discard"]


async def test_failed_decision_fails(gateway, vikram):
    txn = Transaction(gateway.begin_transaction())
    ok(await txn.query(vikram.query))

    err(await txn.decide(QueryResult(records=(Record(),), total=1), vikram), ErrorKind.DECODE)

    assert txn.state is TxnState.FAILED


async def test_rejected_mutation_fails(gateway, vikram):
    ok(await gateway.install_schema("balance: string ."))
    txn = Transaction(gateway.begin_transaction())
    found = ok(await txn.query(vikram.query))
    decision = ok(await txn.decide(found, vikram))

    err(await txn.mutate(decision.payload), ErrorKind.MUTATION)

    assert txn.state is TxnState.FAILED
    assert gateway.nodes == {}


async def test_terminal_state_returns_finished_without_store_calls(gateway, vikram):
    spy = SpyTxn(gateway.begin_transaction())
    txn = Transaction(spy)
    await txn.discard()
    calls = list(spy.calls)

    err(await txn.query(vikram.query), ErrorKind.FINISHED)
    err(await txn.decide(QueryResult(records=(), total=0), vikram), ErrorKind.FINISHED)
    err(await txn.commit(), ErrorKind.FINISHED)

    assert spy.calls == calls
    assert txn.state is TxnState.DISCARDED


async def test_read_only_transaction_refuses_writes(gateway, vikram):
    txn = Transaction(gateway.begin_read_only_transaction())
    assert txn.read_only

    found = ok(await txn.query(vikram.query))
    decision = ok(await txn.decide(found, vikram))
    err(await txn.mutate(decision.payload), ErrorKind.READ_ONLY)

    assert txn.state is TxnState.FAILED


async def test_commit_abort_fails(vikram):
    gw = MemoryGateway()
    ok(await gw.install_schema("name: string @index(term) @upsert ."))

    async with Transaction(gw.begin_transaction()) as first, Transaction(gw.begin_transaction()) as second:
        for txn in (first, second):
            found = ok(await txn.query(vikram.query))
            decision = ok(await txn.decide(found, vikram))
            ok(await txn.mutate(decision.payload))
        ok(await first.commit())

        err(await second.commit(), ErrorKind.MUTATION)

    assert first.state is TxnState.COMMITTED
    assert second.state is TxnState.FAILED
    assert len(gw.nodes) == 1


# ==============================================================================
# Step order
# ==============================================================================


async def test_commit_before_decision_fails(gateway, vikram):
    spy = SpyTxn(gateway.begin_transaction())
    txn = Transaction(spy)

    err(await txn.commit(), ErrorKind.STATE)

    assert txn.state is TxnState.FAILED
    assert spy.calls == ["discard"]


async def test_commit_after_query_only_fails(gateway, vikram):
    txn = Transaction(gateway.begin_transaction())
    ok(await txn.query(vikram.query))

    err(await txn.commit(), ErrorKind.STATE)

    assert txn.state is TxnState.FAILED


async def test_decide_before_query_fails(gateway, vikram):
    txn = Transaction(gateway.begin_transaction())

    err(await txn.decide(QueryResult(records=(), total=0), vikram), ErrorKind.STATE)

    assert txn.state is TxnState.FAILED


async def test_mutate_before_decision_fails(gateway, vikram):
    spy = SpyTxn(gateway.begin_transaction())
    txn = Transaction(spy)
    found = ok(await txn.query(vikram.query))
    decision = ok(decide(found, vikram))

    err(await txn.mutate(decision.payload), ErrorKind.STATE)

    assert txn.state is TxnState.FAILED
    assert "mutate" not in spy.calls
    assert gateway.nodes == {}


async def test_query_after_decision_fails(gateway, vikram):
    txn = Transaction(gateway.begin_transaction())
    found = ok(await txn.query(vikram.query))
    ok(await txn.decide(found, vikram))

    e = err(await txn.query(vikram.query), ErrorKind.STATE)

    assert txn.state is TxnState.FAILED
    assert "DECIDED" in e.message


async def test_second_decision_fails(gateway, vikram):
    txn = Transaction(gateway.begin_transaction())
    found = ok(await txn.query(vikram.query))
    ok(await txn.decide(found, vikram))

    err(await txn.decide(found, vikram), ErrorKind.STATE)

    assert txn.state is TxnState.FAILED
