"""Tests: Record codec and mutation payloads.

Invariants:
    - Empty fields are omitted on the way out and decode to zero values
    - Only structural shape is checked on the way in
    - Delete documents carry nothing but the target uid
"""

import json

import pytest

from graphtxn import ErrorKind
from graphtxn.entity import (
    MutationOp,
    MutationReceipt,
    Record,
    create_payload,
    decode_query,
    decode_record,
    delete_payload,
    encode_record,
    from_wire,
    to_wire,
)

from tests.helpers import ok, err


# ==============================================================================
# Sparse encoding
# ==============================================================================


def test_full_record_to_wire():
    record = Record(uid="_:alice", name="Vikram Mali", balance=26, type_tags=frozenset({"user"}))

    assert to_wire(record) == {
        "uid": "_:alice",
        "name": "Vikram Mali",
        "balance": 26,
        "dgraph.type": ["user"],
    }


def test_empty_fields_are_omitted():
    assert to_wire(Record()) == {}
    assert to_wire(Record(name="Ann")) == {"name": "Ann"}


def test_type_tags_are_sorted_on_the_wire():
    record = Record(type_tags=frozenset({"user", "account", "admin"}))

    assert to_wire(record)["dgraph.type"] == ["account", "admin", "user"]


def test_absent_keys_decode_to_zero_values():
    record = ok(from_wire({}))

    assert record == Record(uid="", name="", balance=0, type_tags=frozenset())


def test_unknown_keys_are_ignored():
    record = ok(from_wire({"uid": "0x1", "email": "a@b.c"}))

    assert record == Record(uid="0x1")


@pytest.mark.parametrize(
    "record",
    [
        Record(uid="0x2a", name="Vikram Mali", balance=26, type_tags=frozenset({"user"})),
        Record(uid="_:bob", name="Bob"),
        Record(balance=-5, type_tags=frozenset({"user", "vip"})),
    ],
)
def test_round_trip(record):
    assert ok(decode_record(encode_record(record))) == record


# ==============================================================================
# Structural errors
# ==============================================================================


@pytest.mark.parametrize(
    "obj",
    [
        [],
        "0x1",
        {"uid": 1},
        {"name": ["Ann"]},
        {"balance": "26"},
        {"balance": True},
        {"dgraph.type": "user"},
        {"dgraph.type": [1]},
    ],
)
def test_bad_shapes_are_decode_errors(obj):
    err(from_wire(obj), ErrorKind.DECODE)


def test_invalid_json_is_decode_error():
    e = err(decode_record(b"{not json"), ErrorKind.DECODE)

    assert e.cause is not None


# ==============================================================================
# Query responses
# ==============================================================================


def test_decode_query_block():
    body = json.dumps({"all": [
        {"uid": "0x1", "name": "Vikram Mali", "balance": 26, "dgraph.type": ["user"]},
        {"uid": "0x3", "name": "Mali"},
    ]}).encode()

    result = ok(decode_query(body, block="all", total=2))

    assert result.total == 2
    assert [r.uid for r in result.records] == ["0x1", "0x3"]
    assert result.first == Record("0x1", "Vikram Mali", 26, frozenset({"user"}))
    assert result.raw == body


def test_missing_block_is_no_match():
    result = ok(decode_query(b"{}", block="all", total=0))

    assert result.records == ()
    assert result.is_empty
    assert result.first is None


def test_total_comes_from_the_store_not_the_records():
    result = ok(decode_query(b'{"all": [{"uid": "0x1"}]}', block="all", total=4))

    assert result.total == 4
    assert len(result.records) == 1


@pytest.mark.parametrize("body", [b"[]", b'{"all": {"uid": "0x1"}}', b'{"all": [1]}', b"nope"])
def test_bad_query_bodies(body):
    err(decode_query(body, block="all", total=1), ErrorKind.DECODE)


# ==============================================================================
# Mutation payloads
# ==============================================================================


def test_create_payload_is_sparse_set():
    payload = create_payload(Record(uid="_:alice", name="Ann", type_tags=frozenset({"user"})))

    assert payload.op is MutationOp.SET
    assert json.loads(payload.body) == {"uid": "_:alice", "name": "Ann", "dgraph.type": ["user"]}


def test_delete_payload_holds_only_uid():
    payload = delete_payload("0x2a")

    assert payload.op is MutationOp.DELETE
    assert json.loads(payload.body) == {"uid": "0x2a"}


@pytest.mark.parametrize("uid", ["", "_:alice"])
def test_delete_payload_needs_durable_uid(uid):
    with pytest.raises(ValueError):
        delete_payload(uid)


def test_receipt_resolves_with_or_without_prefix():
    receipt = MutationReceipt(uids={"alice": "0x7"})

    assert receipt.resolve("_:alice") == "0x7"
    assert receipt.resolve("alice") == "0x7"
    assert receipt.resolve("_:bob") is None


def test_placeholder_flag():
    assert Record(uid="_:alice").is_placeholder
    assert not Record(uid="0x1").is_placeholder


def test_receipt_resolves_custom_placeholder():
    receipt = MutationReceipt(uids={"ann": "0x2"})

    assert receipt.resolve("_:ann") == receipt.resolve("ann") == "0x2"
