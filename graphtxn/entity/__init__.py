"""
Entity — records exchanged with the store and their JSON form.

    from graphtxn import entity as E

    payload = E.create_payload(E.Record(uid="_:alice", name="Alice", balance=10))
    result = E.decode_query(body, block="all", total=1)
"""

from graphtxn.entity._record import (
    Record,
    QueryResult,
    MutationOp,
    MutationPayload,
    MutationReceipt,
)
from graphtxn.entity._codec import (
    to_wire,
    from_wire,
    encode_record,
    decode_record,
    decode_query,
    create_payload,
    delete_payload,
)

__all__ = (
    "Record",
    "QueryResult",
    "MutationOp",
    "MutationPayload",
    "MutationReceipt",
    "to_wire",
    "from_wire",
    "encode_record",
    "decode_record",
    "decode_query",
    "create_payload",
    "delete_payload",
)
