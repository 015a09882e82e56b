"""
Store — gateways to a graph store.

    from graphtxn import store as St

    gateway = St.DgraphGateway.connect("localhost:9080")   # remote
    gateway = St.MemoryGateway()                           # in-process

    await gateway.install_schema(St.DEFAULT_SCHEMA)
    txn = gateway.begin_transaction()
    resp = await txn.query(St.term_match_query("Vikram Mali"))
"""

from graphtxn._errors import ErrorKind, StoreError, StoreErrors
from graphtxn.store._protocol import QueryResponse, StoreTxn, Gateway
from graphtxn.store._schema import (
    DEFAULT_SCHEMA,
    DEFAULT_FIELDS,
    term_match_query,
    tokenize_terms,
    PredicateSpec,
    Schema,
    parse_schema,
)
from graphtxn.store._memory import MemoryGateway, MemoryTxn
from graphtxn.store._dgraph import DEFAULT_ADDRESS, DgraphGateway, DgraphTxn

__all__ = (
    "ErrorKind",
    "StoreError",
    "StoreErrors",
    "QueryResponse",
    "StoreTxn",
    "Gateway",
    "DEFAULT_SCHEMA",
    "DEFAULT_FIELDS",
    "term_match_query",
    "tokenize_terms",
    "PredicateSpec",
    "Schema",
    "parse_schema",
    "MemoryGateway",
    "MemoryTxn",
    "DEFAULT_ADDRESS",
    "DgraphGateway",
    "DgraphTxn",
)
