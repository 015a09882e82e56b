"""
graphtxn — one transactional read-decide-write cycle against a graph store.

    from graphtxn import entity as E    # Records and their JSON form
    from graphtxn import store as St    # Gateways (Dgraph, in-memory)
    from graphtxn import workflow as W  # Transaction, decide, toggle
"""

from graphtxn import entity
from graphtxn import store
from graphtxn import workflow
from graphtxn._errors import ErrorKind, StoreError
from graphtxn._types import (
    Result,
    Ok,
    Error,
    Uid,
    Placeholder,
)

__version__ = "0.1.0"

__all__ = (
    "entity",
    "store",
    "workflow",
    "ErrorKind",
    "StoreError",
    "Result",
    "Ok",
    "Error",
    "Uid",
    "Placeholder",
)
