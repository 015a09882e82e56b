"""
Entity types — what a node looks like on both sides of the wire.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum, auto

from graphtxn._types import Uid, is_placeholder, placeholder_name

# ═══════════════════════════════════════════════════════════════════════════════
# Record — one node in the store
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Record:
    """
    A read-only projection of one node.

    uid is either store-assigned (``0x..``) or a ``_:name`` placeholder that
    the store resolves on commit. Empty values mean "absent".
    """

    uid: Uid = ""
    name: str = ""
    balance: int = 0
    type_tags: frozenset[str] = field(default_factory=frozenset[str])

    @property
    def is_placeholder(self) -> bool:
        return is_placeholder(self.uid)


# ═══════════════════════════════════════════════════════════════════════════════
# QueryResult — decoded response of one query block
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class QueryResult:
    """
    Records matching a predicate plus the store's count metric.

    Note: total comes from the store, not from len(records).
    """

    records: tuple[Record, ...]
    total: int
    raw: bytes = b""

    @property
    def is_empty(self) -> bool:
        return self.total == 0

    @property
    def first(self) -> Record | None:
        return self.records[0] if self.records else None


# ═══════════════════════════════════════════════════════════════════════════════
# Mutations
# ═══════════════════════════════════════════════════════════════════════════════


class MutationOp(Enum):
    SET = auto()
    DELETE = auto()


@dataclass(frozen=True, slots=True)
class MutationPayload:
    """JSON document sent to the store as a set or delete mutation."""

    op: MutationOp
    body: bytes


@dataclass(frozen=True, slots=True)
class MutationReceipt:
    """Placeholder name (without ``_:``) → assigned uid."""

    uids: Mapping[str, Uid] = field(default_factory=dict[str, Uid])

    def resolve(self, placeholder: str) -> Uid | None:
        return self.uids.get(placeholder_name(placeholder))


__all__ = (
    "Record",
    "QueryResult",
    "MutationOp",
    "MutationPayload",
    "MutationReceipt",
)
