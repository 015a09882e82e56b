"""
Core types for graphtxn.

Re-exports from kungfu + identifier aliases shared by all layers.
"""

from __future__ import annotations

# Re-export from kungfu
from kungfu import Result, Ok, Error

# ═══════════════════════════════════════════════════════════════════════════════
# Identifiers
# ═══════════════════════════════════════════════════════════════════════════════

type Uid = str
"""Store-assigned node handle, e.g. ``0x2a``."""

type Placeholder = str
"""Client-chosen blank node name, e.g. ``_:alice``."""

PLACEHOLDER_PREFIX = "_:"


def is_placeholder(uid: str) -> bool:
    """True for ``_:name`` blank nodes that have no durable identity yet."""
    return uid.startswith(PLACEHOLDER_PREFIX)


def placeholder_name(uid: Placeholder) -> str:
    """``_:alice`` → ``alice`` (the key the store uses in its uid map)."""
    return uid.removeprefix(PLACEHOLDER_PREFIX)


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = (
    # Re-exports from kungfu
    "Result",
    "Ok",
    "Error",
    # Identifiers
    "Uid",
    "Placeholder",
    "PLACEHOLDER_PREFIX",
    "is_placeholder",
    "placeholder_name",
)
