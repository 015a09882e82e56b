"""
Query evaluation for the in-memory store.

Understands a single root block with one function and a flat projection:

    { all(func: anyofterms(name, "Vikram Mali")) { uid name balance dgraph.type } }

Supported functions: anyofterms / allofterms (need a term index) and eq
(needs any index). Everything else is rejected as a QUERY error.
"""

from __future__ import annotations

import json
import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from kungfu import Result, Ok, Error

from graphtxn._errors import StoreError, StoreErrors
from graphtxn.store._schema import Schema, tokenize_terms

type Node = Mapping[str, Any]

_QUERY = re.compile(
    r"""^\s*\{\s*
    (?P<block>\w+)\s*
    \(\s*func\s*:\s*(?P<fn>\w+)\s*
        \(\s*(?P<pred>[\w.]+)\s*,\s*(?P<arg>"(?:[^"\\]|\\.)*"|-?\d+)\s*\)
    \s*\)\s*
    \{(?P<fields>[^{}]*)\}
    \s*\}\s*$""",
    re.VERBOSE | re.DOTALL,
)

FUNCTIONS = frozenset({"anyofterms", "allofterms", "eq"})


@dataclass(frozen=True, slots=True)
class ParsedQuery:
    block: str
    function: str
    predicate: str
    argument: str | int
    fields: tuple[str, ...]


def parse_query(text: str) -> Result[ParsedQuery, StoreError]:
    m = _QUERY.match(text)
    if m is None:
        return Error(StoreErrors.query(f"Unsupported or malformed query: {text.strip()!r}"))

    function = m.group("fn")
    if function not in FUNCTIONS:
        return Error(StoreErrors.query(f"Function {function!r} is not supported"))

    fields = tuple(m.group("fields").split())
    if not fields:
        return Error(StoreErrors.query(f"Empty projection in block {m.group('block')!r}"))

    return Ok(ParsedQuery(
        block=m.group("block"),
        function=function,
        predicate=m.group("pred"),
        argument=json.loads(m.group("arg")),
        fields=fields,
    ))


def evaluate(
    query: ParsedQuery,
    nodes: Mapping[str, Node],
    schema: Schema,
) -> Result[tuple[dict[str, Any], ...], StoreError]:
    """Match and project nodes, ordered by uid."""
    spec = schema.predicate(query.predicate)
    if spec is None:
        return Error(StoreErrors.query(f"Predicate {query.predicate} is not indexed"))

    match query.function:
        case "anyofterms" | "allofterms":
            if not spec.indexed_with("term"):
                return Error(StoreErrors.query(
                    f"Attribute {query.predicate} is not indexed with type term"
                ))
            if not isinstance(query.argument, str):
                return Error(StoreErrors.query(f"{query.function} expects a string argument"))
            wanted = tokenize_terms(query.argument)
            every = query.function == "allofterms"

            def matches(value: Any) -> bool:
                if not isinstance(value, str) or not wanted:
                    return False
                have = tokenize_terms(value)
                return wanted <= have if every else bool(wanted & have)

        case _:
            if not spec.indexed:
                return Error(StoreErrors.query(f"Predicate {query.predicate} is not indexed"))

            def matches(value: Any) -> bool:
                return value == query.argument

    hits = [
        _project(uid, node, query.fields)
        for uid, node in sorted(nodes.items(), key=lambda item: int(item[0], 16))
        if matches(node.get(query.predicate))
    ]
    return Ok(tuple(hits))


def _project(uid: str, node: Node, fields: tuple[str, ...]) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for f in fields:
        if f == "uid":
            out["uid"] = uid
        elif f in node:
            value = node[f]
            out[f] = list(value) if isinstance(value, (list, tuple, frozenset, set)) else value
    return out


__all__ = (
    "ParsedQuery",
    "parse_query",
    "evaluate",
)
