"""
Schema and query text.

DEFAULT_SCHEMA — the account schema installed at startup.
term_match_query() — the one query shape the workflow sends.
parse_schema() — schema text → Schema, for backends that enforce it locally.
"""

from __future__ import annotations

import json
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from kungfu import Result, Ok, Error

from graphtxn._errors import StoreError, StoreErrors

# ═══════════════════════════════════════════════════════════════════════════════
# Text
# ═══════════════════════════════════════════════════════════════════════════════

DEFAULT_SCHEMA = """
name: string @index(term) .
balance: int .
type user {
    name
    balance
}
"""

DEFAULT_FIELDS: tuple[str, ...] = ("uid", "name", "balance", "dgraph.type")


def term_match_query(
    terms: str,
    *,
    predicate: str = "name",
    block: str = "all",
    fields: Iterable[str] = DEFAULT_FIELDS,
) -> str:
    """
    Query for nodes whose ``predicate`` contains any of ``terms``.

    Example:
        term_match_query("Vikram Mali")
        # { all(func: anyofterms(name, "Vikram Mali")) { uid name balance dgraph.type } }
    """
    projection = " ".join(fields)
    # json.dumps gives a double-quoted, escaped string literal
    return f"{{ {block}(func: anyofterms({predicate}, {json.dumps(terms)})) {{ {projection} }} }}"


def tokenize_terms(text: str) -> frozenset[str]:
    """Split text into lower-cased word tokens, as the term index does."""
    return frozenset(re.findall(r"\w+", text.lower()))


# ═══════════════════════════════════════════════════════════════════════════════
# Parsed schema
# ═══════════════════════════════════════════════════════════════════════════════

SCALAR_TYPES = frozenset(
    {"default", "int", "float", "string", "bool", "datetime", "geo", "password", "uid"}
)

TOKENIZERS: Mapping[str, frozenset[str]] = {
    "term": frozenset({"string"}),
    "fulltext": frozenset({"string"}),
    "trigram": frozenset({"string"}),
    "exact": frozenset({"string"}),
    "hash": frozenset({"string"}),
    "int": frozenset({"int"}),
    "float": frozenset({"float"}),
    "bool": frozenset({"bool"}),
    "year": frozenset({"datetime"}),
    "month": frozenset({"datetime"}),
    "day": frozenset({"datetime"}),
    "hour": frozenset({"datetime"}),
    "geo": frozenset({"geo"}),
}

FLAG_DIRECTIVES = frozenset({"upsert", "count", "reverse", "lang", "noconflict"})


@dataclass(frozen=True, slots=True)
class PredicateSpec:
    name: str
    type: str
    is_list: bool = False
    tokenizers: frozenset[str] = frozenset()
    upsert: bool = False

    def indexed_with(self, tokenizer: str) -> bool:
        return tokenizer in self.tokenizers

    @property
    def indexed(self) -> bool:
        return bool(self.tokenizers)


@dataclass(frozen=True, slots=True)
class Schema:
    """
    Predicates and type groupings.

    Note: Immutable — merge() returns a new Schema.
    """

    predicates: Mapping[str, PredicateSpec] = field(default_factory=dict[str, PredicateSpec])
    types: Mapping[str, tuple[str, ...]] = field(default_factory=dict[str, tuple[str, ...]])

    def merge(self, other: Schema) -> Schema:
        """Later declarations replace earlier ones with the same name."""
        return Schema(
            predicates={**self.predicates, **other.predicates},
            types={**self.types, **other.types},
        )

    def predicate(self, name: str) -> PredicateSpec | None:
        return self.predicates.get(name)


# ═══════════════════════════════════════════════════════════════════════════════
# Parser
# ═══════════════════════════════════════════════════════════════════════════════

_TYPE_BLOCK = re.compile(r"\btype\s+([\w.]+)\s*\{([^{}]*)\}", re.MULTILINE)
_PREDICATE = re.compile(
    r"^<?(?P<name>[\w.~]+)>?\s*:\s*(?P<type>\[?\s*\w+\s*\]?)\s*(?P<directives>.*?)\s*\.$"
)
_DIRECTIVE = re.compile(r"@(\w+)(?:\(([^)]*)\))?")


def parse_schema(text: str) -> Result[Schema, StoreError]:
    """
    Parse schema text.

    Accepts predicate lines (``name: string @index(term) @upsert .``) and
    type blocks (``type user { name balance }``). Anything else is rejected.
    """
    text = re.sub(r"#.*$", "", text, flags=re.MULTILINE)

    types: dict[str, tuple[str, ...]] = {}
    for match in _TYPE_BLOCK.finditer(text):
        fields = tuple(f.strip("<>") for f in match.group(2).split())
        types[match.group(1)] = fields
    rest = _TYPE_BLOCK.sub("", text)

    predicates: dict[str, PredicateSpec] = {}
    for raw in rest.splitlines():
        line = raw.strip()
        if not line:
            continue
        match _parse_predicate(line):
            case Ok(spec):
                predicates[spec.name] = spec
            case Error(e):
                return Error(e)

    return Ok(Schema(predicates=predicates, types=types))


def _parse_predicate(line: str) -> Result[PredicateSpec, StoreError]:
    m = _PREDICATE.match(line)
    if m is None:
        return Error(StoreErrors.schema(f"Invalid schema line: {line!r}"))

    name = m.group("name")
    type_text = m.group("type").replace(" ", "")
    is_list = type_text.startswith("[")
    if is_list != type_text.endswith("]"):
        return Error(StoreErrors.schema(f"Unbalanced list type for predicate {name}"))
    type_name = type_text.strip("[]")
    if type_name not in SCALAR_TYPES:
        return Error(StoreErrors.schema(f"Undefined type {type_name} for predicate {name}"))

    directives = m.group("directives")
    if _DIRECTIVE.sub("", directives).strip():
        return Error(StoreErrors.schema(f"Invalid directives for predicate {name}: {directives!r}"))

    tokenizers: set[str] = set()
    upsert = False
    for d in _DIRECTIVE.finditer(directives):
        directive, args = d.group(1), d.group(2)
        if directive == "index":
            toks = [t.strip() for t in (args or "").split(",") if t.strip()]
            if not toks:
                return Error(StoreErrors.schema(f"@index without tokenizers on predicate {name}"))
            for tok in toks:
                allowed = TOKENIZERS.get(tok)
                if allowed is None:
                    return Error(StoreErrors.schema(f"Invalid tokenizer {tok}"))
                if type_name not in allowed:
                    return Error(StoreErrors.schema(
                        f"Tokenizer: {tok} isn't valid for predicate: {name} of type: {type_name}"
                    ))
                tokenizers.add(tok)
        elif directive == "upsert":
            upsert = True
        elif directive not in FLAG_DIRECTIVES:
            return Error(StoreErrors.schema(f"Invalid directive @{directive} on predicate {name}"))

    if upsert and not tokenizers:
        return Error(StoreErrors.schema(f"Index tokenizer is mandatory for: [{name}] when specifying @upsert directive"))

    return Ok(PredicateSpec(
        name=name,
        type=type_name,
        is_list=is_list,
        tokenizers=frozenset(tokenizers),
        upsert=upsert,
    ))


__all__ = (
    "DEFAULT_SCHEMA",
    "DEFAULT_FIELDS",
    "term_match_query",
    "tokenize_terms",
    "PredicateSpec",
    "Schema",
    "parse_schema",
)
